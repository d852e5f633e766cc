from typing import Optional

from modulecms.application.exceptions import DeletePostModuleError
from modulecms.extensions import db
from modulecms.models.post_module import PostModule
from modulecms.services import revision_service
from modulecms.services.module_resolution import assert_mode
from modulecms.utils.audit import log_action
from modulecms.utils.order import compact_order
from modulecms.utils.transaction import transactional


def remove_post_module_row(pm: PostModule) -> None:
    """Delete the row and, for local modules, its instance. Caller commits."""
    instance = pm.module_instance
    db.session.delete(pm)
    db.session.flush()
    if instance.is_local and not PostModule.query.filter_by(module_id=instance.id).count():
        db.session.delete(instance)


def delete_post_module(
    *,
    post_module_id: str,
    mode: str = "publish",
    actor_id: Optional[str] = None,
) -> None:
    """
    Remove a module from a post.

    Staged modes only flag the row as deleted for that mode, unless the row
    was itself added in that mode, in which case it is dropped.
    """
    assert_mode(mode)
    pm = db.session.get(PostModule, post_module_id)
    if pm is None:
        raise DeletePostModuleError("Post module not found", 404, {"post_module_id": post_module_id})
    if pm.locked:
        raise DeletePostModuleError("Cannot delete a locked module", 400, {"post_module_id": post_module_id})

    post = pm.post
    with transactional():
        staged_only = (
            (mode == "review" and pm.review_added)
            or (mode == "ai-review" and pm.ai_review_added)
        )
        if mode == "publish" or staged_only:
            remove_post_module_row(pm)
            compact_order(PostModule.query.filter_by(post_id=post.id), PostModule)
        elif mode == "review":
            pm.review_deleted = True
        else:
            pm.ai_review_deleted = True

        db.session.expire(post, ["post_modules"])
        revision_service.record_revision(post, mode=mode, action="module.delete", actor_id=actor_id)

        log_action(
            action="post_module.delete",
            entity_type="post_module",
            entity_id=post_module_id,
            payload={"post_id": post.id, "mode": mode},
            actor_id=actor_id,
        )
