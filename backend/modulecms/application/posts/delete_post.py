from typing import Optional

from modulecms.application.exceptions import DeletePostError
from modulecms.domain.invariants.exceptions import InvariantViolation
from modulecms.domain.lifecycle.post import assert_hard_deletable
from modulecms.extensions import db
from modulecms.models.agent_execution import AgentExecution
from modulecms.models.menu import MenuItem
from modulecms.models.module_instance import ModuleInstance
from modulecms.models.post import Post
from modulecms.models.post_revision import PostRevision
from modulecms.services.webhook_service import webhook_service
from modulecms.utils.audit import log_action
from modulecms.utils.transaction import transactional


def _get_post(post_id: str) -> Post:
    post = db.session.get(Post, post_id)
    if post is None:
        raise DeletePostError("Post not found", 404, {"post_id": post_id})
    return post


def soft_delete_post(*, post_id: str, actor_id: Optional[str] = None) -> Post:
    post = _get_post(post_id)
    if post.is_deleted:
        return post

    with transactional():
        post.soft_delete()
        log_action(
            action="post.delete",
            entity_type="post",
            entity_id=post.id,
            payload={"soft": True},
            actor_id=actor_id,
        )

    webhook_service.dispatch("post.deleted", {"id": post.id, "soft": True})
    return post


def restore_post(*, post_id: str, actor_id: Optional[str] = None) -> Post:
    post = _get_post(post_id)
    if not post.is_deleted:
        raise DeletePostError("Post is not deleted", 400, {"post_id": post_id})

    with transactional():
        post.restore()
        log_action(
            action="post.restore",
            entity_type="post",
            entity_id=post.id,
            payload={},
            actor_id=actor_id,
        )

    webhook_service.dispatch("post.restored", {"id": post.id})
    return post


def purge_post(post: Post) -> None:
    """Delete ``post`` with everything that belongs only to it. Caller commits."""
    PostRevision.query.filter_by(post_id=post.id).delete()
    AgentExecution.query.filter_by(post_id=post.id).delete()
    MenuItem.query.filter_by(post_id=post.id).update({"post_id": None})
    Post.query.filter_by(parent_id=post.id).update({"parent_id": None})

    local_ids = [pm.module_id for pm in post.post_modules if pm.module_instance.is_local]
    for pm in list(post.post_modules):
        db.session.delete(pm)
    db.session.flush()
    if local_ids:
        ModuleInstance.query.filter(ModuleInstance.id.in_(local_ids)).delete(synchronize_session=False)
    ModuleInstance.query.filter_by(post_id=post.id, scope="post").delete(synchronize_session=False)

    db.session.delete(post)


def assert_purgeable(post: Post, deleting_ids=()) -> None:
    """
    Refuse permanent deletion of live posts and of roots whose translations
    survive. Translations listed in ``deleting_ids`` go with the root.
    """
    try:
        assert_hard_deletable(post)
    except InvariantViolation as exc:
        raise DeletePostError(str(exc), 400, {"post_id": post.id, "status": post.status}) from exc

    if post.is_translation():
        return
    surviving = Post.query.filter(Post.translation_of_id == post.id)
    if deleting_ids:
        surviving = surviving.filter(Post.id.notin_(list(deleting_ids)))
    if surviving.count():
        raise DeletePostError(
            "Delete the translations of this post first",
            409,
            {"post_id": post.id},
        )


def hard_delete_post(*, post_id: str, actor_id: Optional[str] = None) -> None:
    """
    Permanently remove an archived or trashed post with its revisions, its
    own module instances and its agent executions. Shared global modules stay.
    """
    post = _get_post(post_id)
    assert_purgeable(post)

    summary = {"type": post.type, "slug": post.slug, "locale": post.locale}

    with transactional():
        purge_post(post)
        log_action(
            action="post.hard_delete",
            entity_type="post",
            entity_id=post_id,
            payload=summary,
            actor_id=actor_id,
        )

    webhook_service.dispatch("post.deleted", {"id": post_id, "soft": False, **summary})
