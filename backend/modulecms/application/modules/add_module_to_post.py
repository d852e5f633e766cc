from typing import Any, Dict, Optional

from sqlalchemy import func

from modulecms.application.exceptions import AddModuleToPostError
from modulecms.application.posts.create_post import find_or_create_global
from modulecms.domain.invariants.module import assert_module_instance, assert_post_module
from modulecms.extensions import db
from modulecms.models.module_instance import ModuleInstance
from modulecms.models.post import Post
from modulecms.models.post_module import PostModule
from modulecms.services import module_scope_service, revision_service
from modulecms.services.module_registry import module_registry
from modulecms.services.module_resolution import assert_mode
from modulecms.utils.audit import log_action
from modulecms.utils.transaction import transactional


def next_order_index(post_id: str) -> int:
    current = db.session.query(func.max(PostModule.order_index)).filter(PostModule.post_id == post_id).scalar()
    return 0 if current is None else current + 1


def add_module_to_post(
    *,
    post_id: str,
    module_type: str,
    scope: str = "local",
    props: Optional[Dict[str, Any]] = None,
    global_slug: Optional[str] = None,
    order_index: Optional[int] = None,
    locked: bool = False,
    admin_label: Optional[str] = None,
    mode: str = "publish",
    actor_id: Optional[str] = None,
) -> PostModule:
    """
    Attach a module to a post.

    Local modules get a fresh instance; global modules reuse (or create) the
    instance named by ``global_slug``. Staged modes flag the row as added so
    it stays out of the live view until approved.
    """
    assert_mode(mode)
    post = db.session.get(Post, post_id)
    if post is None:
        raise AddModuleToPostError("Post not found", 404, {"post_id": post_id})

    if not module_registry.has(module_type):
        raise AddModuleToPostError(
            f"Module type '{module_type}' is not registered", 404, {"module_type": module_type}
        )

    if scope not in ("local", "global"):
        raise AddModuleToPostError(f"Unknown scope '{scope}'", 400, {"scope": scope})

    try:
        module_scope_service.validate_attachment(module_type, post.type)
    except module_scope_service.ModuleNotAllowedError as exc:
        raise AddModuleToPostError(str(exc), 400, {"module_type": module_type, "post_type": post.type}) from exc

    if scope == "global" and not global_slug:
        raise AddModuleToPostError("Global modules require a global_slug", 400, {"scope": scope})

    module = module_registry.get(module_type)
    if scope not in module.config.allowed_scopes:
        raise AddModuleToPostError(
            f"Module type '{module_type}' cannot be used as {scope}", 400, {"scope": scope}
        )
    initial_props = props if props else module.default_props()

    with transactional():
        if scope == "global":
            instance = find_or_create_global(module_type, global_slug, initial_props)
            if instance.type != module_type:
                raise AddModuleToPostError(
                    f"Global module '{global_slug}' is a '{instance.type}' module",
                    409,
                    {"global_slug": global_slug},
                )
        else:
            instance = ModuleInstance()
            instance.scope = "post"
            instance.type = module_type
            instance.post_id = post.id
            instance.props = dict(initial_props)
            db.session.add(instance)
            db.session.flush()
        assert_module_instance(instance)

        pm = PostModule()
        pm.post_id = post.id
        pm.module_id = instance.id
        pm.order_index = next_order_index(post.id) if order_index is None else order_index
        pm.locked = bool(locked)
        pm.admin_label = admin_label
        pm.review_added = mode == "review"
        pm.ai_review_added = mode == "ai-review"
        db.session.add(pm)
        db.session.flush()
        assert_post_module(pm)

        db.session.expire(post, ["post_modules"])
        revision_service.record_revision(post, mode=mode, action="module.add", actor_id=actor_id)

        log_action(
            action="post_module.add",
            entity_type="post_module",
            entity_id=pm.id,
            payload={
                "post_id": post.id,
                "type": module_type,
                "scope": scope,
                "global_slug": global_slug,
                "mode": mode,
            },
            actor_id=actor_id,
        )

    return pm
