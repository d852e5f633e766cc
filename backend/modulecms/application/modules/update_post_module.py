from typing import Any, Dict, Optional

from modulecms.application.exceptions import UpdatePostModuleError
from modulecms.domain.invariants.module import assert_post_module
from modulecms.extensions import db
from modulecms.models.post_module import PostModule
from modulecms.services import revision_service
from modulecms.services.module_resolution import assert_mode
from modulecms.utils.audit import log_action
from modulecms.utils.jsonb import coerce_json_object, deep_merge
from modulecms.utils.transaction import transactional

_UNSET = object()


def staged_base_props(instance, mode: str) -> Dict[str, Any]:
    """Props an edit in ``mode`` starts from: the newest staged layer, else live props."""
    props = coerce_json_object(instance.props)
    review = coerce_json_object(instance.review_props)
    ai_review = coerce_json_object(instance.ai_review_props)
    if mode == "ai-review":
        return ai_review or review or props
    if mode == "review":
        return review or props
    return props


def apply_module_edit(pm: PostModule, edit: Optional[Dict[str, Any]], mode: str) -> None:
    """
    Write an edit in ``mode``. Local modules merge it into (staged) props;
    global modules store it as the row's (staged) overrides. Caller commits.
    """
    instance = pm.module_instance
    if instance.is_local:
        merged = deep_merge(staged_base_props(instance, mode), edit or {})
        if mode == "ai-review":
            instance.ai_review_props = merged
            pm.ai_review_overrides = None
        elif mode == "review":
            instance.review_props = merged
            pm.review_overrides = None
        else:
            instance.props = merged
            pm.overrides = None
        return

    if mode == "ai-review":
        pm.ai_review_overrides = edit
    elif mode == "review":
        pm.review_overrides = edit
    else:
        pm.overrides = edit


def update_post_module(
    *,
    post_module_id: str,
    overrides: Any = _UNSET,
    order_index: Any = _UNSET,
    locked: Any = _UNSET,
    admin_label: Any = _UNSET,
    mode: str = "publish",
    actor_id: Optional[str] = None,
) -> PostModule:
    """
    Edit one post module. Order and label changes only apply in ``publish``
    mode; locked modules cannot be reordered.
    """
    assert_mode(mode)
    pm = db.session.get(PostModule, post_module_id)
    if pm is None:
        raise UpdatePostModuleError("Post module not found", 404, {"post_module_id": post_module_id})

    if order_index is not _UNSET and pm.locked:
        raise UpdatePostModuleError("Cannot reorder a locked module", 400, {"post_module_id": post_module_id})

    if overrides is not _UNSET and overrides is not None and not isinstance(overrides, dict):
        raise UpdatePostModuleError("overrides must be an object", 400)

    changed = []
    with transactional():
        if order_index is not _UNSET and mode == "publish":
            pm.order_index = order_index
            changed.append("order_index")

        if admin_label is not _UNSET and mode == "publish":
            pm.admin_label = admin_label
            changed.append("admin_label")

        if overrides is not _UNSET:
            apply_module_edit(pm, overrides, mode)
            changed.append("props" if pm.module_instance.is_local else "overrides")

        if locked is not _UNSET:
            pm.locked = bool(locked)
            changed.append("locked")

        assert_post_module(pm)
        revision_service.record_revision(pm.post, mode=mode, action="module.update", actor_id=actor_id)

        log_action(
            action="post_module.update",
            entity_type="post_module",
            entity_id=pm.id,
            payload={"post_id": pm.post_id, "fields": changed, "mode": mode},
            actor_id=actor_id,
        )

    return pm
