from typing import Any, Dict, List, Optional

from sqlalchemy import func

from modulecms.application.exceptions import GlobalModuleError
from modulecms.domain.invariants.module import assert_module_instance
from modulecms.extensions import db
from modulecms.models.module_instance import ModuleInstance
from modulecms.models.post_module import PostModule
from modulecms.services.module_registry import module_registry
from modulecms.utils.audit import log_action
from modulecms.utils.jsonb import deep_merge
from modulecms.utils.slugs import is_valid_slug
from modulecms.utils.transaction import transactional


def usage_counts(instance_ids: List[str]) -> Dict[str, int]:
    if not instance_ids:
        return {}
    rows = (
        db.session.query(PostModule.module_id, func.count(PostModule.id))
        .filter(PostModule.module_id.in_(instance_ids))
        .group_by(PostModule.module_id)
        .all()
    )
    return {module_id: count for module_id, count in rows}


def list_global_modules(module_type: Optional[str] = None) -> List[Dict[str, Any]]:
    query = ModuleInstance.query.filter_by(scope="global")
    if module_type:
        query = query.filter_by(type=module_type)
    instances = query.order_by(ModuleInstance.global_slug.asc()).all()
    counts = usage_counts([m.id for m in instances])
    return [{"instance": m, "usage_count": counts.get(m.id, 0)} for m in instances]


def _get_global(instance_id: str) -> ModuleInstance:
    instance = db.session.get(ModuleInstance, instance_id)
    if instance is None or not instance.is_global:
        raise GlobalModuleError("Global module not found", 404, {"id": instance_id})
    return instance


def create_global_module(
    *,
    module_type: str,
    global_slug: str,
    props: Optional[Dict[str, Any]] = None,
    global_label: Optional[str] = None,
    actor_id: Optional[str] = None,
) -> ModuleInstance:
    if not module_registry.has(module_type):
        raise GlobalModuleError(f"Module type '{module_type}' is not registered", 400)
    if not is_valid_slug(global_slug or ""):
        raise GlobalModuleError("global_slug must be a lowercase slug", 400, {"global_slug": global_slug})
    if ModuleInstance.query.filter_by(global_slug=global_slug).first():
        raise GlobalModuleError("A global module with this slug already exists", 409, {"global_slug": global_slug})

    module = module_registry.get(module_type)
    instance = ModuleInstance()
    instance.scope = "global"
    instance.type = module_type
    instance.global_slug = global_slug
    instance.global_label = global_label
    instance.props = props if props else module.default_props()
    module.validate(instance.props)

    with transactional():
        assert_module_instance(instance)
        db.session.add(instance)
        db.session.flush()
        log_action(
            action="global_module.create",
            entity_type="module_instance",
            entity_id=instance.id,
            payload={"type": module_type, "global_slug": global_slug},
            actor_id=actor_id,
        )
    return instance


def update_global_module(
    *,
    instance_id: str,
    props: Optional[Dict[str, Any]] = None,
    global_label: Any = None,
    actor_id: Optional[str] = None,
) -> ModuleInstance:
    """Deep-merge ``props`` into the shared props; every post using the module sees the change."""
    instance = _get_global(instance_id)

    with transactional():
        if props is not None:
            if not isinstance(props, dict):
                raise GlobalModuleError("props must be an object", 400)
            instance.props = deep_merge(instance.props, props)
        if global_label is not None:
            instance.global_label = global_label
        assert_module_instance(instance)
        log_action(
            action="global_module.update",
            entity_type="module_instance",
            entity_id=instance.id,
            payload={"global_slug": instance.global_slug},
            actor_id=actor_id,
        )
    return instance


def delete_global_module(*, instance_id: str, actor_id: Optional[str] = None) -> None:
    instance = _get_global(instance_id)
    in_use = PostModule.query.filter_by(module_id=instance.id).count()
    if in_use:
        raise GlobalModuleError(
            "Global module is still referenced by posts",
            409,
            {"global_slug": instance.global_slug, "usage_count": in_use},
        )

    with transactional():
        db.session.delete(instance)
        log_action(
            action="global_module.delete",
            entity_type="module_instance",
            entity_id=instance_id,
            payload={"global_slug": instance.global_slug},
            actor_id=actor_id,
        )
