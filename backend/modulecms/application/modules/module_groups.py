from typing import Any, Dict, List, Optional

from modulecms.application.exceptions import ModuleGroupError
from modulecms.extensions import db
from modulecms.models.module_group import ModuleGroup, ModuleGroupModule
from modulecms.models.post import Post
from modulecms.services.module_registry import module_registry
from modulecms.services.post_type_registry import post_type_registry
from modulecms.utils.audit import log_action
from modulecms.utils.order import compact_order
from modulecms.utils.transaction import transactional

_SCOPE_ALIASES = {"local": "post", "post": "post", "global": "global", "static": "static"}


def _normalize_scope(scope: Optional[str]) -> str:
    try:
        return _SCOPE_ALIASES[scope or "local"]
    except KeyError:
        raise ModuleGroupError(f"Unknown module scope '{scope}'", 400) from None


def _build_group_module(group: ModuleGroup, entry: Dict[str, Any], order_index: int) -> ModuleGroupModule:
    module_type = entry.get("type")
    if not module_type or not module_registry.has(module_type):
        raise ModuleGroupError(f"Module type '{module_type}' is not registered", 400)

    scope = _normalize_scope(entry.get("scope"))
    global_slug = entry.get("global_slug")
    if scope == "global" and not global_slug:
        raise ModuleGroupError("Global group modules require a global_slug", 400)

    row = ModuleGroupModule()
    row.module_group_id = group.id
    row.type = module_type
    row.scope = scope
    row.global_slug = global_slug if scope == "global" else None
    row.default_props = dict(entry.get("default_props") or {})
    row.order_index = order_index
    row.locked = bool(entry.get("locked", False))
    return row


def ensure_default_module_group(post_type: str) -> Optional[ModuleGroup]:
    """
    Materialise the module group declared by a post type config when no row
    with that name exists yet. Caller commits.
    """
    cfg = post_type_registry.get(post_type) or {}
    declared = cfg.get("module_group")
    if not declared:
        return None

    name = post_type_registry.default_group_name(post_type)
    group = ModuleGroup.query.filter_by(post_type=post_type, name=name).first()
    if group:
        return group

    group = ModuleGroup()
    group.name = name
    group.post_type = post_type
    group.description = declared.get("description")
    db.session.add(group)
    db.session.flush()

    for index, entry in enumerate(declared.get("modules") or []):
        if not module_registry.has(entry.get("type")):
            continue
        db.session.add(_build_group_module(group, entry, index))
    db.session.flush()
    return group


def resolve_module_group(post_type: str, module_group_id: Optional[str] = None) -> Optional[ModuleGroup]:
    """Explicit id, then the post type's default group name, then the only group for the type."""
    if module_group_id:
        group = db.session.get(ModuleGroup, module_group_id)
        if group is None:
            raise ModuleGroupError("Module group not found", 404, {"module_group_id": module_group_id})
        if group.post_type != post_type:
            raise ModuleGroupError(
                "Module group belongs to another post type",
                400,
                {"module_group_id": module_group_id, "post_type": group.post_type},
            )
        return group

    group = ensure_default_module_group(post_type)
    if group:
        return group

    candidates = ModuleGroup.query.filter_by(post_type=post_type).all()
    if len(candidates) == 1:
        return candidates[0]
    return None


def create_module_group(
    *,
    name: str,
    post_type: str,
    description: Optional[str] = None,
    modules: Optional[List[Dict[str, Any]]] = None,
) -> ModuleGroup:
    if not name or not post_type:
        raise ModuleGroupError("name and post_type are required", 400)
    if not post_type_registry.has(post_type):
        raise ModuleGroupError(f"Unknown post type '{post_type}'", 400)
    if ModuleGroup.query.filter_by(post_type=post_type, name=name).first():
        raise ModuleGroupError("A module group with this name already exists", 409, {"name": name})

    group = ModuleGroup()
    group.name = name
    group.post_type = post_type
    group.description = description

    with transactional():
        db.session.add(group)
        db.session.flush()
        for index, entry in enumerate(modules or []):
            db.session.add(_build_group_module(group, entry, entry.get("order_index", index)))

        log_action(
            action="module_group.create",
            entity_type="module_group",
            entity_id=group.id,
            payload={"name": name, "post_type": post_type},
        )

    return group


def update_module_group(
    *,
    group_id: str,
    data: Dict[str, Any],
) -> ModuleGroup:
    """Rename/describe a group; a ``modules`` list replaces its module rows."""
    group = db.session.get(ModuleGroup, group_id)
    if group is None:
        raise ModuleGroupError("Module group not found", 404)

    with transactional():
        if "name" in data and data["name"] != group.name:
            clash = ModuleGroup.query.filter(
                ModuleGroup.post_type == group.post_type,
                ModuleGroup.name == data["name"],
                ModuleGroup.id != group.id,
            ).first()
            if clash:
                raise ModuleGroupError("A module group with this name already exists", 409)
            group.name = data["name"]
        if "description" in data:
            group.description = data["description"]
        if "locked" in data:
            group.locked = bool(data["locked"])

        if "modules" in data:
            group.modules.clear()
            db.session.flush()
            for index, entry in enumerate(data["modules"] or []):
                group.modules.append(_build_group_module(group, entry, entry.get("order_index", index)))
            db.session.flush()
            compact_order(
                ModuleGroupModule.query.filter_by(module_group_id=group.id),
                ModuleGroupModule,
            )

        log_action(
            action="module_group.update",
            entity_type="module_group",
            entity_id=group.id,
            payload={"fields": sorted(data.keys())},
        )

    db.session.refresh(group)
    return group


def delete_module_group(*, group_id: str) -> None:
    group = db.session.get(ModuleGroup, group_id)
    if group is None:
        raise ModuleGroupError("Module group not found", 404)

    with transactional():
        # posts keep their modules; they only lose the group link
        Post.query.filter_by(module_group_id=group.id).update({"module_group_id": None})
        db.session.delete(group)
        log_action(
            action="module_group.delete",
            entity_type="module_group",
            entity_id=group_id,
            payload={"name": group.name},
        )
