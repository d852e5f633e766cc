from typing import List

from modulecms.extensions import db
from modulecms.models.module_scope_restriction import ModuleScopeRestriction
from .module_registry import ModuleRegistryError, module_registry


class ModuleNotAllowedError(ValueError):
    pass


def is_allowed_for_post_type(module_type: str, post_type: str) -> bool:
    """
    A module is attachable when it is registered, its config admits the post
    type, and (if the post type has any restriction rows) it is listed there.
    """
    if not module_registry.has(module_type):
        return False

    cfg = module_registry.get(module_type).config
    if cfg.allowed_post_types and post_type not in cfg.allowed_post_types:
        return False

    restricted = ModuleScopeRestriction.query.filter_by(post_type=post_type).count() > 0
    if not restricted:
        return True

    return (
        ModuleScopeRestriction.query
        .filter_by(module_type=module_type, post_type=post_type)
        .first()
        is not None
    )


def allowed_types_for(post_type: str) -> List[str]:
    restricted = set(restrictions_for_post_type(post_type))
    return [
        cfg.type for cfg in module_registry.modules_for_post_type(post_type)
        if not restricted or cfg.type in restricted
    ]


def validate_attachment(module_type: str, post_type: str) -> None:
    if not is_allowed_for_post_type(module_type, post_type):
        raise ModuleNotAllowedError(
            f"Module type '{module_type}' is not allowed for post type '{post_type}'"
        )


def add_restriction(module_type: str, post_type: str) -> ModuleScopeRestriction:
    """Idempotent. Caller commits."""
    if not module_registry.has(module_type):
        raise ModuleRegistryError(f"Module type '{module_type}' is not registered")

    existing = ModuleScopeRestriction.query.filter_by(
        module_type=module_type, post_type=post_type
    ).first()
    if existing:
        return existing

    restriction = ModuleScopeRestriction()
    restriction.module_type = module_type
    restriction.post_type = post_type
    db.session.add(restriction)
    db.session.flush()
    return restriction


def remove_restriction(module_type: str, post_type: str) -> int:
    return ModuleScopeRestriction.query.filter_by(
        module_type=module_type, post_type=post_type
    ).delete()


def restrictions_for_post_type(post_type: str) -> List[str]:
    rows = ModuleScopeRestriction.query.filter_by(post_type=post_type).all()
    return [r.module_type for r in rows]
