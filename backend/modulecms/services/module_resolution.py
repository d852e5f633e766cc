from typing import Any, Dict, List, Optional

from modulecms.utils.jsonb import coerce_json_object, shallow_merge
from .module_registry import module_registry

VIEW_MODES = ("publish", "review", "ai-review")

# post columns that review and ai-review drafts may stage
STAGED_POST_FIELDS = (
    "title",
    "slug",
    "excerpt",
    "meta_title",
    "meta_description",
    "canonical_url",
    "robots_json",
    "jsonld_overrides",
)

# staged column names per view mode
_STAGING = {
    "review": ("review_props", "review_overrides", "review_added", "review_deleted"),
    "ai-review": ("ai_review_props", "ai_review_overrides", "ai_review_added", "ai_review_deleted"),
}


def assert_mode(mode: str) -> str:
    if mode not in VIEW_MODES:
        raise ValueError(f"Unknown view mode '{mode}'")
    return mode


def _defaults_for(module_type: str) -> Dict[str, Any]:
    if module_registry.has(module_type):
        return module_registry.get(module_type).default_props()
    return {}


def resolve_props(post_module, mode: str = "publish") -> Dict[str, Any]:
    """
    Effective props of a post module for a view mode.

    publish: defaults + props + overrides. Staged modes swap in the staged
    props (local modules) or the staged overrides (global modules) when set.
    """
    assert_mode(mode)
    instance = post_module.module_instance
    defaults = _defaults_for(instance.type)
    props = coerce_json_object(instance.props)
    overrides = coerce_json_object(post_module.overrides)

    if mode == "publish":
        return shallow_merge(defaults, props, overrides)

    props_col, overrides_col, _, _ = _STAGING[mode]
    if instance.is_global:
        staged_overrides = coerce_json_object(getattr(post_module, overrides_col))
        return shallow_merge(defaults, props, staged_overrides or overrides)

    staged_props = coerce_json_object(getattr(instance, props_col))
    return shallow_merge(defaults, staged_props or props, overrides)


def is_visible(post_module, mode: str = "publish") -> bool:
    if mode == "publish":
        return not post_module.review_added and not post_module.ai_review_added
    _, _, _, deleted_col = _STAGING[mode]
    return not getattr(post_module, deleted_col)


def has_ai_review_content(post_modules) -> bool:
    for pm in post_modules:
        if pm.ai_review_overrides or pm.module_instance.ai_review_props or pm.ai_review_added:
            return True
    return False


def has_approved_modules(post_modules) -> bool:
    return any(
        not (pm.review_added or pm.ai_review_added or pm.review_deleted or pm.ai_review_deleted)
        for pm in post_modules
    )


def effective_mode(post, requested: str = "publish") -> str:
    """Public views fall back to ai-review when nothing approved exists yet."""
    if requested != "publish":
        return requested
    modules = list(post.post_modules)
    if not has_approved_modules(modules) and has_ai_review_content(modules):
        return "ai-review"
    return "publish"


def resolve_post_modules(
    post,
    mode: str = "publish",
    *,
    locale: Optional[str] = None,
    fallback_locale: str = "en",
) -> List[Dict[str, Any]]:
    assert_mode(mode)
    resolved = []
    for pm in sorted(post.post_modules, key=lambda row: row.order_index):
        if not is_visible(pm, mode):
            continue
        instance = pm.module_instance
        props = resolve_props(pm, mode)
        if locale and module_registry.has(instance.type):
            props = module_registry.get(instance.type).localize_props(props, locale, fallback_locale)
        rendering_mode = (
            module_registry.get(instance.type).rendering_mode
            if module_registry.has(instance.type) else "static"
        )
        resolved.append({
            "id": pm.id,
            "moduleInstanceId": instance.id,
            "type": instance.type,
            "scope": "global" if instance.is_global else "local",
            "globalSlug": instance.global_slug,
            "orderIndex": pm.order_index,
            "locked": pm.locked,
            "adminLabel": pm.admin_label,
            "renderingMode": rendering_mode,
            "props": props,
        })
    return resolved


def resolve_post_fields(post, mode: str = "publish") -> Dict[str, Any]:
    """Post-level fields with the staged draft of ``mode`` laid over the columns."""
    fields = {name: getattr(post, name) for name in STAGED_POST_FIELDS}
    draft = None
    if mode == "review":
        draft = post.review_draft
    elif mode == "ai-review":
        draft = post.ai_review_draft
    for key, value in coerce_json_object(draft).items():
        if key in fields and value is not None:
            fields[key] = value
    return fields
