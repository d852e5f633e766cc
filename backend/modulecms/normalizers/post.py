from typing import Any, Dict, Optional

from modulecms.services import url_pattern_service
from modulecms.services.module_resolution import resolve_post_fields, resolve_post_modules


def _iso(value):
    return value.isoformat() if value else None


def normalize_post_summary(post) -> Dict[str, Any]:
    return {
        "id": post.id,
        "type": post.type,
        "locale": post.locale,
        "slug": post.slug,
        "title": post.title,
        "status": post.status,
        "parent_id": post.parent_id,
        "order_index": post.order_index,
        "translation_of_id": post.translation_of_id,
        "path": url_pattern_service.build_post_path(post),
        "has_review_draft": bool(post.review_draft),
        "has_ai_review_draft": bool(post.ai_review_draft),
        "published_at": _iso(post.published_at),
        "updated_at": _iso(post.updated_at),
        "deleted_at": _iso(post.deleted_at),
    }


def normalize_post(post, mode: str = "publish", locale: Optional[str] = None) -> Dict[str, Any]:
    """Editor view of a post in ``mode``: staged fields and modules resolved."""
    data = normalize_post_summary(post)
    data.update(resolve_post_fields(post, mode))
    data.update({
        "mode": mode,
        "module_group_id": post.module_group_id,
        "author_id": post.author_id,
        "scheduled_at": _iso(post.scheduled_at),
        "created_at": _iso(post.created_at),
        "review_draft": post.review_draft,
        "ai_review_draft": post.ai_review_draft,
        "translations": [
            {"id": member.id, "locale": member.locale, "status": member.status}
            for member in post.family()
            if member.id != post.id
        ],
        "modules": resolve_post_modules(post, mode, locale=locale),
    })
    return data


def normalize_post_module(pm) -> Dict[str, Any]:
    instance = pm.module_instance
    return {
        "id": pm.id,
        "post_id": pm.post_id,
        "module_instance_id": instance.id,
        "type": instance.type,
        "scope": "global" if instance.is_global else "local",
        "global_slug": instance.global_slug,
        "order_index": pm.order_index,
        "locked": bool(pm.locked),
        "admin_label": pm.admin_label,
        "props": instance.props or {},
        "overrides": pm.overrides,
        "review_props": instance.review_props,
        "review_overrides": pm.review_overrides,
        "ai_review_props": instance.ai_review_props,
        "ai_review_overrides": pm.ai_review_overrides,
        "review_added": bool(pm.review_added),
        "review_deleted": bool(pm.review_deleted),
        "ai_review_added": bool(pm.ai_review_added),
        "ai_review_deleted": bool(pm.ai_review_deleted),
    }


def normalize_revision(revision, with_snapshot=False) -> Dict[str, Any]:
    data = {
        "id": revision.id,
        "post_id": revision.post_id,
        "mode": revision.mode,
        "action": revision.action,
        "created_by": revision.created_by,
        "created_at": _iso(revision.created_at),
    }
    if with_snapshot:
        data["snapshot"] = revision.snapshot
    return data
