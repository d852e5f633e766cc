import logging
from typing import Any, Dict, List, Optional

from flask import current_app

from modulecms.extensions import db
from modulecms.models.post import Post
from modulecms.models.post_revision import PostRevision
from modulecms.utils.jsonb import coerce_json_object
from .module_resolution import is_visible, resolve_post_fields, STAGED_POST_FIELDS

logger = logging.getLogger(__name__)

_CAMEL = {
    "title": "title",
    "slug": "slug",
    "excerpt": "excerpt",
    "meta_title": "metaTitle",
    "meta_description": "metaDescription",
    "canonical_url": "canonicalUrl",
    "robots_json": "robotsJson",
    "jsonld_overrides": "jsonldOverrides",
}


def build_snapshot(post: Post, mode: str = "publish") -> Dict[str, Any]:
    """
    Canonical-format snapshot of ``post`` as seen in ``mode``: staged fields,
    staged props and staged overrides replace the live values when present.
    """
    fields = resolve_post_fields(post, mode)
    staged_props = {"review": "review_props", "ai-review": "ai_review_props"}.get(mode)
    staged_overrides = {"review": "review_overrides", "ai-review": "ai_review_overrides"}.get(mode)

    modules = []
    for pm in sorted(post.post_modules, key=lambda row: row.order_index):
        if not is_visible(pm, mode):
            continue
        instance = pm.module_instance
        props = coerce_json_object(instance.props)
        overrides = pm.overrides
        if staged_props and instance.is_local:
            props = coerce_json_object(getattr(instance, staged_props)) or props
        if staged_overrides and instance.is_global:
            overrides = getattr(pm, staged_overrides) or overrides
        modules.append({
            "type": instance.type,
            "scope": "global" if instance.is_global else "local",
            "orderIndex": pm.order_index,
            "locked": bool(pm.locked),
            "props": props,
            "overrides": overrides,
            "globalSlug": instance.global_slug,
        })

    post_fields = {_CAMEL[name]: fields[name] for name in STAGED_POST_FIELDS}
    post_fields.update({"type": post.type, "locale": post.locale, "status": post.status})
    return {"version": 1, "post": post_fields, "modules": modules, "translations": []}


def record_revision(
    post: Post,
    *,
    mode: str,
    action: str,
    actor_id: Optional[str] = None,
) -> PostRevision:
    """Add a snapshot row and prune old ones. Caller commits."""
    db.session.flush()
    revision = PostRevision()
    revision.post_id = post.id
    revision.mode = mode
    revision.action = action
    revision.snapshot = build_snapshot(post, mode)
    revision.created_by = actor_id
    db.session.add(revision)
    db.session.flush()
    prune(post.id)
    return revision


def prune(post_id: str, limit: Optional[int] = None) -> int:
    limit = limit if limit is not None else current_app.config.get("REVISIONS_LIMIT", 20)
    stale = (
        PostRevision.query
        .filter_by(post_id=post_id)
        .order_by(PostRevision.created_at.desc(), PostRevision.id.desc())
        .offset(limit)
        .all()
    )
    for revision in stale:
        db.session.delete(revision)
    if stale:
        logger.debug("Pruned %d revisions for post %s", len(stale), post_id)
    return len(stale)


def list_revisions(post_id: str) -> List[PostRevision]:
    return (
        PostRevision.query
        .filter_by(post_id=post_id)
        .order_by(PostRevision.created_at.desc(), PostRevision.id.desc())
        .all()
    )
