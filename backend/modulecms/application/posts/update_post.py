from typing import Any, Dict, Optional

from modulecms.application.exceptions import UpdatePostError
from modulecms.domain.invariants.post import assert_post
from modulecms.extensions import db
from modulecms.models.base import utcnow
from modulecms.models.post import Post
from modulecms.services import revision_service, url_pattern_service
from modulecms.services.module_resolution import STAGED_POST_FIELDS, assert_mode
from modulecms.services.webhook_service import webhook_service
from modulecms.utils.audit import log_action
from modulecms.utils.transaction import transactional

UPDATABLE_FIELDS = STAGED_POST_FIELDS + ("status", "parent_id", "scheduled_at")

_DRAFT_COLUMN = {"review": "review_draft", "ai-review": "ai_review_draft"}


def ensure_slug_available(post: Post, slug: str) -> None:
    clash = Post.query.filter(
        Post.slug == slug,
        Post.locale == post.locale,
        Post.id != post.id,
    ).first()
    if clash:
        raise UpdatePostError(
            "A post with this slug already exists for this locale",
            409,
            {"slug": slug, "locale": post.locale},
        )


def stage_post_fields(post: Post, mode: str, data: Dict[str, Any]) -> Dict[str, Any]:
    """Merge staged post fields into the draft column of ``mode``. Caller commits."""
    column = _DRAFT_COLUMN[mode]
    staged = {key: data[key] for key in STAGED_POST_FIELDS if key in data}
    if "slug" in staged and staged["slug"] != post.slug:
        ensure_slug_available(post, staged["slug"])
    draft = {**(getattr(post, column) or {}), **staged}
    # JSON columns are reassigned so the change is tracked
    setattr(post, column, draft)
    return draft


def update_post(
    *,
    post_id: str,
    data: Dict[str, Any],
    mode: str = "publish",
    actor_id: Optional[str] = None,
) -> Post:
    """
    Update post fields.

    ``publish`` writes the columns; ``review`` and ``ai-review`` stage the
    fields in the matching draft instead. A live slug change leaves a 301
    redirect from the old path.
    """
    assert_mode(mode)
    post = db.session.get(Post, post_id)
    if post is None:
        raise UpdatePostError("Post not found", 404, {"post_id": post_id})

    if mode != "publish":
        with transactional():
            draft = stage_post_fields(post, mode, data)
            revision_service.record_revision(post, mode=mode, action="post.save", actor_id=actor_id)
            log_action(
                action=f"post.{mode}.save",
                entity_type="post",
                entity_id=post.id,
                payload={"fields": sorted(draft.keys())},
                actor_id=actor_id,
            )
        return post

    changed = []
    old_status = post.status
    old_path = None

    with transactional():
        slug_changed = bool(data.get("slug")) and data["slug"] != post.slug
        if slug_changed:
            ensure_slug_available(post, data["slug"])
        if slug_changed or ("parent_id" in data and data["parent_id"] != post.parent_id):
            old_path = url_pattern_service.build_post_path(post)

        if "parent_id" in data and data["parent_id"]:
            assert_valid_parent(post, data["parent_id"])

        for field in UPDATABLE_FIELDS:
            if field in data and getattr(post, field) != data[field]:
                setattr(post, field, data[field])
                changed.append(field)

        if post.status == "published" and old_status != "published":
            post.published_at = utcnow()

        if old_path is not None:
            new_path = url_pattern_service.build_post_path(post)
            url_pattern_service.record_redirect(old_path, new_path, post.locale)
            if "canonical_url" not in data:
                post.canonical_url = new_path

        assert_post(post, publish=post.status == "published")

        if changed:
            revision_service.record_revision(post, mode="publish", action="post.update", actor_id=actor_id)
            log_action(
                action="post.update",
                entity_type="post",
                entity_id=post.id,
                payload={"fields": changed},
                actor_id=actor_id,
            )

    if changed:
        webhook_service.dispatch("post.updated", {"id": post.id, "fields": changed})
        if post.status == "published" and old_status != "published":
            webhook_service.dispatch("post.published", {"id": post.id, "slug": post.slug})
        elif old_status == "published" and post.status != "published":
            webhook_service.dispatch("post.unpublished", {"id": post.id, "slug": post.slug})
    return post


def assert_valid_parent(post: Post, parent_id: str) -> None:
    parent = db.session.get(Post, parent_id)
    if parent is None:
        raise UpdatePostError("Parent post not found", 400, {"parent_id": parent_id})
    if parent.type != post.type or parent.locale != post.locale:
        raise UpdatePostError("Parent must share the post's type and locale", 400)

    seen = set()
    current = parent
    while current is not None:
        if current.id == post.id:
            raise UpdatePostError("Parent assignment would create a cycle", 400)
        if current.id in seen or not current.parent_id:
            break
        seen.add(current.id)
        current = db.session.get(Post, current.parent_id)
