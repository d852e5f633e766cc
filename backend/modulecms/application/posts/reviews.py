from typing import Any, Dict, Optional

from modulecms.application.exceptions import ReviewError, UpdatePostError
from modulecms.application.modules.delete_post_module import remove_post_module_row
from modulecms.domain.invariants.post import assert_post
from modulecms.extensions import db
from modulecms.models.agent_execution import AgentExecution
from modulecms.models.post import Post
from modulecms.models.post_module import PostModule
from modulecms.services import revision_service, url_pattern_service
from modulecms.services.module_resolution import STAGED_POST_FIELDS
from modulecms.utils.audit import log_action
from modulecms.utils.jsonb import coerce_json_object
from modulecms.utils.order import compact_order
from modulecms.utils.transaction import transactional
from .update_post import ensure_slug_available

STAGED_MODES = ("review", "ai-review")

STAGING_COLUMNS = {
    "review": {
        "draft": "review_draft",
        "props": "review_props",
        "overrides": "review_overrides",
        "added": "review_added",
        "deleted": "review_deleted",
    },
    "ai-review": {
        "draft": "ai_review_draft",
        "props": "ai_review_props",
        "overrides": "ai_review_overrides",
        "added": "ai_review_added",
        "deleted": "ai_review_deleted",
    },
}


def _get_post(post_id: str) -> Post:
    post = db.session.get(Post, post_id)
    if post is None:
        raise ReviewError("Post not found", 404, {"post_id": post_id})
    return post


def _apply_draft_to_columns(post: Post, draft: Dict[str, Any]) -> list:
    """Copy staged post fields onto the live columns. Caller commits."""
    changed = []
    new_slug = draft.get("slug")
    old_path = None
    if new_slug and new_slug != post.slug:
        try:
            ensure_slug_available(post, new_slug)
        except UpdatePostError as exc:
            raise ReviewError(exc.message, exc.status_code, exc.meta) from exc
        old_path = url_pattern_service.build_post_path(post)

    for field in STAGED_POST_FIELDS:
        if field in draft and draft[field] is not None and getattr(post, field) != draft[field]:
            setattr(post, field, draft[field])
            changed.append(field)

    if old_path is not None:
        new_path = url_pattern_service.build_post_path(post)
        url_pattern_service.record_redirect(old_path, new_path, post.locale)
        if "canonical_url" not in draft:
            post.canonical_url = new_path
    return changed


def _promote_modules_to_live(post: Post, mode: str) -> int:
    cols = STAGING_COLUMNS[mode]
    removed = 0
    for pm in list(post.post_modules):
        if getattr(pm, cols["deleted"]):
            remove_post_module_row(pm)
            removed += 1
            continue

        instance = pm.module_instance
        if instance.is_local:
            staged = coerce_json_object(getattr(instance, cols["props"]))
            if staged:
                instance.props = {**coerce_json_object(instance.props), **staged}
            setattr(instance, cols["props"], None)
        else:
            staged_overrides = getattr(pm, cols["overrides"])
            if staged_overrides is not None:
                pm.overrides = staged_overrides
        setattr(pm, cols["overrides"], None)
        setattr(pm, cols["added"], False)

    db.session.flush()
    if removed:
        compact_order(PostModule.query.filter_by(post_id=post.id), PostModule)
    db.session.expire(post, ["post_modules"])
    return removed


def _approve(post_id: str, mode: str, actor_id: Optional[str]) -> Post:
    post = _get_post(post_id)
    cols = STAGING_COLUMNS[mode]

    with transactional():
        revision_service.record_revision(post, mode=mode, action=f"{mode}.approve.before", actor_id=actor_id)

        draft = coerce_json_object(getattr(post, cols["draft"]))
        changed = _apply_draft_to_columns(post, draft)
        setattr(post, cols["draft"], None)

        removed = _promote_modules_to_live(post, mode)
        assert_post(post, publish=post.status == "published")

        revision_service.record_revision(post, mode="publish", action=f"{mode}.approve", actor_id=actor_id)
        log_action(
            action=f"post.{mode}.approve",
            entity_type="post",
            entity_id=post.id,
            payload={"fields": changed, "removed_modules": removed},
            actor_id=actor_id,
        )
    return post


def approve_review(*, post_id: str, actor_id: Optional[str] = None) -> Post:
    """Promote the review draft (fields and modules) to the live post."""
    return _approve(post_id, "review", actor_id)


def approve_ai_review(*, post_id: str, actor_id: Optional[str] = None) -> Post:
    """Promote the AI review draft straight to the live post."""
    return _approve(post_id, "ai-review", actor_id)


def promote_ai_review_to_review(*, post_id: str, actor_id: Optional[str] = None) -> Post:
    """
    Move AI review content into the review layer so a human can approve it.
    The AI review layer is cleared afterwards.
    """
    post = _get_post(post_id)

    with transactional():
        post.review_draft = {
            **coerce_json_object(post.review_draft),
            **coerce_json_object(post.ai_review_draft),
        }
        post.ai_review_draft = None

        for pm in list(post.post_modules):
            if pm.ai_review_deleted:
                if pm.ai_review_added or pm.review_added:
                    remove_post_module_row(pm)
                    continue
                pm.review_deleted = True
                pm.ai_review_deleted = False

            instance = pm.module_instance
            if instance.is_local:
                staged = coerce_json_object(instance.ai_review_props)
                if staged:
                    instance.review_props = staged
                instance.ai_review_props = None
            elif pm.ai_review_overrides is not None:
                pm.review_overrides = pm.ai_review_overrides

            pm.ai_review_overrides = None
            if pm.ai_review_added:
                pm.ai_review_added = False
                pm.review_added = True

        db.session.flush()
        db.session.expire(post, ["post_modules"])
        AgentExecution.query.filter_by(post_id=post.id, view_mode="ai-review").update({"view_mode": "review"})

        revision_service.record_revision(
            post, mode="review", action="ai-review.promote", actor_id=actor_id
        )
        log_action(
            action="post.ai-review.promote",
            entity_type="post",
            entity_id=post.id,
            payload={},
            actor_id=actor_id,
        )
    return post


def reject_review_draft(*, post_id: str, mode: str, actor_id: Optional[str] = None) -> Post:
    """Discard everything staged in ``mode``: draft fields, staged props and overrides, added rows."""
    if mode not in STAGED_MODES:
        raise ReviewError(f"Cannot reject mode '{mode}'", 400, {"mode": mode})
    post = _get_post(post_id)
    cols = STAGING_COLUMNS[mode]

    with transactional():
        revision_service.record_revision(post, mode=mode, action=f"{mode}.reject", actor_id=actor_id)

        setattr(post, cols["draft"], None)
        dropped = 0
        for pm in list(post.post_modules):
            if getattr(pm, cols["added"]):
                remove_post_module_row(pm)
                dropped += 1
                continue
            setattr(pm, cols["overrides"], None)
            setattr(pm, cols["deleted"], False)
            if pm.module_instance.is_local:
                setattr(pm.module_instance, cols["props"], None)

        db.session.flush()
        if dropped:
            compact_order(PostModule.query.filter_by(post_id=post.id), PostModule)
        db.session.expire(post, ["post_modules"])

        log_action(
            action=f"post.{mode}.reject",
            entity_type="post",
            entity_id=post.id,
            payload={"dropped_modules": dropped},
            actor_id=actor_id,
        )
    return post
