from typing import Any, Dict, Optional

from sqlalchemy import select

from modulecms.application.exceptions import UpdatePostError
from modulecms.domain.invariants.post import assert_post
from modulecms.extensions import db
from modulecms.models.base import utcnow
from modulecms.models.post import Post
from modulecms.services import revision_service
from modulecms.services.webhook_service import webhook_service
from modulecms.utils.audit import log_action
from modulecms.utils.transaction import transactional


def _locked_post(post_id: str) -> Post:
    post = (
        db.session.execute(
            select(Post).where(Post.id == post_id).with_for_update()
        )
        .scalar_one_or_none()
    )
    if post is None:
        raise UpdatePostError("Post not found", 404, {"post_id": post_id})
    return post


def publish_post(
    *,
    post_id: str,
    actor_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Publish a post and snapshot it as a revision.

    Responsibilities:
    - row lock on the post
    - publish invariants
    - revision and audit logging
    """
    # 1️⃣ Fetch post with row-level lock
    post = _locked_post(post_id)

    with transactional():
        # 2️⃣ Apply state change
        post.status = "published"
        post.published_at = post.published_at or utcnow()

        # 3️⃣ Enforce publish-specific invariants
        assert_post(post, publish=True)

        # 4️⃣ Revision snapshot
        revision = revision_service.record_revision(
            post, mode="publish", action="post.publish", actor_id=actor_id
        )

        # 5️⃣ Audit logging
        log_action(
            action="post.publish",
            entity_type="post",
            entity_id=post.id,
            payload={"revision_id": revision.id},
            actor_id=actor_id,
        )

    webhook_service.dispatch("post.published", {"id": post.id, "slug": post.slug, "locale": post.locale})
    return {"post_id": post.id, "status": post.status, "revision_id": revision.id}


def unpublish_post(
    *,
    post_id: str,
    actor_id: Optional[str] = None,
) -> Post:
    post = _locked_post(post_id)

    with transactional():
        post.status = "draft"

        log_action(
            action="post.unpublish",
            entity_type="post",
            entity_id=post.id,
            payload={},
            actor_id=actor_id,
        )

    webhook_service.dispatch("post.unpublished", {"id": post.id, "slug": post.slug})
    return post


def archive_post(
    *,
    post_id: str,
    actor_id: Optional[str] = None,
) -> Post:
    post = _locked_post(post_id)

    with transactional():
        was_published = post.status == "published"
        post.status = "archived"

        log_action(
            action="post.archive",
            entity_type="post",
            entity_id=post.id,
            payload={},
            actor_id=actor_id,
        )

    if was_published:
        webhook_service.dispatch("post.unpublished", {"id": post.id, "slug": post.slug})
    return post
