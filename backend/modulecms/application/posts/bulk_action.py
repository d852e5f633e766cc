from typing import Any, Dict, List, Optional

from modulecms.application.exceptions import BulkActionError
from modulecms.domain.invariants.post import assert_post
from modulecms.extensions import db
from modulecms.models.base import utcnow
from modulecms.models.post import Post
from modulecms.services.webhook_service import webhook_service
from modulecms.utils.audit import log_action
from modulecms.utils.transaction import transactional
from .delete_post import assert_purgeable, purge_post

BULK_ACTION_STATUS = {
    "publish": "published",
    "draft": "draft",
    "archive": "archived",
}

# permission a caller needs for each bulk action
BULK_ACTION_PERMISSIONS = {
    "publish": "posts.publish",
    "draft": "posts.edit",
    "archive": "posts.archive",
    "delete": "posts.delete",
}


def bulk_action(
    *,
    action: str,
    ids: List[str],
    actor_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Apply one status change (or permanent deletion) to many posts.

    Deletion requires every post to be archived; nothing is deleted otherwise.
    """
    if action not in BULK_ACTION_PERMISSIONS:
        raise BulkActionError(f"Invalid action: {action}", 400)

    unique_ids = list(dict.fromkeys(str(i) for i in ids or []))
    if not unique_ids:
        raise BulkActionError("ids must be a non-empty list", 400)

    posts = Post.query.filter(Post.id.in_(unique_ids)).all()

    if action == "delete":
        not_archived = [p for p in posts if p.status != "archived"]
        if not_archived:
            raise BulkActionError(
                "Only archived posts can be deleted",
                400,
                {"not_archived": [{"id": p.id, "status": p.status} for p in not_archived]},
            )
        deleting_ids = {p.id for p in posts}
        for post in posts:
            assert_purgeable(post, deleting_ids)

        summaries = [
            {"id": p.id, "type": p.type, "slug": p.slug, "locale": p.locale}
            for p in posts
        ]
        with transactional():
            # translations before their roots
            for post in sorted(posts, key=lambda p: not p.is_translation()):
                purge_post(post)
                db.session.flush()
            log_action(
                action="post.bulk_delete",
                entity_type="post",
                entity_id="*",
                payload={"count": len(posts), "ids": [s["id"] for s in summaries]},
                actor_id=actor_id,
            )

        for summary in summaries:
            webhook_service.dispatch("post.deleted", {"soft": False, **summary})
        return {"message": "Deleted archived posts", "count": len(posts)}

    next_status = BULK_ACTION_STATUS[action]
    with transactional():
        for post in posts:
            if next_status == "published" and post.status != "published":
                post.published_at = utcnow()
            post.status = next_status
            if next_status == "published":
                assert_post(post, publish=True)

        # Audit once per batch
        log_action(
            action=f"post.bulk_{action}",
            entity_type="post",
            entity_id="*",
            payload={"count": len(posts), "ids": [p.id for p in posts]},
            actor_id=actor_id,
        )

    if next_status == "published":
        for post in posts:
            webhook_service.dispatch("post.published", {"id": post.id, "slug": post.slug})

    return {"message": f"Updated status to {next_status}", "count": len(posts)}
