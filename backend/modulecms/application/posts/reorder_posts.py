from typing import Any, Dict, List, Optional

from modulecms.application.exceptions import ReorderPostsError, UpdatePostError
from modulecms.extensions import db
from modulecms.models.post import Post
from modulecms.utils.audit import log_action
from modulecms.utils.transaction import transactional
from .update_post import assert_valid_parent


def reorder_posts(
    *,
    scope: Dict[str, str],
    items: List[Dict[str, Any]],
    actor_id: Optional[str] = None,
) -> Dict[str, int]:
    """
    Set ``order_index`` (and optionally ``parent_id``) for posts of one
    type and locale.

    Each item is ``{"id", "order_index", "parent_id"?}``.
    """
    post_type = scope.get("type")
    locale = scope.get("locale")
    if not post_type or not locale:
        raise ReorderPostsError("scope.type and scope.locale are required", 400)
    if not items:
        return {"updated": 0}

    ids = [item.get("id") for item in items]
    rows = {p.id: p for p in Post.query.filter(Post.id.in_(ids)).all()}

    for item in items:
        post = rows.get(item.get("id"))
        if post is None:
            raise ReorderPostsError(f"Post not found: {item.get('id')}", 404)
        if post.type != post_type or post.locale != locale:
            raise ReorderPostsError("Reorder items must match scope type/locale", 400)
        if not isinstance(item.get("order_index"), int) or item["order_index"] < 0:
            raise ReorderPostsError("order_index must be a non-negative integer", 400)

    with transactional():
        for item in items:
            post = rows[item["id"]]
            post.order_index = item["order_index"]
            if "parent_id" in item:
                if item["parent_id"]:
                    try:
                        assert_valid_parent(post, item["parent_id"])
                    except UpdatePostError as exc:
                        raise ReorderPostsError(exc.message, exc.status_code, exc.meta) from exc
                post.parent_id = item["parent_id"] or None
            # later cycle checks read parents from the session
            db.session.flush()

        log_action(
            action="post.reorder",
            entity_type="post",
            entity_id="*",
            payload={"count": len(items), "type": post_type, "locale": locale},
            actor_id=actor_id,
        )

    return {"updated": len(items)}
