from typing import List, Optional

from modulecms.application.exceptions import UpdatePostModuleError
from modulecms.extensions import db
from modulecms.models.post import Post
from modulecms.models.post_module import PostModule
from modulecms.utils.audit import log_action
from modulecms.utils.transaction import transactional


def reorder_post_modules(
    *,
    post_id: str,
    ordered_ids: List[str],
    actor_id: Optional[str] = None,
) -> List[PostModule]:
    """
    Renumber a post's modules to follow ``ordered_ids``.

    The list must name every module of the post exactly once and may not
    move a locked module.
    """
    post = db.session.get(Post, post_id)
    if post is None:
        raise UpdatePostModuleError("Post not found", 404, {"post_id": post_id})

    rows = {pm.id: pm for pm in post.post_modules}
    if len(ordered_ids) != len(set(ordered_ids)) or set(ordered_ids) != set(rows):
        raise UpdatePostModuleError(
            "Order must list every module of the post exactly once",
            400,
            {"expected": sorted(rows), "received": ordered_ids},
        )

    current = [pm.id for pm in sorted(rows.values(), key=lambda pm: pm.order_index)]
    for index, pm_id in enumerate(ordered_ids):
        if rows[pm_id].locked and current.index(pm_id) != index:
            raise UpdatePostModuleError("Cannot reorder a locked module", 400, {"post_module_id": pm_id})

    with transactional():
        for index, pm_id in enumerate(ordered_ids):
            rows[pm_id].order_index = index

        log_action(
            action="post_module.reorder",
            entity_type="post",
            entity_id=post.id,
            payload={"order": ordered_ids},
            actor_id=actor_id,
        )

    return [rows[pm_id] for pm_id in ordered_ids]
