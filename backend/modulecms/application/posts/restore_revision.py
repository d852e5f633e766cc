from typing import Dict, Optional

from sqlalchemy import select

from modulecms.application.exceptions import RevisionError
from modulecms.application.modules.delete_post_module import remove_post_module_row
from modulecms.extensions import db
from modulecms.models.post import Post
from modulecms.models.post_revision import PostRevision
from modulecms.services import revision_service
from modulecms.services.module_resolution import STAGED_POST_FIELDS
from modulecms.utils.audit import log_action
from modulecms.utils.transaction import transactional
from .canonical import CANONICAL_FIELD_MAP, build_modules, import_replace, parse_payload
from .reviews import STAGING_COLUMNS


def _restore_into_staged(post: Post, revision: PostRevision, actor_id: Optional[str]) -> None:
    """
    Re-stage a review/ai-review snapshot: its fields become the draft, the
    current rows are flagged deleted for that mode and the snapshot's
    modules come back as rows added in that mode.
    """
    mode = revision.mode
    cols = STAGING_COLUMNS[mode]
    canonical = parse_payload(revision.snapshot)
    fields = canonical.post.model_dump()

    with transactional():
        setattr(post, cols["draft"], {
            column: fields[key]
            for key, column in CANONICAL_FIELD_MAP.items()
            if column in STAGED_POST_FIELDS and fields.get(key) is not None
        })

        for pm in list(post.post_modules):
            if getattr(pm, cols["added"]):
                remove_post_module_row(pm)
            else:
                setattr(pm, cols["deleted"], True)
        db.session.flush()
        db.session.expire(post, ["post_modules"])

        offset = max((pm.order_index for pm in post.post_modules), default=-1) + 1
        for entry in canonical.modules:
            entry.orderIndex += offset
        build_modules(post, canonical.modules, added_flag=cols["added"])

        revision_service.record_revision(post, mode=mode, action="revision.restore", actor_id=actor_id)
        log_action(
            action="post.revision.restore",
            entity_type="post",
            entity_id=post.id,
            payload={"revision_id": revision.id, "mode": mode},
            actor_id=actor_id,
        )


def restore_revision(
    *,
    post_id: str,
    revision_id: str,
    actor_id: Optional[str] = None,
) -> Dict[str, str]:
    """
    Apply a stored snapshot.

    Publish revisions replace the live post; review and ai-review revisions
    are restored into their own staging layer and leave the live post alone.
    """
    revision = PostRevision.query.filter_by(id=revision_id, post_id=post_id).first()
    if revision is None:
        raise RevisionError("Revision not found", 404, {"revision_id": revision_id})

    post = (
        db.session.execute(select(Post).where(Post.id == post_id).with_for_update())
        .scalar_one_or_none()
    )
    if post is None:
        raise RevisionError("Post not found", 404, {"post_id": post_id})

    if revision.mode == "publish":
        # the live status is kept; restoring content never changes lifecycle
        snapshot = dict(revision.snapshot)
        snapshot["post"] = {**snapshot.get("post", {}), "status": post.status}
        import_replace(post_id=post.id, data=snapshot, actor_id=actor_id)
        with transactional():
            log_action(
                action="post.revision.restore",
                entity_type="post",
                entity_id=post.id,
                payload={"revision_id": revision.id, "mode": "publish"},
                actor_id=actor_id,
            )
    else:
        _restore_into_staged(post, revision, actor_id)

    return {"post_id": post.id, "revision_id": revision.id, "mode": revision.mode}
