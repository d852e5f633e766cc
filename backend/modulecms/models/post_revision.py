from modulecms.extensions import db
from .base import BaseModel


class PostRevision(BaseModel):
    __tablename__ = "post_revisions"

    post_id = db.Column(
        db.String(36),
        db.ForeignKey("posts.id"),
        nullable=False
    )

    # publish | review | ai-review
    mode = db.Column(db.String(20), nullable=False, default="publish")
    action = db.Column(db.String(50), nullable=False)

    # Canonical post payload at the time of the revision
    snapshot = db.Column(db.JSON, nullable=False)

    created_by = db.Column(db.String(36), nullable=True)

    __table_args__ = (
        db.Index("idx_post_revision_post", "post_id", "created_at"),
    )
