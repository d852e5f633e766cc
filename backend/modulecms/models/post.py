from typing import List, Optional
from modulecms.extensions import db
from .base import BaseModel
from .soft_delete_mixin import SoftDeleteMixin

POST_STATUSES = (
    "draft",
    "review",
    "scheduled",
    "published",
    "private",
    "protected",
    "archived",
)


class Post(BaseModel, SoftDeleteMixin):
    __tablename__ = 'posts'

    type = db.Column(db.String(100), nullable=False, index=True)
    locale = db.Column(db.String(10), nullable=False, index=True)
    slug = db.Column(db.String(200), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    excerpt = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(20), nullable=False, default='draft', index=True)

    # Translation family: translations point at the root post
    translation_of_id = db.Column(db.String(36), db.ForeignKey('posts.id'), nullable=True, index=True)

    # Hierarchy within the same type + locale
    parent_id = db.Column(db.String(36), db.ForeignKey('posts.id'), nullable=True, index=True)
    order_index = db.Column(db.Integer, nullable=False, default=0)

    meta_title = db.Column(db.String(255), nullable=True)
    meta_description = db.Column(db.Text, nullable=True)
    canonical_url = db.Column(db.String(512), nullable=True)
    robots_json = db.Column(db.JSON, nullable=True)
    jsonld_overrides = db.Column(db.JSON, nullable=True)

    module_group_id = db.Column(db.String(36), db.ForeignKey('module_groups.id'), nullable=True)
    author_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True, index=True)

    # Staged post-level fields for the review / AI review workflows
    review_draft = db.Column(db.JSON, nullable=True)
    ai_review_draft = db.Column(db.JSON, nullable=True)

    published_at = db.Column(db.DateTime(timezone=True), nullable=True)
    scheduled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    __table_args__ = (
        db.UniqueConstraint("slug", "locale", name="uq_post_slug_per_locale"),
        db.Index("idx_post_type_locale_order", "type", "locale", "order_index"),
    )

    post_modules = db.relationship(
        "PostModule",
        back_populates="post",
        order_by="PostModule.order_index",
        cascade="all, delete-orphan",
    )

    author = db.relationship("User", foreign_keys=[author_id])

    def is_translation(self) -> bool:
        return self.translation_of_id is not None

    @property
    def root_id(self) -> str:
        return self.translation_of_id or self.id

    def family(self) -> List["Post"]:
        """All posts of the translation family, root included."""
        root_id = self.root_id
        return (
            Post.query
            .filter(db.or_(Post.id == root_id, Post.translation_of_id == root_id))
            .order_by(Post.locale.asc())
            .all()
        )

    def get_translation(self, locale: str) -> Optional["Post"]:
        for member in self.family():
            if member.locale == locale:
                return member
        return None

    def get_original(self) -> "Post":
        if not self.is_translation():
            return self
        original = db.session.get(Post, self.translation_of_id)
        if original is None:
            raise LookupError(f"Original post not found: {self.translation_of_id}")
        return original
