from modulecms.extensions import db
from .base import BaseModel


class PostModule(BaseModel):
    __tablename__ = "post_modules"

    post_id = db.Column(db.String(36), db.ForeignKey("posts.id"), nullable=False, index=True)
    module_id = db.Column(db.String(36), db.ForeignKey("module_instances.id"), nullable=False, index=True)
    order_index = db.Column(db.Integer, nullable=False, default=0)

    overrides = db.Column(db.JSON, nullable=True)
    review_overrides = db.Column(db.JSON, nullable=True)
    ai_review_overrides = db.Column(db.JSON, nullable=True)

    locked = db.Column(db.Boolean, nullable=False, default=False)
    admin_label = db.Column(db.String(200), nullable=True)

    review_added = db.Column(db.Boolean, nullable=False, default=False)
    review_deleted = db.Column(db.Boolean, nullable=False, default=False)
    ai_review_added = db.Column(db.Boolean, nullable=False, default=False)
    ai_review_deleted = db.Column(db.Boolean, nullable=False, default=False)

    post = db.relationship("Post", back_populates="post_modules")
    module_instance = db.relationship("ModuleInstance", back_populates="post_modules")

    __table_args__ = (
        db.Index("idx_post_module_order", "post_id", "order_index"),
    )
