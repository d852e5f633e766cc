from modulecms.extensions import db
from .base import BaseModel

MODULE_SCOPES = ("post", "global", "static")


class ModuleInstance(BaseModel):
    __tablename__ = "module_instances"

    # post = owned by one post, global = shared by slug, static = code-rendered
    scope = db.Column(db.String(20), nullable=False, default="post", index=True)
    type = db.Column(db.String(100), nullable=False, index=True)
    post_id = db.Column(db.String(36), db.ForeignKey("posts.id"), nullable=True, index=True)

    global_slug = db.Column(db.String(200), nullable=True, unique=True)
    global_label = db.Column(db.String(200), nullable=True)

    props = db.Column(db.JSON, nullable=False, default=dict)
    review_props = db.Column(db.JSON, nullable=True)
    ai_review_props = db.Column(db.JSON, nullable=True)

    post_modules = db.relationship("PostModule", back_populates="module_instance")

    @property
    def is_global(self) -> bool:
        return self.scope == "global"

    @property
    def is_local(self) -> bool:
        return self.scope == "post"
