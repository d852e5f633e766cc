from modulecms.extensions import db
from .base import BaseModel


class ModuleGroup(BaseModel):
    __tablename__ = "module_groups"

    name = db.Column(db.String(200), nullable=False)
    post_type = db.Column(db.String(100), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    locked = db.Column(db.Boolean, nullable=False, default=False)

    modules = db.relationship(
        "ModuleGroupModule",
        back_populates="group",
        order_by="ModuleGroupModule.order_index",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        db.UniqueConstraint("post_type", "name", name="uq_module_group_name_per_type"),
    )


class ModuleGroupModule(BaseModel):
    __tablename__ = "module_group_modules"

    module_group_id = db.Column(db.String(36), db.ForeignKey("module_groups.id"), nullable=False, index=True)
    type = db.Column(db.String(100), nullable=False)
    scope = db.Column(db.String(20), nullable=False, default="post")
    global_slug = db.Column(db.String(200), nullable=True)
    default_props = db.Column(db.JSON, nullable=False, default=dict)
    order_index = db.Column(db.Integer, nullable=False, default=0)
    locked = db.Column(db.Boolean, nullable=False, default=False)

    group = db.relationship("ModuleGroup", back_populates="modules")
