from modulecms.extensions import db
from .base import BaseModel


class ModuleScopeRestriction(BaseModel):
    """
    Explicit allow-list row. Once any row exists for a post type, only the
    listed module types may be attached to posts of that type.
    """
    __tablename__ = "module_scopes"

    module_type = db.Column(db.String(100), nullable=False)
    post_type = db.Column(db.String(100), nullable=False, index=True)

    __table_args__ = (
        db.UniqueConstraint("module_type", "post_type", name="uq_module_scope"),
    )
