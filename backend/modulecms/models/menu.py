from modulecms.extensions import db
from .base import BaseModel


class Menu(BaseModel):
    __tablename__ = "menus"

    name = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), nullable=False, unique=True)
    locale = db.Column(db.String(10), nullable=True)

    items = db.relationship(
        "MenuItem",
        back_populates="menu",
        order_by="MenuItem.order_index",
        cascade="all, delete-orphan",
    )


class MenuItem(BaseModel):
    __tablename__ = "menu_items"

    menu_id = db.Column(db.String(36), db.ForeignKey("menus.id"), nullable=False, index=True)
    parent_id = db.Column(db.String(36), db.ForeignKey("menu_items.id"), nullable=True, index=True)
    order_index = db.Column(db.Integer, nullable=False, default=0)
    label = db.Column(db.String(200), nullable=False)

    # custom = literal url, post = resolved from post_id at read time
    kind = db.Column(db.String(20), nullable=False, default="custom")
    url = db.Column(db.String(512), nullable=True)
    post_id = db.Column(db.String(36), db.ForeignKey("posts.id"), nullable=True)
    anchor = db.Column(db.String(200), nullable=True)
    target = db.Column(db.String(20), nullable=True)
    locale = db.Column(db.String(10), nullable=True)

    menu = db.relationship("Menu", back_populates="items")
