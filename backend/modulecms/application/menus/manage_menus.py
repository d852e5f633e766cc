from typing import Any, Dict, List, Optional

from modulecms.application.exceptions import MenuError
from modulecms.extensions import db
from modulecms.models.menu import Menu, MenuItem
from modulecms.models.post import Post
from modulecms.utils.audit import log_action
from modulecms.utils.slugs import is_valid_slug
from modulecms.utils.transaction import transactional

ITEM_KINDS = ("custom", "post")
ITEM_FIELDS = ("label", "kind", "url", "post_id", "anchor", "target", "locale", "parent_id", "order_index")


def _get_menu(menu_id: str) -> Menu:
    menu = db.session.get(Menu, menu_id)
    if menu is None:
        raise MenuError("Menu not found", 404, {"menu_id": menu_id})
    return menu


def _get_item(menu: Menu, item_id: str) -> MenuItem:
    item = db.session.get(MenuItem, item_id)
    if item is None or item.menu_id != menu.id:
        raise MenuError("Menu item not found", 404, {"item_id": item_id})
    return item


def _validate_item(menu: Menu, item: MenuItem) -> None:
    if not (item.label or "").strip():
        raise MenuError("label is required", 400)
    if item.kind not in ITEM_KINDS:
        raise MenuError(f"kind must be one of {', '.join(ITEM_KINDS)}", 400, {"kind": item.kind})
    if item.kind == "post":
        if not item.post_id or db.session.get(Post, item.post_id) is None:
            raise MenuError("post_id must reference an existing post for kind=post", 400)
    elif not item.url:
        raise MenuError("url is required for kind=custom", 400)

    if item.parent_id:
        if item.id and item.parent_id == item.id:
            raise MenuError("Cannot set an item as its own parent", 400)
        parent = db.session.get(MenuItem, item.parent_id)
        if parent is None or parent.menu_id != menu.id:
            raise MenuError("parent_id must reference an item of the same menu", 400)
        seen = {item.id}
        while parent is not None:
            if parent.id in seen:
                raise MenuError("Menu item hierarchy cannot contain cycles", 400)
            seen.add(parent.id)
            parent = db.session.get(MenuItem, parent.parent_id) if parent.parent_id else None


def create_menu(*, name: str, slug: str, locale: Optional[str] = None, actor_id: Optional[str] = None) -> Menu:
    if not name or not slug:
        raise MenuError("name and slug are required", 400)
    if not is_valid_slug(slug):
        raise MenuError("slug must be lowercase letters, digits and dashes", 400, {"slug": slug})
    if Menu.query.filter_by(slug=slug).first():
        raise MenuError("A menu with this slug already exists", 409, {"slug": slug})

    menu = Menu()
    menu.name = name
    menu.slug = slug
    menu.locale = locale

    with transactional():
        db.session.add(menu)
        db.session.flush()
        log_action(action="menu.create", entity_type="menu", entity_id=menu.id, payload={"slug": slug}, actor_id=actor_id)
    return menu


def update_menu(*, menu_id: str, data: Dict[str, Any], actor_id: Optional[str] = None) -> Menu:
    menu = _get_menu(menu_id)
    slug = data.get("slug")
    if slug and slug != menu.slug:
        if not is_valid_slug(slug):
            raise MenuError("slug must be lowercase letters, digits and dashes", 400, {"slug": slug})
        if Menu.query.filter(Menu.slug == slug, Menu.id != menu.id).first():
            raise MenuError("A menu with this slug already exists", 409, {"slug": slug})

    with transactional():
        for field in ("name", "slug", "locale"):
            if field in data and (field == "locale" or data[field]):
                setattr(menu, field, data[field])
        log_action(action="menu.update", entity_type="menu", entity_id=menu.id, payload={"fields": sorted(data)}, actor_id=actor_id)
    return menu


def delete_menu(*, menu_id: str, actor_id: Optional[str] = None) -> None:
    menu = _get_menu(menu_id)
    with transactional():
        db.session.delete(menu)
        log_action(action="menu.delete", entity_type="menu", entity_id=menu_id, payload={"slug": menu.slug}, actor_id=actor_id)


def add_menu_item(*, menu_id: str, data: Dict[str, Any], actor_id: Optional[str] = None) -> MenuItem:
    menu = _get_menu(menu_id)

    item = MenuItem()
    item.menu_id = menu.id
    item.label = (data.get("label") or "").strip()
    item.kind = data.get("kind") or ("post" if data.get("post_id") else "custom")
    item.url = data.get("url")
    item.post_id = data.get("post_id")
    item.anchor = data.get("anchor")
    item.target = data.get("target")
    item.locale = data.get("locale") or menu.locale
    item.parent_id = data.get("parent_id")
    if "order_index" in data:
        item.order_index = int(data["order_index"])
    else:
        siblings = [i.order_index for i in menu.items if i.parent_id == item.parent_id]
        item.order_index = max(siblings, default=-1) + 1
    _validate_item(menu, item)

    with transactional():
        db.session.add(item)
        db.session.flush()
        log_action(
            action="menu.item.create",
            entity_type="menu",
            entity_id=menu.id,
            payload={"item_id": item.id, "label": item.label},
            actor_id=actor_id,
        )
    return item


def update_menu_item(*, menu_id: str, item_id: str, data: Dict[str, Any], actor_id: Optional[str] = None) -> MenuItem:
    menu = _get_menu(menu_id)
    item = _get_item(menu, item_id)

    with transactional():
        for field in ITEM_FIELDS:
            if field in data:
                setattr(item, field, int(data[field]) if field == "order_index" else data[field])
        _validate_item(menu, item)
        log_action(
            action="menu.item.update",
            entity_type="menu",
            entity_id=menu.id,
            payload={"item_id": item.id, "fields": sorted(k for k in data if k in ITEM_FIELDS)},
            actor_id=actor_id,
        )
    return item


def delete_menu_item(*, menu_id: str, item_id: str, actor_id: Optional[str] = None) -> None:
    """Remove an item; its children move up to the removed item's parent."""
    menu = _get_menu(menu_id)
    item = _get_item(menu, item_id)

    with transactional():
        MenuItem.query.filter_by(parent_id=item.id).update({"parent_id": item.parent_id})
        db.session.delete(item)
        log_action(
            action="menu.item.delete",
            entity_type="menu",
            entity_id=menu.id,
            payload={"item_id": item_id},
            actor_id=actor_id,
        )


def reorder_menu_items(*, menu_id: str, items: List[Dict[str, Any]], actor_id: Optional[str] = None) -> int:
    """Apply ``[{"id", "order_index", "parent_id"?}]`` to items of one menu."""
    menu = _get_menu(menu_id)
    if not items:
        raise MenuError("items must be a non-empty array", 400)

    rows = {i.id: i for i in menu.items}
    for entry in items:
        if entry.get("id") not in rows or not isinstance(entry.get("order_index"), int):
            raise MenuError("Each item must include a valid id and order_index", 400, {"item": entry})
        if entry.get("parent_id") == entry["id"]:
            raise MenuError("Cannot set an item as its own parent", 400, {"item_id": entry["id"]})

    with transactional():
        for entry in items:
            row = rows[entry["id"]]
            row.order_index = entry["order_index"]
            if "parent_id" in entry:
                row.parent_id = entry["parent_id"]
        db.session.flush()
        for entry in items:
            _validate_item(menu, rows[entry["id"]])
        log_action(
            action="menu.reorder",
            entity_type="menu",
            entity_id=menu.id,
            payload={"updated": len(items)},
            actor_id=actor_id,
        )
    return len(items)
