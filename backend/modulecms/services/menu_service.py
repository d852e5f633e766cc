from typing import Any, Dict, List, Optional

from modulecms.extensions import db
from modulecms.models.menu import Menu, MenuItem
from modulecms.models.post import Post
from . import url_pattern_service


class MenuService:
    """Menus as nested trees with post links resolved to their public paths."""

    def _item_url(self, item: MenuItem, posts: Dict[str, Post]) -> Optional[str]:
        if item.kind == "post":
            post = posts.get(item.post_id)
            if post is None or post.status != "published" or post.is_deleted:
                return None
            url = url_pattern_service.build_post_path(post)
        else:
            url = item.url
        if url and item.anchor:
            url = f"{url}#{item.anchor.lstrip('#')}"
        return url

    def serialize_item(self, item: MenuItem, url: Optional[str]) -> Dict[str, Any]:
        return {
            "id": item.id,
            "parentId": item.parent_id,
            "orderIndex": item.order_index,
            "label": item.label,
            "kind": item.kind,
            "postId": item.post_id,
            "url": url,
            "anchor": item.anchor,
            "target": item.target,
            "locale": item.locale,
        }

    def build_tree(self, nodes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Nest flat items by ``parentId``; orphans become roots. Siblings sort by ``orderIndex``."""
        by_id = {node["id"]: {**node, "children": []} for node in nodes}
        roots = []
        for node in by_id.values():
            parent = by_id.get(node["parentId"]) if node["parentId"] else None
            if parent is not None:
                parent["children"].append(node)
            else:
                roots.append(node)

        def sort(children):
            children.sort(key=lambda n: n["orderIndex"])
            for child in children:
                sort(child["children"])

        sort(roots)
        return roots

    def items_for(self, menu: Menu, locale: Optional[str] = None) -> List[Dict[str, Any]]:
        items = [
            item for item in menu.items
            if locale is None or item.locale in (None, locale)
        ]
        post_ids = [item.post_id for item in items if item.kind == "post" and item.post_id]
        posts = {p.id: p for p in Post.query.filter(Post.id.in_(post_ids)).all()} if post_ids else {}

        serialized = []
        for item in items:
            url = self._item_url(item, posts)
            # links to unpublished posts are left out of public trees
            if item.kind == "post" and url is None and locale is not None:
                continue
            serialized.append(self.serialize_item(item, url))
        return serialized

    def serialize(self, menu: Menu, locale: Optional[str] = None) -> Dict[str, Any]:
        items = self.items_for(menu, locale)
        return {
            "id": menu.id,
            "name": menu.name,
            "slug": menu.slug,
            "locale": menu.locale,
            "items": items,
            "tree": self.build_tree(items),
        }

    def get_by_slug(self, slug: str, locale: Optional[str] = None) -> Optional[Dict[str, Any]]:
        menu = Menu.query.filter_by(slug=slug).first()
        if menu is None:
            return None
        return self.serialize(menu, locale)

    def get(self, menu_id: str) -> Optional[Menu]:
        return db.session.get(Menu, menu_id)


menu_service = MenuService()
