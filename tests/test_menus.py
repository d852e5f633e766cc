import pytest

from modulecms.application.exceptions import MenuError
from modulecms.application.menus.manage_menus import (
    add_menu_item,
    create_menu,
    delete_menu_item,
    update_menu_item,
)
from modulecms.application.posts.publish_post import publish_post
from modulecms.services.menu_service import menu_service


@pytest.fixture
def menu(app):
    return create_menu(name="Main navigation", slug="main")


class TestMenuService:

    def test_build_tree_nests_and_sorts(self):
        nodes = [
            {"id": "a", "parentId": None, "orderIndex": 1},
            {"id": "b", "parentId": None, "orderIndex": 0},
            {"id": "c", "parentId": "a", "orderIndex": 0},
            {"id": "d", "parentId": "missing", "orderIndex": 2},
        ]

        tree = menu_service.build_tree(nodes)

        assert [n["id"] for n in tree] == ["b", "a", "d"]
        assert [n["id"] for n in tree[1]["children"]] == ["c"]


class TestMenuItems:

    def test_items_append_in_order(self, menu):
        first = add_menu_item(menu_id=menu.id, data={"label": "Home", "url": "/"})
        second = add_menu_item(menu_id=menu.id, data={"label": "Blog", "url": "/blog"})
        assert (first.order_index, second.order_index) == (0, 1)

    def test_custom_item_requires_url(self, menu):
        with pytest.raises(MenuError) as exc:
            add_menu_item(menu_id=menu.id, data={"label": "Broken"})
        assert exc.value.status_code == 400

    def test_cycle_is_rejected(self, menu):
        parent = add_menu_item(menu_id=menu.id, data={"label": "About", "url": "/about"})
        child = add_menu_item(menu_id=menu.id, data={"label": "Team", "url": "/team", "parent_id": parent.id})

        with pytest.raises(MenuError) as exc:
            update_menu_item(menu_id=menu.id, item_id=parent.id, data={"parent_id": child.id})
        assert "cycles" in exc.value.message

    def test_deleting_item_reparents_children(self, menu):
        root = add_menu_item(menu_id=menu.id, data={"label": "Company", "url": "/company"})
        middle = add_menu_item(menu_id=menu.id, data={"label": "About", "url": "/about", "parent_id": root.id})
        leaf = add_menu_item(menu_id=menu.id, data={"label": "Team", "url": "/team", "parent_id": middle.id})

        delete_menu_item(menu_id=menu.id, item_id=middle.id)

        tree = menu_service.serialize(menu)["tree"]
        assert tree[0]["id"] == root.id
        assert [c["id"] for c in tree[0]["children"]] == [leaf.id]


class TestPublicMenu:

    def test_unpublished_post_links_are_omitted(self, client, menu, make_post):
        live = make_post(slug="pricing", title="Pricing")
        publish_post(post_id=live.id)
        draft = make_post(slug="roadmap", title="Roadmap")
        add_menu_item(menu_id=menu.id, data={"label": "Pricing", "post_id": live.id})
        add_menu_item(menu_id=menu.id, data={"label": "Roadmap", "post_id": draft.id})

        resp = client.get("/site/menus/main?locale=en")

        assert resp.status_code == 200
        items = resp.get_json()["items"]
        assert [i["label"] for i in items] == ["Pricing"]
        assert items[0]["url"] == "/pricing"

    def test_unknown_menu(self, client, app):
        assert client.get("/site/menus/footer").status_code == 404


class TestMenusApi:

    def test_create_and_add_item(self, client, admin_headers):
        resp = client.post("/api/v1/menus", json={"name": "Footer", "slug": "footer"}, headers=admin_headers)
        assert resp.status_code == 201
        menu_id = resp.get_json()["id"]

        resp = client.post(
            f"/api/v1/menus/{menu_id}/items",
            json={"label": "Docs", "url": "https://docs.example.com", "target": "_blank"},
            headers=admin_headers,
        )

        assert resp.status_code == 201
        assert resp.get_json()["menu"]["tree"][0]["label"] == "Docs"

    def test_duplicate_slug_conflicts(self, client, admin_headers, menu):
        resp = client.post("/api/v1/menus", json={"name": "Main", "slug": "main"}, headers=admin_headers)
        assert resp.status_code == 409

    def test_editor_cannot_edit_menus(self, client, editor_headers):
        resp = client.post("/api/v1/menus", json={"name": "Footer", "slug": "footer"}, headers=editor_headers)
        assert resp.status_code == 403
