import pytest

from modulecms.application.exceptions import AddModuleToPostError, DeletePostModuleError
from modulecms.application.modules.add_module_to_post import add_module_to_post
from modulecms.application.modules.delete_post_module import delete_post_module
from modulecms.application.modules.update_post_module import update_post_module
from modulecms.extensions import db
from modulecms.models.module_instance import ModuleInstance
from modulecms.modules.base import BaseModule, ModuleConfig
from modulecms.modules.callout import CalloutModule
from modulecms.services import module_scope_service
from modulecms.services.module_registry import ModuleRegistry, ModuleRegistryError
from modulecms.services.module_resolution import effective_mode, resolve_post_modules, resolve_props
from modulecms.utils.jsonb import deep_merge


class TestDeepMerge:

    def test_nested_objects_merge(self):
        base = {"cta": {"label": "Go", "url": "/a"}, "title": "Hi"}
        merged = deep_merge(base, {"cta": {"url": "/b"}})
        assert merged == {"cta": {"label": "Go", "url": "/b"}, "title": "Hi"}

    def test_arrays_are_replaced(self):
        merged = deep_merge({"items": [1, 2, 3]}, {"items": [4]})
        assert merged["items"] == [4]

    def test_inputs_are_not_mutated(self):
        base = {"a": {"b": 1}}
        deep_merge(base, {"a": {"b": 2}})
        assert base == {"a": {"b": 1}}

    def test_non_dict_override_returns_copy_of_base(self):
        assert deep_merge({"a": 1}, None) == {"a": 1}


class _FaqForBlogs(BaseModule):

    @property
    def config(self) -> ModuleConfig:
        return ModuleConfig(type="blog-faq", name="Blog FAQ", allowed_post_types=["blog"])


class TestModuleRegistry:

    def test_duplicate_registration_fails(self):
        registry = ModuleRegistry()
        registry.register(_FaqForBlogs())
        with pytest.raises(ModuleRegistryError):
            registry.register(_FaqForBlogs())

    def test_unknown_type_fails(self):
        with pytest.raises(ModuleRegistryError):
            ModuleRegistry().get("nope")

    def test_modules_for_post_type_honours_allowed_post_types(self):
        registry = ModuleRegistry()
        registry.register(_FaqForBlogs())
        registry.register(CalloutModule())

        assert [c.type for c in registry.modules_for_post_type("blog")] == ["blog-faq", "callout"]
        assert [c.type for c in registry.modules_for_post_type("page")] == ["callout"]
        assert registry.count() == 2

    def test_merge_props_is_shallow(self):
        merged = CalloutModule().merge_props(
            {"title": "Hi", "ctas": [{"label": "A"}]},
            {"ctas": []},
        )
        assert merged == {"title": "Hi", "ctas": []}

    def test_restrictions_narrow_allowed_types(self, app):
        assert "callout" in module_scope_service.allowed_types_for("page")

        module_scope_service.add_restriction("prose", "page")
        db.session.commit()

        assert module_scope_service.allowed_types_for("page") == ["prose"]


class TestModuleResolution:

    def test_defaults_fill_missing_props(self, make_post):
        post = make_post()
        hero = post.post_modules[0]
        props = resolve_props(hero)
        assert props["title"] == "Welcome"
        assert props["alignment"] == "center"

    def test_review_add_is_hidden_in_publish(self, make_post):
        post = make_post()
        add_module_to_post(post_id=post.id, module_type="callout", mode="review")
        db.session.refresh(post)

        live = [m["type"] for m in resolve_post_modules(post, "publish")]
        staged = [m["type"] for m in resolve_post_modules(post, "review")]

        assert "callout" not in live
        assert staged[-1] == "callout"

    def test_review_edit_on_local_module_stays_staged(self, make_post):
        post = make_post()
        hero = post.post_modules[0]

        update_post_module(post_module_id=hero.id, overrides={"title": "Draft headline"}, mode="review")

        assert resolve_props(hero, "publish")["title"] == "Welcome"
        assert resolve_props(hero, "review")["title"] == "Draft headline"

    def test_review_delete_only_flags_row(self, make_post):
        post = make_post()
        prose = post.post_modules[1]

        delete_post_module(post_module_id=prose.id, mode="review")
        db.session.refresh(post)

        assert [m["type"] for m in resolve_post_modules(post, "publish")] == ["hero", "prose"]
        assert [m["type"] for m in resolve_post_modules(post, "review")] == ["hero"]

    def test_public_view_falls_back_to_ai_review(self, make_post):
        post = make_post()
        for pm in list(post.post_modules):
            delete_post_module(post_module_id=pm.id)
        add_module_to_post(post_id=post.id, module_type="prose", mode="ai-review")
        db.session.refresh(post)

        assert effective_mode(post, "publish") == "ai-review"


class TestPostModuleActions:

    def test_unknown_module_type(self, make_post):
        post = make_post()
        with pytest.raises(AddModuleToPostError) as exc:
            add_module_to_post(post_id=post.id, module_type="carousel")
        assert exc.value.status_code == 404

    def test_locked_module_cannot_be_deleted(self, make_post):
        post = make_post()
        pm = add_module_to_post(post_id=post.id, module_type="faq", locked=True)

        with pytest.raises(DeletePostModuleError) as exc:
            delete_post_module(post_module_id=pm.id)
        assert exc.value.status_code == 400

    def test_restriction_blocks_unlisted_module(self, client, admin_headers, make_post):
        post = make_post()
        resp = client.post(
            "/api/v1/post-types/page/module-restrictions",
            json={"module_type": "prose"},
            headers=admin_headers,
        )
        assert resp.status_code == 201

        resp = client.post(
            f"/api/v1/posts/{post.id}/modules",
            json={"type": "callout"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

        resp = client.post(
            f"/api/v1/posts/{post.id}/modules",
            json={"type": "prose"},
            headers=admin_headers,
        )
        assert resp.status_code == 201

    def test_add_requires_type(self, client, admin_headers, make_post):
        post = make_post()
        resp = client.post(f"/api/v1/posts/{post.id}/modules", json={}, headers=admin_headers)
        assert resp.status_code == 400

    def test_translator_can_stage_review_but_not_ai_review(self, client, auth_headers, make_post):
        post = make_post()
        hero_id = post.post_modules[0].id
        headers = auth_headers("translator")

        resp = client.patch(
            f"/api/v1/post-modules/{hero_id}",
            json={"mode": "review", "props": {"title": "Bienvenue"}},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["review_props"]["title"] == "Bienvenue"

        resp = client.patch(
            f"/api/v1/post-modules/{hero_id}",
            json={"mode": "ai-review", "props": {"title": "Bienvenue"}},
            headers=headers,
        )
        assert resp.status_code == 403


class TestGlobalModules:

    def _create_global(self, client, headers):
        resp = client.post(
            "/api/v1/globals",
            json={"type": "callout", "global_slug": "newsletter", "props": {"title": "Subscribe"}},
            headers=headers,
        )
        assert resp.status_code == 201
        return resp.get_json()

    def test_update_deep_merges_shared_props(self, client, admin_headers):
        created = self._create_global(client, admin_headers)

        resp = client.patch(
            f"/api/v1/globals/{created['id']}",
            json={"props": {"variant": "split-left"}},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        instance = db.session.get(ModuleInstance, created["id"])
        assert instance.props["title"] == "Subscribe"
        assert instance.props["variant"] == "split-left"

    def test_duplicate_slug_conflicts(self, client, admin_headers):
        self._create_global(client, admin_headers)
        resp = client.post(
            "/api/v1/globals",
            json={"type": "callout", "global_slug": "newsletter"},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    def test_referenced_global_cannot_be_deleted(self, client, admin_headers, make_post):
        created = self._create_global(client, admin_headers)
        post = make_post()
        add_module_to_post(post_id=post.id, module_type="callout", scope="global", global_slug="newsletter")

        resp = client.delete(f"/api/v1/globals/{created['id']}", headers=admin_headers)

        assert resp.status_code == 409
        assert resp.get_json()["meta"]["usage_count"] == 1

    def test_global_override_applies_per_post(self, client, admin_headers, make_post):
        self._create_global(client, admin_headers)
        post = make_post()
        pm = add_module_to_post(post_id=post.id, module_type="callout", scope="global", global_slug="newsletter")

        update_post_module(post_module_id=pm.id, overrides={"title": "Join us"})

        assert resolve_props(pm)["title"] == "Join us"
        assert db.session.get(ModuleInstance, pm.module_id).props["title"] == "Subscribe"
