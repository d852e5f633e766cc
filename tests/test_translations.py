from modulecms.extensions import db
from modulecms.models.post import Post
from modulecms.services.module_resolution import resolve_post_modules


class TestTranslations:

    def test_create_translation_clones_modules(self, client, admin_headers, make_post):
        post = make_post()

        resp = client.post(
            f"/api/v1/posts/{post.id}/translations",
            json={"locale": "es"},
            headers=admin_headers,
        )

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["post"]["slug"] == "about-es"
        assert body["post"]["path"] == "/es/page/about-es"

        translation = db.session.get(Post, body["id"])
        assert translation.translation_of_id == post.id
        assert translation.status == "draft"
        assert [m["type"] for m in resolve_post_modules(translation)] == ["hero", "prose"]
        # local instances are copies, not shared rows
        assert translation.post_modules[0].module_id != post.post_modules[0].module_id

    def test_translation_of_translation_hangs_off_root(self, client, admin_headers, make_post):
        post = make_post()
        es = client.post(
            f"/api/v1/posts/{post.id}/translations", json={"locale": "es"}, headers=admin_headers
        ).get_json()

        resp = client.post(
            f"/api/v1/posts/{es['id']}/translations", json={"locale": "fr"}, headers=admin_headers
        )

        assert resp.status_code == 201
        fr = db.session.get(Post, resp.get_json()["id"])
        assert fr.translation_of_id == post.id

    def test_duplicate_locale_conflicts(self, client, admin_headers, make_post):
        post = make_post()
        client.post(f"/api/v1/posts/{post.id}/translations", json={"locale": "es"}, headers=admin_headers)

        resp = client.post(
            f"/api/v1/posts/{post.id}/translations", json={"locale": "es"}, headers=admin_headers
        )
        assert resp.status_code == 409

    def test_unsupported_locale_rejected(self, client, admin_headers, make_post):
        post = make_post()
        resp = client.post(
            f"/api/v1/posts/{post.id}/translations", json={"locale": "de"}, headers=admin_headers
        )
        assert resp.status_code == 400

    def test_list_reports_missing_locales(self, client, admin_headers, make_post):
        post = make_post()
        client.post(f"/api/v1/posts/{post.id}/translations", json={"locale": "fr"}, headers=admin_headers)

        body = client.get(f"/api/v1/posts/{post.id}/translations", headers=admin_headers).get_json()

        assert body["root_id"] == post.id
        assert sorted(t["locale"] for t in body["translations"]) == ["en", "fr"]
        assert body["missing_locales"] == ["es"]

    def test_root_cannot_be_deleted_through_translations(self, client, admin_headers, make_post):
        post = make_post()
        resp = client.delete(f"/api/v1/posts/{post.id}/translations/en", headers=admin_headers)
        assert resp.status_code == 400

    def test_delete_translation(self, client, admin_headers, make_post):
        post = make_post()
        es = client.post(
            f"/api/v1/posts/{post.id}/translations", json={"locale": "es"}, headers=admin_headers
        ).get_json()

        resp = client.delete(f"/api/v1/posts/{post.id}/translations/es", headers=admin_headers)

        assert resp.status_code == 200
        assert db.session.get(Post, es["id"]) is None
