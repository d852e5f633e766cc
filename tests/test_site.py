from datetime import timedelta

from modulecms.application.posts.publish_post import publish_post
from modulecms.application.posts.update_post import update_post
from modulecms.application.translations.create_translation import create_translation
from modulecms.extensions import db
from modulecms.models.base import utcnow


def _published(make_post, **data):
    post = make_post(**data)
    publish_post(post_id=post.id)
    return post


class TestResolvePage:

    def test_published_page_renders(self, client, make_post):
        _published(make_post, meta_description="Who we are")

        resp = client.get("/about")

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["post"]["path"] == "/about"
        assert [m["type"] for m in body["modules"]] == ["hero", "prose"]
        assert body["seo"]["title"] == "About us | ModuleCMS"
        assert body["seo"]["canonical"] == "http://localhost:5000/about"
        assert body["seo"]["robots"] == "index,follow"
        assert body["seo"]["jsonld"]["@type"] == "WebPage"

    def test_draft_is_not_found(self, client, make_post):
        make_post()
        resp = client.get("/about")
        assert resp.status_code == 404
        assert resp.get_json() == {"error": "Page not found", "path": "/about"}

    def test_future_publish_date_is_hidden(self, client, make_post):
        post = _published(make_post)
        post.published_at = utcnow() + timedelta(days=1)
        db.session.commit()

        assert client.get("/about").status_code == 404

    def test_home_page(self, client, make_post):
        _published(make_post, slug="home", title="Home")
        assert client.get("/").get_json()["post"]["slug"] == "home"

    def test_child_page_needs_full_path(self, client, make_post):
        parent = _published(make_post, slug="company", title="Company")
        _published(make_post, slug="team", title="Team", parent_id=parent.id)

        assert client.get("/company/team").status_code == 200
        assert client.get("/team").status_code == 404

    def test_blog_post_is_article(self, client, make_post):
        _published(make_post, type="blog", slug="hello-world", title="Hello world")

        body = client.get("/blog/hello-world").get_json()

        assert body["seo"]["jsonld"]["@type"] == "Article"
        assert body["seo"]["og"]["type"] == "article"

    def test_slug_change_redirects(self, client, make_post):
        post = _published(make_post, slug="team")
        update_post(post_id=post.id, data={"slug": "people"})

        resp = client.get("/team")

        assert resp.status_code == 301
        assert resp.headers["Location"].endswith("/people")

    def test_review_draft_never_reaches_public_view(self, client, make_post):
        post = _published(make_post)
        update_post(post_id=post.id, data={"title": "Secret"}, mode="review")

        assert client.get("/about").get_json()["post"]["title"] == "About us"

    def test_alternates_for_published_translations(self, client, make_post):
        post = _published(make_post)
        translation = create_translation(post_id=post.id, locale="es")
        publish_post(post_id=translation.id)

        alternates = client.get("/about").get_json()["seo"]["alternates"]

        assert {a["locale"] for a in alternates} == {"en", "es", "x-default"}


class TestSitemapAndRobots:

    def test_sitemap_lists_indexable_published_posts(self, client, make_post):
        _published(make_post)
        _published(make_post, slug="hidden", title="Hidden", robots_json={"index": False})
        make_post(slug="draft", title="Draft")

        xml = client.get("/sitemap.xml").get_data(as_text=True)

        assert "<loc>http://localhost:5000/about</loc>" in xml
        assert "/hidden" not in xml
        assert "/draft" not in xml

    def test_sitemap_picks_up_new_publications(self, client, make_post):
        _published(make_post)
        client.get("/sitemap.xml")

        _published(make_post, slug="team", title="Team")
        xml = client.get("/sitemap.xml").get_data(as_text=True)

        assert "<loc>http://localhost:5000/team</loc>" in xml

    def test_robots(self, client, app):
        text = client.get("/robots.txt").get_data(as_text=True)
        assert "Disallow: /api/" in text
        assert "Sitemap: http://localhost:5000/sitemap.xml" in text


class TestMaintenanceMode:

    def _enable(self, client, admin_headers):
        resp = client.patch("/api/v1/settings", json={"is_maintenance_mode": True}, headers=admin_headers)
        assert resp.status_code == 200

    def test_anonymous_visitors_get_503(self, client, admin_headers, make_post):
        _published(make_post)
        self._enable(client, admin_headers)

        resp = client.get("/about")

        assert resp.status_code == 503
        assert resp.headers["Retry-After"] == "300"

    def test_signed_in_staff_pass(self, client, admin_headers, make_post):
        _published(make_post)
        self._enable(client, admin_headers)

        assert client.get("/about", headers=admin_headers).status_code == 200

    def test_api_is_not_blocked(self, client, admin_headers):
        self._enable(client, admin_headers)
        assert client.get("/api/v1/health").status_code == 200

    def test_robots_disallows_everything(self, client, admin_headers):
        self._enable(client, admin_headers)
        text = client.get("/robots.txt").get_data(as_text=True)
        assert "Disallow: /\n" in text


class TestRestrictedPosts:

    def _protected(self, make_post):
        return make_post(slug="members", title="Members", status="protected")

    def test_protected_post_needs_login(self, client, make_post):
        self._protected(make_post)

        resp = client.get("/members")

        assert resp.status_code == 401
        assert resp.get_json()["login"] == "/protected/login"

    def test_login_with_configured_credentials_grants_access(self, app, client, make_post):
        app.config["PROTECTED_ACCESS_USERNAME"] = "guest"
        app.config["PROTECTED_ACCESS_PASSWORD"] = "open-sesame"
        self._protected(make_post)

        resp = client.post(
            "/protected/login",
            json={"username": "guest", "password": "open-sesame", "redirect": "/members"},
        )

        assert resp.status_code == 200
        assert resp.get_json() == {"ok": True, "redirect": "/members"}
        assert client.get("/members").get_json()["post"]["slug"] == "members"

    def test_site_custom_fields_override_config(self, app, client, admin_headers, make_post):
        app.config["PROTECTED_ACCESS_USERNAME"] = "guest"
        app.config["PROTECTED_ACCESS_PASSWORD"] = "open-sesame"
        client.patch(
            "/api/v1/settings",
            json={"custom_fields": {"protected_access_username": "club", "protected_access_password": "s3cret"}},
            headers=admin_headers,
        )

        rejected = client.post("/protected/login", json={"username": "guest", "password": "open-sesame"})
        accepted = client.post("/protected/login", json={"username": "club", "password": "s3cret"})

        assert rejected.status_code == 401
        assert accepted.status_code == 200

    def test_login_refused_when_nothing_is_configured(self, client):
        resp = client.post("/protected/login", json={"username": "", "password": ""})
        assert resp.status_code == 401

    def test_offsite_redirect_is_dropped(self, app, client):
        app.config["PROTECTED_ACCESS_USERNAME"] = "guest"
        app.config["PROTECTED_ACCESS_PASSWORD"] = "open-sesame"

        resp = client.post(
            "/protected/login",
            json={"username": "guest", "password": "open-sesame", "redirect": "//evil.example"},
        )

        assert resp.get_json()["redirect"] == "/"

    def test_private_post_is_for_signed_in_users(self, client, admin_headers, make_post):
        make_post(slug="internal", title="Internal", status="private")

        assert client.get("/internal").status_code == 404
        assert client.get("/internal", headers=admin_headers).status_code == 200

    def test_restricted_posts_stay_out_of_sitemap(self, client, make_post):
        self._protected(make_post)
        xml = client.get("/sitemap.xml").get_data(as_text=True)
        assert "/members" not in xml
