import pytest
from flask_jwt_extended import decode_token

from modulecms.extensions import db
from modulecms.models.audit_log import AuditLog
from modulecms.models.user import User
from modulecms.utils.audit import log_action


class TestLogin:

    def test_login_returns_tokens_with_role_claim(self, client, make_user):
        user = make_user(role="editor", email="ed@example.com")

        resp = client.post("/api/v1/auth/login", json={"email": "ED@example.com", "password": "correct-horse"})

        assert resp.status_code == 200
        claims = decode_token(resp.get_json()["access_token"])
        assert claims["sub"] == user.id
        assert claims["role"] == "editor"

    def test_login_records_last_login(self, client, make_user):
        user = make_user(email="ed@example.com")

        client.post("/api/v1/auth/login", json={"email": "ed@example.com", "password": "correct-horse"})

        db.session.expire_all()
        assert db.session.get(User, user.id).last_login_at is not None

    def test_wrong_password(self, client, make_user):
        make_user(email="ed@example.com")
        resp = client.post("/api/v1/auth/login", json={"email": "ed@example.com", "password": "nope"})
        assert resp.status_code == 401

    def test_disabled_user(self, client, make_user):
        make_user(email="ed@example.com", is_active=False)
        resp = client.post("/api/v1/auth/login", json={"email": "ed@example.com", "password": "correct-horse"})
        assert resp.status_code == 403

    def test_missing_body(self, client, app):
        assert client.post("/api/v1/auth/login").status_code == 400

    def test_me_lists_permissions(self, client, editor_headers):
        body = client.get("/api/v1/auth/me", headers=editor_headers).get_json()
        assert body["role"] == "editor"
        assert "posts.review.save" in body["permissions"]
        assert "posts.publish" not in body["permissions"]

    def test_refresh(self, client, make_user):
        make_user(email="ed@example.com")
        tokens = client.post(
            "/api/v1/auth/login", json={"email": "ed@example.com", "password": "correct-horse"}
        ).get_json()

        resp = client.post(
            "/api/v1/auth/refresh",
            headers={"Authorization": f"Bearer {tokens['refresh_token']}"},
        )

        assert resp.status_code == 200
        assert "access_token" in resp.get_json()


class TestUsers:

    def test_admin_creates_user(self, client, admin_headers):
        resp = client.post(
            "/api/v1/users",
            json={"email": "New@Example.com", "password": "pw-123456", "role": "translator"},
            headers=admin_headers,
        )

        assert resp.status_code == 201
        assert resp.get_json()["email"] == "new@example.com"

    def test_unknown_role(self, client, admin_headers):
        resp = client.post(
            "/api/v1/users",
            json={"email": "x@example.com", "password": "pw", "role": "owner"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_editor_cannot_manage_users(self, client, editor_headers):
        assert client.get("/api/v1/users", headers=editor_headers).status_code == 403

    def test_cannot_deactivate_self(self, client, make_user):
        from flask_jwt_extended import create_access_token

        admin = make_user(role="admin")
        headers = {"Authorization": f"Bearer {create_access_token(identity=admin.id, additional_claims={'role': 'admin'})}"}

        resp = client.patch(f"/api/v1/users/{admin.id}", json={"is_active": False}, headers=headers)

        assert resp.status_code == 400
        assert db.session.get(User, admin.id).is_active is True


class TestSettings:

    def test_unknown_fields_rejected(self, client, admin_headers):
        resp = client.patch("/api/v1/settings", json={"theme": "dark"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["fields"] == ["theme"]

    def test_custom_fields_merge(self, client, admin_headers):
        client.patch("/api/v1/settings", json={"custom_fields": {"a": 1}}, headers=admin_headers)
        resp = client.patch("/api/v1/settings", json={"custom_fields": {"b": 2}}, headers=admin_headers)

        assert resp.get_json()["custom_fields"] == {"a": 1, "b": 2}

    def test_locales_are_public(self, client, app):
        body = client.get("/api/v1/locales").get_json()
        assert body == {"default": "en", "supported": ["en", "es", "fr"]}


class TestAudit:

    def test_audit_log_is_immutable(self, app):
        log_action(action="test.event", entity_type="post", entity_id="1", payload={})
        db.session.commit()
        entry = AuditLog.query.filter_by(action="test.event").one()

        entry.payload = {"changed": True}
        with pytest.raises(RuntimeError):
            db.session.commit()
        db.session.rollback()

    def test_only_admins_read_audit(self, client, auth_headers, make_post):
        make_post()

        assert client.get("/api/v1/audit", headers=auth_headers("editor_admin")).status_code == 403

        body = client.get("/api/v1/audit?action=post.create", headers=auth_headers("admin")).get_json()
        assert len(body["items"]) == 1
        assert body["pagination"]["has_more"] is False

    def test_audit_entries_name_the_actor(self, client, auth_headers):
        headers = auth_headers("admin")
        client.post("/api/v1/posts", json={"type": "page", "title": "Team", "slug": "team"}, headers=headers)

        body = client.get("/api/v1/audit?action=post.create", headers=headers).get_json()

        actor = body["items"][0]["actor"]
        assert actor["email"].startswith("admin-")
        assert actor["name"] == "Admin"
