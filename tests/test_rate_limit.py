from unittest.mock import MagicMock

import pytest
import redis

from modulecms.middleware import rate_limit


def _redis_with_count(count):
    client = MagicMock()
    client.pipeline.return_value.execute.return_value = [0, count, 1, True]
    return client


@pytest.fixture
def limited_app(app, monkeypatch):
    app.config["RATE_LIMIT_ENABLED"] = True
    app.config["RATE_LIMIT_API_REQUESTS"] = 3
    app.config["RATE_LIMIT_API_WINDOW"] = 60

    def install(client):
        monkeypatch.setattr(rate_limit, "_client", lambda: client)
        return client
    return install


class TestHit:

    def test_under_limit(self):
        allowed, remaining, _ = rate_limit.hit(_redis_with_count(1), "k", 5, 60)
        assert allowed is True
        assert remaining == 3

    def test_at_limit_is_rejected_and_entry_dropped(self):
        client = _redis_with_count(5)

        allowed, remaining, _ = rate_limit.hit(client, "k", 5, 60)

        assert (allowed, remaining) == (False, 0)
        client.zremrangebyscore.assert_called_once()


class TestMiddleware:

    def test_headers_on_allowed_request(self, client, limited_app):
        limited_app(_redis_with_count(0))

        resp = client.get("/api/v1/health")

        assert resp.status_code == 200
        assert resp.headers["X-RateLimit-Limit"] == "3"
        assert resp.headers["X-RateLimit-Remaining"] == "2"

    def test_over_limit_returns_429(self, client, limited_app):
        limited_app(_redis_with_count(3))

        resp = client.get("/api/v1/health")

        assert resp.status_code == 429
        assert resp.headers["Retry-After"] == "60"

    def test_auth_bucket_is_stricter(self, client, limited_app, app):
        app.config["RATE_LIMIT_AUTH_REQUESTS"] = 1
        limited_app(_redis_with_count(1))

        resp = client.post("/api/v1/auth/login", json={"email": "a@example.com", "password": "x"})

        assert resp.status_code == 429

    def test_admins_skip_api_limits(self, client, limited_app, admin_headers):
        limited_app(_redis_with_count(100))
        assert client.get("/api/v1/health", headers=admin_headers).status_code == 200

    def test_redis_outage_allows_request(self, client, limited_app):
        broken = MagicMock()
        broken.pipeline.return_value.execute.side_effect = redis.ConnectionError("down")
        limited_app(broken)

        resp = client.get("/api/v1/health")

        assert resp.status_code == 200
        assert "X-RateLimit-Limit" not in resp.headers

    def test_no_redis_configured(self, client, limited_app):
        limited_app(None)
        assert client.get("/api/v1/health").status_code == 200
