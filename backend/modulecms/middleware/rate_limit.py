import time
import uuid

import redis
from flask import current_app, g, jsonify, request

_CLIENT_KEY = "modulecms.redis"


def _client():
    if _CLIENT_KEY not in current_app.extensions:
        url = current_app.config.get("REDIS_URL")
        current_app.extensions[_CLIENT_KEY] = redis.Redis.from_url(url) if url else None
    return current_app.extensions[_CLIENT_KEY]


def _bucket():
    """``(name, limit, window)`` for the current request, or None to skip limiting."""
    cfg = current_app.config
    path = request.path
    if path.startswith("/api/v1/auth/") or path == "/protected/login":
        return "auth", cfg["RATE_LIMIT_AUTH_REQUESTS"], cfg["RATE_LIMIT_AUTH_WINDOW"]

    user = getattr(g, "current_user", None)
    if user is not None and user.role == "admin":
        return None
    if path.startswith("/api/"):
        return "api", cfg["RATE_LIMIT_API_REQUESTS"], cfg["RATE_LIMIT_API_WINDOW"]
    return "default", cfg["RATE_LIMIT_REQUESTS"], cfg["RATE_LIMIT_WINDOW"]


def hit(client, key: str, limit: int, window: int):
    """
    Sliding-window check. Returns ``(allowed, remaining, reset_at)``.

    The window is a sorted set of request timestamps; entries older than
    ``window`` seconds are dropped before counting.
    """
    now = time.time()
    pipe = client.pipeline()
    pipe.zremrangebyscore(key, 0, now - window)
    pipe.zcard(key)
    pipe.zadd(key, {f"{now}:{uuid.uuid4().hex}": now})
    pipe.expire(key, window)
    _, count, _, _ = pipe.execute()

    reset_at = int(now + window)
    if count >= limit:
        client.zremrangebyscore(key, now, now)
        return False, 0, reset_at
    return True, max(0, limit - count - 1), reset_at


def rate_limit_middleware(app):
    @app.before_request
    def enforce_rate_limit():
        g.rate_limit = None
        if not current_app.config.get("RATE_LIMIT_ENABLED"):
            return None
        bucket = _bucket()
        client = _client()
        if bucket is None or client is None:
            return None

        name, limit, window = bucket
        user = getattr(g, "current_user", None)
        who = f"user:{user.id}" if user is not None else f"ip:{request.remote_addr}"
        try:
            allowed, remaining, reset_at = hit(client, f"ratelimit:{name}:{who}", limit, window)
        except redis.RedisError as exc:
            current_app.logger.warning("Rate limiter unavailable, allowing request: %s", exc)
            return None

        g.rate_limit = {"limit": limit, "remaining": remaining, "reset": reset_at}
        if not allowed:
            response = jsonify({"error": "Too many requests"})
            response.status_code = 429
            response.headers["Retry-After"] = str(window)
            return response
        return None

    @app.after_request
    def add_rate_limit_headers(response):
        info = getattr(g, "rate_limit", None)
        if info:
            response.headers["X-RateLimit-Limit"] = str(info["limit"])
            response.headers["X-RateLimit-Remaining"] = str(info["remaining"])
            response.headers["X-RateLimit-Reset"] = str(info["reset"])
        return response
