from functools import wraps

from flask import g, jsonify
from flask_jwt_extended import get_jwt, verify_jwt_in_request

from modulecms.services.role_registry import role_registry


def _current_role():
    user = getattr(g, "current_user", None)
    if user is not None:
        return user.role
    return get_jwt().get("role")


def roles_required(*allowed_roles):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if _current_role() not in allowed_roles:
                return jsonify({"error": "Insufficient permissions"}), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def permission_required(*permissions):
    """
    Require every listed permission key for the caller's role.

    ``admin`` passes all checks; unknown roles hold nothing.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            role = _current_role()
            missing = [p for p in permissions if not role_registry.has_permission(role, p)]
            if missing:
                return jsonify({
                    "error": "Insufficient permissions",
                    "missing": missing,
                }), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator
