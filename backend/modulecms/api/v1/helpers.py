from typing import Any, Dict, Optional

from flask import g, jsonify, request
from flask_jwt_extended import get_jwt, get_jwt_identity
from werkzeug.exceptions import BadRequest

from modulecms.services.module_resolution import VIEW_MODES
from modulecms.services.role_registry import role_registry

# permission needed to write content in each view mode
MODE_PERMISSIONS = {
    "publish": "posts.edit",
    "review": "posts.review.save",
    "ai-review": "posts.ai-review.save",
}


def json_body() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}


def actor_id() -> Optional[str]:
    return get_jwt_identity()


def read_mode(source: Optional[Dict[str, Any]] = None, default: str = "publish") -> str:
    mode = (source or {}).get("mode") or request.args.get("mode") or default
    if mode not in VIEW_MODES:
        raise BadRequest(f"mode must be one of {', '.join(VIEW_MODES)}")
    return mode


def forbidden_unless(permission: str):
    """403 response when the caller lacks ``permission``, else None."""
    user = getattr(g, "current_user", None)
    role = user.role if user is not None else get_jwt().get("role")
    if role_registry.has_permission(role, permission):
        return None
    return jsonify({"error": "Insufficient permissions", "missing": [permission]}), 403
