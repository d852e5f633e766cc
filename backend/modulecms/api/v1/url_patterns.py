from flask import jsonify, request
from flask_jwt_extended import jwt_required
from modulecms.extensions import db
from modulecms.models.url_pattern import UrlPattern, UrlRedirect
from modulecms.services import locale_service, url_pattern_service
from modulecms.services.post_type_registry import post_type_registry
from modulecms.utils.audit import log_action
from modulecms.utils.decorators import permission_required
from modulecms.utils.transaction import transactional
from .helpers import actor_id, json_body
from . import v1_bp

REDIRECT_STATUS_CODES = (301, 302, 307, 308)


def _pattern_dict(row: UrlPattern):
    return {
        "id": row.id,
        "post_type": row.post_type,
        "locale": row.locale,
        "pattern": row.pattern,
        "is_default": bool(row.is_default),
    }


def _redirect_dict(row: UrlRedirect):
    return {
        "id": row.id,
        "from_path": row.from_path,
        "to_path": row.to_path,
        "locale": row.locale,
        "status_code": row.status_code,
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }


# ------------------------
# URL patterns
# ------------------------

@v1_bp.route("/url-patterns", methods=["GET"])
@jwt_required()
@permission_required("admin.settings.view")
def list_url_patterns():
    return jsonify([_pattern_dict(p) for p in url_pattern_service.all_patterns()]), 200


@v1_bp.route("/url-patterns", methods=["POST"])
@jwt_required()
@permission_required("admin.settings.update")
def create_url_pattern():
    data = json_body()
    post_type = data.get("post_type")
    locale = locale_service.normalize_locale(data.get("locale"))
    pattern = (data.get("pattern") or "").strip()

    if not post_type_registry.has(post_type):
        return jsonify({"error": f"Unknown post type '{post_type}'"}), 400
    if not locale_service.is_supported(locale):
        return jsonify({"error": f"Unsupported locale: {locale}"}), 400
    if not pattern.startswith("/") or ("{slug}" not in pattern and "{path}" not in pattern):
        return jsonify({"error": "pattern must start with / and contain {slug} or {path}"}), 400

    with transactional():
        row = url_pattern_service.create_pattern(
            post_type, locale, pattern, is_default=bool(data.get("is_default", True))
        )
        log_action(
            action="url_pattern.create",
            entity_type="url_pattern",
            entity_id=row.id,
            payload={"post_type": post_type, "locale": locale, "pattern": pattern},
            actor_id=actor_id(),
        )

    return jsonify(_pattern_dict(row)), 201


@v1_bp.route("/url-patterns/<pattern_id>", methods=["DELETE"])
@jwt_required()
@permission_required("admin.settings.update")
def delete_url_pattern(pattern_id):
    row = db.get_or_404(UrlPattern, pattern_id)
    with transactional():
        db.session.delete(row)
        log_action(
            action="url_pattern.delete",
            entity_type="url_pattern",
            entity_id=pattern_id,
            payload={"pattern": row.pattern},
            actor_id=actor_id(),
        )
    return jsonify({"id": pattern_id, "message": "URL pattern deleted"}), 200


# ------------------------
# Redirects
# ------------------------

@v1_bp.route("/redirects", methods=["GET"])
@jwt_required()
@permission_required("admin.settings.view")
def list_redirects():
    query = UrlRedirect.query
    if locale := request.args.get("locale"):
        query = query.filter(UrlRedirect.locale == locale)
    rows = query.order_by(UrlRedirect.created_at.desc()).all()
    return jsonify([_redirect_dict(r) for r in rows]), 200


@v1_bp.route("/redirects", methods=["POST"])
@jwt_required()
@permission_required("admin.settings.update")
def create_redirect():
    data = json_body()
    from_path = (data.get("from_path") or "").strip()
    to_path = (data.get("to_path") or "").strip()
    status_code = int(data.get("status_code") or 301)

    if not from_path.startswith("/") or not to_path:
        return jsonify({"error": "from_path must start with / and to_path is required"}), 400
    if from_path == to_path:
        return jsonify({"error": "from_path and to_path must differ"}), 400
    if status_code not in REDIRECT_STATUS_CODES:
        return jsonify({"error": f"status_code must be one of {REDIRECT_STATUS_CODES}"}), 400

    with transactional():
        row = url_pattern_service.record_redirect(from_path, to_path, data.get("locale"), status_code)
        log_action(
            action="redirect.create",
            entity_type="redirect",
            entity_id=row.id,
            payload={"from_path": from_path, "to_path": to_path},
            actor_id=actor_id(),
        )

    return jsonify(_redirect_dict(row)), 201


@v1_bp.route("/redirects/<redirect_id>", methods=["DELETE"])
@jwt_required()
@permission_required("admin.settings.update")
def delete_redirect(redirect_id):
    row = db.get_or_404(UrlRedirect, redirect_id)
    with transactional():
        db.session.delete(row)
        log_action(
            action="redirect.delete",
            entity_type="redirect",
            entity_id=redirect_id,
            payload={"from_path": row.from_path},
            actor_id=actor_id(),
        )
    return jsonify({"id": redirect_id, "message": "Redirect deleted"}), 200
