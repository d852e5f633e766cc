from flask import jsonify
from flask_jwt_extended import jwt_required
from modulecms.services import locale_service, site_settings_service
from modulecms.utils.audit import log_action
from modulecms.utils.decorators import permission_required
from modulecms.utils.transaction import transactional
from .helpers import actor_id, json_body
from . import v1_bp


@v1_bp.route("/settings", methods=["GET"])
@jwt_required()
@permission_required("admin.settings.view")
def get_settings():
    return jsonify(site_settings_service.get()), 200


@v1_bp.route("/settings", methods=["PATCH"])
@jwt_required()
@permission_required("admin.settings.update")
def update_settings():
    data = json_body()
    unknown = sorted(set(data) - set(site_settings_service.SETTINGS_FIELDS))
    if unknown:
        return jsonify({"error": "Unknown settings fields", "fields": unknown}), 400

    with transactional():
        settings = site_settings_service.upsert(data)
        log_action(
            action="settings.update",
            entity_type="site_settings",
            entity_id="site",
            payload={"fields": sorted(data)},
            actor_id=actor_id(),
        )
    return jsonify(settings), 200


@v1_bp.route("/locales", methods=["GET"])
def list_locales():
    return jsonify({
        "default": locale_service.default_locale(),
        "supported": locale_service.supported_locales(),
    }), 200
