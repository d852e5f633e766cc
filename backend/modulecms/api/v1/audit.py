from flask import request, jsonify
from flask_jwt_extended import jwt_required
from modulecms.models.audit_log import AuditLog
from modulecms.models.user import User
from modulecms.normalizers.audit import normalize_audit_log
from modulecms.normalizers.pagination import normalize_pagination
from modulecms.utils.decorators import roles_required
from modulecms.utils.pagination import apply_cursor, paginate_cursor
from . import v1_bp


@v1_bp.route("/audit", methods=["GET"])
@jwt_required()
@roles_required("admin")
def list_audit_logs():
    limit = min(int(request.args.get("limit", 20)), 100)

    query = AuditLog.query

    # Optional filters
    if action := request.args.get("action"):
        query = query.filter(AuditLog.action == action)

    if entity_type := request.args.get("entity_type"):
        query = query.filter(AuditLog.entity_type == entity_type)

    if entity_id := request.args.get("entity_id"):
        query = query.filter(AuditLog.entity_id == entity_id)

    if actor := request.args.get("actor_id"):
        query = query.filter(AuditLog.actor_id == actor)

    query = apply_cursor(query, model=AuditLog, cursor=request.args.get("cursor"))
    logs, meta = paginate_cursor(query, model=AuditLog, limit=limit)

    actor_ids = {log.actor_id for log in logs if log.actor_id}
    actors = {u.id: u for u in User.query.filter(User.id.in_(actor_ids)).all()} if actor_ids else {}

    return jsonify(
        normalize_pagination(logs, lambda log: normalize_audit_log(log, actors), cursor=meta)
    ), 200
