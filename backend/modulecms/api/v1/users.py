from flask import jsonify
from flask_jwt_extended import jwt_required
from modulecms.extensions import db
from modulecms.models.user import User
from modulecms.normalizers.user import normalize_user
from modulecms.services.role_registry import role_registry
from modulecms.utils.audit import log_action
from modulecms.utils.decorators import permission_required
from modulecms.utils.transaction import transactional
from .helpers import actor_id, json_body
from . import v1_bp


@v1_bp.route("/users", methods=["GET"])
@jwt_required()
@permission_required("admin.users.manage")
def list_users():
    users = User.query.order_by(User.created_at.asc()).all()
    return jsonify([normalize_user(user) for user in users]), 200


@v1_bp.route("/users", methods=["POST"])
@jwt_required()
@permission_required("admin.users.manage")
def create_user():
    data = json_body()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password")
    role = data.get("role") or "editor"

    if not email or not password:
        return jsonify({"error": "Email and password required"}), 400
    if not role_registry.has(role):
        return jsonify({"error": f"Unknown role: {role}"}), 400
    if User.query.filter_by(email=email).first():
        return jsonify({"error": "Email already registered"}), 409

    user = User()
    user.email = email
    user.full_name = data.get("full_name")
    user.role = role
    user.is_active = bool(data.get("is_active", True))
    user.set_password(password)

    with transactional():
        db.session.add(user)
        db.session.flush()
        log_action(
            action="user.create",
            entity_type="user",
            entity_id=user.id,
            payload={"email": email, "role": role},
            actor_id=actor_id(),
        )

    return jsonify(normalize_user(user)), 201


@v1_bp.route("/users/<user_id>", methods=["PATCH"])
@jwt_required()
@permission_required("admin.users.manage")
def update_user(user_id):
    user = db.get_or_404(User, user_id)
    data = json_body()

    if "role" in data and not role_registry.has(data["role"]):
        return jsonify({"error": f"Unknown role: {data['role']}"}), 400
    if data.get("is_active") is False and user.id == actor_id():
        return jsonify({"error": "You cannot deactivate your own account"}), 400

    changed = []
    with transactional():
        for field in ("full_name", "role", "is_active"):
            if field in data and getattr(user, field) != data[field]:
                setattr(user, field, data[field])
                changed.append(field)
        if data.get("password"):
            user.set_password(data["password"])
            changed.append("password")
        if changed:
            log_action(
                action="user.update",
                entity_type="user",
                entity_id=user.id,
                payload={"fields": changed},
                actor_id=actor_id(),
            )

    return jsonify(normalize_user(user)), 200


@v1_bp.route("/roles", methods=["GET"])
@jwt_required()
@permission_required("admin.access")
def list_roles():
    return jsonify([
        {**role, "permissions": role_registry.permissions_for(role["name"])}
        for role in role_registry.list()
    ]), 200
