from flask import request, jsonify, g
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    get_jwt_identity,
    jwt_required,
)
from modulecms.extensions import db
from modulecms.models.base import utcnow
from modulecms.models.user import User
from modulecms.normalizers.user import normalize_user
from modulecms.utils.transaction import transactional
from . import v1_bp


def issue_tokens(user: User):
    claims = {"role": user.role}
    return {
        "access_token": create_access_token(identity=user.id, additional_claims=claims),
        "refresh_token": create_refresh_token(identity=user.id, additional_claims=claims),
    }


@v1_bp.route("/auth/login", methods=["POST"])
def login():
    data = request.get_json(silent=True)
    if not data:
        return jsonify({"error": "Invalid request body"}), 400

    email = (data.get("email") or "").strip().lower()
    password = data.get("password")

    if not email or not password:
        return jsonify({"error": "Email and password required"}), 400

    user = User.query.filter_by(email=email).first()

    if not user or not user.check_password(password):
        return jsonify({"error": "Invalid credentials"}), 401

    if not user.is_active:
        return jsonify({"error": "User account disabled"}), 403

    with transactional():
        user.last_login_at = utcnow()

    return jsonify(issue_tokens(user)), 200


@v1_bp.route("/auth/refresh", methods=["POST"])
@jwt_required(refresh=True)
def refresh():
    user = db.session.get(User, get_jwt_identity())
    if user is None or not user.is_active:
        return jsonify({"error": "User account disabled"}), 403

    access_token = create_access_token(identity=user.id, additional_claims={"role": user.role})
    return jsonify({"access_token": access_token}), 200


@v1_bp.route("/auth/me", methods=["GET"])
@jwt_required()
def me():
    user = g.current_user
    if user is None:
        return jsonify({"error": "User account disabled"}), 403
    return jsonify(normalize_user(user, with_permissions=True)), 200
