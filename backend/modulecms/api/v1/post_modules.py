from flask import jsonify
from flask_jwt_extended import jwt_required
from modulecms.application.modules.add_module_to_post import add_module_to_post
from modulecms.application.modules.delete_post_module import delete_post_module
from modulecms.application.modules.reorder_post_modules import reorder_post_modules
from modulecms.application.modules.update_post_module import update_post_module
from modulecms.extensions import db
from modulecms.models.post_module import PostModule
from modulecms.normalizers.post import normalize_post_module
from modulecms.utils.decorators import permission_required
from modulecms.utils.optimistic_lock import enforce_optimistic_lock
from .helpers import MODE_PERMISSIONS, actor_id, forbidden_unless, json_body, read_mode
from . import v1_bp

_EDITABLE = ("order_index", "locked", "admin_label")


@v1_bp.route("/posts/<post_id>/modules", methods=["POST"])
@jwt_required()
@permission_required("admin.access")
def add_module(post_id):
    data = json_body()
    mode = read_mode(data)
    if denied := forbidden_unless(MODE_PERMISSIONS[mode]):
        return denied

    if not data.get("type"):
        return jsonify({"error": "type is required"}), 400

    pm = add_module_to_post(
        post_id=post_id,
        module_type=data["type"],
        scope=data.get("scope") or "local",
        props=data.get("props"),
        global_slug=data.get("global_slug"),
        order_index=data.get("order_index"),
        locked=bool(data.get("locked", False)),
        admin_label=data.get("admin_label"),
        mode=mode,
        actor_id=actor_id(),
    )
    return jsonify(normalize_post_module(pm)), 201


@v1_bp.route("/post-modules/<post_module_id>", methods=["PATCH"])
@jwt_required()
@permission_required("admin.access")
def update_module(post_module_id):
    data = json_body()
    mode = read_mode(data)
    if denied := forbidden_unless(MODE_PERMISSIONS[mode]):
        return denied
    enforce_optimistic_lock(db.get_or_404(PostModule, post_module_id))

    kwargs = {field: data[field] for field in _EDITABLE if field in data}
    # local modules send their edit as props, globals as overrides
    if "overrides" in data:
        kwargs["overrides"] = data["overrides"]
    elif "props" in data:
        kwargs["overrides"] = data["props"]

    pm = update_post_module(post_module_id=post_module_id, mode=mode, actor_id=actor_id(), **kwargs)
    return jsonify(normalize_post_module(pm)), 200


@v1_bp.route("/post-modules/<post_module_id>", methods=["DELETE"])
@jwt_required()
@permission_required("admin.access")
def delete_module(post_module_id):
    mode = read_mode()
    if denied := forbidden_unless(MODE_PERMISSIONS[mode]):
        return denied

    delete_post_module(post_module_id=post_module_id, mode=mode, actor_id=actor_id())
    return jsonify({"id": post_module_id, "message": "Module removed"}), 200


@v1_bp.route("/posts/<post_id>/modules/reorder", methods=["POST"])
@jwt_required()
@permission_required("posts.edit")
def reorder_modules(post_id):
    ids = json_body().get("ids")
    if not isinstance(ids, list) or not ids:
        return jsonify({"error": "ids must be a non-empty list"}), 400

    rows = reorder_post_modules(post_id=post_id, ordered_ids=ids, actor_id=actor_id())
    return jsonify([normalize_post_module(pm) for pm in rows]), 200
