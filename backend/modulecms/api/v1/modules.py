from flask import jsonify, request
from flask_jwt_extended import jwt_required
from modulecms.application.modules.global_modules import (
    create_global_module,
    delete_global_module,
    list_global_modules,
    update_global_module,
)
from modulecms.application.modules.module_groups import (
    create_module_group,
    delete_module_group,
    update_module_group,
)
from modulecms.extensions import db
from modulecms.models.module_group import ModuleGroup
from modulecms.models.module_instance import ModuleInstance
from modulecms.normalizers.module import normalize_module_group, normalize_module_instance
from modulecms.services import module_scope_service
from modulecms.services.module_registry import module_registry
from modulecms.services.post_type_registry import post_type_registry
from modulecms.utils.decorators import permission_required
from modulecms.utils.optimistic_lock import enforce_optimistic_lock
from modulecms.utils.transaction import transactional
from .helpers import actor_id, json_body
from . import v1_bp


# ------------------------
# Module definitions
# ------------------------

@v1_bp.route("/modules", methods=["GET"])
@jwt_required()
@permission_required("admin.access")
def list_module_schemas():
    post_type = request.args.get("post_type")
    if post_type:
        types = module_scope_service.allowed_types_for(post_type)
        return jsonify([module_registry.schema(t) for t in types]), 200
    return jsonify(module_registry.all_schemas()), 200


@v1_bp.route("/modules/<module_type>", methods=["GET"])
@jwt_required()
@permission_required("admin.access")
def get_module_schema(module_type):
    if not module_registry.has(module_type):
        return jsonify({"error": f"Module type '{module_type}' is not registered"}), 404
    return jsonify(module_registry.schema(module_type)), 200


@v1_bp.route("/post-types", methods=["GET"])
@jwt_required()
@permission_required("admin.access")
def list_post_types():
    return jsonify([
        {**config, "restricted_modules": module_scope_service.restrictions_for_post_type(name)}
        for name, config in post_type_registry.entries()
    ]), 200


@v1_bp.route("/post-types/<post_type>/module-restrictions", methods=["POST"])
@jwt_required()
@permission_required("admin.settings.update")
def add_module_restriction(post_type):
    module_type = json_body().get("module_type")
    if not post_type_registry.has(post_type):
        return jsonify({"error": f"Unknown post type '{post_type}'"}), 404
    if not module_type or not module_registry.has(module_type):
        return jsonify({"error": "module_type must be a registered module type"}), 400

    with transactional():
        module_scope_service.add_restriction(module_type, post_type)

    return jsonify({
        "post_type": post_type,
        "restricted_modules": module_scope_service.restrictions_for_post_type(post_type),
    }), 201


@v1_bp.route("/post-types/<post_type>/module-restrictions/<module_type>", methods=["DELETE"])
@jwt_required()
@permission_required("admin.settings.update")
def remove_module_restriction(post_type, module_type):
    with transactional():
        removed = module_scope_service.remove_restriction(module_type, post_type)
    return jsonify({"removed": removed}), 200


# ------------------------
# Global modules
# ------------------------

@v1_bp.route("/globals", methods=["GET"])
@jwt_required()
@permission_required("globals.view")
def list_globals():
    rows = list_global_modules(request.args.get("type"))
    return jsonify([
        normalize_module_instance(row["instance"], usage_count=row["usage_count"])
        for row in rows
    ]), 200


@v1_bp.route("/globals", methods=["POST"])
@jwt_required()
@permission_required("globals.edit")
def create_global():
    data = json_body()
    instance = create_global_module(
        module_type=data.get("type"),
        global_slug=data.get("global_slug"),
        props=data.get("props"),
        global_label=data.get("global_label"),
        actor_id=actor_id(),
    )
    return jsonify(normalize_module_instance(instance, usage_count=0)), 201


@v1_bp.route("/globals/<instance_id>", methods=["PATCH"])
@jwt_required()
@permission_required("globals.edit")
def update_global(instance_id):
    data = json_body()
    enforce_optimistic_lock(db.get_or_404(ModuleInstance, instance_id))
    instance = update_global_module(
        instance_id=instance_id,
        props=data.get("props"),
        global_label=data.get("global_label"),
        actor_id=actor_id(),
    )
    return jsonify(normalize_module_instance(instance)), 200


@v1_bp.route("/globals/<instance_id>", methods=["DELETE"])
@jwt_required()
@permission_required("globals.delete")
def delete_global(instance_id):
    delete_global_module(instance_id=instance_id, actor_id=actor_id())
    return jsonify({"id": instance_id, "message": "Global module deleted"}), 200


# ------------------------
# Module groups
# ------------------------

@v1_bp.route("/module-groups", methods=["GET"])
@jwt_required()
@permission_required("admin.access")
def list_module_groups():
    query = ModuleGroup.query
    if post_type := request.args.get("post_type"):
        query = query.filter(ModuleGroup.post_type == post_type)
    groups = query.order_by(ModuleGroup.name.asc()).all()
    return jsonify([normalize_module_group(g) for g in groups]), 200


@v1_bp.route("/module-groups/<group_id>", methods=["GET"])
@jwt_required()
@permission_required("admin.access")
def get_module_group(group_id):
    group = db.get_or_404(ModuleGroup, group_id)
    return jsonify(normalize_module_group(group)), 200


@v1_bp.route("/module-groups", methods=["POST"])
@jwt_required()
@permission_required("admin.settings.update")
def create_module_group_route():
    data = json_body()
    group = create_module_group(
        name=data.get("name"),
        post_type=data.get("post_type"),
        description=data.get("description"),
        modules=data.get("modules"),
    )
    return jsonify(normalize_module_group(group)), 201


@v1_bp.route("/module-groups/<group_id>", methods=["PATCH"])
@jwt_required()
@permission_required("admin.settings.update")
def update_module_group_route(group_id):
    group = update_module_group(group_id=group_id, data=json_body())
    return jsonify(normalize_module_group(group)), 200


@v1_bp.route("/module-groups/<group_id>", methods=["DELETE"])
@jwt_required()
@permission_required("admin.settings.update")
def delete_module_group_route(group_id):
    delete_module_group(group_id=group_id)
    return jsonify({"id": group_id, "message": "Module group deleted"}), 200
