from flask import jsonify
from flask_jwt_extended import jwt_required
from modulecms.application.menus.manage_menus import (
    add_menu_item,
    create_menu,
    delete_menu,
    delete_menu_item,
    reorder_menu_items,
    update_menu,
    update_menu_item,
)
from modulecms.application.exceptions import MenuError
from modulecms.models.menu import Menu
from modulecms.services.menu_service import menu_service
from modulecms.utils.decorators import permission_required
from .helpers import actor_id, json_body
from . import v1_bp


def _serialized(menu_id):
    menu = menu_service.get(menu_id)
    if menu is None:
        raise MenuError("Menu not found", 404, {"menu_id": menu_id})
    return menu_service.serialize(menu)


@v1_bp.route("/menus", methods=["GET"])
@jwt_required()
@permission_required("menus.view")
def list_menus():
    menus = Menu.query.order_by(Menu.name.asc()).all()
    return jsonify([
        {"id": m.id, "name": m.name, "slug": m.slug, "locale": m.locale, "item_count": len(m.items)}
        for m in menus
    ]), 200


@v1_bp.route("/menus", methods=["POST"])
@jwt_required()
@permission_required("menus.edit")
def create_menu_route():
    data = json_body()
    menu = create_menu(
        name=data.get("name"),
        slug=data.get("slug"),
        locale=data.get("locale"),
        actor_id=actor_id(),
    )
    return jsonify(menu_service.serialize(menu)), 201


@v1_bp.route("/menus/<menu_id>", methods=["GET"])
@jwt_required()
@permission_required("menus.view")
def get_menu(menu_id):
    return jsonify(_serialized(menu_id)), 200


@v1_bp.route("/menus/<menu_id>", methods=["PATCH"])
@jwt_required()
@permission_required("menus.edit")
def update_menu_route(menu_id):
    menu = update_menu(menu_id=menu_id, data=json_body(), actor_id=actor_id())
    return jsonify(menu_service.serialize(menu)), 200


@v1_bp.route("/menus/<menu_id>", methods=["DELETE"])
@jwt_required()
@permission_required("menus.delete")
def delete_menu_route(menu_id):
    delete_menu(menu_id=menu_id, actor_id=actor_id())
    return jsonify({"id": menu_id, "message": "Menu deleted"}), 200


@v1_bp.route("/menus/<menu_id>/items", methods=["POST"])
@jwt_required()
@permission_required("menus.edit")
def add_menu_item_route(menu_id):
    item = add_menu_item(menu_id=menu_id, data=json_body(), actor_id=actor_id())
    return jsonify({"id": item.id, "menu": _serialized(menu_id)}), 201


@v1_bp.route("/menus/<menu_id>/items/<item_id>", methods=["PATCH"])
@jwt_required()
@permission_required("menus.edit")
def update_menu_item_route(menu_id, item_id):
    update_menu_item(menu_id=menu_id, item_id=item_id, data=json_body(), actor_id=actor_id())
    return jsonify(_serialized(menu_id)), 200


@v1_bp.route("/menus/<menu_id>/items/<item_id>", methods=["DELETE"])
@jwt_required()
@permission_required("menus.edit")
def delete_menu_item_route(menu_id, item_id):
    delete_menu_item(menu_id=menu_id, item_id=item_id, actor_id=actor_id())
    return jsonify(_serialized(menu_id)), 200


@v1_bp.route("/menus/<menu_id>/reorder", methods=["POST"])
@jwt_required()
@permission_required("menus.edit")
def reorder_menu_route(menu_id):
    reorder_menu_items(menu_id=menu_id, items=json_body().get("items") or [], actor_id=actor_id())
    return jsonify(_serialized(menu_id)), 200
