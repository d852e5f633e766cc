from flask import jsonify
from flask_jwt_extended import jwt_required
from modulecms.application.exceptions import TranslationError
from modulecms.application.translations.create_translation import create_translation
from modulecms.application.translations.delete_translation import delete_translation
from modulecms.extensions import db
from modulecms.models.post import Post
from modulecms.normalizers.post import normalize_post_summary
from modulecms.services import locale_service
from modulecms.utils.decorators import permission_required
from .helpers import actor_id, json_body
from . import v1_bp


@v1_bp.route("/posts/<post_id>/translations", methods=["GET"])
@jwt_required()
@permission_required("admin.access")
def list_translations(post_id):
    post = db.session.get(Post, post_id)
    if post is None:
        raise TranslationError("Post not found", 404, {"post_id": post_id})

    family = {member.locale: member for member in post.family()}
    return jsonify({
        "root_id": post.root_id,
        "translations": [normalize_post_summary(member) for member in family.values()],
        "missing_locales": [
            locale for locale in locale_service.supported_locales() if locale not in family
        ],
    }), 200


@v1_bp.route("/posts/<post_id>/translations", methods=["POST"])
@jwt_required()
@permission_required("posts.create")
def create_translation_route(post_id):
    data = json_body()
    translation = create_translation(
        post_id=post_id,
        locale=data.get("locale"),
        data=data,
        actor_id=actor_id(),
    )
    return jsonify({
        "id": translation.id,
        "message": "Translation created",
        "post": normalize_post_summary(translation),
    }), 201


@v1_bp.route("/posts/<post_id>/translations/<locale>", methods=["DELETE"])
@jwt_required()
@permission_required("posts.delete")
def delete_translation_route(post_id, locale):
    deleted_id = delete_translation(post_id=post_id, locale=locale, actor_id=actor_id())
    return jsonify({"id": deleted_id, "message": "Translation deleted"}), 200
