from flask import jsonify, request
from flask_jwt_extended import jwt_required
from modulecms.application.media.delete_media import delete_media
from modulecms.application.media.media_variants import (
    create_dark_base,
    generate_media_variants,
    get_media,
    optimize_media,
)
from modulecms.application.media.rename_media import rename_media
from modulecms.application.media.update_media import update_media
from modulecms.application.media.upload_media import upload_media
from modulecms.models.media_asset import MediaAsset
from modulecms.normalizers.media import normalize_media
from modulecms.normalizers.pagination import normalize_pagination
from modulecms.services import media_usage_service
from modulecms.utils.decorators import permission_required
from modulecms.utils.pagination import apply_cursor, paginate_cursor
from .helpers import actor_id, json_body
from . import v1_bp


def _admin_media(media):
    return normalize_media(media, admin=True)


@v1_bp.route("/media", methods=["GET"])
@jwt_required()
@permission_required("media.view")
def list_media():
    limit = min(int(request.args.get("limit", 20)), 100)
    query = MediaAsset.query

    if search := request.args.get("q"):
        query = query.filter(MediaAsset.original_filename.ilike(f"%{search}%"))
    if mime := request.args.get("mime"):
        query = query.filter(MediaAsset.mime_type.like(f"{mime}%"))

    query = apply_cursor(query, model=MediaAsset, cursor=request.args.get("cursor"))
    items, meta = paginate_cursor(query, model=MediaAsset, limit=limit)
    return jsonify(normalize_pagination(items, _admin_media, cursor=meta)), 200


@v1_bp.route("/media", methods=["POST"])
@jwt_required()
@permission_required("media.upload")
def upload_media_route():
    file = request.files.get("file")
    if file is None or not file.filename:
        return jsonify({"error": "file is required"}), 400

    media = upload_media(
        file=file,
        alt_text=request.form.get("alt_text"),
        caption=request.form.get("caption"),
        generate_variants=request.form.get("generate_variants", "true").lower() != "false",
        actor_id=actor_id(),
    )
    return jsonify(normalize_media(media, admin=True)), 201


@v1_bp.route("/media/<media_id>", methods=["GET"])
@jwt_required()
@permission_required("media.view")
def get_media_route(media_id):
    return jsonify(normalize_media(get_media(media_id), admin=True)), 200


@v1_bp.route("/media/<media_id>", methods=["PATCH"])
@jwt_required()
@permission_required("media.upload")
def update_media_route(media_id):
    media = update_media(media_id=media_id, data=json_body(), actor_id=actor_id())
    return jsonify(normalize_media(media, admin=True)), 200


@v1_bp.route("/media/<media_id>", methods=["DELETE"])
@jwt_required()
@permission_required("media.delete")
def delete_media_route(media_id):
    force = request.args.get("force", "false").lower() in ("1", "true", "yes")
    delete_media(media_id=media_id, force=force, actor_id=actor_id())
    return jsonify({"id": media_id, "message": "Media deleted"}), 200


@v1_bp.route("/media/<media_id>/usage", methods=["GET"])
@jwt_required()
@permission_required("media.view")
def media_usage(media_id):
    usage = media_usage_service.get_usage(get_media(media_id))
    return jsonify({**usage, "in_use": media_usage_service.is_in_use(usage)}), 200


@v1_bp.route("/media/<media_id>/rename", methods=["POST"])
@jwt_required()
@permission_required("media.replace")
def rename_media_route(media_id):
    media = rename_media(media_id=media_id, filename=json_body().get("filename"), actor_id=actor_id())
    return jsonify(normalize_media(media, admin=True)), 200


@v1_bp.route("/media/<media_id>/variants", methods=["POST"])
@jwt_required()
@permission_required("media.variants.generate")
def generate_variants_route(media_id):
    data = json_body()
    media = generate_media_variants(
        media_id=media_id,
        theme=data.get("theme") or "light",
        specs=data.get("specs"),
        crop_rect=data.get("crop_rect"),
        focal_point=data.get("focal_point"),
        actor_id=actor_id(),
    )
    return jsonify(normalize_media(media, admin=True)), 200


@v1_bp.route("/media/<media_id>/dark-base", methods=["POST"])
@jwt_required()
@permission_required("media.variants.generate")
def dark_base_route(media_id):
    media = create_dark_base(media_id=media_id, actor_id=actor_id())
    return jsonify(normalize_media(media, admin=True)), 200


@v1_bp.route("/media/<media_id>/optimize", methods=["POST"])
@jwt_required()
@permission_required("media.optimize")
def optimize_media_route(media_id):
    media = optimize_media(media_id=media_id, actor_id=actor_id())
    return jsonify(normalize_media(media, admin=True)), 200
