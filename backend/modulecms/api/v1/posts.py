from flask import jsonify, request
from flask_jwt_extended import jwt_required
from modulecms.application.exceptions import UpdatePostError
from modulecms.application.posts.bulk_action import BULK_ACTION_PERMISSIONS, bulk_action
from modulecms.application.posts.canonical import import_create, import_replace
from modulecms.application.posts.create_post import create_post
from modulecms.application.posts.delete_post import hard_delete_post, restore_post, soft_delete_post
from modulecms.application.posts.publish_post import archive_post, publish_post, unpublish_post
from modulecms.application.posts.reorder_posts import reorder_posts
from modulecms.application.posts.restore_revision import restore_revision
from modulecms.application.posts.update_post import update_post
from modulecms.extensions import db
from modulecms.models.post import Post
from modulecms.models.post_revision import PostRevision
from modulecms.normalizers.pagination import normalize_pagination
from modulecms.normalizers.post import normalize_post, normalize_post_summary, normalize_revision
from modulecms.services import post_serializer_service, revision_service
from modulecms.utils.decorators import permission_required
from modulecms.utils.optimistic_lock import enforce_optimistic_lock
from modulecms.utils.pagination import paginate_offset, read_page_args
from .helpers import MODE_PERMISSIONS, actor_id, forbidden_unless, json_body, read_mode
from . import v1_bp


def _get_post(post_id) -> Post:
    post = db.session.get(Post, post_id)
    if post is None:
        raise UpdatePostError("Post not found", 404, {"post_id": post_id})
    return post


# ------------------------
# Posts
# ------------------------

@v1_bp.route("/posts", methods=["GET"])
@jwt_required()
@permission_required("admin.access")
def list_posts():
    query = Post.query

    if post_type := request.args.get("type"):
        query = query.filter(Post.type == post_type)
    if locale := request.args.get("locale"):
        query = query.filter(Post.locale == locale)
    if status := request.args.get("status"):
        query = query.filter(Post.status == status)
    if search := request.args.get("q"):
        query = query.filter(Post.title.ilike(f"%{search}%"))
    if request.args.get("parent_id"):
        query = query.filter(Post.parent_id == request.args["parent_id"])

    if request.args.get("deleted") == "only":
        query = query.filter(Post.deleted_at.isnot(None))
    elif request.args.get("deleted") != "include":
        query = query.filter(Post.deleted_at.is_(None))

    page, per_page = read_page_args()
    posts, meta = paginate_offset(
        query.order_by(Post.order_index.asc(), Post.created_at.desc()),
        page=page,
        per_page=per_page,
    )
    return jsonify(normalize_pagination(posts, normalize_post_summary, offset=meta)), 200


@v1_bp.route("/posts", methods=["POST"])
@jwt_required()
@permission_required("posts.create")
def create_post_route():
    data = json_body()
    if data.get("status") == "published" and (denied := forbidden_unless("posts.publish")):
        return denied

    post = create_post(actor_id=actor_id(), data=data)
    return jsonify({
        "id": post.id,
        "message": "Post created successfully",
        "post": normalize_post_summary(post),
    }), 201


@v1_bp.route("/posts/<post_id>", methods=["GET"])
@jwt_required()
@permission_required("admin.access")
def get_post(post_id):
    post = _get_post(post_id)
    mode = read_mode()
    return jsonify(normalize_post(post, mode=mode, locale=request.args.get("locale"))), 200


@v1_bp.route("/posts/<post_id>", methods=["PATCH"])
@jwt_required()
@permission_required("admin.access")
def update_post_route(post_id):
    data = json_body()
    mode = read_mode(data)

    if denied := forbidden_unless(MODE_PERMISSIONS[mode]):
        return denied
    enforce_optimistic_lock(_get_post(post_id))
    if mode == "publish" and data.get("status") == "published" and (denied := forbidden_unless("posts.publish")):
        return denied

    fields = {k: v for k, v in data.items() if k != "mode"}
    post = update_post(post_id=post_id, data=fields, mode=mode, actor_id=actor_id())
    return jsonify(normalize_post(post, mode=mode)), 200


@v1_bp.route("/posts/<post_id>/publish", methods=["POST"])
@jwt_required()
@permission_required("posts.publish")
def publish_post_route(post_id):
    result = publish_post(post_id=post_id, actor_id=actor_id())
    return jsonify({**result, "message": "Post published"}), 200


@v1_bp.route("/posts/<post_id>/unpublish", methods=["POST"])
@jwt_required()
@permission_required("posts.publish")
def unpublish_post_route(post_id):
    post = unpublish_post(post_id=post_id, actor_id=actor_id())
    return jsonify({"post_id": post.id, "status": post.status, "message": "Post unpublished"}), 200


@v1_bp.route("/posts/<post_id>/archive", methods=["POST"])
@jwt_required()
@permission_required("posts.archive")
def archive_post_route(post_id):
    post = archive_post(post_id=post_id, actor_id=actor_id())
    return jsonify({"post_id": post.id, "status": post.status, "message": "Post archived"}), 200


@v1_bp.route("/posts/<post_id>", methods=["DELETE"])
@jwt_required()
@permission_required("posts.delete")
def delete_post_route(post_id):
    post = soft_delete_post(post_id=post_id, actor_id=actor_id())
    return jsonify({"post_id": post.id, "deleted_at": post.deleted_at.isoformat()}), 200


@v1_bp.route("/posts/<post_id>/restore", methods=["POST"])
@jwt_required()
@permission_required("posts.delete")
def restore_post_route(post_id):
    post = restore_post(post_id=post_id, actor_id=actor_id())
    return jsonify({"post_id": post.id, "status": post.status, "message": "Post restored"}), 200


@v1_bp.route("/posts/<post_id>/permanent", methods=["DELETE"])
@jwt_required()
@permission_required("posts.delete")
def hard_delete_post_route(post_id):
    hard_delete_post(post_id=post_id, actor_id=actor_id())
    return jsonify({"post_id": post_id, "message": "Post permanently deleted"}), 200


@v1_bp.route("/posts/bulk", methods=["POST"])
@jwt_required()
@permission_required("admin.access")
def bulk_posts():
    data = json_body()
    action = data.get("action")
    permission = BULK_ACTION_PERMISSIONS.get(action)
    if permission and (denied := forbidden_unless(permission)):
        return denied

    result = bulk_action(action=action, ids=data.get("ids") or [], actor_id=actor_id())
    return jsonify(result), 200


@v1_bp.route("/posts/reorder", methods=["POST"])
@jwt_required()
@permission_required("posts.edit")
def reorder_posts_route():
    data = json_body()
    result = reorder_posts(
        scope=data.get("scope") or {},
        items=data.get("items") or [],
        actor_id=actor_id(),
    )
    return jsonify(result), 200


# ------------------------
# Revisions
# ------------------------

@v1_bp.route("/posts/<post_id>/revisions", methods=["GET"])
@jwt_required()
@permission_required("admin.access")
def list_revisions(post_id):
    _get_post(post_id)
    revisions = revision_service.list_revisions(post_id)
    return jsonify([normalize_revision(r) for r in revisions]), 200


@v1_bp.route("/posts/<post_id>/revisions/<revision_id>", methods=["GET"])
@jwt_required()
@permission_required("admin.access")
def get_revision(post_id, revision_id):
    revision = PostRevision.query.filter_by(id=revision_id, post_id=post_id).first_or_404()
    return jsonify(normalize_revision(revision, with_snapshot=True)), 200


@v1_bp.route("/posts/<post_id>/revisions/<revision_id>/restore", methods=["POST"])
@jwt_required()
@permission_required("posts.revisions.manage")
def restore_revision_route(post_id, revision_id):
    result = restore_revision(post_id=post_id, revision_id=revision_id, actor_id=actor_id())
    return jsonify({**result, "message": "Revision restored"}), 200


# ------------------------
# Canonical export / import
# ------------------------

@v1_bp.route("/posts/<post_id>/export", methods=["GET"])
@jwt_required()
@permission_required("posts.export")
def export_post(post_id):
    _get_post(post_id)
    return jsonify(post_serializer_service.serialize_by_id(post_id)), 200


@v1_bp.route("/posts/import", methods=["POST"])
@jwt_required()
@permission_required("posts.create")
def import_post():
    post = import_create(data=json_body(), actor_id=actor_id())
    return jsonify({"id": post.id, "message": "Post imported"}), 201


@v1_bp.route("/posts/<post_id>/import", methods=["PUT"])
@jwt_required()
@permission_required("posts.edit")
def import_replace_post(post_id):
    post = import_replace(post_id=post_id, data=json_body(), actor_id=actor_id())
    return jsonify({"id": post.id, "message": "Post replaced from import"}), 200
