from flask import jsonify
from flask_jwt_extended import jwt_required
from modulecms.application.posts.reviews import (
    approve_ai_review,
    approve_review,
    promote_ai_review_to_review,
    reject_review_draft,
)
from modulecms.normalizers.post import normalize_post
from modulecms.utils.decorators import permission_required
from .helpers import actor_id, forbidden_unless, json_body
from . import v1_bp

# approving or rejecting a staged layer needs the layer's approve permission
_APPROVE_PERMISSIONS = {
    "review": "posts.review.approve",
    "ai-review": "posts.ai-review.approve",
}


@v1_bp.route("/posts/<post_id>/review/approve", methods=["POST"])
@jwt_required()
@permission_required("posts.review.approve")
def approve_review_route(post_id):
    post = approve_review(post_id=post_id, actor_id=actor_id())
    return jsonify({"message": "Review approved", "post": normalize_post(post)}), 200


@v1_bp.route("/posts/<post_id>/ai-review/approve", methods=["POST"])
@jwt_required()
@permission_required("posts.ai-review.approve")
def approve_ai_review_route(post_id):
    post = approve_ai_review(post_id=post_id, actor_id=actor_id())
    return jsonify({"message": "AI review approved", "post": normalize_post(post)}), 200


@v1_bp.route("/posts/<post_id>/ai-review/promote", methods=["POST"])
@jwt_required()
@permission_required("posts.review.save")
def promote_ai_review_route(post_id):
    post = promote_ai_review_to_review(post_id=post_id, actor_id=actor_id())
    return jsonify({
        "message": "AI review moved to review",
        "post": normalize_post(post, mode="review"),
    }), 200


@v1_bp.route("/posts/<post_id>/reject", methods=["POST"])
@jwt_required()
@permission_required("admin.access")
def reject_review_route(post_id):
    mode = json_body().get("mode") or "review"
    permission = _APPROVE_PERMISSIONS.get(mode)
    if permission and (denied := forbidden_unless(permission)):
        return denied

    post = reject_review_draft(post_id=post_id, mode=mode, actor_id=actor_id())
    return jsonify({"message": f"Discarded {mode} changes", "post_id": post.id}), 200
