from modulecms.models.post import POST_STATUSES
from modulecms.utils.slugs import is_valid_slug
from .exceptions import InvariantViolation


def assert_post(post, publish=False):
    if not post.title or not post.title.strip():
        raise InvariantViolation("Post title is required.")

    if not is_valid_slug(post.slug):
        raise InvariantViolation(
            f"Invalid slug '{post.slug}': use lowercase letters, digits and dashes."
        )

    if post.status not in POST_STATUSES:
        raise InvariantViolation(f"Unknown post status: {post.status}")

    if post.parent_id is not None and post.parent_id == post.id:
        raise InvariantViolation("A post cannot be its own parent.")

    if post.translation_of_id is not None and post.translation_of_id == post.id:
        raise InvariantViolation("A post cannot be a translation of itself.")

    if publish and post.deleted_at is not None:
        raise InvariantViolation("Cannot publish a deleted post.")

    orders = [pm.order_index for pm in post.post_modules]
    if len(orders) != len(set(orders)):
        raise InvariantViolation(f"Duplicate module order positions: {sorted(orders)}")
