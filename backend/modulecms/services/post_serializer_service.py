from typing import Any, Dict

from modulecms.extensions import db
from modulecms.models.post import Post
from modulecms.schemas.canonical_post import CanonicalPost


def serialize(post: Post) -> CanonicalPost:
    """Export ``post`` in the canonical (version 1) format."""
    modules = sorted(post.post_modules, key=lambda pm: pm.order_index)
    family = post.family()

    return CanonicalPost.model_validate({
        "version": 1,
        "post": {
            "type": post.type,
            "locale": post.locale,
            "slug": post.slug,
            "title": post.title,
            "status": post.status,
            "excerpt": post.excerpt,
            "metaTitle": post.meta_title,
            "metaDescription": post.meta_description,
            "canonicalUrl": post.canonical_url,
            "robotsJson": post.robots_json,
            "jsonldOverrides": post.jsonld_overrides,
        },
        "modules": [
            {
                "type": pm.module_instance.type,
                "scope": "global" if pm.module_instance.is_global else "local",
                "orderIndex": pm.order_index,
                "locked": bool(pm.locked),
                "props": pm.module_instance.props,
                "overrides": pm.overrides,
                "globalSlug": pm.module_instance.global_slug,
            }
            for pm in modules
        ],
        "translations": [{"id": member.id, "locale": member.locale} for member in family],
    })


def serialize_by_id(post_id: str) -> Dict[str, Any]:
    post = db.session.get(Post, post_id)
    if post is None:
        raise LookupError("Post not found")
    return serialize(post).model_dump()


def parse(data: Dict[str, Any]) -> CanonicalPost:
    """Validate an import payload; raises pydantic ``ValidationError``."""
    return CanonicalPost.model_validate(data)
