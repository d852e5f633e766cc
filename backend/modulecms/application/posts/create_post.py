from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError

from modulecms.application.exceptions import CreatePostError
from modulecms.application.modules.module_groups import resolve_module_group
from modulecms.domain.invariants.post import assert_post
from modulecms.extensions import db
from modulecms.models.module_group import ModuleGroup
from modulecms.models.base import utcnow
from modulecms.models.module_instance import ModuleInstance
from modulecms.models.post import Post
from modulecms.models.post_module import PostModule
from modulecms.services import locale_service, url_pattern_service
from modulecms.services.post_type_registry import post_type_registry
from modulecms.services.webhook_service import webhook_service
from modulecms.utils.audit import log_action
from modulecms.utils.transaction import transactional


def find_or_create_global(module_type: str, global_slug: str, props: Optional[Dict[str, Any]] = None) -> ModuleInstance:
    """The global instance for ``global_slug``, created with ``props`` when missing."""
    instance = ModuleInstance.query.filter_by(scope="global", global_slug=global_slug).first()
    if instance:
        return instance
    instance = ModuleInstance()
    instance.scope = "global"
    instance.type = module_type
    instance.global_slug = global_slug
    instance.props = dict(props or {})
    db.session.add(instance)
    db.session.flush()
    return instance


def seed_modules_from_group(post: Post, group: ModuleGroup) -> int:
    """Attach one post module per group entry. Caller commits."""
    seeded = 0
    for entry in sorted(group.modules, key=lambda row: row.order_index):
        if entry.scope == "global" and entry.global_slug:
            instance = find_or_create_global(entry.type, entry.global_slug, entry.default_props)
        else:
            instance = ModuleInstance()
            instance.scope = "post"
            instance.type = entry.type
            instance.post_id = post.id
            instance.props = dict(entry.default_props or {})
            db.session.add(instance)
            db.session.flush()

        pm = PostModule()
        pm.post_id = post.id
        pm.module_id = instance.id
        pm.order_index = entry.order_index
        pm.locked = bool(entry.locked)
        db.session.add(pm)
        seeded += 1

    db.session.flush()
    return seeded


def create_post(
    *,
    actor_id: Optional[str],
    data: Dict[str, Any],
) -> Post:
    """
    Create a post and seed its modules from the post type's module group.

    Edge cases handled:
    - Unregistered post type
    - Unsupported locale
    - Duplicate slug per locale (409)
    - Invariant violations
    """
    post_type = data.get("type")
    title = data.get("title")
    slug = data.get("slug")
    locale = locale_service.normalize_locale(data.get("locale"))

    if not post_type or not title or not slug:
        raise CreatePostError("type, title and slug are required", 400)

    if not post_type_registry.has(post_type):
        raise CreatePostError(f"Unknown post type: {post_type}", 400, {"type": post_type})

    if not locale_service.is_supported(locale):
        raise CreatePostError(f"Unsupported locale: {locale}", 400, {"locale": locale})

    if Post.query.filter_by(slug=slug, locale=locale).first():
        raise CreatePostError(
            "A post with this slug already exists for this locale",
            409,
            {"slug": slug, "locale": locale},
        )

    post = Post()
    post.type = post_type
    post.locale = locale
    post.slug = slug
    post.title = title
    post.status = data.get("status") or "draft"
    post.excerpt = data.get("excerpt")
    post.meta_title = data.get("meta_title")
    post.meta_description = data.get("meta_description")
    post.parent_id = data.get("parent_id")
    post.author_id = actor_id

    seo_defaults = (post_type_registry.get(post_type) or {}).get("seo_defaults") or {}
    post.robots_json = data.get("robots_json", seo_defaults.get("robots_json"))

    try:
        with transactional():
            group = resolve_module_group(post_type, data.get("module_group_id"))
            post.module_group_id = group.id if group else None

            db.session.add(post)
            db.session.flush()  # ensures post.id is available

            if group:
                seed_modules_from_group(post, group)
                db.session.expire(post, ["post_modules"])

            url_pattern_service.ensure_defaults_for_post_type(post_type)
            post.canonical_url = url_pattern_service.build_post_path(post)
            if post.status == "published":
                post.published_at = utcnow()

            assert_post(post)

            log_action(
                action="post.create",
                entity_type="post",
                entity_id=post.id,
                payload={
                    "type": post.type,
                    "locale": post.locale,
                    "slug": post.slug,
                    "module_group_id": post.module_group_id,
                },
                actor_id=actor_id,
            )
    except IntegrityError as exc:
        raise CreatePostError(
            "A post with this slug already exists for this locale",
            409,
            {"slug": slug, "locale": locale},
        ) from exc

    webhook_service.dispatch("post.created", {"id": post.id, "type": post.type, "slug": post.slug})
    return post
