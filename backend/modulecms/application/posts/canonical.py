from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from modulecms.application.exceptions import CanonicalImportError, UpdatePostError
from modulecms.domain.invariants.post import assert_post
from modulecms.extensions import db
from modulecms.models.base import utcnow
from modulecms.models.module_instance import ModuleInstance
from modulecms.models.post import Post
from modulecms.models.post_module import PostModule
from modulecms.schemas.canonical_post import CanonicalModule, CanonicalPost
from modulecms.services import locale_service, post_serializer_service, revision_service, url_pattern_service
from modulecms.services.module_registry import module_registry
from modulecms.services.post_type_registry import post_type_registry
from modulecms.utils.audit import log_action
from modulecms.utils.transaction import transactional
from .create_post import find_or_create_global
from .update_post import ensure_slug_available

CANONICAL_FIELD_MAP = {
    "title": "title",
    "slug": "slug",
    "excerpt": "excerpt",
    "metaTitle": "meta_title",
    "metaDescription": "meta_description",
    "canonicalUrl": "canonical_url",
    "robotsJson": "robots_json",
    "jsonldOverrides": "jsonld_overrides",
}


def parse_payload(data: Dict[str, Any]) -> CanonicalPost:
    try:
        return post_serializer_service.parse(data)
    except ValidationError as exc:
        raise CanonicalImportError(
            "Invalid canonical post payload",
            422,
            {"errors": exc.errors(include_url=False, include_input=False, include_context=False)},
        ) from exc


def _check_module_types(modules: List[CanonicalModule]) -> None:
    unknown = sorted({m.type for m in modules if not module_registry.has(m.type)})
    if unknown:
        raise CanonicalImportError("Unknown module types in payload", 400, {"types": unknown})


def clear_post_modules(post: Post) -> int:
    """Remove every module row of ``post`` and its non-global instances. Caller commits."""
    instance_ids = []
    rows = PostModule.query.filter_by(post_id=post.id).all()
    for pm in rows:
        if not pm.module_instance.is_global:
            instance_ids.append(pm.module_id)
        db.session.delete(pm)
    db.session.flush()
    if instance_ids:
        ModuleInstance.query.filter(ModuleInstance.id.in_(instance_ids)).delete(synchronize_session=False)
    db.session.expire(post, ["post_modules"])
    return len(rows)


def build_modules(
    post: Post,
    modules: List[CanonicalModule],
    *,
    added_flag: Optional[str] = None,
) -> List[PostModule]:
    """
    Create post modules from canonical entries. ``added_flag`` names the
    staged ``*_added`` column to set on each new row. Caller commits.
    """
    created = []
    for entry in sorted(modules, key=lambda m: m.orderIndex):
        if entry.scope == "global":
            instance = find_or_create_global(entry.type, entry.globalSlug, entry.props)
            if instance.type != entry.type:
                raise CanonicalImportError(
                    f"Global module '{entry.globalSlug}' is a '{instance.type}' module",
                    409,
                    {"global_slug": entry.globalSlug, "type": entry.type},
                )
        else:
            instance = ModuleInstance()
            instance.scope = "post"
            instance.type = entry.type
            instance.post_id = post.id
            instance.props = dict(entry.props or {})
            db.session.add(instance)
            db.session.flush()

        pm = PostModule()
        pm.post_id = post.id
        pm.module_id = instance.id
        pm.order_index = entry.orderIndex
        pm.locked = entry.locked
        pm.overrides = dict(entry.overrides) if entry.overrides else None
        if added_flag:
            setattr(pm, added_flag, True)
        db.session.add(pm)
        created.append(pm)

    db.session.flush()
    db.session.expire(post, ["post_modules"])
    return created


def _apply_fields(post: Post, fields: Dict[str, Any]) -> None:
    for key, column in CANONICAL_FIELD_MAP.items():
        if key in fields:
            setattr(post, column, fields[key])


def import_create(*, data: Dict[str, Any], actor_id: Optional[str] = None) -> Post:
    """Create a new post from a canonical payload."""
    canonical = parse_payload(data)
    fields = canonical.post
    _check_module_types(canonical.modules)

    if not post_type_registry.has(fields.type):
        raise CanonicalImportError(f"Unknown post type: {fields.type}", 400, {"type": fields.type})
    locale = locale_service.normalize_locale(fields.locale)
    if not locale_service.is_supported(locale):
        raise CanonicalImportError(f"Unsupported locale: {locale}", 400, {"locale": locale})
    if Post.query.filter_by(slug=fields.slug, locale=locale).first():
        raise CanonicalImportError(
            "A post with this slug already exists for this locale",
            409,
            {"slug": fields.slug, "locale": locale},
        )

    post = Post()
    post.type = fields.type
    post.locale = locale
    post.status = fields.status
    post.author_id = actor_id
    _apply_fields(post, fields.model_dump())
    if post.status == "published":
        post.published_at = utcnow()

    with transactional():
        db.session.add(post)
        db.session.flush()
        build_modules(post, canonical.modules)
        url_pattern_service.ensure_defaults_for_post_type(post.type)
        if not post.canonical_url:
            post.canonical_url = url_pattern_service.build_post_path(post)
        assert_post(post)

        revision_service.record_revision(post, mode="publish", action="post.import", actor_id=actor_id)
        log_action(
            action="post.import",
            entity_type="post",
            entity_id=post.id,
            payload={"modules": len(canonical.modules), "slug": post.slug},
            actor_id=actor_id,
        )
    return post


def import_replace(*, post_id: str, data: Dict[str, Any], actor_id: Optional[str] = None) -> Post:
    """
    Overwrite an existing post's fields and modules with a canonical payload.
    Post type and locale are kept; global instances are reused, never deleted.
    """
    post = db.session.get(Post, post_id)
    if post is None:
        raise CanonicalImportError("Post not found", 404, {"post_id": post_id})

    canonical = parse_payload(data)
    _check_module_types(canonical.modules)
    fields = canonical.post.model_dump()

    with transactional():
        if fields.get("slug") and fields["slug"] != post.slug:
            try:
                ensure_slug_available(post, fields["slug"])
            except UpdatePostError as exc:
                raise CanonicalImportError(exc.message, exc.status_code, exc.meta) from exc
        _apply_fields(post, fields)
        if fields.get("status") and fields["status"] != post.status:
            post.status = fields["status"]
            if post.status == "published" and not post.published_at:
                post.published_at = utcnow()

        clear_post_modules(post)
        build_modules(post, canonical.modules)
        assert_post(post, publish=post.status == "published")

        revision_service.record_revision(post, mode="publish", action="post.import_replace", actor_id=actor_id)
        log_action(
            action="post.import_replace",
            entity_type="post",
            entity_id=post.id,
            payload={"modules": len(canonical.modules)},
            actor_id=actor_id,
        )
    return post
