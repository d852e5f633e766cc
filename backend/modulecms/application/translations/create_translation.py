from typing import Any, Dict, Optional

from modulecms.application.exceptions import TranslationError
from modulecms.domain.invariants.post import assert_post
from modulecms.extensions import db
from modulecms.models.module_instance import ModuleInstance
from modulecms.models.post import Post
from modulecms.models.post_module import PostModule
from modulecms.services import locale_service, revision_service, url_pattern_service
from modulecms.services.webhook_service import webhook_service
from modulecms.utils.audit import log_action
from modulecms.utils.jsonb import coerce_json_object
from modulecms.utils.transaction import transactional


def _base_post(post_id: str) -> Post:
    post = db.session.get(Post, post_id)
    if post is None:
        raise TranslationError("Post not found", 404, {"post_id": post_id})
    return post.get_original() if post.is_translation() else post


def clone_modules(source: Post, target: Post) -> int:
    """
    Copy the live modules of ``source`` onto ``target``. Local instances are
    duplicated, global ones shared. Staged rows are skipped. Caller commits.
    """
    cloned = 0
    for pm in sorted(source.post_modules, key=lambda row: row.order_index):
        if pm.review_added or pm.ai_review_added:
            continue
        instance = pm.module_instance
        if instance.is_global:
            module_id = instance.id
        else:
            copy_instance = ModuleInstance()
            copy_instance.scope = "post"
            copy_instance.type = instance.type
            copy_instance.post_id = target.id
            copy_instance.props = dict(coerce_json_object(instance.props))
            db.session.add(copy_instance)
            db.session.flush()
            module_id = copy_instance.id

        row = PostModule()
        row.post_id = target.id
        row.module_id = module_id
        row.order_index = cloned
        row.locked = pm.locked
        row.admin_label = pm.admin_label
        row.overrides = dict(pm.overrides) if pm.overrides else None
        db.session.add(row)
        cloned += 1

    db.session.flush()
    db.session.expire(target, ["post_modules"])
    return cloned


def create_translation(
    *,
    post_id: str,
    locale: str,
    data: Optional[Dict[str, Any]] = None,
    actor_id: Optional[str] = None,
) -> Post:
    """
    Create the ``locale`` member of a post's translation family.

    The new post always hangs off the family root, starts as a draft and
    carries a copy of the root's modules.
    """
    data = data or {}
    base = _base_post(post_id)

    locale = locale_service.normalize_locale(locale)
    if not locale_service.is_supported(locale):
        raise TranslationError(f"Unsupported locale: {locale}", 400, {"locale": locale})

    existing = base.get_translation(locale)
    if existing is not None:
        raise TranslationError(
            f"Translation already exists for locale: {locale}",
            409,
            {"locale": locale, "translation_id": existing.id},
        )

    slug = (data.get("slug") or "").strip() or f"{base.slug}-{locale}"
    if Post.query.filter_by(slug=slug, locale=locale).first():
        raise TranslationError(
            "A post with this slug already exists for this locale",
            409,
            {"slug": slug, "locale": locale},
        )

    translation = Post()
    translation.type = base.type
    translation.locale = locale
    translation.slug = slug
    translation.title = (data.get("title") or "").strip() or base.title
    translation.status = "draft"
    translation.translation_of_id = base.id
    translation.module_group_id = base.module_group_id
    translation.author_id = actor_id or base.author_id
    translation.excerpt = data.get("excerpt")
    translation.meta_title = data.get("meta_title")
    translation.meta_description = data.get("meta_description")
    translation.robots_json = base.robots_json

    with transactional():
        db.session.add(translation)
        db.session.flush()
        cloned = clone_modules(base, translation)
        url_pattern_service.ensure_defaults_for_post_type(translation.type)
        translation.canonical_url = url_pattern_service.build_post_path(translation)
        assert_post(translation)

        revision_service.record_revision(translation, mode="publish", action="translation.create", actor_id=actor_id)
        log_action(
            action="translation.create",
            entity_type="post",
            entity_id=translation.id,
            payload={"base_id": base.id, "locale": locale, "modules": cloned},
            actor_id=actor_id,
        )

    webhook_service.dispatch("post.created", {
        "id": translation.id,
        "type": translation.type,
        "locale": translation.locale,
        "slug": translation.slug,
        "translation_of_id": base.id,
    })
    return translation
