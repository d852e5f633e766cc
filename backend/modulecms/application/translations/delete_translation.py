from typing import Optional

from modulecms.application.exceptions import TranslationError
from modulecms.application.posts.delete_post import purge_post
from modulecms.extensions import db
from modulecms.models.post import Post
from modulecms.services.webhook_service import webhook_service
from modulecms.utils.audit import log_action
from modulecms.utils.transaction import transactional


def delete_translation(*, post_id: str, locale: str, actor_id: Optional[str] = None) -> str:
    """Remove the ``locale`` member of the family of ``post_id``. The root cannot go this way."""
    post = db.session.get(Post, post_id)
    if post is None:
        raise TranslationError("Post not found", 404, {"post_id": post_id})

    if not post.is_translation() and post.locale == locale:
        raise TranslationError(
            "Cannot delete the original post via the translations endpoint",
            400,
            {"post_id": post_id, "locale": locale},
        )

    translation = post.get_translation(locale)
    if translation is None:
        raise TranslationError(f"Translation not found for locale: {locale}", 404, {"locale": locale})
    if not translation.is_translation():
        raise TranslationError(
            "Cannot delete the original post via the translations endpoint",
            400,
            {"post_id": translation.id, "locale": locale},
        )

    translation_id = translation.id
    with transactional():
        purge_post(translation)
        log_action(
            action="translation.delete",
            entity_type="post",
            entity_id=translation_id,
            payload={"root_id": translation.translation_of_id, "locale": locale},
            actor_id=actor_id,
        )

    webhook_service.dispatch("post.deleted", {"id": translation_id, "soft": False, "locale": locale})
    return translation_id
