import logging
from typing import Optional

from modulecms.application.exceptions import MediaError
from modulecms.extensions import db
from modulecms.services import media_usage_service
from modulecms.services.storage_service import storage_service
from modulecms.services.webhook_service import webhook_service
from modulecms.utils.audit import log_action
from modulecms.utils.transaction import transactional
from .media_variants import get_media

logger = logging.getLogger(__name__)


def _remove_files(urls) -> int:
    """Delete the given stored files. Returns how many went."""
    return sum(1 for url in urls if storage_service.delete(url))


def delete_media(*, media_id: str, force: bool = False, actor_id: Optional[str] = None) -> None:
    """
    Remove a media asset and its files. Assets still referenced by modules,
    drafts or site settings are refused with 409 unless ``force`` is set.
    """
    media = get_media(media_id)
    usage = media_usage_service.get_usage(media)
    if media_usage_service.is_in_use(usage) and not force:
        message = "This media is currently in use and cannot be deleted."
        if usage["in_settings"]:
            message = "This media is used in site settings and cannot be deleted."
        raise MediaError(message, 409, {"usage": usage})

    url = media.url
    files = [url] + media.derived_urls
    with transactional():
        db.session.delete(media)
        log_action(
            action="media.delete",
            entity_type="media",
            entity_id=media_id,
            payload={"url": url, "forced": bool(force)},
            actor_id=actor_id,
        )

    removed = _remove_files(files)
    logger.info("Deleted media %s (%d files)", media_id, removed)
    webhook_service.dispatch("media.deleted", {"id": media_id, "url": url})
