from typing import Dict, List, Optional

from modulecms.application.exceptions import MediaError
from modulecms.models.media_asset import MediaAsset
from modulecms.models.module_instance import ModuleInstance
from modulecms.models.post import Post
from modulecms.models.post_module import PostModule
from modulecms.services.media_service import media_service
from modulecms.services.media_usage_service import json_like
from modulecms.services.storage_service import storage_service
from modulecms.utils.audit import log_action
from modulecms.utils.jsonb import replace_in_json
from modulecms.utils.transaction import transactional
from .media_variants import get_media

_REFERENCE_COLUMNS = (
    (ModuleInstance, ("props", "review_props", "ai_review_props")),
    (PostModule, ("overrides", "review_overrides", "ai_review_overrides")),
    (Post, ("review_draft", "ai_review_draft")),
)


def _rewrite(value, pairs: List[Dict[str, str]]):
    for pair in pairs:
        value = replace_in_json(value, pair["old_url"], pair["new_url"])
    return value


def rewrite_references(pairs: List[Dict[str, str]]) -> int:
    """Swap old URLs for new ones in every JSON column that can hold media. Caller commits."""
    if not pairs:
        return 0
    needles = [p["old_url"] for p in pairs]
    touched = 0
    for model, names in _REFERENCE_COLUMNS:
        columns = [getattr(model, name) for name in names]
        for row in model.query.filter(json_like(columns, needles)).all():
            for name in names:
                value = getattr(row, name)
                if value is not None:
                    setattr(row, name, _rewrite(value, pairs))
            touched += 1
    return touched


def rename_media(*, media_id: str, filename: str, actor_id: Optional[str] = None) -> MediaAsset:
    """
    Give the stored file a new name. The base name is sanitised and suffixed
    ``-1``, ``-2``... until free; derived files follow and every reference
    to the old URLs is rewritten.
    """
    media = get_media(media_id)
    if not filename or not filename.strip():
        raise MediaError("filename is required", 400)
    if not storage_service.exists(media.url):
        raise MediaError("Media file is missing from storage", 404, {"url": media.url})

    old_url = media.url
    result = media_service.rename_with_variants(old_url, filename, media.derived_urls)
    pairs = [{"old_url": old_url, "new_url": result["new_url"]}] + result["renamed"]

    try:
        with transactional():
            media.url = result["new_url"]
            media.original_filename = result["new_filename"]
            if media.optimized_url:
                media.optimized_url = _rewrite(media.optimized_url, pairs)
            media.metadata_json = _rewrite(media.metadata_json or {}, pairs)
            touched = rewrite_references(pairs)
            log_action(
                action="media.rename",
                entity_type="media",
                entity_id=media.id,
                payload={"old_url": old_url, "new_url": media.url, "references": touched},
                actor_id=actor_id,
            )
    except Exception:
        media_service.undo_rename(result)
        raise
    return media
