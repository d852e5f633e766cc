import logging
from typing import Any, Dict, Optional

from modulecms.application.exceptions import MediaError
from modulecms.domain.invariants.media import assert_focal_point
from modulecms.models.media_asset import MediaAsset
from modulecms.utils.audit import log_action
from modulecms.utils.jsonb import coerce_json_object
from modulecms.utils.transaction import transactional
from .media_variants import get_media, regenerate_variants

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("alt_text", "caption", "description", "categories")


def update_media(*, media_id: str, data: Dict[str, Any], actor_id: Optional[str] = None) -> MediaAsset:
    """
    Update descriptive fields. A new ``focal_point`` is stored in the
    metadata and re-crops the cover-fit variants of images.
    """
    media = get_media(media_id)
    changed = [f for f in UPDATABLE_FIELDS if f in data]
    if "categories" in data and not isinstance(data["categories"], list):
        raise MediaError("categories must be a list", 400)

    focal_point = data.get("focal_point")
    if "focal_point" in data:
        assert_focal_point(focal_point)

    with transactional():
        for field in changed:
            setattr(media, field, data[field])

        if "focal_point" in data:
            meta = dict(coerce_json_object(media.metadata_json))
            if focal_point is None:
                meta.pop("focalPoint", None)
            else:
                meta["focalPoint"] = {"x": float(focal_point["x"]), "y": float(focal_point["y"])}
            media.metadata_json = meta
            changed.append("focal_point")
            if focal_point is not None and media.is_image and meta.get("variants"):
                try:
                    regenerate_variants(media, focal_point=meta["focalPoint"])
                except MediaError as exc:
                    logger.warning("Variants not refreshed for %s: %s", media.id, exc.message)

        log_action(
            action="media.update",
            entity_type="media",
            entity_id=media.id,
            payload={"fields": changed},
            actor_id=actor_id,
        )
    return media
