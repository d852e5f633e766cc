import os
from typing import Any, Dict, List, Optional

from PIL import UnidentifiedImageError

from modulecms.application.exceptions import MediaError
from modulecms.domain.invariants.media import assert_focal_point
from modulecms.extensions import db
from modulecms.models.base import utcnow
from modulecms.models.media_asset import MediaAsset
from modulecms.services.media_service import media_service
from modulecms.services.storage_service import storage_service
from modulecms.utils.audit import log_action
from modulecms.utils.jsonb import coerce_json_object
from modulecms.utils.transaction import transactional

THEMES = ("light", "dark")


def get_media(media_id: str) -> MediaAsset:
    media = db.session.get(MediaAsset, media_id)
    if media is None:
        raise MediaError("Media not found", 404, {"media_id": media_id})
    return media


def _require_image_file(media: MediaAsset, url: Optional[str] = None) -> str:
    url = url or media.url
    if not media.is_image:
        raise MediaError("Media is not an image", 400, {"media_id": media.id, "mime_type": media.mime_type})
    if not storage_service.exists(url):
        raise MediaError("Media file is missing from storage", 404, {"url": url})
    return storage_service.abs_path(url)


def regenerate_variants(
    media: MediaAsset,
    *,
    theme: str = "light",
    specs: Optional[str] = None,
    crop_rect: Optional[Dict[str, int]] = None,
    focal_point: Optional[Dict[str, float]] = None,
) -> List[Dict[str, Any]]:
    """
    Write variants for ``theme`` and merge them into the asset metadata by
    name. Dark variants come from the stored dark base when there is one,
    otherwise from a tinted copy of the original. Caller commits.
    """
    if theme not in THEMES:
        raise MediaError(f"Unknown theme '{theme}'", 400, {"theme": theme})
    assert_focal_point(focal_point)

    meta = dict(coerce_json_object(media.metadata_json))
    dark_source = meta.get("darkSourceUrl") if theme == "dark" else None
    base_url = dark_source or media.url
    path = _require_image_file(media, base_url)

    apply_tint = None
    name_suffix = None
    if dark_source:
        apply_tint = False
        name_suffix = "" if os.path.splitext(path)[0].endswith("-dark") else "-dark"

    parsed_specs = media_service.parse_derivatives(specs) if specs else None
    focal = focal_point or meta.get("focalPoint")
    try:
        variants = media_service.generate_variants(
            path,
            base_url,
            specs=parsed_specs,
            crop_rect=crop_rect,
            focal_point=focal,
            theme=theme,
            apply_tint=apply_tint,
            name_suffix=name_suffix,
        )
    except (OSError, UnidentifiedImageError) as exc:
        raise MediaError(f"Could not process image: {exc}", 400, {"media_id": media.id}) from exc

    if dark_source and name_suffix == "":
        variants = [{**v, "name": f"{v['name']}-dark"} for v in variants]

    new_names = {v["name"] for v in variants}
    existing = [v for v in meta.get("variants") or [] if isinstance(v, dict) and v.get("name") not in new_names]
    meta["variants"] = existing + variants
    if crop_rect:
        meta["cropRect"] = crop_rect
    if focal_point:
        meta["focalPoint"] = focal_point
    media.metadata_json = meta
    return variants


def generate_media_variants(
    *,
    media_id: str,
    theme: str = "light",
    specs: Optional[str] = None,
    crop_rect: Optional[Dict[str, int]] = None,
    focal_point: Optional[Dict[str, float]] = None,
    actor_id: Optional[str] = None,
) -> MediaAsset:
    media = get_media(media_id)
    with transactional():
        variants = regenerate_variants(
            media, theme=theme, specs=specs, crop_rect=crop_rect, focal_point=focal_point
        )
        log_action(
            action="media.variants",
            entity_type="media",
            entity_id=media.id,
            payload={"theme": theme, "variants": [v["name"] for v in variants]},
            actor_id=actor_id,
        )
    return media


def create_dark_base(*, media_id: str, actor_id: Optional[str] = None) -> MediaAsset:
    """Write a tinted full-size copy and record it as ``darkSourceUrl``."""
    media = get_media(media_id)
    path = _require_image_file(media)
    try:
        dark_url = media_service.create_dark_base(path, media.url)
    except (OSError, UnidentifiedImageError) as exc:
        raise MediaError(f"Could not process image: {exc}", 400, {"media_id": media.id}) from exc

    with transactional():
        media.metadata_json = {**coerce_json_object(media.metadata_json), "darkSourceUrl": dark_url}
        log_action(
            action="media.dark_base",
            entity_type="media",
            entity_id=media.id,
            payload={"dark_source_url": dark_url},
            actor_id=actor_id,
        )
    return media


def optimize_media(*, media_id: str, actor_id: Optional[str] = None) -> MediaAsset:
    """WebP-encode the original, its variants and its dark base."""
    media = get_media(media_id)
    path = _require_image_file(media)
    try:
        optimized = media_service.optimize_to_webp(path, media.url)
        if optimized is None:
            raise MediaError("Only raster images can be optimized", 400, {"media_id": media.id})

        meta = dict(coerce_json_object(media.metadata_json))
        meta["variants"] = media_service.optimize_variants(meta.get("variants") or [])
        dark_url = meta.get("darkSourceUrl")
        if dark_url and storage_service.exists(dark_url):
            dark = media_service.optimize_to_webp(storage_service.abs_path(dark_url), dark_url)
            if dark:
                meta["darkOptimizedUrl"] = dark["optimized_url"]
    except (OSError, UnidentifiedImageError) as exc:
        raise MediaError(f"Could not process image: {exc}", 400, {"media_id": media.id}) from exc

    with transactional():
        media.optimized_url = optimized["optimized_url"]
        media.optimized_size = optimized["size"]
        media.optimized_at = utcnow()
        media.metadata_json = meta
        log_action(
            action="media.optimize",
            entity_type="media",
            entity_id=media.id,
            payload={"optimized_url": media.optimized_url, "size": media.optimized_size},
            actor_id=actor_id,
        )
    return media
