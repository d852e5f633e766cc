import logging
import os
from typing import Optional

from PIL import UnidentifiedImageError
from werkzeug.datastructures import FileStorage

from modulecms.application.exceptions import MediaError
from modulecms.extensions import db
from modulecms.models.media_asset import MediaAsset
from modulecms.services.media_service import RASTER_EXTENSIONS, infer_mime, media_service
from modulecms.services.storage_service import StorageError, storage_service
from modulecms.services.webhook_service import webhook_service
from modulecms.utils.audit import log_action
from modulecms.utils.transaction import transactional

logger = logging.getLogger(__name__)


def upload_media(
    *,
    file: FileStorage,
    alt_text: Optional[str] = None,
    caption: Optional[str] = None,
    generate_variants: bool = True,
    actor_id: Optional[str] = None,
) -> MediaAsset:
    """
    Store an upload under a unique name and register it as a media asset.

    Raster images get their configured derivatives generated right away; a
    file Pillow cannot read is still kept, just without variants.
    """
    try:
        url, file_path, size = storage_service.save_upload(file)
    except StorageError as exc:
        raise MediaError(str(exc), 400, {"filename": getattr(file, "filename", None)}) from exc

    media = MediaAsset()
    media.url = url
    media.original_filename = file.filename
    media.mime_type = file.mimetype if file.mimetype and file.mimetype != "application/octet-stream" else infer_mime(file.filename)
    media.size = size
    media.alt_text = alt_text
    media.caption = caption
    media.uploaded_by = actor_id
    media.metadata_json = {}

    if generate_variants and os.path.splitext(file_path)[1].lower() in RASTER_EXTENSIONS:
        try:
            media.metadata_json = {"variants": media_service.generate_variants(file_path, url)}
        except (OSError, UnidentifiedImageError) as exc:
            logger.warning("Could not generate variants for %s: %s", url, exc)

    try:
        with transactional():
            db.session.add(media)
            db.session.flush()
            log_action(
                action="media.upload",
                entity_type="media",
                entity_id=media.id,
                payload={"url": url, "size": size, "mime_type": media.mime_type},
                actor_id=actor_id,
            )
    except Exception:
        storage_service.delete(url)
        raise

    webhook_service.dispatch("media.uploaded", {
        "id": media.id,
        "url": media.url,
        "mime_type": media.mime_type,
        "size": media.size,
    })
    return media
