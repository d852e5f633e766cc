from modulecms.utils.jsonb import coerce_json_object


def _iso(value):
    return value.isoformat() if value else None


def normalize_media(media, admin=False):
    meta = coerce_json_object(media.metadata_json)
    data = {
        "id": media.id,
        "url": media.url,
        "mime_type": media.mime_type,
        "alt_text": media.alt_text,
        "caption": media.caption,
        "optimized_url": media.optimized_url,
        "focal_point": meta.get("focalPoint"),
        "variants": meta.get("variants") or [],
        "dark_source_url": meta.get("darkSourceUrl"),
    }
    if admin:
        data.update({
            "original_filename": media.original_filename,
            "size": media.size,
            "optimized_size": media.optimized_size,
            "optimized_at": _iso(media.optimized_at),
            "description": media.description,
            "categories": media.categories or [],
            "metadata": meta,
            "uploaded_by": media.uploaded_by,
            "created_at": _iso(media.created_at),
            "updated_at": _iso(media.updated_at),
        })
    return data
