import copy
import time
from typing import Any, Dict

from flask import current_app

from modulecms.extensions import db
from modulecms.models.site_setting import SiteSetting

SETTINGS_FIELDS = (
    "site_title",
    "default_meta_description",
    "favicon_media_id",
    "default_og_media_id",
    "logo_media_id",
    "is_maintenance_mode",
    "profile_roles_enabled",
    "social_settings",
    "custom_fields",
)

_CACHE_KEY = "modulecms.site_settings"


def _serialize(row) -> Dict[str, Any]:
    if row is None:
        return {
            "site_title": "ModuleCMS",
            "default_meta_description": None,
            "favicon_media_id": None,
            "default_og_media_id": None,
            "logo_media_id": None,
            "is_maintenance_mode": False,
            "profile_roles_enabled": [],
            "social_settings": {"profiles": [], "sharing": []},
            "custom_fields": {},
        }
    return {
        "site_title": row.site_title,
        "default_meta_description": row.default_meta_description,
        "favicon_media_id": row.favicon_media_id,
        "default_og_media_id": row.default_og_media_id,
        "logo_media_id": row.logo_media_id,
        "is_maintenance_mode": bool(row.is_maintenance_mode),
        "profile_roles_enabled": list(row.profile_roles_enabled or []),
        "social_settings": row.social_settings or {"profiles": [], "sharing": []},
        "custom_fields": dict(row.custom_fields or {}),
    }


def _cache() -> Dict[str, Any]:
    # per-app cache so separate app instances never share settings
    return current_app.extensions.setdefault(_CACHE_KEY, {"value": None, "loaded_at": 0.0})


def get() -> Dict[str, Any]:
    cache = _cache()
    ttl = current_app.config.get("SITE_SETTINGS_TTL", 10)
    now = time.monotonic()
    if cache["value"] is not None and now - cache["loaded_at"] < ttl:
        return copy.deepcopy(cache["value"])

    settings = _serialize(SiteSetting.query.first())
    cache["value"] = settings
    cache["loaded_at"] = now
    return copy.deepcopy(settings)


def upsert(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Merge the given fields into the settings row, creating it if needed. Caller commits."""
    row = SiteSetting.query.first()
    if row is None:
        row = SiteSetting()
        db.session.add(row)

    current = _serialize(row if row.id else None)
    for field in SETTINGS_FIELDS:
        if field not in payload:
            setattr(row, field, current[field])
            continue
        value = payload[field]
        if field == "is_maintenance_mode":
            value = bool(value)
        elif field == "custom_fields":
            value = {**current["custom_fields"], **(value or {})}
        elif field == "profile_roles_enabled":
            value = list(value or [])
        elif field == "site_title" and not value:
            value = current["site_title"]
        setattr(row, field, value)

    db.session.flush()
    settings = _serialize(row)
    cache = _cache()
    cache["value"] = settings
    cache["loaded_at"] = time.monotonic()
    return copy.deepcopy(settings)


def is_maintenance_mode() -> bool:
    return bool(get().get("is_maintenance_mode"))
