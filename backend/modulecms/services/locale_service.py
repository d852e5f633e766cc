from typing import List

from flask import current_app


def default_locale() -> str:
    return current_app.config.get("DEFAULT_LOCALE", "en")


def supported_locales() -> List[str]:
    locales = [l.strip().lower() for l in current_app.config.get("SUPPORTED_LOCALES", []) if l.strip()]
    default = default_locale()
    if default not in locales:
        locales.insert(0, default)
    return locales


def is_supported(locale: str) -> bool:
    return bool(locale) and locale.lower() in supported_locales()


def normalize_locale(locale: str | None) -> str:
    return (locale or default_locale()).strip().lower()
