import re

_SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


def is_valid_slug(value: str) -> bool:
    return bool(value) and bool(_SLUG_RE.match(value))


def sanitize_filename_base(value: str) -> str:
    """Lowercase, collapse anything outside [a-z0-9._-] to '-', trim dashes."""
    base = re.sub(r"[^a-z0-9._-]+", "-", (value or "").lower())
    base = re.sub(r"-+", "-", base).strip("-")
    return base or "file"
