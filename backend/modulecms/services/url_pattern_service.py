import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote, unquote

from modulecms.extensions import db
from modulecms.models.base import utcnow
from modulecms.models.post import Post
from modulecms.models.url_pattern import UrlPattern, UrlRedirect
from . import locale_service
from .post_type_registry import post_type_registry

logger = logging.getLogger(__name__)

_TOKEN = re.compile(r"\{[^}]+\}")

_TOKEN_REGEX = {
    "locale": r"(?P<locale>[a-z]{2}(?:-[a-z]{2})?)",
    "yyyy": r"(?P<yyyy>\d{4})",
    "mm": r"(?P<mm>\d{2})",
    "dd": r"(?P<dd>\d{2})",
    "slug": r"(?P<slug>[^/]+)",
    "path": r"(?P<path>.+?)",
}


def replace_tokens(pattern: str, values: Dict[str, str]) -> str:
    """Substitute ``{token}`` placeholders; ``path`` is inserted verbatim, others URL-encoded."""
    out = pattern
    for key, raw in values.items():
        value = raw if key == "path" else quote(str(raw), safe="")
        out = out.replace("{" + key + "}", value)
    if not out.startswith("/"):
        out = "/" + out
    return out


def build_path_with_pattern(
    pattern: str,
    *,
    slug: str,
    locale: str,
    created_at: Optional[datetime] = None,
    path: Optional[str] = None,
) -> str:
    d = created_at or utcnow()
    return replace_tokens(pattern, {
        "slug": slug,
        "path": path or slug,
        "locale": locale,
        "yyyy": f"{d.year:04d}",
        "mm": f"{d.month:02d}",
        "dd": f"{d.day:02d}",
    })


def specificity_key(pattern: str):
    static_segments = [s for s in pattern.split("/") if s and "{" not in s]
    tokens = _TOKEN.findall(pattern)
    # more static segments first, then fewer tokens, then longer patterns
    return (-len(static_segments), len(tokens), -len(pattern))


def compile_pattern(pattern: str) -> re.Pattern:
    source = pattern if pattern.startswith("/") else "/" + pattern
    pieces = []
    pos = 0
    for match in _TOKEN.finditer(source):
        pieces.append(re.escape(source[pos:match.start()]))
        name = match.group(0)[1:-1]
        pieces.append(_TOKEN_REGEX.get(name, re.escape(match.group(0))))
        pos = match.end()
    pieces.append(re.escape(source[pos:]))
    return re.compile("^" + "".join(pieces) + "$", re.IGNORECASE)


def all_patterns() -> List[UrlPattern]:
    return sorted(UrlPattern.query.all(), key=lambda p: specificity_key(p.pattern))


def default_pattern(post_type: str, locale: str) -> Optional[UrlPattern]:
    return UrlPattern.query.filter_by(post_type=post_type, locale=locale, is_default=True).first()


def match_path(path: str) -> Optional[Dict[str, Any]]:
    """Resolve an incoming path to ``{post_type, locale, slug, full_path, uses_path}``."""
    for p in all_patterns():
        m = compile_pattern(p.pattern).match(path)
        if not m:
            continue
        groups = m.groupdict()
        locale = (groups.get("locale") or p.locale).lower()
        slug = groups.get("slug")
        path_group = groups.get("path")

        if not slug and path_group:
            parts = [s for s in path_group.split("/") if s]
            slug = parts[-1] if parts else None

        if slug:
            return {
                "post_type": p.post_type,
                "locale": locale,
                "slug": unquote(slug),
                "full_path": path_group,
                "uses_path": bool(path_group),
            }
    return None


def _default_pattern_for(post_type: str, locale: str) -> str:
    cfg = post_type_registry.get(post_type) or {}
    for defined in cfg.get("url_patterns") or []:
        if defined.get("locale") == locale:
            return defined["pattern"]
    seg = "{path}" if cfg.get("hierarchy_enabled") else "{slug}"
    if locale == locale_service.default_locale():
        return f"/{post_type}/{seg}"
    return f"/{{locale}}/{post_type}/{seg}"


def ensure_defaults_for_post_type(post_type: str, locales: Optional[List[str]] = None) -> List[UrlPattern]:
    """Create missing default patterns for ``post_type``. Caller commits."""
    locales = locales or locale_service.supported_locales()
    existing = {row.locale for row in UrlPattern.query.filter_by(post_type=post_type).all()}
    created = []
    for locale in locales:
        if locale in existing:
            continue
        row = UrlPattern()
        row.post_type = post_type
        row.locale = locale
        row.pattern = _default_pattern_for(post_type, locale)
        row.is_default = True
        db.session.add(row)
        created.append(row)
    if created:
        db.session.flush()
        logger.info("Created %d default URL patterns for %s", len(created), post_type)
    return created


def parent_path(post: Post) -> str:
    """Slugs of the ancestors that share the post's type and locale, root first."""
    chain: List[str] = []
    seen = {post.id}
    next_parent = post.parent_id
    while next_parent:
        if next_parent in seen:
            break
        row = db.session.get(Post, next_parent)
        if row is None or row.type != post.type or row.locale != post.locale:
            break
        seen.add(row.id)
        if row.slug:
            chain.append(row.slug)
        next_parent = row.parent_id
    return "/".join(reversed(chain))


def build_post_path(post: Post) -> str:
    row = default_pattern(post.type, post.locale)
    pattern = row.pattern if row else _default_pattern_for(post.type, post.locale)
    parent = parent_path(post)
    full = f"{parent}/{post.slug}" if parent else post.slug
    return build_path_with_pattern(
        pattern,
        slug=post.slug,
        locale=post.locale,
        created_at=post.created_at,
        path=full,
    )


def create_pattern(post_type: str, locale: str, pattern: str, is_default: bool = True) -> UrlPattern:
    if is_default:
        UrlPattern.query.filter_by(post_type=post_type, locale=locale, is_default=True).update(
            {"is_default": False}
        )
    row = UrlPattern()
    row.post_type = post_type
    row.locale = locale
    row.pattern = pattern
    row.is_default = is_default
    db.session.add(row)
    db.session.flush()
    return row


def find_redirect(path: str, locale: Optional[str] = None) -> Optional[UrlRedirect]:
    query = UrlRedirect.query.filter_by(from_path=path)
    if locale:
        scoped = query.filter_by(locale=locale).first()
        if scoped:
            return scoped
    return query.filter(UrlRedirect.locale.is_(None)).first() or query.first()


def record_redirect(from_path: str, to_path: str, locale: Optional[str], status_code: int = 301) -> Optional[UrlRedirect]:
    """Upsert ``from_path -> to_path`` and re-point older redirects at the new target."""
    if from_path == to_path:
        return None

    UrlRedirect.query.filter_by(to_path=from_path, locale=locale).update({"to_path": to_path})
    # a path that is live again must not keep redirecting
    UrlRedirect.query.filter_by(from_path=to_path, locale=locale).delete()

    existing = UrlRedirect.query.filter_by(from_path=from_path, locale=locale).first()
    if existing:
        existing.to_path = to_path
        existing.status_code = status_code
        return existing

    redirect = UrlRedirect()
    redirect.from_path = from_path
    redirect.to_path = to_path
    redirect.locale = locale
    redirect.status_code = status_code
    db.session.add(redirect)
    db.session.flush()
    return redirect
