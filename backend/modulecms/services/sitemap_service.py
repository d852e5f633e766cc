import time
from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List
from xml.sax.saxutils import escape

from flask import current_app
from sqlalchemy import func

from modulecms.extensions import db
from modulecms.models.base import utcnow
from modulecms.models.post import Post
from modulecms.utils.jsonb import coerce_json_object
from . import url_pattern_service

CACHE_TTL = 300
_CACHE_KEY = "modulecms.sitemap"


def _cache() -> Dict[str, Dict]:
    return current_app.extensions.setdefault(_CACHE_KEY, {})


def _fingerprint():
    """Changes whenever a post is added, removed or touched."""
    count, latest = db.session.query(func.count(Post.id), func.max(Post.updated_at)).one()
    return count, str(latest) if latest else None


def _indexable(post: Post) -> bool:
    robots = coerce_json_object(post.robots_json)
    return robots.get("index", True) is not False and not robots.get("noindex")


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def published_posts() -> List[Post]:
    now = utcnow()
    posts = (
        Post.query
        .filter(Post.status == "published", Post.deleted_at.is_(None))
        .order_by(Post.type.asc(), Post.order_index.asc())
        .all()
    )
    return [
        p for p in posts
        if _indexable(p) and (p.published_at is None or _aware(p.published_at) <= now)
    ]


def generate(base_url: str) -> str:
    """
    ``urlset`` of every published, indexable post with hreflang alternates
    for the other published members of its translation family.
    """
    base_url = base_url.rstrip("/")
    cache = _cache()
    fingerprint = _fingerprint()
    hit = cache.get(base_url)
    if hit and hit["fingerprint"] == fingerprint and hit["expires_at"] > time.monotonic():
        return hit["xml"]

    posts = published_posts()
    families = defaultdict(list)
    for post in posts:
        families[post.root_id].append(post)
    paths = {post.id: url_pattern_service.build_post_path(post) for post in posts}

    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9" '
        'xmlns:xhtml="http://www.w3.org/1999/xhtml">',
    ]
    for post in posts:
        lines.append("  <url>")
        lines.append(f"    <loc>{escape(base_url + paths[post.id])}</loc>")
        lastmod = post.updated_at or post.published_at or post.created_at
        if lastmod:
            lines.append(f"    <lastmod>{lastmod.date().isoformat()}</lastmod>")
        family = families[post.root_id]
        if len(family) > 1:
            for member in family:
                href = escape(base_url + paths[member.id], {'"': "&quot;"})
                lines.append(f'    <xhtml:link rel="alternate" hreflang="{member.locale}" href="{href}"/>')
        lines.append("  </url>")
    lines.append("</urlset>")

    xml = "\n".join(lines) + "\n"
    cache[base_url] = {
        "xml": xml,
        "fingerprint": fingerprint,
        "expires_at": time.monotonic() + CACHE_TTL,
    }
    return xml
