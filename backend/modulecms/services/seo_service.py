from typing import Any, Dict, List

from flask import current_app

from modulecms.extensions import db
from modulecms.models.media_asset import MediaAsset
from modulecms.models.post import Post
from modulecms.utils.jsonb import coerce_json_object
from . import locale_service, site_settings_service, url_pattern_service


def _absolute(path: str) -> str:
    if path.startswith(("http://", "https://")):
        return path
    return current_app.config["SITE_URL"].rstrip("/") + path


def robots_directive(robots_json) -> str:
    robots = coerce_json_object(robots_json)
    index = robots.get("index", True) is not False and not robots.get("noindex")
    follow = robots.get("follow", True) is not False and not robots.get("nofollow")
    return f"{'index' if index else 'noindex'},{'follow' if follow else 'nofollow'}"


def alternates(post: Post) -> List[Dict[str, str]]:
    """hreflang links for the published members of the post's translation family."""
    members = [
        member for member in post.family()
        if member.status == "published" and not member.is_deleted
    ]
    if len(members) < 2:
        return []

    links = [
        {"locale": member.locale, "href": _absolute(url_pattern_service.build_post_path(member))}
        for member in members
    ]
    default = next((l for l in links if l["locale"] == locale_service.default_locale()), None)
    if default:
        links.append({"locale": "x-default", "href": default["href"]})
    return links


def build_seo(post: Post, fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    SEO block of a public page. ``fields`` are the post fields already
    resolved for the view mode.
    """
    settings = site_settings_service.get()
    path = url_pattern_service.build_post_path(post)
    title = fields.get("meta_title") or fields.get("title")
    description = (
        fields.get("meta_description")
        or fields.get("excerpt")
        or settings.get("default_meta_description")
    )
    canonical = _absolute(fields.get("canonical_url") or path)

    og_image = None
    if settings.get("default_og_media_id"):
        media = db.session.get(MediaAsset, settings["default_og_media_id"])
        og_image = _absolute(media.url) if media else None

    jsonld = {
        "@context": "https://schema.org",
        "@type": "Article" if post.type == "blog" else "WebPage",
        "headline": title,
        "url": canonical,
        "inLanguage": post.locale,
    }
    if description:
        jsonld["description"] = description
    if post.published_at:
        jsonld["datePublished"] = post.published_at.isoformat()
    jsonld.update(coerce_json_object(fields.get("jsonld_overrides")))

    return {
        "title": f"{title} | {settings['site_title']}" if title else settings["site_title"],
        "description": description,
        "canonical": canonical,
        "robots": robots_directive(fields.get("robots_json")),
        "alternates": alternates(post),
        "og": {
            "title": title,
            "description": description,
            "url": canonical,
            "image": og_image,
            "type": "article" if post.type == "blog" else "website",
        },
        "jsonld": jsonld,
    }
