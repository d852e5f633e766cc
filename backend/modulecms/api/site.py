import hmac
import logging
import time
from datetime import timezone

from flask import Blueprint, Response, current_app, g, jsonify, redirect, request, session

from modulecms.models.base import utcnow
from modulecms.models.post import Post
from modulecms.services import (
    locale_service,
    seo_service,
    site_settings_service,
    sitemap_service,
    url_pattern_service,
)
from modulecms.services.menu_service import menu_service
from modulecms.services.module_resolution import effective_mode, resolve_post_fields, resolve_post_modules

site_bp = Blueprint("site", __name__)

logger = logging.getLogger(__name__)

HOME_SLUG = "home"

# statuses the public routes can serve; the last two need a grant
VISIBLE_STATUSES = ("published", "protected", "private")

_PROTECTED_SESSION_KEY = "protected_access_until"


def _is_live(post) -> bool:
    if post is None or post.status not in VISIBLE_STATUSES or post.is_deleted:
        return False
    published_at = post.published_at
    if published_at is None:
        return True
    if published_at.tzinfo is None:
        published_at = published_at.replace(tzinfo=timezone.utc)
    return published_at <= utcnow()


def _protected_credentials():
    fields = site_settings_service.get()["custom_fields"]
    username = str(fields.get("protected_access_username") or "")
    password = str(fields.get("protected_access_password") or "")
    if not username or not password:
        username = current_app.config.get("PROTECTED_ACCESS_USERNAME") or ""
        password = current_app.config.get("PROTECTED_ACCESS_PASSWORD") or ""
    return username, password


def has_protected_access() -> bool:
    return session.get(_PROTECTED_SESSION_KEY, 0) > time.time()


def _safe_redirect(target) -> str:
    target = str(target or "/")
    if not target.startswith("/") or target.startswith("//"):
        return "/"
    return target


def find_post_for_path(path: str):
    """Live post answering ``path``, or None. Access to restricted statuses is checked by the caller."""
    if path == "/":
        post = Post.query.filter_by(
            type="page", slug=HOME_SLUG, locale=locale_service.default_locale()
        ).first()
        return post if _is_live(post) else None

    match = url_pattern_service.match_path(path)
    if match is None:
        return None

    post = Post.query.filter_by(
        type=match["post_type"], locale=match["locale"], slug=match["slug"]
    ).first()
    if not _is_live(post):
        return None
    # hierarchical patterns must name the full ancestor chain
    if match["uses_path"] and url_pattern_service.build_post_path(post) != path:
        return None
    return post


def render_post(post) -> dict:
    fields = resolve_post_fields(post, "publish")
    mode = effective_mode(post, "publish")
    site = site_settings_service.get()
    return {
        "post": {
            "id": post.id,
            "type": post.type,
            "locale": post.locale,
            "slug": post.slug,
            "title": fields["title"],
            "excerpt": fields["excerpt"],
            "path": url_pattern_service.build_post_path(post),
            "published_at": post.published_at.isoformat() if post.published_at else None,
            "updated_at": post.updated_at.isoformat() if post.updated_at else None,
        },
        "modules": resolve_post_modules(
            post, mode, locale=post.locale, fallback_locale=locale_service.default_locale()
        ),
        "seo": seo_service.build_seo(post, fields),
        "site": {"title": site["site_title"], "custom_fields": site["custom_fields"]},
    }


@site_bp.route("/robots.txt", methods=["GET"])
def robots_txt():
    base_url = current_app.config["SITE_URL"].rstrip("/")
    lines = ["User-agent: *"]
    if site_settings_service.is_maintenance_mode():
        lines.append("Disallow: /")
    else:
        lines += ["Disallow: /api/", "Disallow: /swagger", "Allow: /"]
    lines.append(f"Sitemap: {base_url}/sitemap.xml")
    return Response("\n".join(lines) + "\n", mimetype="text/plain")


@site_bp.route("/sitemap.xml", methods=["GET"])
def sitemap_xml():
    xml = sitemap_service.generate(current_app.config["SITE_URL"])
    return Response(xml, mimetype="application/xml")


@site_bp.route("/site/menus/<slug>", methods=["GET"])
def public_menu(slug):
    locale = locale_service.normalize_locale(request.args.get("locale"))
    menu = menu_service.get_by_slug(slug, locale)
    if menu is None:
        return jsonify({"error": "Menu not found"}), 404
    return jsonify(menu), 200


@site_bp.route("/protected/login", methods=["POST"])
def protected_login():
    data = request.get_json(silent=True) or {}
    username = str(data.get("username") or "").strip()
    password = str(data.get("password") or "").strip()
    expected_user, expected_pass = _protected_credentials()

    ok = bool(
        username
        and password
        and expected_user
        and expected_pass
        and hmac.compare_digest(username.encode(), expected_user.encode())
        and hmac.compare_digest(password.encode(), expected_pass.encode())
    )
    if not ok:
        logger.info("Rejected protected access login")
        return jsonify({"error": "Invalid credentials"}), 401

    lifetime = int(current_app.config.get("PROTECTED_ACCESS_LIFETIME", 8 * 60 * 60))
    session[_PROTECTED_SESSION_KEY] = time.time() + lifetime
    return jsonify({"ok": True, "redirect": _safe_redirect(data.get("redirect"))}), 200


@site_bp.route("/", defaults={"path": ""}, methods=["GET"])
@site_bp.route("/<path:path>", methods=["GET"])
def resolve_page(path):
    path = "/" + path.strip("/")

    target = url_pattern_service.find_redirect(path)
    if target is not None:
        return redirect(target.to_path, code=target.status_code)

    post = find_post_for_path(path)
    if post is None:
        return jsonify({"error": "Page not found", "path": path}), 404

    if post.status == "private" and getattr(g, "current_user", None) is None:
        return jsonify({"error": "Page not found", "path": path}), 404
    if post.status == "protected" and not has_protected_access():
        return jsonify({
            "error": "Protected content",
            "login": "/protected/login",
            "redirect": path,
        }), 401

    return jsonify(render_post(post)), 200
