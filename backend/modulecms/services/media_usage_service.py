from typing import Any, Dict, List

from sqlalchemy import String, cast, or_

from modulecms.models.media_asset import MediaAsset
from modulecms.models.module_instance import ModuleInstance
from modulecms.models.post import Post
from modulecms.models.post_module import PostModule
from modulecms.models.site_setting import SiteSetting

USAGE_LIMIT = 20


def json_like(columns, needles: List[str]):
    clauses = []
    for column in columns:
        for needle in needles:
            clauses.append(cast(column, String).like(f"%{needle}%"))
    return or_(*clauses)


def get_usage(media: MediaAsset) -> Dict[str, Any]:
    """Where a media asset is referenced, by id or by URL."""
    needles = [n for n in (media.id, media.url) if n]

    in_modules = (
        ModuleInstance.query
        .filter(json_like(
            [ModuleInstance.props, ModuleInstance.review_props, ModuleInstance.ai_review_props],
            needles,
        ))
        .limit(USAGE_LIMIT)
        .all()
    )

    in_overrides = (
        PostModule.query
        .filter(json_like(
            [PostModule.overrides, PostModule.review_overrides, PostModule.ai_review_overrides],
            needles,
        ))
        .limit(USAGE_LIMIT)
        .all()
    )

    in_posts = (
        Post.query
        .filter(json_like([Post.review_draft, Post.ai_review_draft], needles))
        .limit(USAGE_LIMIT)
        .all()
    )

    in_settings = (
        SiteSetting.query
        .filter(or_(
            SiteSetting.logo_media_id == media.id,
            SiteSetting.favicon_media_id == media.id,
            SiteSetting.default_og_media_id == media.id,
        ))
        .first()
        is not None
    )

    return {
        "in_modules": [
            {
                "id": m.id,
                "type": m.type,
                "scope": m.scope,
                "global_slug": m.global_slug,
                "post_id": m.post_id,
            }
            for m in in_modules
        ],
        "in_overrides": [{"id": pm.id, "post_id": pm.post_id} for pm in in_overrides],
        "in_posts": [{"id": p.id, "title": p.title, "type": p.type} for p in in_posts],
        "in_settings": in_settings,
    }


def is_in_use(usage: Dict[str, Any]) -> bool:
    return bool(
        usage["in_modules"] or usage["in_overrides"] or usage["in_posts"] or usage["in_settings"]
    )
