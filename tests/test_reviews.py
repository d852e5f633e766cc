from modulecms.application.modules.add_module_to_post import add_module_to_post
from modulecms.application.modules.update_post_module import update_post_module
from modulecms.application.posts.reviews import (
    approve_ai_review,
    approve_review,
    promote_ai_review_to_review,
    reject_review_draft,
)
from modulecms.application.posts.update_post import update_post
from modulecms.extensions import db
from modulecms.models.post_revision import PostRevision
from modulecms.models.url_pattern import UrlRedirect
from modulecms.services.module_resolution import resolve_post_modules, resolve_props


class TestApproveReview:

    def test_approve_promotes_fields_and_modules(self, client, admin_headers, make_post):
        post = make_post()
        update_post(post_id=post.id, data={"title": "Reviewed title"}, mode="review")
        add_module_to_post(post_id=post.id, module_type="faq", mode="review")

        resp = client.post(f"/api/v1/posts/{post.id}/review/approve", headers=admin_headers)

        assert resp.status_code == 200
        db.session.refresh(post)
        assert post.title == "Reviewed title"
        assert post.review_draft is None
        assert [m["type"] for m in resolve_post_modules(post, "publish")] == ["hero", "prose", "faq"]

    def test_approve_records_before_and_after_revisions(self, make_post):
        post = make_post()
        update_post(post_id=post.id, data={"excerpt": "Short"}, mode="review")

        approve_review(post_id=post.id)

        actions = {r.action for r in PostRevision.query.filter_by(post_id=post.id)}
        assert {"review.approve.before", "review.approve"} <= actions

    def test_approving_a_slug_change_leaves_redirect(self, make_post):
        post = make_post(slug="old-slug")
        update_post(post_id=post.id, data={"slug": "new-slug"}, mode="review")

        approve_review(post_id=post.id)

        assert UrlRedirect.query.filter_by(from_path="/old-slug", to_path="/new-slug").count() == 1

    def test_editor_cannot_approve(self, client, editor_headers, make_post):
        post = make_post()
        resp = client.post(f"/api/v1/posts/{post.id}/review/approve", headers=editor_headers)
        assert resp.status_code == 403


class TestAiReview:

    def test_promote_moves_ai_layer_into_review(self, make_post):
        post = make_post()
        hero = post.post_modules[0]
        update_post(post_id=post.id, data={"meta_title": "AI meta"}, mode="ai-review")
        update_post_module(post_module_id=hero.id, overrides={"subtitle": "AI subtitle"}, mode="ai-review")

        promote_ai_review_to_review(post_id=post.id)

        db.session.refresh(post)
        assert post.ai_review_draft is None
        assert post.review_draft == {"meta_title": "AI meta"}
        assert resolve_props(hero, "review")["subtitle"] == "AI subtitle"
        assert hero.module_instance.ai_review_props is None

    def test_approve_ai_review_goes_live(self, make_post):
        post = make_post()
        add_module_to_post(post_id=post.id, module_type="statistics", mode="ai-review")

        approve_ai_review(post_id=post.id)

        db.session.refresh(post)
        assert [m["type"] for m in resolve_post_modules(post, "publish")][-1] == "statistics"


class TestReject:

    def test_reject_discards_staged_layer(self, make_post):
        post = make_post()
        hero = post.post_modules[0]
        update_post(post_id=post.id, data={"title": "Nope"}, mode="review")
        update_post_module(post_module_id=hero.id, overrides={"title": "Nope"}, mode="review")
        add_module_to_post(post_id=post.id, module_type="faq", mode="review")

        reject_review_draft(post_id=post.id, mode="review")

        db.session.refresh(post)
        assert post.review_draft is None
        assert len(post.post_modules) == 2
        assert resolve_props(post.post_modules[0], "review")["title"] == "Welcome"

    def test_reject_unknown_mode(self, client, admin_headers, make_post):
        post = make_post()
        resp = client.post(
            f"/api/v1/posts/{post.id}/reject",
            json={"mode": "publish"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_reject_ai_review_needs_ai_approve_permission(self, client, editor_headers, make_post):
        post = make_post()
        resp = client.post(
            f"/api/v1/posts/{post.id}/reject",
            json={"mode": "ai-review"},
            headers=editor_headers,
        )
        assert resp.status_code == 403
