from datetime import datetime

from modulecms.application.posts.update_post import update_post
from modulecms.extensions import db
from modulecms.services import url_pattern_service


class TestPatternHelpers:

    def test_replace_tokens_encodes_slug(self):
        assert url_pattern_service.replace_tokens("/blog/{slug}", {"slug": "a b"}) == "/blog/a%20b"

    def test_path_token_inserted_verbatim(self):
        path = url_pattern_service.build_path_with_pattern(
            "/{path}", slug="team", locale="en", path="about/team"
        )
        assert path == "/about/team"

    def test_date_tokens(self):
        path = url_pattern_service.build_path_with_pattern(
            "/{yyyy}/{mm}/{slug}", slug="news", locale="en", created_at=datetime(2024, 3, 9)
        )
        assert path == "/2024/03/news"

    def test_specificity_prefers_static_segments(self):
        patterns = ["/{path}", "/{locale}/blog/{slug}", "/blog/{slug}"]
        ordered = sorted(patterns, key=url_pattern_service.specificity_key)
        assert ordered[0] == "/blog/{slug}"
        assert ordered[-1] == "/{path}"


class TestMatchPath:

    def test_blog_pattern_wins_over_catch_all(self, make_post):
        make_post()
        make_post(type="blog", slug="hello", title="Hello")

        match = url_pattern_service.match_path("/blog/hello")

        assert match["post_type"] == "blog"
        assert match["slug"] == "hello"

    def test_page_path_uses_last_segment(self, make_post):
        make_post()

        match = url_pattern_service.match_path("/company/about")

        assert match["post_type"] == "page"
        assert match["slug"] == "about"
        assert match["uses_path"] is True

    def test_locale_prefixed_pattern(self, make_post):
        make_post()
        match = url_pattern_service.match_path("/es/page/sobre")
        assert match["locale"] == "es"
        assert match["slug"] == "sobre"


class TestHierarchicalPaths:

    def test_child_path_includes_parent(self, make_post):
        parent = make_post(slug="company", title="Company")
        child = make_post(slug="team", title="Team", parent_id=parent.id)

        assert url_pattern_service.build_post_path(child) == "/company/team"

    def test_reparenting_records_redirect(self, make_post):
        parent = make_post(slug="company", title="Company")
        child = make_post(slug="team", title="Team")

        update_post(post_id=child.id, data={"parent_id": parent.id, "slug": "people"})

        redirect = url_pattern_service.find_redirect("/team")
        assert redirect.to_path == "/company/people"


class TestRedirectChains:

    def test_older_redirects_follow_new_target(self, app):
        url_pattern_service.record_redirect("/a", "/b", "en")
        url_pattern_service.record_redirect("/b", "/c", "en")
        db.session.commit()

        assert url_pattern_service.find_redirect("/a", "en").to_path == "/c"
        assert url_pattern_service.find_redirect("/b", "en").to_path == "/c"

    def test_live_path_stops_redirecting(self, app):
        url_pattern_service.record_redirect("/a", "/b", "en")
        url_pattern_service.record_redirect("/b", "/a", "en")
        db.session.commit()

        assert url_pattern_service.find_redirect("/b", "en").to_path == "/a"
        assert url_pattern_service.find_redirect("/a", "en") is None
