import pytest

from modulecms.application.exceptions import CreatePostError, DeletePostError
from modulecms.application.posts.publish_post import archive_post, publish_post
from modulecms.extensions import db
from modulecms.models.audit_log import AuditLog
from modulecms.models.post import Post
from modulecms.models.post_revision import PostRevision
from modulecms.models.url_pattern import UrlRedirect


class TestCreatePost:

    def test_create_seeds_modules_from_default_group(self, client, admin_headers):
        resp = client.post(
            "/api/v1/posts",
            json={"type": "page", "title": "About us", "slug": "about"},
            headers=admin_headers,
        )

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["post"]["path"] == "/about"

        post = db.session.get(Post, body["id"])
        assert [pm.module_instance.type for pm in post.post_modules] == ["hero", "prose"]
        assert post.canonical_url == "/about"
        assert post.status == "draft"

    def test_duplicate_slug_in_same_locale_conflicts(self, client, admin_headers, make_post):
        make_post(slug="contact")

        resp = client.post(
            "/api/v1/posts",
            json={"type": "page", "title": "Contact again", "slug": "contact"},
            headers=admin_headers,
        )

        assert resp.status_code == 409
        assert resp.get_json()["error"] == "CreatePostError"

    def test_same_slug_in_other_locale_is_allowed(self, make_post):
        make_post(slug="contact")
        other = make_post(slug="contact", locale="es", title="Contacto")
        assert other.locale == "es"

    def test_unknown_post_type_rejected(self, make_post):
        with pytest.raises(CreatePostError) as exc:
            make_post(type="recipe")
        assert exc.value.status_code == 400

    def test_editor_cannot_create_published_post(self, client, editor_headers):
        resp = client.post(
            "/api/v1/posts",
            json={"type": "page", "title": "Launch", "slug": "launch", "status": "published"},
            headers=editor_headers,
        )
        assert resp.status_code == 403

    def test_requires_authentication(self, client):
        resp = client.get("/api/v1/posts")
        assert resp.status_code == 401


class TestUpdatePost:

    def test_slug_change_records_redirect(self, client, admin_headers, make_post):
        post = make_post(slug="team")

        resp = client.patch(
            f"/api/v1/posts/{post.id}",
            json={"slug": "our-team"},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        redirect = UrlRedirect.query.filter_by(from_path="/team").one()
        assert redirect.to_path == "/our-team"
        assert redirect.status_code == 301

    def test_review_mode_stages_fields_in_draft(self, client, editor_headers, make_post):
        post = make_post(title="Original title")

        resp = client.patch(
            f"/api/v1/posts/{post.id}",
            json={"mode": "review", "title": "Proposed title"},
            headers=editor_headers,
        )

        assert resp.status_code == 200
        assert resp.get_json()["title"] == "Proposed title"
        db.session.refresh(post)
        assert post.title == "Original title"
        assert post.review_draft == {"title": "Proposed title"}

    def test_editor_cannot_publish_through_update(self, client, editor_headers, make_post):
        post = make_post()
        resp = client.patch(
            f"/api/v1/posts/{post.id}",
            json={"status": "published"},
            headers=editor_headers,
        )
        assert resp.status_code == 403

    def test_unknown_mode_is_bad_request(self, client, admin_headers, make_post):
        post = make_post()
        resp = client.patch(
            f"/api/v1/posts/{post.id}",
            json={"mode": "preview", "title": "x"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_unknown_status_is_invariant_violation(self, client, admin_headers, make_post):
        post = make_post()
        resp = client.patch(
            f"/api/v1/posts/{post.id}",
            json={"status": "hidden"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "InvariantViolation"
        db.session.refresh(post)
        assert post.status == "draft"

    @pytest.mark.parametrize("start, target", [
        ("published", "scheduled"),
        ("review", "private"),
        ("archived", "private"),
        ("scheduled", "private"),
    ])
    def test_any_known_status_can_be_set(self, client, admin_headers, make_post, start, target):
        post = make_post(status=start)
        resp = client.patch(
            f"/api/v1/posts/{post.id}",
            json={"status": target},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        db.session.refresh(post)
        assert post.status == target


class TestLifecycle:

    def test_publish_stamps_date_and_records_revision(self, client, admin_headers, make_post):
        post = make_post()

        resp = client.post(f"/api/v1/posts/{post.id}/publish", headers=admin_headers)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["status"] == "published"
        db.session.refresh(post)
        assert post.published_at is not None
        revision = db.session.get(PostRevision, body["revision_id"])
        assert revision.mode == "publish"
        assert AuditLog.query.filter_by(action="post.publish", entity_id=post.id).count() == 1

    def test_editor_cannot_publish(self, client, editor_headers, make_post):
        post = make_post()
        resp = client.post(f"/api/v1/posts/{post.id}/publish", headers=editor_headers)
        assert resp.status_code == 403
        assert "posts.publish" in resp.get_json()["missing"]

    def test_hard_delete_requires_archived_or_trashed(self, make_post):
        from modulecms.application.posts.delete_post import hard_delete_post

        post = make_post()
        with pytest.raises(DeletePostError) as exc:
            hard_delete_post(post_id=post.id)
        assert exc.value.status_code == 400

    def test_soft_delete_then_restore(self, client, admin_headers, make_post):
        post = make_post()

        assert client.delete(f"/api/v1/posts/{post.id}", headers=admin_headers).status_code == 200
        listed = client.get("/api/v1/posts", headers=admin_headers).get_json()
        assert post.id not in [p["id"] for p in listed["items"]]

        assert client.post(f"/api/v1/posts/{post.id}/restore", headers=admin_headers).status_code == 200
        db.session.refresh(post)
        assert post.deleted_at is None

    def test_hard_delete_root_with_translations_conflicts(self, make_post):
        from modulecms.application.posts.delete_post import hard_delete_post
        from modulecms.application.translations.create_translation import create_translation

        post = make_post()
        create_translation(post_id=post.id, locale="es")
        archive_post(post_id=post.id)

        with pytest.raises(DeletePostError) as exc:
            hard_delete_post(post_id=post.id)
        assert exc.value.status_code == 409


class TestBulkAndReorder:

    def test_bulk_delete_requires_archived(self, client, admin_headers, make_post):
        first = make_post(slug="one")
        second = make_post(slug="two")
        archive_post(post_id=first.id)

        resp = client.post(
            "/api/v1/posts/bulk",
            json={"action": "delete", "ids": [first.id, second.id]},
            headers=admin_headers,
        )

        assert resp.status_code == 400
        assert resp.get_json()["meta"]["not_archived"][0]["id"] == second.id
        assert db.session.get(Post, first.id) is not None

    def test_bulk_delete_is_all_or_nothing(self, client, admin_headers, make_post):
        from modulecms.application.translations.create_translation import create_translation

        ids = []
        for i in range(5):
            post = make_post(slug=f"old-{i}")
            archive_post(post_id=post.id)
            ids.append(post.id)
        root = make_post(slug="root")
        create_translation(post_id=root.id, locale="es")
        archive_post(post_id=root.id)

        resp = client.post(
            "/api/v1/posts/bulk",
            json={"action": "delete", "ids": ids + [root.id]},
            headers=admin_headers,
        )

        assert resp.status_code == 409
        assert Post.query.filter(Post.id.in_(ids)).count() == 5
        assert db.session.get(Post, root.id) is not None

    def test_bulk_delete_takes_translations_with_their_root(self, client, admin_headers, make_post):
        from modulecms.application.translations.create_translation import create_translation

        root = make_post(slug="root")
        translation = create_translation(post_id=root.id, locale="es")
        archive_post(post_id=root.id)
        archive_post(post_id=translation.id)
        ids = [root.id, translation.id]

        resp = client.post(
            "/api/v1/posts/bulk",
            json={"action": "delete", "ids": ids},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        assert resp.get_json()["count"] == 2
        assert Post.query.filter(Post.id.in_(ids)).count() == 0

    def test_bulk_publish(self, client, admin_headers, make_post):
        ids = [make_post(slug=f"bulk-{i}").id for i in range(3)]

        resp = client.post(
            "/api/v1/posts/bulk",
            json={"action": "publish", "ids": ids},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        assert {p.status for p in Post.query.filter(Post.id.in_(ids))} == {"published"}

    def test_reorder_rejects_scope_mismatch(self, client, admin_headers, make_post):
        page = make_post(slug="page-a")
        blog = make_post(type="blog", slug="post-a", title="Post A")

        resp = client.post(
            "/api/v1/posts/reorder",
            json={
                "scope": {"type": "page", "locale": "en"},
                "items": [{"id": page.id, "order_index": 1}, {"id": blog.id, "order_index": 0}],
            },
            headers=admin_headers,
        )
        assert resp.status_code == 400


class TestRevisionsAndCanonical:

    def test_export_then_import_creates_copy(self, client, admin_headers, make_post):
        post = make_post(slug="source")
        exported = client.get(f"/api/v1/posts/{post.id}/export", headers=admin_headers).get_json()

        assert exported["version"] == 1
        assert [m["type"] for m in exported["modules"]] == ["hero", "prose"]

        exported["post"]["slug"] = "copy"
        resp = client.post("/api/v1/posts/import", json=exported, headers=admin_headers)

        assert resp.status_code == 201
        copy = db.session.get(Post, resp.get_json()["id"])
        assert copy.slug == "copy"
        assert len(copy.post_modules) == 2

    def test_import_global_slug_of_another_type_conflicts(self, client, admin_headers, make_post):
        client.post(
            "/api/v1/globals",
            json={"type": "callout", "global_slug": "newsletter", "props": {"title": "Subscribe"}},
            headers=admin_headers,
        )
        post = make_post(slug="source")
        exported = client.get(f"/api/v1/posts/{post.id}/export", headers=admin_headers).get_json()
        exported["post"]["slug"] = "copy"
        exported["modules"] = [
            {"type": "prose", "scope": "global", "globalSlug": "newsletter", "orderIndex": 0},
        ]

        resp = client.post("/api/v1/posts/import", json=exported, headers=admin_headers)

        assert resp.status_code == 409
        assert Post.query.filter_by(slug="copy").count() == 0

    def test_import_slug_clash_conflicts(self, client, admin_headers, make_post):
        post = make_post(slug="taken")
        exported = client.get(f"/api/v1/posts/{post.id}/export", headers=admin_headers).get_json()

        resp = client.post("/api/v1/posts/import", json=exported, headers=admin_headers)
        assert resp.status_code == 409

    def test_restore_publish_revision_keeps_status(self, client, admin_headers, make_post):
        post = make_post(title="First")
        publish_post(post_id=post.id)
        first_revision = PostRevision.query.filter_by(post_id=post.id, action="post.publish").one()

        client.patch(f"/api/v1/posts/{post.id}", json={"title": "Second"}, headers=admin_headers)

        resp = client.post(
            f"/api/v1/posts/{post.id}/revisions/{first_revision.id}/restore",
            headers=admin_headers,
        )

        assert resp.status_code == 200
        db.session.refresh(post)
        assert post.title == "First"
        assert post.status == "published"


class TestOptimisticLock:

    def test_stale_copy_conflicts(self, client, admin_headers, make_post):
        post = make_post()
        resp = client.patch(
            f"/api/v1/posts/{post.id}",
            json={"title": "Mine"},
            headers={**admin_headers, "If-Unmodified-Since": "Wed, 21 Oct 2015 07:28:00 GMT"},
        )
        assert resp.status_code == 409

    def test_fresh_copy_passes(self, client, admin_headers, make_post):
        post = make_post()
        resp = client.patch(
            f"/api/v1/posts/{post.id}",
            json={"title": "Mine"},
            headers={**admin_headers, "If-Unmodified-Since": "Fri, 01 Jan 2100 00:00:00 GMT"},
        )
        assert resp.status_code == 200

    def test_malformed_header(self, client, admin_headers, make_post):
        post = make_post()
        resp = client.patch(
            f"/api/v1/posts/{post.id}",
            json={"title": "Mine"},
            headers={**admin_headers, "If-Unmodified-Since": "yesterday-ish"},
        )
        assert resp.status_code == 400
