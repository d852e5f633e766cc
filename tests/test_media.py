import io
import os
from unittest.mock import patch

import pytest
from PIL import Image

from modulecms.application.media.rename_media import rename_media
from modulecms.application.modules.add_module_to_post import add_module_to_post
from modulecms.extensions import db
from modulecms.models.media_asset import MediaAsset
from modulecms.models.module_instance import ModuleInstance
from modulecms.services.media_service import media_service
from modulecms.services.storage_service import storage_service


def _png_bytes(size=(64, 48), color="red"):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, "PNG")
    buffer.seek(0)
    return buffer


@pytest.fixture
def upload(client, admin_headers):
    def _upload(filename="photo.png", **form):
        data = {"file": (_png_bytes(), filename), **form}
        return client.post(
            "/api/v1/media",
            data=data,
            headers=admin_headers,
            content_type="multipart/form-data",
        )
    return _upload


class TestParseDerivatives:

    def test_default_spec(self, app):
        specs = {s["name"]: s for s in media_service.parse_derivatives()}
        assert specs["thumb"]["width"] == 200
        assert specs["thumb"]["height"] == 200
        assert specs["thumb"]["fit"] == "cover"
        assert specs["small"]["height"] is None

    def test_focal_point_keeps_crop_inside_image(self, app):
        spec = {"name": "thumb", "width": 100, "height": 100, "fit": "cover"}
        rect = media_service.compute_focal_crop_rect(400, 200, spec, {"x": 1.0, "y": 0.5})
        assert rect["width"] == rect["height"] == 200
        assert rect["left"] + rect["width"] == 400

    def test_focal_crop_rounds_halves_up(self, app):
        spec = {"name": "square", "width": 50, "height": 50, "fit": "cover"}
        rect = media_service.compute_focal_crop_rect(101, 100, spec, {"x": 0.5, "y": 0.5})
        assert rect == {"left": 1, "top": 0, "width": 100, "height": 100}


class TestUpload:

    def test_upload_generates_variants(self, upload):
        resp = upload(alt_text="A red square")

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["mime_type"] == "image/png"
        assert body["alt_text"] == "A red square"
        names = [v["name"] for v in body["variants"]]
        assert "thumb" in names
        thumb = next(v for v in body["variants"] if v["name"] == "thumb")
        assert (thumb["width"], thumb["height"]) == (200, 200)
        assert storage_service.exists(body["url"])

    def test_upload_without_file(self, client, admin_headers):
        resp = client.post("/api/v1/media", data={}, headers=admin_headers, content_type="multipart/form-data")
        assert resp.status_code == 400

    def test_disallowed_extension(self, client, admin_headers):
        resp = client.post(
            "/api/v1/media",
            data={"file": (io.BytesIO(b"#!/bin/sh"), "script.sh")},
            headers=admin_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400

    def test_translator_cannot_upload(self, client, auth_headers):
        resp = client.post(
            "/api/v1/media",
            data={"file": (_png_bytes(), "photo.png")},
            headers=auth_headers("translator"),
            content_type="multipart/form-data",
        )
        assert resp.status_code == 403


class TestDelete:

    def test_in_use_media_needs_force(self, client, admin_headers, upload, make_post):
        media = upload().get_json()
        post = make_post()
        add_module_to_post(
            post_id=post.id,
            module_type="hero",
            props={"title": "Hi", "backgroundImage": media["url"]},
        )

        usage = client.get(f"/api/v1/media/{media['id']}/usage", headers=admin_headers).get_json()
        assert usage["in_use"] is True

        resp = client.delete(f"/api/v1/media/{media['id']}", headers=admin_headers)
        assert resp.status_code == 409

        resp = client.delete(f"/api/v1/media/{media['id']}?force=true", headers=admin_headers)
        assert resp.status_code == 200
        assert db.session.get(MediaAsset, media["id"]) is None
        assert not storage_service.exists(media["url"])

    def test_delete_removes_variant_files(self, client, admin_headers, upload):
        media = upload().get_json()
        variant_urls = [v["url"] for v in media["variants"]]

        client.delete(f"/api/v1/media/{media['id']}", headers=admin_headers)

        assert not any(storage_service.exists(url) for url in variant_urls)

    def test_delete_leaves_assets_sharing_the_name_alone(self, client, admin_headers, upload):
        photo = upload().get_json()
        other = upload().get_json()
        client.post(f"/api/v1/media/{photo['id']}/rename", json={"filename": "photo"}, headers=admin_headers)
        other = client.post(
            f"/api/v1/media/{other['id']}/rename",
            json={"filename": "photo-darkroom"},
            headers=admin_headers,
        ).get_json()

        client.delete(f"/api/v1/media/{photo['id']}", headers=admin_headers)

        assert other["url"] == "/uploads/photo-darkroom.png"
        assert storage_service.exists(other["url"])
        assert all(storage_service.exists(v["url"]) for v in other["variants"])


class TestRenameAndOptimize:

    def test_rename_moves_files_and_rewrites_references(self, client, admin_headers, upload, make_post):
        media = upload().get_json()
        post = make_post()
        pm = add_module_to_post(
            post_id=post.id,
            module_type="hero",
            props={"title": "Hi", "backgroundImage": media["url"]},
        )

        resp = client.post(
            f"/api/v1/media/{media['id']}/rename",
            json={"filename": "Team Photo.png"},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["url"] == "/uploads/team-photo.png"
        assert storage_service.exists(body["url"])
        assert not storage_service.exists(media["url"])
        assert all(v["url"].startswith("/uploads/team-photo.") for v in body["variants"])

        instance = db.session.get(ModuleInstance, pm.module_id)
        assert instance.props["backgroundImage"] == "/uploads/team-photo.png"

    def test_second_rename_to_same_name_gets_suffix(self, client, admin_headers, upload):
        first = upload().get_json()
        second = upload().get_json()
        client.post(f"/api/v1/media/{first['id']}/rename", json={"filename": "logo"}, headers=admin_headers)

        resp = client.post(f"/api/v1/media/{second['id']}/rename", json={"filename": "logo"}, headers=admin_headers)

        assert resp.get_json()["url"] == "/uploads/logo-1.png"

    def test_rename_leaves_assets_sharing_the_name_alone(self, client, admin_headers, upload):
        photo = upload().get_json()
        other = upload().get_json()
        client.post(f"/api/v1/media/{photo['id']}/rename", json={"filename": "photo"}, headers=admin_headers)
        other = client.post(
            f"/api/v1/media/{other['id']}/rename",
            json={"filename": "photo-darkroom"},
            headers=admin_headers,
        ).get_json()

        resp = client.post(f"/api/v1/media/{photo['id']}/rename", json={"filename": "cover"}, headers=admin_headers)

        assert resp.get_json()["url"] == "/uploads/cover.png"
        assert storage_service.exists(other["url"])
        assert all(storage_service.exists(v["url"]) for v in other["variants"])
        assert not storage_service.exists("/uploads/cover-darkroom.png")

    def test_failed_rename_puts_files_back(self, app, upload):
        media = upload().get_json()

        with patch(
            "modulecms.application.media.rename_media.rewrite_references",
            side_effect=RuntimeError("database unavailable"),
        ):
            with pytest.raises(RuntimeError):
                rename_media(media_id=media["id"], filename="cover")

        assert db.session.get(MediaAsset, media["id"]).url == media["url"]
        assert storage_service.exists(media["url"])
        assert all(storage_service.exists(v["url"]) for v in media["variants"])
        assert not storage_service.exists("/uploads/cover.png")

    def test_optimize_writes_webp(self, client, admin_headers, upload):
        media = upload().get_json()

        resp = client.post(f"/api/v1/media/{media['id']}/optimize", headers=admin_headers)

        assert resp.status_code == 200
        body = resp.get_json()
        assert body["optimized_url"].endswith(".webp")
        assert os.path.exists(storage_service.abs_path(body["optimized_url"]))
        assert all("optimizedUrl" in v for v in body["variants"])

    def test_dark_base(self, client, admin_headers, upload):
        media = upload().get_json()

        resp = client.post(f"/api/v1/media/{media['id']}/dark-base", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.get_json()["dark_source_url"].endswith("-dark.png")
