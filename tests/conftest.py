import uuid

import pytest
from flask_jwt_extended import create_access_token

from modulecms import create_app
from modulecms.application.posts.create_post import create_post
from modulecms.extensions import db
from modulecms.models.user import User


@pytest.fixture
def app(tmp_path):
    """Application with an in-memory database and media stored under ``tmp_path``."""
    app = create_app("testing")
    app.config["PUBLIC_ROOT"] = str(tmp_path / "public")

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make(role="admin", email=None, password="correct-horse", is_active=True):
        user = User()
        user.email = email or f"{role}-{uuid.uuid4().hex[:8]}@example.com"
        user.role = role
        user.full_name = role.title()
        user.is_active = is_active
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def auth_headers(make_user):
    """Factory returning bearer headers for a fresh user with ``role``."""
    def _headers(role="admin"):
        user = make_user(role=role)
        token = create_access_token(identity=user.id, additional_claims={"role": role})
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def admin_headers(auth_headers):
    return auth_headers("admin")


@pytest.fixture
def editor_headers(auth_headers):
    return auth_headers("editor")


@pytest.fixture
def make_post(app):
    def _make(**data):
        payload = {"type": "page", "title": "About us", "slug": "about", "locale": "en"}
        payload.update(data)
        return create_post(actor_id=None, data=payload)
    return _make
