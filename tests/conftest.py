"""
Shared fixtures for the Newsroom test suite.

Run with: pytest tests/ -v

NOTE: pytest and pytest-flask are listed under extras_require["dev"] in setup.py.
Install with: pip install -e ".[dev]"
"""

import base64
import io
import os
import shutil
import tempfile

import pytest
from flask import Flask
from PIL import Image

from newsroom import Newsroom
from newsroom.core.database import db
from newsroom.modules.auth.models import AccessToken, User


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_image_bytes(fmt="PNG", size=(10, 10), color=(255, 0, 0)):
    """Encode a solid-colour image with Pillow."""
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


def make_base64_image(fmt="PNG", data_url=False, **kwargs):
    encoded = base64.b64encode(make_image_bytes(fmt, **kwargs)).decode("ascii")
    if data_url:
        return f"data:image/{fmt.lower()};base64,{encoded}"
    return encoded


def build_app(tmp_dir, **overrides):
    """Fully initialised Flask app backed by a sqlite file in tmp_dir."""
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["SECRET_KEY"] = "test-secret"
    config = {
        "DB_DIR": tmp_dir,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///" + os.path.join(tmp_dir, "newsroom.db"),
        "STORAGE_ROOT": os.path.join(tmp_dir, "storage"),
        "UPLOAD_METHOD": "local",
        "RATELIMIT_ENABLED": False,
        "AUTH_API_BASE_URL": "https://auth.example.com/api",
    }
    config.update(overrides)
    Newsroom(app, config)
    return app


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_dir():
    """Temporary directory for the database and storage root, cleaned up after."""
    d = tempfile.mkdtemp(prefix="newsroom-test-")
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def app(tmp_dir):
    app = build_app(tmp_dir)
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def storage_root(app):
    return app.config["STORAGE_ROOT"]


@pytest.fixture
def user(app):
    """A local user, committed."""
    with app.app_context():
        u = User(name="Editor", email="editor@example.com")
        u.set_password("secret123")
        db.session.add(u)
        db.session.commit()
        return db.session.get(User, u.id)


@pytest.fixture
def auth_headers(app, user):
    """Authorization header carrying a fresh bearer token for `user`."""
    with app.app_context():
        token = AccessToken.issue(db.session.get(User, user.id))
        db.session.commit()
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def png_bytes():
    return make_image_bytes("PNG")
