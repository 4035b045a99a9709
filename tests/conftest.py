"""
Shared fixtures: an app on an in-memory database, authenticated users,
and a fake HTTP session serving generated images.
"""

import io
import sys
from pathlib import Path

import pytest
import requests
from PIL import Image

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from app import create_app
from models import db, User


@pytest.fixture
def app():
    app = create_app('config.TestingConfig')
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Create an approved user and return Authorization headers for it."""
    def _make(email='writer@letters.com', name='Test Writer', password='password123', **fields):
        with app.app_context():
            user = User(email=email, name=name, verify_account=True, **fields)
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return {'Authorization': f'Bearer {user.get_auth_token()}'}
    return _make


@pytest.fixture
def auth_headers(make_user):
    return make_user()


@pytest.fixture
def other_headers(make_user):
    return make_user(email='other@letters.com', name='Other Writer')


def png_bytes(width, height, color=(30, 60, 90)):
    buffer = io.BytesIO()
    Image.new('RGB', (width, height), color).save(buffer, format='PNG')
    return buffer.getvalue()


class FakeResponse:
    def __init__(self, content=b'', status_code=200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} Error')


class FakeImageSession:
    """Serves images from a dict of url -> bytes. Unknown URLs answer 404."""

    def __init__(self, images=None):
        self.images = dict(images or {})
        self.requested = []

    def get(self, url, timeout=None):
        self.requested.append(url)
        if url not in self.images:
            return FakeResponse(status_code=404)
        return FakeResponse(self.images[url])


HEADER_URL = 'https://cdn.letters.com/header.png'
FOOTER_URL = 'https://cdn.letters.com/footer.png'
SEAL_URL = 'https://cdn.letters.com/seal.png'


@pytest.fixture
def image_session():
    return FakeImageSession({
        HEADER_URL: png_bytes(2100, 300),
        # 10:1, so the footer is 21mm tall at full page width
        FOOTER_URL: png_bytes(2000, 200),
        SEAL_URL: png_bytes(200, 200),
    })
