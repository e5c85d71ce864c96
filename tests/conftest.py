import base64
import io

import pytest
from PIL import Image

from app import create_app
from extensions import db


def make_image_bytes(size=(64, 48), color=(200, 30, 30), fmt="PNG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


def make_data_url(size=(64, 48), color=(200, 30, 30), fmt="PNG") -> str:
    mime = "image/png" if fmt == "PNG" else f"image/{fmt.lower()}"
    encoded = base64.b64encode(make_image_bytes(size, color, fmt)).decode("ascii")
    return f"data:{mime};base64,{encoded}"


@pytest.fixture
def app(tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'gallery.db'}",
            "IMAGE_STORAGE_FOLDER": str(tmp_path / "images"),
            "RATELIMIT_ENABLED": False,
            "OPENAI_API_KEY": "",
        }
    )
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, username="alice", email="alice@example.com", password="correct-horse", full_name=None):
    payload = {"username": username, "email": email, "password": password}
    if full_name:
        payload["fullName"] = full_name
    return client.post("/api/register", json=payload)


@pytest.fixture
def auth_client(client):
    response = register(client)
    assert response.status_code == 200
    return client


def add_photo(client, **overrides):
    payload = {
        "fileName": "1700000000000_beach.png",
        "originalName": "beach.png",
        "category": "travel",
        "uploadDate": "2026-10-17T10:00:00Z",
        "imageData": make_data_url(),
        "tags": [],
    }
    payload.update(overrides)
    return client.post("/api/photos", json=payload)
