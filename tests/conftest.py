# tests/conftest.py
import io
import os
import tempfile

# Settings are read once at import time; point them at throwaway resources first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="support-desk-uploads-")
os.environ["ADMIN_ID"] = "admin"
os.environ["ADMIN_PASSWORD"] = "admin-pass"
os.environ["JWT_SECRET"] = "test-signing-secret-0123456789abcdef"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["STRICT_OWNER_AUTH"] = "true"
os.environ["ADMIN_EMAIL"] = "desk@example.com"
os.environ["REPORT_TIMEZONE"] = "UTC"
os.environ.pop("GCS_BUCKET_NAME", None)
os.environ.pop("EMAIL_USER", None)

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app.core.database import Base, engine
from app.core.mailer import get_mailer
from app.core.storage import get_attachment_store
from app.main import app


class RecordingMailer:
    def __init__(self):
        self.sent = []

    def send_submission_confirmation(self, to_email, ticket):
        self.sent.append(("confirmation", to_email, ticket))
        return True

    def send_admin_notification(self, ticket):
        self.sent.append(("admin", None, ticket))
        return True

    def send_status_update(self, to_email, ticket, new_status):
        self.sent.append(("status", to_email, new_status))
        return True

    def kinds(self):
        return [kind for kind, _, _ in self.sent]


def make_image(width=64, height=48, fmt="PNG", mode="RGB") -> bytes:
    color = (200, 30, 30, 255) if mode == "RGBA" else (200, 30, 30)
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format=fmt)
    return buffer.getvalue()


def image_part(name="photo.png", data=None, content_type="image/png"):
    return ("images", (name, data if data is not None else make_image(), content_type))


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def store():
    return get_attachment_store()


@pytest.fixture
def client(mailer):
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    app.dependency_overrides[get_mailer] = lambda: mailer
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers(client):
    r = client.post("/api/admin/login", json={"id": "admin", "password": "admin-pass"})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['token']}"}


@pytest.fixture
def create_ticket(client):
    def _create(images=None, **fields):
        data = {
            "customer_name": "Acme",
            "user_name": "bob",
            "password": "pw1",
            "content": "issue A",
        }
        data.update(fields)
        data = {key: value for key, value in data.items() if value is not None}
        r = client.post("/api/requests", data=data, files=images or None)
        assert r.status_code == 201, r.text
        return r.json()

    return _create
