import os
import shutil
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["AUTO_CREATE_TABLES"] = "true"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="momentpick-test-")
os.environ["PUBLIC_BASE_URL"] = "http://testserver"
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"

from momentpick.db.base import Base
from momentpick.db.session import SessionLocal, engine
from momentpick.main import create_app
from momentpick.services.storage import get_blob_store

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    # Pooled connections must close before the file goes, or SQLite reopens it read-only.
    engine.dispose()
    path = Path("test.db")
    if path.exists():
        path.unlink()
    for child in get_blob_store().root.iterdir():
        if child.is_dir():
            shutil.rmtree(child)
        else:
            child.unlink()


@pytest.fixture()
def app():
    application = create_app()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store():
    return get_blob_store()


def register(client, name: str, email: str, password: str = "secret123") -> tuple[dict, dict]:
    resp = client.post("/auth/register", json={"name": name, "email": email, "password": password})
    assert resp.status_code == 201, resp.text
    body = resp.json()
    return {"Authorization": f"Bearer {body['token']}"}, body["user"]


def create_event(client, headers: dict, name: str = "Trip", password: str = "pw1234", description: str | None = None) -> dict:
    payload = {"name": name, "password": password}
    if description is not None:
        payload["description"] = description
    resp = client.post("/events", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["event"]


def image_files(count: int, content_type: str = "image/png", data: bytes = PNG_BYTES) -> list[tuple]:
    return [("photos", (f"photo-{i}.png", data, content_type)) for i in range(count)]


def upload(client, headers: dict, event_id: str, files: list[tuple]):
    return client.post(f"/photos/upload/{event_id}", files=files, headers=headers)
