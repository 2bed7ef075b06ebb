from datetime import timedelta
from pathlib import Path

from sqlalchemy import select, update

from momentpick.core.config import get_settings
from momentpick.models.common import utcnow
from momentpick.models.event import Event
from momentpick.models.photo import Photo
from momentpick.services.storage import LocalBlobStore, StorageError, get_blob_store
from tests.conftest import JPEG_BYTES, create_event, image_files, register, upload


class FlakyBlobStore(LocalBlobStore):
    def __init__(self, root: Path, fail_put_for: str = "", fail_delete: bool = False) -> None:
        super().__init__(root, "http://testserver/media")
        self.fail_put_for = fail_put_for
        self.fail_delete = fail_delete

    def put(self, key: str, data: bytes, content_type: str) -> None:
        if self.fail_put_for and data == self.fail_put_for.encode():
            raise StorageError("simulated outage")
        super().put(key, data, content_type)

    def delete(self, key: str) -> None:
        if self.fail_delete:
            raise StorageError("simulated outage")
        super().delete(key)


def _member_pair(client):
    alice, alice_user = register(client, "Alice", "alice@example.com")
    bob, bob_user = register(client, "Bob", "bob@example.com")
    event = create_event(client, alice)
    resp = client.post("/events/join", json={"invite_code": event["invite_code"], "password": "pw1234"}, headers=bob)
    assert resp.status_code == 200
    return alice, bob, event


def test_upload_stores_blobs_and_lists_newest_first(client, store):
    _, bob, event = _member_pair(client)
    resp = upload(client, bob, event["id"], image_files(2))
    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["uploaded"] == 2
    for photo in body["photos"]:
        assert photo["storage_path"].startswith(f"{event['id']}/")
        assert photo["url"].endswith(photo["storage_path"])
        assert photo["mime_type"] == "image/png"
        assert store.exists(photo["storage_path"])

    listed = client.get(f"/photos/{event['id']}", headers=bob).json()["photos"]
    assert len(listed) == 2
    assert listed[0]["created_at"] >= listed[1]["created_at"]
    assert {p["id"] for p in listed} == {p["id"] for p in body["photos"]}


def test_uploaded_photo_is_served_from_media(client):
    _, bob, event = _member_pair(client)
    photo = upload(client, bob, event["id"], image_files(1)).json()["photos"][0]
    resp = client.get(f"/media/{photo['storage_path']}")
    assert resp.status_code == 200
    assert resp.content.startswith(b"\x89PNG")


def test_non_image_is_rejected_before_storage(client, store):
    _, bob, event = _member_pair(client)
    files = [("photos", ("notes.txt", b"hello", "text/plain"))]
    resp = upload(client, bob, event["id"], files)
    assert resp.status_code == 400
    assert not (store.root / event["id"]).exists()


def test_more_than_twenty_files_is_rejected(client, store):
    _, bob, event = _member_pair(client)
    resp = upload(client, bob, event["id"], image_files(21))
    assert resp.status_code == 400
    assert client.get(f"/photos/{event['id']}", headers=bob).json()["photos"] == []


def test_oversized_file_is_rejected(client, monkeypatch):
    monkeypatch.setattr(get_settings(), "max_upload_size_mb", 0)
    _, bob, event = _member_pair(client)
    assert upload(client, bob, event["id"], image_files(1)).status_code == 400


def test_upload_without_files_is_400(client):
    _, bob, event = _member_pair(client)
    resp = client.post(f"/photos/upload/{event['id']}", headers=bob)
    assert resp.status_code == 400


def test_non_member_upload_is_forbidden(client):
    _, _, event = _member_pair(client)
    mallory, _ = register(client, "Mallory", "mallory@example.com")
    assert upload(client, mallory, event["id"], image_files(1)).status_code == 403
    assert upload(client, mallory, "does-not-exist", image_files(1)).status_code == 403


def test_upload_to_expired_event_is_410(client, db):
    _, bob, event = _member_pair(client)
    db.execute(update(Event).where(Event.id == event["id"]).values(expires_at=utcnow() - timedelta(minutes=1)))
    db.commit()
    assert upload(client, bob, event["id"], image_files(1)).status_code == 410


def test_single_file_failure_does_not_abort_batch(app, client, store):
    flaky = FlakyBlobStore(store.root, fail_put_for="broken")
    app.dependency_overrides[get_blob_store] = lambda: flaky
    _, bob, event = _member_pair(client)
    files = image_files(2) + [("photos", ("broken.jpg", b"broken", "image/jpeg"))]
    resp = upload(client, bob, event["id"], files)
    assert resp.status_code == 201
    assert resp.json()["uploaded"] == 2
    assert len(client.get(f"/photos/{event['id']}", headers=bob).json()["photos"]) == 2


def test_uploader_and_creator_can_delete_but_others_cannot(client, store):
    alice, bob, event = _member_pair(client)
    carol, _ = register(client, "Carol", "carol@example.com")
    client.post("/events/join", json={"invite_code": event["invite_code"], "password": "pw1234"}, headers=carol)

    first, second = upload(client, bob, event["id"], image_files(2)).json()["photos"]

    assert client.delete(f"/photos/{first['id']}", headers=carol).status_code == 403
    assert client.delete(f"/photos/{first['id']}", headers=bob).status_code == 200
    assert client.delete(f"/photos/{second['id']}", headers=alice).status_code == 200
    assert not store.exists(first["storage_path"])
    assert not store.exists(second["storage_path"])
    assert client.delete(f"/photos/{first['id']}", headers=bob).status_code == 404
    assert client.get(f"/photos/{event['id']}", headers=bob).json()["photos"] == []


def test_photo_row_survives_failed_blob_delete(app, client, store, db):
    _, bob, event = _member_pair(client)
    photo = upload(client, bob, event["id"], [("photos", ("a.jpg", JPEG_BYTES, "image/jpeg"))]).json()["photos"][0]

    app.dependency_overrides[get_blob_store] = lambda: FlakyBlobStore(store.root, fail_delete=True)
    resp = client.delete(f"/photos/{photo['id']}", headers=bob)
    assert resp.status_code == 500
    assert db.scalar(select(Photo.id).where(Photo.id == photo["id"])) == photo["id"]
    assert store.exists(photo["storage_path"])
