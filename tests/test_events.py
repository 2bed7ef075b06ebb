import re
from datetime import datetime, timedelta

from sqlalchemy import func, select, update

from momentpick.models.common import utcnow
from momentpick.models.event import Event
from momentpick.models.membership import Membership
from momentpick.models.photo import Photo
from momentpick.services.events import create_event as create_event_service
from tests.conftest import create_event, image_files, register, upload


def _expire(db, event_id: str) -> None:
    db.execute(update(Event).where(Event.id == event_id).values(expires_at=utcnow() - timedelta(seconds=1)))
    db.commit()


def test_create_event_returns_code_and_hides_password(client):
    headers, user = register(client, "Alice", "alice@example.com")
    event = create_event(client, headers, description="Beach weekend")
    assert re.fullmatch(r"[A-Z0-9]{8}", event["invite_code"])
    assert event["creator_id"] == user["id"]
    assert event["description"] == "Beach weekend"
    assert "password" not in event and "password_hash" not in event


def test_create_event_requires_name_and_password(client):
    headers, _ = register(client, "Alice", "alice@example.com")
    assert client.post("/events", json={"name": "Trip"}, headers=headers).status_code == 400
    assert client.post("/events", json={"name": "   ", "password": "pw"}, headers=headers).status_code == 400


def test_expiry_is_exactly_seven_days_after_creation(client, db):
    _, user = register(client, "Alice", "alice@example.com")
    event = create_event_service(db, user["id"], "Trip", "pw1234")
    assert event.expires_at.tzinfo is not None
    assert event.expires_at - event.created_at == timedelta(days=7)


def test_invite_codes_are_unique(client, db):
    _, user = register(client, "Alice", "alice@example.com")
    codes = {create_event_service(db, user["id"], f"Event {i}", "pw").invite_code for i in range(10)}
    assert len(codes) == 10


def test_invite_code_collision_is_retried(client, db, monkeypatch):
    _, user = register(client, "Alice", "alice@example.com")
    first = create_event_service(db, user["id"], "First", "pw")
    generated = iter([first.invite_code, "ZZZZ9999"])
    monkeypatch.setattr("momentpick.services.events.generate_invite_code", lambda length: next(generated))
    second = create_event_service(db, user["id"], "Second", "pw")
    assert second.invite_code == "ZZZZ9999"


def test_creator_is_auto_enrolled(client):
    headers, user = register(client, "Alice", "alice@example.com")
    event = create_event(client, headers)
    detail = client.get(f"/events/{event['id']}", headers=headers).json()
    assert [p["id"] for p in detail["participants"]] == [user["id"]]
    assert detail["event"]["is_creator"] is True


def test_join_is_case_insensitive_and_idempotent(client, db):
    alice, _ = register(client, "Alice", "alice@example.com")
    bob, bob_user = register(client, "Bob", "bob@example.com")
    event = create_event(client, alice)

    first = client.post("/events/join", json={"invite_code": event["invite_code"].lower(), "password": "pw1234"}, headers=bob)
    second = client.post("/events/join", json={"invite_code": f" {event['invite_code']} ", "password": "pw1234"}, headers=bob)
    assert first.status_code == 200, first.text
    assert second.status_code == 200
    assert first.json()["event"]["id"] == second.json()["event"]["id"] == event["id"]
    assert "already" in second.json()["message"]
    assert "password_hash" not in second.json()["event"]

    rows = db.scalar(
        select(func.count()).select_from(Membership).where(
            Membership.event_id == event["id"], Membership.user_id == bob_user["id"]
        )
    )
    assert rows == 1


def test_join_unknown_code_is_404(client):
    headers, _ = register(client, "Bob", "bob@example.com")
    resp = client.post("/events/join", json={"invite_code": "NOPE0000", "password": "pw"}, headers=headers)
    assert resp.status_code == 404


def test_join_with_wrong_password_is_401(client):
    alice, _ = register(client, "Alice", "alice@example.com")
    bob, _ = register(client, "Bob", "bob@example.com")
    event = create_event(client, alice)
    resp = client.post("/events/join", json={"invite_code": event["invite_code"], "password": "wrong"}, headers=bob)
    assert resp.status_code == 401
    assert resp.json()["error"] == "Incorrect event password."


def test_join_after_expiry_is_410_even_with_correct_password(client, db):
    alice, _ = register(client, "Alice", "alice@example.com")
    bob, _ = register(client, "Bob", "bob@example.com")
    event = create_event(client, alice)
    _expire(db, event["id"])
    resp = client.post("/events/join", json={"invite_code": event["invite_code"], "password": "pw1234"}, headers=bob)
    assert resp.status_code == 410


def test_list_events_includes_created_and_joined_newest_first(client):
    alice, alice_user = register(client, "Alice", "alice@example.com")
    bob, _ = register(client, "Bob", "bob@example.com")
    older = create_event(client, alice, name="Older")
    client.post("/events/join", json={"invite_code": older["invite_code"], "password": "pw1234"}, headers=bob)
    newer = create_event(client, bob, name="Newer")

    events = client.get("/events", headers=bob).json()["events"]
    assert [e["id"] for e in events] == [newer["id"], older["id"]]
    joined = events[1]
    assert joined["is_creator"] is False
    assert joined["creator_name"] == "Alice"
    assert joined["creator_id"] == alice_user["id"]
    assert joined["participant_count"] == 2
    assert joined["photo_count"] == 0
    assert events[0]["is_creator"] is True

    assert [e["id"] for e in client.get("/events", headers=alice).json()["events"]] == [older["id"]]


def test_detail_and_photos_forbidden_for_non_member(client):
    alice, _ = register(client, "Alice", "alice@example.com")
    mallory, _ = register(client, "Mallory", "mallory@example.com")
    event = create_event(client, alice)
    assert client.get(f"/events/{event['id']}", headers=mallory).status_code == 403
    assert client.get(f"/photos/{event['id']}", headers=mallory).status_code == 403
    assert client.get("/events/does-not-exist", headers=mallory).status_code == 403
    assert client.get("/photos/does-not-exist", headers=mallory).status_code == 403


def test_only_creator_can_delete_event(client):
    alice, _ = register(client, "Alice", "alice@example.com")
    bob, _ = register(client, "Bob", "bob@example.com")
    event = create_event(client, alice)
    client.post("/events/join", json={"invite_code": event["invite_code"], "password": "pw1234"}, headers=bob)

    assert client.delete(f"/events/{event['id']}", headers=bob).status_code == 403
    assert client.delete("/events/does-not-exist", headers=alice).status_code == 404
    resp = client.delete(f"/events/{event['id']}", headers=alice)
    assert resp.status_code == 200
    assert client.delete(f"/events/{event['id']}", headers=alice).status_code == 404


def test_timestamps_are_served_with_a_utc_offset(client):
    headers, _ = register(client, "Alice", "alice@example.com")
    created = create_event(client, headers)
    listed = client.get("/events", headers=headers).json()["events"][0]
    detail = client.get(f"/events/{created['id']}", headers=headers).json()["event"]
    me = client.get("/auth/me", headers=headers).json()["user"]

    for value in (created["expires_at"], listed["expires_at"], listed["created_at"], detail["expires_at"], me["created_at"]):
        assert value.endswith(("Z", "+00:00")), value
    expires_at = datetime.fromisoformat(listed["expires_at"].replace("Z", "+00:00"))
    created_at = datetime.fromisoformat(listed["created_at"].replace("Z", "+00:00"))
    assert expires_at - created_at == timedelta(days=7)


def test_delete_event_route_removes_blobs_photos_and_memberships(client, db, store):
    alice, _ = register(client, "Alice", "alice@example.com")
    bob, _ = register(client, "Bob", "bob@example.com")
    event = create_event(client, alice)
    client.post("/events/join", json={"invite_code": event["invite_code"], "password": "pw1234"}, headers=bob)
    photos = upload(client, bob, event["id"], image_files(2)).json()["photos"]
    assert all(store.exists(photo["storage_path"]) for photo in photos)

    assert client.delete(f"/events/{event['id']}", headers=alice).status_code == 200

    for photo in photos:
        assert store.exists(photo["storage_path"]) is False
    assert not (store.root / event["id"]).exists()
    for model, column in ((Event, Event.id), (Photo, Photo.event_id), (Membership, Membership.event_id)):
        assert db.scalar(select(func.count()).select_from(model).where(column == event["id"])) == 0
    assert client.get("/events", headers=bob).json()["events"] == []
