import logging
import secrets
import string
from datetime import timedelta

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from momentpick.core.config import get_settings
from momentpick.core.security import hash_password, verify_password
from momentpick.models.common import utcnow
from momentpick.models.event import Event
from momentpick.models.membership import Membership
from momentpick.models.photo import Photo
from momentpick.models.user import User
from momentpick.services import membership, photos
from momentpick.services.exceptions import (
    AuthError,
    ExpiredError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from momentpick.services.policy import Action, authorize
from momentpick.services.storage import BlobStore, StorageError

logger = logging.getLogger(__name__)

INVITE_ALPHABET = string.ascii_uppercase + string.digits
MAX_INVITE_ATTEMPTS = 5


def generate_invite_code(length: int) -> str:
    return "".join(secrets.choice(INVITE_ALPHABET) for _ in range(length))


def _unused_invite_code(db: Session, length: int) -> str:
    for _ in range(MAX_INVITE_ATTEMPTS):
        code = generate_invite_code(length)
        if not db.scalar(select(Event.id).where(Event.invite_code == code)):
            return code
    raise InternalError("Failed to create event.")


def event_fields(event: Event) -> dict:
    return {
        "id": event.id,
        "name": event.name,
        "description": event.description,
        "creator_id": event.creator_id,
        "invite_code": event.invite_code,
        "expires_at": event.expires_at,
        "created_at": event.created_at,
    }


def create_event(db: Session, creator_id: str, name: str, password: str, description: str | None = None) -> Event:
    name = (name or "").strip()
    if not name or not password:
        raise ValidationError("Event name and password are required.")

    settings = get_settings()
    password_hash = hash_password(password)
    for attempt in range(1, MAX_INVITE_ATTEMPTS + 1):
        now = utcnow()
        event = Event(
            name=name,
            description=(description or "").strip(),
            creator_id=creator_id,
            password_hash=password_hash,
            invite_code=_unused_invite_code(db, settings.invite_code_length),
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(days=settings.event_retention_days),
        )
        db.add(event)
        try:
            db.flush()
            membership.add(db, event.id, creator_id)
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.warning("event_create_conflict", extra={"attempt": attempt, "creator_id": creator_id})
            continue
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("event_create_failed", extra={"creator_id": creator_id})
            raise InternalError("Failed to create event.") from exc
        db.refresh(event)
        logger.info("event_created", extra={"event_id": event.id, "creator_id": creator_id})
        return event
    raise InternalError("Failed to create event.")


def join_event(db: Session, user_id: str, invite_code: str, password: str) -> tuple[Event, bool]:
    """Join by invite code and password. Returns the event and whether a membership was created."""
    code = (invite_code or "").strip().upper()
    if not code or not password:
        raise ValidationError("Invite code and password are required.")

    event = db.scalar(select(Event).where(Event.invite_code == code))
    if not event:
        raise NotFoundError("Event not found. Check the invite code.")
    if event.is_expired():
        raise ExpiredError("This event has expired.")
    if not verify_password(password, event.password_hash):
        raise AuthError("Incorrect event password.")

    try:
        _, created = membership.add(db, event.id, user_id)
        if created:
            db.commit()
    except IntegrityError:
        # Lost a race with a concurrent join for the same user.
        db.rollback()
        created = False
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("event_join_failed", extra={"event_id": event.id, "user_id": user_id})
        raise InternalError("Failed to join event.") from exc

    if created:
        logger.info("event_joined", extra={"event_id": event.id, "user_id": user_id})
    return event, created


def list_events_for_user(db: Session, user_id: str) -> list[dict]:
    stmt = (
        select(Event, User.name)
        .join(Membership, Membership.event_id == Event.id)
        .outerjoin(User, User.id == Event.creator_id)
        .where(Membership.user_id == user_id)
        .order_by(Event.created_at.desc())
    )
    rows = db.execute(stmt).all()
    event_ids = [event.id for event, _ in rows]
    photo_counts = photos.counts_for(db, event_ids)
    participant_counts = membership.counts_for(db, event_ids)
    now = utcnow()
    return [
        {
            **event_fields(event),
            "photo_count": photo_counts.get(event.id, 0),
            "participant_count": participant_counts.get(event.id, 0),
            "creator_name": creator_name or "Unknown",
            "is_creator": event.creator_id == user_id,
            "is_expired": event.is_expired(now),
        }
        for event, creator_name in rows
    ]


def get_event_detail(db: Session, user_id: str, event_id: str) -> dict:
    authorize(db, user_id, Action.VIEW_EVENT, event_id)
    event = db.get(Event, event_id)
    if not event:
        raise NotFoundError("Event not found.")

    participants = membership.list_users(db, event_id)
    names = {user.id: user.name for user in participants}
    creator_name = names.get(event.creator_id)
    if creator_name is None:
        creator = db.get(User, event.creator_id)
        creator_name = creator.name if creator else "Unknown"

    return {
        "event": {
            **event_fields(event),
            "creator_name": creator_name,
            "is_creator": event.creator_id == user_id,
            "is_expired": event.is_expired(),
        },
        "participants": [{"id": user.id, "name": user.name, "email": user.email} for user in participants],
        "photos": [
            {**photos.photo_fields(photo), "uploader_name": names.get(photo.uploader_id, "Unknown")}
            for photo in photos.rows_for_event(db, event_id)
        ],
    }


def delete_event(db: Session, store: BlobStore, user_id: str, event_id: str) -> None:
    event = db.get(Event, event_id)
    if not event:
        raise NotFoundError("Event not found.")
    authorize(db, user_id, Action.DELETE_EVENT, event_id, event=event)
    try:
        purge_event(db, store, event_id)
    except SQLAlchemyError as exc:
        logger.exception("event_delete_failed", extra={"event_id": event_id})
        raise InternalError("Failed to delete event.") from exc


def purge_event(db: Session, store: BlobStore, event_id: str) -> int:
    """Remove an event's blobs, then its photo rows, memberships and the event row.

    Blob failures are logged and skipped; rows go in a single transaction.
    Every step is a no-op when its target is already gone. Returns the number
    of photo rows the event had.
    """
    keys = list(db.scalars(select(Photo.storage_path).where(Photo.event_id == event_id)).all())
    for key in keys:
        try:
            store.delete(key)
        except StorageError:
            logger.exception("blob_delete_failed", extra={"event_id": event_id, "storage_path": key})
    try:
        store.delete_prefix(event_id)
    except StorageError:
        logger.exception("blob_prefix_delete_failed", extra={"event_id": event_id})

    try:
        db.execute(delete(Photo).where(Photo.event_id == event_id))
        db.execute(delete(Membership).where(Membership.event_id == event_id))
        db.execute(delete(Event).where(Event.id == event_id))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise
    logger.info("event_purged", extra={"event_id": event_id, "photo_count": len(keys)})
    return len(keys)
