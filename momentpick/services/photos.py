import logging
import time
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import PurePosixPath

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from momentpick.core.config import get_settings
from momentpick.models.event import Event
from momentpick.models.photo import Photo
from momentpick.services.exceptions import ExpiredError, InternalError, NotFoundError, ValidationError
from momentpick.services.policy import Action, authorize
from momentpick.services.storage import BlobStore, StorageError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".jpg"


@dataclass(slots=True)
class IncomingPhoto:
    filename: str
    content_type: str
    data: bytes


def storage_key_for(event_id: str, filename: str) -> str:
    ext = PurePosixPath(filename or "").suffix.lower() or DEFAULT_EXTENSION
    return f"{event_id}/{int(time.time() * 1000)}_{uuid.uuid4().hex}{ext}"


def photo_fields(photo: Photo) -> dict:
    return {
        "id": photo.id,
        "event_id": photo.event_id,
        "uploader_id": photo.uploader_id,
        "file_name": photo.file_name,
        "storage_path": photo.storage_path,
        "url": photo.url,
        "size": photo.size,
        "mime_type": photo.mime_type,
        "created_at": photo.created_at,
    }


def rows_for_event(db: Session, event_id: str) -> list[Photo]:
    stmt = select(Photo).where(Photo.event_id == event_id).order_by(Photo.created_at.desc())
    return list(db.scalars(stmt).all())


def counts_for(db: Session, event_ids: Iterable[str]) -> dict[str, int]:
    ids = list(event_ids)
    if not ids:
        return {}
    rows = db.execute(select(Photo.event_id, func.count()).where(Photo.event_id.in_(ids)).group_by(Photo.event_id)).all()
    return {event_id: int(count) for event_id, count in rows}


def upload_photos(
    db: Session,
    store: BlobStore,
    user_id: str,
    event_id: str,
    files: Sequence[IncomingPhoto],
) -> list[Photo]:
    authorize(db, user_id, Action.UPLOAD_PHOTO, event_id)
    event = db.get(Event, event_id)
    if not event or event.is_expired():
        raise ExpiredError("This event has expired.")
    if not files:
        raise ValidationError("No files uploaded.")

    stored: list[Photo] = []
    for incoming in files[: get_settings().max_files_per_upload]:
        key = storage_key_for(event_id, incoming.filename)
        try:
            store.put(key, incoming.data, incoming.content_type)
            url = store.public_url(key)
        except StorageError:
            logger.exception("photo_blob_write_failed", extra={"event_id": event_id, "file_name": incoming.filename})
            continue

        photo = Photo(
            event_id=event_id,
            uploader_id=user_id,
            file_name=incoming.filename,
            storage_path=key,
            url=url,
            size=len(incoming.data),
            mime_type=incoming.content_type,
        )
        db.add(photo)
        try:
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("photo_record_failed", extra={"event_id": event_id, "storage_path": key})
            try:
                store.delete(key)
            except StorageError:
                logger.exception("blob_delete_failed", extra={"event_id": event_id, "storage_path": key})
            continue
        db.refresh(photo)
        stored.append(photo)

    logger.info("photos_uploaded", extra={"event_id": event_id, "requested": len(files), "stored": len(stored)})
    return stored


def list_photos(db: Session, user_id: str, event_id: str) -> list[Photo]:
    authorize(db, user_id, Action.VIEW_EVENT, event_id)
    return rows_for_event(db, event_id)


def delete_photo(db: Session, store: BlobStore, user_id: str, photo_id: str) -> None:
    photo = db.get(Photo, photo_id)
    if not photo:
        raise NotFoundError("Photo not found.")
    authorize(db, user_id, Action.DELETE_PHOTO, photo.event_id, photo=photo)

    # The row stays when the blob survives so the delete can be retried.
    try:
        store.delete(photo.storage_path)
    except StorageError as exc:
        logger.exception("photo_blob_delete_failed", extra={"photo_id": photo_id, "storage_path": photo.storage_path})
        raise InternalError("Failed to delete photo.") from exc

    try:
        db.execute(delete(Photo).where(Photo.id == photo_id))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("photo_record_delete_failed", extra={"photo_id": photo_id})
        raise InternalError("Failed to delete photo.") from exc
    logger.info("photo_deleted", extra={"photo_id": photo_id, "user_id": user_id})
