import logging
from collections import defaultdict
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from momentpick.models.common import utcnow
from momentpick.models.event import Event
from momentpick.models.photo import Photo
from momentpick.services.events import purge_event
from momentpick.services.storage import BlobStore, StorageError

logger = logging.getLogger(__name__)


def find_expired_event_ids(db: Session, now: datetime | None = None) -> list[str]:
    now = now or utcnow()
    return list(db.scalars(select(Event.id).where(Event.expires_at <= now)).all())


def run_retention_cleanup(db: Session, store: BlobStore, now: datetime | None = None) -> int:
    expired = find_expired_event_ids(db, now)
    if not expired:
        logger.info("retention_no_expired_events")
        return 0

    logger.info("retention_expired_events_found", extra={"count": len(expired)})
    purged = 0
    for event_id in expired:
        try:
            purge_event(db, store, event_id)
            purged += 1
        except Exception:  # noqa: BLE001
            logger.exception("retention_purge_failed", extra={"event_id": event_id})
    return purged


def reconcile_missing_blobs(db: Session, store: BlobStore) -> int:
    """Drop photo rows whose blob is no longer in the store.

    The store is listed once per event prefix rather than once per photo.
    """
    by_event: dict[str, list[tuple[str, str]]] = defaultdict(list)
    for photo_id, event_id, key in db.execute(select(Photo.id, Photo.event_id, Photo.storage_path)).all():
        by_event[event_id].append((photo_id, key))

    missing: list[str] = []
    for event_id, rows in by_event.items():
        try:
            stored = store.list_keys(event_id)
        except StorageError:
            logger.warning("reconcile_list_failed", extra={"event_id": event_id})
            continue
        missing.extend(photo_id for photo_id, key in rows if key not in stored)
    if not missing:
        return 0
    try:
        db.execute(delete(Photo).where(Photo.id.in_(missing)))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("reconcile_failed", extra={"count": len(missing)})
        return 0
    logger.info("reconcile_removed_rows", extra={"count": len(missing)})
    return len(missing)


def run_retention_sweep(db: Session, store: BlobStore, now: datetime | None = None, reconcile: bool = True) -> dict:
    purged = run_retention_cleanup(db, store, now)
    orphaned_rows = reconcile_missing_blobs(db, store) if reconcile else 0
    return {"purged_events": purged, "orphaned_rows": orphaned_rows}
