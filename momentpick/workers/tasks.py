import logging

from momentpick.core.config import get_settings
from momentpick.db.session import SessionLocal
from momentpick.services.retention import run_retention_sweep
from momentpick.services.storage import get_blob_store
from momentpick.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(name="momentpick.workers.tasks.retention_sweep_job")
def retention_sweep_job() -> dict:
    logger.info("retention_sweep_started")
    db = SessionLocal()
    try:
        result = run_retention_sweep(db, get_blob_store(), reconcile=get_settings().reconcile_orphaned_photos)
    finally:
        db.close()
    logger.info("retention_sweep_finished", extra=result)
    return result
