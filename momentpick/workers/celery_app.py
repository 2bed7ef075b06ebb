from celery import Celery
from celery.schedules import crontab

from momentpick.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "momentpick",
    broker=settings.get_celery_broker_url(),
    backend=settings.get_celery_result_backend(),
    include=["momentpick.workers.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_always_eager=settings.celery_task_always_eager,
)

celery_app.conf.beat_schedule = {
    "retention-sweep-hourly": {
        "task": "momentpick.workers.tasks.retention_sweep_job",
        "schedule": crontab(minute=0),
    }
}
