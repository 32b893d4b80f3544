from celery import Celery
from .config import settings


celery_app = Celery(
    "reminders",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

celery_app.conf.update(
    task_acks_late=True,
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.WORKER_CONCURRENCY,
    include=["clinic.reminders.tasks"],
)

# Celery Beat schedule, the out-of-process alternative to ReminderScheduler
celery_app.conf.beat_schedule = {
    "scan-and-dispatch": {
        "task": "reminders.scan_and_dispatch",
        "schedule": settings.SCAN_INTERVAL_SECONDS,
    },
    "cleanup": {
        "task": "reminders.cleanup",
        "schedule": settings.CLEANUP_INTERVAL_SECONDS,
    },
}
