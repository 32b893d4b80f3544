from pydantic_settings import BaseSettings
from typing import Optional


class ReminderSettings(BaseSettings):
    # In-process scheduler
    SCHEDULER_ENABLED: bool = True
    SCAN_INTERVAL_SECONDS: int = 300
    CLEANUP_INTERVAL_SECONDS: int = 86400
    BATCH_SIZE: int = 500

    # Sent reminder records older than this are pruned by the cleanup sweep
    SENT_RETENTION_DAYS: int = 7

    # Celery configuration (alternative to the in-process scheduler)
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: Optional[str] = None
    WORKER_CONCURRENCY: int = 2

    class Config:
        env_prefix = "REMINDER_"


settings = ReminderSettings()
