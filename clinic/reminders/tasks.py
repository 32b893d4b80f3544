from celery import shared_task
from sqlalchemy.orm import Session

from clinic.booking.policy import BookingPolicy
from clinic.db.session import SessionLocal
from clinic.services.email_service import email_service

from .config import settings
from .sweeps import run_cleanup_sweep, run_reminder_sweep


@shared_task(name="reminders.scan_and_dispatch")
def scan_and_dispatch_task() -> int:
    """Send due appointment reminders. Returns number sent."""
    db: Session = SessionLocal()
    try:
        result = run_reminder_sweep(db, email_service, batch_size=settings.BATCH_SIZE)
    finally:
        db.close()
    return result.sent


@shared_task(name="reminders.cleanup")
def cleanup_task() -> dict:
    """Prune old sent reminders and expire stale bookings to no-show."""
    db: Session = SessionLocal()
    try:
        result = run_cleanup_sweep(db, BookingPolicy.from_settings())
    finally:
        db.close()
    return {"pruned": result.pruned, "no_shows": result.no_shows, "failed": result.failed}
