"""
Reminder sweeps.

Each sweep processes appointments one at a time and commits each one on its
own, so a failure on one appointment is logged and rolled back without
affecting the rest of the batch.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from clinic import crud
from clinic.booking.errors import NotFound, PolicyViolation
from clinic.booking.lifecycle import SYSTEM_ACTOR, AppointmentLifecycle
from clinic.booking.policy import BookingPolicy
from clinic.schemas.reminder import ManualReminderResult, ReminderStats
from clinic.utils.timezone import clinic_day_bounds_utc, clinic_today, utcnow

from .config import settings
from .dispatcher import mark_next_due_sent, send_reminder
from .metrics import (
    appointments_no_show_total,
    reminder_sweeps_total,
    reminders_dispatch_failed_total,
    reminders_pruned_total,
    reminders_sent_total,
)

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    processed: int = 0
    sent: int = 0
    failed: int = 0


@dataclass
class CleanupResult:
    pruned: int = 0
    no_shows: int = 0
    failed: int = 0


def run_reminder_sweep(
    db: Session,
    notifier,
    now: Optional[datetime] = None,
    batch_size: Optional[int] = None,
) -> SweepResult:
    """Send one reminder per active appointment with a due unsent record."""
    now = now or utcnow()
    result = SweepResult()
    due = crud.appointment.get_due_for_reminder(db, now=now, limit=batch_size or settings.BATCH_SIZE)
    reminder_sweeps_total.labels(sweep="dispatch").inc()

    for appointment in due:
        result.processed += 1
        try:
            send_reminder(appointment, notifier)
            if mark_next_due_sent(appointment, now):
                db.add(appointment)
                db.commit()
            result.sent += 1
            reminders_sent_total.labels(trigger="sweep").inc()
        except Exception:
            db.rollback()
            result.failed += 1
            reminders_dispatch_failed_total.inc()
            logger.exception(f"Failed to send reminder for appointment {appointment.id}")

    if result.processed:
        logger.info(
            f"Reminder sweep: {result.sent} sent, {result.failed} failed of {result.processed} due"
        )
    return result


def prune_sent_reminders(db: Session, now: datetime, retention_days: int, batch_size: int) -> CleanupResult:
    result = CleanupResult()
    cutoff = now - timedelta(days=retention_days)
    for appointment in crud.appointment.get_with_sent_reminders_before(db, cutoff=cutoff, limit=batch_size):
        try:
            records = appointment.get_reminders()
            kept = [r for r in records if not (r.sent and r.sent_at is not None and r.sent_at < cutoff)]
            appointment.set_reminders(kept)
            db.add(appointment)
            db.commit()
            result.pruned += len(records) - len(kept)
        except Exception:
            db.rollback()
            result.failed += 1
            logger.exception(f"Failed to prune reminders for appointment {appointment.id}")
    reminders_pruned_total.inc(result.pruned)
    return result


def expire_no_shows(db: Session, policy: BookingPolicy, now: datetime) -> CleanupResult:
    result = CleanupResult()
    lifecycle = AppointmentLifecycle(policy)
    grace = timedelta(hours=policy.no_show_grace_hours)
    for appointment in crud.appointment.get_active_on_or_before(db, day=clinic_today(now)):
        if now - appointment.ends_at <= grace:
            continue
        try:
            lifecycle.mark_no_show(appointment, SYSTEM_ACTOR, now)
            db.add(appointment)
            db.commit()
            result.no_shows += 1
            appointments_no_show_total.inc()
        except Exception:
            db.rollback()
            result.failed += 1
            logger.exception(f"Failed to mark appointment {appointment.id} as no-show")
    return result


def run_cleanup_sweep(
    db: Session,
    policy: Optional[BookingPolicy] = None,
    now: Optional[datetime] = None,
    retention_days: Optional[int] = None,
    batch_size: Optional[int] = None,
) -> CleanupResult:
    """Prune old sent reminder records, then expire stale bookings to no-show."""
    policy = policy or BookingPolicy.from_settings()
    now = now or utcnow()
    reminder_sweeps_total.labels(sweep="cleanup").inc()

    pruned = prune_sent_reminders(
        db,
        now,
        retention_days if retention_days is not None else settings.SENT_RETENTION_DAYS,
        batch_size or settings.BATCH_SIZE,
    )
    expired = expire_no_shows(db, policy, now)
    result = CleanupResult(
        pruned=pruned.pruned,
        no_shows=expired.no_shows,
        failed=pruned.failed + expired.failed,
    )
    logger.info(
        f"Cleanup sweep: {result.pruned} reminders pruned, {result.no_shows} marked no-show, {result.failed} failed"
    )
    return result


def send_manual_reminder(
    db: Session, appointment_id: int, notifier, now: Optional[datetime] = None
) -> ManualReminderResult:
    """
    Operator-triggered reminder. Unlike the sweep, delivery errors propagate
    as ``DeliveryFailure`` so the caller sees them.
    """
    now = now or utcnow()
    appointment = crud.appointment.get(db, id=appointment_id)
    if appointment is None:
        raise NotFound("Appointment not found", details={"appointment_id": appointment_id})
    if not appointment.is_active:
        raise PolicyViolation(
            f"Cannot send reminder for a {appointment.status} appointment",
            details={"status": appointment.status},
        )

    try:
        send_reminder(appointment, notifier)
    except Exception:
        reminders_dispatch_failed_total.inc()
        raise
    reminders_sent_total.labels(trigger="manual").inc()

    marked = mark_next_due_sent(appointment, now)
    if marked:
        db.add(appointment)
        db.commit()
    logger.info(f"Manual reminder sent for appointment {appointment_id}")
    return ManualReminderResult(
        success=True,
        message="Reminder sent successfully",
        appointment_id=appointment_id,
        marked_sent=marked,
    )


def reminder_stats(db: Session, is_running: bool, now: Optional[datetime] = None) -> ReminderStats:
    now = now or utcnow()
    today = clinic_today(now)
    day_start, day_end = clinic_day_bounds_utc(today)

    pending = sum(
        sum(1 for r in a.get_reminders() if r.is_due(now))
        for a in crud.appointment.get_due_for_reminder(db, now=now, limit=None)
    )
    sent_today = sum(
        sum(1 for r in a.get_reminders() if r.sent and r.sent_at is not None and day_start <= r.sent_at < day_end)
        for a in crud.appointment.get_with_reminders_sent_since(db, since=day_start)
    )
    return ReminderStats(
        today_appointments=crud.appointment.count_active_on(db, day=today),
        pending_reminders=pending,
        sent_today=sent_today,
        is_running=is_running,
    )
