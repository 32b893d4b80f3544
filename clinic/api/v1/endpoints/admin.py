from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from clinic import models, schemas
from clinic.api import deps
from clinic.reminders.scheduler import ReminderScheduler
from clinic.services.dashboard_service import build_dashboard

router = APIRouter()


@router.get("/reminders/stats", response_model=schemas.ReminderStats)
def read_reminder_stats(
    db: Session = Depends(deps.get_db),
    scheduler: ReminderScheduler = Depends(deps.get_scheduler),
    _: models.User = Depends(deps.get_current_admin),
) -> Any:
    """
    Today's appointments, due reminders and reminders sent today.
    """
    return scheduler.get_stats(db)


@router.post("/reminders/{appointment_id}/send", response_model=schemas.ManualReminderResult)
def send_reminder_now(
    appointment_id: int,
    db: Session = Depends(deps.get_db),
    scheduler: ReminderScheduler = Depends(deps.get_scheduler),
    notifier=Depends(deps.get_notifier),
    _: models.User = Depends(deps.get_current_admin),
) -> Any:
    """
    Send a reminder for one appointment immediately. Delivery errors are returned as 502.
    """
    return scheduler.send_manual_reminder(db, appointment_id, notifier=notifier)


@router.get("/dashboard", response_model=schemas.DashboardStats)
def read_dashboard(
    db: Session = Depends(deps.get_db),
    scheduler: ReminderScheduler = Depends(deps.get_scheduler),
    _: models.User = Depends(deps.get_current_admin),
) -> Any:
    return build_dashboard(db, scheduler.is_running)
