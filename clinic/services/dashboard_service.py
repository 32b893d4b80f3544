from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from clinic import crud
from clinic.reminders.sweeps import reminder_stats
from clinic.schemas.appointment import Appointment, DashboardStats
from clinic.utils.timezone import clinic_to_utc_naive, clinic_today, utcnow


def build_dashboard(db: Session, scheduler_running: bool, now: Optional[datetime] = None) -> DashboardStats:
    """Admin overview. Weeks start on Sunday, periods follow the clinic calendar."""
    now = now or utcnow()
    today = clinic_today(now)
    start_of_week = today - timedelta(days=(today.weekday() + 1) % 7)
    start_of_month = today.replace(day=1)

    month_total, month_average, month_count = crud.appointment.paid_revenue_since(db, start=start_of_month)

    return DashboardStats(
        appointments={
            "total": crud.appointment.count_between(db),
            "today": crud.appointment.count_between(db, start=today, end=today + timedelta(days=1)),
            "this_week": crud.appointment.count_between(db, start=start_of_week),
            "this_month": crud.appointment.count_between(db, start=start_of_month),
            "status_breakdown": crud.appointment.count_by_status(db),
        },
        revenue={
            "month_total": month_total,
            "month_average": month_average,
            "month_paid_count": month_count,
        },
        users={
            "total": crud.user.count(db),
            "active": crud.user.count(db, active_only=True),
            "new_this_month": crud.user.count(db, created_since=clinic_to_utc_naive(start_of_month, "00:00")),
        },
        reminders=reminder_stats(db, scheduler_running, now=now),
        recent_appointments=[Appointment.model_validate(a) for a in crud.appointment.get_recent(db, limit=5)],
    )
