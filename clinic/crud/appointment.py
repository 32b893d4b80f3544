from datetime import date, datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from clinic.crud.base import CRUDBase
from clinic.models.appointment import Appointment
from clinic.models.enums import ACTIVE_STATUSES, PaymentStatus
from clinic.schemas.appointment import AppointmentCreate, AppointmentUpdate


class CRUDAppointment(CRUDBase[Appointment, AppointmentCreate, AppointmentUpdate]):
    def find_active_at(
        self, db: Session, *, day: date, time: str, exclude_id: Optional[int] = None
    ) -> Optional[Appointment]:
        """Active appointment occupying (day, time), any client."""
        query = db.query(self.model).filter(
            Appointment.date == day,
            Appointment.time == time,
            Appointment.status.in_(ACTIVE_STATUSES),
        )
        if exclude_id is not None:
            query = query.filter(Appointment.id != exclude_id)
        return query.first()

    def booked_times(self, db: Session, *, day: date) -> List[str]:
        rows = (
            db.query(Appointment.time)
            .filter(Appointment.date == day, Appointment.status.in_(ACTIVE_STATUSES))
            .all()
        )
        return [row[0] for row in rows]

    def get_multi_filtered(
        self,
        db: Session,
        *,
        client_id: Optional[int] = None,
        status: Optional[str] = None,
        type: Optional[str] = None,
        day: Optional[date] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Appointment], int]:
        query = db.query(self.model)
        if client_id is not None:
            query = query.filter(Appointment.client_id == client_id)
        if status:
            query = query.filter(Appointment.status == status)
        if type:
            query = query.filter(Appointment.type == type)
        if day:
            query = query.filter(Appointment.date == day)

        total = query.count()
        items = (
            query.order_by(Appointment.date.asc(), Appointment.time.asc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return items, total

    def get_due_for_reminder(
        self, db: Session, *, now: datetime, limit: Optional[int] = 500
    ) -> List[Appointment]:
        return (
            db.query(self.model)
            .filter(
                Appointment.status.in_(ACTIVE_STATUSES),
                Appointment.next_reminder_at.isnot(None),
                Appointment.next_reminder_at <= now,
            )
            .order_by(Appointment.next_reminder_at.asc())
            .limit(limit)
            .all()
        )

    def get_with_sent_reminders_before(self, db: Session, *, cutoff: datetime, limit: int = 500) -> List[Appointment]:
        return (
            db.query(self.model)
            .filter(
                Appointment.oldest_sent_reminder_at.isnot(None),
                Appointment.oldest_sent_reminder_at < cutoff,
            )
            .limit(limit)
            .all()
        )

    def get_active_on_or_before(self, db: Session, *, day: date) -> List[Appointment]:
        """Active appointments dated ``day`` or earlier; candidates for no-show expiry."""
        return (
            db.query(self.model)
            .filter(Appointment.status.in_(ACTIVE_STATUSES), Appointment.date <= day)
            .order_by(Appointment.date.asc(), Appointment.time.asc())
            .all()
        )

    def get_with_reminders_sent_since(self, db: Session, *, since: datetime) -> List[Appointment]:
        return (
            db.query(self.model)
            .filter(Appointment.last_reminder_sent_at.isnot(None), Appointment.last_reminder_sent_at >= since)
            .all()
        )

    def count_active_on(self, db: Session, *, day: date) -> int:
        return (
            db.query(func.count(Appointment.id))
            .filter(Appointment.date == day, Appointment.status.in_(ACTIVE_STATUSES))
            .scalar()
        ) or 0

    def count_between(self, db: Session, *, start: Optional[date] = None, end: Optional[date] = None) -> int:
        query = db.query(func.count(Appointment.id))
        if start is not None:
            query = query.filter(Appointment.date >= start)
        if end is not None:
            query = query.filter(Appointment.date < end)
        return query.scalar() or 0

    def count_by_status(self, db: Session) -> Dict[str, int]:
        rows = db.query(Appointment.status, func.count(Appointment.id)).group_by(Appointment.status).all()
        return {status: count for status, count in rows}

    def paid_revenue_since(self, db: Session, *, start: date) -> Tuple[float, float, int]:
        """(total, average, count) of paid appointments dated on or after ``start``."""
        total, average, count = (
            db.query(func.sum(Appointment.price), func.avg(Appointment.price), func.count(Appointment.id))
            .filter(Appointment.payment_status == PaymentStatus.PAID.value, Appointment.date >= start)
            .one()
        )
        return float(total or 0), float(average or 0), int(count or 0)

    def get_recent(self, db: Session, *, limit: int = 5) -> List[Appointment]:
        return db.query(self.model).order_by(Appointment.created_at.desc()).limit(limit).all()

appointment = CRUDAppointment(Appointment)
