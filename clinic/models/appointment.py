from datetime import datetime, timedelta
from typing import List

from sqlalchemy import Column, Integer, String, Date, DateTime, Text, ForeignKey, Boolean, Float, JSON, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.orm.attributes import flag_modified

from clinic.db.base import Base
from clinic.models.enums import AppointmentStatus, PaymentStatus, ACTIVE_STATUSES
from clinic.schemas.reminder import ReminderRecord
from clinic.utils.timezone import clinic_to_utc_naive, utcnow


_ACTIVE_SLOT_PREDICATE = text("status IN ('scheduled', 'confirmed')")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_client_date", "client_id", "date"),
        Index("ix_appointments_date_time", "date", "time"),
        # At most one active appointment per slot
        Index(
            "uq_appointments_active_slot",
            "date",
            "time",
            unique=True,
            postgresql_where=_ACTIVE_SLOT_PREDICATE,
            sqlite_where=_ACTIVE_SLOT_PREDICATE,
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    date = Column(Date, nullable=False)  # clinic wall-clock date
    time = Column(String(5), nullable=False)  # HH:MM, clinic wall clock
    type = Column(String, nullable=False)
    status = Column(String, nullable=False, default=AppointmentStatus.SCHEDULED.value, index=True)
    duration = Column(Integer, nullable=False, default=50)
    price = Column(Float, nullable=False)
    payment_status = Column(String, nullable=False, default=PaymentStatus.PENDING.value, index=True)
    notes = Column(Text, nullable=True)

    # Embedded reminder records, see ReminderRecord
    reminders = Column(JSON, nullable=False, default=list)
    # Derived from reminders on every write
    next_reminder_at = Column(DateTime, nullable=True, index=True)
    oldest_sent_reminder_at = Column(DateTime, nullable=True, index=True)
    last_reminder_sent_at = Column(DateTime, nullable=True, index=True)

    cancellation_reason = Column(String(500), nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancelled_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    session_notes = Column(Text, nullable=True)
    follow_up_required = Column(Boolean, nullable=False, default=False)
    follow_up_date = Column(Date, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    client = relationship("User", foreign_keys=[client_id], back_populates="appointments")

    @property
    def starts_at(self) -> datetime:
        """Start instant, UTC-naive."""
        return clinic_to_utc_naive(self.date, self.time)

    @property
    def ends_at(self) -> datetime:
        return self.starts_at + timedelta(minutes=self.duration)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def get_reminders(self) -> List[ReminderRecord]:
        return [ReminderRecord.model_validate(r) for r in (self.reminders or [])]

    def set_reminders(self, records: List[ReminderRecord]) -> None:
        self.reminders = [r.model_dump(mode="json") for r in records]
        flag_modified(self, "reminders")

        unsent = [r.scheduled_for for r in records if not r.sent]
        sent = [r.sent_at for r in records if r.sent and r.sent_at is not None]
        self.next_reminder_at = min(unsent) if unsent else None
        self.oldest_sent_reminder_at = min(sent) if sent else None
        self.last_reminder_sent_at = max(sent) if sent else None

    def __repr__(self):
        return f"<Appointment(id={self.id}, client_id={self.client_id}, date={self.date}, time={self.time}, status={self.status})>"
