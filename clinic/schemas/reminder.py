from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel

ReminderChannelName = Literal["email", "sms"]


class ReminderRecord(BaseModel):
    """One reminder embedded in an appointment. Timestamps are UTC-naive."""
    channel: ReminderChannelName = "email"
    sent: bool = False
    sent_at: Optional[datetime] = None
    scheduled_for: datetime

    def is_due(self, now: datetime) -> bool:
        return not self.sent and self.scheduled_for <= now


class ReminderStats(BaseModel):
    today_appointments: int
    pending_reminders: int
    sent_today: int
    is_running: bool


class ManualReminderResult(BaseModel):
    success: bool
    message: str
    appointment_id: int
    marked_sent: bool = False
