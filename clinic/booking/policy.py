from dataclasses import dataclass
from typing import Optional, Tuple

from clinic.core.config import Settings, settings as default_settings


@dataclass(frozen=True)
class BookingPolicy:
    """Business hours, slot stride and lead-time windows shared by booking and reminders."""

    slot_stride_minutes: int = 50
    business_start_hour: int = 9
    business_end_hour: int = 22
    cancel_window_hours: int = 24
    reschedule_window_hours: int = 12
    no_show_grace_hours: int = 1
    reminder_offsets_hours: Tuple[int, ...] = (24, 2)
    min_duration_minutes: int = 30
    max_duration_minutes: int = 120
    default_duration_minutes: int = 50
    max_notes_length: int = 1000
    max_cancellation_reason_length: int = 500
    max_session_notes_length: int = 2000

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "BookingPolicy":
        s = settings or default_settings
        return cls(
            slot_stride_minutes=s.SLOT_STRIDE_MINUTES,
            business_start_hour=s.BUSINESS_START_HOUR,
            business_end_hour=s.BUSINESS_END_HOUR,
            cancel_window_hours=s.CANCEL_WINDOW_HOURS,
            reschedule_window_hours=s.RESCHEDULE_WINDOW_HOURS,
            no_show_grace_hours=s.NO_SHOW_GRACE_HOURS,
            reminder_offsets_hours=tuple(s.REMINDER_OFFSETS_HOURS),
            min_duration_minutes=s.MIN_DURATION_MINUTES,
            max_duration_minutes=s.MAX_DURATION_MINUTES,
            default_duration_minutes=s.DEFAULT_DURATION_MINUTES,
        )

    def is_business_hour(self, hour: int) -> bool:
        return self.business_start_hour <= hour < self.business_end_hour
