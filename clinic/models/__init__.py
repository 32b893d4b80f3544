from .user import User
from .appointment import Appointment
from .enums import (
    UserRole,
    AppointmentStatus,
    AppointmentType,
    PaymentStatus,
    ReminderChannel,
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
)
