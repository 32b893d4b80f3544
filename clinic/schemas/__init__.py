from .user import User, UserCreate, UserRegister, Token, TokenPayload
from .reminder import ReminderRecord, ReminderStats, ManualReminderResult
from .appointment import (
    Appointment,
    AppointmentCreate,
    AppointmentUpdate,
    AppointmentCancel,
    AppointmentComplete,
    AppointmentList,
    AvailableSlots,
    AppointmentCounts,
    RevenueSummary,
    UserCounts,
    DashboardStats,
    Pagination,
)
