import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from clinic.schemas.reminder import ReminderRecord, ReminderStats

# Request bodies stay loosely typed: range and format rules live in the booking
# service so every caller gets the same errors.

class AppointmentCreate(BaseModel):
    date: datetime.date
    time: str = Field(..., examples=["14:00"])
    type: str = Field(..., examples=["individual"])
    duration: Optional[int] = None
    price: float
    notes: Optional[str] = None
    # Only honoured for admins booking on behalf of a client
    client_id: Optional[int] = None


class AppointmentUpdate(BaseModel):
    date: Optional[datetime.date] = None
    time: Optional[str] = None
    type: Optional[str] = None
    duration: Optional[int] = None
    price: Optional[float] = None
    notes: Optional[str] = None


class AppointmentCancel(BaseModel):
    reason: str = ""


class AppointmentComplete(BaseModel):
    session_notes: Optional[str] = None
    follow_up_required: bool = False
    follow_up_date: Optional[datetime.date] = None


class Appointment(BaseModel):
    id: int
    client_id: int
    date: datetime.date
    time: str
    type: str
    status: str
    duration: int
    price: float
    payment_status: str
    notes: Optional[str] = None
    reminders: List[ReminderRecord] = []
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime.datetime] = None
    cancelled_by: Optional[int] = None
    session_notes: Optional[str] = None
    follow_up_required: bool = False
    follow_up_date: Optional[datetime.date] = None
    created_at: datetime.datetime
    updated_at: Optional[datetime.datetime] = None

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class AppointmentList(BaseModel):
    appointments: List[Appointment]
    pagination: Pagination


class AvailableSlots(BaseModel):
    date: datetime.date
    available_slots: List[str]


class AppointmentCounts(BaseModel):
    total: int
    today: int
    this_week: int
    this_month: int
    status_breakdown: Dict[str, int]


class RevenueSummary(BaseModel):
    """Paid appointments dated in the current month."""
    month_total: float
    month_average: float
    month_paid_count: int


class UserCounts(BaseModel):
    total: int
    active: int
    new_this_month: int


class DashboardStats(BaseModel):
    appointments: AppointmentCounts
    revenue: RevenueSummary
    users: UserCounts
    reminders: ReminderStats
    recent_appointments: List[Appointment]
