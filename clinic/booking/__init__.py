from .errors import (
    ClinicError,
    ValidationError,
    PermissionDenied,
    PolicyViolation,
    NotFound,
    Conflict,
    DeliveryFailure,
)
from .policy import BookingPolicy
from .lifecycle import Actor, ActorRole, AppointmentLifecycle, SYSTEM_ACTOR, plan_reminders
