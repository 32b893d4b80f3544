"""
Appointment state machine.

    scheduled -> confirmed -> completed
    scheduled -> cancelled
    scheduled | confirmed -> no-show     (system sweep only)

``completed``, ``cancelled`` and ``no-show`` are terminal. Every transition
takes the acting party so role checks happen here and nowhere else.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import List, Optional

from clinic.booking.errors import PermissionDenied, PolicyViolation, ValidationError
from clinic.booking.policy import BookingPolicy
from clinic.models.appointment import Appointment
from clinic.models.enums import AppointmentStatus, ReminderChannel, TERMINAL_STATUSES
from clinic.schemas.reminder import ReminderRecord

logger = logging.getLogger(__name__)


class ActorRole(str, Enum):
    CLIENT = "client"
    ADMIN = "admin"
    SYSTEM = "system"


@dataclass(frozen=True)
class Actor:
    role: ActorRole
    user_id: Optional[int] = None

    @classmethod
    def for_user(cls, user) -> "Actor":
        return cls(role=ActorRole.ADMIN if user.is_admin else ActorRole.CLIENT, user_id=user.id)

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN


SYSTEM_ACTOR = Actor(role=ActorRole.SYSTEM)


def plan_reminders(starts_at: datetime, now: datetime, policy: BookingPolicy) -> List[ReminderRecord]:
    """One email reminder per configured offset that still lies in the future."""
    records = []
    for offset in policy.reminder_offsets_hours:
        scheduled_for = starts_at - timedelta(hours=offset)
        if scheduled_for > now:
            records.append(ReminderRecord(channel=ReminderChannel.EMAIL.value, scheduled_for=scheduled_for))
    records.sort(key=lambda r: r.scheduled_for)
    return records


def hours_until_start(appointment: Appointment, now: datetime) -> float:
    return (appointment.starts_at - now).total_seconds() / 3600


class AppointmentLifecycle:
    def __init__(self, policy: BookingPolicy):
        self.policy = policy

    # --- capability checks ---

    def _require_role(self, actor: Actor, action: str, *roles: ActorRole) -> None:
        if actor.role not in roles:
            allowed = ", ".join(r.value for r in roles)
            raise PermissionDenied(
                f"Only {allowed} may {action} an appointment",
                details={"action": action, "role": actor.role.value},
            )

    def ensure_access(self, appointment: Appointment, actor: Actor) -> None:
        """Clients may only touch their own appointments."""
        if actor.role == ActorRole.CLIENT and appointment.client_id != actor.user_id:
            raise PermissionDenied("Access denied to this appointment")

    def resolve_booking_client(self, actor: Actor, requested_client_id: Optional[int]) -> int:
        """Clients book for themselves; admins may book on behalf of a client."""
        self._require_role(actor, "book", ActorRole.CLIENT, ActorRole.ADMIN)
        if actor.is_admin and requested_client_id is not None:
            return requested_client_id
        return actor.user_id

    def _require_not_terminal(self, appointment: Appointment, action: str) -> None:
        if appointment.status in TERMINAL_STATUSES:
            raise PolicyViolation(
                f"Cannot {action} an appointment that is {appointment.status}",
                details={"status": appointment.status},
            )

    # --- transitions ---

    def confirm(self, appointment: Appointment, actor: Actor) -> Appointment:
        self._require_role(actor, "confirm", ActorRole.ADMIN)
        if appointment.status != AppointmentStatus.SCHEDULED.value:
            raise PolicyViolation(
                f"Only scheduled appointments can be confirmed (status is {appointment.status})",
                details={"status": appointment.status},
            )
        appointment.status = AppointmentStatus.CONFIRMED.value
        return appointment

    def cancel(self, appointment: Appointment, reason: str, actor: Actor, now: datetime) -> Appointment:
        self._require_role(actor, "cancel", ActorRole.CLIENT, ActorRole.ADMIN)
        self.ensure_access(appointment, actor)

        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Cancellation reason is required", details={"field": "reason"})
        if len(reason) > self.policy.max_cancellation_reason_length:
            raise ValidationError(
                f"Reason cannot exceed {self.policy.max_cancellation_reason_length} characters",
                details={"field": "reason"},
            )

        self._require_not_terminal(appointment, "cancel")
        if appointment.status != AppointmentStatus.SCHEDULED.value:
            raise PolicyViolation(
                f"Only scheduled appointments can be cancelled (status is {appointment.status})",
                details={"status": appointment.status},
            )
        if hours_until_start(appointment, now) < self.policy.cancel_window_hours:
            raise PolicyViolation(
                f"Appointment cannot be cancelled less than {self.policy.cancel_window_hours} hours before scheduled time",
                details={"policy": "cancel_window", "hours": self.policy.cancel_window_hours},
            )

        appointment.status = AppointmentStatus.CANCELLED.value
        appointment.cancellation_reason = reason
        appointment.cancelled_at = now
        appointment.cancelled_by = actor.user_id
        return appointment

    def ensure_reschedulable(self, appointment: Appointment, actor: Actor, now: datetime) -> None:
        self._require_role(actor, "reschedule", ActorRole.CLIENT, ActorRole.ADMIN)
        self.ensure_access(appointment, actor)
        if appointment.status != AppointmentStatus.SCHEDULED.value:
            raise PolicyViolation(
                f"Only scheduled appointments can be modified (status is {appointment.status})",
                details={"status": appointment.status},
            )
        if hours_until_start(appointment, now) < self.policy.reschedule_window_hours:
            raise PolicyViolation(
                f"Appointment cannot be modified less than {self.policy.reschedule_window_hours} hours before scheduled time",
                details={"policy": "reschedule_window", "hours": self.policy.reschedule_window_hours},
            )

    def reschedule(
        self, appointment: Appointment, new_date: date, new_time: str, actor: Actor, now: datetime
    ) -> Appointment:
        """Move to a new slot and replan reminders. The caller owns the conflict check."""
        self.ensure_reschedulable(appointment, actor, now)
        appointment.date = new_date
        appointment.time = new_time
        appointment.set_reminders(plan_reminders(appointment.starts_at, now, self.policy))
        return appointment

    def complete(
        self,
        appointment: Appointment,
        actor: Actor,
        session_notes: Optional[str] = None,
        follow_up_required: bool = False,
        follow_up_date: Optional[date] = None,
    ) -> Appointment:
        self._require_role(actor, "complete", ActorRole.ADMIN)
        self._require_not_terminal(appointment, "complete")
        if session_notes and len(session_notes) > self.policy.max_session_notes_length:
            raise ValidationError(
                f"Session notes cannot exceed {self.policy.max_session_notes_length} characters",
                details={"field": "session_notes"},
            )

        appointment.status = AppointmentStatus.COMPLETED.value
        appointment.session_notes = session_notes
        appointment.follow_up_required = bool(follow_up_required)
        appointment.follow_up_date = follow_up_date if follow_up_required else None
        return appointment

    def mark_no_show(self, appointment: Appointment, actor: Actor, now: datetime) -> Appointment:
        self._require_role(actor, "mark as no-show", ActorRole.SYSTEM)
        self._require_not_terminal(appointment, "mark as no-show")
        if now - appointment.ends_at <= timedelta(hours=self.policy.no_show_grace_hours):
            raise PolicyViolation(
                "Appointment has not ended long enough ago to be marked as no-show",
                details={"policy": "no_show_grace", "hours": self.policy.no_show_grace_hours},
            )
        appointment.status = AppointmentStatus.NO_SHOW.value
        logger.info(f"Appointment {appointment.id} marked as no-show")
        return appointment
