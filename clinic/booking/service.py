import logging
import re
from datetime import date, datetime
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic import crud
from clinic.booking.errors import Conflict, NotFound, ValidationError
from clinic.booking.lifecycle import Actor, AppointmentLifecycle, plan_reminders
from clinic.booking.policy import BookingPolicy
from clinic.booking.slots import available_slots
from clinic.models.appointment import Appointment
from clinic.models.enums import AppointmentStatus, AppointmentType, PaymentStatus
from clinic.schemas.appointment import AppointmentComplete, AppointmentCreate, AppointmentUpdate
from clinic.services.email_service import appointment_email_data, email_service
from clinic.utils.timezone import clinic_to_utc_naive, utcnow

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")
APPOINTMENT_TYPES = tuple(t.value for t in AppointmentType)
# Fields an update may set back to null
CLEARABLE_FIELDS = ("notes",)


class BookingService:
    """
    Appointment booking on top of the slot calendar and the lifecycle.

    Every write re-checks the requested slot against the store; the partial
    unique index on active (date, time) catches the race that slips between
    the check and the commit, and is reported as ``Conflict`` as well.
    Notification is best-effort: a failed email is logged and never undoes
    the booking change.
    """

    def __init__(self, db: Session, policy: Optional[BookingPolicy] = None, notifier=None):
        self.db = db
        self.policy = policy or BookingPolicy.from_settings()
        self.lifecycle = AppointmentLifecycle(self.policy)
        self.notifier = notifier if notifier is not None else email_service

    # --- validation ---

    def normalize_time(self, value: str) -> str:
        match = TIME_PATTERN.match((value or "").strip())
        if not match:
            raise ValidationError("Time must be in HH:MM format", details={"field": "time", "value": value})
        return f"{int(match.group(1)):02d}:{match.group(2)}"

    def _validate_slot(self, day: date, time_value: str, now: datetime) -> str:
        hhmm = self.normalize_time(time_value)
        if not self.policy.is_business_hour(int(hhmm[:2])):
            raise ValidationError(
                f"Appointments are only available between {self.policy.business_start_hour:02d}:00 "
                f"and {self.policy.business_end_hour:02d}:00",
                details={"field": "time", "value": hhmm},
            )
        if clinic_to_utc_naive(day, hhmm) <= now:
            raise ValidationError(
                "Appointment must be scheduled in the future",
                details={"field": "date", "value": f"{day.isoformat()} {hhmm}"},
            )
        return hhmm

    def _validate_details(
        self,
        type: Optional[str] = None,
        duration: Optional[int] = None,
        price: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> None:
        if type is not None and type not in APPOINTMENT_TYPES:
            raise ValidationError(
                "Invalid appointment type", details={"field": "type", "allowed": list(APPOINTMENT_TYPES)}
            )
        if duration is not None and not (
            self.policy.min_duration_minutes <= duration <= self.policy.max_duration_minutes
        ):
            raise ValidationError(
                f"Duration must be between {self.policy.min_duration_minutes} and "
                f"{self.policy.max_duration_minutes} minutes",
                details={"field": "duration"},
            )
        if price is not None and price < 0:
            raise ValidationError("Price must be a positive number", details={"field": "price"})
        if notes is not None and len(notes) > self.policy.max_notes_length:
            raise ValidationError(
                f"Notes cannot exceed {self.policy.max_notes_length} characters", details={"field": "notes"}
            )

    def _ensure_slot_free(self, day: date, hhmm: str, exclude_id: Optional[int] = None) -> None:
        if crud.appointment.find_active_at(self.db, day=day, time=hhmm, exclude_id=exclude_id):
            raise Conflict("Time slot is already taken", details={"date": day.isoformat(), "time": hhmm})

    # --- persistence & notification ---

    def _commit(self, appointment: Appointment) -> Appointment:
        self.db.add(appointment)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Slot {appointment.date} {appointment.time} taken concurrently: {e.orig}")
            raise Conflict(
                "Time slot is already taken",
                details={"date": appointment.date.isoformat(), "time": appointment.time},
            ) from e
        self.db.refresh(appointment)
        return appointment

    def _notify(self, appointment: Appointment, template: str) -> None:
        client = appointment.client
        if client is None or not client.email:
            logger.warning(f"Appointment {appointment.id} has no client email, skipping {template}")
            return
        try:
            self.notifier.send_email(client.email, template, appointment_email_data(appointment))
        except Exception as e:
            logger.warning(f"⚠️ Could not send {template} for appointment {appointment.id}: {e}")

    def _get_for_actor(self, actor: Actor, appointment_id: int) -> Appointment:
        appointment = crud.appointment.get(self.db, id=appointment_id)
        if appointment is None:
            raise NotFound("Appointment not found", details={"appointment_id": appointment_id})
        self.lifecycle.ensure_access(appointment, actor)
        return appointment

    # --- queries ---

    def available_slots(self, day: date) -> List[str]:
        return available_slots(crud.appointment.booked_times(self.db, day=day), self.policy)

    def get_appointment(self, actor: Actor, appointment_id: int) -> Appointment:
        return self._get_for_actor(actor, appointment_id)

    def list_appointments(
        self,
        actor: Actor,
        *,
        status: Optional[str] = None,
        type: Optional[str] = None,
        day: Optional[date] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Appointment], int]:
        """Clients see only their own appointments, admins see everyone's."""
        client_id = None if actor.is_admin else actor.user_id
        return crud.appointment.get_multi_filtered(
            self.db,
            client_id=client_id,
            status=status,
            type=type,
            day=day,
            skip=(page - 1) * limit,
            limit=limit,
        )

    # --- commands ---

    def create_appointment(
        self, actor: Actor, obj_in: AppointmentCreate, now: Optional[datetime] = None
    ) -> Appointment:
        now = now or utcnow()
        client_id = self.lifecycle.resolve_booking_client(actor, obj_in.client_id)
        if client_id != actor.user_id and crud.user.get(self.db, id=client_id) is None:
            raise NotFound("Client not found", details={"client_id": client_id})

        hhmm = self._validate_slot(obj_in.date, obj_in.time, now)
        duration = obj_in.duration if obj_in.duration is not None else self.policy.default_duration_minutes
        self._validate_details(type=obj_in.type, duration=duration, price=obj_in.price, notes=obj_in.notes)
        self._ensure_slot_free(obj_in.date, hhmm)

        appointment = Appointment(
            client_id=client_id,
            date=obj_in.date,
            time=hhmm,
            type=obj_in.type,
            status=AppointmentStatus.SCHEDULED.value,
            duration=duration,
            price=obj_in.price,
            payment_status=PaymentStatus.PENDING.value,
            notes=obj_in.notes,
        )
        appointment.set_reminders(plan_reminders(appointment.starts_at, now, self.policy))
        self._commit(appointment)
        logger.info(
            f"Appointment {appointment.id} booked for client {client_id} on {appointment.date} {appointment.time}"
        )

        self._notify(appointment, "appointment_confirmation")
        return appointment

    def update_appointment(
        self, actor: Actor, appointment_id: int, obj_in: AppointmentUpdate, now: Optional[datetime] = None
    ) -> Appointment:
        now = now or utcnow()
        appointment = self._get_for_actor(actor, appointment_id)
        self.lifecycle.ensure_reschedulable(appointment, actor, now)

        patch = {
            k: v
            for k, v in obj_in.model_dump(exclude_unset=True).items()
            if v is not None or k in CLEARABLE_FIELDS
        }
        self._validate_details(
            type=patch.get("type"),
            duration=patch.get("duration"),
            price=patch.get("price"),
            notes=patch.get("notes"),
        )

        if "date" in patch or "time" in patch:
            new_day = patch.pop("date", appointment.date)
            new_time = self._validate_slot(new_day, patch.pop("time", appointment.time), now)
            if (new_day, new_time) != (appointment.date, appointment.time):
                self._ensure_slot_free(new_day, new_time, exclude_id=appointment.id)
                self.lifecycle.reschedule(appointment, new_day, new_time, actor, now)
                logger.info(f"Appointment {appointment.id} moved to {new_day} {new_time}")

        for field, value in patch.items():
            setattr(appointment, field, value)
        return self._commit(appointment)

    def cancel_appointment(
        self, actor: Actor, appointment_id: int, reason: str, now: Optional[datetime] = None
    ) -> Appointment:
        now = now or utcnow()
        appointment = self._get_for_actor(actor, appointment_id)
        self.lifecycle.cancel(appointment, reason, actor, now)
        self._commit(appointment)
        logger.info(f"Appointment {appointment.id} cancelled by {actor.role.value} {actor.user_id}")

        self._notify(appointment, "appointment_cancellation")
        return appointment

    def confirm_appointment(self, actor: Actor, appointment_id: int) -> Appointment:
        appointment = self._get_for_actor(actor, appointment_id)
        self.lifecycle.confirm(appointment, actor)
        return self._commit(appointment)

    def complete_appointment(self, actor: Actor, appointment_id: int, obj_in: AppointmentComplete) -> Appointment:
        appointment = self._get_for_actor(actor, appointment_id)
        self.lifecycle.complete(
            appointment,
            actor,
            session_notes=obj_in.session_notes,
            follow_up_required=obj_in.follow_up_required,
            follow_up_date=obj_in.follow_up_date,
        )
        return self._commit(appointment)
