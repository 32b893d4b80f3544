from datetime import date, datetime, timedelta

import pytest

from clinic.booking.errors import PermissionDenied, PolicyViolation, ValidationError
from clinic.booking.lifecycle import (
    SYSTEM_ACTOR,
    Actor,
    ActorRole,
    AppointmentLifecycle,
    plan_reminders,
)
from clinic.models.appointment import Appointment

NOW = datetime(2030, 1, 16, 8, 0)
CLIENT = Actor(role=ActorRole.CLIENT, user_id=1)
OTHER_CLIENT = Actor(role=ActorRole.CLIENT, user_id=2)
ADMIN = Actor(role=ActorRole.ADMIN, user_id=99)


def appointment_at(start: datetime, status: str = "scheduled", duration: int = 50) -> Appointment:
    return Appointment(
        client_id=1,
        date=start.date(),
        time=start.strftime("%H:%M"),
        type="individual",
        status=status,
        duration=duration,
        price=500.0,
    )


@pytest.fixture
def lifecycle(policy):
    return AppointmentLifecycle(policy)


def test_cancel_with_enough_notice(lifecycle):
    appointment = appointment_at(NOW + timedelta(hours=30))
    lifecycle.cancel(appointment, "Feeling unwell", CLIENT, NOW)
    assert appointment.status == "cancelled"
    assert appointment.cancelled_at == NOW
    assert appointment.cancellation_reason == "Feeling unwell"
    assert appointment.cancelled_by == CLIENT.user_id


def test_cancel_exactly_at_window_is_allowed(lifecycle):
    appointment = appointment_at(NOW + timedelta(hours=24))
    lifecycle.cancel(appointment, "Travel", CLIENT, NOW)
    assert appointment.status == "cancelled"


def test_cancel_inside_window_is_policy_violation(lifecycle):
    appointment = appointment_at(NOW + timedelta(hours=23, minutes=59))
    with pytest.raises(PolicyViolation):
        lifecycle.cancel(appointment, "Travel", CLIENT, NOW)
    assert appointment.status == "scheduled"


def test_window_applies_to_admins_too(lifecycle):
    appointment = appointment_at(NOW + timedelta(hours=5))
    with pytest.raises(PolicyViolation):
        lifecycle.cancel(appointment, "Therapist ill", ADMIN, NOW)


@pytest.mark.parametrize("reason", ["", "   ", "x" * 501])
def test_cancel_reason_is_validated(lifecycle, reason):
    appointment = appointment_at(NOW + timedelta(days=3))
    with pytest.raises(ValidationError):
        lifecycle.cancel(appointment, reason, CLIENT, NOW)


def test_client_cannot_cancel_someone_elses_appointment(lifecycle):
    appointment = appointment_at(NOW + timedelta(days=3))
    with pytest.raises(PermissionDenied):
        lifecycle.cancel(appointment, "Nope", OTHER_CLIENT, NOW)


def test_system_cannot_cancel(lifecycle):
    appointment = appointment_at(NOW + timedelta(days=3))
    with pytest.raises(PermissionDenied):
        lifecycle.cancel(appointment, "Sweep", SYSTEM_ACTOR, NOW)


@pytest.mark.parametrize("actor", [CLIENT, ADMIN])
def test_confirmed_appointment_cannot_be_cancelled(lifecycle, actor):
    appointment = appointment_at(NOW + timedelta(days=3), status="confirmed")
    with pytest.raises(PolicyViolation):
        lifecycle.cancel(appointment, "Change of plans", actor, NOW)
    assert appointment.status == "confirmed"
    assert appointment.cancelled_at is None


@pytest.mark.parametrize("status", ["cancelled", "completed", "no-show"])
def test_terminal_appointments_cannot_be_cancelled(lifecycle, status):
    appointment = appointment_at(NOW + timedelta(days=3), status=status)
    with pytest.raises(PolicyViolation):
        lifecycle.cancel(appointment, "Again", ADMIN, NOW)


def test_confirm_is_admin_only(lifecycle):
    appointment = appointment_at(NOW + timedelta(days=3))
    with pytest.raises(PermissionDenied):
        lifecycle.confirm(appointment, CLIENT)
    lifecycle.confirm(appointment, ADMIN)
    assert appointment.status == "confirmed"
    with pytest.raises(PolicyViolation):
        lifecycle.confirm(appointment, ADMIN)


def test_reschedule_inside_window_is_policy_violation(lifecycle):
    appointment = appointment_at(NOW + timedelta(hours=11))
    with pytest.raises(PolicyViolation):
        lifecycle.ensure_reschedulable(appointment, CLIENT, NOW)


def test_reschedule_moves_slot_and_replans_reminders(lifecycle):
    appointment = appointment_at(NOW + timedelta(hours=12))
    lifecycle.reschedule(appointment, date(2030, 1, 20), "14:00", CLIENT, NOW)
    assert (appointment.date, appointment.time) == (date(2030, 1, 20), "14:00")
    assert [r.scheduled_for for r in appointment.get_reminders()] == [
        datetime(2030, 1, 19, 14, 0),
        datetime(2030, 1, 20, 12, 0),
    ]
    assert appointment.next_reminder_at == datetime(2030, 1, 19, 14, 0)


def test_confirmed_appointment_cannot_be_rescheduled(lifecycle):
    appointment = appointment_at(NOW + timedelta(days=3), status="confirmed")
    with pytest.raises(PolicyViolation):
        lifecycle.ensure_reschedulable(appointment, ADMIN, NOW)


def test_complete_records_session_outcome(lifecycle):
    appointment = appointment_at(NOW - timedelta(hours=1), status="confirmed")
    with pytest.raises(PermissionDenied):
        lifecycle.complete(appointment, CLIENT)
    lifecycle.complete(
        appointment, ADMIN, session_notes="Good progress", follow_up_required=True, follow_up_date=date(2030, 2, 1)
    )
    assert appointment.status == "completed"
    assert appointment.session_notes == "Good progress"
    assert appointment.follow_up_date == date(2030, 2, 1)


def test_complete_ignores_follow_up_date_without_flag(lifecycle):
    appointment = appointment_at(NOW - timedelta(hours=1))
    lifecycle.complete(appointment, ADMIN, follow_up_required=False, follow_up_date=date(2030, 2, 1))
    assert appointment.follow_up_required is False
    assert appointment.follow_up_date is None


def test_complete_rejects_long_session_notes(lifecycle):
    appointment = appointment_at(NOW - timedelta(hours=1))
    with pytest.raises(ValidationError):
        lifecycle.complete(appointment, ADMIN, session_notes="x" * 2001)


def test_completed_appointment_is_terminal(lifecycle):
    appointment = appointment_at(NOW - timedelta(hours=1), status="completed")
    with pytest.raises(PolicyViolation):
        lifecycle.complete(appointment, ADMIN)


def test_no_show_is_system_only(lifecycle):
    appointment = appointment_at(NOW - timedelta(hours=5))
    with pytest.raises(PermissionDenied):
        lifecycle.mark_no_show(appointment, ADMIN, NOW)


def test_no_show_after_grace_period(lifecycle):
    # 50 minute session ended two hours ago
    appointment = appointment_at(NOW - timedelta(hours=2, minutes=50))
    lifecycle.mark_no_show(appointment, SYSTEM_ACTOR, NOW)
    assert appointment.status == "no-show"


def test_no_show_within_grace_period_is_rejected(lifecycle):
    # ended thirty minutes ago
    appointment = appointment_at(NOW - timedelta(minutes=80))
    with pytest.raises(PolicyViolation):
        lifecycle.mark_no_show(appointment, SYSTEM_ACTOR, NOW)
    assert appointment.status == "scheduled"


def test_booking_thirty_hours_out_plans_two_reminders(policy):
    start = NOW + timedelta(hours=30)
    records = plan_reminders(start, NOW, policy)
    assert [r.scheduled_for for r in records] == [start - timedelta(hours=24), start - timedelta(hours=2)]
    assert all(r.channel == "email" and not r.sent for r in records)


def test_booking_ten_hours_out_plans_one_reminder(policy):
    start = NOW + timedelta(hours=10)
    records = plan_reminders(start, NOW, policy)
    assert [r.scheduled_for for r in records] == [start - timedelta(hours=2)]


def test_booking_one_hour_out_plans_no_reminders(policy):
    assert plan_reminders(NOW + timedelta(hours=1), NOW, policy) == []


def test_client_books_for_self_admin_on_behalf(lifecycle):
    assert lifecycle.resolve_booking_client(CLIENT, 42) == CLIENT.user_id
    assert lifecycle.resolve_booking_client(ADMIN, 42) == 42
    assert lifecycle.resolve_booking_client(ADMIN, None) == ADMIN.user_id
    with pytest.raises(PermissionDenied):
        lifecycle.resolve_booking_client(SYSTEM_ACTOR, 42)
