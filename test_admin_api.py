from datetime import timedelta

from clinic.api import deps
from clinic.main import app
from clinic.schemas.reminder import ReminderRecord
from clinic.utils.timezone import utcnow

from conftest import RecordingNotifier, auth_headers, create_appointment

API = "/api/v1"


def test_admin_routes_reject_clients(client, alice):
    for path in ("/admin/reminders/stats", "/admin/dashboard"):
        response = client.get(f"{API}{path}", headers=auth_headers(alice))
        assert response.status_code == 403
        assert response.json()["message"] == "Admin access required"


def test_reminder_stats(client, db, alice, admin):
    now = utcnow()
    create_appointment(
        db,
        alice,
        (now + timedelta(days=1)).date(),
        "10:00",
        reminders=[ReminderRecord(scheduled_for=now - timedelta(minutes=10))],
    )

    response = client.get(f"{API}/admin/reminders/stats", headers=auth_headers(admin))
    assert response.status_code == 200
    body = response.json()
    assert body["pending_reminders"] == 1
    assert body["sent_today"] == 0
    assert body["is_running"] is False


def test_manual_reminder(client, db, notifier, alice, admin):
    now = utcnow()
    appointment = create_appointment(
        db,
        alice,
        (now + timedelta(days=1)).date(),
        "10:00",
        reminders=[ReminderRecord(scheduled_for=now - timedelta(minutes=10))],
    )

    response = client.post(f"{API}/admin/reminders/{appointment.id}/send", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Reminder sent successfully",
        "appointment_id": appointment.id,
        "marked_sent": True,
    }
    assert notifier.templates() == ["appointment_reminder"]

    missing = client.post(f"{API}/admin/reminders/9999/send", headers=auth_headers(admin))
    assert missing.status_code == 404


def test_manual_reminder_for_cancelled_appointment(client, db, alice, admin):
    appointment = create_appointment(db, alice, (utcnow() + timedelta(days=2)).date(), "10:00", status="cancelled")
    response = client.post(f"{API}/admin/reminders/{appointment.id}/send", headers=auth_headers(admin))
    assert response.status_code == 403
    assert response.json()["code"] == "POLICY_VIOLATION"


def test_manual_reminder_delivery_failure(client, db, alice, admin):
    app.dependency_overrides[deps.get_notifier] = lambda: RecordingNotifier(fail_all=True)
    appointment = create_appointment(db, alice, (utcnow() + timedelta(days=2)).date(), "10:00")

    response = client.post(f"{API}/admin/reminders/{appointment.id}/send", headers=auth_headers(admin))
    assert response.status_code == 502
    assert response.json()["code"] == "DELIVERY_FAILURE"


def test_dashboard(client, db, alice, bob, admin):
    today = utcnow().date()
    create_appointment(db, alice, today, "09:00", status="completed", payment_status="paid", price=600.0)
    create_appointment(db, bob, today, "09:50", status="completed", payment_status="paid", price=400.0)
    create_appointment(db, alice, today, "10:40", status="cancelled", payment_status="refunded")
    create_appointment(db, bob, today + timedelta(days=40), "10:40")

    response = client.get(f"{API}/admin/dashboard", headers=auth_headers(admin))
    assert response.status_code == 200
    body = response.json()

    assert body["appointments"]["total"] == 4
    assert body["appointments"]["today"] == 3
    assert body["appointments"]["status_breakdown"] == {"completed": 2, "cancelled": 1, "scheduled": 1}
    assert body["revenue"] == {"month_total": 1000.0, "month_average": 500.0, "month_paid_count": 2}
    assert body["users"]["total"] == 3
    assert body["users"]["active"] == 3
    assert body["reminders"]["today_appointments"] == 0
    assert len(body["recent_appointments"]) == 4
