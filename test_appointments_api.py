from datetime import timedelta

from clinic.core.security import get_password_hash
from clinic.utils.timezone import utcnow

from conftest import at, auth_headers, create_appointment, create_user

API = "/api/v1"


def future_day(days=3):
    return (utcnow() + timedelta(days=days)).date()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["reminder_scheduler"] == "idle"


def test_login_and_me(client, db):
    user = create_user(db, "carol@example.com")
    user.hashed_password = get_password_hash("s3cret-pass")
    db.commit()

    response = client.post(f"{API}/auth/login", data={"username": "carol@example.com", "password": "s3cret-pass"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == "carol@example.com"
    assert me.json()["role"] == "client"

    bad = client.post(f"{API}/auth/login", data={"username": "carol@example.com", "password": "wrong"})
    assert bad.status_code == 400
    assert bad.json()["error"] is True


def test_register_creates_client_account(client):
    payload = {"email": "dave@example.com", "full_name": "Dave", "password": "s3cret-pass", "role": "admin"}
    response = client.post(f"{API}/auth/register", json=payload)
    assert response.status_code == 201
    assert response.json()["email"] == "dave@example.com"
    assert response.json()["role"] == "client"

    login = client.post(f"{API}/auth/login", data={"username": "dave@example.com", "password": "s3cret-pass"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    booked = client.post(
        f"{API}/appointments/",
        json={"date": future_day().isoformat(), "time": "10:00", "type": "individual", "price": 500},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert booked.status_code == 201


def test_register_rejects_duplicate_email_and_short_password(client, alice):
    duplicate = client.post(f"{API}/auth/register", json={"email": alice.email, "password": "s3cret-pass"})
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] is True

    short = client.post(f"{API}/auth/register", json={"email": "erin@example.com", "password": "abc"})
    assert short.status_code == 422


def test_requires_authentication(client):
    response = client.get(f"{API}/appointments/")
    assert response.status_code == 401


def test_book_and_fetch(client, notifier, alice):
    day = future_day()
    response = client.post(
        f"{API}/appointments/",
        json={"date": day.isoformat(), "time": "9:50", "type": "individual", "price": 500},
        headers=auth_headers(alice),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["time"] == "09:50"
    assert body["status"] == "scheduled"
    assert body["client_id"] == alice.id
    assert len(body["reminders"]) == 2
    assert notifier.templates() == ["appointment_confirmation"]

    fetched = client.get(f"{API}/appointments/{body['id']}", headers=auth_headers(alice))
    assert fetched.status_code == 200
    assert fetched.json()["id"] == body["id"]

    slots = client.get(f"{API}/appointments/available-slots", params={"date": day.isoformat()}, headers=auth_headers(alice))
    assert slots.status_code == 200
    assert "09:50" not in slots.json()["available_slots"]
    assert len(slots.json()["available_slots"]) == 15


def test_booking_errors_map_to_status_codes(client, db, alice, bob):
    day = future_day()
    create_appointment(db, bob, day, "10:40")

    conflict = client.post(
        f"{API}/appointments/",
        json={"date": day.isoformat(), "time": "10:40", "type": "individual", "price": 500},
        headers=auth_headers(alice),
    )
    assert conflict.status_code == 409
    assert conflict.json()["code"] == "SLOT_TAKEN"
    assert conflict.json()["error"] is True

    invalid = client.post(
        f"{API}/appointments/",
        json={"date": day.isoformat(), "time": "23:00", "type": "individual", "price": 500},
        headers=auth_headers(alice),
    )
    assert invalid.status_code == 400
    assert invalid.json()["code"] == "VALIDATION_ERROR"

    malformed = client.post(f"{API}/appointments/", json={"time": "10:00"}, headers=auth_headers(alice))
    assert malformed.status_code == 422


def test_client_cannot_see_other_clients_appointment(client, db, alice, bob):
    appointment = create_appointment(db, bob, future_day(), "12:20")
    response = client.get(f"{API}/appointments/{appointment.id}", headers=auth_headers(alice))
    assert response.status_code == 403


def test_missing_appointment_is_404(client, alice):
    response = client.get(f"{API}/appointments/9999", headers=auth_headers(alice))
    assert response.status_code == 404


def test_cancel_window_is_enforced(client, db, alice):
    day, time = at(utcnow() + timedelta(hours=5))
    soon = create_appointment(db, alice, day, time)
    later = create_appointment(db, alice, future_day(), "14:00")

    blocked = client.post(f"{API}/appointments/{soon.id}/cancel", json={"reason": "Sick"}, headers=auth_headers(alice))
    assert blocked.status_code == 403
    assert blocked.json()["code"] == "POLICY_VIOLATION"

    missing_reason = client.post(f"{API}/appointments/{later.id}/cancel", json={}, headers=auth_headers(alice))
    assert missing_reason.status_code == 400

    ok = client.post(f"{API}/appointments/{later.id}/cancel", json={"reason": "Sick"}, headers=auth_headers(alice))
    assert ok.status_code == 200
    assert ok.json()["status"] == "cancelled"
    assert ok.json()["cancellation_reason"] == "Sick"
    assert ok.json()["cancelled_by"] == alice.id


def test_reschedule(client, db, alice, bob):
    appointment = create_appointment(db, alice, future_day(), "14:00")
    create_appointment(db, bob, future_day(4), "14:00")

    taken = client.put(
        f"{API}/appointments/{appointment.id}",
        json={"date": future_day(4).isoformat()},
        headers=auth_headers(alice),
    )
    assert taken.status_code == 409

    moved = client.put(
        f"{API}/appointments/{appointment.id}",
        json={"date": future_day(5).isoformat(), "time": "15:00"},
        headers=auth_headers(alice),
    )
    assert moved.status_code == 200
    assert moved.json()["date"] == future_day(5).isoformat()
    assert moved.json()["time"] == "15:00"


def test_confirm_and_complete_are_admin_only(client, db, alice, admin):
    appointment = create_appointment(db, alice, future_day(), "11:30")

    denied = client.post(f"{API}/appointments/{appointment.id}/confirm", headers=auth_headers(alice))
    assert denied.status_code == 403
    assert denied.json()["code"] == "PERMISSION_DENIED"

    confirmed = client.post(f"{API}/appointments/{appointment.id}/confirm", headers=auth_headers(admin))
    assert confirmed.status_code == 200
    assert confirmed.json()["status"] == "confirmed"

    completed = client.post(
        f"{API}/appointments/{appointment.id}/complete",
        json={"session_notes": "Productive", "follow_up_required": True, "follow_up_date": future_day(10).isoformat()},
        headers=auth_headers(admin),
    )
    assert completed.status_code == 200
    assert completed.json()["status"] == "completed"
    assert completed.json()["follow_up_date"] == future_day(10).isoformat()


def test_list_with_pagination(client, db, alice, bob, admin):
    day = future_day()
    for time in ("09:00", "09:50", "10:40"):
        create_appointment(db, alice, day, time)
    create_appointment(db, bob, day, "11:30")

    mine = client.get(f"{API}/appointments/", params={"limit": 2}, headers=auth_headers(alice))
    assert mine.status_code == 200
    assert mine.json()["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
    assert [a["time"] for a in mine.json()["appointments"]] == ["09:00", "09:50"]

    everyone = client.get(f"{API}/appointments/", params={"date": day.isoformat()}, headers=auth_headers(admin))
    assert everyone.json()["pagination"]["total"] == 4

    bad_status = client.get(f"{API}/appointments/", params={"status": "lost"}, headers=auth_headers(admin))
    assert bad_status.status_code == 422


def test_admin_books_for_client(client, alice, admin):
    response = client.post(
        f"{API}/appointments/",
        json={"date": future_day().isoformat(), "time": "13:10", "type": "couple", "price": 900, "client_id": alice.id},
        headers=auth_headers(admin),
    )
    assert response.status_code == 201
    assert response.json()["client_id"] == alice.id
