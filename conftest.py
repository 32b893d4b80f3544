import os

# Must be set before anything from clinic is imported
os.environ["CLINIC_TIMEZONE"] = "UTC"
os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
os.environ["EMAIL_ENABLED"] = "false"
os.environ["METRICS_ENABLED"] = "false"
os.environ["REMINDER_SCHEDULER_ENABLED"] = "false"

from datetime import date, datetime
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from clinic import models  # noqa: F401
from clinic.api import deps
from clinic.booking.errors import DeliveryFailure
from clinic.booking.lifecycle import Actor, ActorRole
from clinic.booking.policy import BookingPolicy
from clinic.core.security import create_access_token
from clinic.db.base import Base
from clinic.main import app
from clinic.models.appointment import Appointment
from clinic.models.user import User
from clinic.schemas.reminder import ReminderRecord

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

# Wednesday morning, clinic time == UTC in tests
NOW = datetime(2030, 1, 16, 8, 0)


class RecordingNotifier:
    """Stands in for EmailService; optionally fails for some recipients."""

    def __init__(self, fail_for: Optional[List[str]] = None, fail_all: bool = False):
        self.sent = []
        self.fail_for = set(fail_for or [])
        self.fail_all = fail_all

    def send_email(self, to, template, data):
        if self.fail_all or to in self.fail_for:
            raise DeliveryFailure(f"SMTP refused {to}")
        self.sent.append((to, template, data))

    def templates(self):
        return [template for _, template, _ in self.sent]


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def policy():
    return BookingPolicy()


@pytest.fixture
def notifier():
    return RecordingNotifier()


def create_user(db, email: str, role: str = "client", is_active: bool = True) -> User:
    user = User(email=email, full_name=email.split("@")[0].title(), role=role, is_active=is_active)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_appointment(
    db,
    client: User,
    day: date,
    time: str,
    status: str = "scheduled",
    duration: int = 50,
    reminders: Optional[List[ReminderRecord]] = None,
    **fields,
) -> Appointment:
    appointment = Appointment(
        client_id=client.id,
        date=day,
        time=time,
        type=fields.pop("type", "individual"),
        status=status,
        duration=duration,
        price=fields.pop("price", 500.0),
        **fields,
    )
    appointment.set_reminders(reminders or [])
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment


def at(dt: datetime):
    """(date, "HH:MM") of a naive datetime."""
    return dt.date(), dt.strftime("%H:%M")


@pytest.fixture
def alice(db):
    return create_user(db, "alice@example.com")


@pytest.fixture
def bob(db):
    return create_user(db, "bob@example.com")


@pytest.fixture
def admin(db):
    return create_user(db, "admin@example.com", role="admin")


@pytest.fixture
def alice_actor(alice):
    return Actor(role=ActorRole.CLIENT, user_id=alice.id)


@pytest.fixture
def admin_actor(admin):
    return Actor(role=ActorRole.ADMIN, user_id=admin.id)


def auth_headers(user: User) -> dict:
    token = create_access_token(user.id, role=user.role)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(db, notifier):
    def override_get_db():
        yield db

    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
