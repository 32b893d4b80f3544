from typing import Generator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import jwt
from pydantic import ValidationError
from sqlalchemy.orm import Session

from clinic import crud, models, schemas
from clinic.booking.lifecycle import Actor
from clinic.booking.policy import BookingPolicy
from clinic.booking.service import BookingService
from clinic.core import security
from clinic.core.config import settings
from clinic.db.session import SessionLocal
from clinic.reminders.scheduler import ReminderScheduler
from clinic.services.email_service import email_service

reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{settings.API_V1_STR}/auth/login"
)


def get_db() -> Generator:
    try:
        db = SessionLocal()
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_current_user(
    db: Session = Depends(get_db), token: str = Depends(reusable_oauth2)
) -> models.User:
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[security.ALGORITHM]
        )
        token_data = schemas.TokenPayload(**payload)
    except (jwt.JWTError, ValidationError):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Could not validate credentials",
        )
    user = crud.user.get(db, id=token_data.sub)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def get_current_active_user(
    current_user: models.User = Depends(get_current_user),
) -> models.User:
    if not crud.user.is_active(current_user):
        raise HTTPException(status_code=400, detail="Inactive user")
    return current_user


def get_current_admin(
    current_user: models.User = Depends(get_current_active_user),
) -> models.User:
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required"
        )
    return current_user


def get_actor(
    current_user: models.User = Depends(get_current_active_user),
) -> Actor:
    return Actor.for_user(current_user)


def get_notifier():
    return email_service


def get_booking_service(
    db: Session = Depends(get_db),
    notifier=Depends(get_notifier),
) -> BookingService:
    return BookingService(db, BookingPolicy.from_settings(), notifier)


def get_scheduler(request: Request) -> ReminderScheduler:
    """The scheduler owned by the application lifespan."""
    scheduler = getattr(request.app.state, "reminder_scheduler", None)
    if scheduler is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Reminder scheduler is not initialised",
        )
    return scheduler
