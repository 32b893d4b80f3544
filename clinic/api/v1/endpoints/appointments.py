import math
from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, status

from clinic import schemas
from clinic.api import deps
from clinic.booking.lifecycle import Actor
from clinic.booking.service import BookingService
from clinic.models.enums import AppointmentStatus, AppointmentType

router = APIRouter()


@router.get("/", response_model=schemas.AppointmentList)
def read_appointments(
    status_filter: Optional[AppointmentStatus] = Query(None, alias="status"),
    type_filter: Optional[AppointmentType] = Query(None, alias="type"),
    day: Optional[date] = Query(None, alias="date"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    actor: Actor = Depends(deps.get_actor),
    service: BookingService = Depends(deps.get_booking_service),
) -> Any:
    """
    List appointments. Clients get their own, admins get all.
    """
    items, total = service.list_appointments(
        actor,
        status=status_filter.value if status_filter else None,
        type=type_filter.value if type_filter else None,
        day=day,
        page=page,
        limit=limit,
    )
    return {
        "appointments": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if total else 0,
        },
    }


@router.get("/available-slots", response_model=schemas.AvailableSlots)
def read_available_slots(
    day: date = Query(..., alias="date"),
    _: Actor = Depends(deps.get_actor),
    service: BookingService = Depends(deps.get_booking_service),
) -> Any:
    """
    Free start times on a date.
    """
    return {"date": day, "available_slots": service.available_slots(day)}


@router.post("/", response_model=schemas.Appointment, status_code=status.HTTP_201_CREATED)
def create_appointment(
    *,
    appointment_in: schemas.AppointmentCreate,
    actor: Actor = Depends(deps.get_actor),
    service: BookingService = Depends(deps.get_booking_service),
) -> Any:
    """
    Book an appointment. Admins may pass client_id to book for a client.
    """
    return service.create_appointment(actor, appointment_in)


@router.get("/{appointment_id}", response_model=schemas.Appointment)
def read_appointment(
    appointment_id: int,
    actor: Actor = Depends(deps.get_actor),
    service: BookingService = Depends(deps.get_booking_service),
) -> Any:
    return service.get_appointment(actor, appointment_id)


@router.put("/{appointment_id}", response_model=schemas.Appointment)
def update_appointment(
    appointment_id: int,
    appointment_in: schemas.AppointmentUpdate,
    actor: Actor = Depends(deps.get_actor),
    service: BookingService = Depends(deps.get_booking_service),
) -> Any:
    """
    Update or reschedule an appointment while it is still reschedulable.
    """
    return service.update_appointment(actor, appointment_id, appointment_in)


@router.post("/{appointment_id}/cancel", response_model=schemas.Appointment)
def cancel_appointment(
    appointment_id: int,
    cancel_in: schemas.AppointmentCancel,
    actor: Actor = Depends(deps.get_actor),
    service: BookingService = Depends(deps.get_booking_service),
) -> Any:
    return service.cancel_appointment(actor, appointment_id, cancel_in.reason)


@router.post("/{appointment_id}/confirm", response_model=schemas.Appointment)
def confirm_appointment(
    appointment_id: int,
    actor: Actor = Depends(deps.get_actor),
    service: BookingService = Depends(deps.get_booking_service),
) -> Any:
    return service.confirm_appointment(actor, appointment_id)


@router.post("/{appointment_id}/complete", response_model=schemas.Appointment)
def complete_appointment(
    appointment_id: int,
    complete_in: schemas.AppointmentComplete,
    actor: Actor = Depends(deps.get_actor),
    service: BookingService = Depends(deps.get_booking_service),
) -> Any:
    return service.complete_appointment(actor, appointment_id, complete_in)
