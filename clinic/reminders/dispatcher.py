import logging
from datetime import datetime

from clinic.booking.errors import DeliveryFailure
from clinic.models.appointment import Appointment
from clinic.services.email_service import appointment_email_data

logger = logging.getLogger(__name__)


def send_reminder(appointment: Appointment, notifier) -> None:
    """Deliver one reminder email for ``appointment``. Raises DeliveryFailure."""
    client = appointment.client
    if client is None or not client.email:
        raise DeliveryFailure(
            "Client has no email address", details={"appointment_id": appointment.id}
        )
    try:
        notifier.send_email(client.email, "appointment_reminder", appointment_email_data(appointment))
    except DeliveryFailure:
        raise
    except Exception as e:
        raise DeliveryFailure(
            f"Reminder delivery failed: {e}", details={"appointment_id": appointment.id}
        ) from e


def mark_next_due_sent(appointment: Appointment, now: datetime) -> bool:
    """Flip the earliest due unsent record to sent. Returns False if none was due."""
    records = appointment.get_reminders()
    for record in sorted(records, key=lambda r: r.scheduled_for):
        if record.is_due(now):
            record.sent = True
            record.sent_at = now
            appointment.set_reminders(records)
            return True
    return False
