import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Callable, Dict, Optional, Tuple

from clinic.booking.errors import DeliveryFailure
from clinic.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

TYPE_LABELS = {
    "individual": "Individual therapy",
    "couple": "Couples therapy",
    "online": "Online session",
    "in-person": "In-person session",
}


def appointment_email_data(appointment) -> Dict[str, Any]:
    """Template data bag for an appointment and its client."""
    client = appointment.client
    return {
        "client_name": (client.full_name or client.email) if client else "Client",
        "appointment_id": appointment.id,
        "date": appointment.date.strftime("%d.%m.%Y"),
        "time": appointment.time,
        "type": TYPE_LABELS.get(appointment.type, appointment.type),
        "duration": appointment.duration,
        "reason": appointment.cancellation_reason,
    }


class EmailService:
    """
    Sends templated clinic emails over SMTP.

    Every public send raises ``DeliveryFailure`` when the message could not be
    handed to the SMTP server. With ``EMAIL_ENABLED`` off messages are only
    logged.
    """

    def __init__(self, config: Optional[Settings] = None):
        config = config or default_settings
        self.enabled = config.EMAIL_ENABLED
        if self.enabled:
            if not config.SMTP_SERVER:
                raise ValueError("SMTP_SERVER is required when EMAIL_ENABLED is set")
            if not config.FROM_EMAIL:
                raise ValueError("FROM_EMAIL is required when EMAIL_ENABLED is set")

        self.smtp_server = config.SMTP_SERVER
        self.smtp_port = int(config.SMTP_PORT)
        self.smtp_username = config.SMTP_USERNAME
        self.smtp_password = config.SMTP_PASSWORD
        self.smtp_timeout = config.SMTP_TIMEOUT_SECONDS
        self.from_email = config.FROM_EMAIL
        self.clinic_name = config.CLINIC_NAME
        self.frontend_url = config.FRONTEND_URL

        self._templates: Dict[str, Callable[[Dict[str, Any]], Tuple[str, str, str]]] = {
            "appointment_confirmation": self._appointment_confirmation,
            "appointment_reminder": self._appointment_reminder,
            "appointment_cancellation": self._appointment_cancellation,
        }

    def send_email(self, to: str, template: str, data: Dict[str, Any]) -> None:
        """Render ``template`` with ``data`` and deliver it to ``to``."""
        render = self._templates.get(template)
        if render is None:
            raise ValueError(f"Unknown email template: {template}")
        if not to:
            raise DeliveryFailure("Recipient address is missing", details={"template": template})

        subject, text_content, html_content = render(data)

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to
        msg.attach(MIMEText(text_content, "plain"))
        msg.attach(MIMEText(html_content, "html"))

        if not self.enabled:
            logger.info(f"📧 Email disabled, would send '{template}' to {to}: {subject}")
            return

        self._send(msg, to, template)

    def _send(self, msg: MIMEMultipart, to: str, template: str) -> None:
        try:
            context = ssl.create_default_context()
            if self.smtp_port == 465:
                with smtplib.SMTP_SSL(self.smtp_server, self.smtp_port, context=context, timeout=self.smtp_timeout) as server:
                    if self.smtp_username:
                        server.login(self.smtp_username, self.smtp_password)
                    server.send_message(msg)
            else:
                with smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=self.smtp_timeout) as server:
                    server.starttls(context=context)
                    if self.smtp_username:
                        server.login(self.smtp_username, self.smtp_password)
                    server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"❌ Failed to send '{template}' email to {to}: {e}")
            raise DeliveryFailure(
                f"Failed to send email to {to}", details={"template": template, "error": str(e)}
            ) from e

        logger.info(f"✅ Email '{template}' sent to {to}")

    # --- templates: (subject, text, html) ---

    def _wrap_html(self, title: str, body: str) -> str:
        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <title>{title}</title>
            <style>
                body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
                .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
                .header {{ background-color: #5b8a72; color: white; padding: 20px; text-align: center; }}
                .content {{ padding: 30px; background-color: #f9f9f9; }}
                .footer {{ padding: 20px; text-align: center; color: #666; font-size: 12px; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header"><h1>{self.clinic_name}</h1></div>
                <div class="content">{body}</div>
                <div class="footer"><p>{self.clinic_name}</p></div>
            </div>
        </body>
        </html>
        """

    def _details_html(self, data: Dict[str, Any]) -> str:
        return (
            f"<p><strong>Date:</strong> {data.get('date')}<br>"
            f"<strong>Time:</strong> {data.get('time')}<br>"
            f"<strong>Session:</strong> {data.get('type')} ({data.get('duration')} min)</p>"
        )

    def _details_text(self, data: Dict[str, Any]) -> str:
        return (
            f"Date: {data.get('date')}\n"
            f"Time: {data.get('time')}\n"
            f"Session: {data.get('type')} ({data.get('duration')} min)"
        )

    def _appointment_confirmation(self, data: Dict[str, Any]) -> Tuple[str, str, str]:
        name = data.get("client_name", "Client")
        subject = f"Your appointment is booked - {self.clinic_name}"
        text = (
            f"Hello {name},\n\nYour appointment has been booked.\n\n{self._details_text(data)}\n\n"
            f"You can manage your appointments at {self.frontend_url}.\n"
        )
        html = self._wrap_html(
            "Appointment booked",
            f"<h2>Appointment booked</h2><p>Hello {name},</p><p>Your appointment has been booked.</p>"
            f"{self._details_html(data)}"
            f"<p>You can manage your appointments at <a href=\"{self.frontend_url}\">{self.frontend_url}</a>.</p>",
        )
        return subject, text, html

    def _appointment_reminder(self, data: Dict[str, Any]) -> Tuple[str, str, str]:
        name = data.get("client_name", "Client")
        subject = f"Appointment reminder - {self.clinic_name}"
        text = f"Hello {name},\n\nThis is a reminder of your upcoming appointment.\n\n{self._details_text(data)}\n"
        html = self._wrap_html(
            "Appointment reminder",
            f"<h2>Appointment reminder</h2><p>Hello {name},</p>"
            f"<p>This is a reminder of your upcoming appointment.</p>{self._details_html(data)}",
        )
        return subject, text, html

    def _appointment_cancellation(self, data: Dict[str, Any]) -> Tuple[str, str, str]:
        name = data.get("client_name", "Client")
        reason = data.get("reason") or "-"
        subject = f"Your appointment was cancelled - {self.clinic_name}"
        text = (
            f"Hello {name},\n\nYour appointment has been cancelled.\n\n{self._details_text(data)}\n"
            f"Reason: {reason}\n"
        )
        html = self._wrap_html(
            "Appointment cancelled",
            f"<h2>Appointment cancelled</h2><p>Hello {name},</p><p>Your appointment has been cancelled.</p>"
            f"{self._details_html(data)}<p><strong>Reason:</strong> {reason}</p>",
        )
        return subject, text, html


email_service = EmailService()
