"""Email notification service using SendGrid.

Sending is best-effort: every failure is logged and reported as ``False``,
never raised, so a booking is not affected by a mail outage.
"""

import logging
from typing import Optional
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from app.core.config import settings
from app.models.appointment import Appointment
from app.utils.timeutils import as_utc

logger = logging.getLogger(__name__)


def _format_when(appointment: Appointment) -> tuple[str, str]:
    start = as_utc(appointment.start_at)
    return start.strftime("%A %d %B %Y"), start.strftime("%H:%M")


class EmailService:
    """Email service for sending notifications."""

    def __init__(self, api_key: Optional[str] = None):
        """Initialize email service."""
        self.api_key = settings.SENDGRID_API_KEY if api_key is None else api_key
        self.from_email = settings.SENDGRID_FROM_EMAIL
        self.from_name = settings.SENDGRID_FROM_NAME

        if not self.api_key:
            logger.warning("SENDGRID_API_KEY not configured. Emails will not be sent.")
            self.client = None
            self.enabled = False
        else:
            self.client = SendGridAPIClient(self.api_key)
            self.enabled = True
            logger.info("Email service initialized successfully")

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        plain_body: Optional[str] = None,
    ) -> bool:
        """
        Send an email.

        Args:
            to: Recipient email address
            subject: Email subject
            html_body: HTML body content
            plain_body: Plain text body (optional)

        Returns:
            True if sent successfully, False otherwise
        """
        if not self.enabled:
            logger.info("Email service disabled. Would have sent to %s: %s", to, subject)
            return False

        try:
            message = Mail(
                from_email=(self.from_email, self.from_name),
                to_emails=to,
                subject=subject,
                html_content=html_body,
            )

            if plain_body:
                message.plain_text_content = plain_body

            response = self.client.send(message)

            if 200 <= response.status_code < 300:
                logger.info("Email sent successfully to %s: %s", to, subject)
                return True

            logger.error("Failed to send email to %s: %s %s", to, response.status_code, response.body)
            return False

        except Exception as e:
            logger.error("Error sending email to %s: %s", to, e)
            return False

    async def send_booking_confirmation(self, appointment: Appointment) -> bool:
        """Confirm a booking to the client. Walk-in placeholder addresses are skipped."""
        client = appointment.client
        if client.is_walk_in and client.email.endswith(f"@{settings.WALK_IN_EMAIL_DOMAIN}"):
            logger.debug("No real address for walk-in client %s, skipping confirmation", client.id)
            return False

        day, hour = _format_when(appointment)
        subject = f"Your appointment at {settings.INSTITUTE_NAME} is confirmed"

        html_body = f"""
        <html>
            <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
                <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
                    <h2 style="color: #B08D57;">Appointment confirmed</h2>

                    <p>Hello {client.first_name},</p>

                    <p>Your appointment at {settings.INSTITUTE_NAME} has been confirmed.</p>

                    <div style="background-color: #f7f3ee; padding: 15px; border-radius: 5px; margin: 20px 0;">
                        <p><strong>Date:</strong> {day}</p>
                        <p><strong>Time:</strong> {hour} (UTC)</p>
                        <p><strong>Treatment:</strong> {appointment.service_name}</p>
                        <p><strong>With:</strong> {appointment.practitioner.full_name}</p>
                    </div>

                    <p style="color: #666; font-size: 14px; margin-top: 40px;">
                        You can cancel from your account until the start of the appointment.
                    </p>
                </div>
            </body>
        </html>
        """

        plain_body = (
            f"Hello {client.first_name},\n\n"
            f"Your appointment at {settings.INSTITUTE_NAME} has been confirmed.\n\n"
            f"Date: {day}\nTime: {hour} (UTC)\n"
            f"Treatment: {appointment.service_name}\n"
            f"With: {appointment.practitioner.full_name}\n"
        )

        return await self.send_email(client.email, subject, html_body, plain_body)

    async def send_cancellation_notice(self, appointment: Appointment) -> bool:
        client = appointment.client
        if client.is_walk_in and client.email.endswith(f"@{settings.WALK_IN_EMAIL_DOMAIN}"):
            return False

        day, hour = _format_when(appointment)
        subject = f"Your appointment at {settings.INSTITUTE_NAME} has been cancelled"
        html_body = (
            f'<html><body style="font-family:Arial,sans-serif;color:#333;">'
            f'<div style="max-width:600px;margin:0 auto;padding:20px;">'
            f'<h2 style="color:#B08D57;">Appointment cancelled</h2>'
            f'<p>Hello {client.first_name},</p>'
            f'<p>Your appointment for {appointment.service_name} on {day} at {hour} (UTC) '
            f'has been cancelled.</p>'
            f'<p>We hope to see you soon.</p>'
            f'</div></body></html>'
        )
        plain_body = (
            f"Hello {client.first_name},\n\n"
            f"Your appointment for {appointment.service_name} on {day} at {hour} (UTC) has been cancelled."
        )
        return await self.send_email(client.email, subject, html_body, plain_body)


# Global email service instance
email_service = EmailService()
