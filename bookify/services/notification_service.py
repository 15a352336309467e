"""Notification service: booking confirmation email via SendGrid.

Sending is best-effort. It runs after the booking is committed and a failure
is logged, never raised to the caller.
"""

import logging
from datetime import UTC, datetime
from typing import Any

import httpx

from bookify.config import settings

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"


def format_amount(amount: int, currency: str) -> str:
    """Minor units to a display string, e.g. 247500 PHP -> 'PHP 2,475.00'."""
    return f"{currency} {amount / 100:,.2f}"


class NotificationService:
    """Service for sending booking emails."""

    def __init__(self) -> None:
        """Initialize notification service."""
        self._http_client: httpx.AsyncClient | None = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
    ) -> bool:
        """Send an email via SendGrid.

        Args:
            to_email: Recipient email
            subject: Email subject
            html_content: HTML body
            text_content: Plain text body

        Returns:
            bool: True if sent successfully
        """
        if not settings.sendgrid_api_key:
            logger.info(f"SendGrid not configured, skipping email to {to_email}")
            return False

        headers = {
            "Authorization": f"Bearer {settings.sendgrid_api_key}",
            "Content-Type": "application/json",
        }

        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {
                "email": settings.email_from_address,
                "name": settings.email_from_name,
            },
            "subject": subject,
            "content": [{"type": "text/html", "value": html_content}],
        }
        if text_content:
            payload["content"].insert(0, {"type": "text/plain", "value": text_content})

        try:
            response = await self.http_client.post(SENDGRID_SEND_URL, headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"SendGrid request failed for {to_email}: {e}")
            return False

        if response.status_code not in (200, 202):
            logger.error(f"SendGrid rejected email to {to_email}: {response.status_code} {response.text}")
            return False
        return True

    def _generate_email_html(self, title: str, body: str) -> str:
        return f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="utf-8"></head>
        <body style="font-family: sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; color: #333;">
            <div style="background-color: #f9fafb; border-radius: 8px; padding: 24px;">
                <h1 style="color: #111827; font-size: 24px;">{title}</h1>
                <p style="color: #4b5563; font-size: 16px; line-height: 1.6;">{body}</p>
            </div>
            <p style="color: #9ca3af; font-size: 12px; text-align: center;">
                &copy; {datetime.now(UTC).year} {settings.email_from_name}
            </p>
        </body>
        </html>
        """

    async def send_booking_confirmation(
        self,
        guest_email: str | None,
        guest_name: str | None,
        listing_title: str,
        booking_number: str,
        total: int,
        currency: str,
        payment_status: str,
        dates: str,
    ) -> bool:
        """Email the guest a summary of their booking.

        Returns:
            bool: True if the email was accepted by SendGrid
        """
        if not guest_email:
            logger.info(f"No guest email on booking {booking_number}, skipping confirmation")
            return False

        paid = payment_status == "paid"
        title = "Booking Confirmed!" if paid else "Booking Received"
        body = (
            f"Hi {guest_name or 'there'}, your booking #{booking_number} at {listing_title} "
            f"({dates}) is {'confirmed' if paid else 'awaiting payment confirmation'}. "
            f"Total: {format_amount(total, currency)}. Payment status: {payment_status}."
        )
        sent = await self.send_email(
            to_email=guest_email,
            subject=f"{title} {listing_title}",
            html_content=self._generate_email_html(title, body),
            text_content=body,
        )
        if sent:
            logger.info(f"Confirmation email sent for booking {booking_number}")
        return sent


# Global service instance
notification_service = NotificationService()
