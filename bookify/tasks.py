"""Celery background tasks.

This module contains the tasks queued after a booking commits:
- Host payout reconciliation
- Booking confirmation email
"""

import asyncio
import logging
from uuid import UUID

from celery import shared_task
from sqlalchemy.exc import OperationalError

from bookify.config import settings
from bookify.core.exceptions import InvalidBookingStatus, NotFoundError, SettlementAborted
from bookify.services.notification_service import notification_service
from bookify.services.payout_service import payout_service
from bookify.worker import celery_app  # noqa: F401  configured app becomes current

logger = logging.getLogger(__name__)


_loop: asyncio.AbstractEventLoop | None = None


def run_async(coro):
    """Run async function in sync context.

    One loop per worker process, so pooled database connections stay usable.
    """
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
    return _loop.run_until_complete(coro)


# ==================== PAYOUT TASKS ====================


@shared_task(bind=True, max_retries=3)
def process_host_payout(self, booking_id: str):
    """Pay the host for a booking that became paid and confirmed.

    Safe to run more than once: a booking already paid out is skipped.
    Not retried when the booking is missing or not yet eligible.
    """
    try:
        result = run_async(payout_service.process_host_payout(None, UUID(booking_id)))
    except (NotFoundError, InvalidBookingStatus) as e:
        logger.warning(f"Payout for booking {booking_id} not processed: {e.detail}")
        return {"status": "skipped", "reason": e.detail}
    except (SettlementAborted, OperationalError) as exc:
        raise self.retry(exc=exc, countdown=60)

    return {
        "status": "processed" if result.processed else "already_paid",
        "booking_id": booking_id,
        "payout_amount": result.payout_amount,
    }


# ==================== NOTIFICATION TASKS ====================


@shared_task(bind=True, max_retries=3)
def send_booking_confirmation(
    self,
    guest_email: str | None,
    guest_name: str | None,
    listing_title: str,
    booking_number: str,
    total: int,
    currency: str,
    payment_status: str,
    dates: str,
):
    """Email the guest their booking summary (best-effort)."""

    async def _send() -> bool:
        try:
            return await notification_service.send_booking_confirmation(
                guest_email=guest_email,
                guest_name=guest_name,
                listing_title=listing_title,
                booking_number=booking_number,
                total=total,
                currency=currency,
                payment_status=payment_status,
                dates=dates,
            )
        finally:
            await notification_service.close()

    sent = run_async(_send())
    if not sent and guest_email and settings.sendgrid_api_key:
        logger.error(f"Confirmation email for booking {booking_number} not sent")
        raise self.retry(countdown=300)
    return {"status": "sent" if sent else "skipped", "booking_number": booking_number}
