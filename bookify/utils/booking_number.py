"""Booking number generation."""

import secrets

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookify.core.exceptions import SettlementAborted

# Excludes 0, O, 1 and I
ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
PREFIX = "BKF"
LENGTH = 6
MAX_ATTEMPTS = 10


def random_booking_number() -> str:
    return f"{PREFIX}-{''.join(secrets.choice(ALPHABET) for _ in range(LENGTH))}"


async def generate_booking_number(db: AsyncSession) -> str:
    """Pick a booking number not used yet, like ``BKF-7KQ2MX``.

    The unique index on ``bookings.booking_number`` still rejects a number
    taken by a concurrent settlement after this check.

    Raises:
        SettlementAborted: No free number after ``MAX_ATTEMPTS`` draws
    """
    from bookify.models.booking import Booking

    for _ in range(MAX_ATTEMPTS):
        candidate = random_booking_number()
        taken = await db.scalar(select(Booking.id).where(Booking.booking_number == candidate))
        if taken is None:
            return candidate
    raise SettlementAborted("Could not allocate a booking number")
