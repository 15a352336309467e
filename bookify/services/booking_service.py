"""Booking reads and status transitions after creation."""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from bookify.core.exceptions import AuthorizationError, NotFoundError, SettlementAborted
from bookify.database import SessionFactory, run_transaction
from bookify.domain.booking_state import assert_booking_transition, assert_payment_transition
from bookify.domain.payout_state import should_trigger_payout
from bookify.models.booking import Booking
from bookify.services.payout_service import snapshot

logger = logging.getLogger(__name__)


class BookingService:
    """Service for booking lookups and status updates."""

    async def get_booking(self, db: AsyncSession, booking_id: UUID) -> Booking:
        booking = await db.get(Booking, booking_id)
        if booking is None:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def get_booking_for_party(
        self,
        db: AsyncSession,
        booking_id: UUID,
        user_id: str,
        is_admin: bool = False,
    ) -> Booking:
        """Get a booking visible to its guest, its host or an admin."""
        booking = await self.get_booking(db, booking_id)
        if not is_admin and user_id not in (booking.guest_id, booking.host_id):
            raise NotFoundError("Booking", str(booking_id))
        return booking

    async def list_guest_bookings(
        self,
        db: AsyncSession,
        guest_id: str,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Booking]:
        result = await db.execute(
            select(Booking)
            .where(Booking.guest_id == guest_id)
            .order_by(Booking.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def confirm(
        self,
        booking_id: UUID,
        host_id: str,
        session_factory: SessionFactory | None = None,
    ) -> tuple[Booking, bool]:
        """Host confirms a pending booking.

        Returns:
            The updated booking and whether the payout job should run
        """

        async def _confirm(db: AsyncSession) -> tuple[Booking, bool]:
            booking = await self.get_booking(db, booking_id)
            if booking.host_id != host_id:
                raise AuthorizationError("Only the host can confirm this booking")
            before = snapshot(booking)
            assert_booking_transition(booking.status, "confirmed")
            booking.status = "confirmed"
            booking.confirmed_at = datetime.now(UTC)
            await db.flush()
            return booking, should_trigger_payout(before, snapshot(booking))

        return await self._transition(booking_id, "confirmed", _confirm, session_factory)

    async def mark_paid(
        self,
        booking_id: UUID,
        payment_reference: str | None = None,
        session_factory: SessionFactory | None = None,
    ) -> tuple[Booking, bool]:
        """Record that payment for a pending booking arrived (admin).

        Returns:
            The updated booking and whether the payout job should run
        """

        async def _mark_paid(db: AsyncSession) -> tuple[Booking, bool]:
            booking = await self.get_booking(db, booking_id)
            before = snapshot(booking)
            assert_payment_transition(booking.payment_status, "paid")
            booking.payment_status = "paid"
            if payment_reference:
                booking.payment_reference = payment_reference
            await db.flush()
            return booking, should_trigger_payout(before, snapshot(booking))

        return await self._transition(booking_id, "paid", _mark_paid, session_factory)

    async def _transition(self, booking_id, target, fn, session_factory):
        try:
            booking, trigger = await run_transaction(fn, session_factory)
        except StaleDataError as e:
            logger.warning(f"Booking {booking_id} changed concurrently while moving to {target}")
            raise SettlementAborted("Booking was updated concurrently") from e
        except SQLAlchemyError as e:
            logger.error(f"Booking {booking_id} transition to {target} failed: {e}")
            raise SettlementAborted() from e

        logger.info(
            f"Booking {booking.booking_number} now {booking.status}/{booking.payment_status}"
            f"{' (payout due)' if trigger else ''}"
        )
        return booking, trigger


# Global service instance
booking_service = BookingService()
