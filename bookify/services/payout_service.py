"""Host payout reconciliation.

Runs after a booking becomes paid and confirmed outside the wallet path
(gateway captures completed later, manual transfers). Pays the host once:
the booking's payout marker and version column make repeated or concurrent
runs a no-op or a rejected write.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from bookify.config import settings
from bookify.core.exceptions import InvalidBookingStatus, NotFoundError, SettlementAborted
from bookify.database import SessionFactory, run_transaction
from bookify.domain.payout_state import (
    BookingStatusSnapshot,
    can_release_payout,
    compute_payout_amount,
)
from bookify.models.booking import Booking
from bookify.services.ledger_service import ledger_service

logger = logging.getLogger(__name__)


@dataclass
class PayoutResult:
    booking_id: UUID
    processed: bool
    payout_amount: int
    host_points_awarded: int = 0
    platform_fee_credited: bool = False


def snapshot(booking: Booking) -> BookingStatusSnapshot:
    return BookingStatusSnapshot(
        status=booking.status,
        payment_status=booking.payment_status,
        host_payout_status=booking.host_payout_status,
    )


class PayoutService:
    """Service for host payouts."""

    async def process_host_payout(
        self,
        session_factory: SessionFactory | None,
        booking_id: UUID,
    ) -> PayoutResult:
        """Credit the host for a paid and confirmed booking, once.

        Args:
            session_factory: Session factory (default: application sessions)
            booking_id: Booking to pay out

        Returns:
            PayoutResult; ``processed`` is False when the host was already paid

        Raises:
            NotFoundError: Booking missing
            InvalidBookingStatus: Booking not paid and confirmed
            SettlementAborted: Concurrent payout or other database failure
        """

        async def _payout(db: AsyncSession) -> PayoutResult:
            return await self._process(db, booking_id)

        try:
            result = await run_transaction(_payout, session_factory)
        except StaleDataError as e:
            logger.warning(f"Payout for booking {booking_id} lost to a concurrent update: {e}")
            raise SettlementAborted("Booking was updated concurrently") from e
        except SQLAlchemyError as e:
            logger.error(f"Payout for booking {booking_id} failed: {e}")
            raise SettlementAborted() from e

        if result.processed:
            logger.info(
                f"Host payout processed for booking {booking_id}: amount={result.payout_amount} "
                f"points={result.host_points_awarded} fee_credited={result.platform_fee_credited}"
            )
        else:
            logger.info(f"Host payout already done for booking {booking_id}, skipped")
        return result

    async def _process(self, db: AsyncSession, booking_id: UUID) -> PayoutResult:
        # ---- Read ----
        booking = await db.get(Booking, booking_id)
        if booking is None:
            raise NotFoundError("Booking", str(booking_id))

        if booking.host_payout_status == "paid":
            return PayoutResult(
                booking_id=booking.id,
                processed=False,
                payout_amount=booking.host_payout_amount,
            )

        can_release, error = can_release_payout(booking.status, booking.payment_status)
        if not can_release:
            raise InvalidBookingStatus(error)

        payout = compute_payout_amount(booking.total_price, booking.service_fee)
        credit_fee = not booking.platform_fee_credited and booking.service_fee > 0

        host_wallet = await ledger_service.load_wallet(db, booking.host_id, booking.currency)
        host_points = await ledger_service.load_points(db, booking.host_id)
        platform_wallet = None
        if credit_fee:
            platform_wallet = await ledger_service.load_wallet(
                db, settings.platform_account_id, booking.currency
            )

        # ---- Write ----
        meta = {
            "booking_id": str(booking.id),
            "booking_number": booking.booking_number,
            "listing_id": str(booking.listing_id),
            "payer": booking.guest_id,
            "fee": booking.service_fee,
        }
        note = f"Payout for booking {booking.booking_number}: {booking.listing_title}"

        if payout > 0:
            ledger_service.post_wallet_entry(
                db, host_wallet, "host_payout", payout,
                note=note, method=booking.payment_method, meta=meta,
            )
        points = settings.host_booking_reward_points
        ledger_service.post_points_entry(
            db, host_points, "host_booking_reward", points,
            note=f"Booking reward for hosting {booking.listing_title}", meta=meta,
        )
        if credit_fee:
            ledger_service.post_wallet_entry(
                db, platform_wallet, "service_fee", booking.service_fee,
                note=f"Service fee: {booking.listing_title}",
                method=booking.payment_method, meta=meta,
            )
            booking.platform_fee_credited = True

        booking.host_points_awarded = points
        booking.host_payout_status = "paid"
        booking.host_payout_amount = payout
        booking.host_payout_at = datetime.now(UTC)

        await db.flush()

        return PayoutResult(
            booking_id=booking.id,
            processed=True,
            payout_amount=payout,
            host_points_awarded=points,
            platform_fee_credited=credit_fee,
        )


# Global service instance
payout_service = PayoutService()
