"""Settlement: commit a booking with its capacity and ledger effects.

One transaction per attempt. Every account, lock, reward and redemption
count is read first, then validated, then written. Capacity writes are
flushed before the ledgers so a lost race on a night or slot surfaces as
CapacityConflict. The reward is flushed next, so a reward spent by a
concurrent booking surfaces as OfferIneligible. Any failure rolls back the
whole attempt; nothing is retried here.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from bookify.config import settings
from bookify.core.exceptions import (
    AppException,
    CapacityConflict,
    InsufficientFunds,
    OfferIneligible,
    SettlementAborted,
    ValidationError,
)
from bookify.database import SessionFactory, run_transaction
from bookify.domain.offers import Offer, reward_expired, usage_allows
from bookify.domain.payout_state import compute_payout_amount
from bookify.domain.pricing import PriceBreakdown
from bookify.domain.reservation import NightRange, Reservation, stay_note
from bookify.models.booking import Booking
from bookify.models.listing import Listing
from bookify.models.offer import CouponRedemption
from bookify.models.reward import RedeemedReward
from bookify.services.availability_service import guard_for
from bookify.services.ledger_service import ledger_service
from bookify.services.offer_service import offer_service
from bookify.utils.booking_number import generate_booking_number

logger = logging.getLogger(__name__)

PAYMENT_METHODS = ("wallet", "card_gateway")


@dataclass
class SettlementRequest:
    """Everything a settlement attempt needs, priced and validated upfront."""

    guest_id: str
    listing: Listing
    reservation: Reservation
    breakdown: PriceBreakdown
    payment_method: str  # wallet, card_gateway
    capture_status: str = "completed"  # gateway path only: completed, pending
    payment_reference: str | None = None
    guests: int = 1
    guest_email: str | None = None
    guest_name: str | None = None
    coupon: Offer | None = None


@dataclass
class SettlementResult:
    """What the caller (API, email, payout trigger) sees of a committed booking."""

    booking_id: UUID
    booking_number: str
    status: str
    payment_status: str
    total: int
    subtotal: int
    service_fee: int
    currency: str
    host_payout_amount: int
    guest_points_awarded: int
    host_points_awarded: int
    platform_fee_credited: bool
    host_payout_status: str
    guest_balance_after: int | None = None
    host_balance_after: int | None = None


class SettlementService:
    """Service for the booking settlement transaction."""

    async def settle(
        self,
        session_factory: SessionFactory | None,
        request: SettlementRequest,
    ) -> SettlementResult:
        """Run one settlement attempt.

        Args:
            session_factory: Session factory (default: application sessions)
            request: Priced booking request

        Returns:
            SettlementResult for the committed booking

        Raises:
            CapacityConflict: Nights or slot taken, now or by a concurrent booking
            InsufficientFunds: Guest wallet below the total (wallet path)
            OfferIneligible: Coupon used up or reward no longer usable
            SettlementAborted: Any other transaction failure
        """
        if request.payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"Unknown payment method: {request.payment_method}")

        async def _settle(db: AsyncSession) -> SettlementResult:
            return await self._settle(db, request)

        listing = request.listing
        try:
            result = await run_transaction(_settle, session_factory)
        except AppException as e:
            logger.info(
                f"Settlement aborted for guest {request.guest_id} on listing {listing.id}: {e.detail}"
            )
            raise
        except (IntegrityError, StaleDataError) as e:
            logger.warning(
                f"Settlement lost a concurrent write for guest {request.guest_id} "
                f"on listing {listing.id}: {e}"
            )
            raise SettlementAborted() from e
        except SQLAlchemyError as e:
            logger.error(
                f"Settlement failed for guest {request.guest_id} on listing {listing.id}: {e}"
            )
            raise SettlementAborted() from e

        logger.info(
            f"Booking {result.booking_number} committed: listing={listing.id} "
            f"guest={request.guest_id} total={result.total} "
            f"status={result.status}/{result.payment_status} method={request.payment_method}"
        )
        return result

    async def _settle(self, db: AsyncSession, request: SettlementRequest) -> SettlementResult:
        listing = request.listing
        breakdown = request.breakdown
        currency = breakdown.currency
        wallet_path = request.payment_method == "wallet"
        paid = wallet_path or request.capture_status == "completed"
        credit_fee = paid and breakdown.service_fee > 0
        coupon_applied = request.coupon is not None and breakdown.coupon_discount > 0

        # ---- Read ----
        guard = guard_for(listing)
        claim = await guard.load(db, listing, request.reservation)

        guest_wallet = host_wallet = platform_wallet = None
        guest_points = host_points = None
        if wallet_path:
            guest_wallet = await ledger_service.load_wallet(db, request.guest_id, currency)
            host_wallet = await ledger_service.load_wallet(db, listing.host_id, currency)
            host_points = await ledger_service.load_points(db, listing.host_id)
        if paid:
            guest_points = await ledger_service.load_points(db, request.guest_id)
        if credit_fee:
            platform_wallet = await ledger_service.load_wallet(db, settings.platform_account_id, currency)

        reward_row = None
        if breakdown.applied_reward is not None:
            reward_row = await db.get(RedeemedReward, UUID(breakdown.applied_reward.reward_id))

        global_uses = user_uses = 0
        if coupon_applied:
            global_uses, user_uses = await offer_service.count_redemptions(
                db, request.coupon.id, request.guest_id
            )

        booking_number = await generate_booking_number(db)
        now = datetime.now(UTC)

        # ---- Validate ----
        if wallet_path and guest_wallet.balance < breakdown.total:
            raise InsufficientFunds()
        if coupon_applied and not usage_allows(request.coupon, global_uses, user_uses):
            raise OfferIneligible("This coupon has reached its usage limit")
        if breakdown.applied_reward is not None:
            if reward_row is None or reward_row.guest_id != request.guest_id:
                raise OfferIneligible("This reward is not available")
            if reward_row.used:
                raise OfferIneligible("This reward has already been used")
            if reward_expired(reward_row.expires_at, now):
                raise OfferIneligible("This reward has expired")

        # ---- Write ----
        payout_amount = compute_payout_amount(breakdown.total, breakdown.service_fee)
        booking = self._build_booking(request, booking_number, paid, now)
        db.add(booking)
        await db.flush()

        claim.apply(db, booking.id)
        try:
            await db.flush()
        except (IntegrityError, StaleDataError) as e:
            logger.info(f"Capacity lost at commit for {', '.join(claim.keys)}: {e}")
            raise CapacityConflict() from e

        if reward_row is not None:
            reward_row.used = True
            reward_row.used_at = now
            reward_row.booking_id = booking.id
            try:
                await db.flush()
            except StaleDataError as e:
                logger.info(f"Reward {breakdown.applied_reward.reward_id} used by a concurrent booking: {e}")
                raise OfferIneligible("This reward has already been used") from e

        note = stay_note(listing.title, request.reservation)
        meta = {
            "booking_id": str(booking.id),
            "booking_number": booking_number,
            "listing_id": str(listing.id),
            "payer": request.guest_id,
            "fee": breakdown.service_fee,
            "locks": claim.keys,
        }

        guest_balance_after = host_balance_after = None
        if wallet_path:
            debit = ledger_service.post_wallet_entry(
                db, guest_wallet, "booking_payment", -breakdown.total,
                note=note, method="wallet", meta=meta,
            )
            credit = ledger_service.post_wallet_entry(
                db, host_wallet, "booking_income", breakdown.subtotal,
                note=note, method="wallet", meta=meta,
            )
            guest_balance_after, host_balance_after = debit.balance_after, credit.balance_after

            ledger_service.post_points_entry(
                db, host_points, "host_booking_reward", settings.host_booking_reward_points,
                note=f"Booking reward for hosting {listing.title}", meta=meta,
            )
            booking.host_points_awarded = settings.host_booking_reward_points
            # Host is credited here, so the payout job must not pay again
            booking.host_payout_status = "paid"
            booking.host_payout_amount = breakdown.subtotal
            booking.host_payout_at = now
            payout_amount = breakdown.subtotal

        if paid:
            ledger_service.post_points_entry(
                db, guest_points, "booking_reward", settings.guest_booking_reward_points,
                note=f"Booking reward for {listing.title}", meta=meta,
            )
            booking.guest_points_awarded = settings.guest_booking_reward_points

        if credit_fee:
            ledger_service.post_wallet_entry(
                db, platform_wallet, "service_fee", breakdown.service_fee,
                note=f"Service fee: {note}", method=request.payment_method, meta=meta,
            )
            booking.platform_fee_credited = True

        if coupon_applied:
            coupon = breakdown.applied_coupon
            db.add(
                CouponRedemption(
                    coupon_id=UUID(coupon.offer_id),
                    code=coupon.code,
                    guest_id=request.guest_id,
                    booking_id=booking.id,
                    listing_id=listing.id,
                    host_id=listing.host_id,
                    discount=breakdown.coupon_discount,
                )
            )

        await db.flush()

        return SettlementResult(
            booking_id=booking.id,
            booking_number=booking_number,
            status=booking.status,
            payment_status=booking.payment_status,
            total=breakdown.total,
            subtotal=breakdown.subtotal,
            service_fee=breakdown.service_fee,
            currency=currency,
            host_payout_amount=payout_amount,
            guest_points_awarded=booking.guest_points_awarded,
            host_points_awarded=booking.host_points_awarded,
            platform_fee_credited=booking.platform_fee_credited,
            host_payout_status=booking.host_payout_status,
            guest_balance_after=guest_balance_after,
            host_balance_after=host_balance_after,
        )

    def _build_booking(
        self,
        request: SettlementRequest,
        booking_number: str,
        paid: bool,
        now: datetime,
    ) -> Booking:
        listing = request.listing
        breakdown = request.breakdown
        reservation = request.reservation

        stay = isinstance(reservation, NightRange)
        return Booking(
            booking_number=booking_number,
            guest_id=request.guest_id,
            guest_email=request.guest_email,
            guest_name=request.guest_name,
            host_id=listing.host_id,
            listing_id=listing.id,
            listing_title=listing.title,
            category=listing.category,
            check_in=reservation.check_in if stay else None,
            check_out=reservation.check_out if stay else None,
            schedule_date=None if stay else reservation.slot_date,
            schedule_time=None if stay else reservation.slot_time,
            quantity=breakdown.quantity,
            guests=request.guests if stay else reservation.participants,
            unit_price=breakdown.unit_price,
            raw_subtotal=breakdown.raw_subtotal,
            listing_discount=breakdown.listing_discount,
            promo_discount=breakdown.promo_discount,
            coupon_discount=breakdown.coupon_discount,
            reward_discount=breakdown.reward_discount,
            subtotal=breakdown.subtotal,
            service_fee_percent=breakdown.service_fee_percent,
            service_fee=breakdown.service_fee,
            total_price=breakdown.total,
            currency=breakdown.currency,
            applied_promo=_as_dict(breakdown.applied_promo),
            applied_coupon=_as_dict(breakdown.applied_coupon),
            applied_reward=_as_dict(breakdown.applied_reward),
            applied_offers=breakdown.applied_offers(),
            status="confirmed" if paid else "pending",
            payment_status="paid" if paid else "pending",
            payment_method=request.payment_method,
            payment_reference=request.payment_reference,
            guest_points_awarded=0,
            host_points_awarded=0,
            platform_fee_credited=False,
            host_payout_status="pending",
            host_payout_amount=0,
            confirmed_at=now if paid else None,
        )


def _as_dict(applied) -> dict | None:
    return asdict(applied) if applied is not None else None


# Global service instance
settlement_service = SettlementService()
