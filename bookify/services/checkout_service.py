"""Guest checkout: quote, pay with wallet, pay through a gateway.

Reads and validation happen outside the settlement transaction and fail
fast. The settlement transaction re-checks what can change in between.
Work after commit (confirmation email, host payout) is handed to Celery and
never fails the checkout.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, time
from uuid import UUID

from bookify.config import settings
from bookify.core.checkout_guard import CheckoutGuard, checkout_guard, checkout_key
from bookify.core.exceptions import (
    AppException,
    CapacityConflict,
    CaptureWithoutBooking,
    GatewayDeclined,
    InsufficientFunds,
    ValidationError,
)
from bookify.database import SessionFactory, async_session_maker
from bookify.domain.checkout_state import CheckoutAttempt
from bookify.domain.offers import Offer
from bookify.domain.payout_state import BookingStatusSnapshot, should_trigger_payout
from bookify.domain.pricing import (
    LoyaltyReward,
    PriceBreakdown,
    ServiceFeeRates,
    calculate_price,
)
from bookify.domain.reservation import (
    NightRange,
    Reservation,
    SlotRequest,
    describe_dates,
    stay_note,
)
from bookify.gateways.base import CaptureResult, OrderResult
from bookify.models.listing import Listing
from bookify.services.availability_service import guard_for
from bookify.services.gateway_service import GatewayService, gateway_service
from bookify.services.ledger_service import ledger_service
from bookify.services.listing_service import listing_service
from bookify.services.offer_service import PromoCache, offer_service, promo_cache
from bookify.services.settlement_service import (
    SettlementRequest,
    SettlementResult,
    settlement_service,
)

logger = logging.getLogger(__name__)


@dataclass
class CheckoutRequest:
    """What the guest selected."""

    guest_id: str
    listing_id: UUID
    check_in: date | None = None
    check_out: date | None = None
    schedule_date: date | None = None
    schedule_time: time | None = None
    guests: int = 1
    participants: int = 1
    coupon_code: str | None = None
    reward_id: UUID | None = None
    guest_email: str | None = None
    guest_name: str | None = None

    def reservation(self, listing: Listing) -> Reservation:
        if listing.is_slot_based:
            if self.schedule_date is None or self.schedule_time is None:
                raise ValidationError("Please select a schedule date and time")
            return SlotRequest(self.schedule_date, self.schedule_time, self.participants)
        if self.check_in is None or self.check_out is None:
            raise ValidationError("Please select check-in and check-out dates")
        return NightRange(self.check_in, self.check_out)


@dataclass
class Quote:
    listing: Listing
    reservation: Reservation
    breakdown: PriceBreakdown
    available: bool
    coupon: Offer | None = None
    reward: LoyaltyReward | None = None


def order_reference(request: CheckoutRequest) -> str:
    """Gateway reference tying an order to one guest, listing and date selection."""
    return checkout_key(
        request.guest_id,
        {
            "listing_id": str(request.listing_id),
            "check_in": request.check_in,
            "check_out": request.check_out,
            "schedule_date": request.schedule_date,
            "schedule_time": request.schedule_time,
            "participants": request.participants,
        },
    )


def capture_mismatch(capture: CaptureResult, breakdown: PriceBreakdown, reference_id: str) -> str | None:
    """Why a capture does not pay for this booking, or None when it does.

    A completed capture must report every field. A pending one is only
    checked on what the provider reported.
    """
    checks = (
        ("reference", capture.reference_id, reference_id),
        ("amount", capture.amount, breakdown.total),
        ("currency", capture.currency, breakdown.currency),
    )
    for name, captured, expected in checks:
        if captured is None and not capture.completed:
            continue
        if captured != expected:
            return f"captured {name} {captured} does not match {expected}"
    return None


class PostCommitDispatcher:
    """Hands post-commit work to Celery. Failures are logged only."""

    def booking_committed(self, result: SettlementResult, quote: Quote, request: CheckoutRequest) -> None:
        from bookify.tasks import send_booking_confirmation

        try:
            send_booking_confirmation.delay(
                guest_email=request.guest_email,
                guest_name=request.guest_name,
                listing_title=quote.listing.title,
                booking_number=result.booking_number,
                total=result.total,
                currency=result.currency,
                payment_status=result.payment_status,
                dates=describe_dates(quote.reservation),
            )
        except Exception as e:
            logger.error(f"Could not queue confirmation email for {result.booking_number}: {e}")

    def payout_due(self, booking_id: UUID) -> None:
        from bookify.tasks import process_host_payout

        try:
            process_host_payout.delay(str(booking_id))
        except Exception as e:
            logger.error(f"Could not queue host payout for booking {booking_id}: {e}")


@dataclass
class CheckoutService:
    """Service for the guest checkout flow."""

    session_factory: SessionFactory = async_session_maker
    promos: PromoCache = promo_cache
    fee_rates: ServiceFeeRates = field(default_factory=lambda: ServiceFeeRates.from_settings(settings))
    gateways: GatewayService = gateway_service
    guard: CheckoutGuard = checkout_guard
    dispatcher: PostCommitDispatcher = field(default_factory=PostCommitDispatcher)

    async def quote(self, request: CheckoutRequest) -> Quote:
        """Price a booking and check availability.

        Raises:
            NotFoundError: Listing, coupon or reward missing
            ValidationError: Dates, schedule or guest count invalid
            OfferIneligible: Coupon or reward does not apply
        """
        async with self.session_factory() as db:
            listing = await listing_service.get_listing(db, request.listing_id)
            if listing.host_id == request.guest_id:
                raise ValidationError("You cannot book your own listing")

            reservation = request.reservation(listing)
            listing_service.validate_reservation(listing, reservation, request.guests)

            raw_subtotal = listing.unit_price * reservation.quantity
            promos = await self.promos.get(db, listing.host_id)

            coupon = None
            if request.coupon_code and request.coupon_code.strip():
                coupon = await offer_service.validate_coupon(
                    db,
                    request.coupon_code,
                    listing.id,
                    reservation.reference_date,
                    raw_subtotal,
                    request.guest_id,
                )

            reward = None
            if request.reward_id is not None:
                reward = await offer_service.get_reward(db, request.reward_id, request.guest_id)

            breakdown = calculate_price(
                unit_price=listing.unit_price,
                quantity=reservation.quantity,
                listing_discount=listing_service.listing_discount(listing),
                promos=promos,
                coupon=coupon,
                reference_date=reservation.reference_date,
                listing_id=listing.id,
                reward=reward,
                service_fee_percent=self.fee_rates.for_category(listing.category),
                currency=listing.currency or settings.default_currency,
            )

            available = await guard_for(listing).check(db, listing, reservation)

        return Quote(
            listing=listing,
            reservation=reservation,
            breakdown=breakdown,
            available=available,
            coupon=coupon,
            reward=reward,
        )

    async def pay_with_wallet(self, request: CheckoutRequest) -> SettlementResult:
        """Book and pay from the guest's wallet in one settlement.

        Raises:
            CheckoutInProgress: Another attempt by this guest is running
            CapacityConflict: Dates or slot no longer free
            InsufficientFunds: Wallet balance below the total
        """
        async with self.guard.hold(checkout_key(request.guest_id)):
            attempt = CheckoutAttempt(request.guest_id)
            quote = await self.quote(request)
            if not quote.available:
                attempt.advance("aborted")
                raise CapacityConflict()

            async with self.session_factory() as db:
                wallet = await ledger_service.load_wallet(db, request.guest_id)
            if wallet.balance < quote.breakdown.total:
                attempt.advance("aborted")
                logger.info(
                    f"Wallet checkout rejected for guest {request.guest_id}: "
                    f"balance {wallet.balance} < total {quote.breakdown.total}"
                )
                raise InsufficientFunds()

            attempt.advance("settling")
            try:
                result = await settlement_service.settle(
                    self.session_factory,
                    self._settlement_request(request, quote, "wallet"),
                )
            except AppException:
                attempt.advance("aborted")
                raise
            attempt.advance("committed")

        self._after_commit(result, quote, request)
        return result

    async def create_gateway_order(self, request: CheckoutRequest, gateway: str = "paypal") -> tuple[Quote, OrderResult]:
        """Quote and open a gateway order for the total.

        Raises:
            CapacityConflict: Dates or slot no longer free
            GatewayDeclined: Provider refused to create the order
        """
        quote = await self.quote(request)
        if not quote.available:
            raise CapacityConflict()

        order = await self.gateways.create_order(
            gateway,
            amount=quote.breakdown.total,
            currency=quote.breakdown.currency,
            reference_id=order_reference(request),
            description=stay_note(quote.listing.title, quote.reservation),
        )
        if not order.success:
            raise GatewayDeclined(order.error_message or "Payment provider rejected the order")
        return quote, order

    async def capture_and_settle(
        self,
        request: CheckoutRequest,
        order_ref: str,
        gateway: str = "paypal",
    ) -> SettlementResult:
        """Capture an approved order and record the booking.

        A completed capture books as confirmed and paid; a pending one books
        as pending with no ledger effects. When money moved but the booking
        cannot be committed the guest is told to contact support.

        Raises:
            CheckoutInProgress: Another attempt by this guest is running
            CapacityConflict: Dates or slot taken before capture
            GatewayDeclined: Pending order does not match this booking
            CaptureWithoutBooking: Captured, then settlement failed, or the
                captured order pays for something else
        """
        async with self.guard.hold(checkout_key(request.guest_id)):
            attempt = CheckoutAttempt(request.guest_id)
            quote = await self.quote(request)
            if not quote.available:
                attempt.advance("aborted")
                raise CapacityConflict()

            attempt.advance("awaiting_payment")
            capture = await self.gateways.capture(gateway, order_ref)
            payment_reference = capture.reference or order_ref

            mismatch = capture_mismatch(capture, quote.breakdown, order_reference(request))
            if mismatch is not None:
                attempt.advance("aborted")
                if capture.completed:
                    logger.error(
                        f"Payment {payment_reference} captured for guest {request.guest_id} "
                        f"on listing {request.listing_id} does not pay for this booking: {mismatch}"
                    )
                    raise CaptureWithoutBooking(payment_reference, "the payment does not match this booking")
                logger.warning(f"Order {order_ref} rejected for guest {request.guest_id}: {mismatch}")
                raise GatewayDeclined("This payment does not match the selected booking")

            attempt.advance("settling")
            settlement = self._settlement_request(
                request,
                quote,
                "card_gateway",
                capture_status=capture.status,
                payment_reference=payment_reference,
            )
            try:
                result = await settlement_service.settle(self.session_factory, settlement)
            except AppException as e:
                attempt.advance("aborted")
                if not capture.completed:
                    raise
                logger.error(
                    f"Payment {payment_reference} captured for guest {request.guest_id} "
                    f"on listing {request.listing_id} but booking failed: {e.detail}"
                )
                raise CaptureWithoutBooking(payment_reference, str(e.detail)) from e
            attempt.advance("committed")

        self._after_commit(result, quote, request)
        return result

    def _settlement_request(
        self,
        request: CheckoutRequest,
        quote: Quote,
        payment_method: str,
        capture_status: str = "completed",
        payment_reference: str | None = None,
    ) -> SettlementRequest:
        return SettlementRequest(
            guest_id=request.guest_id,
            listing=quote.listing,
            reservation=quote.reservation,
            breakdown=quote.breakdown,
            payment_method=payment_method,
            capture_status=capture_status,
            payment_reference=payment_reference,
            guests=request.guests,
            guest_email=request.guest_email,
            guest_name=request.guest_name,
            coupon=quote.coupon,
        )

    def _after_commit(self, result: SettlementResult, quote: Quote, request: CheckoutRequest) -> None:
        self.dispatcher.booking_committed(result, quote, request)
        after = BookingStatusSnapshot(
            status=result.status,
            payment_status=result.payment_status,
            host_payout_status=result.host_payout_status,
        )
        if should_trigger_payout(None, after):
            self.dispatcher.payout_due(result.booking_id)


# Global service instance
checkout_service = CheckoutService()
