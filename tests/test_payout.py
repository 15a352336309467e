"""Tests for booking status changes and host payout reconciliation.

Run with: pytest tests/test_payout.py -v
"""

import asyncio
import uuid
from datetime import date

import pytest
from sqlalchemy import func, select

from bookify.core.exceptions import AuthorizationError, InvalidBookingStatus, NotFoundError, SettlementAborted
from bookify.models.booking import Booking
from bookify.models.ledger import PointsAccount, WalletAccount, WalletTransaction
from bookify.services.booking_service import booking_service
from bookify.services.checkout_service import CheckoutRequest
from bookify.services.payout_service import payout_service


def stay_request(listing, stay_dates, guest_id="guest-1") -> CheckoutRequest:
    check_in, check_out = stay_dates
    return CheckoutRequest(guest_id=guest_id, listing_id=listing.id, check_in=check_in, check_out=check_out)


async def gateway_checkout(checkout, request: CheckoutRequest):
    """Open a gateway order for the request and capture it."""
    _, order = await checkout.create_gateway_order(request)
    return await checkout.capture_and_settle(request, order_ref=order.order_ref)


async def balance(session_factory, model, account_id) -> int:
    async with session_factory() as db:
        account = await db.get(model, account_id)
    return account.balance if account else 0


@pytest.fixture
async def pending_booking(seed, checkout, gateway, stay_dates):
    """A booking whose gateway capture is still pending."""
    gateway.capture_status = "pending"
    listing = await seed.listing()
    return await gateway_checkout(checkout, stay_request(listing, stay_dates))


class TestPendingToPaid:
    """A pending gateway booking confirmed and paid later."""

    async def test_confirm_then_pay_triggers_once(self, pending_booking, session_factory):
        """Only the write that completes paid+confirmed asks for a payout."""
        booking, confirm_trigger = await booking_service.confirm(
            pending_booking.booking_id, "host-1", session_factory=session_factory
        )
        assert booking.status == "confirmed"
        assert booking.confirmed_at is not None
        assert not confirm_trigger

        booking, paid_trigger = await booking_service.mark_paid(
            pending_booking.booking_id, "BANK-42", session_factory=session_factory
        )
        assert booking.payment_status == "paid"
        assert booking.payment_reference == "BANK-42"
        assert paid_trigger

    async def test_pay_then_confirm_triggers_once(self, pending_booking, session_factory):
        """Order of the two writes does not matter."""
        _, paid_trigger = await booking_service.mark_paid(
            pending_booking.booking_id, session_factory=session_factory
        )
        _, confirm_trigger = await booking_service.confirm(
            pending_booking.booking_id, "host-1", session_factory=session_factory
        )

        assert (paid_trigger, confirm_trigger) == (False, True)

    async def test_only_host_confirms(self, pending_booking, session_factory):
        """Other users cannot confirm."""
        with pytest.raises(AuthorizationError):
            await booking_service.confirm(pending_booking.booking_id, "guest-1", session_factory=session_factory)

    async def test_cannot_pay_twice(self, pending_booking, session_factory):
        """Paid bookings cannot be marked paid again."""
        await booking_service.mark_paid(pending_booking.booking_id, session_factory=session_factory)

        with pytest.raises(InvalidBookingStatus):
            await booking_service.mark_paid(pending_booking.booking_id, session_factory=session_factory)


class TestHostPayout:
    """Tests for process_host_payout."""

    async def test_pays_host_once(self, pending_booking, session_factory):
        """The host is credited total minus fee, then later runs are no-ops."""
        booking_id = pending_booking.booking_id
        await booking_service.confirm(booking_id, "host-1", session_factory=session_factory)
        await booking_service.mark_paid(booking_id, session_factory=session_factory)

        first = await payout_service.process_host_payout(session_factory, booking_id)
        second = await payout_service.process_host_payout(session_factory, booking_id)

        assert first.processed
        assert first.payout_amount == 3000
        assert first.platform_fee_credited
        assert not second.processed
        assert await balance(session_factory, WalletAccount, "host-1") == 3000
        assert await balance(session_factory, WalletAccount, "admin") == 300
        assert await balance(session_factory, PointsAccount, "host-1") == 100
        async with session_factory() as db:
            booking = await db.get(Booking, booking_id)
            payouts = await db.scalar(
                select(func.count()).select_from(WalletTransaction).where(WalletTransaction.type == "host_payout")
            )
        assert booking.host_payout_status == "paid"
        assert booking.host_payout_amount == 3000
        assert booking.host_points_awarded == 100
        assert payouts == 1

    async def test_concurrent_payouts_pay_once(self, pending_booking, session_factory):
        """Two payout jobs for one booking credit the host once."""
        booking_id = pending_booking.booking_id
        await booking_service.confirm(booking_id, "host-1", session_factory=session_factory)
        await booking_service.mark_paid(booking_id, session_factory=session_factory)

        outcomes = await asyncio.gather(
            payout_service.process_host_payout(session_factory, booking_id),
            payout_service.process_host_payout(session_factory, booking_id),
            return_exceptions=True,
        )

        failures = [o for o in outcomes if isinstance(o, Exception)]
        results = [o for o in outcomes if not isinstance(o, Exception)]
        assert all(isinstance(f, SettlementAborted) for f in failures)
        assert [r.processed for r in results].count(True) == 1
        assert await balance(session_factory, WalletAccount, "host-1") == 3000
        assert await balance(session_factory, WalletAccount, "admin") == 300
        assert await balance(session_factory, PointsAccount, "host-1") == 100
        async with session_factory() as db:
            payouts = await db.scalar(
                select(func.count()).select_from(WalletTransaction).where(WalletTransaction.type == "host_payout")
            )
        assert payouts == 1

    async def test_fee_not_credited_twice(self, seed, checkout, session_factory, stay_dates):
        """A completed capture already credited the fee; payout leaves it alone."""
        listing = await seed.listing()
        result = await gateway_checkout(checkout, stay_request(listing, stay_dates))

        payout = await payout_service.process_host_payout(session_factory, result.booking_id)

        assert payout.processed
        assert not payout.platform_fee_credited
        assert await balance(session_factory, WalletAccount, "admin") == 300
        assert await balance(session_factory, WalletAccount, "host-1") == 3000

    async def test_wallet_booking_is_already_paid_out(self, seed, checkout, session_factory, stay_dates):
        """Wallet settlement pays the host; the job does nothing."""
        listing = await seed.listing()
        await seed.top_up("guest-1", 10_000)
        result = await checkout.pay_with_wallet(stay_request(listing, stay_dates))

        payout = await payout_service.process_host_payout(session_factory, result.booking_id)

        assert not payout.processed
        assert await balance(session_factory, WalletAccount, "host-1") == 3000

    async def test_unsettled_booking_rejected(self, pending_booking, session_factory):
        """Pending bookings cannot be paid out."""
        with pytest.raises(InvalidBookingStatus):
            await payout_service.process_host_payout(session_factory, pending_booking.booking_id)

        assert await balance(session_factory, WalletAccount, "host-1") == 0

    async def test_missing_booking(self, session_factory):
        """Unknown bookings are not found."""
        with pytest.raises(NotFoundError):
            await payout_service.process_host_payout(session_factory, uuid.uuid4())


class TestBookingReads:
    """Tests for booking lookups."""

    async def test_parties_can_read(self, pending_booking, session_factory):
        """Guest, host and admin see the booking; others do not."""
        booking_id = pending_booking.booking_id
        async with session_factory() as db:
            for user_id, is_admin in (("guest-1", False), ("host-1", False), ("ops", True)):
                booking = await booking_service.get_booking_for_party(db, booking_id, user_id, is_admin)
                assert booking.id == booking_id
            with pytest.raises(NotFoundError):
                await booking_service.get_booking_for_party(db, booking_id, "stranger")

    async def test_guest_bookings(self, seed, checkout, session_factory, gateway):
        """A guest's bookings are listed."""
        gateway.capture_status = "pending"
        listing = await seed.listing()
        for check_in in (date(2026, 4, 1), date(2026, 4, 10)):
            await gateway_checkout(checkout, stay_request(listing, (check_in, date(2026, 4, check_in.day + 2))))

        async with session_factory() as db:
            bookings = await booking_service.list_guest_bookings(db, "guest-1")
            others = await booking_service.list_guest_bookings(db, "guest-2")

        assert len(bookings) == 2
        assert others == []
