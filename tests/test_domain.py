"""Tests for reservations and status rules.

Run with: pytest tests/test_domain.py -v
"""

import re
from datetime import date, time

import pytest

from bookify.core.exceptions import InvalidBookingStatus, ValidationError
from bookify.domain.booking_state import assert_booking_transition, assert_payment_transition
from bookify.domain.checkout_state import CheckoutAttempt
from bookify.domain.payout_state import (
    BookingStatusSnapshot,
    can_release_payout,
    compute_payout_amount,
    should_trigger_payout,
)
from bookify.domain.reservation import (
    NightRange,
    SlotRequest,
    describe_dates,
    night_lock_key,
    slot_lock_key,
)
from bookify.utils.booking_number import random_booking_number


class TestReservation:
    """Tests for NightRange and SlotRequest."""

    def test_nights_exclude_checkout(self):
        """A 3-night stay covers check-in up to the day before check-out."""
        stay = NightRange(date(2026, 4, 1), date(2026, 4, 4))

        assert stay.quantity == 3
        assert stay.nights == [date(2026, 4, 1), date(2026, 4, 2), date(2026, 4, 3)]
        assert stay.reference_date == date(2026, 4, 1)

    def test_checkout_must_follow_checkin(self):
        """Zero-night stays are invalid."""
        with pytest.raises(ValidationError):
            NightRange(date(2026, 4, 1), date(2026, 4, 1))

    def test_slot_needs_participants(self):
        """A slot booking has at least one participant."""
        with pytest.raises(ValidationError):
            SlotRequest(date(2026, 5, 1), time(9, 0), 0)

    def test_lock_keys(self):
        """Lock keys identify the listing and the night or slot."""
        assert night_lock_key("L1", date(2026, 4, 1)) == "L1_20260401"
        assert slot_lock_key("L1", date(2026, 5, 1), time(9, 30)) == "L1_2026-05-01_0930"

    def test_describe_dates(self):
        """Stays show first and last night; slots show date and time."""
        assert describe_dates(NightRange(date(2026, 4, 1), date(2026, 4, 4))) == "2026-04-01 to 2026-04-03"
        assert describe_dates(SlotRequest(date(2026, 5, 1), time(9, 0), 2)) == "2026-05-01 09:00"


class TestBookingTransitions:
    """Tests for booking and payment status changes."""

    def test_pending_can_be_confirmed_and_paid(self):
        """Pending bookings move forward."""
        assert_booking_transition("pending", "confirmed")
        assert_payment_transition("pending", "paid")

    def test_terminal_states(self):
        """Confirmed and paid do not move again."""
        with pytest.raises(InvalidBookingStatus):
            assert_booking_transition("confirmed", "confirmed")
        with pytest.raises(InvalidBookingStatus):
            assert_payment_transition("paid", "paid")


class TestPayoutRules:
    """Tests for the payout trigger."""

    def test_created_settled_triggers(self):
        """A booking created paid and confirmed needs a payout."""
        after = BookingStatusSnapshot("confirmed", "paid")

        assert should_trigger_payout(None, after)

    def test_created_already_paid_out_does_not_trigger(self):
        """Wallet bookings pay the host at settlement."""
        after = BookingStatusSnapshot("confirmed", "paid", host_payout_status="paid")

        assert not should_trigger_payout(None, after)

    def test_created_pending_does_not_trigger(self):
        """Pending bookings wait."""
        assert not should_trigger_payout(None, BookingStatusSnapshot("pending", "pending"))

    def test_becoming_paid_triggers(self):
        """Confirmed then paid triggers on the payment write."""
        before = BookingStatusSnapshot("confirmed", "pending")
        after = BookingStatusSnapshot("confirmed", "paid")

        assert should_trigger_payout(before, after)

    def test_becoming_confirmed_triggers(self):
        """Paid then confirmed triggers on the confirmation write."""
        before = BookingStatusSnapshot("pending", "paid")
        after = BookingStatusSnapshot("confirmed", "paid")

        assert should_trigger_payout(before, after)

    def test_unrelated_write_does_not_retrigger(self):
        """A settled booking written again without a status change does not trigger."""
        settled = BookingStatusSnapshot("confirmed", "paid")

        assert not should_trigger_payout(settled, settled)

    def test_half_settled_does_not_trigger(self):
        """Paid but still pending confirmation waits."""
        before = BookingStatusSnapshot("pending", "pending")
        after = BookingStatusSnapshot("pending", "paid")

        assert not should_trigger_payout(before, after)

    def test_can_release_payout(self):
        """Release needs paid and confirmed."""
        assert can_release_payout("confirmed", "paid") == (True, None)
        assert not can_release_payout("pending", "paid")[0]
        assert not can_release_payout("confirmed", "pending")[0]

    def test_payout_amount(self):
        """The host gets the total minus the fee, never below zero."""
        assert compute_payout_amount(3300, 300) == 3000
        assert compute_payout_amount(0, 10) == 0


class TestCheckoutAttempt:
    """Tests for the checkout state machine."""

    def test_wallet_path(self):
        """Wallet checkouts go straight from quoted to settling."""
        attempt = CheckoutAttempt("guest-1")
        attempt.advance("settling")
        attempt.advance("committed")

        assert attempt.finished
        assert attempt.history == ["quoted", "settling", "committed"]

    def test_gateway_path(self):
        """Gateway checkouts wait for payment first."""
        attempt = CheckoutAttempt("guest-1")
        attempt.advance("awaiting_payment")
        attempt.advance("settling")
        attempt.advance("aborted")

        assert attempt.state == "aborted"

    def test_cannot_leave_terminal_state(self):
        """Committed attempts do not move."""
        attempt = CheckoutAttempt("guest-1")
        attempt.advance("settling")
        attempt.advance("committed")

        with pytest.raises(ValidationError):
            attempt.advance("aborted")

    def test_cannot_skip_settling(self):
        """Nothing commits without settling."""
        with pytest.raises(ValidationError):
            CheckoutAttempt("guest-1").advance("committed")


class TestBookingNumber:
    """Tests for booking number generation."""

    def test_format(self):
        """Numbers are BKF- plus six unambiguous characters."""
        for _ in range(50):
            assert re.fullmatch(r"BKF-[A-HJ-NP-Z2-9]{6}", random_booking_number())
