"""Booking and payment status transitions.

A booking is created either confirmed and paid (wallet, completed capture)
or pending on both axes (pending capture). The only later changes are the
host confirming and the payment being marked paid.
"""

from bookify.core.exceptions import InvalidBookingStatus

BOOKING_TRANSITIONS = {
    "pending": {"confirmed"},
    "confirmed": set(),
}

PAYMENT_TRANSITIONS = {
    "pending": {"paid"},
    "paid": set(),
}


def assert_booking_transition(current: str, target: str) -> None:
    allowed = BOOKING_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidBookingStatus(
            f"Invalid booking transition: {current} → {target}"
        )


def assert_payment_transition(current: str, target: str) -> None:
    allowed = PAYMENT_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise InvalidBookingStatus(
            f"Invalid payment transition: {current} → {target}"
        )
