"""Host payout rules.

States:
- pending: Host not yet paid for this booking
- paid: Host wallet credited (terminal)
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class BookingStatusSnapshot:
    """The fields of a booking the payout trigger looks at."""

    status: str
    payment_status: str
    host_payout_status: str = "pending"

    @property
    def is_settled(self) -> bool:
        return self.status == "confirmed" and self.payment_status == "paid"


def can_release_payout(booking_status: str, payment_status: str) -> tuple[bool, str | None]:
    """Check if payout can be released based on booking/payment state.

    Args:
        booking_status: Current booking status
        payment_status: Current payment status

    Returns:
        Tuple of (can_release, error_message)
    """
    if payment_status != "paid":
        return False, "Cannot release payout - payment not completed"

    if booking_status != "confirmed":
        return False, f"Cannot release payout - booking status is {booking_status}"

    return True, None


def should_trigger_payout(
    before: BookingStatusSnapshot | None,
    after: BookingStatusSnapshot,
) -> bool:
    """Decide whether a booking write should enqueue the payout job.

    Args:
        before: Booking before the write, None when it was just created
        after: Booking after the write

    Returns:
        True when the booking just became paid and confirmed and the host
        has not been paid yet
    """
    if after.host_payout_status == "paid" or not after.is_settled:
        return False

    if before is None:
        return True

    became_paid = before.payment_status != "paid" and after.payment_status == "paid"
    became_confirmed = before.status != "confirmed" and after.status == "confirmed"
    return became_paid or became_confirmed


def compute_payout_amount(total: int, service_fee: int) -> int:
    return max(0, total - service_fee)
