"""Checkout attempt state machine.

States:
- quoted: Price computed, capacity checked
- awaiting_payment: Gateway order created
- settling: Settlement transaction running
- committed: Booking and ledger effects written (terminal)
- aborted: Nothing written (terminal)
"""

from bookify.core.exceptions import ValidationError

CHECKOUT_TRANSITIONS = {
    "quoted": {"awaiting_payment", "settling", "aborted"},
    "awaiting_payment": {"settling", "aborted"},
    "settling": {"committed", "aborted"},
    "committed": set(),
    "aborted": set(),
}


def assert_checkout_transition(current: str, target: str) -> None:
    allowed = CHECKOUT_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise ValidationError(
            f"Invalid checkout transition: {current} → {target}"
        )


class CheckoutAttempt:
    """Tracks one guest checkout through its states."""

    def __init__(self, guest_id: str):
        self.guest_id = guest_id
        self.state = "quoted"
        self.history: list[str] = ["quoted"]

    def advance(self, target: str) -> None:
        assert_checkout_transition(self.state, target)
        self.state = target
        self.history.append(target)

    @property
    def finished(self) -> bool:
        return self.state in ("committed", "aborted")
