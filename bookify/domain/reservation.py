"""Capacity units a booking claims."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time, timedelta
from uuid import UUID

from bookify.core.exceptions import ValidationError


@dataclass(frozen=True)
class NightRange:
    """Nights ``[check_in, check_out)`` of a stay."""

    check_in: date
    check_out: date

    def __post_init__(self) -> None:
        if self.check_out <= self.check_in:
            raise ValidationError("Check-out must be after check-in")

    @property
    def nights(self) -> list[date]:
        count = (self.check_out - self.check_in).days
        return [self.check_in + timedelta(days=i) for i in range(count)]

    @property
    def quantity(self) -> int:
        return (self.check_out - self.check_in).days

    @property
    def reference_date(self) -> date:
        return self.check_in


@dataclass(frozen=True)
class SlotRequest:
    """Participants on one scheduled ``(date, time)`` slot."""

    slot_date: date
    slot_time: time
    participants: int

    def __post_init__(self) -> None:
        if self.participants < 1:
            raise ValidationError("At least one participant is required")

    @property
    def quantity(self) -> int:
        return self.participants

    @property
    def reference_date(self) -> date:
        return self.slot_date


Reservation = NightRange | SlotRequest


def night_lock_key(listing_id: UUID | str, night: date) -> str:
    """``<listing>_<yyyymmdd>``, used in logs and ledger metadata."""
    return f"{listing_id}_{night:%Y%m%d}"


def slot_lock_key(listing_id: UUID | str, slot_date: date, slot_time: time) -> str:
    """``<listing>_<yyyy-mm-dd>_<hhmm>``."""
    return f"{listing_id}_{slot_date.isoformat()}_{slot_time:%H%M}"


def describe_dates(reservation: Reservation) -> str:
    """First to last night for stays, date and time for slots."""
    if isinstance(reservation, NightRange):
        nights = reservation.nights
        return f"{nights[0].isoformat()} to {nights[-1].isoformat()}"
    return f"{reservation.slot_date.isoformat()} {reservation.slot_time:%H:%M}"


def stay_note(title: str, reservation: Reservation) -> str:
    """Ledger note describing what was booked."""
    return f"{title}: {describe_dates(reservation)}"
