"""Capacity checks and reservation for nights and scheduled slots.

``check`` is an advisory test used at quote time. ``load`` is the read half
of a reservation inside the settlement transaction: it reads every lock the
booking touches and fails with CapacityConflict when one is taken. The
returned claim's ``apply`` is the write half and must run after every other
read of the transaction.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, time
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bookify.core.exceptions import CapacityConflict, ValidationError
from bookify.domain.reservation import (
    NightRange,
    Reservation,
    SlotRequest,
    night_lock_key,
    slot_lock_key,
)
from bookify.models.booking import NightLock, SlotLock
from bookify.models.listing import Listing

logger = logging.getLogger(__name__)


class CapacityClaim(ABC):
    """Capacity read inside a transaction, ready to be written."""

    @abstractmethod
    def apply(self, db: AsyncSession, booking_id: UUID) -> None:
        """Stage the lock writes on the session."""

    @property
    @abstractmethod
    def keys(self) -> list[str]:
        """Lock ids, for logs and ledger metadata."""


@dataclass
class NightClaim(CapacityClaim):
    listing_id: UUID
    nights: list[date]

    def apply(self, db: AsyncSession, booking_id: UUID) -> None:
        db.add_all(
            NightLock(listing_id=self.listing_id, night=night, booking_id=booking_id)
            for night in self.nights
        )

    @property
    def keys(self) -> list[str]:
        return [night_lock_key(self.listing_id, n) for n in self.nights]


@dataclass
class SlotClaim(CapacityClaim):
    listing_id: UUID
    slot_date: date
    slot_time: time
    participants: int
    existing: SlotLock | None

    def apply(self, db: AsyncSession, booking_id: UUID) -> None:
        if self.existing is None:
            db.add(
                SlotLock(
                    listing_id=self.listing_id,
                    slot_date=self.slot_date,
                    slot_time=self.slot_time,
                    count=self.participants,
                    last_booking_id=booking_id,
                )
            )
        else:
            # Versioned update: fails if another booking bumped the slot first
            self.existing.count = self.existing.count + self.participants
            self.existing.last_booking_id = booking_id

    @property
    def keys(self) -> list[str]:
        return [slot_lock_key(self.listing_id, self.slot_date, self.slot_time)]


class AvailabilityGuard(ABC):
    """Capacity contract shared by quote and settlement."""

    @abstractmethod
    async def load(self, db: AsyncSession, listing: Listing, reservation: Reservation) -> CapacityClaim:
        """Read current capacity and return a claim.

        Raises:
            CapacityConflict: Requested capacity is no longer free
        """

    async def check(self, db: AsyncSession, listing: Listing, reservation: Reservation) -> bool:
        """Advisory availability check; may be stale by commit time."""
        try:
            await self.load(db, listing, reservation)
        except CapacityConflict:
            return False
        return True

    async def reserve(
        self,
        db: AsyncSession,
        listing: Listing,
        reservation: Reservation,
        booking_id: UUID,
    ) -> CapacityClaim:
        """Read then stage the writes in one step, for callers with no other reads."""
        claim = await self.load(db, listing, reservation)
        claim.apply(db, booking_id)
        return claim


class NightRangeGuard(AvailabilityGuard):
    """Stays: each night in ``[check_in, check_out)`` can be booked once."""

    async def load(self, db: AsyncSession, listing: Listing, reservation: Reservation) -> NightClaim:
        if not isinstance(reservation, NightRange):
            raise ValidationError("Check-in and check-out dates are required")

        nights = reservation.nights
        result = await db.execute(
            select(NightLock.night).where(
                NightLock.listing_id == listing.id,
                NightLock.night.in_(nights),
            )
        )
        taken = sorted(result.scalars().all())
        if taken:
            logger.info(
                f"Nights already booked for listing {listing.id}: "
                f"{', '.join(n.isoformat() for n in taken)}"
            )
            raise CapacityConflict()
        return NightClaim(listing_id=listing.id, nights=nights)


class SlotCountGuard(AvailabilityGuard):
    """Scheduled slots: participants per ``(date, time)`` up to max capacity."""

    async def load(self, db: AsyncSession, listing: Listing, reservation: Reservation) -> SlotClaim:
        if not isinstance(reservation, SlotRequest):
            raise ValidationError("A schedule date and time are required")

        existing = await db.get(
            SlotLock, (listing.id, reservation.slot_date, reservation.slot_time)
        )
        booked = existing.count if existing else 0
        if listing.max_capacity and booked + reservation.participants > listing.max_capacity:
            logger.info(
                f"Slot {slot_lock_key(listing.id, reservation.slot_date, reservation.slot_time)} "
                f"full: {booked} booked, {reservation.participants} requested, "
                f"capacity {listing.max_capacity}"
            )
            raise CapacityConflict()
        return SlotClaim(
            listing_id=listing.id,
            slot_date=reservation.slot_date,
            slot_time=reservation.slot_time,
            participants=reservation.participants,
            existing=existing,
        )


night_range_guard = NightRangeGuard()
slot_count_guard = SlotCountGuard()


def guard_for(listing: Listing) -> AvailabilityGuard:
    """Pick the guard matching how a listing is sold."""
    return slot_count_guard if listing.is_slot_based else night_range_guard
