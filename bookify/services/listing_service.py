"""Listing lookups for pricing and availability."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from bookify.core.exceptions import NotFoundError, ValidationError
from bookify.domain.pricing import ListingDiscount
from bookify.domain.reservation import NightRange, Reservation, SlotRequest
from bookify.models.listing import Listing


class ListingService:
    """Read-only access to listings."""

    async def get_listing(self, db: AsyncSession, listing_id: UUID) -> Listing:
        """Get a bookable listing.

        Raises:
            NotFoundError: Listing missing or not active
        """
        listing = await db.get(Listing, listing_id)
        if listing is None or listing.status != "active":
            raise NotFoundError("Listing", str(listing_id))
        return listing

    def listing_discount(self, listing: Listing) -> ListingDiscount:
        return ListingDiscount(
            discount_type=listing.discount_type or "none",
            value=listing.discount_value or 0,
        )

    def validate_reservation(
        self,
        listing: Listing,
        reservation: Reservation,
        guests: int = 1,
    ) -> None:
        """Check the request fits the listing before anything is priced.

        Raises:
            ValidationError: Wrong reservation kind, too many guests or
                outside the availability window
        """
        if listing.is_slot_based and not isinstance(reservation, SlotRequest):
            raise ValidationError("Please select a schedule date and time")
        if not listing.is_slot_based and not isinstance(reservation, NightRange):
            raise ValidationError("Please select check-in and check-out dates")

        if isinstance(reservation, NightRange):
            if guests < 1:
                raise ValidationError("At least one guest is required")
            if listing.max_capacity and guests > listing.max_capacity:
                raise ValidationError(f"This listing allows at most {listing.max_capacity} guests")
            first, last = reservation.check_in, reservation.nights[-1]
        else:
            first = last = reservation.slot_date

        if listing.available_from and first < listing.available_from:
            raise ValidationError("Selected dates are outside the listing's availability")
        if listing.available_until and last > listing.available_until:
            raise ValidationError("Selected dates are outside the listing's availability")


# Global service instance
listing_service = ListingService()
