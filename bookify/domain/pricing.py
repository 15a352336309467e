"""Price calculation for a booking.

Discounts stack in a fixed order: listing, best promo, coupon, reward.
Each stage works on what the previous stage left and can never push the
subtotal below zero. The service fee is charged on top of the subtotal.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from bookify.core.exceptions import OfferIneligible, ValidationError
from bookify.domain.offers import (
    FixedOffer,
    Offer,
    PercentageOffer,
    best_offer,
    is_offer_eligible,
    offer_discount_amount,
    percent_of,
)


@dataclass(frozen=True)
class ListingDiscount:
    discount_type: str = "none"  # none, percentage, fixed
    value: Decimal = Decimal("0")

    def amount(self, raw_subtotal: int) -> int:
        if self.discount_type == "percentage":
            return percent_of(raw_subtotal, self.value)
        if self.discount_type == "fixed":
            return max(0, min(raw_subtotal, int(self.value)))
        return 0


@dataclass(frozen=True)
class LoyaltyReward:
    """A reward the guest claimed with points, applied as the last stage."""

    id: str
    name: str
    discount_type: str  # percentage, fixed
    value: Decimal

    def as_offer(self) -> Offer:
        if self.discount_type == "fixed":
            return FixedOffer(id=self.id, kind="promo", title=self.name, amount=max(0, int(self.value)))
        return PercentageOffer(id=self.id, kind="promo", title=self.name, percent=self.value)


@dataclass(frozen=True)
class AppliedPromo:
    offer_id: str
    title: str
    discount: int


@dataclass(frozen=True)
class AppliedCoupon:
    offer_id: str
    code: str
    title: str
    discount: int


@dataclass(frozen=True)
class AppliedReward:
    reward_id: str
    name: str
    discount: int


@dataclass(frozen=True)
class PriceBreakdown:
    quantity: int
    unit_price: int
    raw_subtotal: int
    listing_discount: int
    promo_discount: int
    coupon_discount: int
    reward_discount: int
    subtotal: int
    service_fee_percent: Decimal
    service_fee: int
    total: int
    currency: str
    applied_promo: AppliedPromo | None = None
    applied_coupon: AppliedCoupon | None = None
    applied_reward: AppliedReward | None = None

    def applied_offers(self) -> list[dict]:
        """Audit list persisted on the booking."""
        offers = []
        if self.applied_promo and self.promo_discount > 0:
            offers.append({
                "kind": "promo",
                "offer_id": self.applied_promo.offer_id,
                "code": None,
                "discount": self.promo_discount,
            })
        if self.applied_coupon and self.coupon_discount > 0:
            offers.append({
                "kind": "coupon",
                "offer_id": self.applied_coupon.offer_id,
                "code": self.applied_coupon.code,
                "discount": self.coupon_discount,
            })
        return offers


@dataclass(frozen=True)
class ServiceFeeRates:
    """Service fee percent per listing category."""

    homes: Decimal = Decimal("10")
    experiences: Decimal = Decimal("20")
    services: Decimal = Decimal("12")

    @classmethod
    def from_settings(cls, settings) -> "ServiceFeeRates":
        return cls(
            homes=settings.service_fee_percent_homes,
            experiences=settings.service_fee_percent_experiences,
            services=settings.service_fee_percent_services,
        )

    def for_category(self, category: str | None) -> Decimal:
        """Resolve by category prefix; anything unknown is charged as a home."""
        key = (category or "").strip().lower()
        if key.startswith("experience"):
            return self.experiences
        if key.startswith("service"):
            return self.services
        return self.homes


def calculate_price(
    unit_price: int,
    quantity: int,
    listing_discount: ListingDiscount | None,
    promos: Iterable[Offer],
    coupon: Offer | None,
    reference_date: date,
    listing_id: UUID | str,
    reward: LoyaltyReward | None = None,
    service_fee_percent: Decimal = Decimal("10"),
    currency: str = "PHP",
) -> PriceBreakdown:
    """Compute the price breakdown for a booking.

    Args:
        unit_price: Price per night or per participant
        quantity: Nights or participants
        listing_discount: Listing-level discount policy
        promos: Host promos (eligibility is checked here)
        coupon: Coupon the guest entered, if any
        reference_date: Check-in or scheduled date
        listing_id: Listing being booked
        reward: Loyalty reward to redeem, if any
        service_fee_percent: Category service fee percent
        currency: Currency code

    Returns:
        PriceBreakdown

    Raises:
        ValidationError: quantity below 1 or negative unit price
        OfferIneligible: coupon does not apply to this booking
    """
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    if unit_price < 0:
        raise ValidationError("Unit price cannot be negative")

    raw_subtotal = unit_price * quantity

    listing_amount = (listing_discount or ListingDiscount()).amount(raw_subtotal)
    after_listing = raw_subtotal - listing_amount

    eligible = [
        p for p in promos
        if is_offer_eligible(p, listing_id, reference_date, raw_subtotal)
    ]
    promo = best_offer(eligible, after_listing)
    promo_amount = offer_discount_amount(promo, after_listing) if promo else 0
    after_promo = after_listing - promo_amount

    coupon_amount = 0
    if coupon is not None:
        if not is_offer_eligible(coupon, listing_id, reference_date, raw_subtotal):
            raise OfferIneligible()
        coupon_amount = offer_discount_amount(coupon, after_promo)
    after_coupon = after_promo - coupon_amount

    reward_amount = offer_discount_amount(reward.as_offer(), after_coupon) if reward else 0
    subtotal = max(0, after_coupon - reward_amount)

    service_fee = percent_of(subtotal, service_fee_percent)

    return PriceBreakdown(
        quantity=quantity,
        unit_price=unit_price,
        raw_subtotal=raw_subtotal,
        listing_discount=listing_amount,
        promo_discount=promo_amount,
        coupon_discount=coupon_amount,
        reward_discount=reward_amount,
        subtotal=subtotal,
        service_fee_percent=Decimal(service_fee_percent),
        service_fee=service_fee,
        total=subtotal + service_fee,
        currency=currency,
        applied_promo=AppliedPromo(promo.id, promo.title, promo_amount) if promo else None,
        applied_coupon=(
            AppliedCoupon(coupon.id, coupon.code or "", coupon.title, coupon_amount)
            if coupon is not None else None
        ),
        applied_reward=AppliedReward(reward.id, reward.name, reward_amount) if reward else None,
    )
