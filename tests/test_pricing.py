"""Tests for the price calculator.

Run with: pytest tests/test_pricing.py -v
"""

import itertools
import uuid
from datetime import date
from decimal import Decimal

import pytest

from bookify.core.exceptions import OfferIneligible, ValidationError
from bookify.domain.offers import FixedOffer, PercentageOffer
from bookify.domain.pricing import (
    ListingDiscount,
    LoyaltyReward,
    ServiceFeeRates,
    calculate_price,
)

LISTING_ID = uuid.uuid4()
CHECK_IN = date(2026, 4, 1)


def price(**overrides):
    fields = dict(
        unit_price=1000,
        quantity=3,
        listing_discount=None,
        promos=[],
        coupon=None,
        reference_date=CHECK_IN,
        listing_id=LISTING_ID,
    )
    fields.update(overrides)
    return calculate_price(**fields)


class TestCalculatePrice:
    """Tests for calculate_price."""

    def test_no_discounts(self):
        """1000 x 3 nights with a 10% fee totals 3300."""
        breakdown = price()

        assert breakdown.raw_subtotal == 3000
        assert breakdown.subtotal == 3000
        assert breakdown.service_fee == 300
        assert breakdown.total == 3300
        assert breakdown.applied_offers() == []

    def test_listing_discount_then_promo(self):
        """Fixed 500 listing discount, then a 10% promo on what is left."""
        promo = PercentageOffer(id="p1", kind="promo", title="Ten off", percent=Decimal("10"))

        breakdown = price(listing_discount=ListingDiscount("fixed", Decimal("500")), promos=[promo])

        assert breakdown.listing_discount == 500
        assert breakdown.promo_discount == 250
        assert breakdown.coupon_discount == 0
        assert breakdown.subtotal == 2250
        assert breakdown.service_fee == 225
        assert breakdown.total == 2475
        assert breakdown.applied_promo.offer_id == "p1"
        assert breakdown.applied_promo.discount == 250

    def test_coupon_below_min_subtotal_is_ineligible(self):
        """A coupon needing 2000 raw spend fails on a 1500 booking."""
        coupon = FixedOffer(id="c1", kind="coupon", code="BIG", amount=200, min_subtotal=2000)

        with pytest.raises(OfferIneligible):
            price(unit_price=500, quantity=3, coupon=coupon)

    def test_stage_order(self):
        """Listing, promo, coupon and reward each work on what the previous left."""
        promo = PercentageOffer(id="p1", kind="promo", percent=Decimal("10"))
        coupon = FixedOffer(id="c1", kind="coupon", code="SAVE100", amount=100)
        reward = LoyaltyReward(id="r1", name="Five off", discount_type="percentage", value=Decimal("5"))

        breakdown = price(
            unit_price=1000,
            quantity=4,
            listing_discount=ListingDiscount("percentage", Decimal("10")),
            promos=[promo],
            coupon=coupon,
            reward=reward,
        )

        # 4000 -> 3600 -> 3240 -> 3140 -> 2983
        assert breakdown.listing_discount == 400
        assert breakdown.promo_discount == 360
        assert breakdown.coupon_discount == 100
        assert breakdown.reward_discount == 157
        assert breakdown.subtotal == 2983
        assert breakdown.service_fee == 298
        assert breakdown.total == 3281
        assert [o["kind"] for o in breakdown.applied_offers()] == ["promo", "coupon"]
        assert breakdown.applied_reward.reward_id == "r1"

    def test_promos_qualify_on_raw_subtotal(self):
        """A promo's minimum spend is checked before the listing discount."""
        promo = FixedOffer(id="p1", kind="promo", amount=100, min_subtotal=3000)

        breakdown = price(listing_discount=ListingDiscount("fixed", Decimal("500")), promos=[promo])

        assert breakdown.promo_discount == 100

    def test_ineligible_promos_are_skipped(self):
        """Out-of-window promos never apply."""
        expired = PercentageOffer(
            id="old", kind="promo", percent=Decimal("50"), ends_at=date(2026, 3, 1)
        )

        breakdown = price(promos=[expired])

        assert breakdown.promo_discount == 0
        assert breakdown.applied_promo is None

    def test_subtotal_never_negative(self):
        """Stacked fixed discounts bottom out at zero."""
        breakdown = price(
            listing_discount=ListingDiscount("fixed", Decimal("2500")),
            promos=[FixedOffer(id="p1", kind="promo", amount=400)],
            coupon=FixedOffer(id="c1", kind="coupon", code="ALL", amount=10_000),
        )

        assert breakdown.subtotal == 0
        assert breakdown.service_fee == 0
        assert breakdown.total == 0
        assert breakdown.coupon_discount == 100

    def test_category_fee(self):
        """Experiences pay 20%."""
        fee = ServiceFeeRates().for_category("experiences")

        breakdown = price(unit_price=500, quantity=2, service_fee_percent=fee)

        assert breakdown.service_fee == 200
        assert breakdown.total == 1200

    def test_invalid_quantity(self):
        """Zero nights or participants cannot be priced."""
        with pytest.raises(ValidationError):
            price(quantity=0)

    def test_negative_unit_price(self):
        """Negative prices are rejected."""
        with pytest.raises(ValidationError):
            price(unit_price=-1)


class TestPricingProperties:
    """Properties that hold for any mix of discounts."""

    def test_more_nights_never_cost_less(self):
        """Total is non-decreasing in quantity."""
        promo = PercentageOffer(id="p1", kind="promo", percent=Decimal("15"), max_discount=700)
        totals = [
            price(quantity=q, promos=[promo], listing_discount=ListingDiscount("fixed", Decimal("300"))).total
            for q in range(1, 15)
        ]

        assert totals == sorted(totals)

    def test_promo_order_does_not_matter(self):
        """The same promos in any order give the same price."""
        promos = [
            PercentageOffer(id="a", kind="promo", percent=Decimal("12")),
            FixedOffer(id="b", kind="promo", amount=350),
            PercentageOffer(id="c", kind="promo", percent=Decimal("5"), max_discount=100),
        ]

        totals = {price(promos=list(order)).total for order in itertools.permutations(promos)}

        assert totals == {2904}

    def test_discounts_sum_to_difference(self):
        """raw - subtotal is exactly the sum of the stage discounts."""
        breakdown = price(
            listing_discount=ListingDiscount("percentage", Decimal("7")),
            promos=[PercentageOffer(id="p", kind="promo", percent=Decimal("13"))],
            coupon=FixedOffer(id="c", kind="coupon", code="X", amount=77),
            reward=LoyaltyReward(id="r", name="R", discount_type="fixed", value=Decimal("50")),
        )

        discounts = (
            breakdown.listing_discount + breakdown.promo_discount
            + breakdown.coupon_discount + breakdown.reward_discount
        )
        assert breakdown.raw_subtotal - breakdown.subtotal == discounts
        assert breakdown.total == breakdown.subtotal + breakdown.service_fee


class TestServiceFeeRates:
    """Tests for category fee resolution."""

    def test_prefix_match(self):
        """Categories match by prefix."""
        rates = ServiceFeeRates()

        assert rates.for_category("Experience") == Decimal("20")
        assert rates.for_category("services") == Decimal("12")
        assert rates.for_category("homes") == Decimal("10")

    def test_unknown_category_is_home(self):
        """Unknown categories are charged as homes."""
        assert ServiceFeeRates().for_category(None) == Decimal("10")
