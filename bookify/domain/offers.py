"""Offer evaluation: promos and coupons.

Offers are host-published discounts. Promos are auto-applied (best one wins),
coupons are entered by the guest by code. Both come in two shapes,
percentage and fixed, modelled as separate variants.

All amounts are integer minor units (centavos).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Union
from uuid import UUID

from bookify.core.exceptions import ValidationError

OFFER_KINDS = ("promo", "coupon")


@dataclass(frozen=True)
class _OfferBase:
    id: str
    kind: str  # promo, coupon
    host_id: str | None = None
    title: str = ""
    code: str | None = None
    applies_to: str = "all"  # all, selected
    listing_ids: tuple[str, ...] = ()
    starts_at: date | None = None
    ends_at: date | None = None
    status: str = "active"
    min_subtotal: int | None = None
    max_discount: int | None = None
    max_uses: int | None = None
    per_user_limit: int | None = None


@dataclass(frozen=True)
class PercentageOffer(_OfferBase):
    percent: Decimal = Decimal("0")

    @property
    def discount_type(self) -> str:
        return "percentage"


@dataclass(frozen=True)
class FixedOffer(_OfferBase):
    amount: int = 0

    @property
    def discount_type(self) -> str:
        return "fixed"


Offer = Union[PercentageOffer, FixedOffer]


def percent_of(base: int, percent: Decimal | int | float) -> int:
    """``base * percent / 100`` rounded half-up to a whole minor unit.

    The percent is clamped to [0, 100].
    """
    pct = min(max(Decimal(str(percent)), Decimal("0")), Decimal("100"))
    return int((Decimal(base) * pct / Decimal("100")).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _to_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError:
            raise ValidationError(f"Invalid offer date: {value!r}")
    raise ValidationError(f"Invalid offer date: {value!r}")


def _to_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(Decimal(str(value)))


def normalize_code(code: str | None) -> str | None:
    """Coupon codes are matched trimmed and upper-cased."""
    if code is None:
        return None
    code = code.strip().upper()
    return code or None


def normalize_offer(raw: Mapping[str, Any]) -> Offer:
    """Build a typed offer from a loose record.

    Args:
        raw: Offer fields as stored or submitted. Missing ``discount_type``
            means percentage, missing ``status`` means active and a missing
            scope means ``all`` unless listing ids are given.

    Returns:
        PercentageOffer or FixedOffer

    Raises:
        ValidationError: Unknown kind or discount type
    """
    kind = raw.get("kind") or ("coupon" if raw.get("code") else "promo")
    if kind not in OFFER_KINDS:
        raise ValidationError(f"Unknown offer kind: {kind}")

    listing_ids = tuple(str(lid) for lid in (raw.get("listing_ids") or ()))
    applies_to = raw.get("applies_to") or ("selected" if listing_ids else "all")

    common = dict(
        id=str(raw.get("id") or ""),
        kind=kind,
        host_id=str(raw["host_id"]) if raw.get("host_id") is not None else None,
        title=raw.get("title") or "",
        code=normalize_code(raw.get("code")),
        applies_to=applies_to,
        listing_ids=listing_ids,
        starts_at=_to_date(raw.get("starts_at")),
        ends_at=_to_date(raw.get("ends_at")),
        status=raw.get("status") or "active",
        min_subtotal=_to_int(raw.get("min_subtotal")),
        max_discount=_to_int(raw.get("max_discount")),
        max_uses=_to_int(raw.get("max_uses")),
        per_user_limit=_to_int(raw.get("per_user_limit")),
    )

    discount_type = raw.get("discount_type") or "percentage"
    value = raw.get("discount_value") or 0
    if discount_type == "percentage":
        return PercentageOffer(percent=Decimal(str(value)), **common)
    if discount_type == "fixed":
        return FixedOffer(amount=max(0, int(Decimal(str(value)))), **common)
    raise ValidationError(f"Unknown discount type: {discount_type}")


def is_offer_eligible(
    offer: Offer,
    listing_id: UUID | str,
    reference_date: date,
    qualifying_subtotal: int,
) -> bool:
    """Check whether an offer applies to a booking.

    The qualifying subtotal is the raw pre-discount subtotal, not what is
    left after earlier stages.
    """
    if offer.status != "active":
        return False
    if offer.starts_at is not None and reference_date < offer.starts_at:
        return False
    if offer.ends_at is not None and reference_date > offer.ends_at:
        return False
    if offer.applies_to != "all" and str(listing_id) not in offer.listing_ids:
        return False
    if offer.min_subtotal is not None and qualifying_subtotal < offer.min_subtotal:
        return False
    return True


def usage_allows(offer: Offer, global_uses: int, user_uses: int) -> bool:
    """Check usage caps against counted redemptions."""
    if offer.max_uses is not None and global_uses >= offer.max_uses:
        return False
    if offer.per_user_limit is not None and user_uses >= offer.per_user_limit:
        return False
    return True


def offer_discount_amount(offer: Offer, base: int) -> int:
    """Discount an offer takes off ``base``.

    Never negative and never above ``base``.
    """
    if base <= 0:
        return 0
    if isinstance(offer, PercentageOffer):
        discount = percent_of(base, offer.percent)
    else:
        discount = min(base, offer.amount)
    if offer.max_discount is not None:
        discount = min(discount, max(0, offer.max_discount))
    return max(0, min(discount, base))


def best_offer(offers: Iterable[Offer], base: int) -> Offer | None:
    """Pick the offer with the largest discount on ``base``.

    Ties keep the first one seen. Callers filter for eligibility first.
    """
    best: Offer | None = None
    best_amount = -1
    for offer in offers:
        amount = offer_discount_amount(offer, base)
        if amount > best_amount:
            best, best_amount = offer, amount
    return best


def reward_expired(expires_at: datetime | None, now: datetime) -> bool:
    """Whether a claimed reward is past its expiry.

    Naive timestamps are read as UTC; some backends drop the offset.
    """
    if expires_at is None:
        return False
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    return now >= expires_at
