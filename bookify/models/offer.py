"""Offer catalog and redemption audit models."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from bookify.database import Base


class Offer(Base):
    """Host-published promo or coupon."""

    __tablename__ = "offers"
    __table_args__ = (
        Index("ix_offers_kind_code", "kind", "code", unique=True),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    kind: Mapped[str] = mapped_column(String(10), nullable=False)  # promo, coupon
    code: Mapped[str | None] = mapped_column(String(50))  # coupons only, upper-case
    host_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(200), default="")

    # Scope
    applies_to: Mapped[str] = mapped_column(String(10), default="all")  # all, selected
    listing_ids: Mapped[list] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"), default=list
    )

    # Window (inclusive, compared with check-in or schedule date)
    starts_at: Mapped[date | None] = mapped_column(Date)
    ends_at: Mapped[date | None] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(20), default="active")

    # Discount
    discount_type: Mapped[str] = mapped_column(
        String(20), default="percentage"
    )  # percentage, fixed
    discount_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    min_subtotal: Mapped[int | None] = mapped_column(Integer)
    max_discount: Mapped[int | None] = mapped_column(Integer)

    # Usage caps, counted from coupon_redemptions
    max_uses: Mapped[int | None] = mapped_column(Integer)
    per_user_limit: Mapped[int | None] = mapped_column(Integer)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def as_record(self) -> dict:
        return {
            "id": str(self.id),
            "kind": self.kind,
            "code": self.code,
            "host_id": self.host_id,
            "title": self.title,
            "applies_to": self.applies_to,
            "listing_ids": self.listing_ids or [],
            "starts_at": self.starts_at,
            "ends_at": self.ends_at,
            "status": self.status,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "min_subtotal": self.min_subtotal,
            "max_discount": self.max_discount,
            "max_uses": self.max_uses,
            "per_user_limit": self.per_user_limit,
        }


class CouponRedemption(Base):
    """Audit row written when a coupon discount was applied to a booking.

    Append-only. Usage counts are derived by counting these rows.
    """

    __tablename__ = "coupon_redemptions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    coupon_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("offers.id"), nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    guest_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id"), nullable=False, index=True
    )
    listing_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    host_id: Mapped[str] = mapped_column(String(128), nullable=False)
    discount: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
