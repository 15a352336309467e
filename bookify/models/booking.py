"""Booking and capacity lock models."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Time,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from bookify.database import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Booking(Base):
    """Booking model.

    Created once by the settlement transaction with a full price snapshot.
    Afterwards only status, payment and payout fields change.
    """

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    booking_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )  # BKF-XXXXXX

    # Parties
    guest_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    guest_email: Mapped[str | None] = mapped_column(String(255))
    guest_name: Mapped[str | None] = mapped_column(String(200))
    host_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    # Listing
    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("listings.id"), nullable=False, index=True
    )
    listing_title: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(30), nullable=False)

    # Stay dates or scheduled slot
    check_in: Mapped[date | None] = mapped_column(Date)
    check_out: Mapped[date | None] = mapped_column(Date)
    schedule_date: Mapped[date | None] = mapped_column(Date)
    schedule_time: Mapped[time | None] = mapped_column(Time)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)  # nights or participants
    guests: Mapped[int] = mapped_column(Integer, default=1)

    # Price snapshot (smallest currency unit)
    unit_price: Mapped[int] = mapped_column(Integer, nullable=False)
    raw_subtotal: Mapped[int] = mapped_column(Integer, nullable=False)
    listing_discount: Mapped[int] = mapped_column(Integer, default=0)
    promo_discount: Mapped[int] = mapped_column(Integer, default=0)
    coupon_discount: Mapped[int] = mapped_column(Integer, default=0)
    reward_discount: Mapped[int] = mapped_column(Integer, default=0)
    subtotal: Mapped[int] = mapped_column(Integer, nullable=False)
    service_fee_percent: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    service_fee: Mapped[int] = mapped_column(Integer, nullable=False)
    total_price: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="PHP")

    # Applied offers: {offer_id, title, discount} / {offer_id, code, title, discount}
    applied_promo: Mapped[dict | None] = mapped_column(JSONType)
    applied_coupon: Mapped[dict | None] = mapped_column(JSONType)
    applied_reward: Mapped[dict | None] = mapped_column(JSONType)
    applied_offers: Mapped[list] = mapped_column(JSONType, default=list)

    # Status
    status: Mapped[str] = mapped_column(
        String(20), default="pending", index=True
    )  # pending, confirmed
    payment_status: Mapped[str] = mapped_column(
        String(20), default="pending"
    )  # pending, paid
    payment_method: Mapped[str] = mapped_column(
        String(20), nullable=False
    )  # wallet, card_gateway
    payment_reference: Mapped[str | None] = mapped_column(String(100))

    # Ledger effects applied at settlement
    guest_points_awarded: Mapped[int] = mapped_column(Integer, default=0)
    host_points_awarded: Mapped[int] = mapped_column(Integer, default=0)
    platform_fee_credited: Mapped[bool] = mapped_column(Boolean, default=False)

    # Host payout marker
    host_payout_status: Mapped[str] = mapped_column(
        String(20), default="pending"
    )  # pending, paid
    host_payout_amount: Mapped[int] = mapped_column(Integer, default=0)
    host_payout_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __mapper_args__ = {"version_id_col": version, "eager_defaults": True}


class NightLock(Base):
    """One booked night of a listing. Existence means occupied.

    Never deleted. The primary key makes a second booking of the same night
    fail on insert.
    """

    __tablename__ = "night_locks"

    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("listings.id"), primary_key=True
    )
    night: Mapped[date] = mapped_column(Date, primary_key=True)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )


class SlotLock(Base):
    """Running participant count for one scheduled slot. Only incremented."""

    __tablename__ = "slot_locks"

    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("listings.id"), primary_key=True
    )
    slot_date: Mapped[date] = mapped_column(Date, primary_key=True)
    slot_time: Mapped[time] = mapped_column(Time, primary_key=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_booking_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __mapper_args__ = {"version_id_col": version}
