"""Listing model."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from bookify.database import Base


class Listing(Base):
    """Bookable listing: a home, an experience or a service.

    Listing content is owned by the host application; this table carries the
    fields pricing and availability need.
    """

    __tablename__ = "listings"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    host_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(
        String(30), nullable=False, default="homes"
    )  # homes, experiences, services
    unit_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="per_night"
    )  # per_night, per_participant

    # Pricing (smallest currency unit)
    unit_price: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="PHP")

    # Max guests for stays, max participants per slot; 0 means unlimited
    max_capacity: Mapped[int] = mapped_column(Integer, default=0)

    # Listing-level discount
    discount_type: Mapped[str] = mapped_column(
        String(20), default="none"
    )  # none, percentage, fixed
    discount_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"))

    # Availability window (inclusive)
    available_from: Mapped[date | None] = mapped_column(Date)
    available_until: Mapped[date | None] = mapped_column(Date)

    status: Mapped[str] = mapped_column(String(20), default="active")  # active, inactive

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    @property
    def is_slot_based(self) -> bool:
        return self.unit_type == "per_participant"
