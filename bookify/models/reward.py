"""Loyalty reward catalog and redeemed rewards."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from bookify.database import Base


def _now() -> datetime:
    return datetime.now(UTC)


class Reward(Base):
    """A reward guests can claim with loyalty points."""

    __tablename__ = "rewards"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    points_cost: Mapped[int] = mapped_column(Integer, nullable=False)
    discount_type: Mapped[str] = mapped_column(
        String(20), default="percentage"
    )  # percentage, fixed
    discount_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    expires_in_days: Mapped[int | None] = mapped_column(Integer)  # None: never expires

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now
    )


class RedeemedReward(Base):
    """A reward a guest claimed with points. Applies to one booking."""

    __tablename__ = "redeemed_rewards"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    guest_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    reward_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    discount_type: Mapped[str] = mapped_column(
        String(20), default="percentage"
    )  # percentage, fixed
    discount_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    points_cost: Mapped[int] = mapped_column(Integer, default=0)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    used: Mapped[bool] = mapped_column(Boolean, default=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    booking_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now
    )

    __mapper_args__ = {"version_id_col": version}
