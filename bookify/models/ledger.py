"""Wallet and loyalty points ledgers.

Each account holds a balance and an append-only list of entries. The balance
always equals the sum of entry deltas; an entry and the balance it produces
are written in the same transaction.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from bookify.database import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _now() -> datetime:
    # Entries are ordered by this; microsecond precision on every backend
    return datetime.now(UTC)


class WalletAccount(Base):
    """Money balance of a guest, a host or the platform account."""

    __tablename__ = "wallet_accounts"

    account_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(String(3), default="PHP")
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __mapper_args__ = {"version_id_col": version}


class WalletTransaction(Base):
    """Wallet ledger entry. Immutable once written."""

    __tablename__ = "wallet_transactions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    account_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("wallet_accounts.account_id"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(
        String(30), nullable=False
    )  # booking_payment, booking_income, service_fee, host_payout, topup
    delta: Mapped[int] = mapped_column(Integer, nullable=False)  # signed
    amount: Mapped[int] = mapped_column(Integer, nullable=False)  # abs(delta)
    status: Mapped[str] = mapped_column(String(20), default="completed")
    method: Mapped[str | None] = mapped_column(String(20))  # wallet, card_gateway, system
    note: Mapped[str | None] = mapped_column(Text)
    meta: Mapped[dict] = mapped_column("metadata", JSONType, default=dict)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, index=True
    )

    account: Mapped[WalletAccount] = relationship()


class PointsAccount(Base):
    """Loyalty points balance."""

    __tablename__ = "points_accounts"

    account_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __mapper_args__ = {"version_id_col": version}


class PointsTransaction(Base):
    """Points ledger entry. Immutable once written."""

    __tablename__ = "points_transactions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    account_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("points_accounts.account_id"), nullable=False, index=True
    )
    type: Mapped[str] = mapped_column(
        String(30), nullable=False
    )  # booking_reward, host_booking_reward, reward_redemption
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="completed")
    note: Mapped[str | None] = mapped_column(Text)
    meta: Mapped[dict] = mapped_column("metadata", JSONType, default=dict)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_now, index=True
    )

    account: Mapped[PointsAccount] = relationship()
