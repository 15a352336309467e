"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-03-02

Creates all initial tables for Bookify settlement:
- Listings
- Offers and coupon redemptions
- Reward catalog and redeemed rewards
- Bookings and capacity locks
- Wallet and points ledgers
"""

from typing import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""

    # ==================== LISTINGS ====================
    op.create_table(
        "listings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("host_id", sa.String(128), nullable=False, index=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("category", sa.String(30), nullable=False, server_default="homes"),
        sa.Column("unit_type", sa.String(20), nullable=False, server_default="per_night"),
        sa.Column("unit_price", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(3), server_default="PHP"),
        sa.Column("max_capacity", sa.Integer, server_default="0"),
        sa.Column("discount_type", sa.String(20), server_default="none"),
        sa.Column("discount_value", sa.Numeric(12, 2), server_default="0"),
        sa.Column("available_from", sa.Date),
        sa.Column("available_until", sa.Date),
        sa.Column("status", sa.String(20), server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
    )

    # ==================== OFFERS ====================
    op.create_table(
        "offers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("kind", sa.String(10), nullable=False),
        sa.Column("code", sa.String(50)),
        sa.Column("host_id", sa.String(128), nullable=False, index=True),
        sa.Column("title", sa.String(200), server_default=""),
        sa.Column("applies_to", sa.String(10), server_default="all"),
        sa.Column("listing_ids", postgresql.JSONB, server_default="[]"),
        sa.Column("starts_at", sa.Date),
        sa.Column("ends_at", sa.Date),
        sa.Column("status", sa.String(20), server_default="active"),
        sa.Column("discount_type", sa.String(20), server_default="percentage"),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("min_subtotal", sa.Integer),
        sa.Column("max_discount", sa.Integer),
        sa.Column("max_uses", sa.Integer),
        sa.Column("per_user_limit", sa.Integer),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_offers_kind_code", "offers", ["kind", "code"], unique=True)

    # ==================== REWARDS ====================
    op.create_table(
        "rewards",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("points_cost", sa.Integer, nullable=False),
        sa.Column("discount_type", sa.String(20), server_default="percentage"),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("active", sa.Boolean, server_default=sa.true()),
        sa.Column("expires_in_days", sa.Integer),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "redeemed_rewards",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("guest_id", sa.String(128), nullable=False, index=True),
        sa.Column("reward_id", postgresql.UUID(as_uuid=True)),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("discount_type", sa.String(20), server_default="percentage"),
        sa.Column("discount_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("points_cost", sa.Integer, server_default="0"),
        sa.Column("expires_at", sa.DateTime(timezone=True)),
        sa.Column("used", sa.Boolean, server_default=sa.false()),
        sa.Column("used_at", sa.DateTime(timezone=True)),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True)),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("booking_number", sa.String(20), unique=True, nullable=False, index=True),
        sa.Column("guest_id", sa.String(128), nullable=False, index=True),
        sa.Column("guest_email", sa.String(255)),
        sa.Column("guest_name", sa.String(200)),
        sa.Column("host_id", sa.String(128), nullable=False, index=True),
        sa.Column("listing_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("listings.id"), nullable=False, index=True),
        sa.Column("listing_title", sa.String(200), nullable=False),
        sa.Column("category", sa.String(30), nullable=False),
        sa.Column("check_in", sa.Date),
        sa.Column("check_out", sa.Date),
        sa.Column("schedule_date", sa.Date),
        sa.Column("schedule_time", sa.Time),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("guests", sa.Integer, server_default="1"),
        sa.Column("unit_price", sa.Integer, nullable=False),
        sa.Column("raw_subtotal", sa.Integer, nullable=False),
        sa.Column("listing_discount", sa.Integer, server_default="0"),
        sa.Column("promo_discount", sa.Integer, server_default="0"),
        sa.Column("coupon_discount", sa.Integer, server_default="0"),
        sa.Column("reward_discount", sa.Integer, server_default="0"),
        sa.Column("subtotal", sa.Integer, nullable=False),
        sa.Column("service_fee_percent", sa.Numeric(5, 2), nullable=False),
        sa.Column("service_fee", sa.Integer, nullable=False),
        sa.Column("total_price", sa.Integer, nullable=False),
        sa.Column("currency", sa.String(3), server_default="PHP"),
        sa.Column("applied_promo", postgresql.JSONB),
        sa.Column("applied_coupon", postgresql.JSONB),
        sa.Column("applied_reward", postgresql.JSONB),
        sa.Column("applied_offers", postgresql.JSONB, server_default="[]"),
        sa.Column("status", sa.String(20), server_default="pending", index=True),
        sa.Column("payment_status", sa.String(20), server_default="pending"),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("payment_reference", sa.String(100)),
        sa.Column("guest_points_awarded", sa.Integer, server_default="0"),
        sa.Column("host_points_awarded", sa.Integer, server_default="0"),
        sa.Column("platform_fee_credited", sa.Boolean, server_default=sa.false()),
        sa.Column("host_payout_status", sa.String(20), server_default="pending"),
        sa.Column("host_payout_amount", sa.Integer, server_default="0"),
        sa.Column("host_payout_at", sa.DateTime(timezone=True)),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "coupon_redemptions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("coupon_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("offers.id"), nullable=False, index=True),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("guest_id", sa.String(128), nullable=False, index=True),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bookings.id"), nullable=False, index=True),
        sa.Column("listing_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("host_id", sa.String(128), nullable=False),
        sa.Column("discount", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # ==================== CAPACITY LOCKS ====================
    op.create_table(
        "night_locks",
        sa.Column("listing_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("listings.id"), primary_key=True),
        sa.Column("night", sa.Date, primary_key=True),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("bookings.id"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "slot_locks",
        sa.Column("listing_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("listings.id"), primary_key=True),
        sa.Column("slot_date", sa.Date, primary_key=True),
        sa.Column("slot_time", sa.Time, primary_key=True),
        sa.Column("count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_booking_id", postgresql.UUID(as_uuid=True)),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
    )

    # ==================== LEDGERS ====================
    op.create_table(
        "wallet_accounts",
        sa.Column("account_id", sa.String(128), primary_key=True),
        sa.Column("balance", sa.Integer, nullable=False, server_default="0"),
        sa.Column("currency", sa.String(3), server_default="PHP"),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
    )

    op.create_table(
        "wallet_transactions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("account_id", sa.String(128), sa.ForeignKey("wallet_accounts.account_id"), nullable=False, index=True),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("delta", sa.Integer, nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), server_default="completed"),
        sa.Column("method", sa.String(20)),
        sa.Column("note", sa.Text),
        sa.Column("metadata", postgresql.JSONB, server_default="{}"),
        sa.Column("balance_after", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )

    op.create_table(
        "points_accounts",
        sa.Column("account_id", sa.String(128), primary_key=True),
        sa.Column("balance", sa.Integer, nullable=False, server_default="0"),
        sa.Column("version", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
    )

    op.create_table(
        "points_transactions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("account_id", sa.String(128), sa.ForeignKey("points_accounts.account_id"), nullable=False, index=True),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("delta", sa.Integer, nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), server_default="completed"),
        sa.Column("note", sa.Text),
        sa.Column("metadata", postgresql.JSONB, server_default="{}"),
        sa.Column("balance_after", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_table("points_transactions")
    op.drop_table("points_accounts")
    op.drop_table("wallet_transactions")
    op.drop_table("wallet_accounts")
    op.drop_table("slot_locks")
    op.drop_table("night_locks")
    op.drop_table("coupon_redemptions")
    op.drop_table("bookings")
    op.drop_table("redeemed_rewards")
    op.drop_table("rewards")
    op.drop_index("ix_offers_kind_code", table_name="offers")
    op.drop_table("offers")
    op.drop_table("listings")
