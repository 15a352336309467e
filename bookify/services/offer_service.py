"""Offer catalog: promos, coupons, redemption counts and loyalty rewards."""

import logging
import time
from collections.abc import Awaitable, Callable
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from bookify.config import settings
from bookify.core.exceptions import (
    InsufficientFunds,
    NotFoundError,
    OfferIneligible,
    SettlementAborted,
    ValidationError,
)
from bookify.database import SessionFactory, run_transaction
from bookify.domain.offers import (
    Offer,
    is_offer_eligible,
    normalize_code,
    normalize_offer,
    reward_expired,
    usage_allows,
)
from bookify.domain.pricing import LoyaltyReward
from bookify.models.offer import CouponRedemption
from bookify.models.offer import Offer as OfferRow
from bookify.models.reward import RedeemedReward, Reward
from bookify.services.ledger_service import ledger_service

logger = logging.getLogger(__name__)


class OfferService:
    """Offer catalog and loyalty reward operations."""

    async def list_active_promos(self, db: AsyncSession, host_id: str) -> list[Offer]:
        """Active promos published by a host, oldest first."""
        result = await db.execute(
            select(OfferRow)
            .where(
                OfferRow.kind == "promo",
                OfferRow.host_id == host_id,
                OfferRow.status == "active",
            )
            .order_by(OfferRow.created_at, OfferRow.id)
        )
        return [normalize_offer(row.as_record()) for row in result.scalars().all()]

    async def find_coupon_by_code(self, db: AsyncSession, code: str) -> Offer | None:
        """Look up a coupon by its code (trimmed, case-insensitive)."""
        normalized = normalize_code(code)
        if not normalized:
            return None
        result = await db.execute(
            select(OfferRow).where(OfferRow.kind == "coupon", OfferRow.code == normalized)
        )
        row = result.scalar_one_or_none()
        return normalize_offer(row.as_record()) if row else None

    async def count_redemptions(
        self,
        db: AsyncSession,
        coupon_id: str,
        guest_id: str,
    ) -> tuple[int, int]:
        """Count redemptions of a coupon globally and for one guest."""
        coupon_uuid = UUID(str(coupon_id))
        global_uses = await db.scalar(
            select(func.count(CouponRedemption.id)).where(CouponRedemption.coupon_id == coupon_uuid)
        )
        user_uses = await db.scalar(
            select(func.count(CouponRedemption.id)).where(
                CouponRedemption.coupon_id == coupon_uuid,
                CouponRedemption.guest_id == guest_id,
            )
        )
        return global_uses or 0, user_uses or 0

    async def validate_coupon(
        self,
        db: AsyncSession,
        code: str,
        listing_id: UUID,
        reference_date: date,
        raw_subtotal: int,
        guest_id: str,
    ) -> Offer:
        """Find a coupon and check it applies to this booking.

        Usage caps are checked here on a best-effort basis and again inside
        the settlement transaction.

        Raises:
            NotFoundError: No coupon with this code
            OfferIneligible: Coupon inactive, out of window or scope, below
                its minimum spend, or used up
        """
        coupon = await self.find_coupon_by_code(db, code)
        if coupon is None:
            raise NotFoundError("Coupon", normalize_code(code))

        if not is_offer_eligible(coupon, listing_id, reference_date, raw_subtotal):
            raise OfferIneligible()

        if coupon.max_uses is not None or coupon.per_user_limit is not None:
            global_uses, user_uses = await self.count_redemptions(db, coupon.id, guest_id)
            if not usage_allows(coupon, global_uses, user_uses):
                raise OfferIneligible("This coupon has reached its usage limit")

        return coupon

    async def get_reward(self, db: AsyncSession, reward_id: UUID, guest_id: str) -> LoyaltyReward:
        """Load an unused reward owned by the guest.

        Raises:
            NotFoundError: Reward missing or owned by someone else
            OfferIneligible: Reward already used or expired
        """
        row = await db.get(RedeemedReward, reward_id)
        if row is None or row.guest_id != guest_id:
            raise NotFoundError("Reward", str(reward_id))
        if row.used:
            raise OfferIneligible("This reward has already been used")
        if reward_expired(row.expires_at, datetime.now(UTC)):
            raise OfferIneligible("This reward has expired")
        return LoyaltyReward(
            id=str(row.id),
            name=row.name,
            discount_type=row.discount_type,
            value=row.discount_value,
        )

    # ==================== REWARD CATALOG ====================

    async def list_rewards(self, db: AsyncSession) -> list[Reward]:
        """Active catalog rewards, cheapest first."""
        result = await db.execute(
            select(Reward)
            .where(Reward.active.is_(True))
            .order_by(Reward.points_cost, Reward.name)
        )
        return list(result.scalars().all())

    async def create_reward(
        self,
        db: AsyncSession,
        name: str,
        points_cost: int,
        discount_type: str,
        discount_value: Decimal,
        expires_in_days: int | None = None,
        active: bool = True,
    ) -> Reward:
        """Add a reward to the catalog (admin).

        Raises:
            ValidationError: Cost, discount type or value out of range
        """
        if points_cost <= 0:
            raise ValidationError("Points cost must be positive")
        if discount_type not in ("percentage", "fixed"):
            raise ValidationError(f"Unknown discount type: {discount_type}")
        if discount_value <= 0 or (discount_type == "percentage" and discount_value > 100):
            raise ValidationError("Discount value out of range")

        reward = Reward(
            name=name,
            points_cost=points_cost,
            discount_type=discount_type,
            discount_value=discount_value,
            expires_in_days=expires_in_days,
            active=active,
        )
        db.add(reward)
        await db.flush()
        logger.info(f"Reward {reward.id} '{name}' added for {points_cost} points")
        return reward

    async def list_redeemed_rewards(self, db: AsyncSession, guest_id: str) -> list[RedeemedReward]:
        """A guest's claimed rewards, newest first."""
        result = await db.execute(
            select(RedeemedReward)
            .where(RedeemedReward.guest_id == guest_id)
            .order_by(RedeemedReward.created_at.desc())
        )
        return list(result.scalars().all())

    async def redeem_reward(
        self,
        guest_id: str,
        reward_id: UUID,
        session_factory: SessionFactory | None = None,
    ) -> RedeemedReward:
        """Spend points on a catalog reward.

        The points debit and the claimed reward are written in one
        transaction. The claimed reward copies the catalog's name and
        discount, so later catalog edits do not change it.

        Raises:
            NotFoundError: Reward missing or inactive
            InsufficientFunds: Points balance below the cost
            SettlementAborted: Points balance changed concurrently
        """

        async def _redeem(db: AsyncSession) -> RedeemedReward:
            points = await ledger_service.load_points(db, guest_id)
            reward = await db.get(Reward, reward_id)
            if reward is None or not reward.active:
                raise NotFoundError("Reward", str(reward_id))
            if points.balance < reward.points_cost:
                raise InsufficientFunds("Not enough points to redeem this reward")

            now = datetime.now(UTC)
            redeemed = RedeemedReward(
                guest_id=guest_id,
                reward_id=reward.id,
                name=reward.name,
                discount_type=reward.discount_type,
                discount_value=reward.discount_value,
                points_cost=reward.points_cost,
                expires_at=(
                    now + timedelta(days=reward.expires_in_days)
                    if reward.expires_in_days
                    else None
                ),
                created_at=now,
            )
            db.add(redeemed)
            await db.flush()
            ledger_service.post_points_entry(
                db, points, "reward_redeemed", -reward.points_cost,
                note=f"Redeemed reward: {reward.name}",
                meta={"reward_id": str(reward.id), "redeemed_reward_id": str(redeemed.id)},
            )
            return redeemed

        try:
            redeemed = await run_transaction(_redeem, session_factory)
        except (IntegrityError, StaleDataError) as e:
            logger.warning(f"Reward redemption for {guest_id} lost a concurrent write: {e}")
            raise SettlementAborted("Your points balance changed, please try again") from e
        logger.info(f"Guest {guest_id} redeemed reward {reward_id} for {redeemed.points_cost} points")
        return redeemed


PromoLoader = Callable[[AsyncSession, str], Awaitable[list[Offer]]]


class PromoCache:
    """Read-through cache of a host's active promos.

    Entries expire after ``ttl`` seconds. Call ``invalidate`` when a host
    edits their promos and ``refresh`` to reload eagerly.
    """

    def __init__(
        self,
        loader: PromoLoader,
        ttl: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._loader = loader
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, tuple[float, list[Offer]]] = {}

    async def get(self, db: AsyncSession, host_id: str) -> list[Offer]:
        entry = self._entries.get(host_id)
        if entry is not None and entry[0] > self._clock():
            return entry[1]
        return await self.refresh(db, host_id)

    async def refresh(self, db: AsyncSession, host_id: str) -> list[Offer]:
        promos = await self._loader(db, host_id)
        self._entries[host_id] = (self._clock() + self._ttl, promos)
        logger.debug(f"Promo cache refreshed for host {host_id}: {len(promos)} promos")
        return promos

    def invalidate(self, host_id: str | None = None) -> None:
        """Drop one host's entry, or everything when no host is given."""
        if host_id is None:
            self._entries.clear()
        else:
            self._entries.pop(host_id, None)


# Global service instances
offer_service = OfferService()
promo_cache = PromoCache(offer_service.list_active_promos, ttl=settings.promo_cache_ttl_seconds)
