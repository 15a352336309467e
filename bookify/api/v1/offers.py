"""Offer and loyalty reward endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookify.api.deps import (
    CurrentUser,
    get_checkout_service,
    get_current_admin,
    get_current_host,
    get_current_user,
    get_db,
)
from bookify.core.exceptions import AuthorizationError
from bookify.domain.offers import offer_discount_amount
from bookify.schemas.offer import (
    CouponValidateRequest,
    CouponValidateResponse,
    RedeemedRewardResponse,
    RewardCreateRequest,
    RewardResponse,
)
from bookify.services.checkout_service import CheckoutService
from bookify.services.offer_service import offer_service

router = APIRouter()


@router.post("/coupons/validate", response_model=CouponValidateResponse)
async def validate_coupon(
    data: CouponValidateRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CouponValidateResponse:
    """Check a coupon code against a listing, date and subtotal.

    The discount shown is taken off the raw subtotal; the quote applies it
    after the listing discount and promo.
    """
    coupon = await offer_service.validate_coupon(
        db,
        data.code,
        data.listing_id,
        data.reference_date,
        data.raw_subtotal,
        current_user.id,
    )
    return CouponValidateResponse(
        offer_id=coupon.id,
        code=coupon.code or "",
        title=coupon.title,
        discount_type=coupon.discount_type,
        discount=offer_discount_amount(coupon, data.raw_subtotal),
    )


@router.post("/hosts/{host_id}/promos/invalidate", status_code=status.HTTP_204_NO_CONTENT)
async def invalidate_promos(
    host_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_host)],
    service: Annotated[CheckoutService, Depends(get_checkout_service)],
) -> None:
    """Drop a host's cached promos after they edit them.

    The cache is per process; other workers pick up the change when their
    entry expires.
    """
    if current_user.id != host_id and not current_user.is_admin:
        raise AuthorizationError("You can only refresh your own promos")
    service.promos.invalidate(host_id)


# ==================== REWARDS ====================


@router.get("/rewards", response_model=list[RewardResponse])
async def list_rewards(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[RewardResponse]:
    """List active rewards, cheapest first."""
    rewards = await offer_service.list_rewards(db)
    return [RewardResponse.model_validate(r) for r in rewards]


@router.post("/rewards", response_model=RewardResponse, status_code=status.HTTP_201_CREATED)
async def create_reward(
    data: RewardCreateRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> RewardResponse:
    """Add a reward to the catalog (admin)."""
    reward = await offer_service.create_reward(
        db,
        name=data.name,
        points_cost=data.points_cost,
        discount_type=data.discount_type,
        discount_value=data.discount_value,
        expires_in_days=data.expires_in_days,
        active=data.active,
    )
    return RewardResponse.model_validate(reward)


@router.get("/rewards/me", response_model=list[RedeemedRewardResponse])
async def list_my_rewards(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> list[RedeemedRewardResponse]:
    """List the rewards the caller has claimed."""
    rewards = await offer_service.list_redeemed_rewards(db, current_user.id)
    return [RedeemedRewardResponse.model_validate(r) for r in rewards]


@router.post(
    "/rewards/{reward_id}/redeem",
    response_model=RedeemedRewardResponse,
    status_code=status.HTTP_201_CREATED,
)
async def redeem_reward(
    reward_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[CheckoutService, Depends(get_checkout_service)],
) -> RedeemedRewardResponse:
    """Spend points on a reward; it can then be applied to one booking."""
    redeemed = await offer_service.redeem_reward(
        current_user.id, reward_id, session_factory=service.session_factory
    )
    return RedeemedRewardResponse.model_validate(redeemed)
