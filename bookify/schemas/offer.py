"""Offer and loyalty reward Pydantic schemas."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CouponValidateRequest(BaseModel):
    """Schema for checking a coupon against a booking."""

    code: str = Field(..., min_length=1, max_length=50)
    listing_id: UUID
    reference_date: date
    raw_subtotal: int = Field(..., ge=0)


class CouponValidateResponse(BaseModel):
    """Schema for a valid coupon."""

    offer_id: str
    code: str
    title: str
    discount_type: str
    discount: int


class RewardCreateRequest(BaseModel):
    """Schema for adding a reward to the catalog."""

    name: str = Field(..., min_length=1, max_length=200)
    points_cost: int = Field(..., gt=0)
    discount_type: str = Field(default="percentage", pattern="^(percentage|fixed)$")
    discount_value: Decimal = Field(..., gt=0)
    expires_in_days: int | None = Field(None, gt=0)
    active: bool = True


class RewardResponse(BaseModel):
    """Schema for a catalog reward."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    points_cost: int
    discount_type: str
    discount_value: Decimal
    expires_in_days: int | None
    active: bool


class RedeemedRewardResponse(BaseModel):
    """Schema for a reward a guest claimed."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    reward_id: UUID | None
    name: str
    discount_type: str
    discount_value: Decimal
    points_cost: int
    expires_at: datetime | None
    used: bool
    used_at: datetime | None
    booking_id: UUID | None
    created_at: datetime | None
