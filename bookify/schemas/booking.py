"""Booking and checkout Pydantic schemas."""

from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class CheckoutBase(BaseModel):
    """What the guest selected on the listing page."""

    listing_id: UUID
    check_in: date | None = None
    check_out: date | None = None
    schedule_date: date | None = None
    schedule_time: time | None = None
    guests: int = Field(default=1, ge=1, le=50)
    participants: int = Field(default=1, ge=1, le=100)
    coupon_code: str | None = Field(None, max_length=50)
    reward_id: UUID | None = None

    @field_validator("check_out")
    @classmethod
    def validate_checkout(cls, v: date | None, info) -> date | None:
        check_in = info.data.get("check_in")
        if v is not None and check_in and v <= check_in:
            raise ValueError("check_out must be after check_in")
        return v

    @model_validator(mode="after")
    def validate_dates_or_schedule(self) -> "CheckoutBase":
        has_stay = self.check_in is not None and self.check_out is not None
        has_slot = self.schedule_date is not None and self.schedule_time is not None
        if not has_stay and not has_slot:
            raise ValueError("Either check_in/check_out or schedule_date/schedule_time is required")
        return self


class QuoteRequest(CheckoutBase):
    """Schema for a price quote."""


class WalletCheckoutRequest(CheckoutBase):
    """Schema for booking paid from the guest wallet."""


class GatewayOrderRequest(CheckoutBase):
    """Schema for opening a gateway order."""

    gateway: str = Field(default="paypal", pattern="^(paypal|manual)$")


class GatewayCaptureRequest(CheckoutBase):
    """Schema for capturing an approved gateway order."""

    gateway: str = Field(default="paypal", pattern="^(paypal|manual)$")
    order_ref: str = Field(..., min_length=1, max_length=100)


class AppliedPromoSchema(BaseModel):
    offer_id: str
    title: str
    discount: int


class AppliedCouponSchema(BaseModel):
    offer_id: str
    code: str
    title: str
    discount: int


class AppliedRewardSchema(BaseModel):
    reward_id: str
    name: str
    discount: int


class PriceBreakdownSchema(BaseModel):
    """Schema for a price breakdown (amounts in centavos)."""

    model_config = ConfigDict(from_attributes=True)

    quantity: int
    unit_price: int
    raw_subtotal: int
    listing_discount: int
    applied_promo: AppliedPromoSchema | None = None
    promo_discount: int
    applied_coupon: AppliedCouponSchema | None = None
    coupon_discount: int
    applied_reward: AppliedRewardSchema | None = None
    reward_discount: int
    subtotal: int
    service_fee_percent: Decimal
    service_fee: int
    total: int
    currency: str


class QuoteResponse(BaseModel):
    """Schema for a quote."""

    listing_id: UUID
    available: bool
    breakdown: PriceBreakdownSchema


class GatewayOrderResponse(BaseModel):
    """Schema for a created gateway order."""

    gateway: str
    order_ref: str
    approval_url: str | None = None
    breakdown: PriceBreakdownSchema


class SettlementResponse(BaseModel):
    """Schema for a committed booking."""

    model_config = ConfigDict(from_attributes=True)

    booking_id: UUID
    booking_number: str
    status: str
    payment_status: str
    total: int
    subtotal: int
    service_fee: int
    currency: str
    host_payout_amount: int
    guest_points_awarded: int
    host_points_awarded: int
    guest_balance_after: int | None = None
    host_balance_after: int | None = None


class MarkPaidRequest(BaseModel):
    payment_reference: str | None = Field(None, max_length=100)


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_number: str
    listing_id: UUID
    listing_title: str
    category: str
    guest_id: str
    host_id: str

    # Dates
    check_in: date | None
    check_out: date | None
    schedule_date: date | None
    schedule_time: time | None
    quantity: int
    guests: int

    # Pricing
    unit_price: int
    raw_subtotal: int
    listing_discount: int
    promo_discount: int
    coupon_discount: int
    reward_discount: int
    subtotal: int
    service_fee_percent: Decimal
    service_fee: int
    total_price: int
    currency: str
    applied_offers: list[dict]

    # Status
    status: str
    payment_status: str
    payment_method: str
    payment_reference: str | None

    # Payout
    host_payout_status: str
    host_payout_amount: int
    host_payout_at: datetime | None

    created_at: datetime
    confirmed_at: datetime | None


class BookingStatusResponse(BaseModel):
    """Schema for a status transition."""

    booking: BookingResponse
    payout_queued: bool
