"""Pydantic schemas for API validation."""

from bookify.schemas.booking import (
    BookingResponse,
    BookingStatusResponse,
    GatewayCaptureRequest,
    GatewayOrderRequest,
    GatewayOrderResponse,
    MarkPaidRequest,
    PriceBreakdownSchema,
    QuoteRequest,
    QuoteResponse,
    SettlementResponse,
    WalletCheckoutRequest,
)
from bookify.schemas.offer import (
    CouponValidateRequest,
    CouponValidateResponse,
    RedeemedRewardResponse,
    RewardCreateRequest,
    RewardResponse,
)
from bookify.schemas.wallet import (
    LedgerEntryResponse,
    PointsResponse,
    TopUpRequest,
    TransferRequest,
    WalletResponse,
    WithdrawRequest,
)

__all__ = [
    # Booking
    "QuoteRequest",
    "QuoteResponse",
    "PriceBreakdownSchema",
    "WalletCheckoutRequest",
    "GatewayOrderRequest",
    "GatewayOrderResponse",
    "GatewayCaptureRequest",
    "SettlementResponse",
    "BookingResponse",
    "BookingStatusResponse",
    "MarkPaidRequest",
    # Offer
    "CouponValidateRequest",
    "CouponValidateResponse",
    "RewardCreateRequest",
    "RewardResponse",
    "RedeemedRewardResponse",
    # Wallet
    "WalletResponse",
    "PointsResponse",
    "LedgerEntryResponse",
    "TopUpRequest",
    "WithdrawRequest",
    "TransferRequest",
]
