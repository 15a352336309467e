"""Core utilities: exceptions, security and checkout guard."""

from bookify.core.checkout_guard import CheckoutGuard, checkout_guard, checkout_key
from bookify.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    CapacityConflict,
    CaptureWithoutBooking,
    CheckoutInProgress,
    GatewayDeclined,
    InsufficientFunds,
    InvalidBookingStatus,
    NotFoundError,
    OfferIneligible,
    SettlementAborted,
    ValidationError,
)
from bookify.core.security import create_access_token, verify_token

__all__ = [
    "CheckoutGuard",
    "checkout_guard",
    "checkout_key",
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "CapacityConflict",
    "CaptureWithoutBooking",
    "CheckoutInProgress",
    "GatewayDeclined",
    "InsufficientFunds",
    "InvalidBookingStatus",
    "NotFoundError",
    "OfferIneligible",
    "SettlementAborted",
    "ValidationError",
    "create_access_token",
    "verify_token",
]
