"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Invalid input (missing dates, schedule or quantity)."""

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppException):
    """Authorization denied exception."""

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class OfferIneligible(AppException):
    """Promo, coupon or reward failed its eligibility check."""

    def __init__(self, detail: str = "This code isn't valid for your booking") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class CapacityConflict(AppException):
    """Nights or slot capacity already taken."""

    def __init__(
        self,
        detail: str = "The selected dates or time are no longer available. Please choose a different date or time.",
    ) -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class InsufficientFunds(AppException):
    """Guest wallet balance below the booking total."""

    def __init__(self, detail: str = "Your wallet balance is too low. Please top up your wallet.") -> None:
        super().__init__(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=detail)


class GatewayDeclined(AppException):
    """External payment gateway did not accept the order."""

    def __init__(self, detail: str = "Payment was not completed by the payment provider") -> None:
        super().__init__(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=detail)


class SettlementAborted(AppException):
    """Settlement transaction failed; nothing was committed."""

    def __init__(self, detail: str = "Booking could not be completed. Please try again.") -> None:
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)


class CaptureWithoutBooking(AppException):
    """Gateway captured the payment but the booking could not be committed."""

    def __init__(self, payment_reference: str | None, reason: str) -> None:
        self.payment_reference = payment_reference
        detail = (
            f"Your payment was received but the booking could not be completed ({reason}). "
            f"Please contact support with payment reference {payment_reference or 'unknown'}."
        )
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class CheckoutInProgress(AppException):
    """Another checkout attempt is still running for this guest."""

    def __init__(self, detail: str = "A booking attempt is already in progress") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class InvalidBookingStatus(AppException):
    """Invalid booking status for operation."""

    def __init__(self, detail: str = "This operation is not allowed for the current booking status") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

