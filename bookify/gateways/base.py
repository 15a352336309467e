"""Base payment gateway interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only gateway communication.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class GatewayType(str, Enum):
    """Supported payment gateways."""

    PAYPAL = "paypal"
    MANUAL = "manual"


@dataclass
class OrderResult:
    """Result of creating a gateway order."""

    success: bool
    order_ref: str | None = None
    approval_url: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


@dataclass
class CaptureResult:
    """Result of capturing an order.

    ``status`` is ``completed`` when money moved and ``pending`` otherwise.
    ``amount``, ``currency`` and ``reference_id`` echo what the provider
    captured, so the caller can check the order pays for its booking; they
    are None when the provider does not report them.
    """

    status: str
    reference: str | None = None
    amount: int | None = None  # smallest currency unit
    currency: str | None = None
    reference_id: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None

    @property
    def completed(self) -> bool:
        return self.status == "completed"


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""
        pass

    @abstractmethod
    async def create_order(
        self,
        amount: int,
        currency: str,
        reference_id: str,
        description: str,
    ) -> OrderResult:
        """Create an order the guest approves with the provider.

        Args:
            amount: Amount in smallest currency unit (centavos)
            currency: Currency code (PHP)
            reference_id: Internal reference (checkout key)
            description: Order description

        Returns:
            OrderResult with the provider's order reference
        """
        pass

    @abstractmethod
    async def capture(self, order_ref: str) -> CaptureResult:
        """Capture an approved order.

        Args:
            order_ref: Provider order reference

        Returns:
            CaptureResult with completed or pending status
        """
        pass
