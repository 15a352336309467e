"""Payment gateway service.

Routes order and capture calls to the appropriate gateway adapter.
No business logic here - only gateway coordination.
"""

import logging

from bookify.config import settings
from bookify.core.exceptions import GatewayDeclined, ValidationError
from bookify.gateways.base import (
    CaptureResult,
    GatewayType,
    OrderResult,
    PaymentGateway,
)
from bookify.gateways.manual import ManualGateway
from bookify.gateways.paypal import PayPalGateway

logger = logging.getLogger(__name__)


class GatewayService:
    """Service for managing payment gateway operations."""

    def __init__(self):
        self._gateways: dict[GatewayType, PaymentGateway] = {}

    def register(self, gateway: PaymentGateway) -> None:
        """Install an adapter instance (tests use this to inject fakes)."""
        self._gateways[gateway.gateway_type] = gateway

    def _get_gateway(self, gateway_type: str | GatewayType) -> PaymentGateway:
        """Get or create gateway instance.

        Raises:
            ValidationError: Unknown gateway name
            GatewayDeclined: PayPal requested without credentials
        """
        if isinstance(gateway_type, str):
            try:
                gateway_type = GatewayType(gateway_type)
            except ValueError:
                raise ValidationError(f"Unknown payment gateway: {gateway_type}") from None

        if gateway_type not in self._gateways:
            if gateway_type == GatewayType.PAYPAL:
                if not (settings.paypal_client_id and settings.paypal_client_secret):
                    logger.error("PayPal payment requested but PayPal credentials are not configured")
                    raise GatewayDeclined("Card payments are not available right now")
                self._gateways[gateway_type] = PayPalGateway()
            else:
                self._gateways[gateway_type] = ManualGateway()

        return self._gateways[gateway_type]

    async def create_order(
        self,
        gateway_type: str | GatewayType,
        amount: int,
        currency: str,
        reference_id: str,
        description: str,
    ) -> OrderResult:
        """Create order via specified gateway."""
        gateway = self._get_gateway(gateway_type)
        result = await gateway.create_order(
            amount=amount,
            currency=currency,
            reference_id=reference_id,
            description=description,
        )
        logger.info(
            f"{gateway.gateway_type.value} order for {reference_id}: "
            f"success={result.success} ref={result.order_ref}"
        )
        return result

    async def capture(
        self,
        gateway_type: str | GatewayType,
        order_ref: str,
    ) -> CaptureResult:
        """Capture order via specified gateway."""
        gateway = self._get_gateway(gateway_type)
        result = await gateway.capture(order_ref)
        logger.info(
            f"{gateway.gateway_type.value} capture for {order_ref}: "
            f"status={result.status} ref={result.reference}"
        )
        return result


# Global service instance
gateway_service = GatewayService()
