"""Manual payment gateway adapter for bank transfers."""

from bookify.gateways.base import (
    CaptureResult,
    GatewayType,
    OrderResult,
    PaymentGateway,
)


class ManualGateway(PaymentGateway):
    """Manual payment gateway for bank transfers.

    Orders always succeed, captures always stay pending until an admin marks
    the booking paid.
    """

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.MANUAL

    async def create_order(
        self,
        amount: int,
        currency: str,
        reference_id: str,
        description: str,
    ) -> OrderResult:
        """Create manual order (always succeeds)."""
        return OrderResult(
            success=True,
            order_ref=f"manual_{reference_id}",
            raw_response={
                "type": "bank_transfer",
                "status": "pending_verification",
                "amount": amount,
                "currency": currency,
                "instructions": "Please transfer to the Bookify bank account and upload the receipt",
            },
        )

    async def capture(self, order_ref: str) -> CaptureResult:
        """Manual transfers are verified by an admin later.

        The amount is unknown until the transfer is checked; the reference
        comes back out of the order ref.
        """
        return CaptureResult(
            status="pending",
            reference=order_ref,
            reference_id=order_ref.removeprefix("manual_"),
            error_message="Manual verification required by admin",
        )
