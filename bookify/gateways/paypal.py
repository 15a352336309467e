"""PayPal payment gateway adapter.

PayPal Orders v2 REST API over httpx.
Documentation: https://developer.paypal.com/docs/api/orders/v2/
"""

import logging
from decimal import Decimal

import httpx

from bookify.config import settings
from bookify.gateways.base import (
    CaptureResult,
    GatewayType,
    OrderResult,
    PaymentGateway,
)

logger = logging.getLogger(__name__)


def to_major_units(amount: int) -> str:
    """PayPal expects decimal strings, e.g. 247500 -> '2475.00'."""
    return f"{Decimal(amount) / 100:.2f}"


def to_minor_units(value: str) -> int:
    """Inverse of ``to_major_units``: '2475.00' -> 247500."""
    return int((Decimal(value) * 100).quantize(Decimal("1")))


class PayPalGateway(PaymentGateway):
    """PayPal payment gateway implementation."""

    def __init__(self, client: httpx.AsyncClient | None = None):
        self.client_id = settings.paypal_client_id
        self.client_secret = settings.paypal_client_secret
        self.sandbox = settings.paypal_sandbox

        # Environment safety: force sandbox in non-production
        if settings.environment != "production":
            self.sandbox = True

        self.base_url = (
            "https://api-m.sandbox.paypal.com"
            if self.sandbox
            else "https://api-m.paypal.com"
        )
        self._client = client

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.PAYPAL

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=30.0)
        return self._client

    async def _access_token(self) -> str:
        response = await self.client.post(
            "/v1/oauth2/token",
            auth=(self.client_id or "", self.client_secret or ""),
            data={"grant_type": "client_credentials"},
        )
        response.raise_for_status()
        return response.json()["access_token"]

    async def _headers(self) -> dict[str, str]:
        token = await self._access_token()
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    async def create_order(
        self,
        amount: int,
        currency: str,
        reference_id: str,
        description: str,
    ) -> OrderResult:
        """Create a PayPal order with intent CAPTURE."""
        if not self.client_id or not self.client_secret:
            return OrderResult(
                success=False,
                error_message="PayPal credentials not configured",
            )

        payload = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "reference_id": reference_id[:256],
                    "description": description[:127],
                    "amount": {
                        "currency_code": currency,
                        "value": to_major_units(amount),
                    },
                }
            ],
        }

        try:
            response = await self.client.post(
                "/v2/checkout/orders", headers=await self._headers(), json=payload
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"PayPal order creation failed for {reference_id}: {e}")
            return OrderResult(success=False, error_message=str(e))

        data = response.json()
        approval_url = next(
            (link["href"] for link in data.get("links", []) if link.get("rel") in ("approve", "payer-action")),
            None,
        )
        return OrderResult(
            success=True,
            order_ref=data["id"],
            approval_url=approval_url,
            raw_response=data,
        )

    async def capture(self, order_ref: str) -> CaptureResult:
        """Capture an approved PayPal order.

        Only a ``COMPLETED`` capture counts as paid. Anything else, including
        errors, is reported as pending so no ledger effects are applied.
        """
        try:
            response = await self.client.post(
                f"/v2/checkout/orders/{order_ref}/capture", headers=await self._headers()
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"PayPal capture failed for order {order_ref}: {e}")
            return CaptureResult(status="pending", reference=order_ref, error_message=str(e))

        data = response.json()
        units = data.get("purchase_units", [])
        captures = [
            capture
            for unit in units
            for capture in unit.get("payments", {}).get("captures", [])
        ]
        capture_id = captures[0]["id"] if captures else order_ref
        completed = bool(captures) and data.get("status") == "COMPLETED" and all(
            c.get("status") == "COMPLETED" for c in captures
        )

        amount = currency = None
        if captures and "amount" in captures[0]:
            amount = sum(to_minor_units(c["amount"]["value"]) for c in captures)
            currency = captures[0]["amount"].get("currency_code")

        return CaptureResult(
            status="completed" if completed else "pending",
            reference=capture_id,
            amount=amount,
            currency=currency,
            reference_id=units[0].get("reference_id") if units else None,
            raw_response=data,
        )
