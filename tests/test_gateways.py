"""Tests for payment gateway adapters and gateway selection.

Run with: pytest tests/test_gateways.py -v
"""

import httpx
import pytest

from bookify.config import settings
from bookify.core.exceptions import GatewayDeclined, ValidationError
from bookify.gateways.base import GatewayType
from bookify.gateways.manual import ManualGateway
from bookify.gateways.paypal import PayPalGateway, to_major_units, to_minor_units
from bookify.services.gateway_service import GatewayService


def paypal_with(capture_body: dict) -> PayPalGateway:
    """PayPal adapter whose HTTP calls are answered locally."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/v1/oauth2/token":
            return httpx.Response(200, json={"access_token": "token"})
        if request.url.path.endswith("/capture"):
            return httpx.Response(201, json=capture_body)
        return httpx.Response(404)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="https://paypal.test")
    return PayPalGateway(client=client)


def capture_body(status="COMPLETED", value="33.00", currency="PHP", reference_id="ref-1") -> dict:
    return {
        "id": "ORDER-1",
        "status": status,
        "purchase_units": [
            {
                "reference_id": reference_id,
                "payments": {
                    "captures": [
                        {
                            "id": "CAP-1",
                            "status": status,
                            "amount": {"currency_code": currency, "value": value},
                        }
                    ]
                },
            }
        ],
    }


class TestAmounts:
    """Tests for PayPal amount conversion."""

    def test_major_units(self):
        """Minor units become two-decimal strings."""
        assert to_major_units(247500) == "2475.00"
        assert to_major_units(5) == "0.05"

    def test_minor_units(self):
        """Decimal strings become minor units."""
        assert to_minor_units("2475.00") == 247500
        assert to_minor_units("0.05") == 5


class TestPayPalCapture:
    """Tests for reading a PayPal capture response."""

    async def test_completed_capture_reports_order(self):
        """A completed capture reports amount, currency and reference."""
        gateway = paypal_with(capture_body())

        result = await gateway.capture("ORDER-1")

        assert result.completed
        assert result.reference == "CAP-1"
        assert (result.amount, result.currency, result.reference_id) == (3300, "PHP", "ref-1")

    async def test_pending_capture(self):
        """Anything short of COMPLETED is pending."""
        gateway = paypal_with(capture_body(status="PENDING"))

        result = await gateway.capture("ORDER-1")

        assert result.status == "pending"
        assert result.amount == 3300

    async def test_capture_without_captures_is_pending(self):
        """An order with no capture records did not move money."""
        gateway = paypal_with({"id": "ORDER-1", "status": "COMPLETED", "purchase_units": [{"reference_id": "ref-1"}]})

        result = await gateway.capture("ORDER-1")

        assert result.status == "pending"
        assert result.amount is None
        assert result.reference_id == "ref-1"


class TestManualGateway:
    """Tests for the bank transfer adapter."""

    async def test_capture_echoes_reference(self):
        """The order reference comes back out of the order ref."""
        gateway = ManualGateway()
        order = await gateway.create_order(3300, "PHP", "ref-1", "Seaside Cabin")

        result = await gateway.capture(order.order_ref)

        assert result.status == "pending"
        assert result.reference_id == "ref-1"
        assert result.amount is None


class TestGatewaySelection:
    """Tests for resolving a gateway by name."""

    def test_unknown_gateway_rejected(self):
        """Unknown names are a validation error, not a silent fallback."""
        with pytest.raises(ValidationError):
            GatewayService()._get_gateway("bitcoin")

    async def test_unconfigured_paypal_declined(self, monkeypatch):
        """PayPal without credentials refuses to create orders."""
        monkeypatch.setattr(settings, "paypal_client_id", None)
        monkeypatch.setattr(settings, "paypal_client_secret", None)

        with pytest.raises(GatewayDeclined):
            await GatewayService().create_order("paypal", 3300, "PHP", "ref-1", "Seaside Cabin")

    async def test_unconfigured_paypal_capture_declined(self, monkeypatch):
        """A capture cannot fall back to a pending manual booking."""
        monkeypatch.setattr(settings, "paypal_client_id", "client")
        monkeypatch.setattr(settings, "paypal_client_secret", None)

        with pytest.raises(GatewayDeclined):
            await GatewayService().capture("paypal", "ORDER-1")

    def test_manual_gateway_needs_no_configuration(self):
        """The manual adapter is always available."""
        gateway = GatewayService()._get_gateway("manual")

        assert gateway.gateway_type == GatewayType.MANUAL
