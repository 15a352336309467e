"""Pytest configuration and shared fixtures.

Every test gets its own SQLite database file so concurrent sessions behave
like separate connections to one database.
"""

import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

import bookify.models  # noqa: F401  registers every table on Base.metadata
from bookify.core.checkout_guard import CheckoutGuard
from bookify.database import Base, run_transaction
from bookify.domain.pricing import ServiceFeeRates
from bookify.gateways.base import CaptureResult, GatewayType, OrderResult, PaymentGateway
from bookify.models.listing import Listing
from bookify.models.offer import Offer
from bookify.models.reward import RedeemedReward, Reward
from bookify.services.checkout_service import CheckoutService
from bookify.services.gateway_service import GatewayService
from bookify.services.ledger_service import ledger_service
from bookify.services.offer_service import PromoCache, offer_service

HOST_ID = "host-1"
GUEST_ID = "guest-1"
OTHER_GUEST_ID = "guest-2"


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'bookify.db'}",
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


class Seed:
    """Writes fixture rows, one committed transaction each."""

    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def _add(self, row):
        async with self.session_factory() as db:
            db.add(row)
            await db.commit()
        return row

    async def listing(self, **overrides) -> Listing:
        fields = dict(
            id=uuid.uuid4(),
            host_id=HOST_ID,
            title="Seaside Cabin",
            category="homes",
            unit_type="per_night",
            unit_price=1000,
            currency="PHP",
            max_capacity=4,
            discount_type="none",
            discount_value=Decimal("0"),
            status="active",
        )
        fields.update(overrides)
        return await self._add(Listing(**fields))

    async def experience(self, **overrides) -> Listing:
        fields = dict(
            title="Island Hopping",
            category="experiences",
            unit_type="per_participant",
            unit_price=500,
            max_capacity=1,
        )
        fields.update(overrides)
        return await self.listing(**fields)

    async def offer(self, **overrides) -> Offer:
        fields = dict(
            id=uuid.uuid4(),
            kind="promo",
            host_id=HOST_ID,
            title="Summer promo",
            applies_to="all",
            listing_ids=[],
            status="active",
            discount_type="percentage",
            discount_value=Decimal("10"),
        )
        fields.update(overrides)
        return await self._add(Offer(**fields))

    async def coupon(self, code: str = "SAVE10", **overrides) -> Offer:
        fields = dict(kind="coupon", code=code, title=f"Coupon {code}")
        fields.update(overrides)
        return await self.offer(**fields)

    async def reward(self, guest_id: str = GUEST_ID, **overrides) -> RedeemedReward:
        fields = dict(
            id=uuid.uuid4(),
            guest_id=guest_id,
            name="5% off your next stay",
            discount_type="percentage",
            discount_value=Decimal("5"),
            used=False,
        )
        fields.update(overrides)
        return await self._add(RedeemedReward(**fields))

    async def catalog_reward(self, **overrides) -> Reward:
        fields = dict(
            id=uuid.uuid4(),
            name="10% off a stay",
            points_cost=100,
            discount_type="percentage",
            discount_value=Decimal("10"),
            active=True,
            expires_in_days=30,
        )
        fields.update(overrides)
        return await self._add(Reward(**fields))

    async def points(self, account_id: str, amount: int):
        async def _credit(db):
            account = await ledger_service.load_points(db, account_id)
            return ledger_service.post_points_entry(db, account, "booking_reward", amount, note="Seeded points")

        return await run_transaction(_credit, self.session_factory)

    async def top_up(self, account_id: str, amount: int):
        return await ledger_service.top_up(account_id, amount, session_factory=self.session_factory)


@pytest.fixture
def seed(session_factory) -> Seed:
    return Seed(session_factory)


class RecordingDispatcher:
    """Collects post-commit work instead of queueing Celery tasks."""

    def __init__(self):
        self.committed = []
        self.payouts = []

    def booking_committed(self, result, quote, request) -> None:
        self.committed.append(result.booking_id)

    def payout_due(self, booking_id) -> None:
        self.payouts.append(booking_id)


class FakeGateway(PaymentGateway):
    """Gateway double with a fixed capture outcome.

    Captures echo the amount, currency and reference of the order they
    capture, like a real provider; unknown orders echo nothing.
    ``on_capture`` runs before the capture returns, to simulate something
    happening while the guest was on the provider's page.
    """

    def __init__(self, capture_status: str = "completed", gateway_type=GatewayType.PAYPAL, on_capture=None):
        self._type = gateway_type
        self.capture_status = capture_status
        self.on_capture = on_capture
        self.orders = []
        self.captures = []

    @property
    def gateway_type(self) -> GatewayType:
        return self._type

    async def create_order(self, amount, currency, reference_id, description) -> OrderResult:
        self.orders.append((amount, currency, reference_id, description))
        return OrderResult(success=True, order_ref=f"ORDER-{len(self.orders)}", approval_url="https://pay.test/approve")

    async def capture(self, order_ref: str) -> CaptureResult:
        self.captures.append(order_ref)
        if self.on_capture is not None:
            await self.on_capture()
        amount = currency = reference_id = None
        if order_ref.startswith("ORDER-"):
            index = int(order_ref.removeprefix("ORDER-")) - 1
            if 0 <= index < len(self.orders):
                amount, currency, reference_id, _ = self.orders[index]
        return CaptureResult(
            status=self.capture_status,
            reference=f"CAPTURE-{order_ref}",
            amount=amount,
            currency=currency,
            reference_id=reference_id,
        )


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def checkout(session_factory, dispatcher, gateway) -> CheckoutService:
    gateways = GatewayService()
    gateways.register(gateway)
    return CheckoutService(
        session_factory=session_factory,
        promos=PromoCache(offer_service.list_active_promos, ttl=300),
        fee_rates=ServiceFeeRates(),
        gateways=gateways,
        guard=CheckoutGuard(),
        dispatcher=dispatcher,
    )


@pytest.fixture
def stay_dates() -> tuple[date, date]:
    return date(2026, 4, 1), date(2026, 4, 4)
