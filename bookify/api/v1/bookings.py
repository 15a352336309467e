"""Booking and checkout endpoints."""

from dataclasses import asdict
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookify.api.deps import (
    CurrentUser,
    get_checkout_service,
    get_current_admin,
    get_current_host,
    get_current_user,
    get_db,
)
from bookify.schemas.booking import (
    BookingResponse,
    BookingStatusResponse,
    CheckoutBase,
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
from bookify.services.booking_service import booking_service
from bookify.services.checkout_service import CheckoutRequest, CheckoutService
from bookify.services.settlement_service import SettlementResult

router = APIRouter()


def _checkout_request(data: CheckoutBase, user: CurrentUser) -> CheckoutRequest:
    return CheckoutRequest(
        guest_id=user.id,
        listing_id=data.listing_id,
        check_in=data.check_in,
        check_out=data.check_out,
        schedule_date=data.schedule_date,
        schedule_time=data.schedule_time,
        guests=data.guests,
        participants=data.participants,
        coupon_code=data.coupon_code,
        reward_id=data.reward_id,
        guest_email=user.email,
        guest_name=user.name,
    )


def _settlement_response(result: SettlementResult) -> SettlementResponse:
    return SettlementResponse.model_validate(result, from_attributes=True)


@router.post("/quote", response_model=QuoteResponse)
async def quote_booking(
    data: QuoteRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[CheckoutService, Depends(get_checkout_service)],
) -> QuoteResponse:
    """Price a booking and check availability."""
    quote = await service.quote(_checkout_request(data, current_user))
    return QuoteResponse(
        listing_id=quote.listing.id,
        available=quote.available,
        breakdown=PriceBreakdownSchema(**asdict(quote.breakdown)),
    )


@router.post("/wallet", response_model=SettlementResponse, status_code=status.HTTP_201_CREATED)
async def book_with_wallet(
    data: WalletCheckoutRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[CheckoutService, Depends(get_checkout_service)],
) -> SettlementResponse:
    """Book and pay from the guest wallet."""
    result = await service.pay_with_wallet(_checkout_request(data, current_user))
    return _settlement_response(result)


@router.post("/gateway/orders", response_model=GatewayOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_gateway_order(
    data: GatewayOrderRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[CheckoutService, Depends(get_checkout_service)],
) -> GatewayOrderResponse:
    """Open a payment order for the quoted total."""
    quote, order = await service.create_gateway_order(
        _checkout_request(data, current_user), gateway=data.gateway
    )
    return GatewayOrderResponse(
        gateway=data.gateway,
        order_ref=order.order_ref,
        approval_url=order.approval_url,
        breakdown=PriceBreakdownSchema(**asdict(quote.breakdown)),
    )


@router.post("/gateway/capture", response_model=SettlementResponse, status_code=status.HTTP_201_CREATED)
async def capture_gateway_order(
    data: GatewayCaptureRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[CheckoutService, Depends(get_checkout_service)],
) -> SettlementResponse:
    """Capture an approved order and record the booking."""
    result = await service.capture_and_settle(
        _checkout_request(data, current_user),
        order_ref=data.order_ref,
        gateway=data.gateway,
    )
    return _settlement_response(result)


@router.get("", response_model=list[BookingResponse])
async def list_my_bookings(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> list[BookingResponse]:
    """List the caller's bookings as a guest, newest first."""
    bookings = await booking_service.list_guest_bookings(
        db, current_user.id, limit=page_size, offset=(page - 1) * page_size
    )
    return [BookingResponse.model_validate(b) for b in bookings]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Get a booking as its guest, its host or an admin."""
    booking = await booking_service.get_booking_for_party(
        db, booking_id, current_user.id, is_admin=current_user.is_admin
    )
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/confirm", response_model=BookingStatusResponse)
async def confirm_booking(
    booking_id: UUID,
    current_user: Annotated[CurrentUser, Depends(get_current_host)],
    service: Annotated[CheckoutService, Depends(get_checkout_service)],
) -> BookingStatusResponse:
    """Host confirms a pending booking."""
    booking, payout_due = await booking_service.confirm(
        booking_id, current_user.id, session_factory=service.session_factory
    )
    if payout_due:
        service.dispatcher.payout_due(booking.id)
    return BookingStatusResponse(
        booking=BookingResponse.model_validate(booking),
        payout_queued=payout_due,
    )


@router.post("/{booking_id}/mark-paid", response_model=BookingStatusResponse)
async def mark_booking_paid(
    booking_id: UUID,
    data: MarkPaidRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_admin)],
    service: Annotated[CheckoutService, Depends(get_checkout_service)],
) -> BookingStatusResponse:
    """Admin records that payment for a booking arrived."""
    booking, payout_due = await booking_service.mark_paid(
        booking_id, data.payment_reference, session_factory=service.session_factory
    )
    if payout_due:
        service.dispatcher.payout_due(booking.id)
    return BookingStatusResponse(
        booking=BookingResponse.model_validate(booking),
        payout_queued=payout_due,
    )
