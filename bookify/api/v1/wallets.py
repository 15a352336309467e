"""Wallet and loyalty points endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookify.api.deps import (
    CurrentUser,
    get_checkout_service,
    get_current_admin,
    get_current_user,
    get_db,
)
from bookify.schemas.wallet import (
    LedgerEntryResponse,
    PointsResponse,
    TopUpRequest,
    TransferRequest,
    WalletResponse,
    WithdrawRequest,
)
from bookify.services.checkout_service import CheckoutService
from bookify.services.ledger_service import ledger_service

router = APIRouter()


@router.get("/me", response_model=WalletResponse)
async def get_my_wallet(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WalletResponse:
    """Get the caller's wallet balance."""
    account = await ledger_service.get_wallet_balance(db, current_user.id)
    return WalletResponse.model_validate(account)


@router.get("/me/transactions", response_model=list[LedgerEntryResponse])
async def get_my_wallet_transactions(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> list[LedgerEntryResponse]:
    """Get the caller's wallet ledger, newest first."""
    entries = await ledger_service.list_wallet_transactions(
        db, current_user.id, limit=page_size, offset=(page - 1) * page_size
    )
    return [LedgerEntryResponse.model_validate(e) for e in entries]


@router.get("/me/points", response_model=PointsResponse)
async def get_my_points(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PointsResponse:
    """Get the caller's loyalty points balance."""
    account = await ledger_service.get_points_balance(db, current_user.id)
    return PointsResponse.model_validate(account)


@router.get("/me/points/transactions", response_model=list[LedgerEntryResponse])
async def get_my_points_transactions(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> list[LedgerEntryResponse]:
    """Get the caller's points ledger, newest first."""
    entries = await ledger_service.list_points_transactions(
        db, current_user.id, limit=page_size, offset=(page - 1) * page_size
    )
    return [LedgerEntryResponse.model_validate(e) for e in entries]


@router.post("/top-up", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def top_up_wallet(
    data: TopUpRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_admin)],
    service: Annotated[CheckoutService, Depends(get_checkout_service)],
) -> LedgerEntryResponse:
    """Credit a wallet (admin)."""
    entry = await ledger_service.top_up(
        data.account_id,
        data.amount,
        note=data.note,
        session_factory=service.session_factory,
    )
    return LedgerEntryResponse.model_validate(entry)


@router.post("/me/withdraw", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def withdraw_from_wallet(
    data: WithdrawRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[CheckoutService, Depends(get_checkout_service)],
) -> LedgerEntryResponse:
    """Pay money out of the caller's wallet."""
    entry = await ledger_service.withdraw(
        current_user.id,
        data.amount,
        method=data.method,
        note=data.note,
        session_factory=service.session_factory,
    )
    return LedgerEntryResponse.model_validate(entry)


@router.post("/me/transfer", response_model=LedgerEntryResponse, status_code=status.HTTP_201_CREATED)
async def transfer_from_wallet(
    data: TransferRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[CheckoutService, Depends(get_checkout_service)],
) -> LedgerEntryResponse:
    """Send money to another wallet. Returns the caller's entry."""
    sent, _ = await ledger_service.transfer(
        current_user.id,
        data.recipient_id,
        data.amount,
        note=data.note,
        session_factory=service.session_factory,
    )
    return LedgerEntryResponse.model_validate(sent)
