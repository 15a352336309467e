"""Wallet and points ledger operations.

Accounts are read first and posted to later in the same transaction. Every
post computes ``balance_after`` from the balance that was read and writes the
entry together with the new balance; the account's version column rejects
the write if another transaction changed the balance in between.
"""

import logging
import uuid
from typing import Any

from sqlalchemy import func, inspect, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from bookify.config import settings
from bookify.core.exceptions import InsufficientFunds, SettlementAborted, ValidationError
from bookify.database import SessionFactory, run_transaction
from bookify.models.ledger import (
    PointsAccount,
    PointsTransaction,
    WalletAccount,
    WalletTransaction,
)

logger = logging.getLogger(__name__)


class LedgerService:
    """Service for wallet and loyalty point balances."""

    # ==================== READS ====================

    async def load_wallet(
        self,
        db: AsyncSession,
        account_id: str,
        currency: str | None = None,
    ) -> WalletAccount:
        """Read a wallet; an account that does not exist yet reads as empty.

        A new account is only added to the session when something is posted.
        """
        account = await db.get(WalletAccount, account_id)
        if account is None:
            account = WalletAccount(
                account_id=account_id,
                balance=0,
                currency=currency or settings.default_currency,
            )
        return account

    async def load_points(self, db: AsyncSession, account_id: str) -> PointsAccount:
        """Read a points account; missing reads as zero."""
        account = await db.get(PointsAccount, account_id)
        if account is None:
            account = PointsAccount(account_id=account_id, balance=0)
        return account

    # ==================== WRITES ====================

    def post_wallet_entry(
        self,
        db: AsyncSession,
        account: WalletAccount,
        entry_type: str,
        delta: int,
        note: str | None = None,
        method: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> WalletTransaction:
        """Append a wallet entry and move the balance by ``delta``.

        Args:
            db: Session the account was read in
            account: Account from ``load_wallet``
            entry_type: booking_payment, booking_income, service_fee, host_payout,
                topup, withdraw, transfer_out, transfer_in
            delta: Signed amount
            note: Free-text description
            method: wallet, card_gateway, system, internal, or a payout channel
            meta: Correlation data (booking, listing, payer, fee)

        Returns:
            WalletTransaction: The new entry
        """
        if inspect(account).transient:
            db.add(account)

        balance_after = account.balance + delta
        account.balance = balance_after

        entry = WalletTransaction(
            account_id=account.account_id,
            account=account,
            type=entry_type,
            delta=delta,
            amount=abs(delta),
            status="completed",
            method=method,
            note=note,
            meta=meta or {},
            balance_after=balance_after,
        )
        db.add(entry)
        return entry

    def post_points_entry(
        self,
        db: AsyncSession,
        account: PointsAccount,
        entry_type: str,
        delta: int,
        note: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> PointsTransaction:
        """Append a points entry and move the balance by ``delta``."""
        if inspect(account).transient:
            db.add(account)

        balance_after = account.balance + delta
        account.balance = balance_after

        entry = PointsTransaction(
            account_id=account.account_id,
            account=account,
            type=entry_type,
            delta=delta,
            amount=abs(delta),
            status="completed",
            note=note,
            meta=meta or {},
            balance_after=balance_after,
        )
        db.add(entry)
        return entry

    # ==================== OPERATIONS ====================

    async def top_up(
        self,
        account_id: str,
        amount: int,
        note: str | None = None,
        session_factory: SessionFactory | None = None,
    ) -> WalletTransaction:
        """Credit a wallet from outside the marketplace (system top-up).

        Raises:
            ValidationError: Amount not positive
        """
        if amount <= 0:
            raise ValidationError(f"Top-up: amount must be positive, got {amount}")

        async def _top_up(db: AsyncSession) -> WalletTransaction:
            account = await self.load_wallet(db, account_id)
            return self.post_wallet_entry(
                db, account, "topup", amount, note=note or "Wallet top-up", method="system"
            )

        entry = await run_transaction(_top_up, session_factory)
        logger.info(f"Wallet {account_id} topped up by {amount}, balance {entry.balance_after}")
        return entry

    async def withdraw(
        self,
        account_id: str,
        amount: int,
        method: str = "bank",
        note: str | None = None,
        session_factory: SessionFactory | None = None,
    ) -> WalletTransaction:
        """Pay money out of a wallet to an outside account.

        Raises:
            ValidationError: Amount not positive
            InsufficientFunds: Amount above the balance
            SettlementAborted: Balance changed concurrently
        """
        if amount <= 0:
            raise ValidationError(f"Withdrawal: amount must be positive, got {amount}")

        async def _withdraw(db: AsyncSession) -> WalletTransaction:
            account = await self.load_wallet(db, account_id)
            if account.balance < amount:
                raise InsufficientFunds("Withdrawal amount exceeds your wallet balance")
            return self.post_wallet_entry(
                db, account, "withdraw", -amount,
                note=note or f"Withdrawal to {method}", method=method,
            )

        try:
            entry = await run_transaction(_withdraw, session_factory)
        except (IntegrityError, StaleDataError) as e:
            logger.warning(f"Withdrawal from {account_id} lost a concurrent write: {e}")
            raise SettlementAborted("Your balance changed, please try again") from e
        logger.info(f"Wallet {account_id} withdrew {amount} via {method}, balance {entry.balance_after}")
        return entry

    async def transfer(
        self,
        sender_id: str,
        recipient_id: str,
        amount: int,
        note: str | None = None,
        session_factory: SessionFactory | None = None,
    ) -> tuple[WalletTransaction, WalletTransaction]:
        """Move money between two wallets in one transaction.

        Both entries carry the same ``shared_id`` in their metadata.

        Returns:
            The sender's and the recipient's entries

        Raises:
            ValidationError: Amount not positive, self-transfer or currency mismatch
            InsufficientFunds: Amount above the sender's balance
            SettlementAborted: A balance changed concurrently
        """
        if amount <= 0:
            raise ValidationError(f"Transfer: amount must be positive, got {amount}")
        if sender_id == recipient_id:
            raise ValidationError("You cannot transfer to your own wallet")

        async def _transfer(db: AsyncSession) -> tuple[WalletTransaction, WalletTransaction]:
            sender = await self.load_wallet(db, sender_id)
            recipient = await self.load_wallet(db, recipient_id, sender.currency)

            if recipient.currency != sender.currency:
                raise ValidationError(
                    f"Transfer: currency mismatch {sender.currency} -> {recipient.currency}"
                )
            if sender.balance < amount:
                raise InsufficientFunds("Transfer amount exceeds your wallet balance")

            shared_id = uuid.uuid4().hex
            out = self.post_wallet_entry(
                db, sender, "transfer_out", -amount,
                note=note or f"Transfer to {recipient_id}", method="internal",
                meta={"counterparty": recipient_id, "shared_id": shared_id},
            )
            incoming = self.post_wallet_entry(
                db, recipient, "transfer_in", amount,
                note=note or f"Transfer from {sender_id}", method="internal",
                meta={"counterparty": sender_id, "shared_id": shared_id},
            )
            return out, incoming

        try:
            out, incoming = await run_transaction(_transfer, session_factory)
        except (IntegrityError, StaleDataError) as e:
            logger.warning(f"Transfer {sender_id} -> {recipient_id} lost a concurrent write: {e}")
            raise SettlementAborted("A balance changed, please try again") from e
        logger.info(f"Transferred {amount} from {sender_id} to {recipient_id} ({out.meta['shared_id']})")
        return out, incoming

    async def get_wallet_balance(self, db: AsyncSession, account_id: str) -> WalletAccount:
        return await self.load_wallet(db, account_id)

    async def get_points_balance(self, db: AsyncSession, account_id: str) -> PointsAccount:
        return await self.load_points(db, account_id)

    async def list_wallet_transactions(
        self,
        db: AsyncSession,
        account_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[WalletTransaction]:
        """Most recent wallet entries first."""
        result = await db.execute(
            select(WalletTransaction)
            .where(WalletTransaction.account_id == account_id)
            .order_by(WalletTransaction.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def list_points_transactions(
        self,
        db: AsyncSession,
        account_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[PointsTransaction]:
        result = await db.execute(
            select(PointsTransaction)
            .where(PointsTransaction.account_id == account_id)
            .order_by(PointsTransaction.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def verify_wallet(self, db: AsyncSession, account_id: str) -> bool:
        """Check ``balance == sum(deltas)`` for a wallet."""
        account = await db.get(WalletAccount, account_id)
        total = await db.scalar(
            select(func.coalesce(func.sum(WalletTransaction.delta), 0)).where(
                WalletTransaction.account_id == account_id
            )
        )
        balance = account.balance if account else 0
        if balance != total:
            logger.error(f"Wallet {account_id} out of balance: balance={balance} ledger={total}")
            return False
        return True

    async def verify_points(self, db: AsyncSession, account_id: str) -> bool:
        """Check ``balance == sum(deltas)`` for a points account."""
        account = await db.get(PointsAccount, account_id)
        total = await db.scalar(
            select(func.coalesce(func.sum(PointsTransaction.delta), 0)).where(
                PointsTransaction.account_id == account_id
            )
        )
        balance = account.balance if account else 0
        if balance != total:
            logger.error(f"Points {account_id} out of balance: balance={balance} ledger={total}")
            return False
        return True


# Global service instance
ledger_service = LedgerService()
