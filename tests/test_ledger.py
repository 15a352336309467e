"""Tests for wallet and points ledgers.

Run with: pytest tests/test_ledger.py -v
"""

import asyncio

import pytest
from sqlalchemy import func, select

from bookify.core.exceptions import InsufficientFunds, SettlementAborted, ValidationError
from bookify.models.ledger import WalletAccount, WalletTransaction
from bookify.services.ledger_service import ledger_service


class TestTopUp:
    """Tests for wallet top-ups."""

    async def test_opens_account_on_first_credit(self, seed, session_factory):
        """A wallet that never existed is created by its first entry."""
        entry = await seed.top_up("guest-1", 5000)

        assert entry.type == "topup"
        assert entry.delta == 5000
        assert entry.balance_after == 5000
        async with session_factory() as db:
            account = await db.get(WalletAccount, "guest-1")
        assert account.balance == 5000

    async def test_balance_after_chains(self, seed):
        """Each entry records the balance it produced."""
        await seed.top_up("guest-1", 5000)
        entry = await seed.top_up("guest-1", 2500)

        assert entry.balance_after == 7500

    async def test_rejects_non_positive_amount(self, seed):
        """Top-ups must add money."""
        with pytest.raises(ValidationError):
            await seed.top_up("guest-1", 0)


class TestWithdraw:
    """Tests for paying money out of a wallet."""

    async def test_debits_balance(self, seed, session_factory):
        """A withdrawal posts a negative entry with its payout channel."""
        await seed.top_up("host-1", 5000)

        entry = await ledger_service.withdraw(
            "host-1", 2000, method="Bank", note="Payout to BDO", session_factory=session_factory
        )

        assert entry.type == "withdraw"
        assert entry.delta == -2000
        assert entry.amount == 2000
        assert entry.method == "Bank"
        assert entry.note == "Payout to BDO"
        assert entry.balance_after == 3000
        async with session_factory() as db:
            assert (await db.get(WalletAccount, "host-1")).balance == 3000
            assert await ledger_service.verify_wallet(db, "host-1")

    async def test_whole_balance(self, seed, session_factory):
        """The full balance can be withdrawn."""
        await seed.top_up("host-1", 5000)

        entry = await ledger_service.withdraw("host-1", 5000, session_factory=session_factory)

        assert entry.balance_after == 0

    async def test_more_than_balance(self, seed, session_factory):
        """Withdrawals never overdraw the wallet."""
        await seed.top_up("host-1", 5000)

        with pytest.raises(InsufficientFunds):
            await ledger_service.withdraw("host-1", 5001, session_factory=session_factory)

        async with session_factory() as db:
            assert (await db.get(WalletAccount, "host-1")).balance == 5000

    async def test_rejects_non_positive_amount(self, session_factory):
        """Withdrawals must take money out."""
        with pytest.raises(ValidationError):
            await ledger_service.withdraw("host-1", -5, session_factory=session_factory)

    async def test_concurrent_withdrawals_never_overdraw(self, seed, session_factory):
        """Two withdrawals of most of the balance: at most one succeeds."""
        await seed.top_up("host-1", 5000)

        outcomes = await asyncio.gather(
            ledger_service.withdraw("host-1", 4000, session_factory=session_factory),
            ledger_service.withdraw("host-1", 4000, session_factory=session_factory),
            return_exceptions=True,
        )

        failures = [o for o in outcomes if isinstance(o, Exception)]
        assert len(failures) == 1
        assert isinstance(failures[0], (InsufficientFunds, SettlementAborted))
        async with session_factory() as db:
            assert (await db.get(WalletAccount, "host-1")).balance == 1000
            assert await ledger_service.verify_wallet(db, "host-1")


class TestTransfer:
    """Tests for wallet to wallet transfers."""

    async def test_moves_money_and_conserves_it(self, seed, session_factory):
        """The sender's debit and the recipient's credit sum to zero."""
        await seed.top_up("guest-1", 5000)

        sent, received = await ledger_service.transfer(
            "guest-1", "guest-2", 1500, note="Dinner", session_factory=session_factory
        )

        assert (sent.type, sent.delta, sent.balance_after) == ("transfer_out", -1500, 3500)
        assert (received.type, received.delta, received.balance_after) == ("transfer_in", 1500, 1500)
        assert sent.method == received.method == "internal"
        assert sent.meta["counterparty"] == "guest-2"
        assert received.meta["counterparty"] == "guest-1"
        assert sent.meta["shared_id"] == received.meta["shared_id"]
        async with session_factory() as db:
            moved = await db.scalar(
                select(func.sum(WalletTransaction.delta)).where(WalletTransaction.type != "topup")
            )
            for account_id in ("guest-1", "guest-2"):
                assert await ledger_service.verify_wallet(db, account_id)
        assert moved == 0

    async def test_to_existing_wallet(self, seed, session_factory):
        """Transfers add to the recipient's balance."""
        await seed.top_up("guest-1", 5000)
        await seed.top_up("guest-2", 700)

        _, received = await ledger_service.transfer("guest-1", "guest-2", 300, session_factory=session_factory)

        assert received.balance_after == 1000

    async def test_more_than_balance(self, seed, session_factory):
        """Senders cannot send more than they hold; nothing is written."""
        await seed.top_up("guest-1", 1000)

        with pytest.raises(InsufficientFunds):
            await ledger_service.transfer("guest-1", "guest-2", 1001, session_factory=session_factory)

        async with session_factory() as db:
            assert await db.get(WalletAccount, "guest-2") is None
            assert (await db.get(WalletAccount, "guest-1")).balance == 1000

    async def test_self_transfer_rejected(self, seed, session_factory):
        """A wallet cannot send money to itself."""
        await seed.top_up("guest-1", 1000)

        with pytest.raises(ValidationError):
            await ledger_service.transfer("guest-1", "guest-1", 100, session_factory=session_factory)

    async def test_currency_mismatch_rejected(self, seed, session_factory):
        """Money only moves between wallets of one currency."""
        await seed.top_up("guest-1", 1000)
        async with session_factory() as db:
            db.add(WalletAccount(account_id="guest-2", balance=0, currency="USD"))
            await db.commit()

        with pytest.raises(ValidationError):
            await ledger_service.transfer("guest-1", "guest-2", 100, session_factory=session_factory)


class TestReads:
    """Tests for balances, history and verification."""

    async def test_missing_accounts_read_as_zero(self, session_factory):
        """Unknown accounts have a zero balance and are not created by reading."""
        async with session_factory() as db:
            wallet = await ledger_service.get_wallet_balance(db, "nobody")
            points = await ledger_service.get_points_balance(db, "nobody")
            await db.commit()

        assert wallet.balance == 0
        assert wallet.currency == "PHP"
        assert points.balance == 0
        async with session_factory() as db:
            assert await db.get(WalletAccount, "nobody") is None

    async def test_history_newest_first(self, seed, session_factory):
        """Transactions list most recent first."""
        for amount in (100, 200, 300):
            await seed.top_up("guest-1", amount)

        async with session_factory() as db:
            entries = await ledger_service.list_wallet_transactions(db, "guest-1")

        assert [e.balance_after for e in entries] == [600, 300, 100]

    async def test_history_paginates(self, seed, session_factory):
        """limit and offset page through the history."""
        for amount in (100, 200, 300):
            await seed.top_up("guest-1", amount)

        async with session_factory() as db:
            page = await ledger_service.list_wallet_transactions(db, "guest-1", limit=1, offset=1)

        assert [e.balance_after for e in page] == [300]

    async def test_verify_matches_sum_of_deltas(self, seed, session_factory):
        """A ledger written through the service verifies."""
        await seed.top_up("guest-1", 1000)
        await seed.top_up("guest-1", 234)

        async with session_factory() as db:
            assert await ledger_service.verify_wallet(db, "guest-1")
            assert await ledger_service.verify_points(db, "guest-1")

    async def test_verify_detects_drift(self, seed, session_factory):
        """A balance edited outside the ledger fails verification."""
        await seed.top_up("guest-1", 1000)
        async with session_factory() as db:
            account = await db.get(WalletAccount, "guest-1")
            account.balance = 999
            await db.commit()

        async with session_factory() as db:
            assert not await ledger_service.verify_wallet(db, "guest-1")
