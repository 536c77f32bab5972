"""Integration tests for the wallet ledger."""

from decimal import Decimal

import pytest
from sqlalchemy import update

from earnhub.models import Account, Profile, Transaction, TransactionType, WalletType
from earnhub.services.ledger import LedgerService
from earnhub.services.quota import QuotaService
from earnhub.utils.exceptions import (
    InconsistentLedgerError,
    InsufficientFundsError,
    LedgerFrozenError,
    NotFoundError,
)


class TestDeposits:
    """Tests for deposits and withdrawals."""

    @pytest.mark.asyncio
    async def test_deposit_credits_personal_wallet(self, session, make_account, service_kwargs):
        """Deposits credit the personal wallet and the deposit total."""
        account = await make_account("tg:l1")
        ledger = LedgerService(session, **service_kwargs)

        entry = await ledger.record_deposit(account.id, Decimal("1000"), "dep-1")

        assert entry.wallet == WalletType.PERSONAL
        assert entry.tx_type == TransactionType.DEPOSIT
        assert entry.balance_before == Decimal("0")
        assert entry.balance_after == Decimal("1000")
        assert await ledger.get_balance(account.id, WalletType.PERSONAL) == Decimal("1000")

        profile = await session.get(Profile, account.id, populate_existing=True)
        assert profile.total_deposited == Decimal("1000")

    @pytest.mark.asyncio
    async def test_deposit_is_idempotent(self, session, make_account, service_kwargs):
        """A redelivered deposit returns the first ledger row."""
        account = await make_account("tg:l2")
        ledger = LedgerService(session, **service_kwargs)

        first = await ledger.record_deposit(account.id, Decimal("250"), "dep-2")
        second = await ledger.record_deposit(account.id, Decimal("250"), "dep-2")

        assert first.id == second.id
        assert await ledger.get_balance(account.id, WalletType.PERSONAL) == Decimal("250")
        assert len(await ledger.get_history(account.id)) == 1

    @pytest.mark.asyncio
    async def test_withdrawal_insufficient_funds(self, session, make_account, service_kwargs):
        """Withdrawals cannot take the income wallet below zero."""
        account = await make_account("tg:l3")
        await QuotaService(session, **service_kwargs).complete_task(account.id, "t")
        ledger = LedgerService(session, **service_kwargs)

        with pytest.raises(InsufficientFundsError):
            await ledger.record_withdrawal(account.id, Decimal("5"), "wd-1")

        assert await ledger.get_balance(account.id, WalletType.INCOME) == Decimal("1")

        entry = await ledger.record_withdrawal(account.id, Decimal("1"), "wd-2")
        assert entry.amount == Decimal("-1")
        assert entry.balance_after == Decimal("0")

    @pytest.mark.asyncio
    async def test_invalid_amounts(self, session, make_account, service_kwargs):
        """Non-positive deposits and zero entries are rejected."""
        account = await make_account("tg:l4")
        ledger = LedgerService(session, **service_kwargs)

        with pytest.raises(ValueError):
            await ledger.record_deposit(account.id, Decimal("0"), "dep-0")
        with pytest.raises(ValueError):
            await ledger.post_entry(
                account.id, WalletType.INCOME, TransactionType.ADJUSTMENT, Decimal("0")
            )

    @pytest.mark.asyncio
    async def test_unknown_account(self, session, plans, service_kwargs):
        """Posting to a missing account is reported."""
        with pytest.raises(NotFoundError):
            await LedgerService(session, **service_kwargs).record_deposit(
                999, Decimal("10"), "dep-x"
            )


class TestReplay:
    """Tests for chain verification and freezing."""

    @pytest.mark.asyncio
    async def test_replay_matches_balances(self, session_maker, make_account, service_kwargs):
        """Replaying every wallet reproduces the stored balances."""
        account = await make_account("tg:r1")
        async with session_maker() as session:
            ledger = LedgerService(session, **service_kwargs)
            quota = QuotaService(session, **service_kwargs)
            await ledger.record_deposit(account.id, Decimal("300"), "dep-r1")
            await quota.complete_task(account.id, "a")
            await quota.complete_task(account.id, "b")
            await ledger.record_withdrawal(account.id, Decimal("1.5"), "wd-r1")
            await ledger.record_adjustment(
                account.id, WalletType.PERSONAL, Decimal("-50"), "manual correction"
            )

        async with session_maker() as session:
            reports = await LedgerService(session, **service_kwargs).verify_account(
                account.id
            )

        assert reports[WalletType.PERSONAL].replayed_balance == Decimal("250")
        assert reports[WalletType.INCOME].replayed_balance == Decimal("0.5")
        assert reports[WalletType.INCOME].entries == 3
        assert all(report.is_consistent for report in reports.values())

    @pytest.mark.asyncio
    async def test_chain_mismatch_freezes_account(
        self, session_maker, make_account, service_kwargs
    ):
        """A broken link stops the write and freezes the account."""
        account = await make_account("tg:r2")
        async with session_maker() as session:
            entry = await LedgerService(session, **service_kwargs).record_deposit(
                account.id, Decimal("100"), "dep-r2"
            )

        async with session_maker() as session:
            await session.execute(
                update(Transaction)
                .where(Transaction.id == entry.id)
                .values(balance_after=Decimal("90"))
            )
            await session.commit()

        async with session_maker() as session:
            ledger = LedgerService(session, **service_kwargs)
            with pytest.raises(InconsistentLedgerError):
                await ledger.record_deposit(account.id, Decimal("10"), "dep-r2b")

            frozen = await session.get(Account, account.id, populate_existing=True)
            assert frozen.ledger_frozen is True
            assert frozen.frozen_reason

            # Rolled back: balance untouched by the failed deposit
            assert await ledger.get_balance(account.id, WalletType.PERSONAL) == Decimal("100")

            with pytest.raises(LedgerFrozenError):
                await ledger.record_deposit(account.id, Decimal("10"), "dep-r2c")

    @pytest.mark.asyncio
    async def test_verify_detects_balance_drift(
        self, session_maker, make_account, service_kwargs
    ):
        """A balance changed outside the ledger fails replay and freezes."""
        account = await make_account("tg:r3")
        async with session_maker() as session:
            await LedgerService(session, **service_kwargs).record_deposit(
                account.id, Decimal("100"), "dep-r3"
            )
            await session.execute(
                update(Profile)
                .where(Profile.account_id == account.id)
                .values(personal_balance=Decimal("500"))
            )
            await session.commit()

        async with session_maker() as session:
            ledger = LedgerService(session, **service_kwargs)
            with pytest.raises(InconsistentLedgerError):
                await ledger.verify_account(account.id)

            refreshed = await session.get(Account, account.id, populate_existing=True)
            assert refreshed.ledger_frozen is True

            await ledger.unfreeze_account(account.id)
            refreshed = await session.get(Account, account.id, populate_existing=True)
            assert refreshed.ledger_frozen is False
            assert refreshed.frozen_reason is None

    @pytest.mark.asyncio
    async def test_frozen_account_cannot_earn(
        self, session_maker, make_account, service_kwargs
    ):
        """Task rewards are blocked while the ledger is frozen."""
        account = await make_account("tg:r4")
        async with session_maker() as session:
            await LedgerService(session, **service_kwargs).freeze_account(
                account.id, "manual review"
            )

        async with session_maker() as session:
            with pytest.raises(LedgerFrozenError):
                await QuotaService(session, **service_kwargs).complete_task(
                    account.id, "t"
                )
            status = await QuotaService(session, **service_kwargs).get_quota_status(
                account.id
            )
            assert status.completed_today == 0
