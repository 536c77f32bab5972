"""Integration tests for payment event intake."""

from decimal import Decimal

import pytest

from earnhub.models import Profile, TierChangeReason, WalletType
from earnhub.repositories.tier_change_repository import TierChangeRepository
from earnhub.services.ledger import LedgerService
from earnhub.services.payment_events_service import PaymentEventService


@pytest.fixture
def family(make_account):
    """A refers B, B refers C."""
    async def _build():
        a = await make_account("tg:fam-a")
        b = await make_account("tg:fam-b", referral_code=a.referral_code)
        c = await make_account("tg:fam-c", referral_code=b.referral_code)
        return a, b, c

    return _build


class TestDepositConfirmed:
    """Tests for on_deposit_confirmed."""

    @pytest.mark.asyncio
    async def test_deposit_pays_upline(self, session, family, service_kwargs):
        """A confirmed deposit credits the depositor and pays commissions."""
        a, b, c = await family()
        service = PaymentEventService(session, **service_kwargs)

        outcome = await service.on_deposit_confirmed(c.id, Decimal("1000"), "tx-1")

        assert outcome.transaction.amount == Decimal("1000")
        assert outcome.upgraded_to is None
        assert [row.amount for row in outcome.commissions] == [Decimal("100"), Decimal("50")]

        ledger = LedgerService(session, **service_kwargs)
        assert await ledger.get_balance(c.id, WalletType.PERSONAL) == Decimal("1000")
        assert await ledger.get_balance(b.id, WalletType.INCOME) == Decimal("100")
        assert await ledger.get_balance(a.id, WalletType.INCOME) == Decimal("50")

    @pytest.mark.asyncio
    async def test_redelivered_deposit(self, session, family, service_kwargs):
        """Processing the same deposit twice changes nothing the second time."""
        a, b, c = await family()
        service = PaymentEventService(session, **service_kwargs)

        first = await service.on_deposit_confirmed(c.id, Decimal("1000"), "tx-2")
        second = await service.on_deposit_confirmed(c.id, Decimal("1000"), "tx-2")

        assert second.transaction.id == first.transaction.id
        assert second.commissions == []

        ledger = LedgerService(session, **service_kwargs)
        assert await ledger.get_balance(c.id, WalletType.PERSONAL) == Decimal("1000")
        assert await ledger.get_balance(b.id, WalletType.INCOME) == Decimal("100")

    @pytest.mark.asyncio
    async def test_auto_upgrade(self, session, make_account, plans, service_kwargs):
        """With auto upgrade on, deposits move the account to the best covered plan."""
        account = await make_account("tg:auto")
        service = PaymentEventService(
            session, auto_upgrade_on_deposit=True, **service_kwargs
        )

        outcome = await service.on_deposit_confirmed(account.id, Decimal("5000"), "tx-3")

        assert outcome.upgraded_to.code == "vip2"
        history = await TierChangeRepository(session).get_history(account.id)
        assert history[-1].reason == TierChangeReason.AUTO_UPGRADE
        assert history[-1].source_ref == "deposit:tx-3"

        # Deposits are not spent by an automatic upgrade
        profile = await session.get(Profile, account.id, populate_existing=True)
        assert profile.personal_balance == Decimal("5000")
        assert profile.total_deposited == Decimal("5000")

        outcome = await service.on_deposit_confirmed(account.id, Decimal("100"), "tx-4")
        assert outcome.upgraded_to is None


class TestUpgradeRequested:
    """Tests for on_upgrade_requested."""

    @pytest.mark.asyncio
    async def test_upgrade_pays_commissions_on_price(self, session, family, plans, service_kwargs):
        """Commissions are computed from the plan price."""
        a, b, c = await family()
        service = PaymentEventService(session, **service_kwargs)

        outcome = await service.on_upgrade_requested(c.id, "vip1", "up-1")

        assert outcome.account.plan_id == plans["vip1"].id
        assert outcome.account.daily_task_quota == 5
        assert [row.amount for row in outcome.commissions] == [Decimal("200"), Decimal("100")]

    @pytest.mark.asyncio
    async def test_redelivered_upgrade(self, session, family, service_kwargs):
        """A redelivered upgrade writes no second tier change or commission."""
        a, b, c = await family()
        service = PaymentEventService(session, **service_kwargs)

        await service.on_upgrade_requested(c.id, "vip1", "up-2")
        again = await service.on_upgrade_requested(c.id, "vip1", "up-2")

        assert again.commissions == []
        assert len(await TierChangeRepository(session).get_history(c.id)) == 1

        ledger = LedgerService(session, **service_kwargs)
        assert await ledger.get_balance(b.id, WalletType.INCOME) == Decimal("200")

    @pytest.mark.asyncio
    async def test_free_plan_pays_nothing(self, session, family, service_kwargs):
        """Moving to a free plan triggers no commissions."""
        a, b, c = await family()
        service = PaymentEventService(session, **service_kwargs)
        await service.on_upgrade_requested(c.id, "vip1", "up-3")

        outcome = await service.on_upgrade_requested(c.id, "intern", "down-1")

        assert outcome.commissions == []

    @pytest.mark.asyncio
    async def test_late_redelivery_keeps_newer_upgrade(self, session, family, plans, service_kwargs):
        """An old upgrade delivered again after a newer one changes nothing."""
        a, b, c = await family()
        service = PaymentEventService(session, **service_kwargs)

        await service.on_upgrade_requested(c.id, "vip1", "up-A")
        await service.on_upgrade_requested(c.id, "vip2", "up-B")
        again = await service.on_upgrade_requested(c.id, "vip1", "up-A")

        assert again.account.plan_id == plans["vip2"].id
        assert again.account.daily_task_quota == 10
        assert again.commissions == []

        history = await TierChangeRepository(session).get_history(c.id)
        assert [change.source_ref for change in history] == ["up-A", "up-B"]
