"""Integration tests for account provisioning."""

import asyncio
from datetime import date

import pytest
from sqlalchemy import func, select

from earnhub.models import Account, Profile
from earnhub.services.provisioning_service import ProvisioningService
from earnhub.utils.exceptions import ConflictError


class TestProvision:
    """Tests for ProvisioningService.provision."""

    @pytest.mark.asyncio
    async def test_creates_account_and_profile(self, session, plans, service_kwargs):
        """A new identity gets one account on the trial plan with a profile."""
        service = ProvisioningService(session, **service_kwargs)

        account = await service.provision("tg:1001", display_name_hint="John Doe")

        assert account.id is not None
        assert account.display_handle == "john_doe"
        assert account.plan_id == plans["intern"].id
        assert account.daily_task_quota == 3
        assert len(account.referral_code) == 8
        assert account.referred_by_id is None

        profile = await session.get(Profile, account.id)
        assert profile is not None
        assert profile.tasks_completed_today == 0
        assert profile.last_reset_date == date(2026, 3, 10)

    @pytest.mark.asyncio
    async def test_trial_window(self, session, plans, service_kwargs):
        """Trial runs for the configured number of operative days."""
        service = ProvisioningService(session, trial_duration_days=3, **service_kwargs)

        account = await service.provision("tg:1002")

        profile = await session.get(Profile, account.id)
        assert profile.trial_active is True
        assert profile.trial_start_date == date(2026, 3, 10)
        assert profile.trial_end_date == date(2026, 3, 13)

    @pytest.mark.asyncio
    async def test_missing_trial_plan_falls_back(self, session, plans, service_kwargs):
        """An unknown trial plan code falls back to the cheapest active plan."""
        service = ProvisioningService(
            session, trial_plan_code="missing", **service_kwargs
        )

        account = await service.provision("tg:1003")

        # intern is the cheapest active plan and carries the trial flag
        assert account.plan_id == plans["intern"].id
        profile = await session.get(Profile, account.id)
        assert profile.trial_active is True

    @pytest.mark.asyncio
    async def test_idempotent(self, session, plans, service_kwargs):
        """Provisioning the same identity twice returns the same account."""
        service = ProvisioningService(session, **service_kwargs)

        first = await service.provision("tg:2000", display_name_hint="alice")
        second = await service.provision("tg:2000", display_name_hint="someone else")

        assert first.id == second.id
        count = await session.scalar(
            select(func.count()).select_from(Account).where(Account.external_ref == "tg:2000")
        )
        assert count == 1

    @pytest.mark.asyncio
    async def test_handle_collision_gets_suffix(self, session, plans, service_kwargs):
        """Two identities with the same hint get distinct handles."""
        service = ProvisioningService(session, **service_kwargs)

        first = await service.provision("tg:3001", display_name_hint="Alice")
        second = await service.provision("tg:3002", display_name_hint="Alice")

        assert first.display_handle == "alice"
        assert second.display_handle.startswith("alice_")
        assert len(second.display_handle) == len("alice_0000")

    @pytest.mark.asyncio
    async def test_referral_link(self, make_account, session):
        """A valid referral code links the new account to its referrer."""
        parent = await make_account("tg:4000")
        child = await make_account("tg:4001", referral_code=parent.referral_code)

        assert child.referred_by_id == parent.id

    @pytest.mark.asyncio
    async def test_unknown_referral_code_ignored(self, make_account):
        """An unknown code registers the account without a referrer."""
        account = await make_account("tg:4100", referral_code="NOPE2345")

        assert account.referred_by_id is None

    @pytest.mark.asyncio
    async def test_conflicting_referrer(self, make_account):
        """Re-registering with a different referrer is a conflict."""
        parent_a = await make_account("tg:4200")
        parent_b = await make_account("tg:4201")
        await make_account("tg:4202", referral_code=parent_a.referral_code)

        with pytest.raises(ConflictError):
            await make_account("tg:4202", referral_code=parent_b.referral_code)

    @pytest.mark.asyncio
    async def test_same_referrer_is_not_conflict(self, make_account):
        """Repeating the original referral code is idempotent."""
        parent = await make_account("tg:4300")
        first = await make_account("tg:4301", referral_code=parent.referral_code)
        second = await make_account("tg:4301", referral_code=parent.referral_code)

        assert first.id == second.id

    @pytest.mark.asyncio
    async def test_missing_profile_is_conflict(self, session, plans, service_kwargs):
        """An account without profile is reported instead of repaired."""
        session.add(
            Account(
                external_ref="tg:broken",
                display_handle="broken",
                plan_id=plans["intern"].id,
                daily_task_quota=3,
                referral_code="BROKEN22",
            )
        )
        await session.commit()

        service = ProvisioningService(session, **service_kwargs)
        with pytest.raises(ConflictError):
            await service.provision("tg:broken")

    @pytest.mark.asyncio
    async def test_invalid_external_ref(self, session, plans, service_kwargs):
        """Empty references are rejected."""
        service = ProvisioningService(session, **service_kwargs)

        with pytest.raises(ValueError):
            await service.provision("   ")


class TestConcurrentProvision:
    """Concurrent registrations of one identity."""

    @pytest.mark.asyncio
    @pytest.mark.slow
    async def test_parallel_calls_create_one_pair(self, make_account, session):
        """Parallel provision calls agree on a single account."""
        results = await asyncio.gather(
            *(make_account("tg:race", display_name_hint="racer") for _ in range(5))
        )

        assert len({account.id for account in results}) == 1

        accounts = await session.scalar(
            select(func.count()).select_from(Account).where(Account.external_ref == "tg:race")
        )
        profiles = await session.scalar(
            select(func.count()).select_from(Profile).where(
                Profile.account_id == results[0].id
            )
        )
        assert accounts == 1
        assert profiles == 1
