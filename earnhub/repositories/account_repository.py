"""
Account repository.

Data access layer for Account model.
"""

from datetime import date

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.account import Account
from earnhub.models.profile import Profile
from earnhub.repositories.base import BaseRepository


class AccountRepository(BaseRepository[Account]):
    """Account repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize account repository."""
        super().__init__(Account, session)

    async def get_by_external_ref(self, external_ref: str) -> Account | None:
        """
        Get account by external identity reference.

        Args:
            external_ref: External identity reference

        Returns:
            Account or None if not found
        """
        return await self.get_by(external_ref=external_ref)

    async def get_by_referral_code(self, referral_code: str) -> Account | None:
        """Get account by referral code."""
        return await self.get_by(referral_code=referral_code)

    async def get_for_update(self, account_id: int) -> Account | None:
        """
        Get account with a row lock (no-op on SQLite).

        Args:
            account_id: Account ID

        Returns:
            Account or None if not found
        """
        stmt = (
            select(Account)
            .where(Account.id == account_id)
            .with_for_update(of=Account)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.unique().scalar_one_or_none()

    async def handle_exists(self, handle: str) -> bool:
        """Check if a display handle is taken."""
        return await self.exists(display_handle=handle)

    async def referral_code_exists(self, code: str) -> bool:
        """Check if a referral code is taken."""
        return await self.exists(referral_code=code)

    async def get_referrer_id(self, account_id: int) -> int | None:
        """Get the referring account id without loading the row."""
        stmt = select(Account.referred_by_id).where(Account.id == account_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_daily_quota(self, account_id: int) -> int | None:
        """Get the cached daily quota without loading the row."""
        stmt = select(Account.daily_task_quota).where(Account.id == account_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_referred_ids(self, referrer_ids: list[int]) -> list[int]:
        """
        Get ids of accounts directly referred by any of the given accounts.

        Args:
            referrer_ids: Referring account IDs

        Returns:
            IDs of direct referrals
        """
        if not referrer_ids:
            return []

        stmt = select(Account.id).where(Account.referred_by_id.in_(referrer_ids))
        result = await self.session.execute(stmt)
        return [row[0] for row in result.all()]

    async def set_plan(
        self, account_id: int, plan_id: int, daily_task_quota: int
    ) -> None:
        """Point account at a plan and refresh its cached quota."""
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(plan_id=plan_id, daily_task_quota=daily_task_quota)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def reconcile_quota(self, plan_id: int, daily_task_quota: int) -> int:
        """
        Rewrite the cached quota of every account on a plan.

        Single batch statement; accounts already in sync are not touched.

        Args:
            plan_id: Plan ID
            daily_task_quota: Current plan quota

        Returns:
            Number of accounts changed
        """
        stmt = (
            update(Account)
            .where(
                Account.plan_id == plan_id,
                Account.daily_task_quota != daily_task_quota,
            )
            .values(daily_task_quota=daily_task_quota)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def set_frozen(
        self, account_id: int, frozen: bool, reason: str | None = None
    ) -> bool:
        """
        Set or clear the ledger freeze flag.

        Returns:
            True if the account exists
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .values(ledger_frozen=frozen, frozen_reason=reason if frozen else None)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0

    async def find_due_trial_ids(self, today: date, limit: int) -> list[int]:
        """
        Find accounts whose trial window ended before today.

        Args:
            today: Current operative day
            limit: Maximum number of ids

        Returns:
            Account IDs ordered by trial end
        """
        stmt = (
            select(Profile.account_id)
            .where(
                Profile.trial_active.is_(True),
                Profile.trial_end_date < today,
            )
            .order_by(Profile.trial_end_date.asc(), Profile.account_id.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [row[0] for row in result.all()]
