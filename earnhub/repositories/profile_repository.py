"""
Profile repository.

Data access layer for Profile model. Counter and balance changes are
single conditional UPDATE statements so concurrent callers serialize on
the profile row instead of racing on values read earlier.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.account import Account
from earnhub.models.enums import WalletType
from earnhub.models.profile import Profile
from earnhub.repositories.base import BaseRepository
from earnhub.utils.datetime_utils import utc_now


class ProfileRepository(BaseRepository[Profile]):
    """Profile repository with atomic counter and balance updates."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize profile repository."""
        super().__init__(Profile, session)

    @staticmethod
    def balance_column(wallet: WalletType):
        """Map wallet to its balance column."""
        if wallet == WalletType.INCOME:
            return Profile.income_balance
        return Profile.personal_balance

    async def get_by_account_id(
        self, account_id: int, fresh: bool = False
    ) -> Profile | None:
        """Get profile of an account."""
        return await self.get_by_id(account_id, fresh=fresh)

    async def reset_daily_counter(self, account_id: int, today: date) -> bool:
        """
        Reset the task counter if it belongs to an earlier day.

        Args:
            account_id: Account ID
            today: Current operative day

        Returns:
            True if the counter was reset
        """
        stmt = (
            update(Profile)
            .where(
                Profile.account_id == account_id,
                or_(
                    Profile.last_reset_date.is_(None),
                    Profile.last_reset_date < today,
                ),
            )
            .values(tasks_completed_today=0, last_reset_date=today)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0

    async def increment_counter_within_quota(self, account_id: int) -> int | None:
        """
        Take one slot of today's quota.

        Compares against the account's cached quota inside the same
        statement.

        Args:
            account_id: Account ID

        Returns:
            New counter value, or None if the quota is used up
        """
        cached_quota = (
            select(Account.daily_task_quota)
            .where(Account.id == account_id)
            .scalar_subquery()
        )
        stmt = (
            update(Profile)
            .where(
                Profile.account_id == account_id,
                Profile.tasks_completed_today < cached_quota,
            )
            .values(tasks_completed_today=Profile.tasks_completed_today + 1)
            .returning(Profile.tasks_completed_today)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def apply_balance_delta(
        self, account_id: int, wallet: WalletType, amount: Decimal
    ) -> Decimal | None:
        """
        Add a signed amount to a wallet balance.

        Debits only apply when the balance covers them.

        Args:
            account_id: Account ID
            wallet: Wallet to change
            amount: Signed amount

        Returns:
            Balance after the change, or None if the profile is missing
            or the debit is not covered
        """
        column = self.balance_column(wallet)
        stmt = update(Profile).where(Profile.account_id == account_id)
        if amount < 0:
            stmt = stmt.where(column >= -amount)
        stmt = (
            stmt.values({column.key: column + amount})
            .returning(column)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def add_to_totals(
        self,
        account_id: int,
        earnings: Decimal | None = None,
        deposited: Decimal | None = None,
    ) -> None:
        """Increase cumulative earnings and deposit totals."""
        values = {}
        if earnings:
            values["total_earnings"] = Profile.total_earnings + earnings
        if deposited:
            values["total_deposited"] = Profile.total_deposited + deposited
        if not values:
            return

        stmt = (
            update(Profile)
            .where(Profile.account_id == account_id)
            .values(values)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def end_trial(self, account_id: int) -> bool:
        """
        Clear the trial flag.

        Returns:
            True if this call ended an active trial
        """
        stmt = (
            update(Profile)
            .where(Profile.account_id == account_id, Profile.trial_active.is_(True))
            .values(trial_active=False)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0

    async def set_earning_suspended(self, account_id: int, suspended: bool) -> None:
        """Set or lift the earning suspension."""
        stmt = (
            update(Profile)
            .where(Profile.account_id == account_id)
            .values(earning_suspended=suspended)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def lock_row(self, account_id: int) -> bool:
        """
        Take the profile row write lock for the rest of the transaction.

        Touches updated_at so the lock is taken on every backend.

        Returns:
            True if the profile exists
        """
        stmt = (
            update(Profile)
            .where(Profile.account_id == account_id)
            .values(updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0
