"""
Quota and completion engine.

Single entry point for rewarded task completions. One unit of work:

1. lazy reset of the per-day counter when it belongs to an earlier day
2. conditional increment against the account's cached quota
3. insert of the completion row (unique per account, task and day)
4. reward credit to the income wallet through the ledger

A duplicate completion rolls the whole unit back, the counter increment
included. Quota is checked before duplication, so an account at its
limit gets QuotaExceededError even for a task it already completed.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.enums import TransactionType, WalletType
from earnhub.models.task_completion import TaskCompletion
from earnhub.repositories.account_repository import AccountRepository
from earnhub.repositories.profile_repository import ProfileRepository
from earnhub.repositories.task_completion_repository import TaskCompletionRepository
from earnhub.services.base_service import BaseService, transaction
from earnhub.services.ledger import LedgerService
from earnhub.utils.datetime_utils import operative_day
from earnhub.utils.exceptions import (
    AccountInactiveError,
    DuplicateCompletionError,
    EarningSuspendedError,
    NotFoundError,
    QuotaExceededError,
)
from earnhub.validators import validate_task_id


@dataclass
class CompletionResult:
    """Outcome of a rewarded task completion."""

    completion_id: int
    reward_amount: Decimal
    remaining_today: int
    completion_date: date
    transaction_id: int | None = None


@dataclass
class QuotaStatus:
    """Quota usage of an account on the current operative day."""

    daily_quota: int
    completed_today: int
    remaining_today: int
    operative_day: date


@dataclass
class TaskStatistics:
    """Task earning statistics of an account."""

    today_completions: int
    today_earned: Decimal
    total_completions: int
    total_earned: Decimal


class QuotaService(BaseService):
    """Quota and completion engine."""

    def __init__(self, session: AsyncSession, **kwargs) -> None:
        """Initialize quota service."""
        super().__init__(session, **kwargs)
        self.account_repo = AccountRepository(session)
        self.profile_repo = ProfileRepository(session)
        self.completion_repo = TaskCompletionRepository(session)
        self.ledger = LedgerService(session, **kwargs)

    @transaction
    async def complete_task(self, account_id: int, task_id: str) -> CompletionResult:
        """
        Record a task completion and credit its reward.

        Args:
            account_id: Account ID
            task_id: Opaque task identifier

        Returns:
            CompletionResult

        Raises:
            NotFoundError: If account or profile is missing
            AccountInactiveError: If the account is deactivated
            EarningSuspendedError: If earning is suspended
            QuotaExceededError: If today's quota is used up
            DuplicateCompletionError: If the task was already completed today
        """
        is_valid, task_id, error = validate_task_id(task_id)
        if not is_valid:
            raise ValueError(error)

        now = self.clock()
        today = operative_day(now)

        account = await self.account_repo.get_by_id(account_id, fresh=True)
        if not account:
            raise NotFoundError(f"Account {account_id} not found", account_id=account_id)
        if not account.is_active:
            raise AccountInactiveError(
                f"Account {account_id} is inactive", account_id=account_id
            )

        profile = await self.profile_repo.get_by_account_id(account_id, fresh=True)
        if not profile:
            raise NotFoundError(
                f"Profile of account {account_id} not found", account_id=account_id
            )
        if profile.earning_suspended:
            raise EarningSuspendedError(
                f"Earning suspended for account {account_id}", account_id=account_id
            )

        await self.profile_repo.reset_daily_counter(account_id, today)

        completed_today = await self.profile_repo.increment_counter_within_quota(
            account_id
        )
        if completed_today is None:
            raise QuotaExceededError(
                f"Account {account_id} reached its daily quota of "
                f"{account.daily_task_quota}",
                account_id=account_id,
            )

        reward = account.plan.reward_per_task
        try:
            completion = await self.completion_repo.create(
                account_id=account_id,
                task_id=task_id,
                completed_at=now,
                completion_date=today,
                reward_amount=reward,
            )
        except IntegrityError as e:
            raise DuplicateCompletionError(
                f"Task {task_id!r} already completed by account {account_id} on {today}",
                account_id=account_id,
                task_id=task_id,
            ) from e

        transaction_id = None
        if reward > 0:
            entry = await self.ledger.post_entry(
                account_id,
                WalletType.INCOME,
                TransactionType.REWARD,
                reward,
                reference_type="task_completion",
                reference=str(completion.id),
                description=f"Task {task_id}",
                counts_as_earnings=True,
            )
            transaction_id = entry.id

        daily_quota = await self.account_repo.get_daily_quota(account_id) or 0
        remaining = max(daily_quota - completed_today, 0)

        self.logger.info(
            f"Task {task_id} completed by account {account_id}",
            extra={
                "account_id": account_id,
                "completion_id": completion.id,
                "reward": str(reward),
                "remaining_today": remaining,
            },
        )
        return CompletionResult(
            completion_id=completion.id,
            reward_amount=reward,
            remaining_today=remaining,
            completion_date=today,
            transaction_id=transaction_id,
        )

    async def get_quota_status(self, account_id: int) -> QuotaStatus:
        """
        Get today's quota usage without writing.

        A counter belonging to an earlier day reads as zero.
        """
        today = operative_day(self.clock())

        account = await self.account_repo.get_by_id(account_id, fresh=True)
        profile = await self.profile_repo.get_by_account_id(account_id, fresh=True)
        if not account or not profile:
            raise NotFoundError(f"Account {account_id} not found", account_id=account_id)

        completed = (
            profile.tasks_completed_today if profile.last_reset_date == today else 0
        )
        return QuotaStatus(
            daily_quota=account.daily_task_quota,
            completed_today=completed,
            remaining_today=max(account.daily_task_quota - completed, 0),
            operative_day=today,
        )

    async def get_task_statistics(self, account_id: int) -> TaskStatistics:
        """Get today's and lifetime task earnings."""
        today = operative_day(self.clock())
        stats = await self.completion_repo.get_stats(account_id, today)
        return TaskStatistics(
            today_completions=stats["today_completions"],
            today_earned=stats["today_earned"],
            total_completions=stats["total_completions"],
            total_earned=stats["total_earned"],
        )

    async def get_completion_history(
        self, account_id: int, page: int = 1, per_page: int = 20
    ) -> tuple[list[TaskCompletion], int]:
        """
        Get completions of an account, newest first.

        Returns:
            Tuple of (items, total_count)
        """
        page = max(page, 1)
        per_page = min(max(per_page, 1), 100)
        return await self.completion_repo.get_history(account_id, page, per_page)
