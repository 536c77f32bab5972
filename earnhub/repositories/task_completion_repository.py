"""
TaskCompletion repository.

Data access layer for TaskCompletion model.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.task_completion import TaskCompletion
from earnhub.repositories.base import BaseRepository


class TaskCompletionRepository(BaseRepository[TaskCompletion]):
    """TaskCompletion repository with daily and history queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize task completion repository."""
        super().__init__(TaskCompletion, session)

    async def count_for_day(self, account_id: int, day: date) -> int:
        """Count completions of an account on an operative day."""
        return await self.count(account_id=account_id, completion_date=day)

    async def get_for_day(self, account_id: int, day: date) -> list[TaskCompletion]:
        """Get completions of an account on an operative day."""
        stmt = (
            select(TaskCompletion)
            .where(
                TaskCompletion.account_id == account_id,
                TaskCompletion.completion_date == day,
            )
            .order_by(TaskCompletion.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_history(
        self, account_id: int, page: int = 1, per_page: int = 20
    ) -> tuple[list[TaskCompletion], int]:
        """
        Get completion history, newest first.

        Args:
            account_id: Account ID
            page: Page number (1-indexed)
            per_page: Items per page

        Returns:
            Tuple of (items, total_count)
        """
        total = await self.count(account_id=account_id)

        offset = (page - 1) * per_page
        stmt = (
            select(TaskCompletion)
            .where(TaskCompletion.account_id == account_id)
            .order_by(TaskCompletion.completed_at.desc(), TaskCompletion.id.desc())
            .offset(offset)
            .limit(per_page)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def get_stats(
        self, account_id: int, today: date
    ) -> dict[str, int | Decimal]:
        """
        Get task earning statistics in a single query.

        Args:
            account_id: Account ID
            today: Current operative day

        Returns:
            Dict with total_completions, total_earned, today_completions
            and today_earned
        """
        is_today = TaskCompletion.completion_date == today
        stmt = select(
            func.count(TaskCompletion.id).label("total_completions"),
            func.coalesce(func.sum(TaskCompletion.reward_amount), 0).label("total_earned"),
            func.count(TaskCompletion.id).filter(is_today).label("today_completions"),
            func.coalesce(
                func.sum(TaskCompletion.reward_amount).filter(is_today), 0
            ).label("today_earned"),
        ).where(TaskCompletion.account_id == account_id)

        row = (await self.session.execute(stmt)).one()
        return {
            "total_completions": row.total_completions or 0,
            "total_earned": Decimal(str(row.total_earned or 0)),
            "today_completions": row.today_completions or 0,
            "today_earned": Decimal(str(row.today_earned or 0)),
        }
