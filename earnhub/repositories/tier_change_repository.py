"""
TierChange repository.

Data access layer for TierChange model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.tier_change import TierChange
from earnhub.repositories.base import BaseRepository


class TierChangeRepository(BaseRepository[TierChange]):
    """TierChange repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize tier change repository."""
        super().__init__(TierChange, session)

    async def get_history(self, account_id: int) -> list[TierChange]:
        """Get tier changes of an account, oldest first."""
        stmt = (
            select(TierChange)
            .where(TierChange.account_id == account_id)
            .order_by(TierChange.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_source_ref(
        self, account_id: int, source_ref: str
    ) -> TierChange | None:
        """Get the tier change an event already applied to an account."""
        stmt = select(TierChange).where(
            TierChange.account_id == account_id,
            TierChange.source_ref == source_ref,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
