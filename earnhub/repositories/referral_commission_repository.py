"""
ReferralCommission repository.

Data access layer for ReferralCommission model.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.referral_commission import ReferralCommission
from earnhub.repositories.base import BaseRepository


class ReferralCommissionRepository(BaseRepository[ReferralCommission]):
    """ReferralCommission repository with aggregation queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral commission repository."""
        super().__init__(ReferralCommission, session)

    async def get_for_level(
        self, source_ref: str, referrer_id: int, depth: int
    ) -> ReferralCommission | None:
        """Get the commission paid for one level of an event."""
        return await self.get_by(
            source_ref=source_ref, referrer_id=referrer_id, depth=depth
        )

    async def get_by_source(self, source_ref: str) -> list[ReferralCommission]:
        """Get all commissions paid for an event, direct level first."""
        stmt = (
            select(ReferralCommission)
            .where(ReferralCommission.source_ref == source_ref)
            .order_by(ReferralCommission.depth.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_stats_by_depth(
        self, referrer_id: int
    ) -> dict[int, dict[str, int | Decimal]]:
        """
        Get commission statistics grouped by depth in a single query.

        Args:
            referrer_id: Referring account ID

        Returns:
            Dict mapping depth to {"count": n, "total_earned": Decimal}
        """
        stmt = (
            select(
                ReferralCommission.depth,
                func.count(ReferralCommission.id).label("commissions_count"),
                func.coalesce(
                    func.sum(ReferralCommission.amount), 0
                ).label("total_earned"),
            )
            .where(ReferralCommission.referrer_id == referrer_id)
            .group_by(ReferralCommission.depth)
        )
        result = await self.session.execute(stmt)

        return {
            row.depth: {
                "count": row.commissions_count,
                "total_earned": Decimal(str(row.total_earned)),
            }
            for row in result.all()
        }
