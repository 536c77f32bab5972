"""
Plan repository.

Data access layer for Plan model.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.plan import Plan
from earnhub.repositories.base import BaseRepository


class PlanRepository(BaseRepository[Plan]):
    """Plan repository with catalog queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize plan repository."""
        super().__init__(Plan, session)

    async def get_by_code(self, code: str) -> Plan | None:
        """Get plan by its stable code."""
        return await self.get_by(code=code)

    async def get_by_ref(self, plan_ref: int | str) -> Plan | None:
        """
        Get plan by id or code.

        Args:
            plan_ref: Integer id or string code

        Returns:
            Plan or None if not found
        """
        if isinstance(plan_ref, int):
            return await self.get_by_id(plan_ref)
        return await self.get_by_code(plan_ref)

    async def list_active(self, include_trial: bool = True) -> list[Plan]:
        """
        List active plans ordered by price.

        Args:
            include_trial: Include trial plans

        Returns:
            Active plans, cheapest first
        """
        stmt = select(Plan).where(Plan.is_active.is_(True))
        if not include_trial:
            stmt = stmt.where(Plan.is_trial.is_(False))
        stmt = stmt.order_by(Plan.price.asc(), Plan.id.asc())

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_cheapest_active(
        self, include_trial: bool = True
    ) -> Plan | None:
        """Get the lowest-price active plan."""
        plans = await self.list_active(include_trial=include_trial)
        return plans[0] if plans else None

    async def find_best_affordable(
        self, budget: Decimal, above_price: Decimal
    ) -> Plan | None:
        """
        Find the highest-priced active non-trial plan within budget.

        Args:
            budget: Maximum price (inclusive)
            above_price: Minimum price (exclusive)

        Returns:
            Plan or None if nothing fits
        """
        stmt = (
            select(Plan)
            .where(
                Plan.is_active.is_(True),
                Plan.is_trial.is_(False),
                Plan.price <= budget,
                Plan.price > above_price,
            )
            .order_by(Plan.price.desc(), Plan.id.asc())
            .limit(1)
        )

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_all(self) -> list[Plan]:
        """List every plan, active or not."""
        result = await self.session.execute(select(Plan).order_by(Plan.id))
        return list(result.scalars().all())
