"""
Plan catalog service.

Administered table of membership tiers. Other components only read
plans through this service; quota edits are reconciled onto accounts in
the same unit of work.
"""

from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.config.settings import settings
from earnhub.models.plan import Plan
from earnhub.repositories.account_repository import AccountRepository
from earnhub.repositories.plan_repository import PlanRepository
from earnhub.services.base_service import BaseService, transaction
from earnhub.utils.exceptions import ConflictError, NotFoundError
from earnhub.validators import validate_amount


class PlanCatalogService(BaseService):
    """Plan catalog: lookup, defaults and administration."""

    def __init__(
        self,
        session: AsyncSession,
        trial_plan_code: str | None = None,
        post_trial_plan_code: str | None = None,
        **kwargs,
    ) -> None:
        """
        Initialize plan catalog service.

        Args:
            session: Database session
            trial_plan_code: Override for settings.trial_plan_code
            post_trial_plan_code: Override for settings.post_trial_plan_code
        """
        super().__init__(session, **kwargs)
        self.plan_repo = PlanRepository(session)
        self.account_repo = AccountRepository(session)
        self.trial_plan_code = trial_plan_code or settings.trial_plan_code
        self.post_trial_plan_code = post_trial_plan_code or settings.post_trial_plan_code

    async def list_active_plans(self) -> list[Plan]:
        """List active plans, cheapest first."""
        return await self.plan_repo.list_active()

    async def get_plan(self, plan_ref: int | str) -> Plan:
        """
        Get plan by id or code.

        Raises:
            NotFoundError: If no such plan exists
        """
        plan = await self.plan_repo.get_by_ref(plan_ref)
        if not plan:
            raise NotFoundError(f"Plan {plan_ref!r} not found", plan_ref=plan_ref)
        return plan

    async def get_default_plan(self) -> Plan:
        """
        Resolve the plan assigned at provisioning.

        The configured trial plan when it exists and is active, otherwise
        the lowest-price active plan.

        Raises:
            NotFoundError: If the catalog has no active plan
        """
        if self.trial_plan_code:
            plan = await self.plan_repo.get_by_code(self.trial_plan_code)
            if plan and plan.is_active:
                return plan
            self.logger.warning(
                f"Configured trial plan {self.trial_plan_code!r} is missing or "
                f"inactive, falling back to the cheapest active plan"
            )

        plan = await self.plan_repo.get_cheapest_active()
        if not plan:
            raise NotFoundError("No active plan in the catalog")
        return plan

    async def get_post_trial_plan(self) -> Plan:
        """
        Resolve the plan an expired trial is moved to.

        The configured post-trial plan when it exists and is active,
        otherwise the lowest-price active non-trial plan.

        Raises:
            NotFoundError: If no such plan exists
        """
        if self.post_trial_plan_code:
            plan = await self.plan_repo.get_by_code(self.post_trial_plan_code)
            if plan and plan.is_active:
                return plan
            self.logger.warning(
                f"Configured post-trial plan {self.post_trial_plan_code!r} is "
                f"missing or inactive, falling back to the cheapest paid plan"
            )

        plan = await self.plan_repo.get_cheapest_active(include_trial=False)
        if not plan:
            raise NotFoundError("No active non-trial plan in the catalog")
        return plan

    @transaction
    async def create_plan(
        self,
        code: str,
        name: str,
        price: Decimal,
        daily_task_quota: int,
        reward_per_task: Decimal,
        duration_days: int = 30,
        is_trial: bool = False,
    ) -> Plan:
        """
        Add a plan to the catalog.

        Raises:
            ValueError: If a numeric field is invalid
            ConflictError: If code or name is already used
        """
        for field, value in (("price", price), ("reward_per_task", reward_per_task)):
            is_valid, _, error = validate_amount(value, allow_zero=True)
            if not is_valid:
                raise ValueError(f"Invalid {field}: {error}")
        if daily_task_quota < 0 or duration_days < 0:
            raise ValueError("Quota and duration must be non-negative")

        try:
            plan = await self.plan_repo.create(
                code=code,
                name=name,
                price=Decimal(price),
                daily_task_quota=daily_task_quota,
                reward_per_task=Decimal(reward_per_task),
                duration_days=duration_days,
                is_trial=is_trial,
                is_active=True,
            )
        except IntegrityError as e:
            raise ConflictError(
                f"Plan code {code!r} or name {name!r} already exists"
            ) from e

        self.logger.info(
            f"Plan created: {code}",
            extra={"plan_id": plan.id, "quota": daily_task_quota, "price": str(price)},
        )
        return plan

    @transaction
    async def update_plan_quota(self, plan_ref: int | str, new_quota: int) -> int:
        """
        Change a plan's daily quota and reconcile every account on it.

        Args:
            plan_ref: Plan id or code
            new_quota: New daily task quota

        Returns:
            Number of accounts whose cached quota changed
        """
        if new_quota < 0:
            raise ValueError("Quota must be non-negative")

        plan = await self.get_plan(plan_ref)
        old_quota = plan.daily_task_quota
        plan.daily_task_quota = new_quota
        await self.session.flush()

        changed = await self.account_repo.reconcile_quota(plan.id, new_quota)

        self.logger.info(
            f"Plan {plan.code} quota {old_quota} -> {new_quota}, "
            f"{changed} accounts reconciled",
            extra={"plan_id": plan.id, "accounts_changed": changed},
        )
        return changed

    @transaction
    async def deactivate_plan(self, plan_ref: int | str) -> Plan:
        """
        Stop assigning a plan.

        Accounts already on it keep it until their next transition.
        """
        plan = await self.get_plan(plan_ref)
        plan.is_active = False
        await self.session.flush()

        self.logger.info(f"Plan {plan.code} deactivated", extra={"plan_id": plan.id})
        return plan
