"""
Tier transition service.

Applies plan changes to accounts and keeps every account's cached daily
quota equal to its plan's quota. Payment is validated by the caller;
purchase_plan is the one path that also debits the personal wallet.
"""

from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.config.settings import settings
from earnhub.models.account import Account
from earnhub.models.enums import (
    TierChangeReason,
    TransactionType,
    TrialExpiryPolicy,
    WalletType,
)
from earnhub.models.plan import Plan
from earnhub.repositories.account_repository import AccountRepository
from earnhub.repositories.plan_repository import PlanRepository
from earnhub.repositories.profile_repository import ProfileRepository
from earnhub.repositories.tier_change_repository import TierChangeRepository
from earnhub.repositories.transaction_repository import TransactionRepository
from earnhub.services.base_service import BaseService, log_operation, transaction
from earnhub.services.ledger import LedgerService
from earnhub.services.plan_catalog_service import PlanCatalogService
from earnhub.utils.datetime_utils import operative_day
from earnhub.utils.exceptions import ConflictError, NotFoundError, is_fatal


@dataclass
class SweepResult:
    """Result of a trial expiry sweep."""

    checked: int = 0
    expired: int = 0
    skipped: int = 0
    failed: int = 0


class TierTransitionService(BaseService):
    """Tier transitions, trial expiry and quota reconciliation."""

    def __init__(
        self,
        session: AsyncSession,
        trial_expiry_policy: TrialExpiryPolicy | str | None = None,
        post_trial_plan_code: str | None = None,
        **kwargs,
    ) -> None:
        """
        Initialize tier transition service.

        Args:
            session: Database session
            trial_expiry_policy: Override for settings.trial_expiry_policy
            post_trial_plan_code: Override for settings.post_trial_plan_code
        """
        super().__init__(session, **kwargs)
        self.account_repo = AccountRepository(session)
        self.profile_repo = ProfileRepository(session)
        self.plan_repo = PlanRepository(session)
        self.tier_change_repo = TierChangeRepository(session)
        self.tx_repo = TransactionRepository(session)
        self.catalog = PlanCatalogService(
            session, post_trial_plan_code=post_trial_plan_code, **kwargs
        )
        self.ledger = LedgerService(session, **kwargs)
        self.trial_expiry_policy = TrialExpiryPolicy(
            trial_expiry_policy or settings.trial_expiry_policy
        )

    @transaction
    async def transition(
        self,
        account_id: int,
        new_plan_ref: int | str,
        reason: TierChangeReason | str,
        source_ref: str | None = None,
    ) -> Account:
        """
        Move an account to another plan.

        Args:
            account_id: Account ID
            new_plan_ref: Target plan id or code
            reason: Why the account moves
            source_ref: Causing event reference; an event already applied
                to the account leaves it unchanged

        Returns:
            Updated account

        Raises:
            NotFoundError: If account or plan is missing, or the plan is inactive
        """
        plan = await self._get_assignable_plan(new_plan_ref)
        account = await self._get_locked_account(account_id)
        if await self._already_applied(account_id, source_ref):
            return account
        return await self._apply(account, plan, TierChangeReason(reason), source_ref)

    async def expire_trial_if_due(self, account_id: int) -> Account:
        """
        End the trial if its window has passed.

        Under the "downgrade" policy the account moves to the post-trial
        plan. Under "suspend" it keeps its plan but stops earning until an
        explicit upgrade.

        Returns:
            Account (unchanged if the trial is not due)
        """
        account, _ = await self._expire_trial(account_id)
        return account

    @transaction
    async def _expire_trial(self, account_id: int) -> tuple[Account, bool]:
        """End a due trial; the flag tells whether this call ended it."""
        today = operative_day(self.clock())
        account = await self._get_locked_account(account_id)

        profile = await self.profile_repo.get_by_account_id(account_id, fresh=True)
        if not profile:
            raise NotFoundError(
                f"Profile of account {account_id} not found", account_id=account_id
            )
        if (
            not profile.trial_active
            or profile.trial_end_date is None
            or today <= profile.trial_end_date
        ):
            return account, False

        if not await self.profile_repo.end_trial(account_id):
            # Ended concurrently
            return account, False

        if self.trial_expiry_policy == TrialExpiryPolicy.DOWNGRADE:
            plan = await self.catalog.get_post_trial_plan()
            account = await self._apply(
                account,
                plan,
                TierChangeReason.TRIAL_EXPIRED,
                source_ref=f"trial:{profile.trial_end_date.isoformat()}",
            )
        else:
            await self.profile_repo.set_earning_suspended(account_id, True)
            self.logger.info(
                f"Trial of account {account_id} expired, earning suspended",
                extra={"account_id": account_id, "trial_end_date": str(profile.trial_end_date)},
            )

        return account, True

    @transaction
    async def reconcile_quotas(self, plan_ref: int | str) -> int:
        """
        Rewrite the cached quota of every account on a plan.

        Completion rows already recorded today are not touched.

        Args:
            plan_ref: Plan id or code

        Returns:
            Number of accounts changed
        """
        plan = await self.catalog.get_plan(plan_ref)
        changed = await self.account_repo.reconcile_quota(plan.id, plan.daily_task_quota)

        if changed:
            self.logger.info(
                f"Reconciled {changed} accounts on plan {plan.code} "
                f"to quota {plan.daily_task_quota}",
                extra={"plan_id": plan.id},
            )
        return changed

    @transaction
    async def reconcile_all_quotas(self) -> dict[str, int]:
        """
        Reconcile cached quotas for every plan.

        Returns:
            Plan code to number of accounts changed
        """
        results = {}
        for plan in await self.plan_repo.list_all():
            results[plan.code] = await self.account_repo.reconcile_quota(
                plan.id, plan.daily_task_quota
            )

        total = sum(results.values())
        if total:
            self.logger.info(f"Reconciled {total} accounts across {len(results)} plans")
        return results

    @log_operation
    async def sweep_expired_trials(self, limit: int | None = None) -> SweepResult:
        """
        Expire every trial whose window has passed.

        Each account is its own unit of work; a failing account is logged
        and does not stop the sweep.
        Trials ended meanwhile by another worker count as skipped.

        Args:
            limit: Maximum accounts per sweep (default: settings.trial_sweep_batch_size)

        Returns:
            SweepResult
        """
        today = operative_day(self.clock())
        account_ids = await self.account_repo.find_due_trial_ids(
            today, limit or settings.trial_sweep_batch_size
        )
        result = SweepResult(checked=len(account_ids))

        for account_id in account_ids:
            try:
                _, ended = await self._expire_trial(account_id)
                if ended:
                    result.expired += 1
                else:
                    result.skipped += 1
            except Exception as e:
                if is_fatal(e):
                    raise
                result.failed += 1
                self.logger.error(
                    f"Trial expiry failed for account {account_id}: {e}",
                    extra={"account_id": account_id},
                )

        return result

    @transaction
    async def purchase_plan(
        self, account_id: int, plan_ref: int | str, source_ref: str
    ) -> Account:
        """
        Buy a plan with the personal wallet.

        Idempotent per source_ref.

        Raises:
            NotFoundError: If account or plan is missing
            ConflictError: If the account is already on the plan
            InsufficientFundsError: If the personal wallet cannot cover the price
        """
        plan = await self._get_assignable_plan(plan_ref)
        account = await self._get_locked_account(account_id)

        already_paid = await self.tx_repo.get_by_reference(
            account_id, WalletType.PERSONAL, TransactionType.PLAN_PURCHASE, source_ref
        )
        if already_paid:
            self.logger.info(f"Plan purchase {source_ref} already applied")
            return account
        if await self._already_applied(account_id, source_ref):
            return account

        if account.plan_id == plan.id:
            raise ConflictError(
                f"Account {account_id} is already on plan {plan.code}",
                account_id=account_id,
            )

        if plan.price > 0:
            await self.ledger.post_entry(
                account_id,
                WalletType.PERSONAL,
                TransactionType.PLAN_PURCHASE,
                -plan.price,
                reference_type="plan_purchase",
                reference=source_ref,
                description=f"Plan {plan.code}",
            )

        return await self._apply(account, plan, TierChangeReason.PURCHASE, source_ref)

    async def find_auto_upgrade_plan(self, account_id: int) -> Plan | None:
        """
        Find the best plan covered by the account's total deposits.

        Returns:
            Highest-priced active paid plan priced within total deposits
            and above the current plan, or None
        """
        account = await self.account_repo.get_by_id(account_id, fresh=True)
        profile = await self.profile_repo.get_by_account_id(account_id, fresh=True)
        if not account or not profile:
            raise NotFoundError(f"Account {account_id} not found", account_id=account_id)

        return await self.plan_repo.find_best_affordable(
            budget=profile.total_deposited, above_price=account.plan.price
        )

    async def get_trial_days_left(self, account_id: int) -> int:
        """Days left in the trial window, 0 when no trial is running."""
        profile = await self.profile_repo.get_by_account_id(account_id, fresh=True)
        if not profile:
            raise NotFoundError(
                f"Profile of account {account_id} not found", account_id=account_id
            )

        today = operative_day(self.clock())
        if not profile.is_trial_running(today):
            return 0
        return (profile.trial_end_date - today + timedelta(days=1)).days

    async def _already_applied(self, account_id: int, source_ref: str | None) -> bool:
        if source_ref is None:
            return False
        applied = await self.tier_change_repo.get_by_source_ref(account_id, source_ref)
        if applied:
            self.logger.info(
                f"Tier change {source_ref} already applied to account {account_id}",
                extra={"account_id": account_id, "tier_change_id": applied.id},
            )
        return applied is not None

    async def _get_assignable_plan(self, plan_ref: int | str) -> Plan:
        plan = await self.catalog.get_plan(plan_ref)
        if not plan.is_active:
            raise NotFoundError(f"Plan {plan.code} is not active", plan_ref=plan_ref)
        return plan

    async def _get_locked_account(self, account_id: int) -> Account:
        account = await self.account_repo.get_for_update(account_id)
        if not account:
            raise NotFoundError(f"Account {account_id} not found", account_id=account_id)
        return account

    async def _apply(
        self,
        account: Account,
        plan: Plan,
        reason: TierChangeReason,
        source_ref: str | None,
    ) -> Account:
        """Write plan, cached quota, trial and suspension state plus audit row."""
        from_plan_id = account.plan_id

        await self.account_repo.set_plan(account.id, plan.id, plan.daily_task_quota)
        if not plan.is_trial:
            await self.profile_repo.end_trial(account.id)
        await self.profile_repo.set_earning_suspended(account.id, False)

        await self.tier_change_repo.create(
            account_id=account.id,
            from_plan_id=from_plan_id,
            to_plan_id=plan.id,
            reason=reason,
            source_ref=source_ref,
        )

        self.logger.info(
            f"Account {account.id} moved to plan {plan.code} ({reason})",
            extra={
                "account_id": account.id,
                "from_plan_id": from_plan_id,
                "to_plan_id": plan.id,
                "quota": plan.daily_task_quota,
            },
        )
        return await self.account_repo.get_by_id(account.id, fresh=True)
