"""
Payment event service.

Entry point for events emitted by the payment layer. Each step is its
own unit of work and idempotent, so a redelivered event is safe to
process again.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.config.settings import settings
from earnhub.models.account import Account
from earnhub.models.enums import QualifyingEventType, TierChangeReason
from earnhub.models.plan import Plan
from earnhub.models.referral_commission import ReferralCommission
from earnhub.models.transaction import Transaction
from earnhub.services.base_service import BaseService, log_operation
from earnhub.services.ledger import LedgerService
from earnhub.services.referral import ReferralCommissionService, ReferralConfig
from earnhub.services.tier_service import TierTransitionService


@dataclass
class DepositOutcome:
    """Result of processing a confirmed deposit."""

    transaction: Transaction
    upgraded_to: Plan | None = None
    commissions: list[ReferralCommission] = field(default_factory=list)


@dataclass
class UpgradeOutcome:
    """Result of processing an upgrade request."""

    account: Account
    plan: Plan
    commissions: list[ReferralCommission] = field(default_factory=list)


class PaymentEventService(BaseService):
    """Applies deposit-confirmed and upgrade-requested events."""

    def __init__(
        self,
        session: AsyncSession,
        auto_upgrade_on_deposit: bool | None = None,
        referral_config: ReferralConfig | None = None,
        **kwargs,
    ) -> None:
        """
        Initialize payment event service.

        Args:
            session: Database session
            auto_upgrade_on_deposit: Override for settings.auto_upgrade_on_deposit
            referral_config: Commission configuration (default: from settings)
        """
        super().__init__(session, **kwargs)
        self.ledger = LedgerService(session, **kwargs)
        self.tier = TierTransitionService(session, **kwargs)
        self.referral = ReferralCommissionService(session, config=referral_config, **kwargs)
        self.auto_upgrade_on_deposit = (
            settings.auto_upgrade_on_deposit
            if auto_upgrade_on_deposit is None
            else auto_upgrade_on_deposit
        )

    @log_operation
    async def on_deposit_confirmed(
        self, account_id: int, amount: Decimal, deposit_ref: str
    ) -> DepositOutcome:
        """
        Credit a confirmed deposit and pay referral commissions on it.

        With auto upgrade enabled, the account also moves to the best
        plan its total deposits cover.

        Args:
            account_id: Depositing account
            amount: Deposit amount
            deposit_ref: Payment layer reference

        Returns:
            DepositOutcome
        """
        entry = await self.ledger.record_deposit(account_id, amount, deposit_ref)

        upgraded_to = None
        if self.auto_upgrade_on_deposit:
            plan = await self.tier.find_auto_upgrade_plan(account_id)
            if plan:
                await self.tier.transition(
                    account_id,
                    plan.id,
                    TierChangeReason.AUTO_UPGRADE,
                    source_ref=f"deposit:{deposit_ref}",
                )
                upgraded_to = plan

        commissions = await self.referral.on_qualifying_event(
            account_id,
            QualifyingEventType.DEPOSIT_CONFIRMED,
            entry.amount,
            source_ref=f"deposit:{deposit_ref}",
        )

        return DepositOutcome(
            transaction=entry,
            upgraded_to=upgraded_to,
            commissions=commissions,
        )

    @log_operation
    async def on_upgrade_requested(
        self, account_id: int, new_plan_ref: int | str, upgrade_ref: str
    ) -> UpgradeOutcome:
        """
        Apply a paid upgrade and pay referral commissions on the plan price.

        Payment is validated upstream. A redelivered event does not
        write a second tier change, and one arriving after a newer
        upgrade does not move the account back.

        Args:
            account_id: Upgrading account
            new_plan_ref: Target plan id or code
            upgrade_ref: Payment layer reference

        Returns:
            UpgradeOutcome
        """
        plan = await self.tier.catalog.get_plan(new_plan_ref)
        account = await self.tier.account_repo.get_by_id(account_id, fresh=True)

        if account and account.plan_id == plan.id:
            self.logger.info(
                f"Account {account_id} already on plan {plan.code}, "
                f"upgrade {upgrade_ref} not re-applied"
            )
        else:
            account = await self.tier.transition(
                account_id, plan.id, TierChangeReason.UPGRADE, source_ref=upgrade_ref
            )

        commissions = []
        if plan.price > 0:
            commissions = await self.referral.on_qualifying_event(
                account_id,
                QualifyingEventType.TIER_UPGRADE,
                plan.price,
                source_ref=f"upgrade:{upgrade_ref}",
            )

        return UpgradeOutcome(account=account, plan=plan, commissions=commissions)
