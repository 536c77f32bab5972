"""
Referral commission service.

Walks the referral chain of an account on qualifying financial events
and pays each upline level into its income wallet. Every level is its
own unit of work, so no lock spans the chain. The unique constraint on
(source_ref, referrer_id, depth) makes reprocessing an event a no-op.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.account import Account
from earnhub.models.enums import QualifyingEventType, TransactionType, WalletType
from earnhub.models.referral_commission import ReferralCommission
from earnhub.repositories.account_repository import AccountRepository
from earnhub.repositories.referral_commission_repository import (
    ReferralCommissionRepository,
)
from earnhub.services.base_service import BaseService, log_operation, transaction
from earnhub.services.ledger import LedgerService
from earnhub.services.referral.config import ReferralConfig
from earnhub.utils.exceptions import LedgerFrozenError, NotFoundError
from earnhub.validators import validate_amount


@dataclass
class ReferralEarningsSummary:
    """Commission earnings of a referring account."""

    total_earned: Decimal = Decimal("0")
    commissions_count: int = 0
    by_depth: dict[int, dict[str, int | Decimal]] = field(default_factory=dict)


class ReferralCommissionService(BaseService):
    """Referral commission engine."""

    def __init__(
        self,
        session: AsyncSession,
        config: ReferralConfig | None = None,
        **kwargs,
    ) -> None:
        """
        Initialize referral commission service.

        Args:
            session: Database session
            config: Depth limit and rates (default: from settings)
        """
        super().__init__(session, **kwargs)
        self.config = config or ReferralConfig()
        self.account_repo = AccountRepository(session)
        self.commission_repo = ReferralCommissionRepository(session)
        self.ledger = LedgerService(session, **kwargs)

    @log_operation
    async def on_qualifying_event(
        self,
        account_id: int,
        event_type: QualifyingEventType | str,
        amount: Decimal,
        source_ref: str,
    ) -> list[ReferralCommission]:
        """
        Pay referral commissions for a qualifying event.

        Args:
            account_id: Account whose event it is
            event_type: deposit_confirmed or tier_upgrade
            amount: Event amount commissions are computed from
            source_ref: Unique event reference

        Returns:
            Commissions created by this call (already paid levels excluded)

        Raises:
            ValueError: If event type, amount or reference is invalid
            NotFoundError: If the account does not exist
        """
        event_type = QualifyingEventType(event_type)
        is_valid, amount, error = validate_amount(amount)
        if not is_valid:
            raise ValueError(f"Invalid event amount: {error}")
        if not source_ref:
            raise ValueError("source_ref is required")

        if not await self.account_repo.exists(id=account_id):
            raise NotFoundError(f"Account {account_id} not found", account_id=account_id)

        created: list[ReferralCommission] = []
        visited = {account_id}
        current_id = account_id

        for depth in range(1, self.config.max_depth + 1):
            referrer_id = await self.account_repo.get_referrer_id(current_id)
            if referrer_id is None:
                # Root account, or its referrer was deleted (SET NULL)
                self.logger.debug(
                    f"Referral walk for {source_ref} ended at depth {depth}: "
                    f"account {current_id} has no referrer",
                    extra={"account_id": account_id},
                )
                break

            if referrer_id in visited:
                self.logger.warning(
                    f"Referral cycle at account {referrer_id}, walk truncated",
                    extra={"source_ref": source_ref, "depth": depth},
                )
                break
            visited.add(referrer_id)

            commission = self.config.commission_for(amount, depth)
            if commission > 0:
                try:
                    row = await self._pay_level(
                        referrer_id=referrer_id,
                        referred_id=account_id,
                        event_type=event_type,
                        source_amount=amount,
                        source_ref=source_ref,
                        depth=depth,
                        commission=commission,
                    )
                except IntegrityError:
                    # Paid by a concurrent run of the same event
                    row = None
                except LedgerFrozenError as e:
                    self.logger.critical(
                        f"Commission for referrer {referrer_id} skipped: {e}",
                        extra={"source_ref": source_ref, "depth": depth},
                    )
                    row = None

                if row:
                    created.append(row)

            current_id = referrer_id

        if created:
            self.logger.info(
                f"Paid {len(created)} referral commissions for {event_type} {source_ref}",
                extra={
                    "account_id": account_id,
                    "total": str(sum(c.amount for c in created)),
                },
            )
        return created

    @transaction
    async def _pay_level(
        self,
        referrer_id: int,
        referred_id: int,
        event_type: QualifyingEventType,
        source_amount: Decimal,
        source_ref: str,
        depth: int,
        commission: Decimal,
    ) -> ReferralCommission | None:
        """Insert one commission row and credit it, or skip if already paid."""
        if await self.commission_repo.get_for_level(source_ref, referrer_id, depth):
            self.logger.debug(
                f"Commission {source_ref} depth {depth} already paid to {referrer_id}"
            )
            return None

        row = await self.commission_repo.create(
            referrer_id=referrer_id,
            referred_id=referred_id,
            source_ref=source_ref,
            event_type=event_type,
            source_amount=source_amount,
            rate=self.config.rate_for_depth(depth),
            amount=commission,
            depth=depth,
        )
        entry = await self.ledger.post_entry(
            referrer_id,
            WalletType.INCOME,
            TransactionType.COMMISSION,
            commission,
            reference_type="referral_commission",
            reference=str(row.id),
            description=f"Level {depth} commission for {event_type} {source_ref}",
            counts_as_earnings=True,
        )
        row.transaction_id = entry.id
        await self.session.flush()
        return row

    async def get_referral_chain(self, account_id: int) -> list[Account]:
        """
        Get upline accounts, direct referrer first.

        Stops at the depth limit, a missing account or a cycle.
        """
        chain: list[Account] = []
        visited = {account_id}
        current_id = account_id

        for _ in range(self.config.max_depth):
            referrer_id = await self.account_repo.get_referrer_id(current_id)
            if referrer_id is None or referrer_id in visited:
                break
            referrer = await self.account_repo.get_by_id(referrer_id)
            if not referrer:
                break
            chain.append(referrer)
            visited.add(referrer_id)
            current_id = referrer_id

        return chain

    async def get_earnings_summary(self, account_id: int) -> ReferralEarningsSummary:
        """Get commission totals of a referring account, per depth."""
        by_depth = await self.commission_repo.get_stats_by_depth(account_id)
        return ReferralEarningsSummary(
            total_earned=sum(
                (stats["total_earned"] for stats in by_depth.values()), Decimal("0")
            ),
            commissions_count=sum(stats["count"] for stats in by_depth.values()),
            by_depth=by_depth,
        )

    async def get_team_counts(self, account_id: int) -> dict[int, int]:
        """
        Count downline accounts per depth.

        Returns:
            Dict mapping depth (1..max_depth) to number of accounts
        """
        counts: dict[int, int] = {}
        seen = {account_id}
        level_ids = [account_id]

        for depth in range(1, self.config.max_depth + 1):
            level_ids = [
                referred_id
                for referred_id in await self.account_repo.get_referred_ids(level_ids)
                if referred_id not in seen
            ]
            seen.update(level_ids)
            counts[depth] = len(level_ids)

        return counts
