"""
Ledger service.

Every wallet balance change goes through post_entry, which applies the
amount with a single conditional UPDATE and appends a Transaction whose
balance_before links to the previous row of the same wallet.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.models.enums import TransactionType, WalletType
from earnhub.models.transaction import Transaction
from earnhub.repositories.account_repository import AccountRepository
from earnhub.repositories.profile_repository import ProfileRepository
from earnhub.repositories.transaction_repository import TransactionRepository
from earnhub.services.base_service import BaseService, transaction
from earnhub.services.ledger.replay import ReplayReport, quantize_money, replay_wallet
from earnhub.utils.exceptions import (
    InconsistentLedgerError,
    InsufficientFundsError,
    LedgerFrozenError,
    NotFoundError,
)
from earnhub.validators import validate_amount


class LedgerService(BaseService):
    """Append-only wallet ledger."""

    def __init__(self, session: AsyncSession, **kwargs) -> None:
        """Initialize ledger service."""
        super().__init__(session, **kwargs)
        self.account_repo = AccountRepository(session)
        self.profile_repo = ProfileRepository(session)
        self.tx_repo = TransactionRepository(session)

    @transaction
    async def post_entry(
        self,
        account_id: int,
        wallet: WalletType,
        tx_type: TransactionType,
        amount: Decimal,
        reference_type: str | None = None,
        reference: str | None = None,
        description: str | None = None,
        counts_as_earnings: bool = False,
    ) -> Transaction:
        """
        Apply a signed amount to a wallet and append the ledger row.

        Joins the caller's unit of work when there is one.

        Args:
            account_id: Account ID
            wallet: Wallet to change
            tx_type: Transaction type
            amount: Signed amount, credits positive
            reference_type: Kind of causing event
            reference: Causing event identifier
            description: Free text
            counts_as_earnings: Also add the amount to total_earnings

        Returns:
            Created Transaction

        Raises:
            NotFoundError: If account or profile is missing
            InsufficientFundsError: If a debit exceeds the balance
            LedgerFrozenError: If the account is frozen
            InconsistentLedgerError: If the chain link does not match
        """
        if amount == 0:
            raise ValueError("Ledger amount must be non-zero")
        is_valid, _, error = validate_amount(abs(amount))
        if not is_valid:
            raise ValueError(f"Invalid ledger amount: {error}")
        amount = quantize_money(amount)

        account = await self.account_repo.get_by_id(account_id, fresh=True)
        if not account:
            raise NotFoundError(f"Account {account_id} not found", account_id=account_id)
        if account.ledger_frozen:
            raise LedgerFrozenError(
                f"Ledger of account {account_id} is frozen: {account.frozen_reason}",
                frozen_account_id=account_id,
            )

        new_balance = await self.profile_repo.apply_balance_delta(
            account_id, wallet, amount
        )
        if new_balance is None:
            if amount < 0 and await self.profile_repo.exists(account_id=account_id):
                raise InsufficientFundsError(
                    f"{wallet} wallet of account {account_id} cannot cover {-amount}",
                    account_id=account_id,
                    wallet=str(wallet),
                )
            raise NotFoundError(
                f"Profile of account {account_id} not found", account_id=account_id
            )

        balance_after = quantize_money(new_balance)
        balance_before = balance_after - amount

        previous = await self.tx_repo.get_last(account_id, wallet)
        expected_before = (
            quantize_money(previous.balance_after) if previous else Decimal("0")
        )
        if balance_before != expected_before:
            raise InconsistentLedgerError(
                f"Chain mismatch on {wallet} wallet of account {account_id}: "
                f"previous balance_after={expected_before}, "
                f"stored balance before this entry={balance_before}",
                account_id=account_id,
                wallet=str(wallet),
                previous_transaction_id=previous.id if previous else None,
            )

        entry = await self.tx_repo.create(
            account_id=account_id,
            wallet=wallet,
            tx_type=tx_type,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            reference_type=reference_type,
            reference=reference,
            description=description,
        )

        if counts_as_earnings and amount > 0:
            await self.profile_repo.add_to_totals(account_id, earnings=amount)

        self.logger.debug(
            f"Ledger entry {entry.id}: {tx_type} {amount} on {wallet} wallet",
            extra={
                "account_id": account_id,
                "transaction_id": entry.id,
                "balance_after": str(balance_after),
            },
        )
        return entry

    @transaction
    async def record_deposit(
        self, account_id: int, amount: Decimal, deposit_ref: str
    ) -> Transaction:
        """
        Credit a confirmed deposit to the personal wallet.

        Idempotent per deposit_ref: a repeated call returns the row
        recorded the first time.

        Args:
            account_id: Account ID
            amount: Deposit amount (> 0)
            deposit_ref: Payment layer reference

        Returns:
            Deposit Transaction
        """
        if amount <= 0:
            raise ValueError("Deposit amount must be positive")

        existing = await self._get_locked_reference(
            account_id, WalletType.PERSONAL, TransactionType.DEPOSIT, deposit_ref
        )
        if existing:
            self.logger.info(
                f"Deposit {deposit_ref} already recorded as transaction {existing.id}",
                extra={"account_id": account_id},
            )
            return existing

        entry = await self.post_entry(
            account_id,
            WalletType.PERSONAL,
            TransactionType.DEPOSIT,
            amount,
            reference_type="deposit",
            reference=deposit_ref,
            description="Confirmed deposit",
        )
        await self.profile_repo.add_to_totals(account_id, deposited=entry.amount)

        self.logger.info(
            f"Deposit {deposit_ref} of {entry.amount} recorded",
            extra={"account_id": account_id, "transaction_id": entry.id},
        )
        return entry

    @transaction
    async def record_withdrawal(
        self, account_id: int, amount: Decimal, withdrawal_ref: str
    ) -> Transaction:
        """
        Debit the income wallet for a withdrawal.

        Idempotent per withdrawal_ref.

        Raises:
            InsufficientFundsError: If the income wallet cannot cover it
        """
        if amount <= 0:
            raise ValueError("Withdrawal amount must be positive")

        existing = await self._get_locked_reference(
            account_id, WalletType.INCOME, TransactionType.WITHDRAWAL, withdrawal_ref
        )
        if existing:
            return existing

        return await self.post_entry(
            account_id,
            WalletType.INCOME,
            TransactionType.WITHDRAWAL,
            -amount,
            reference_type="withdrawal",
            reference=withdrawal_ref,
            description="Withdrawal",
        )

    @transaction
    async def record_adjustment(
        self, account_id: int, wallet: WalletType, amount: Decimal, reason: str
    ) -> Transaction:
        """Manual signed correction of a wallet."""
        self.logger.warning(
            f"Manual adjustment of {amount} on {wallet} wallet of account {account_id}: {reason}"
        )
        return await self.post_entry(
            account_id,
            wallet,
            TransactionType.ADJUSTMENT,
            amount,
            reference_type="adjustment",
            description=reason,
        )

    async def get_balance(self, account_id: int, wallet: WalletType) -> Decimal:
        """
        Get current wallet balance.

        Raises:
            NotFoundError: If the profile is missing
        """
        profile = await self.profile_repo.get_by_account_id(account_id, fresh=True)
        if not profile:
            raise NotFoundError(
                f"Profile of account {account_id} not found", account_id=account_id
            )
        return profile.balance_of(wallet)

    async def get_history(
        self,
        account_id: int,
        wallet: WalletType | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Transaction]:
        """Get ledger rows of an account, newest first."""
        return await self.tx_repo.get_history(
            account_id, wallet=wallet, limit=limit, offset=offset
        )

    @transaction
    async def verify_account(self, account_id: int) -> dict[WalletType, ReplayReport]:
        """
        Replay every wallet of an account.

        Returns:
            Replay report per wallet

        Raises:
            NotFoundError: If the profile is missing
            InconsistentLedgerError: If any wallet fails replay (the
                account is frozen)
        """
        profile = await self.profile_repo.get_by_account_id(account_id, fresh=True)
        if not profile:
            raise NotFoundError(
                f"Profile of account {account_id} not found", account_id=account_id
            )

        reports = {}
        for wallet in WalletType:
            rows = await self.tx_repo.get_chain(account_id, wallet)
            reports[wallet] = replay_wallet(wallet, rows, profile.balance_of(wallet))

        broken = [report for report in reports.values() if not report.is_consistent]
        if broken:
            details = "; ".join(
                f"{r.wallet}: replayed={r.replayed_balance} stored={r.stored_balance} "
                f"broken_links={r.broken_links}"
                for r in broken
            )
            raise InconsistentLedgerError(
                f"Replay failed for account {account_id}: {details}",
                account_id=account_id,
            )

        return reports

    @transaction
    async def freeze_account(self, account_id: int, reason: str) -> None:
        """Block ledger writes for an account."""
        if not await self.account_repo.set_frozen(account_id, True, reason=reason):
            raise NotFoundError(f"Account {account_id} not found", account_id=account_id)
        self.logger.warning(f"Account {account_id} ledger frozen: {reason}")

    @transaction
    async def unfreeze_account(self, account_id: int) -> None:
        """Allow ledger writes again after manual reconciliation."""
        if not await self.account_repo.set_frozen(account_id, False):
            raise NotFoundError(f"Account {account_id} not found", account_id=account_id)
        self.logger.info(f"Account {account_id} ledger unfrozen")

    async def _get_locked_reference(
        self,
        account_id: int,
        wallet: WalletType,
        tx_type: TransactionType,
        reference: str,
    ) -> Transaction | None:
        """Lock the profile row, then look up an already recorded event."""
        if not await self.profile_repo.lock_row(account_id):
            raise NotFoundError(
                f"Profile of account {account_id} not found", account_id=account_id
            )
        return await self.tx_repo.get_by_reference(account_id, wallet, tx_type, reference)
