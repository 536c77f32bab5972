"""
Ledger replay.

Pure consistency checks over the rows of one wallet. Used by
LedgerService.verify_account and by reconciliation tooling.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from earnhub.config.business_constants import MONEY_QUANT
from earnhub.models.enums import WalletType
from earnhub.models.transaction import Transaction


def quantize_money(value: Decimal) -> Decimal:
    """Round to ledger precision."""
    return Decimal(value).quantize(MONEY_QUANT)


@dataclass
class ReplayReport:
    """Outcome of replaying one wallet."""

    wallet: WalletType
    entries: int = 0
    replayed_balance: Decimal = Decimal("0")
    stored_balance: Decimal = Decimal("0")
    # Ids of rows whose before/after values do not line up
    broken_links: list[int] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        """True if every link holds and the sum matches the stored balance."""
        return not self.broken_links and (
            quantize_money(self.replayed_balance) == quantize_money(self.stored_balance)
        )


def replay_wallet(
    wallet: WalletType,
    rows: Iterable[Transaction],
    stored_balance: Decimal,
) -> ReplayReport:
    """
    Replay a wallet from zero.

    Args:
        wallet: Wallet being replayed
        rows: Ledger rows of the wallet in id order
        stored_balance: Balance currently stored on the profile

    Returns:
        ReplayReport
    """
    report = ReplayReport(wallet=wallet, stored_balance=stored_balance)
    running = Decimal("0")

    for row in rows:
        report.entries += 1
        before = quantize_money(row.balance_before)
        after = quantize_money(row.balance_after)
        amount = quantize_money(row.amount)

        if before != quantize_money(running) or after != before + amount:
            report.broken_links.append(row.id)

        running += amount

    report.replayed_balance = quantize_money(running)
    return report
