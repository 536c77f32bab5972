"""
Referral program configuration.

Rates are an ordered table indexed by depth (index 0 = direct referrer).
Depths beyond the table earn nothing.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal

from earnhub.config.business_constants import MONEY_QUANT
from earnhub.config.settings import settings


@dataclass(frozen=True)
class ReferralConfig:
    """Depth limit and per-depth commission rates."""

    rates: tuple[Decimal, ...] = field(
        default_factory=lambda: tuple(settings.referral_rates)
    )
    max_depth: int = field(default_factory=lambda: settings.referral_max_depth)

    @classmethod
    def from_values(
        cls, rates: Sequence[Decimal | str] | None = None, max_depth: int | None = None
    ) -> "ReferralConfig":
        """Build a config, falling back to settings for missing values."""
        if rates is None:
            rates = settings.referral_rates
        if max_depth is None:
            max_depth = settings.referral_max_depth
        return cls(rates=tuple(Decimal(r) for r in rates), max_depth=max_depth)

    def rate_for_depth(self, depth: int) -> Decimal:
        """
        Get the commission rate of a depth.

        Args:
            depth: 1 for the direct referrer, 2 for their referrer, ...

        Returns:
            Rate, zero beyond the table or the depth limit
        """
        if depth < 1 or depth > self.max_depth or depth > len(self.rates):
            return Decimal("0")
        return self.rates[depth - 1]

    def commission_for(self, amount: Decimal, depth: int) -> Decimal:
        """Commission of a depth, rounded down to ledger precision."""
        return (Decimal(amount) * self.rate_for_depth(depth)).quantize(
            MONEY_QUANT, rounding=ROUND_DOWN
        )
