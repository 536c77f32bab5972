"""
Enumerations shared by models and services.

Values are stored as plain strings so the columns stay readable in SQL.
"""

from enum import StrEnum


class WalletType(StrEnum):
    """Wallets held on every profile."""

    INCOME = "income"  # task rewards and commissions
    PERSONAL = "personal"  # deposits, plan purchases


class TransactionType(StrEnum):
    """Balance-affecting event kinds recorded in the ledger."""

    REWARD = "reward"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    COMMISSION = "commission"
    ADJUSTMENT = "adjustment"
    PLAN_PURCHASE = "plan_purchase"


class TierChangeReason(StrEnum):
    """Why an account moved between plans."""

    TRIAL_EXPIRED = "trial_expired"
    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"
    PURCHASE = "purchase"
    AUTO_UPGRADE = "auto_upgrade"
    ADMIN = "admin"


class QualifyingEventType(StrEnum):
    """Financial events that pay referral commissions."""

    DEPOSIT_CONFIRMED = "deposit_confirmed"
    TIER_UPGRADE = "tier_upgrade"


class TrialExpiryPolicy(StrEnum):
    """What happens to an account when its trial window ends."""

    DOWNGRADE = "downgrade"
    SUSPEND = "suspend"
