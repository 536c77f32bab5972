"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from earnhub.models.account import Account
from earnhub.models.base import Base
from earnhub.models.enums import (
    QualifyingEventType,
    TierChangeReason,
    TransactionType,
    TrialExpiryPolicy,
    WalletType,
)
from earnhub.models.plan import Plan
from earnhub.models.profile import Profile
from earnhub.models.referral_commission import ReferralCommission
from earnhub.models.task_completion import TaskCompletion
from earnhub.models.tier_change import TierChange
from earnhub.models.transaction import Transaction


__all__ = [
    "Base",
    # Accounts
    "Account",
    "Profile",
    # Catalog
    "Plan",
    "TierChange",
    # Earning
    "TaskCompletion",
    "Transaction",
    "ReferralCommission",
    # Enums
    "QualifyingEventType",
    "TierChangeReason",
    "TransactionType",
    "TrialExpiryPolicy",
    "WalletType",
]
