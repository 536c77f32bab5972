"""
Referral services package.

Contains the referral commission engine:
- config: Depth limit and per-depth rates (ReferralConfig)
- commission_service: Chain walk, commission posting and referral queries
"""

from earnhub.services.referral.commission_service import (
    ReferralCommissionService,
    ReferralEarningsSummary,
)
from earnhub.services.referral.config import ReferralConfig


__all__ = [
    "ReferralConfig",
    "ReferralCommissionService",
    "ReferralEarningsSummary",
]
