"""
Services.

Business logic layer.
"""

# Base Service Infrastructure
from earnhub.services.base_service import (
    BaseService,
    ServiceResult,
    log_operation,
    transaction,
)

# Ledger
from earnhub.services.ledger import LedgerService, ReplayReport

# Core Services
from earnhub.services.payment_events_service import (
    DepositOutcome,
    PaymentEventService,
    UpgradeOutcome,
)
from earnhub.services.plan_catalog_service import PlanCatalogService
from earnhub.services.provisioning_service import ProvisioningService
from earnhub.services.quota import (
    CompletionResult,
    QuotaService,
    QuotaStatus,
    TaskStatistics,
)

# Referral program
from earnhub.services.referral import (
    ReferralCommissionService,
    ReferralConfig,
    ReferralEarningsSummary,
)
from earnhub.services.tier_service import SweepResult, TierTransitionService


__all__ = [
    # Base Infrastructure
    "BaseService",
    "ServiceResult",
    "log_operation",
    "transaction",
    # Ledger
    "LedgerService",
    "ReplayReport",
    # Core Services
    "PlanCatalogService",
    "ProvisioningService",
    "QuotaService",
    "CompletionResult",
    "QuotaStatus",
    "TaskStatistics",
    "TierTransitionService",
    "SweepResult",
    "PaymentEventService",
    "DepositOutcome",
    "UpgradeOutcome",
    # Referral program
    "ReferralCommissionService",
    "ReferralConfig",
    "ReferralEarningsSummary",
]
