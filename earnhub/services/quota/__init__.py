"""
Quota and completion engine package.
"""

from earnhub.services.quota.quota_service import (
    CompletionResult,
    QuotaService,
    QuotaStatus,
    TaskStatistics,
)


__all__ = [
    "CompletionResult",
    "QuotaService",
    "QuotaStatus",
    "TaskStatistics",
]
