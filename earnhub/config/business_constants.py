"""
Business logic constants for EarnHub.

Central location for business rules and constants used across the application.
This module has no imports from earnhub so settings and services can both use it.
"""

from decimal import Decimal

# Trial window
DEFAULT_TRIAL_DURATION_DAYS = 3
DEFAULT_TRIAL_PLAN_CODE = "intern"

# Referral program: depth -> rate, index 0 is the direct referrer
DEFAULT_REFERRAL_RATES = (
    Decimal("0.10"),  # 10% for level 1 (direct referrer)
    Decimal("0.05"),  # 5% for level 2
)
DEFAULT_REFERRAL_MAX_DEPTH = 3

# Money precision (matches DECIMAL(18, 8) columns)
MONEY_QUANT = Decimal("0.00000001")

# Referral code alphabet (no ambiguous characters)
REFERRAL_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

# Display handles
DISPLAY_HANDLE_MAX_LENGTH = 32
DISPLAY_HANDLE_FALLBACK = "user"
DISPLAY_HANDLE_MAX_ATTEMPTS = 5

# Task identifiers are opaque strings supplied by the presentation layer
TASK_ID_MAX_LENGTH = 64

# Background job time limits (milliseconds)
JOB_TIME_LIMIT_SWEEP = 600_000  # 10 min
JOB_TIME_LIMIT_RECONCILE = 300_000  # 5 min
