"""
Exception handling utilities.

Defines the error taxonomy of the earning core and categorized exception
tuples for proper error handling.
"""


class EarnHubError(Exception):
    """Base exception for all earning core errors."""

    code = "earnhub_error"

    def __init__(self, message: str = "", **context: object) -> None:
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message
        self.context = context


# Business rejections - terminal, surfaced to the caller, never retried


class BusinessRuleError(EarnHubError):
    """Operation rejected by a business rule."""

    code = "business_rule"


class ConflictError(BusinessRuleError):
    """External reference is owned by a non-matching account."""

    code = "conflict"


class QuotaExceededError(BusinessRuleError):
    """Daily task quota already used up."""

    code = "quota_exceeded"


class DuplicateCompletionError(BusinessRuleError):
    """Task already completed on this operative day."""

    code = "duplicate_completion"


class EarningSuspendedError(BusinessRuleError):
    """Earning is suspended until the account upgrades."""

    code = "earning_suspended"


class InsufficientFundsError(BusinessRuleError):
    """Wallet balance does not cover the debit."""

    code = "insufficient_funds"


class AccountInactiveError(BusinessRuleError):
    """Account is deactivated."""

    code = "account_inactive"


class NotFoundError(EarnHubError):
    """Referenced entity does not exist."""

    code = "not_found"


# Fatal - account gets frozen, needs manual reconciliation


class InconsistentLedgerError(EarnHubError):
    """Ledger chain or balance mismatch detected."""

    code = "inconsistent_ledger"


class LedgerFrozenError(InconsistentLedgerError):
    """Ledger writes blocked pending manual reconciliation."""

    code = "ledger_frozen"


# Transient - retried internally with backoff


class TransientStoreError(EarnHubError):
    """Store contention (lock, serialization failure, lost connection)."""

    code = "transient_store"


# Exception categories based on handling strategy

# Retry with backoff inside the unit of work
RETRYABLE = (
    TransientStoreError,
)

# Return to the caller as-is
TERMINAL = (
    BusinessRuleError,
    NotFoundError,
)

# Log at CRITICAL, never swallow
FATAL = (
    InconsistentLedgerError,
)


def is_retryable(exc: Exception) -> bool:
    """
    Check if exception may be retried.

    Args:
        exc: Exception to check

    Returns:
        True if the failed unit of work may be run again
    """
    return isinstance(exc, RETRYABLE)


def is_terminal(exc: Exception) -> bool:
    """
    Check if exception is a terminal business outcome.

    Args:
        exc: Exception to check

    Returns:
        True if exception should be returned to the caller unchanged
    """
    return isinstance(exc, TERMINAL)


def is_fatal(exc: Exception) -> bool:
    """
    Check if exception signals ledger corruption.

    Args:
        exc: Exception to check

    Returns:
        True if exception must be escalated
    """
    return isinstance(exc, FATAL)


_USER_MESSAGES: dict[str, str] = {
    ConflictError.code: (
        "This identity is already linked to a different account. "
        "Please contact support."
    ),
    QuotaExceededError.code: (
        "You have reached today's task limit. Upgrade your plan or come back tomorrow."
    ),
    DuplicateCompletionError.code: "You have already completed this task today.",
    EarningSuspendedError.code: (
        "Your trial has ended. Activate a plan to keep earning."
    ),
    InsufficientFundsError.code: "Insufficient balance for this operation.",
    AccountInactiveError.code: "Your account is inactive. Please contact support.",
    NotFoundError.code: "The requested item was not found.",
}

GENERIC_RETRY_MESSAGE = "Something went wrong. Please try again later."


def user_message(exc: Exception) -> str:
    """
    Map an exception to text safe to show to end users.

    Business rejections get an actionable message; ledger and store
    failures get a generic retry-later text without internals.

    Args:
        exc: Exception raised by a service

    Returns:
        User-facing message
    """
    if isinstance(exc, EarnHubError):
        return _USER_MESSAGES.get(exc.code, GENERIC_RETRY_MESSAGE)
    return GENERIC_RETRY_MESSAGE
