"""Unit tests for the error taxonomy and user messages."""

import pytest

from earnhub.utils.exceptions import (
    GENERIC_RETRY_MESSAGE,
    AccountInactiveError,
    ConflictError,
    DuplicateCompletionError,
    EarningSuspendedError,
    InconsistentLedgerError,
    InsufficientFundsError,
    LedgerFrozenError,
    NotFoundError,
    QuotaExceededError,
    TransientStoreError,
    is_fatal,
    is_retryable,
    is_terminal,
    user_message,
)


class TestErrorCategories:
    """Tests for retry/terminal/fatal classification."""

    @pytest.mark.parametrize(
        "exc_class",
        [
            ConflictError,
            QuotaExceededError,
            DuplicateCompletionError,
            EarningSuspendedError,
            InsufficientFundsError,
            AccountInactiveError,
            NotFoundError,
        ],
    )
    def test_business_errors_are_terminal(self, exc_class):
        """Business rejections go back to the caller and are never retried."""
        exc = exc_class("rejected")
        assert is_terminal(exc)
        assert not is_retryable(exc)
        assert not is_fatal(exc)

    def test_ledger_errors_are_fatal(self):
        """Ledger inconsistencies and frozen ledgers are fatal."""
        assert is_fatal(InconsistentLedgerError("chain broken"))
        assert is_fatal(LedgerFrozenError("frozen"))
        assert not is_terminal(InconsistentLedgerError("chain broken"))

    def test_transient_store_error_is_retryable(self):
        """Store contention is the only retryable category."""
        exc = TransientStoreError("locked")
        assert is_retryable(exc)
        assert not is_terminal(exc)
        assert not is_fatal(exc)

    def test_plain_exception_in_no_category(self):
        """Unknown errors are neither retried nor treated as business outcomes."""
        exc = RuntimeError("boom")
        assert not is_retryable(exc)
        assert not is_terminal(exc)
        assert not is_fatal(exc)


class TestErrorContext:
    """Tests for error payloads."""

    def test_context_is_kept(self):
        """Keyword arguments become the error context."""
        exc = InconsistentLedgerError("mismatch", account_id=7, wallet="income")
        assert exc.context == {"account_id": 7, "wallet": "income"}
        assert exc.message == "mismatch"
        assert str(exc) == "mismatch"

    def test_default_message_from_docstring(self):
        """An error raised without a message still renders text."""
        assert str(QuotaExceededError()) == "Daily task quota already used up."

    def test_codes_are_stable(self):
        """Error codes are part of the caller contract."""
        assert QuotaExceededError.code == "quota_exceeded"
        assert DuplicateCompletionError.code == "duplicate_completion"
        assert ConflictError.code == "conflict"
        assert LedgerFrozenError.code == "ledger_frozen"


class TestUserMessage:
    """Tests for user-facing messages."""

    def test_quota_message_is_actionable(self):
        """Quota rejection tells the user how to proceed."""
        message = user_message(QuotaExceededError("limit 3 reached for account 1"))
        assert "task limit" in message
        assert "account 1" not in message

    def test_duplicate_message(self):
        """Duplicate completion has its own message."""
        assert user_message(DuplicateCompletionError()) == (
            "You have already completed this task today."
        )

    @pytest.mark.parametrize(
        "exc",
        [
            InconsistentLedgerError("balance_before=1 != 2", account_id=1),
            TransientStoreError("database is locked"),
            RuntimeError("internal detail"),
        ],
    )
    def test_internal_errors_get_generic_message(self, exc):
        """Ledger and store failures never leak internals."""
        assert user_message(exc) == GENERIC_RETRY_MESSAGE
