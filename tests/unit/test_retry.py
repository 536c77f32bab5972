"""Unit tests for store retry logic."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from earnhub.utils.exceptions import QuotaExceededError, TransientStoreError
from earnhub.utils.retry import (
    as_transient,
    call_with_store_retry,
    is_transient_store_error,
)


def _locked() -> OperationalError:
    return OperationalError("UPDATE profiles", {}, Exception("database is locked"))


class _SerializationFailure(Exception):
    sqlstate = "40001"


class TestTransientClassification:
    """Tests for is_transient_store_error."""

    def test_operational_error_is_transient(self):
        """Lock timeouts surface as OperationalError."""
        assert is_transient_store_error(_locked())

    def test_serialization_failure_is_transient(self):
        """SQLSTATE 40001 is retried even when not an OperationalError."""
        exc = IntegrityError("INSERT", {}, _SerializationFailure())
        assert is_transient_store_error(exc)

    def test_unique_violation_is_not_transient(self):
        """Constraint violations are business outcomes."""
        exc = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
        assert not is_transient_store_error(exc)

    def test_business_error_is_not_transient(self):
        """Non-database errors are never transient."""
        assert not is_transient_store_error(QuotaExceededError())

    def test_as_transient_wraps(self):
        """Driver errors are wrapped; TransientStoreError passes through."""
        wrapped = as_transient(_locked())
        assert isinstance(wrapped, TransientStoreError)
        original = TransientStoreError("x")
        assert as_transient(original) is original


class TestCallWithStoreRetry:
    """Tests for call_with_store_retry."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self):
        """Result is returned without retries."""
        factory = AsyncMock(return_value=42)

        result = await call_with_store_retry(factory, max_attempts=3, base_delay=0)

        assert result == 42
        assert factory.await_count == 1

    @pytest.mark.asyncio
    async def test_recovers_after_contention(self):
        """Contention is retried until an attempt succeeds."""
        factory = AsyncMock(side_effect=[_locked(), _locked(), "ok"])

        result = await call_with_store_retry(factory, max_attempts=3, base_delay=0)

        assert result == "ok"
        assert factory.await_count == 3

    @pytest.mark.asyncio
    async def test_exhausted_raises_transient(self):
        """Spent retry budget surfaces TransientStoreError."""
        factory = AsyncMock(side_effect=_locked())

        with pytest.raises(TransientStoreError):
            await call_with_store_retry(factory, max_attempts=2, base_delay=0)

        assert factory.await_count == 2

    @pytest.mark.asyncio
    async def test_business_error_not_retried(self):
        """Business errors propagate on the first attempt."""
        factory = AsyncMock(side_effect=QuotaExceededError())

        with pytest.raises(QuotaExceededError):
            await call_with_store_retry(factory, max_attempts=5, base_delay=0)

        assert factory.await_count == 1
