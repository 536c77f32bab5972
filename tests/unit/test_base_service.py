"""Unit tests for the unit-of-work decorator and result wrapping."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from earnhub.services.base_service import BaseService, transaction
from earnhub.utils.exceptions import (
    GENERIC_RETRY_MESSAGE,
    InconsistentLedgerError,
    QuotaExceededError,
    TransientStoreError,
)


class _Service(BaseService):
    def __init__(self, session, work):
        super().__init__(session, retry_attempts=3, retry_base_delay=0)
        self.work = work

    @transaction
    async def run(self):
        return await self.work()

    @transaction
    async def run_nested(self):
        first = await self.run()
        second = await self.run()
        return first, second


def _locked() -> OperationalError:
    return OperationalError("UPDATE profiles", {}, Exception("database is locked"))


class TestTransactionDecorator:
    """Tests for @transaction."""

    @pytest.mark.asyncio
    async def test_commits_on_success(self, mock_session):
        """Successful work is committed once."""
        service = _Service(mock_session, AsyncMock(return_value="done"))

        assert await service.run() == "done"

        mock_session.commit.assert_awaited_once()
        mock_session.rollback.assert_not_awaited()
        assert not service.in_unit_of_work

    @pytest.mark.asyncio
    async def test_business_error_rolls_back_without_retry(self, mock_session):
        """Business rejections roll back and propagate on first attempt."""
        work = AsyncMock(side_effect=QuotaExceededError())
        service = _Service(mock_session, work)

        with pytest.raises(QuotaExceededError):
            await service.run()

        assert work.await_count == 1
        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_contention_is_retried(self, mock_session):
        """Store contention re-runs the whole unit of work."""
        work = AsyncMock(side_effect=[_locked(), "done"])
        service = _Service(mock_session, work)

        assert await service.run() == "done"

        assert work.await_count == 2
        assert mock_session.rollback.await_count == 1
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_contention_exhausted(self, mock_session):
        """Spent budget surfaces TransientStoreError."""
        service = _Service(mock_session, AsyncMock(side_effect=_locked()))

        with pytest.raises(TransientStoreError):
            await service.run()

        assert mock_session.rollback.await_count == 3

    @pytest.mark.asyncio
    async def test_nested_calls_join_outer_unit(self, mock_session):
        """Inner @transaction calls do not commit on their own."""
        service = _Service(mock_session, AsyncMock(return_value=1))

        assert await service.run_nested() == (1, 1)

        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_inconsistency_freezes_account(self, mock_session):
        """A ledger inconsistency rolls back, then freezes the account."""
        work = AsyncMock(side_effect=InconsistentLedgerError("mismatch", account_id=7))
        service = _Service(mock_session, work)

        with pytest.raises(InconsistentLedgerError):
            await service.run()

        assert work.await_count == 1
        mock_session.rollback.assert_awaited_once()
        # Freeze runs as its own transaction
        mock_session.execute.assert_awaited_once()
        mock_session.commit.assert_awaited_once()


class TestAsResult:
    """Tests for BaseService.as_result."""

    @pytest.mark.asyncio
    async def test_success(self, mock_session):
        """Return values end up in data."""
        service = BaseService(mock_session)

        async def work():
            return 5

        result = await service.as_result(work())

        assert result.success
        assert result.data == 5

    @pytest.mark.asyncio
    async def test_business_error(self, mock_session):
        """Business errors become a failed result with code."""
        service = BaseService(mock_session)

        async def work():
            raise QuotaExceededError("limit")

        result = await service.as_result(work())

        assert not result.success
        assert result.error_code == "quota_exceeded"
        assert "task limit" in result.error

    @pytest.mark.asyncio
    async def test_transient_error(self, mock_session):
        """Spent retries become a generic retry-later message."""
        service = BaseService(mock_session)

        async def work():
            raise TransientStoreError("locked")

        result = await service.as_result(work())

        assert result.error == GENERIC_RETRY_MESSAGE
        assert result.error_code == "transient_store"

    @pytest.mark.asyncio
    async def test_fatal_error_still_raised(self, mock_session):
        """Ledger inconsistencies are never turned into results."""
        service = BaseService(mock_session)

        async def work():
            raise InconsistentLedgerError("broken")

        with pytest.raises(InconsistentLedgerError):
            await service.as_result(work())
