"""
Base service class.

Provides common functionality for all service classes including session management,
logging, unit-of-work handling and helper decorators.
"""

import functools
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from earnhub.config.settings import settings
from earnhub.repositories.account_repository import AccountRepository
from earnhub.utils.datetime_utils import utc_now
from earnhub.utils.exceptions import (
    EarnHubError,
    InconsistentLedgerError,
    is_fatal,
    is_terminal,
    user_message,
)
from earnhub.utils.retry import call_with_store_retry


# Type variable for generic decorator return types
T = TypeVar("T")

# Session.info key marking an open unit of work
_UNIT_OF_WORK_KEY = "earnhub_unit_of_work"


@dataclass
class ServiceResult:
    """
    Standard service result container.

    Used to return structured results from service methods.
    """
    success: bool
    data: Any = None
    error: str | None = None
    error_code: str | None = None


class BaseService:
    """
    Base service class.

    Provides common functionality for all service classes:
    - Session management
    - Logging with bound service context
    - Injectable clock for the operative day
    - Transaction helpers
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: Callable[[], datetime] | None = None,
        retry_attempts: int | None = None,
        retry_base_delay: float | None = None,
    ) -> None:
        """
        Initialize base service.

        Args:
            session: Async database session
            clock: Returns the current UTC datetime (default: utc_now)
            retry_attempts: Override for settings.store_retry_max_attempts
            retry_base_delay: Override for settings.store_retry_base_delay
        """
        self.session = session
        self.clock = clock or utc_now
        self.retry_attempts = retry_attempts or settings.store_retry_max_attempts
        self.retry_base_delay = (
            settings.store_retry_base_delay
            if retry_base_delay is None
            else retry_base_delay
        )
        self.logger = logger.bind(service=self.__class__.__name__)

    @property
    def in_unit_of_work(self) -> bool:
        """True while a @transaction method is running on this session."""
        return bool(self.session.info.get(_UNIT_OF_WORK_KEY))

    async def commit(self) -> None:
        """
        Commit current transaction.

        Raises:
            Exception: If commit fails
        """
        await self.session.commit()

    async def rollback(self) -> None:
        """
        Rollback current transaction.

        Raises:
            Exception: If rollback fails
        """
        await self.session.rollback()

    async def as_result(self, awaitable: Awaitable[Any]) -> ServiceResult:
        """
        Run a service call and wrap the outcome into a ServiceResult.

        Only EarnHub errors are converted; ledger inconsistencies are
        still raised.

        Args:
            awaitable: Pending service call, e.g. ``service.complete_task(1, "t")``

        Returns:
            ServiceResult with data on success, user message and code on failure
        """
        try:
            data = await awaitable
        except EarnHubError as e:
            if is_fatal(e):
                raise
            return ServiceResult(
                success=False,
                error=user_message(e),
                error_code=e.code,
            )
        return ServiceResult(success=True, data=data)

    async def _freeze_after_inconsistency(self, exc: InconsistentLedgerError) -> None:
        """Freeze the affected account in its own transaction."""
        account_id = exc.context.get("account_id")
        if account_id is None:
            return

        try:
            await AccountRepository(self.session).set_frozen(
                account_id, True, reason=str(exc)
            )
            await self.commit()
        except Exception as freeze_error:
            await self.rollback()
            self.logger.critical(
                f"Failed to freeze account {account_id} after ledger inconsistency",
                extra={"account_id": account_id, "error": str(freeze_error)},
            )
            return

        self.logger.critical(
            f"Ledger inconsistency, account {account_id} frozen: {exc}",
            extra={"account_id": account_id, **exc.context},
        )


def transaction(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator to run a method as one unit of work.

    Commits on success, rolls back on exception. Store contention is
    retried with bounded exponential backoff; business errors are not.
    A ledger inconsistency freezes the affected account after rollback.
    Calls made while another unit of work is open on the same session
    join it instead of committing on their own.

    Usage:
        @transaction
        async def my_service_method(self, ...):
            # Your code here
            pass

    Args:
        func: Async method to wrap

    Returns:
        Wrapped async method
    """
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        if self.in_unit_of_work:
            return await func(self, *args, **kwargs)

        async def attempt() -> Any:
            self.session.info[_UNIT_OF_WORK_KEY] = True
            try:
                result = await func(self, *args, **kwargs)
                await self.commit()
                return result
            except Exception as e:
                await self.rollback()
                if is_terminal(e):
                    self.logger.info(
                        f"{func.__name__} rejected: {e.__class__.__name__}",
                        extra={"function": func.__name__, "error": str(e)},
                    )
                elif not is_fatal(e):
                    self.logger.error(
                        f"Transaction failed in {func.__name__}",
                        extra={
                            "error": str(e),
                            "function": func.__name__,
                        },
                    )
                raise
            finally:
                self.session.info.pop(_UNIT_OF_WORK_KEY, None)

        try:
            return await call_with_store_retry(
                attempt,
                max_attempts=self.retry_attempts,
                base_delay=self.retry_base_delay,
                operation_name=f"{self.__class__.__name__}.{func.__name__}",
            )
        except InconsistentLedgerError as e:
            await self._freeze_after_inconsistency(e)
            raise

    return wrapper


def log_operation(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator to log method entry/exit with timing.

    Usage:
        @log_operation
        async def my_service_method(self, account_id: int):
            pass

    Args:
        func: Async method to wrap

    Returns:
        Wrapped async method
    """
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        start_time = time.time()

        self.logger.debug(
            f"Starting {func.__name__}",
            extra={
                "function": func.__name__,
                "args_count": len(args),
                "kwargs_keys": list(kwargs.keys()),
            },
        )

        try:
            result = await func(self, *args, **kwargs)
        except Exception as e:
            duration = time.time() - start_time
            self.logger.warning(
                f"Failed {func.__name__}",
                extra={
                    "function": func.__name__,
                    "duration_seconds": round(duration, 3),
                    "error": str(e),
                    "success": False,
                },
            )
            raise

        duration = time.time() - start_time
        self.logger.info(
            f"Completed {func.__name__}",
            extra={
                "function": func.__name__,
                "duration_seconds": round(duration, 3),
                "success": True,
            },
        )
        return result

    return wrapper
