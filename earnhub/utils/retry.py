"""
Store retry logic.

Classifies SQLAlchemy errors caused by store contention and re-runs
units of work with bounded exponential backoff.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger
from sqlalchemy.exc import DBAPIError, OperationalError

from earnhub.utils.exceptions import TransientStoreError, is_retryable

T = TypeVar("T")

# SQLSTATE codes for serialization failure and deadlock
TRANSIENT_SQLSTATES = frozenset({"40001", "40P01"})


def _sqlstate(exc: DBAPIError) -> str | None:
    """Extract SQLSTATE from the driver error, if any."""
    orig = getattr(exc, "orig", None)
    for attr in ("sqlstate", "pgcode"):
        value = getattr(orig, attr, None)
        if value:
            return str(value)
    # asyncpg errors are wrapped once more by the SQLAlchemy adapter
    cause = getattr(orig, "__cause__", None)
    value = getattr(cause, "sqlstate", None)
    return str(value) if value else None


def is_transient_store_error(exc: BaseException) -> bool:
    """
    Check if a database error is caused by contention.

    Args:
        exc: Exception raised by SQLAlchemy

    Returns:
        True for lock timeouts, lost connections, serialization
        failures and deadlocks
    """
    if isinstance(exc, TransientStoreError):
        return True
    if not isinstance(exc, DBAPIError):
        return False
    if exc.connection_invalidated:
        return True
    if _sqlstate(exc) in TRANSIENT_SQLSTATES:
        return True
    return isinstance(exc, OperationalError)


def as_transient(exc: BaseException) -> TransientStoreError:
    """Wrap a contention error into TransientStoreError."""
    if isinstance(exc, TransientStoreError):
        return exc
    return TransientStoreError(f"Store contention: {exc.__class__.__name__}: {exc}")


async def call_with_store_retry(
    coro_factory: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 0.05,
    operation_name: str = "unit of work",
) -> T:
    """
    Run a unit of work, retrying only transient store errors.

    The factory must roll back its own failed attempt before the error
    propagates here; business errors propagate on the first attempt.

    Args:
        coro_factory: Factory function that returns a fresh coroutine
        max_attempts: Maximum number of attempts
        base_delay: Delay before the second attempt, doubled afterwards
        operation_name: Operation name for logging

    Returns:
        Result of the unit of work

    Raises:
        TransientStoreError: If every attempt hit contention
    """
    for attempt in range(max_attempts):
        try:
            result = await coro_factory()
        except Exception as e:
            if not (is_retryable(e) or is_transient_store_error(e)):
                raise

            transient = as_transient(e)
            if attempt >= max_attempts - 1:
                logger.error(
                    f"{operation_name} failed after {max_attempts} attempts: {e}"
                )
                raise transient from e

            delay = base_delay * (2 ** attempt)
            logger.warning(
                f"{operation_name} hit store contention on attempt "
                f"{attempt + 1}/{max_attempts}: {e}. Retrying in {delay:.3f}s..."
            )
            await asyncio.sleep(delay)
        else:
            if attempt > 0:
                logger.success(
                    f"{operation_name} succeeded on attempt {attempt + 1}"
                )
            return result

    # max_attempts < 1
    raise TransientStoreError(f"{operation_name} was not attempted")
