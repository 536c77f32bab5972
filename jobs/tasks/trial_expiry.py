"""
Trial expiry task.

Ends trial windows that have passed, applying the configured
trial_expiry_policy to each account.
"""

import dramatiq
from loguru import logger

from earnhub.config.business_constants import JOB_TIME_LIMIT_SWEEP
from earnhub.services.tier_service import SweepResult, TierTransitionService
import jobs.broker  # noqa: F401  (actors register on the redis broker)
from jobs.async_runner import run_async
from jobs.utils.database import task_session


@dramatiq.actor(max_retries=3, time_limit=JOB_TIME_LIMIT_SWEEP)
def expire_due_trials(limit: int | None = None) -> None:
    """
    Expire every trial whose window has passed.

    Args:
        limit: Maximum accounts handled by this run
    """
    logger.info("Starting trial expiry sweep...")

    try:
        result = run_async(_expire_due_trials_async(limit))
    except Exception as e:
        logger.exception(f"Trial expiry sweep failed: {e}")
        raise

    if result.failed:
        logger.warning(
            f"Trial expiry sweep finished with failures: "
            f"{result.expired} expired, {result.failed} failed of {result.checked}"
        )
    else:
        logger.success(
            f"Trial expiry sweep complete: {result.expired} of {result.checked} expired, "
            f"{result.skipped} already ended"
        )


async def _expire_due_trials_async(limit: int | None) -> SweepResult:
    """Async implementation of the trial expiry sweep."""
    async with task_session() as session:
        service = TierTransitionService(session)
        return await service.sweep_expired_trials(limit=limit)
