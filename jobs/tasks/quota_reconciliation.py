"""
Quota reconciliation task.

Rewrites the cached daily quota of accounts whose plan quota changed.
"""

import dramatiq
from loguru import logger

from earnhub.config.business_constants import JOB_TIME_LIMIT_RECONCILE
from earnhub.services.tier_service import TierTransitionService
import jobs.broker  # noqa: F401  (actors register on the redis broker)
from jobs.async_runner import run_async
from jobs.utils.database import task_session


@dramatiq.actor(max_retries=3, time_limit=JOB_TIME_LIMIT_RECONCILE)
def reconcile_plan_quotas(plan_id: int | None = None) -> None:
    """
    Reconcile cached quotas.

    Args:
        plan_id: Plan to reconcile, None for every plan
    """
    target = f"plan {plan_id}" if plan_id is not None else "all plans"
    logger.info(f"Starting quota reconciliation for {target}...")

    try:
        changed = run_async(_reconcile_plan_quotas_async(plan_id))
    except Exception as e:
        logger.exception(f"Quota reconciliation for {target} failed: {e}")
        raise

    logger.success(f"Quota reconciliation for {target} complete: {changed} accounts updated")


async def _reconcile_plan_quotas_async(plan_id: int | None) -> int:
    """Async implementation of quota reconciliation."""
    async with task_session() as session:
        service = TierTransitionService(session)
        if plan_id is not None:
            return await service.reconcile_quotas(plan_id)
        results = await service.reconcile_all_quotas()
        return sum(results.values())
