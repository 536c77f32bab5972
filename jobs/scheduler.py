"""
Periodic job scheduler.

Runs an APScheduler AsyncIOScheduler that enqueues dramatiq actors on a
fixed interval. Workers started with ``dramatiq jobs.tasks.trial_expiry
jobs.tasks.quota_reconciliation`` execute them.
"""

import asyncio
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

from earnhub.config.logging import setup_logging
from earnhub.config.settings import settings
from jobs.tasks.quota_reconciliation import reconcile_plan_quotas
from jobs.tasks.trial_expiry import expire_due_trials

# Set by create_scheduler() so shutdown code can reach the running instance
scheduler_instance: AsyncIOScheduler | None = None

QUOTA_RECONCILIATION_INTERVAL_HOURS = 6


def enqueue_trial_sweep() -> None:
    """Send the trial expiry sweep to the workers."""
    expire_due_trials.send()
    logger.debug("Trial expiry sweep enqueued")


def enqueue_quota_reconciliation() -> None:
    """Send a reconciliation of every plan to the workers."""
    reconcile_plan_quotas.send()
    logger.debug("Quota reconciliation enqueued")


def create_scheduler() -> AsyncIOScheduler:
    """Create the scheduler with every periodic job registered."""
    global scheduler_instance

    scheduler = AsyncIOScheduler(
        job_defaults={
            "coalesce": True,
            "max_instances": 1,
            "misfire_grace_time": 300,
        },
        timezone="UTC",
    )

    scheduler.add_job(
        enqueue_trial_sweep,
        trigger=IntervalTrigger(minutes=settings.trial_sweep_interval_minutes),
        id="trial_expiry_sweep",
        name="Trial expiry sweep",
        replace_existing=True,
    )
    scheduler.add_job(
        enqueue_quota_reconciliation,
        trigger=IntervalTrigger(hours=QUOTA_RECONCILIATION_INTERVAL_HOURS),
        id="quota_reconciliation",
        name="Quota reconciliation",
        replace_existing=True,
    )

    scheduler_instance = scheduler
    logger.info(
        f"Scheduler configured: trial sweep every "
        f"{settings.trial_sweep_interval_minutes} min, quota reconciliation every "
        f"{QUOTA_RECONCILIATION_INTERVAL_HOURS} h"
    )
    return scheduler


async def main() -> None:
    """Run the scheduler until SIGINT or SIGTERM."""
    setup_logging()
    scheduler = create_scheduler()
    scheduler.start()
    logger.success("Scheduler started")

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    await stop_event.wait()

    logger.info("Shutting down scheduler...")
    scheduler.shutdown(wait=False)
    logger.info("Scheduler stopped")


if __name__ == "__main__":
    asyncio.run(main())
