"""Unit tests for periodic job registration."""

from datetime import timedelta
from unittest.mock import patch

from earnhub.config.settings import settings
from jobs import scheduler as scheduler_module


def test_scheduler_registers_jobs():
    """Both periodic jobs are registered with their intervals."""
    scheduler = scheduler_module.create_scheduler()

    jobs = {job.id: job for job in scheduler.get_jobs()}
    assert set(jobs) == {"trial_expiry_sweep", "quota_reconciliation"}
    assert jobs["trial_expiry_sweep"].trigger.interval == timedelta(
        minutes=settings.trial_sweep_interval_minutes
    )
    assert scheduler_module.scheduler_instance is scheduler


def test_enqueue_sends_actors():
    """Scheduled callbacks only enqueue messages."""
    with patch.object(scheduler_module.expire_due_trials, "send") as send_sweep, \
            patch.object(scheduler_module.reconcile_plan_quotas, "send") as send_reconcile:
        scheduler_module.enqueue_trial_sweep()
        scheduler_module.enqueue_quota_reconciliation()

    send_sweep.assert_called_once_with()
    send_reconcile.assert_called_once_with()
