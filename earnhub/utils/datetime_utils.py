"""
Datetime utilities.

Provides timezone-aware datetime functions and the operative day.
"""

from datetime import UTC, date, datetime


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone info.

    Returns:
        Current datetime in UTC with timezone awareness
    """
    return datetime.now(UTC)


def operative_day(moment: datetime | None = None) -> date:
    """
    Get the operative day of a moment.

    The operative day is the UTC calendar date. Daily quotas, counter
    resets and trial windows are all keyed by it, and no other code
    should derive "today" on its own.

    Args:
        moment: Timestamp to convert (default: now). Naive values are
            treated as UTC.

    Returns:
        UTC calendar date
    """
    if moment is None:
        moment = utc_now()
    elif moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).date()
