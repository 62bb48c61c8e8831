"""
Freshness gate for scheduled jobs
"""

from datetime import datetime, timedelta
from typing import Optional


def should_skip_sync(
    last_completed_at: Optional[datetime],
    ttl_hours: float,
    force_sync: bool = False,
    now: Optional[datetime] = None
) -> bool:
    """
    Decide whether a job may be skipped because its data is still fresh.

    Args:
        last_completed_at: Completion time of the previous run (None if never run)
        ttl_hours: Freshness window in hours
        force_sync: Override that always lets the job run
        now: Reference time (defaults to utcnow)

    Returns:
        True if the job should be skipped. A run exactly at the
        boundary is still fresh.
    """
    if force_sync or last_completed_at is None:
        return False

    now = now or datetime.utcnow()
    age = now - last_completed_at
    return age <= timedelta(hours=ttl_hours)
