# src/sixfig/pipeline/filter.py
from datetime import datetime, timedelta, timezone
from typing import Optional

DEFAULT_MAX_AGE_DAYS = 30


def is_job_too_old(
    posted_at: Optional[datetime],
    max_age_days: int = DEFAULT_MAX_AGE_DAYS,
    now: Optional[datetime] = None,
) -> bool:
    """
    True when the posting is older than `max_age_days`. Unknown dates are
    kept: plenty of sources omit them and the posting is live right now.
    """
    if posted_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    if posted_at.tzinfo is None:
        posted_at = posted_at.replace(tzinfo=timezone.utc)
    return now - posted_at > timedelta(days=max_age_days)
