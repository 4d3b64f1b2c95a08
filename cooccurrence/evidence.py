"""
Evidence capping: bounded, recency-ordered case lists per pair.
"""

from datetime import date, datetime, timezone
from typing import Iterable, List, Mapping, Optional, Tuple

MAX_SHARED_CASES = 100

# Undated cases sort after every dated one
FALLBACK_TIMESTAMP = datetime.min


def resolve_case_date(deadline=None, created_at=None) -> Optional[datetime]:
    """
    Pick the date used for recency ordering: deadline first, then creation time.

    Accepts date or datetime values; aware datetimes are converted to naive UTC
    so every case date is comparable.
    """
    for value in (deadline, created_at):
        if value is None:
            continue
        if isinstance(value, datetime):
            if value.tzinfo is not None:
                value = value.astimezone(timezone.utc).replace(tzinfo=None)
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
    return None


def cap_shared_cases(
    case_ids: Iterable[str],
    case_dates: Mapping[str, datetime],
    limit: int = MAX_SHARED_CASES,
) -> List[str]:
    """
    Order case ids most-recent-first and keep the first `limit`.

    Ties (including all undated cases) keep ascending case id order, so the
    result is identical across runs.
    """
    ordered = sorted(case_ids)
    ordered.sort(key=lambda case_id: case_dates.get(case_id) or FALLBACK_TIMESTAMP, reverse=True)
    return ordered[:limit]


def date_bounds(
    case_ids: Iterable[str],
    case_dates: Mapping[str, datetime],
) -> Tuple[Optional[date], Optional[date]]:
    """First and last co-occurrence dates, ignoring undated cases."""
    dates = [case_dates[case_id] for case_id in case_ids if case_dates.get(case_id)]
    if not dates:
        return None, None
    return min(dates).date(), max(dates).date()
