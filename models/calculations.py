"""Helper functions for maintenance due calculations."""

from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from dateutil.parser import isoparse

from .status import Status

# Share of an interval that counts as "due soon".
DUE_SOON_RATIO = 0.10

ONE_DAY = timedelta(days=1)


def parse_instant(value: Union[str, datetime]) -> datetime:
    """
    Parse an ISO-8601 date or datetime into an aware datetime.

    Date-only values mean midnight UTC; naive datetimes are taken as UTC.
    Raises ValueError for anything unparseable.
    """
    if isinstance(value, datetime):
        instant = value
    else:
        instant = isoparse(value)
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant


def days_between(since: Union[str, datetime], now: Union[str, datetime]) -> int:
    """Whole days elapsed from since to now, floored."""
    return (parse_instant(now) - parse_instant(since)) // ONE_DAY


def calc_until_due(interval: Optional[int], elapsed: int) -> Optional[int]:
    """Remaining distance/time before the interval is reached; None if unset."""
    if not interval:
        return None
    return interval - elapsed


def check_status(
    until_due: Optional[int],
    interval: Optional[int],
    soon_ratio: float = DUE_SOON_RATIO,
) -> Status:
    """Determine status for a single dimension (distance or time)."""
    if until_due is None or not interval:
        return Status.OK
    if until_due <= 0:
        return Status.OVERDUE
    if until_due <= interval * soon_ratio:
        return Status.DUE_SOON
    return Status.OK


def worst_status(*statuses: Status) -> Status:
    """Most urgent of the given statuses (OK when none)."""
    return min(statuses, key=lambda s: s.value, default=Status.OK)
