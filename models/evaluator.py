"""
Maintenance status evaluation.

Given a current odometer reading, a user's maintenance records and their tag
intervals, compute a ranked overdue / due-soon / ok report per tag.

Rules:
1. Only enabled intervals are evaluated; disabled ones produce no entry
2. The most recent record carrying the tag is the reference service
3. Whichever comes first - distance or time - drives the status
4. Within DUE_SOON_RATIO of an interval the tag is due soon
5. Results are ranked most urgent first, then by remaining kilometers
"""

from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Union

from .calculations import (
    DUE_SOON_RATIO,
    calc_until_due,
    check_status,
    days_between,
    parse_instant,
    worst_status,
)
from .maintenance_record import MaintenanceRecord
from .maintenance_status import MaintenanceStatus
from .status import Status
from .tag_interval import TagInterval

# Stand-in elapsed days for a tag that has never been serviced.
NEVER_SERVICED_DAYS = 999


class NoHistoryPolicy(Enum):
    """What to report for an enabled tag with no matching records."""

    OMIT = "omit"
    OVERDUE = "overdue"


def enabled_intervals(intervals: Iterable[TagInterval]) -> List[TagInterval]:
    """Enabled subset of the intervals, input order preserved."""
    return [i for i in intervals if i.enabled]


def last_maintenance_for(
    records: Iterable[MaintenanceRecord], tag_id: str
) -> Optional[MaintenanceRecord]:
    """Most recent record carrying tag_id; ties go to the highest id."""
    matching = [r for r in records if r.has_tag(tag_id)]
    if not matching:
        return None
    return max(matching, key=lambda r: (r.performed_at, r.id or ""))


def evaluate_interval(
    interval: TagInterval,
    records: Sequence[MaintenanceRecord],
    current_km: int,
    now: Union[str, datetime],
    soon_ratio: float = DUE_SOON_RATIO,
    no_history: NoHistoryPolicy = NoHistoryPolicy.OMIT,
) -> Optional[MaintenanceStatus]:
    """Status for a single interval, or None when it is left out of the report."""
    last = last_maintenance_for(records, interval.id)

    if last is None:
        if no_history is NoHistoryPolicy.OMIT:
            return None
        return MaintenanceStatus(
            tag=interval.name,
            interval=interval,
            status=Status.OVERDUE,
            km_since_last_maintenance=current_km,
            days_since_last_maintenance=NEVER_SERVICED_DAYS,
        )

    km_since = current_km - last.kilometers
    days_since = days_between(last.performed_at, now)

    km_until_due = calc_until_due(interval.kilometers, km_since)
    days_until_due = calc_until_due(interval.days, days_since)

    status = worst_status(
        check_status(km_until_due, interval.kilometers, soon_ratio),
        check_status(days_until_due, interval.days, soon_ratio),
    )

    return MaintenanceStatus(
        tag=interval.name,
        interval=interval,
        status=status,
        km_since_last_maintenance=km_since,
        days_since_last_maintenance=days_since,
        last_maintenance=last,
        km_until_due=km_until_due,
        days_until_due=days_until_due,
    )


def rank_statuses(
    statuses: Iterable[MaintenanceStatus], missing_km_last: bool = False
) -> List[MaintenanceStatus]:
    """
    Sort by urgency, then by kilometers until due (ascending).

    A missing km_until_due counts as 0 unless missing_km_last is set, in which
    case those entries go after every entry of the same status that has one.
    """
    def sort_key(s: MaintenanceStatus):
        if s.km_until_due is None:
            return (s.status.value, 1 if missing_km_last else 0, 0)
        return (s.status.value, 0, s.km_until_due)

    return sorted(statuses, key=sort_key)


def evaluate(
    records: Sequence[MaintenanceRecord],
    intervals: Iterable[TagInterval],
    current_km: int,
    now: Union[str, datetime],
    soon_ratio: float = DUE_SOON_RATIO,
    no_history: NoHistoryPolicy = NoHistoryPolicy.OMIT,
    missing_km_last: bool = False,
) -> List[MaintenanceStatus]:
    """
    Evaluate every enabled interval against the records.

    Args:
        records: the user's maintenance records (any order)
        intervals: the user's tag intervals, enabled or not
        current_km: odometer value to check against
        now: instant day-based intervals are measured to
        soon_ratio: due-soon band as a share of each interval
        no_history: policy for enabled tags that were never serviced
        missing_km_last: rank entries without km_until_due last
    """
    now = parse_instant(now)
    statuses = []
    for interval in enabled_intervals(intervals):
        status = evaluate_interval(
            interval, records, current_km, now, soon_ratio, no_history
        )
        if status is not None:
            statuses.append(status)
    return rank_statuses(statuses, missing_km_last=missing_km_last)


def current_kilometers(records: Iterable[MaintenanceRecord]) -> int:
    """Highest odometer reading on record, 0 when there are none."""
    return max((r.kilometers for r in records), default=0)


def count_overdue(statuses: Iterable[MaintenanceStatus]) -> int:
    return sum(1 for s in statuses if s.status == Status.OVERDUE)
