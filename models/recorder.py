"""Odometer-check recorder: persists an audit snapshot of an evaluation."""

import logging
from datetime import datetime
from typing import Iterable, Optional, Union

from .calculations import parse_instant
from .maintenance_status import MaintenanceStatus
from .odo_check import OdoCheckRecord, OdoCheckResult
from .store import EntityStore, StoreError

logger = logging.getLogger(__name__)


def to_check_result(status: MaintenanceStatus) -> OdoCheckResult:
    """Keep only the audit-relevant fields of a live status."""
    return OdoCheckResult(
        tag_id=status.tag_id,
        tag_name=status.tag,
        status=status.status,
        km_until_due=status.km_until_due,
        days_until_due=status.days_until_due,
    )


def build_check(
    user_id: str,
    now: Union[str, datetime],
    current_km: int,
    statuses: Iterable[MaintenanceStatus],
) -> OdoCheckRecord:
    """Snapshot of an evaluation, results in ranked order."""
    return OdoCheckRecord(
        user_id=user_id,
        date=parse_instant(now).isoformat(),
        kilometers=current_km,
        results=[to_check_result(s) for s in statuses],
    )


def record_check(
    store: EntityStore,
    user_id: str,
    now: Union[str, datetime],
    current_km: int,
    statuses: Iterable[MaintenanceStatus],
) -> Optional[OdoCheckRecord]:
    """
    Persist a check snapshot.

    Every call writes a new row, even for identical inputs. A failed write is
    logged and reported by returning None; the live status stays valid.
    """
    check = build_check(user_id, now, current_km, statuses)
    try:
        check.id = store.create_odo_check(check)
    except StoreError:
        logger.exception("Failed to record odometer check for user %s", user_id)
        return None
    logger.info(
        "Recorded odometer check %s at %s km (%d results)",
        check.id, current_km, len(check.results),
    )
    return check
