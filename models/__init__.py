"""
Motorcycle maintenance tracking models.

This package provides data models and services for tracking maintenance:
- Status: Urgency levels (OVERDUE, DUE_SOON, OK)
- TagInterval: Per-tag distance/time intervals
- MaintenanceRecord: Logged maintenance events
- MaintenanceStatus: Calculated per-tag status
- OdoCheckRecord: Persisted odometer-check snapshots
- evaluate: The status evaluation engine
- MaintenanceTracker: Application service over the entity store
"""

from .status import Status
from .tag_interval import TagInterval
from .maintenance_record import MaintenanceRecord
from .maintenance_status import MaintenanceStatus
from .odo_check import OdoCheckRecord, OdoCheckResult
from .calculations import (
    DUE_SOON_RATIO,
    calc_until_due,
    check_status,
    days_between,
    parse_instant,
    worst_status,
)
from .evaluator import (
    NoHistoryPolicy,
    count_overdue,
    current_kilometers,
    enabled_intervals,
    evaluate,
    rank_statuses,
)
from .recorder import build_check, record_check
from .store import EntityStore, RecordNotFound, StoreError, YamlEntityStore
from .image_store import ImageStore, LocalImageStore
from .odometer_reader import (
    OdometerReadError,
    OdometerReader,
    VisionOdometerReader,
    parse_reading,
    prepare_image,
)
from .validation import InvalidEntry
from .tracker import DEFAULT_TAG_INTERVALS, MaintenanceTracker, Summary

__all__ = [
    "Status",
    "TagInterval",
    "MaintenanceRecord",
    "MaintenanceStatus",
    "OdoCheckRecord",
    "OdoCheckResult",
    "DUE_SOON_RATIO",
    "calc_until_due",
    "check_status",
    "days_between",
    "parse_instant",
    "worst_status",
    "NoHistoryPolicy",
    "count_overdue",
    "current_kilometers",
    "enabled_intervals",
    "evaluate",
    "rank_statuses",
    "build_check",
    "record_check",
    "EntityStore",
    "RecordNotFound",
    "StoreError",
    "YamlEntityStore",
    "ImageStore",
    "LocalImageStore",
    "OdometerReadError",
    "OdometerReader",
    "VisionOdometerReader",
    "parse_reading",
    "prepare_image",
    "InvalidEntry",
    "DEFAULT_TAG_INTERVALS",
    "MaintenanceTracker",
    "Summary",
]
