"""MaintenanceTracker - the application service tying store, engine and collaborators together."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple, Union

from .calculations import DUE_SOON_RATIO
from .documents import interval_updates, record_updates, strip_unset
from .evaluator import NoHistoryPolicy, count_overdue, current_kilometers, evaluate
from .image_store import ImageStore, image_path_hint
from .maintenance_record import MaintenanceRecord
from .maintenance_status import MaintenanceStatus
from .odo_check import OdoCheckRecord
from .odometer_reader import OdometerReadError, OdometerReader, parse_reading
from .recorder import record_check
from .status import Status
from .store import EntityStore, StoreError
from .tag_interval import TagInterval
from .validation import (
    validate_record,
    validate_record_update,
    validate_tag,
    validate_tag_update,
)

logger = logging.getLogger(__name__)

# (name, kilometers, days)
DEFAULT_TAG_INTERVALS = [
    ("Oil Change", 3000, 90),
    ("Air Filter", 6000, 180),
    ("Spark Plug", 8000, 365),
    ("Chain Cleaning", 1000, 30),
    ("Brake Pads", 15000, 730),
    ("Tire Check", 5000, 180),
    ("Battery Check", 10000, 365),
]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Summary:
    """Dashboard numbers for a user."""

    current_km: int
    overdue: int
    due_soon: int
    recent_records: List[MaintenanceRecord] = field(default_factory=list)


class MaintenanceTracker:
    """
    Per-user maintenance operations over an entity store.

    Validates input, evaluates status against the user's records and enabled
    tag intervals, and records odometer checks. Photo storage and odometer
    reading are optional collaborators.
    """

    def __init__(
        self,
        store: EntityStore,
        image_store: Optional[ImageStore] = None,
        reader: Optional[OdometerReader] = None,
        soon_ratio: float = DUE_SOON_RATIO,
        no_history: NoHistoryPolicy = NoHistoryPolicy.OMIT,
        clock: Callable[[], datetime] = _utc_now,
    ):
        self.store = store
        self.image_store = image_store
        self.reader = reader
        self.soon_ratio = soon_ratio
        self.no_history = no_history
        self._clock = clock

    # -- maintenance records -------------------------------------------------

    def records(self, user_id: str) -> List[MaintenanceRecord]:
        return self.store.list_maintenance_records(user_id)

    def search(self, user_id: str, term: str) -> List[MaintenanceRecord]:
        return self.store.search_maintenance_records(user_id, term)

    def add_maintenance(
        self,
        user_id: str,
        date: str,
        kilometers: int,
        tag_ids: Sequence[str],
        notes: Optional[str] = None,
        photo: Optional[bytes] = None,
        photo_name: str = "photo.jpg",
    ) -> MaintenanceRecord:
        """
        Log a maintenance event.

        The record is created first; the photo is uploaded afterwards and
        attached with a second write. A photo failure is logged and leaves the
        record without a photo.
        """
        if isinstance(tag_ids, (tuple, set)):
            tag_ids = list(tag_ids)
        validate_record(
            strip_unset({"date": date, "kilometers": kilometers, "tagIDs": tag_ids, "notes": notes})
        )
        record = MaintenanceRecord(
            user_id=user_id, date=date, kilometers=kilometers, tag_ids=tag_ids, notes=notes
        )
        record.id = self.store.create_maintenance_record(record)
        logger.info("Logged maintenance %s at %s km for user %s", record.id, kilometers, user_id)

        if photo and self.image_store is not None:
            url = None
            try:
                url = self.image_store.upload(photo, image_path_hint(record.id, photo_name))
                self.store.update_maintenance_record(record.id, {"photo": url})
                record.photo = url
            except (OSError, ValueError, StoreError):
                logger.exception("Failed to attach photo to maintenance record %s", record.id)
                if url is not None:
                    self.image_store.delete(url)
        return record

    def update_maintenance(self, record_id: str, **fields) -> None:
        updates = record_updates(**fields)
        validate_record_update(updates)
        self.store.update_maintenance_record(record_id, updates)

    def delete_maintenance(self, record_id: str) -> None:
        """Delete a record and, best effort, its photo."""
        record = self.store.get_maintenance_record(record_id)
        if record.photo and self.image_store is not None:
            self.image_store.delete(record.photo)
        self.store.delete_maintenance_record(record_id)
        logger.info("Deleted maintenance record %s", record_id)

    # -- tag intervals -------------------------------------------------------

    def intervals(self, user_id: str) -> List[TagInterval]:
        return self.store.list_tag_intervals(user_id)

    def add_tag(
        self,
        user_id: str,
        name: str,
        kilometers: Optional[int] = None,
        days: Optional[int] = None,
        enabled: bool = True,
    ) -> TagInterval:
        payload = strip_unset({"name": name, "kilometers": kilometers, "days": days})
        payload["enabled"] = enabled
        validate_tag(payload)
        interval = TagInterval(user_id, name, kilometers, days, enabled)
        interval.id = self.store.create_tag_interval(interval)
        return interval

    def update_tag(self, interval_id: str, **fields) -> None:
        updates = interval_updates(**fields)
        validate_tag_update(updates)
        self.store.update_tag_interval(interval_id, updates)

    def delete_tag(self, interval_id: str) -> None:
        self.store.delete_tag_interval(interval_id)

    def seed_default_tags(self, user_id: str) -> List[TagInterval]:
        """Create the default tag intervals the user does not have yet (matched by name)."""
        existing = {t.name.lower() for t in self.intervals(user_id)}
        return [
            self.add_tag(user_id, name, kilometers, days)
            for name, kilometers, days in DEFAULT_TAG_INTERVALS
            if name.lower() not in existing
        ]

    # -- status and checks ---------------------------------------------------

    def status(
        self,
        user_id: str,
        current_km: int,
        now: Optional[Union[str, datetime]] = None,
        missing_km_last: bool = False,
    ) -> List[MaintenanceStatus]:
        """Ranked maintenance status of the user's enabled tags at current_km."""
        return evaluate(
            self.records(user_id),
            self.intervals(user_id),
            current_km,
            now or self._clock(),
            soon_ratio=self.soon_ratio,
            no_history=self.no_history,
            missing_km_last=missing_km_last,
        )

    def run_check(
        self,
        user_id: str,
        current_km: int,
        now: Optional[Union[str, datetime]] = None,
        missing_km_last: bool = False,
    ) -> Tuple[List[MaintenanceStatus], Optional[OdoCheckRecord]]:
        """Evaluate and persist a snapshot. The snapshot is None when its write failed."""
        now = now or self._clock()
        statuses = self.status(user_id, current_km, now, missing_km_last)
        return statuses, record_check(self.store, user_id, now, current_km, statuses)

    def checks(self, user_id: str) -> List[OdoCheckRecord]:
        return self.store.list_odo_checks(user_id)

    def latest_check(self, user_id: str) -> Optional[OdoCheckRecord]:
        return self.store.get_latest_odo_check(user_id)

    def clear_checks(self, user_id: str) -> int:
        return self.store.clear_all_odo_checks(user_id)

    def summary(self, user_id: str, now: Optional[Union[str, datetime]] = None) -> Summary:
        """Current odometer (highest logged), counts of due tags and the three latest records."""
        records = self.records(user_id)
        km = current_kilometers(records)
        statuses = evaluate(
            records,
            self.intervals(user_id),
            km,
            now or self._clock(),
            soon_ratio=self.soon_ratio,
            no_history=self.no_history,
        )
        return Summary(
            current_km=km,
            overdue=count_overdue(statuses),
            due_soon=sum(1 for s in statuses if s.status == Status.DUE_SOON),
            recent_records=records[:3],
        )

    # -- odometer reading ----------------------------------------------------

    def read_odometer(self, image: bytes, content_type: str = "image/jpeg") -> int:
        """Kilometers read from a photo; raises OdometerReadError on any failure."""
        if self.reader is None:
            raise OdometerReadError("No odometer reader configured")
        return parse_reading(self.reader.detect(image, content_type))
