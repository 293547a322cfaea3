"""Entity store adapter: persistence for records, tag intervals and checks."""

import logging
import os
import tempfile
import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import yaml

from .calculations import parse_instant
from .documents import (
    check_from_document,
    check_to_document,
    interval_from_document,
    interval_to_document,
    record_from_document,
    record_to_document,
)
from .maintenance_record import MaintenanceRecord
from .odo_check import OdoCheckRecord
from .tag_interval import TagInterval

logger = logging.getLogger(__name__)

MAINTENANCE_RECORDS = "maintenance-records"
TAG_INTERVALS = "tag-intervals"
ODO_CHECKS = "odo-check-records"

COLLECTIONS = (MAINTENANCE_RECORDS, TAG_INTERVALS, ODO_CHECKS)


class StoreError(Exception):
    """A store read or write failed."""


class RecordNotFound(StoreError):
    """No document with the requested id."""


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _unset_paths(value: Any, path: str = "") -> List[str]:
    """Dotted paths of every None value nested in value."""
    if value is None:
        return [path or "<root>"]
    if isinstance(value, dict):
        found = []
        for k, v in value.items():
            found.extend(_unset_paths(v, f"{path}.{k}" if path else str(k)))
        return found
    if isinstance(value, list):
        found = []
        for i, v in enumerate(value):
            found.extend(_unset_paths(v, f"{path}[{i}]"))
        return found
    return []


def _reject_unset(fields: Dict[str, Any]) -> None:
    unset = _unset_paths(fields)
    if unset:
        raise StoreError(f"Unsupported null value for field(s): {', '.join(unset)}")


class EntityStore(ABC):
    """CRUD and query operations over the three collections, scoped by user."""

    @abstractmethod
    def list_maintenance_records(self, user_id: str) -> List[MaintenanceRecord]:
        """Records for the user, most recent date first."""

    @abstractmethod
    def get_maintenance_record(self, record_id: str) -> MaintenanceRecord:
        ...

    @abstractmethod
    def create_maintenance_record(self, record: MaintenanceRecord) -> str:
        ...

    @abstractmethod
    def update_maintenance_record(self, record_id: str, fields: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def delete_maintenance_record(self, record_id: str) -> None:
        ...

    @abstractmethod
    def list_tag_intervals(self, user_id: str) -> List[TagInterval]:
        """Tag intervals for the user, ordered by name."""

    @abstractmethod
    def get_tag_interval(self, interval_id: str) -> TagInterval:
        ...

    @abstractmethod
    def create_tag_interval(self, interval: TagInterval) -> str:
        ...

    @abstractmethod
    def update_tag_interval(self, interval_id: str, fields: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def delete_tag_interval(self, interval_id: str) -> None:
        ...

    @abstractmethod
    def list_odo_checks(self, user_id: str) -> List[OdoCheckRecord]:
        """Odometer checks for the user, most recent first."""

    @abstractmethod
    def create_odo_check(self, check: OdoCheckRecord) -> str:
        ...

    @abstractmethod
    def clear_all_odo_checks(self, user_id: str) -> int:
        """Delete every check of the user; returns how many were removed."""

    def search_maintenance_records(self, user_id: str, term: str) -> List[MaintenanceRecord]:
        """
        Records whose tags or notes contain term (case-insensitive).

        Tags match on id as well as on the tag interval's name.
        """
        needle = term.lower()
        names = {t.id: t.name.lower() for t in self.list_tag_intervals(user_id)}

        def matches(record: MaintenanceRecord) -> bool:
            for tag_id in record.tag_ids:
                if needle in tag_id.lower() or needle in names.get(tag_id, ""):
                    return True
            return bool(record.notes) and needle in record.notes.lower()

        return [r for r in self.list_maintenance_records(user_id) if matches(r)]

    def get_latest_odo_check(self, user_id: str) -> Optional[OdoCheckRecord]:
        checks = self.list_odo_checks(user_id)
        return checks[0] if checks else None


class YamlEntityStore(EntityStore):
    """
    Entity store backed by a single YAML file.

    Layout: one mapping per collection, documents keyed by id. Every write
    loads the file, applies the change and writes the whole file back.
    """

    def __init__(
        self,
        filename: Union[str, Path],
        clock: Callable[[], str] = _utc_now,
    ):
        self.filename = Path(filename)
        self._clock = clock
        self._lock = threading.Lock()

    # -- file access ---------------------------------------------------------

    def _load(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        if not self.filename.exists():
            data: Dict[str, Any] = {}
        else:
            try:
                with open(self.filename, "r") as fp:
                    data = yaml.load(fp, Loader=yaml.SafeLoader) or {}
            except (OSError, yaml.YAMLError) as e:
                raise StoreError(f"Cannot read store {self.filename}: {e}") from e
        for name in COLLECTIONS:
            if data.get(name) is None:
                data[name] = {}
        return data

    def _dump(self, data: Dict[str, Any]) -> None:
        """Replace the store file atomically through a sibling temp file."""
        tmp_name = None
        try:
            self.filename.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                dir=self.filename.parent,
                prefix=f".{self.filename.name}.",
                suffix=".tmp",
                delete=False,
            ) as fp:
                tmp_name = fp.name
                yaml.dump(
                    data,
                    fp,
                    default_flow_style=False,
                    allow_unicode=True,
                    sort_keys=False,
                    width=120,
                )
            os.replace(tmp_name, self.filename)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StoreError(f"Cannot write store {self.filename}: {e}") from e

    def _list(self, collection: str, user_id: str) -> List[tuple]:
        with self._lock:
            docs = self._load()[collection]
        return [(doc_id, doc) for doc_id, doc in docs.items() if doc.get("userId") == user_id]

    def _get(self, collection: str, doc_id: str) -> Dict[str, Any]:
        with self._lock:
            doc = self._load()[collection].get(doc_id)
        if doc is None:
            raise RecordNotFound(f"{collection}/{doc_id} not found")
        return doc

    def _create(self, collection: str, fields: Dict[str, Any], updated: bool = True) -> str:
        _reject_unset(fields)
        with self._lock:
            data = self._load()
            doc_id = uuid.uuid4().hex
            now = self._clock()
            doc = dict(fields, createdAt=now)
            if updated:
                doc["updatedAt"] = now
            data[collection][doc_id] = doc
            self._dump(data)
        logger.debug("Created %s/%s", collection, doc_id)
        return doc_id

    def _update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        _reject_unset(fields)
        with self._lock:
            data = self._load()
            doc = data[collection].get(doc_id)
            if doc is None:
                raise RecordNotFound(f"{collection}/{doc_id} not found")
            doc.update(fields)
            doc["updatedAt"] = self._clock()
            self._dump(data)
        logger.debug("Updated %s/%s: %s", collection, doc_id, ", ".join(fields))

    def _delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            data = self._load()
            if data[collection].pop(doc_id, None) is None:
                raise RecordNotFound(f"{collection}/{doc_id} not found")
            self._dump(data)
        logger.debug("Deleted %s/%s", collection, doc_id)

    # -- maintenance records -------------------------------------------------

    def list_maintenance_records(self, user_id: str) -> List[MaintenanceRecord]:
        records = [record_from_document(i, d) for i, d in self._list(MAINTENANCE_RECORDS, user_id)]
        return sorted(records, key=lambda r: r.performed_at, reverse=True)

    def get_maintenance_record(self, record_id: str) -> MaintenanceRecord:
        return record_from_document(record_id, self._get(MAINTENANCE_RECORDS, record_id))

    def create_maintenance_record(self, record: MaintenanceRecord) -> str:
        return self._create(MAINTENANCE_RECORDS, record_to_document(record))

    def update_maintenance_record(self, record_id: str, fields: Dict[str, Any]) -> None:
        if "userId" in fields:
            raise StoreError("userId of a maintenance record cannot be changed")
        self._update(MAINTENANCE_RECORDS, record_id, fields)

    def delete_maintenance_record(self, record_id: str) -> None:
        self._delete(MAINTENANCE_RECORDS, record_id)

    # -- tag intervals -------------------------------------------------------

    def list_tag_intervals(self, user_id: str) -> List[TagInterval]:
        intervals = [interval_from_document(i, d) for i, d in self._list(TAG_INTERVALS, user_id)]
        return sorted(intervals, key=lambda t: (t.name, t.id))

    def get_tag_interval(self, interval_id: str) -> TagInterval:
        return interval_from_document(interval_id, self._get(TAG_INTERVALS, interval_id))

    def create_tag_interval(self, interval: TagInterval) -> str:
        return self._create(TAG_INTERVALS, interval_to_document(interval))

    def update_tag_interval(self, interval_id: str, fields: Dict[str, Any]) -> None:
        if "userId" in fields:
            raise StoreError("userId of a tag interval cannot be changed")
        self._update(TAG_INTERVALS, interval_id, fields)

    def delete_tag_interval(self, interval_id: str) -> None:
        self._delete(TAG_INTERVALS, interval_id)

    # -- odometer checks -----------------------------------------------------

    def list_odo_checks(self, user_id: str) -> List[OdoCheckRecord]:
        checks = [check_from_document(i, d) for i, d in self._list(ODO_CHECKS, user_id)]
        return sorted(checks, key=lambda c: parse_instant(c.date), reverse=True)

    def create_odo_check(self, check: OdoCheckRecord) -> str:
        return self._create(ODO_CHECKS, check_to_document(check), updated=False)

    def clear_all_odo_checks(self, user_id: str) -> int:
        with self._lock:
            data = self._load()
            checks = data[ODO_CHECKS]
            doomed = [i for i, d in checks.items() if d.get("userId") == user_id]
            for doc_id in doomed:
                del checks[doc_id]
            self._dump(data)
        logger.info("Cleared %d odometer checks for user %s", len(doomed), user_id)
        return len(doomed)
