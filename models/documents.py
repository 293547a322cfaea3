"""
Conversion between domain objects and store documents.

Documents use camelCase keys. An optional attribute that is None is left out
of the document entirely; the store rejects null-valued fields.
"""

from typing import Any, Dict, Optional

from .maintenance_record import MaintenanceRecord
from .odo_check import OdoCheckRecord, OdoCheckResult
from .status import Status
from .tag_interval import TagInterval


def strip_unset(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None."""
    return {k: v for k, v in fields.items() if v is not None}


def record_to_document(record: MaintenanceRecord) -> Dict[str, Any]:
    """Serialize a MaintenanceRecord (without id) for a store write."""
    d: Dict[str, Any] = {
        "userId": record.user_id,
        "date": record.date,
        "kilometers": record.kilometers,
        "tagIDs": list(record.tag_ids),
    }
    if record.photo is not None:
        d["photo"] = record.photo
    if record.notes is not None:
        d["notes"] = record.notes
    return d


def record_from_document(doc_id: Optional[str], doc: Dict[str, Any]) -> MaintenanceRecord:
    return MaintenanceRecord(
        user_id=doc["userId"],
        date=doc["date"],
        kilometers=doc["kilometers"],
        tag_ids=doc.get("tagIDs"),
        photo=doc.get("photo"),
        notes=doc.get("notes"),
        id=doc_id,
        created_at=doc.get("createdAt"),
        updated_at=doc.get("updatedAt"),
    )


def interval_to_document(interval: TagInterval) -> Dict[str, Any]:
    """Serialize a TagInterval (without id) for a store write."""
    d: Dict[str, Any] = {
        "userId": interval.user_id,
        "name": interval.name,
        "enabled": interval.enabled,
    }
    if interval.kilometers is not None:
        d["kilometers"] = interval.kilometers
    if interval.days is not None:
        d["days"] = interval.days
    return d


def interval_from_document(doc_id: Optional[str], doc: Dict[str, Any]) -> TagInterval:
    return TagInterval(
        user_id=doc["userId"],
        name=doc["name"],
        kilometers=doc.get("kilometers"),
        days=doc.get("days"),
        enabled=doc.get("enabled", True),
        id=doc_id,
        created_at=doc.get("createdAt"),
        updated_at=doc.get("updatedAt"),
    )


def result_to_document(result: OdoCheckResult) -> Dict[str, Any]:
    d: Dict[str, Any] = {
        "tagId": result.tag_id,
        "tagName": result.tag_name,
        "status": result.status.label,
    }
    if result.km_until_due is not None:
        d["kmUntilDue"] = result.km_until_due
    if result.days_until_due is not None:
        d["daysUntilDue"] = result.days_until_due
    return d


def result_from_document(doc: Dict[str, Any]) -> OdoCheckResult:
    return OdoCheckResult(
        tag_id=doc["tagId"],
        tag_name=doc["tagName"],
        status=Status.from_label(doc["status"]),
        km_until_due=doc.get("kmUntilDue"),
        days_until_due=doc.get("daysUntilDue"),
    )


def check_to_document(check: OdoCheckRecord) -> Dict[str, Any]:
    """Serialize an OdoCheckRecord (without id) for a store write."""
    return {
        "userId": check.user_id,
        "date": check.date,
        "kilometers": check.kilometers,
        "results": [result_to_document(r) for r in check.results],
    }


def check_from_document(doc_id: Optional[str], doc: Dict[str, Any]) -> OdoCheckRecord:
    return OdoCheckRecord(
        user_id=doc["userId"],
        date=doc["date"],
        kilometers=doc["kilometers"],
        results=[result_from_document(r) for r in doc.get("results") or []],
        id=doc_id,
        created_at=doc.get("createdAt"),
    )


def record_updates(**fields: Any) -> Dict[str, Any]:
    """Map snake_case record updates to document keys, dropping unset values."""
    keys = {
        "date": "date",
        "kilometers": "kilometers",
        "tag_ids": "tagIDs",
        "photo": "photo",
        "notes": "notes",
    }
    return _map_updates(keys, fields)


def interval_updates(**fields: Any) -> Dict[str, Any]:
    """Map snake_case tag interval updates to document keys, dropping unset values."""
    keys = {
        "name": "name",
        "kilometers": "kilometers",
        "days": "days",
        "enabled": "enabled",
    }
    return _map_updates(keys, fields)


def _map_updates(keys: Dict[str, str], fields: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(fields) - set(keys)
    if unknown:
        raise TypeError(f"Unknown fields: {', '.join(sorted(unknown))}")
    return strip_unset({keys[k]: v for k, v in fields.items()})
