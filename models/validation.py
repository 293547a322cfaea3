"""JSON schemas and input validation for data entering the store."""

from typing import Any, Dict

from jsonschema import Draft7Validator, validators

from .calculations import parse_instant

_RECORD_PROPERTIES = {
    "date": {"type": "string", "minLength": 1},
    "kilometers": {"type": "integer", "minimum": 0},
    "tagIDs": {
        "type": "array",
        "items": {"type": "string", "minLength": 1},
        "minItems": 1,
        "uniqueItems": True,
    },
    "photo": {"type": "string"},
    "notes": {"type": "string"},
}

_TAG_PROPERTIES = {
    "name": {"type": "string", "minLength": 1},
    "kilometers": {"type": "integer", "minimum": 1},
    "days": {"type": "integer", "minimum": 1},
    "enabled": {"type": "boolean"},
}

RECORD_SCHEMA = {
    "type": "object",
    "properties": _RECORD_PROPERTIES,
    "required": ["date", "kilometers", "tagIDs"],
    "additionalProperties": False,
}

RECORD_UPDATE_SCHEMA = {
    "type": "object",
    "properties": _RECORD_PROPERTIES,
    "additionalProperties": False,
}

TAG_SCHEMA = {
    "type": "object",
    "properties": _TAG_PROPERTIES,
    "required": ["name"],
    "anyOf": [{"required": ["kilometers"]}, {"required": ["days"]}],
    "additionalProperties": False,
}

TAG_UPDATE_SCHEMA = {
    "type": "object",
    "properties": _TAG_PROPERTIES,
    "additionalProperties": False,
}

CHECK_SCHEMA = {
    "type": "object",
    "properties": {"kilometers": {"type": "integer", "minimum": 0}},
    "required": ["kilometers"],
}

def _is_integer(checker, instance) -> bool:
    return isinstance(instance, int) and not isinstance(instance, bool)


# Draft 7 with "integer" limited to real ints (3000.0 is rejected).
StrictValidator = validators.extend(
    Draft7Validator,
    type_checker=Draft7Validator.TYPE_CHECKER.redefine("integer", _is_integer),
)

_OWNED = {"userId": {"type": "string", "minLength": 1}}
_TIMESTAMPS = {"createdAt": {"type": "string"}, "updatedAt": {"type": "string"}}


def _stored(properties: Dict[str, Any], required) -> Dict[str, Any]:
    return {
        "type": "object",
        "properties": dict(properties, **_OWNED, **_TIMESTAMPS),
        "required": ["userId"] + list(required),
        "additionalProperties": False,
    }


_RESULT_SCHEMA = {
    "type": "object",
    "properties": {
        "tagId": {"type": "string"},
        "tagName": {"type": "string"},
        "status": {"enum": ["overdue", "due-soon", "ok"]},
        "kmUntilDue": {"type": "integer"},
        "daysUntilDue": {"type": "integer"},
    },
    "required": ["tagId", "tagName", "status"],
    "additionalProperties": False,
}

STORE_SCHEMA = {
    "type": "object",
    "properties": {
        "maintenance-records": {
            "type": ["object", "null"],
            "additionalProperties": _stored(_RECORD_PROPERTIES, ["date", "kilometers", "tagIDs"]),
        },
        "tag-intervals": {
            "type": ["object", "null"],
            "additionalProperties": _stored(_TAG_PROPERTIES, ["name", "enabled"]),
        },
        "odo-check-records": {
            "type": ["object", "null"],
            "additionalProperties": _stored(
                {
                    "date": {"type": "string"},
                    "kilometers": {"type": "integer", "minimum": 0},
                    "results": {"type": "array", "items": _RESULT_SCHEMA},
                },
                ["date", "kilometers", "results"],
            ),
        },
    },
    "additionalProperties": False,
}


class InvalidEntry(ValueError):
    """User input rejected at the data-entry boundary."""


def _check(schema: Dict[str, Any], payload: Any) -> None:
    errors = sorted(StrictValidator(schema).iter_errors(payload), key=lambda e: list(e.path))
    if errors:
        error = errors[0]
        where = ".".join(str(p) for p in error.path)
        raise InvalidEntry(f"{where}: {error.message}" if where else error.message)


def _check_date(payload: Dict[str, Any]) -> None:
    if "date" in payload:
        try:
            parse_instant(payload["date"])
        except (ValueError, OverflowError):
            raise InvalidEntry(f"date: not an ISO-8601 date: {payload['date']!r}") from None


def validate_record(payload: Any) -> None:
    """Validate a new maintenance record document (without userId)."""
    _check(RECORD_SCHEMA, payload)
    _check_date(payload)


def validate_record_update(payload: Any) -> None:
    _check(RECORD_UPDATE_SCHEMA, payload)
    _check_date(payload)


def validate_tag(payload: Any) -> None:
    """Validate a new tag interval: a name and at least one interval >= 1."""
    _check(TAG_SCHEMA, payload)


def validate_tag_update(payload: Any) -> None:
    _check(TAG_UPDATE_SCHEMA, payload)


def validate_check(payload: Any) -> None:
    _check(CHECK_SCHEMA, payload)
