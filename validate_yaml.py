#!/usr/bin/env python3
"""Validate YAML store files against the store schema."""
import sys
from pathlib import Path

import yaml
from jsonschema import validate, ValidationError

from config import load_config
from models.calculations import parse_instant
from models.store import MAINTENANCE_RECORDS, ODO_CHECKS
from models.validation import STORE_SCHEMA, StrictValidator


def load_schema() -> dict:
    """Schema of a whole store file."""
    return STORE_SCHEMA


def _date_errors(data: dict) -> list[str]:
    errors = []
    for collection in (MAINTENANCE_RECORDS, ODO_CHECKS):
        for doc_id, doc in (data.get(collection) or {}).items():
            try:
                parse_instant(doc["date"])
            except (ValueError, OverflowError):
                errors.append(f"Invalid date {doc['date']!r} at {collection}.{doc_id}")
    return errors


def validate_store_file(filepath: Path, schema: dict) -> list[str]:
    """Validate a single store file. Returns list of errors."""
    errors = []
    try:
        with open(filepath) as f:
            data = yaml.safe_load(f) or {}
        validate(instance=data, schema=schema, cls=StrictValidator)
        errors.extend(_date_errors(data))
    except yaml.YAMLError as e:
        errors.append(f"YAML parse error: {e}")
    except ValidationError as e:
        errors.append(f"Schema validation error: {e.message}")
        if e.path:
            errors.append(f"  at path: {'.'.join(str(p) for p in e.path)}")
    except OSError as e:
        errors.append(f"Error: {e}")
    return errors


def main(argv=None):
    """Validate the given store files (default: $MAINT_DATA_FILE or data/store.yaml)."""
    paths = [Path(p) for p in (sys.argv[1:] if argv is None else argv)]
    if not paths:
        paths = [load_config().data_file]

    schema = load_schema()
    all_valid = True
    for filepath in paths:
        errors = validate_store_file(filepath, schema)
        if errors:
            print(f"FAIL: {filepath}")
            for error in errors:
                print(f"  {error}")
            all_valid = False
        else:
            print(f"OK: {filepath}")

    return 0 if all_valid else 1


if __name__ == "__main__":
    sys.exit(main())
