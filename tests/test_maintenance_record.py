#!/usr/bin/env python3
"""Tests for MaintenanceRecord class."""
from datetime import datetime, timezone

import pytest

from models import MaintenanceRecord


class TestMaintenanceRecord:
    """Tests for MaintenanceRecord class."""

    def test_required_attributes(self):
        record = MaintenanceRecord("u1", "2025-01-15", 12000, ["oil"])
        assert record.user_id == "u1"
        assert record.date == "2025-01-15"
        assert record.kilometers == 12000
        assert record.tag_ids == ["oil"]

    def test_optional_attributes_default_to_none(self):
        record = MaintenanceRecord("u1", "2025-01-15", 12000)
        assert record.tag_ids == []
        assert record.photo is None
        assert record.notes is None
        assert record.id is None

    def test_tag_ids_copied(self):
        tags = ("oil", "chain")
        record = MaintenanceRecord("u1", "2025-01-15", 12000, tags)
        assert record.tag_ids == ["oil", "chain"]
        assert record.has_tag("chain")
        assert not record.has_tag("brakes")

    def test_performed_at(self):
        record = MaintenanceRecord("u1", "2025-01-15T08:00:00Z", 12000)
        assert record.performed_at == datetime(2025, 1, 15, 8, tzinfo=timezone.utc)

    def test_malformed_date_fails_fast(self):
        record = MaintenanceRecord("u1", "yesterday", 12000)
        with pytest.raises(ValueError):
            record.performed_at
