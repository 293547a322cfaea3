#!/usr/bin/env python3
"""Tests for the odometer-check recorder."""
from datetime import datetime, timezone

import pytest

from models import (
    MaintenanceRecord,
    MaintenanceStatus,
    Status,
    StoreError,
    TagInterval,
    YamlEntityStore,
    build_check,
    record_check,
)

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def statuses():
    oil = TagInterval("u1", "Oil Change", 3000, 90, id="t-oil")
    battery = TagInterval("u1", "Battery Check", days=365, id="t-bat")
    last = MaintenanceRecord("u1", "2025-01-01", 10000, ["t-oil", "t-bat"], id="r1")
    return [
        MaintenanceStatus(
            tag="Oil Change",
            interval=oil,
            status=Status.OVERDUE,
            km_since_last_maintenance=3200,
            days_since_last_maintenance=151,
            last_maintenance=last,
            km_until_due=-200,
            days_until_due=-61,
        ),
        MaintenanceStatus(
            tag="Battery Check",
            interval=battery,
            status=Status.OK,
            km_since_last_maintenance=3200,
            days_since_last_maintenance=151,
            last_maintenance=last,
            days_until_due=214,
        ),
    ]


class FailingStore(YamlEntityStore):
    def create_odo_check(self, check):
        raise StoreError("write refused")


class TestBuildCheck:
    """Tests for build_check."""

    def test_keeps_audit_fields_in_order(self, statuses):
        check = build_check("u1", NOW, 13200, statuses)
        assert check.user_id == "u1"
        assert check.kilometers == 13200
        assert check.date == "2025-06-01T12:00:00+00:00"
        assert [r.tag_id for r in check.results] == ["t-oil", "t-bat"]
        assert check.results[0].tag_name == "Oil Change"
        assert check.results[0].km_until_due == -200
        assert check.results[1].km_until_due is None
        assert check.overdue_count == 1


class TestRecordCheck:
    """Tests for record_check."""

    def test_persists_snapshot(self, tmp_path, statuses):
        store = YamlEntityStore(tmp_path / "store.yaml")
        check = record_check(store, "u1", NOW, 13200, statuses)
        assert check.id is not None
        saved = store.get_latest_odo_check("u1")
        assert saved.id == check.id
        assert saved.results[1].km_until_due is None
        assert saved.results[1].days_until_due == 214

    def test_every_call_adds_a_row(self, tmp_path, statuses):
        store = YamlEntityStore(tmp_path / "store.yaml")
        record_check(store, "u1", NOW, 13200, statuses)
        record_check(store, "u1", NOW, 13200, statuses)
        assert len(store.list_odo_checks("u1")) == 2

    def test_write_failure_is_not_fatal(self, tmp_path, statuses, caplog):
        store = FailingStore(tmp_path / "store.yaml")
        assert record_check(store, "u1", NOW, 13200, statuses) is None
        assert "Failed to record odometer check" in caplog.text

    def test_empty_statuses(self, tmp_path):
        store = YamlEntityStore(tmp_path / "store.yaml")
        check = record_check(store, "u1", NOW, 500, [])
        assert check.results == []
