#!/usr/bin/env python3
"""Tests for the Flask JSON API."""
import io
from datetime import datetime, timezone

import pytest

from config import Config
from models import (
    LocalImageStore,
    MaintenanceTracker,
    OdometerReadError,
    OdometerReader,
    StoreError,
    YamlEntityStore,
)
from web.app import create_app

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
USER = {"X-User-Id": "u1"}
OTHER = {"X-User-Id": "u2"}


class FakeReader(OdometerReader):
    def __init__(self, answer="12,345", fail=False):
        self.answer = answer
        self.fail = fail

    def detect(self, image, content_type="image/jpeg"):
        if self.fail:
            raise OdometerReadError("upstream down")
        return self.answer


class NoCheckStore(YamlEntityStore):
    def create_odo_check(self, check):
        raise StoreError("quota exceeded")


@pytest.fixture
def config(tmp_path):
    return Config(data_file=tmp_path / "store.yaml", image_dir=tmp_path / "images")


@pytest.fixture
def tracker(config):
    return MaintenanceTracker(
        YamlEntityStore(config.data_file),
        LocalImageStore(config.image_dir),
        FakeReader(),
        clock=lambda: NOW,
    )


@pytest.fixture
def client(config, tracker):
    app = create_app(config, tracker=tracker)
    app.testing = True
    return app.test_client()


@pytest.fixture
def oil(client):
    resp = client.post("/api/tags", json={"name": "Oil Change", "kilometers": 3000}, headers=USER)
    return resp.get_json()["tag"]


def add_record(client, tag_id, km=12000, date="2025-05-01", headers=USER, **extra):
    body = {"date": date, "kilometers": km, "tagIDs": [tag_id], **extra}
    return client.post("/api/records", json=body, headers=headers)


# =============================================================================
# Odometer detection
# =============================================================================


class TestOdoDetect:
    """Tests for POST /api/odo-detect."""

    def test_no_image(self, client):
        resp = client.post("/api/odo-detect", data={})
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "No image provided"}

    def test_returns_raw_reading(self, client):
        data = {"image": (io.BytesIO(b"\xff\xd8fake"), "odo.jpg")}
        resp = client.post("/api/odo-detect", data=data, content_type="multipart/form-data")
        assert resp.status_code == 200
        assert resp.get_json() == {"odo": "12,345"}

    def test_reader_failure(self, client, tracker):
        tracker.reader = FakeReader(fail=True)
        data = {"image": (io.BytesIO(b"\xff\xd8fake"), "odo.jpg")}
        resp = client.post("/api/odo-detect", data=data, content_type="multipart/form-data")
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Failed to detect ODO"}

    def test_no_reader_configured(self, client, tracker):
        tracker.reader = None
        data = {"image": (io.BytesIO(b"\xff\xd8fake"), "odo.jpg")}
        resp = client.post("/api/odo-detect", data=data, content_type="multipart/form-data")
        assert resp.status_code == 500


# =============================================================================
# Identity
# =============================================================================


class TestIdentity:
    def test_write_without_user_is_401(self, client):
        resp = client.post("/api/tags", json={"name": "Oil Change", "kilometers": 3000})
        assert resp.status_code == 401
        assert "X-User-Id" in resp.get_json()["error"]

    def test_reads_without_user_are_empty(self, client, oil):
        assert client.get("/api/records").get_json() == {"records": []}
        assert client.get("/api/tags").get_json() == {"tags": []}
        assert client.get("/api/checks").get_json() == {"checks": []}
        assert client.get("/api/checks/latest").get_json() == {"check": None}
        assert client.get("/api/status?km=1000").get_json() == {"kilometers": 1000, "statuses": []}

    def test_other_users_entities_are_hidden(self, client, oil):
        record_id = add_record(client, oil["id"]).get_json()["record"]["id"]
        assert client.get(f"/api/records/{record_id}", headers=OTHER).status_code == 404
        assert client.delete(f"/api/tags/{oil['id']}", headers=OTHER).status_code == 404
        assert client.get("/api/records", headers=OTHER).get_json() == {"records": []}


# =============================================================================
# Maintenance records
# =============================================================================


class TestRecords:
    """Tests for the /api/records endpoints."""

    def test_create_json(self, client, oil):
        resp = add_record(client, oil["id"], notes="Motul")
        assert resp.status_code == 201
        body = resp.get_json()
        record = body["record"]
        assert record["userId"] == "u1"
        assert record["kilometers"] == 12000
        assert record["tagIDs"] == [oil["id"]]
        assert record["notes"] == "Motul"
        assert "photo" not in record
        assert "photoAttached" not in body

    def test_create_multipart_with_photo(self, client, oil, config):
        data = {
            "date": "2025-05-01",
            "kilometers": "12000",
            "tagIDs": [oil["id"]],
            "photo": (io.BytesIO(b"\xff\xd8fake"), "receipt.jpg"),
        }
        resp = client.post(
            "/api/records", data=data, headers=USER, content_type="multipart/form-data"
        )
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["photoAttached"] is True
        photo = body["record"]["photo"]
        assert photo.endswith("/receipt.jpg")

        served = client.get(photo)
        assert served.status_code == 200
        assert served.data == b"\xff\xd8fake"

    def test_create_invalid(self, client, oil):
        resp = client.post(
            "/api/records", json={"date": "2025-05-01", "tagIDs": [oil["id"]]}, headers=USER
        )
        assert resp.status_code == 400
        assert "kilometers" in resp.get_json()["error"]

    def test_create_float_km_rejected(self, client, oil):
        resp = add_record(client, oil["id"], km=12000.0)
        assert resp.status_code == 400
        assert client.get("/api/records", headers=USER).get_json() == {"records": []}

    def test_create_bad_km_in_form(self, client, oil):
        data = {"date": "2025-05-01", "kilometers": "lots", "tagIDs": [oil["id"]]}
        resp = client.post(
            "/api/records", data=data, headers=USER, content_type="multipart/form-data"
        )
        assert resp.status_code == 400

    def test_list_and_search(self, client, oil):
        add_record(client, oil["id"], km=12000, date="2025-05-01", notes="Motul")
        add_record(client, oil["id"], km=15000, date="2025-05-20")

        records = client.get("/api/records", headers=USER).get_json()["records"]
        assert [r["kilometers"] for r in records] == [15000, 12000]

        found = client.get("/api/records?q=motul", headers=USER).get_json()["records"]
        assert [r["kilometers"] for r in found] == [12000]

    def test_patch(self, client, oil):
        record_id = add_record(client, oil["id"]).get_json()["record"]["id"]
        resp = client.patch(
            f"/api/records/{record_id}", json={"kilometers": 12100, "notes": "fixed"}, headers=USER
        )
        assert resp.status_code == 200
        record = resp.get_json()["record"]
        assert record["kilometers"] == 12100
        assert record["notes"] == "fixed"

    def test_patch_unknown_field(self, client, oil):
        record_id = add_record(client, oil["id"]).get_json()["record"]["id"]
        resp = client.patch(f"/api/records/{record_id}", json={"userId": "u2"}, headers=USER)
        assert resp.status_code == 400

    def test_delete(self, client, oil):
        record_id = add_record(client, oil["id"]).get_json()["record"]["id"]
        assert client.delete(f"/api/records/{record_id}", headers=USER).status_code == 204
        assert client.get(f"/api/records/{record_id}", headers=USER).status_code == 404

    def test_missing_record(self, client):
        resp = client.get("/api/records/nope", headers=USER)
        assert resp.status_code == 404
        assert "error" in resp.get_json()


# =============================================================================
# Tag intervals
# =============================================================================


class TestTags:
    """Tests for the /api/tags endpoints."""

    def test_create_and_list(self, client, oil):
        assert oil["name"] == "Oil Change"
        assert oil["enabled"] is True
        assert "days" not in oil
        tags = client.get("/api/tags", headers=USER).get_json()["tags"]
        assert [t["id"] for t in tags] == [oil["id"]]

    def test_create_requires_an_interval(self, client):
        resp = client.post("/api/tags", json={"name": "Wash"}, headers=USER)
        assert resp.status_code == 400

    def test_null_enabled_is_a_bad_request(self, client):
        resp = client.post(
            "/api/tags", json={"name": "Oil", "kilometers": 3000, "enabled": None}, headers=USER
        )
        assert resp.status_code == 400
        assert "enabled" in resp.get_json()["error"]
        assert client.get("/api/tags", headers=USER).get_json() == {"tags": []}

    def test_float_interval_rejected(self, client):
        resp = client.post("/api/tags", json={"name": "Oil", "kilometers": 3000.0}, headers=USER)
        assert resp.status_code == 400

    def test_zero_interval_rejected(self, client):
        resp = client.post("/api/tags", json={"name": "Wash", "kilometers": 0}, headers=USER)
        assert resp.status_code == 400

    def test_disable_and_filter(self, client, oil):
        resp = client.patch(f"/api/tags/{oil['id']}", json={"enabled": False}, headers=USER)
        assert resp.status_code == 200
        assert resp.get_json()["tag"]["enabled"] is False
        enabled = client.get("/api/tags?enabled=true", headers=USER).get_json()["tags"]
        assert enabled == []

    def test_patch_unknown_field(self, client, oil):
        resp = client.patch(f"/api/tags/{oil['id']}", json={"userId": "u2"}, headers=USER)
        assert resp.status_code == 400

    def test_delete(self, client, oil):
        assert client.delete(f"/api/tags/{oil['id']}", headers=USER).status_code == 204
        assert client.get("/api/tags", headers=USER).get_json() == {"tags": []}

    def test_seed_defaults(self, client, oil):
        resp = client.post("/api/tags/defaults", headers=USER)
        assert resp.status_code == 201
        names = [t["name"] for t in resp.get_json()["tags"]]
        assert "Oil Change" not in names
        assert len(names) == 6


# =============================================================================
# Status, checks and summary
# =============================================================================


class TestStatus:
    """Tests for GET /api/status."""

    def test_due_soon(self, client, oil):
        add_record(client, oil["id"], km=12000)
        body = client.get("/api/status?km=14800", headers=USER).get_json()
        assert body["kilometers"] == 14800
        [svc] = body["statuses"]
        assert svc["tag"] == "Oil Change"
        assert svc["tagId"] == oil["id"]
        assert svc["status"] == "due-soon"
        assert svc["kmSinceLastMaintenance"] == 2800
        assert svc["kmUntilDue"] == 200
        assert "daysUntilDue" not in svc
        assert svc["lastMaintenance"]["kilometers"] == 12000

    def test_requires_km(self, client):
        assert client.get("/api/status", headers=USER).status_code == 400
        assert client.get("/api/status?km=-5", headers=USER).status_code == 400

    def test_status_does_not_record(self, client, oil):
        add_record(client, oil["id"], km=12000)
        client.get("/api/status?km=14800", headers=USER)
        assert client.get("/api/checks", headers=USER).get_json() == {"checks": []}


class TestChecks:
    """Tests for the /api/checks endpoints."""

    def test_run_and_list(self, client, oil):
        add_record(client, oil["id"], km=12000)
        resp = client.post("/api/checks", json={"kilometers": 15500}, headers=USER)
        assert resp.status_code == 201
        body = resp.get_json()
        assert body["recorded"] is True
        assert body["statuses"][0]["status"] == "overdue"
        check = body["check"]
        assert check["kilometers"] == 15500
        assert check["results"] == [
            {"tagId": oil["id"], "tagName": "Oil Change", "status": "overdue", "kmUntilDue": -500}
        ]

        checks = client.get("/api/checks", headers=USER).get_json()["checks"]
        assert [c["id"] for c in checks] == [check["id"]]
        latest = client.get("/api/checks/latest", headers=USER).get_json()["check"]
        assert latest["id"] == check["id"]

    def test_invalid_body(self, client):
        resp = client.post("/api/checks", json={"kilometers": "far"}, headers=USER)
        assert resp.status_code == 400

    def test_failed_write_is_not_fatal(self, config, oil):
        tracker = MaintenanceTracker(
            NoCheckStore(config.data_file), LocalImageStore(config.image_dir), clock=lambda: NOW
        )
        client = create_app(config, tracker=tracker).test_client()
        resp = client.post("/api/checks", json={"kilometers": 15500}, headers=USER)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["recorded"] is False
        assert "warning" in body
        assert "check" not in body

    def test_clear(self, client, oil):
        client.post("/api/checks", json={"kilometers": 100}, headers=USER)
        client.post("/api/checks", json={"kilometers": 200}, headers=USER)
        client.post("/api/checks", json={"kilometers": 300}, headers=OTHER)
        resp = client.delete("/api/checks", headers=USER)
        assert resp.get_json() == {"deleted": 2}
        assert len(client.get("/api/checks", headers=OTHER).get_json()["checks"]) == 1


class TestSummary:
    def test_summary(self, client, oil):
        add_record(client, oil["id"], km=12000, date="2025-05-01")
        add_record(client, oil["id"], km=14800, date="2025-05-20")
        body = client.get("/api/summary", headers=USER).get_json()
        assert body["currentKilometers"] == 14800
        assert body["overdue"] == 0
        assert body["dueSoon"] == 0
        assert [r["kilometers"] for r in body["recentRecords"]] == [14800, 12000]

    def test_summary_without_user(self, client):
        body = client.get("/api/summary").get_json()
        assert body == {"currentKilometers": 0, "overdue": 0, "dueSoon": 0, "recentRecords": []}
