"""Flask web application for motorcycle maintenance tracking."""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from flask import Blueprint, Flask, abort, current_app, jsonify, request, send_from_directory

# Add parent directory to path for model imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from config import Config, build_tracker, load_config
from models import (
    InvalidEntry,
    MaintenanceTracker,
    OdometerReadError,
    RecordNotFound,
    StoreError,
)
from models.documents import (
    check_to_document,
    interval_to_document,
    record_to_document,
)
from models.validation import validate_check

logger = logging.getLogger(__name__)

USER_HEADER = "X-User-Id"

api = Blueprint("api", __name__, url_prefix="/api")


# =============================================================================
# Helpers
# =============================================================================


def get_tracker() -> MaintenanceTracker:
    return current_app.extensions["tracker"]


def current_user() -> Optional[str]:
    """User id from the X-User-Id header, None when absent."""
    return request.headers.get(USER_HEADER) or None


def require_user() -> str:
    user_id = current_user()
    if user_id is None:
        abort(401, description=f"Missing {USER_HEADER} header")
    return user_id


def record_json(record) -> Dict[str, Any]:
    d = {"id": record.id, **record_to_document(record)}
    if record.created_at:
        d["createdAt"] = record.created_at
    if record.updated_at:
        d["updatedAt"] = record.updated_at
    return d


def interval_json(interval) -> Dict[str, Any]:
    return {"id": interval.id, **interval_to_document(interval)}


def check_json(check) -> Dict[str, Any]:
    d = {"id": check.id, **check_to_document(check)}
    if check.created_at:
        d["createdAt"] = check.created_at
    return d


def status_json(svc) -> Dict[str, Any]:
    d = {
        "tag": svc.tag,
        "tagId": svc.tag_id,
        "status": svc.status.label,
        "kmSinceLastMaintenance": svc.km_since_last_maintenance,
        "daysSinceLastMaintenance": svc.days_since_last_maintenance,
        "interval": interval_json(svc.interval),
    }
    if svc.last_maintenance is not None:
        d["lastMaintenance"] = record_json(svc.last_maintenance)
    if svc.km_until_due is not None:
        d["kmUntilDue"] = svc.km_until_due
    if svc.days_until_due is not None:
        d["daysUntilDue"] = svc.days_until_due
    return d


def owned_record(record_id: str):
    """The record if it belongs to the requesting user, else 404."""
    user_id = require_user()
    record = get_tracker().store.get_maintenance_record(record_id)
    if record.user_id != user_id:
        abort(404, description="Record not found")
    return record


def owned_interval(interval_id: str):
    user_id = require_user()
    interval = get_tracker().store.get_tag_interval(interval_id)
    if interval.user_id != user_id:
        abort(404, description="Tag not found")
    return interval


def json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise InvalidEntry("Expected a JSON object body")
    return body


def parse_km(value: Any) -> int:
    """Kilometers from a query/form value; rejects negatives and non-integers."""
    try:
        km = int(value)
    except (TypeError, ValueError):
        raise InvalidEntry(f"kilometers: not an integer: {value!r}") from None
    if km < 0:
        raise InvalidEntry("kilometers: must be >= 0")
    return km


# =============================================================================
# Maintenance records
# =============================================================================


@api.route("/records", methods=["GET"])
def list_records():
    user_id = current_user()
    if user_id is None:
        return jsonify(records=[])
    term = request.args.get("q")
    tracker = get_tracker()
    records = tracker.search(user_id, term) if term else tracker.records(user_id)
    return jsonify(records=[record_json(r) for r in records])


@api.route("/records", methods=["POST"])
def add_record():
    """Create a record from JSON or multipart form data (with optional 'photo' file)."""
    user_id = require_user()
    photo = None
    photo_name = "photo.jpg"
    if request.files or request.form:
        form = request.form
        body = {
            "date": form.get("date"),
            "kilometers": parse_km(form.get("kilometers")),
            "tagIDs": form.getlist("tagIDs"),
            "notes": form.get("notes") or None,
        }
        upload = request.files.get("photo")
        if upload:
            photo = upload.read()
            photo_name = upload.filename or photo_name
    else:
        body = json_body()

    record = get_tracker().add_maintenance(
        user_id,
        body.get("date"),
        body.get("kilometers"),
        body.get("tagIDs") or [],
        notes=body.get("notes"),
        photo=photo,
        photo_name=photo_name,
    )
    payload = {"record": record_json(record)}
    if photo is not None:
        payload["photoAttached"] = bool(record.photo)
    return jsonify(payload), 201


@api.route("/records/<record_id>", methods=["GET"])
def get_record(record_id: str):
    return jsonify(record=record_json(owned_record(record_id)))


@api.route("/records/<record_id>", methods=["PATCH"])
def update_record(record_id: str):
    owned_record(record_id)
    body = json_body()
    keys = {"date": "date", "kilometers": "kilometers", "tagIDs": "tag_ids", "notes": "notes"}
    unknown = set(body) - set(keys)
    if unknown:
        raise InvalidEntry(f"Unsupported field(s): {', '.join(sorted(unknown))}")
    get_tracker().update_maintenance(record_id, **{keys[k]: v for k, v in body.items()})
    return jsonify(record=record_json(owned_record(record_id)))


@api.route("/records/<record_id>", methods=["DELETE"])
def delete_record(record_id: str):
    owned_record(record_id)
    get_tracker().delete_maintenance(record_id)
    return "", 204


# =============================================================================
# Tag intervals
# =============================================================================


@api.route("/tags", methods=["GET"])
def list_tags():
    user_id = current_user()
    if user_id is None:
        return jsonify(tags=[])
    enabled_only = request.args.get("enabled", "").lower() == "true"
    intervals = get_tracker().intervals(user_id)
    if enabled_only:
        intervals = [t for t in intervals if t.enabled]
    return jsonify(tags=[interval_json(t) for t in intervals])


@api.route("/tags", methods=["POST"])
def add_tag():
    user_id = require_user()
    body = json_body()
    interval = get_tracker().add_tag(
        user_id,
        body.get("name"),
        kilometers=body.get("kilometers"),
        days=body.get("days"),
        enabled=body.get("enabled", True),
    )
    return jsonify(tag=interval_json(interval)), 201


@api.route("/tags/defaults", methods=["POST"])
def seed_tags():
    created = get_tracker().seed_default_tags(require_user())
    return jsonify(tags=[interval_json(t) for t in created]), 201


@api.route("/tags/<interval_id>", methods=["PATCH"])
def update_tag(interval_id: str):
    owned_interval(interval_id)
    body = json_body()
    allowed = {"name", "kilometers", "days", "enabled"}
    unknown = set(body) - allowed
    if unknown:
        raise InvalidEntry(f"Unsupported field(s): {', '.join(sorted(unknown))}")
    get_tracker().update_tag(interval_id, **body)
    return jsonify(tag=interval_json(owned_interval(interval_id)))


@api.route("/tags/<interval_id>", methods=["DELETE"])
def delete_tag(interval_id: str):
    owned_interval(interval_id)
    get_tracker().delete_tag(interval_id)
    return "", 204


# =============================================================================
# Status and odometer checks
# =============================================================================


@api.route("/status", methods=["GET"])
def maintenance_status():
    """Live status at ?km=, nothing persisted."""
    km = parse_km(request.args.get("km"))
    user_id = current_user()
    if user_id is None:
        return jsonify(kilometers=km, statuses=[])
    missing_km_last = request.args.get("missing_km_last", "").lower() == "true"
    statuses = get_tracker().status(user_id, km, missing_km_last=missing_km_last)
    return jsonify(kilometers=km, statuses=[status_json(s) for s in statuses])


@api.route("/checks", methods=["POST"])
def run_check():
    """Evaluate status and record a snapshot; a failed snapshot write is reported, not fatal."""
    user_id = require_user()
    body = json_body()
    validate_check(body)
    statuses, check = get_tracker().run_check(user_id, body["kilometers"])
    payload = {
        "kilometers": body["kilometers"],
        "statuses": [status_json(s) for s in statuses],
        "recorded": check is not None,
    }
    if check is not None:
        payload["check"] = check_json(check)
        return jsonify(payload), 201
    payload["warning"] = "Odometer check could not be saved"
    return jsonify(payload), 200


@api.route("/checks", methods=["GET"])
def list_checks():
    user_id = current_user()
    if user_id is None:
        return jsonify(checks=[])
    return jsonify(checks=[check_json(c) for c in get_tracker().checks(user_id)])


@api.route("/checks/latest", methods=["GET"])
def latest_check():
    user_id = current_user()
    check = get_tracker().latest_check(user_id) if user_id else None
    return jsonify(check=check_json(check) if check else None)


@api.route("/checks", methods=["DELETE"])
def clear_checks():
    removed = get_tracker().clear_checks(require_user())
    return jsonify(deleted=removed)


@api.route("/summary", methods=["GET"])
def summary():
    """Dashboard: current odometer, due counts, latest records."""
    user_id = current_user()
    if user_id is None:
        return jsonify(currentKilometers=0, overdue=0, dueSoon=0, recentRecords=[])
    s = get_tracker().summary(user_id)
    return jsonify(
        currentKilometers=s.current_km,
        overdue=s.overdue,
        dueSoon=s.due_soon,
        recentRecords=[record_json(r) for r in s.recent_records],
    )


@api.route("/odo-detect", methods=["POST"])
def odo_detect():
    """Read the odometer from an uploaded 'image' file."""
    upload = request.files.get("image")
    if not upload:
        return jsonify(error="No image provided"), 400

    tracker = get_tracker()
    try:
        if tracker.reader is None:
            raise OdometerReadError("No odometer reader configured")
        odo = tracker.reader.detect(upload.read(), upload.mimetype or "image/jpeg")
    except OdometerReadError as e:
        logger.error("Error detecting ODO: %s", e)
        return jsonify(error="Failed to detect ODO"), 500
    return jsonify(odo=odo)


# =============================================================================
# Error handlers
# =============================================================================


@api.errorhandler(InvalidEntry)
def handle_invalid(e):
    return jsonify(error=str(e)), 400


@api.errorhandler(RecordNotFound)
def handle_not_found(e):
    return jsonify(error=str(e)), 404


@api.errorhandler(StoreError)
def handle_store_error(e):
    logger.exception("Store failure")
    return jsonify(error="Storage failure"), 500


@api.errorhandler(401)
@api.errorhandler(404)
def handle_http_error(e):
    return jsonify(error=e.description), e.code


# =============================================================================
# Application factory
# =============================================================================


def create_app(
    config: Optional[Config] = None, tracker: Optional[MaintenanceTracker] = None
) -> Flask:
    """Build the app; the tracker is created from config unless one is injected."""
    config = config or load_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = Flask(__name__)
    app.secret_key = config.secret_key
    app.config["MAINT"] = config
    app.extensions["tracker"] = tracker or build_tracker(config)
    app.register_blueprint(api)

    image_dir = config.image_dir.resolve()
    image_url = config.image_base_url.rstrip("/")

    @app.route(f"{image_url}/<path:filename>")
    def image(filename: str):
        return send_from_directory(image_dir, filename)

    return app


if __name__ == "__main__":
    # Access from phone: use your computer's local IP (e.g., 192.168.1.x:5001)
    # Using 5001 to avoid conflict with macOS AirPlay Receiver on 5000
    create_app().run(debug=True, host="0.0.0.0", port=5001)
