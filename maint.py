#!/usr/bin/env python3
"""
Unified CLI for motorcycle maintenance tracking.

Commands:
  status        - Show which maintenance tags are due, overdue or ok
  history       - View maintenance records
  log           - Add a maintenance record
  delete-record - Delete a maintenance record (and its photo)
  tags          - List tag intervals
  add-tag       - Add a tag interval
  set-tag       - Edit, enable or disable a tag interval
  delete-tag    - Delete a tag interval
  seed-tags     - Add the default tag intervals
  checks        - View recorded odometer checks
  clear-checks  - Delete all recorded odometer checks
  detect        - Read the odometer value from a photo
"""

import argparse
import logging
import mimetypes
import os
import sys
from datetime import date
from pathlib import Path
from tabulate import tabulate
from typing import Dict, List, Optional

from config import build_tracker, load_config
from models import (
    InvalidEntry,
    MaintenanceRecord,
    MaintenanceStatus,
    MaintenanceTracker,
    NoHistoryPolicy,
    OdoCheckRecord,
    OdometerReadError,
    Status,
    StoreError,
    TagInterval,
)

logger = logging.getLogger("maint")

# =============================================================================
# Formatting helpers
# =============================================================================


def format_km(km: Optional[float]) -> str:
    """Format kilometers for display."""
    return f"{km:,.0f}" if km is not None else "-"


def format_km_remaining(km_until_due: Optional[int]) -> str:
    """Format remaining kilometers ('1,500 left' or '300 over')."""
    if km_until_due is None:
        return "-"
    if km_until_due <= 0:
        return f"{abs(km_until_due):,} over"
    return f"{km_until_due:,} left"


def format_days_remaining(days: Optional[int]) -> str:
    """Format remaining time for display (e.g., '3mo 15d' or '-2mo 5d')."""
    if days is None:
        return "-"

    sign = "-" if days < 0 else ""
    days = abs(days)
    months = days // 30
    remaining_days = days % 30
    if months > 0:
        return f"{sign}{months}mo {remaining_days}d"
    return f"{sign}{days}d"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if text is None:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def tag_names(tag_ids: List[str], tags_by_id: Dict[str, TagInterval]) -> str:
    """Comma-separated tag names, falling back to the id for unknown tags."""
    return ", ".join(tags_by_id[t].name if t in tags_by_id else t for t in tag_ids) or "-"


# =============================================================================
# Tables
# =============================================================================


def make_status_table(statuses: List[MaintenanceStatus]) -> List[List[str]]:
    """Convert maintenance status list to table rows."""
    rows = []
    for svc in statuses:
        last_done = "-"
        if svc.last_maintenance is not None:
            last = svc.last_maintenance
            last_done = f"{last.date[:10]} @ {last.kilometers:,}"
        rows.append(
            [
                svc.status.label.upper(),
                svc.tag,
                svc.interval.interval_label,
                last_done,
                format_km_remaining(svc.km_until_due),
                format_days_remaining(svc.days_until_due),
            ]
        )
    return rows


def make_history_table(
    records: List[MaintenanceRecord], tags_by_id: Dict[str, TagInterval]
) -> List[List[str]]:
    """Convert maintenance records to table rows."""
    return [
        [
            r.id,
            r.date[:10],
            format_km(r.kilometers),
            tag_names(r.tag_ids, tags_by_id),
            "yes" if r.photo else "-",
            truncate(r.notes),
        ]
        for r in records
    ]


def make_tags_table(intervals: List[TagInterval]) -> List[List[str]]:
    """Convert tag intervals to table rows."""
    return [
        [
            t.id,
            t.name,
            format_km(t.kilometers),
            str(t.days) if t.days else "-",
            "yes" if t.enabled else "no",
        ]
        for t in intervals
    ]


def make_checks_table(checks: List[OdoCheckRecord]) -> List[List[str]]:
    """Convert odometer checks to table rows."""
    rows = []
    for check in checks:
        due = [r.tag_name for r in check.results if r.status != Status.OK]
        rows.append(
            [
                check.date[:19].replace("T", " "),
                format_km(check.kilometers),
                len(check.results),
                check.overdue_count,
                truncate(", ".join(due) or None, 40),
            ]
        )
    return rows


# =============================================================================
# Commands
# =============================================================================


def cmd_status(tracker: MaintenanceTracker, args) -> int:
    """Show which maintenance tags are due, overdue or ok."""
    if args.soon_ratio is not None:
        tracker.soon_ratio = args.soon_ratio
    if args.no_history is not None:
        tracker.no_history = NoHistoryPolicy(args.no_history)

    if args.record:
        statuses, check = tracker.run_check(args.user, args.km, missing_km_last=args.missing_km_last)
    else:
        statuses = tracker.status(args.user, args.km, missing_km_last=args.missing_km_last)
        check = None

    print(f"Odometer: {args.km:,} km")
    print(f"Due-soon band: {tracker.soon_ratio:.0%} of interval")
    print()

    if not statuses:
        print("No maintenance status (no enabled tags with history).")
    else:
        headers = ["Status", "Tag", "Interval", "Last Done", "Distance", "Time"]
        print(tabulate(make_status_table(statuses), headers=headers, tablefmt="simple"))

    if args.record:
        print()
        if check is None:
            print("Warning: check could not be recorded (see log)")
        else:
            print(f"Check recorded: {check.id}")
    return 0


def cmd_history(tracker: MaintenanceTracker, args) -> int:
    """View maintenance records."""
    if args.search:
        records = tracker.search(args.user, args.search)
    else:
        records = tracker.records(args.user)
    tags_by_id = {t.id: t for t in tracker.intervals(args.user)}

    print(f"Records: {len(records)}" + (" (filtered)" if args.search else ""))
    print()
    if not records:
        print("No maintenance records found.")
        return 0

    headers = ["Id", "Date", "Km", "Tags", "Photo", "Notes"]
    print(tabulate(make_history_table(records, tags_by_id), headers=headers, tablefmt="simple"))
    return 0


def cmd_log(tracker: MaintenanceTracker, args) -> int:
    """Add a maintenance record."""
    tags_by_id = {t.id: t for t in tracker.intervals(args.user)}
    by_name = {t.name.lower(): t.id for t in tags_by_id.values()}

    tag_ids = []
    for tag in args.tag:
        tag_id = tag if tag in tags_by_id else by_name.get(tag.lower())
        if tag_id is None:
            print(f"Error: Unknown tag '{tag}'")
            print("\nAvailable tags:")
            for t in tags_by_id.values():
                print(f"  {t.name}  ({t.id})")
            return 1
        tag_ids.append(tag_id)

    entry_date = args.date or date.today().isoformat()
    print("Adding maintenance record:")
    print(f"  Date:  {entry_date}")
    print(f"  Km:    {args.km:,}")
    print(f"  Tags:  {tag_names(tag_ids, tags_by_id)}")
    if args.notes:
        print(f"  Notes: {args.notes}")
    if args.photo:
        print(f"  Photo: {args.photo}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    photo = args.photo.read_bytes() if args.photo else None
    record = tracker.add_maintenance(
        args.user,
        entry_date,
        args.km,
        tag_ids,
        notes=args.notes,
        photo=photo,
        photo_name=args.photo.name if args.photo else "photo.jpg",
    )
    print(f"Record saved: {record.id}")
    if photo and not record.photo:
        print("Warning: photo could not be attached (see log)")
    return 0


def cmd_delete_record(tracker: MaintenanceTracker, args) -> int:
    tracker.delete_maintenance(args.record_id)
    print(f"Record deleted: {args.record_id}")
    return 0


def cmd_tags(tracker: MaintenanceTracker, args) -> int:
    """List tag intervals."""
    intervals = tracker.intervals(args.user)
    print(f"Tags: {len(intervals)}")
    print()
    if intervals:
        headers = ["Id", "Name", "Km", "Days", "Enabled"]
        print(tabulate(make_tags_table(intervals), headers=headers, tablefmt="simple"))
    return 0


def cmd_add_tag(tracker: MaintenanceTracker, args) -> int:
    interval = tracker.add_tag(args.user, args.name, args.km, args.days)
    print(f"Tag added: {interval.name} ({interval.id})")
    return 0


def cmd_set_tag(tracker: MaintenanceTracker, args) -> int:
    tracker.update_tag(
        args.tag_id,
        name=args.name,
        kilometers=args.km,
        days=args.days,
        enabled=args.enabled,
    )
    print(f"Tag updated: {args.tag_id}")
    return 0


def cmd_delete_tag(tracker: MaintenanceTracker, args) -> int:
    tracker.delete_tag(args.tag_id)
    print(f"Tag deleted: {args.tag_id}")
    return 0


def cmd_seed_tags(tracker: MaintenanceTracker, args) -> int:
    created = tracker.seed_default_tags(args.user)
    print(f"Default tags added: {len(created)}")
    for interval in created:
        print(f"  {interval.name} ({interval.interval_label})")
    return 0


def cmd_checks(tracker: MaintenanceTracker, args) -> int:
    """View recorded odometer checks."""
    checks = tracker.checks(args.user)
    print(f"Odometer checks: {len(checks)}")
    print()
    if checks:
        headers = ["Date", "Km", "Tags", "Overdue", "Due"]
        print(tabulate(make_checks_table(checks), headers=headers, tablefmt="simple"))
    return 0


def cmd_clear_checks(tracker: MaintenanceTracker, args) -> int:
    removed = tracker.clear_checks(args.user)
    print(f"Odometer checks deleted: {removed}")
    return 0


def cmd_detect(tracker: MaintenanceTracker, args) -> int:
    """Read the odometer value from a photo."""
    content_type = mimetypes.guess_type(args.photo.name)[0] or "image/jpeg"
    km = tracker.read_odometer(args.photo.read_bytes(), content_type)
    print(f"Odometer: {km:,} km")
    return 0


COMMANDS = {
    "status": cmd_status,
    "history": cmd_history,
    "log": cmd_log,
    "delete-record": cmd_delete_record,
    "tags": cmd_tags,
    "add-tag": cmd_add_tag,
    "set-tag": cmd_set_tag,
    "delete-tag": cmd_delete_tag,
    "seed-tags": cmd_seed_tags,
    "checks": cmd_checks,
    "clear-checks": cmd_clear_checks,
    "detect": cmd_detect,
}


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Motorcycle maintenance tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s seed-tags
  %(prog)s log 12000 --tag "Oil Change" --tag "Air Filter" --notes "Motul 10W-40"
  %(prog)s status 12700
  %(prog)s status 12700 --record
  %(prog)s history --search oil
  %(prog)s set-tag <tag id> --disable
  %(prog)s detect odo.jpg
""",
    )
    parser.add_argument(
        "--data",
        type=Path,
        help="Path to the YAML store file (default: $MAINT_DATA_FILE or data/store.yaml)",
    )
    parser.add_argument(
        "--user",
        default=os.environ.get("MAINT_USER", "local"),
        help="User id to act as (default: $MAINT_USER or 'local')",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Status subcommand
    status_parser = subparsers.add_parser(
        "status", help="Show which maintenance tags are due, overdue or ok"
    )
    status_parser.add_argument("km", type=int, help="Current odometer reading")
    status_parser.add_argument(
        "--record",
        action="store_true",
        help="Save this check to the odometer-check history",
    )
    status_parser.add_argument(
        "--soon-ratio",
        type=float,
        help="Due-soon band as a share of the interval (default: 0.10)",
    )
    status_parser.add_argument(
        "--no-history",
        choices=[p.value for p in NoHistoryPolicy],
        help="How to report enabled tags that were never serviced",
    )
    status_parser.add_argument(
        "--missing-km-last",
        action="store_true",
        help="Rank tags without a distance interval after the others",
    )

    # History subcommand
    history_parser = subparsers.add_parser("history", help="View maintenance records")
    history_parser.add_argument(
        "--search",
        type=str,
        help="Filter to records whose tags or notes contain text (case-insensitive)",
    )

    # Log subcommand
    log_parser = subparsers.add_parser("log", help="Add a maintenance record")
    log_parser.add_argument("km", type=int, help="Odometer reading at time of service")
    log_parser.add_argument(
        "--tag",
        action="append",
        required=True,
        help="Tag name or id serviced (repeatable)",
    )
    log_parser.add_argument(
        "--date",
        type=str,
        help="Service date in YYYY-MM-DD format (default: today)",
    )
    log_parser.add_argument("--notes", type=str, help="Notes about the service")
    log_parser.add_argument("--photo", type=Path, help="Photo to attach")
    log_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be added without saving",
    )

    delete_record_parser = subparsers.add_parser(
        "delete-record", help="Delete a maintenance record and its photo"
    )
    delete_record_parser.add_argument("record_id")

    # Tag subcommands
    subparsers.add_parser("tags", help="List tag intervals")

    add_tag_parser = subparsers.add_parser("add-tag", help="Add a tag interval")
    add_tag_parser.add_argument("name")
    add_tag_parser.add_argument("--km", type=int, help="Distance interval in km")
    add_tag_parser.add_argument("--days", type=int, help="Time interval in days")

    set_tag_parser = subparsers.add_parser("set-tag", help="Edit a tag interval")
    set_tag_parser.add_argument("tag_id")
    set_tag_parser.add_argument("--name")
    set_tag_parser.add_argument("--km", type=int, help="Distance interval in km")
    set_tag_parser.add_argument("--days", type=int, help="Time interval in days")
    enabled_group = set_tag_parser.add_mutually_exclusive_group()
    enabled_group.add_argument("--enable", dest="enabled", action="store_true", default=None)
    enabled_group.add_argument("--disable", dest="enabled", action="store_false")

    delete_tag_parser = subparsers.add_parser("delete-tag", help="Delete a tag interval")
    delete_tag_parser.add_argument("tag_id")

    subparsers.add_parser("seed-tags", help="Add the default tag intervals")

    # Check history subcommands
    subparsers.add_parser("checks", help="View recorded odometer checks")
    subparsers.add_parser("clear-checks", help="Delete all recorded odometer checks")

    detect_parser = subparsers.add_parser("detect", help="Read the odometer value from a photo")
    detect_parser.add_argument("photo", type=Path)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    photo = getattr(args, "photo", None)
    if photo is not None and not photo.exists():
        print(f"Error: File not found: {photo}")
        return 1

    tracker = build_tracker(config, args.data)
    try:
        return COMMANDS[args.command](tracker, args)
    except InvalidEntry as e:
        print(f"Error: Invalid input: {e}")
    except OdometerReadError as e:
        print(f"Error: {e}")
    except StoreError as e:
        logger.debug("Store failure", exc_info=True)
        print(f"Error: {e}")
    return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
