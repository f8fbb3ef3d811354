#!/usr/bin/env python3
"""
Unified CLI for chassis compliance tracking.

Commands:
  list               - Show the fleet with registration/annual/BIT status
  show               - Show one chassis and its inspection/citation/repair ledger
  add / edit         - Add or update a chassis
  delete             - Remove a chassis
  inspect            - Record an annual or BIT inspection
  cite / repair      - Add a citation or repair to the ledger
  delete-citation    - Remove a citation (unlinks its repairs)
  delete-repair      - Remove a repair
  delete-inspection  - Remove an inspection history entry
  import             - Import chassis from a CSV or Excel file
  export             - Export the (filtered) fleet as CSV
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from tabulate import tabulate

from chassis import (
    ANNUAL,
    BIT,
    INSPECTION_KINDS,
    ChassisError,
    ChassisRecord,
    CitationEvent,
    FleetRegistry,
    InspectionEvent,
    LedgerBucket,
    RepairEvent,
    Status,
    YamlFleetStore,
    classify,
    export_filename,
    last_done_from_due,
)
from chassis.config import Settings
from chassis.registry import SORT_KEYS, STATUS_FILTERS
from chassis.sources import read_rows

logger = logging.getLogger("fleet")

# =============================================================================
# Formatting helpers
# =============================================================================


def format_date(value: Optional[str]) -> str:
    """Format a date for display."""
    return value if value else "-"


def format_due(value: Optional[str], soon_days: int = 30, today=None) -> str:
    """Due date with its status label, e.g. '2025-01-15 (Due in 12d)'."""
    if not value:
        return "-"
    return f"{value} ({classify(value, soon_days, today).label})"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if not text:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


# =============================================================================
# Tables
# =============================================================================


def make_fleet_table(
    records: Sequence[ChassisRecord], registry: FleetRegistry
) -> List[List[str]]:
    """Convert chassis records to table rows."""
    today = registry.today()
    soon = registry.soon_days
    rows = []
    for record in records:
        rows.append(
            [
                record.unit or "-",
                record.plate or "-",
                record.vin or "-",
                format_due(record.registration_due, soon, today),
                format_due(record.annual_due, soon, today),
                format_due(record.bit_due, soon, today),
                registry.status_of(record, today).label,
                truncate(record.notes),
            ]
        )
    return rows


def make_inspection_table(events: Sequence[InspectionEvent]) -> List[List[str]]:
    """Convert inspection history to table rows."""
    return [[e.done_date, e.due_date, e.entered_at, e.id] for e in events]


def make_citation_table(
    citations: Sequence[CitationEvent], linked: Optional[Dict[str, int]] = None
) -> List[List[str]]:
    """Convert citations to table rows, with the number of linked repairs."""
    linked = linked or {}
    return [
        [
            format_date(c.date),
            c.number or "-",
            c.location or "-",
            str(linked.get(c.id, 0)),
            truncate(c.notes),
            c.id,
        ]
        for c in citations
    ]


def make_repair_table(
    repairs: Sequence[RepairEvent], bucket: LedgerBucket
) -> List[List[str]]:
    """Convert repairs to table rows, showing the linked citation number."""
    rows = []
    for r in repairs:
        citation = bucket.get_citation(r.citation_id) if r.citation_id else None
        rows.append(
            [
                format_date(r.date),
                r.vendor or "-",
                truncate(r.work),
                (citation.number or citation.id) if citation else "-",
                truncate(r.notes),
                r.id,
            ]
        )
    return rows


FLEET_HEADERS = ["Unit", "Plate", "VIN", "Registration", "Annual", "BIT", "Status", "Notes"]

# =============================================================================
# Commands
# =============================================================================


def _resolve(registry: FleetRegistry, key: str) -> Optional[ChassisRecord]:
    record = registry.find(key)
    if record is None:
        print(f"Error: No chassis matching '{key}'")
    return record


def _dry_run(registry: FleetRegistry, args) -> bool:
    """Detach the store so nothing is written."""
    if getattr(args, "dry_run", False):
        registry.store = None
        return True
    return False


def _finish(dry_run: bool, message: str) -> int:
    if dry_run:
        print("(dry run - no changes made)")
    else:
        print(message)
    return 0


def cmd_list(args, registry: FleetRegistry) -> int:
    """Show the fleet."""
    records = registry.view(
        query=args.query or "",
        status_filter=args.filter,
        sort_key=args.sort,
        descending=args.desc,
    )
    counts = registry.status_counts()

    print(f"Chassis: {len(registry)}")
    print(
        f"Overdue: {counts[Status.OVERDUE]}  Due soon: {counts[Status.DUE_SOON]}  "
        f"OK: {counts[Status.OK]}  No dates: {counts[Status.NONE]}"
    )
    if args.query or args.filter != "all":
        print(f"Showing: {len(records)} (filtered)")
    print()

    if not records:
        print("No chassis found.")
        return 0

    print(tabulate(make_fleet_table(records, registry), headers=FLEET_HEADERS, tablefmt="simple"))
    return 0


def cmd_show(args, registry: FleetRegistry) -> int:
    """Show one chassis and its ledger."""
    record = _resolve(registry, args.chassis)
    if record is None:
        return 1
    bucket = registry.bucket(record.id)
    today = registry.today()
    soon = registry.soon_days

    print(f"Chassis: {record.display_name}  (id {record.id})")
    print(f"Plate:        {record.plate or '-'}")
    print(f"VIN:          {record.vin or '-'}")
    print(f"Registration: {format_due(record.registration_due, soon, today)}")
    print(f"Annual:       {format_due(record.annual_due, soon, today)}")
    if record.annual_due:
        print(f"  last done:  {last_done_from_due(ANNUAL, record.annual_due)}")
    print(f"BIT:          {format_due(record.bit_due, soon, today)}")
    if record.bit_due:
        print(f"  last done:  {last_done_from_due(BIT, record.bit_due)}")
    print(f"Status:       {registry.status_of(record, today).label}")
    if record.notes:
        print(f"Notes:        {record.notes}")
    print()

    for kind in INSPECTION_KINDS:
        events = bucket.inspections_for(kind)
        print(f"{kind.upper()} INSPECTIONS:")
        if events:
            print(
                tabulate(
                    make_inspection_table(events),
                    headers=["Done", "Due", "Entered", "Id"],
                    tablefmt="simple",
                )
            )
        else:
            print("  none")
        print()

    print("CITATIONS:")
    if bucket.citations:
        print(
            tabulate(
                make_citation_table(
                    bucket.citations, registry.ledger.linked_repair_counts(record.id)
                ),
                headers=["Date", "Number", "Location", "Repairs", "Notes", "Id"],
                tablefmt="simple",
            )
        )
    else:
        print("  none")
    print()

    print("REPAIRS:")
    if bucket.repairs:
        print(
            tabulate(
                make_repair_table(bucket.repairs, bucket),
                headers=["Date", "Vendor", "Work", "Citation", "Notes", "Id"],
                tablefmt="simple",
            )
        )
    else:
        print("  none")
    return 0


def _record_changes(args) -> dict:
    changes = {}
    for field in ("unit", "plate", "vin", "notes"):
        value = getattr(args, field)
        if value is not None:
            changes[field] = value.strip()
    if args.registration_due is not None:
        changes["registration_due"] = args.registration_due
    return changes


def _save(args, registry: FleetRegistry, record: ChassisRecord, verb: str) -> int:
    dry_run = _dry_run(registry, args)
    saved = registry.save(record, last_annual=args.annual_done, last_bit=args.bit_done)

    print(f"{verb} chassis {saved.display_name}:")
    print(f"  Unit:         {saved.unit or '-'}")
    print(f"  Plate:        {saved.plate or '-'}")
    print(f"  VIN:          {saved.vin or '-'}")
    print(f"  Registration: {format_date(saved.registration_due)}")
    print(f"  Annual due:   {format_date(saved.annual_due)}")
    print(f"  BIT due:      {format_date(saved.bit_due)}")
    print()
    return _finish(dry_run, "Chassis saved.")


def cmd_add(args, registry: FleetRegistry) -> int:
    """Add a new chassis."""
    record = registry.new_record().replace(**_record_changes(args))
    return _save(args, registry, record, "Adding")


def cmd_edit(args, registry: FleetRegistry) -> int:
    """Update an existing chassis."""
    record = _resolve(registry, args.chassis)
    if record is None:
        return 1
    return _save(args, registry, record.replace(**_record_changes(args)), "Updating")


def cmd_delete(args, registry: FleetRegistry) -> int:
    """Remove a chassis."""
    record = _resolve(registry, args.chassis)
    if record is None:
        return 1
    dry_run = _dry_run(registry, args)
    print(f"Deleting chassis {record.display_name} (id {record.id})")
    registry.delete(record.id)
    return _finish(dry_run, "Chassis deleted.")


def cmd_inspect(args, registry: FleetRegistry) -> int:
    """Record a completed inspection and update the matching due date."""
    record = _resolve(registry, args.chassis)
    if record is None:
        return 1
    dry_run = _dry_run(registry, args)
    extras = {"last_annual": args.done} if args.kind == ANNUAL else {"last_bit": args.done}
    saved = registry.save(record, **extras)
    due = saved.annual_due if args.kind == ANNUAL else saved.bit_due
    print(f"{args.kind.upper()} inspection for {saved.display_name}: done {args.done}, due {format_date(due)}")
    return _finish(dry_run, "Inspection recorded.")


def cmd_cite(args, registry: FleetRegistry) -> int:
    """Add a citation."""
    record = _resolve(registry, args.chassis)
    if record is None:
        return 1
    dry_run = _dry_run(registry, args)
    entry = {
        "date": args.date or registry.today().isoformat(),
        "number": args.number or "",
        "location": args.location or "",
        "notes": args.notes or "",
    }
    before = len(registry.bucket(record.id).citations)
    bucket = registry.add_citation(record.id, entry, dedupe_token=args.token)
    if bucket is None or len(bucket.citations) == before:
        print("Duplicate submission ignored.")
        return 0
    print(f"Citation for {record.display_name}: {entry['number'] or '-'} on {entry['date']}")
    print(f"  Id: {bucket.citations[0].id}")
    return _finish(dry_run, "Citation saved.")


def cmd_repair(args, registry: FleetRegistry) -> int:
    """Add a repair, optionally linked to a citation."""
    record = _resolve(registry, args.chassis)
    if record is None:
        return 1
    if args.citation and registry.bucket(record.id).get_citation(args.citation) is None:
        print(f"Error: No citation '{args.citation}' for {record.display_name}")
        return 1
    dry_run = _dry_run(registry, args)
    entry = {
        "date": args.date or registry.today().isoformat(),
        "vendor": args.vendor or "",
        "work": args.work or "",
        "notes": args.notes or "",
        "citation_id": args.citation or "",
    }
    before = len(registry.bucket(record.id).repairs)
    bucket = registry.add_repair(record.id, entry, dedupe_token=args.token)
    if bucket is None or len(bucket.repairs) == before:
        print("Duplicate submission ignored.")
        return 0
    print(f"Repair for {record.display_name}: {entry['work'] or '-'} on {entry['date']}")
    return _finish(dry_run, "Repair saved.")


def cmd_delete_citation(args, registry: FleetRegistry) -> int:
    """Remove a citation and unlink the repairs that referenced it."""
    record = _resolve(registry, args.chassis)
    if record is None:
        return 1
    linked = registry.ledger.linked_repair_counts(record.id).get(args.entry_id, 0)
    dry_run = _dry_run(registry, args)
    registry.delete_citation(record.id, args.entry_id)
    if linked:
        print(f"Unlinked {linked} repair(s).")
    return _finish(dry_run, "Citation deleted.")


def cmd_delete_repair(args, registry: FleetRegistry) -> int:
    """Remove a repair."""
    record = _resolve(registry, args.chassis)
    if record is None:
        return 1
    dry_run = _dry_run(registry, args)
    registry.delete_repair(record.id, args.entry_id)
    return _finish(dry_run, "Repair deleted.")


def cmd_delete_inspection(args, registry: FleetRegistry) -> int:
    """Remove an inspection history entry."""
    record = _resolve(registry, args.chassis)
    if record is None:
        return 1
    dry_run = _dry_run(registry, args)
    registry.delete_inspection(record.id, args.kind, args.entry_id)
    return _finish(dry_run, "Inspection deleted.")


def cmd_import(args, registry: FleetRegistry) -> int:
    """Import chassis from a CSV or Excel file."""
    if not args.file.exists():
        print(f"Error: File not found: {args.file}")
        return 1
    dry_run = _dry_run(registry, args)
    result = registry.import_rows(read_rows(args.file))
    for record in result.accepted:
        print(f"  + {record.unit or '-'} / {record.plate or '-'} / {record.vin or '-'}")
    return _finish(dry_run, result.summary)


def cmd_export(args, registry: FleetRegistry) -> int:
    """Export the filtered view as CSV."""
    records = registry.view(
        query=args.query or "",
        status_filter=args.filter,
        sort_key=args.sort,
        descending=args.desc,
    )
    text = registry.export_csv(records)
    if args.output == "-":
        sys.stdout.write(text)
        return 0
    output = Path(args.output or export_filename(registry.today()))
    output.write_text(text)
    print(f"Exported {len(records)} chassis to {output}")
    return 0


COMMANDS = {
    "list": cmd_list,
    "show": cmd_show,
    "add": cmd_add,
    "edit": cmd_edit,
    "delete": cmd_delete,
    "inspect": cmd_inspect,
    "cite": cmd_cite,
    "repair": cmd_repair,
    "delete-citation": cmd_delete_citation,
    "delete-repair": cmd_delete_repair,
    "delete-inspection": cmd_delete_inspection,
    "import": cmd_import,
    "export": cmd_export,
}

# =============================================================================
# Main
# =============================================================================


def _add_view_args(parser):
    parser.add_argument("query", nargs="?", help="Search unit, plate, VIN and notes")
    parser.add_argument(
        "--filter", choices=STATUS_FILTERS, default="all", help="Status filter (default: all)"
    )
    parser.add_argument(
        "--sort",
        choices=SORT_KEYS,
        default="next_due",
        help="Sort order (default: next_due)",
    )
    parser.add_argument("--desc", action="store_true", help="Sort descending")


def _add_record_args(parser):
    parser.add_argument("--unit", type=str, help="Unit number (e.g., CH-101)")
    parser.add_argument("--plate", type=str, help="Plate number")
    parser.add_argument("--vin", type=str, help="VIN")
    parser.add_argument(
        "--registration-due", type=str, help="Registration due date (YYYY-MM-DD)"
    )
    parser.add_argument(
        "--annual-done", type=str, help="Annual inspection done date (adds 365d)"
    )
    parser.add_argument("--bit-done", type=str, help="BIT inspection done date (adds 90d)")
    parser.add_argument("--notes", type=str, help="Notes")


def _add_dry_run(parser):
    parser.add_argument(
        "--dry-run", action="store_true", help="Show what would change without saving"
    )


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Chassis compliance tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s list
  %(prog)s list --filter overdue
  %(prog)s list CH-1 --sort unit --desc
  %(prog)s add --unit CH-101 --plate 4ABC123 --annual-done 2025-03-01
  %(prog)s inspect CH-101 bit 2025-06-01
  %(prog)s cite CH-101 --number A12345 --location "I-10 scale"
  %(prog)s repair CH-101 --vendor "Acme" --work "Lights" --citation <id>
  %(prog)s import chassis.xlsx
  %(prog)s export --filter soon --output due.csv
""",
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=settings.data_file,
        help=f"Path to fleet YAML file (default: {settings.data_file})",
    )
    parser.add_argument(
        "--soon-days",
        type=int,
        default=settings.soon_days,
        help=f"Days ahead to flag as due soon (default: {settings.soon_days})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    _add_view_args(subparsers.add_parser("list", help="Show the fleet"))

    show_parser = subparsers.add_parser("show", help="Show a chassis and its ledger")
    show_parser.add_argument("chassis", help="Chassis id, unit or plate")

    add_parser = subparsers.add_parser("add", help="Add a chassis")
    _add_record_args(add_parser)
    _add_dry_run(add_parser)

    edit_parser = subparsers.add_parser("edit", help="Update a chassis")
    edit_parser.add_argument("chassis", help="Chassis id, unit or plate")
    _add_record_args(edit_parser)
    _add_dry_run(edit_parser)

    delete_parser = subparsers.add_parser("delete", help="Remove a chassis")
    delete_parser.add_argument("chassis", help="Chassis id, unit or plate")
    _add_dry_run(delete_parser)

    inspect_parser = subparsers.add_parser("inspect", help="Record an inspection")
    inspect_parser.add_argument("chassis", help="Chassis id, unit or plate")
    inspect_parser.add_argument("kind", choices=INSPECTION_KINDS, help="Inspection kind")
    inspect_parser.add_argument("done", help="Date the inspection was done (YYYY-MM-DD)")
    _add_dry_run(inspect_parser)

    cite_parser = subparsers.add_parser("cite", help="Add a citation")
    cite_parser.add_argument("chassis", help="Chassis id, unit or plate")
    cite_parser.add_argument("--date", type=str, help="Citation date (default: today)")
    cite_parser.add_argument("--number", type=str, help="Citation number")
    cite_parser.add_argument("--location", type=str, help="Where it was issued")
    cite_parser.add_argument("--notes", type=str, help="Notes")
    cite_parser.add_argument("--token", type=str, help="Submission token (repeats are ignored)")
    _add_dry_run(cite_parser)

    repair_parser = subparsers.add_parser("repair", help="Add a repair")
    repair_parser.add_argument("chassis", help="Chassis id, unit or plate")
    repair_parser.add_argument("--date", type=str, help="Repair date (default: today)")
    repair_parser.add_argument("--vendor", type=str, help="Who did the work")
    repair_parser.add_argument("--work", type=str, help="Work performed")
    repair_parser.add_argument("--notes", type=str, help="Notes")
    repair_parser.add_argument("--citation", type=str, help="Id of the citation this repair addressed")
    repair_parser.add_argument("--token", type=str, help="Submission token (repeats are ignored)")
    _add_dry_run(repair_parser)

    for name, help_text in (
        ("delete-citation", "Remove a citation and unlink its repairs"),
        ("delete-repair", "Remove a repair"),
    ):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("chassis", help="Chassis id, unit or plate")
        p.add_argument("entry_id", help="Ledger entry id")
        _add_dry_run(p)

    del_insp_parser = subparsers.add_parser(
        "delete-inspection", help="Remove an inspection history entry"
    )
    del_insp_parser.add_argument("chassis", help="Chassis id, unit or plate")
    del_insp_parser.add_argument("kind", choices=INSPECTION_KINDS, help="Inspection kind")
    del_insp_parser.add_argument("entry_id", help="Inspection entry id")
    _add_dry_run(del_insp_parser)

    import_parser = subparsers.add_parser("import", help="Import chassis from CSV/XLSX")
    import_parser.add_argument("file", type=Path, help="CSV or Excel file with unit/plate/VIN")
    _add_dry_run(import_parser)

    export_parser = subparsers.add_parser("export", help="Export the fleet as CSV")
    _add_view_args(export_parser)
    export_parser.add_argument(
        "--output", type=str, help="Output file, or '-' for stdout (default: dated file name)"
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    try:
        settings = Settings.from_env()
    except ChassisError as exc:
        print(f"Error: {exc}")
        return 1
    args = build_parser(settings).parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        registry = FleetRegistry.load(YamlFleetStore(args.data), soon_days=args.soon_days)
        return COMMANDS[args.command](args, registry)
    except ChassisError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
