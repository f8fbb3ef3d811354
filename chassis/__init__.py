"""
Chassis compliance tracking.

This package provides the models and logic for tracking a chassis fleet:
- Status: Urgency tiers (OVERDUE, DUE_SOON, OK, NONE)
- ChassisRecord: Unit/plate/VIN and the three compliance due dates
- InspectionEvent, CitationEvent, RepairEvent: Ledger history
- LedgerStore: Per-chassis ledger buckets and their consistency rules
- reconcile: Bulk import of chassis from tabular rows
- FleetRegistry: The live fleet, filtering, sorting and export
"""

from .status import Status
from .status_result import StatusResult
from .chassis_record import ChassisRecord
from .inspection import InspectionEvent
from .citation import CitationEvent
from .repair import RepairEvent
from .ledger import LedgerBucket, LedgerStore
from .calculations import (
    ANNUAL,
    BIT,
    INSPECTION_KINDS,
    aggregate,
    classify,
    inspection_due_date,
    last_done_from_due,
)
from .dates import INFINITE, add_days, days_until, format_human, subtract_days, to_iso
from .errors import (
    ChassisError,
    ConfigurationError,
    HeadersNotDetectedError,
    ImportRejectedError,
    MissingColumnError,
    NoUsableRowsError,
    PersistenceError,
    RecordValidationError,
    UnsupportedFileError,
)
from .importer import ImportResult, reconcile
from .changes import ChangeKind, FleetChange, LedgerChange
from .loader import FleetStore, YamlFleetStore, load_fleet, save_fleet
from .registry import FleetRegistry, export_filename, sort_records

__all__ = [
    "Status",
    "StatusResult",
    "ChassisRecord",
    "InspectionEvent",
    "CitationEvent",
    "RepairEvent",
    "LedgerBucket",
    "LedgerStore",
    "ANNUAL",
    "BIT",
    "INSPECTION_KINDS",
    "aggregate",
    "classify",
    "inspection_due_date",
    "last_done_from_due",
    "INFINITE",
    "add_days",
    "days_until",
    "format_human",
    "subtract_days",
    "to_iso",
    "ChassisError",
    "ConfigurationError",
    "HeadersNotDetectedError",
    "ImportRejectedError",
    "MissingColumnError",
    "NoUsableRowsError",
    "PersistenceError",
    "RecordValidationError",
    "UnsupportedFileError",
    "ImportResult",
    "reconcile",
    "ChangeKind",
    "FleetChange",
    "LedgerChange",
    "FleetStore",
    "YamlFleetStore",
    "load_fleet",
    "save_fleet",
    "FleetRegistry",
    "export_filename",
    "sort_records",
]
