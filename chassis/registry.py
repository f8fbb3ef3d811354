"""FleetRegistry - the live fleet, its ledger, and the views built on them."""

import csv
import io
import logging
from datetime import date, datetime
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from .calculations import ANNUAL, BIT, DEFAULT_SOON_DAYS, aggregate, inspection_due_date
from .changes import ChangeKind, FleetChange, LedgerChange
from .chassis_record import ChassisRecord
from .dates import to_iso
from .errors import PersistenceError, RecordValidationError
from .identity import new_id
from .importer import ImportResult, RowMatrix, reconcile
from .ledger import LedgerBucket, LedgerStore
from .loader import FleetStore
from .status import Status
from .status_result import StatusResult

logger = logging.getLogger(__name__)

STATUS_FILTERS = ("all", "overdue", "soon", "ok")
SORT_KEYS = ("next_due", "unit", "plate")
EXPORT_FIELDS = (
    ("unit", "unit"),
    ("plate", "plate"),
    ("vin", "vin"),
    ("registrationDue", "registration_due"),
    ("annualDue", "annual_due"),
    ("bitDue", "bit_due"),
    ("notes", "notes"),
)


def sort_records(
    records: Iterable[ChassisRecord], sort_key: str = "next_due", descending: bool = False
) -> List[ChassisRecord]:
    """
    Sort records by nearest due date, unit or plate.

    Records with no due date at all always come last, in either direction.
    """
    if sort_key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key '{sort_key}'")
    records = list(records)
    if sort_key == "next_due":
        dated = [r for r in records if r.next_due]
        undated = [r for r in records if not r.next_due]
        return sorted(dated, key=lambda r: r.next_due, reverse=descending) + undated
    return sorted(
        records, key=lambda r: (getattr(r, sort_key) or "").lower(), reverse=descending
    )


def export_filename(today: Optional[date] = None) -> str:
    """Default file name for a CSV export, e.g. chassis_export_2025-01-15.csv"""
    today = today or date.today()
    return f"chassis_export_{today.isoformat()}.csv"


def _checked_date(label: str, value) -> str:
    """Canonical ISO date, or "" when blank. Raises on unparsable input."""
    iso = to_iso(value)
    if not iso and str(value or "").strip():
        raise RecordValidationError(f"{label} '{value}' is not a valid date.")
    return iso


class FleetRegistry:
    """
    The collection of chassis records plus the ledger kept alongside it.

    Every change to the records ensures a ledger bucket exists for each live
    chassis. Buckets of deleted chassis are left in place. When a store is
    attached, the full snapshot is handed to it after each local mutation.
    """

    def __init__(
        self,
        records: Iterable[ChassisRecord] = (),
        buckets: Optional[Mapping[str, LedgerBucket]] = None,
        store: Optional[FleetStore] = None,
        id_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        soon_days: int = DEFAULT_SOON_DAYS,
    ):
        self._new_id = id_factory or new_id
        self._clock = clock or datetime.now
        self.store = store
        self.soon_days = soon_days
        self.ledger = LedgerStore(buckets, id_factory=self._new_id, clock=self._clock)
        self._records: Tuple[ChassisRecord, ...] = ()
        self._set_records(records)

    @classmethod
    def load(cls, store: FleetStore, **kwargs) -> "FleetRegistry":
        """Build a registry from the store's current snapshot."""
        try:
            records, buckets = store.load()
        except Exception as exc:
            raise PersistenceError(f"Failed to load fleet: {exc}") from exc
        return cls(records, buckets, store=store, **kwargs)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def records(self) -> Tuple[ChassisRecord, ...]:
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def today(self) -> date:
        return self._clock().date()

    def _set_records(self, records: Iterable[ChassisRecord]) -> None:
        self._records = tuple(records)
        self.ledger.ensure_buckets(r.id for r in self._records)

    def _persist(self) -> None:
        if self.store is None:
            return
        try:
            self.store.save(self._records, self.ledger.buckets)
        except Exception as exc:
            raise PersistenceError(f"Failed to save fleet: {exc}") from exc

    def _index(self, chassis_id: str) -> Optional[int]:
        for i, record in enumerate(self._records):
            if record.id == chassis_id:
                return i
        return None

    def _upsert(self, record: ChassisRecord) -> None:
        records = list(self._records)
        index = self._index(record.id)
        if index is None:
            records.insert(0, record)
        else:
            records[index] = record
        self._set_records(records)

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def new_record(self) -> ChassisRecord:
        """A blank record with a fresh id (not yet part of the fleet)."""
        return ChassisRecord(id=self._new_id())

    def get(self, chassis_id: str) -> Optional[ChassisRecord]:
        index = self._index(chassis_id)
        return self._records[index] if index is not None else None

    def find(self, key: str) -> Optional[ChassisRecord]:
        """Look up a record by id, then by unit or plate (case-insensitive)."""
        record = self.get(key)
        if record is not None:
            return record
        wanted = (key or "").strip().lower()
        for attr in ("unit", "plate"):
            for record in self._records:
                if wanted and (getattr(record, attr) or "").lower() == wanted:
                    return record
        return None

    def save(
        self,
        record: ChassisRecord,
        last_annual: Optional[str] = None,
        last_bit: Optional[str] = None,
    ) -> ChassisRecord:
        """
        Add or update a record.

        When inspection done dates are given, the annual/BIT due dates are
        derived from them and the inspections are added to the ledger.
        """
        if not ((record.unit or "").strip() or (record.plate or "").strip()):
            raise RecordValidationError("Enter at least a Unit or Plate number.")

        last_annual = _checked_date("Annual done date", last_annual)
        last_bit = _checked_date("BIT done date", last_bit)
        record = record.replace(
            registration_due=_checked_date("Registration due date", record.registration_due),
            annual_due=(
                inspection_due_date(ANNUAL, last_annual)
                if last_annual
                else _checked_date("Annual due date", record.annual_due)
            ),
            bit_due=(
                inspection_due_date(BIT, last_bit)
                if last_bit
                else _checked_date("BIT due date", record.bit_due)
            ),
        )

        self._upsert(record)
        if last_annual:
            self.ledger.record_inspection(record.id, ANNUAL, last_annual)
        if last_bit:
            self.ledger.record_inspection(record.id, BIT, last_bit)
        self._persist()
        return record

    def delete(self, chassis_id: str) -> bool:
        """Remove a record. Its ledger bucket is kept."""
        if self._index(chassis_id) is None:
            return False
        self._set_records(r for r in self._records if r.id != chassis_id)
        self._persist()
        return True

    def import_rows(self, rows: RowMatrix) -> ImportResult:
        """Import rows, adding new chassis ahead of the existing fleet."""
        result = reconcile(rows, self._records, self._new_id)
        if result.accepted:
            self._set_records(result.accepted + self._records)
            self._persist()
        return result

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    def bucket(self, chassis_id: str) -> LedgerBucket:
        return self.ledger.ensure_bucket(chassis_id)

    def _ledger_op(self, result: Optional[LedgerBucket]) -> Optional[LedgerBucket]:
        if result is not None:
            self._persist()
        return result

    def record_inspection(self, chassis_id: str, kind: str, done_date) -> Optional[LedgerBucket]:
        return self._ledger_op(self.ledger.record_inspection(chassis_id, kind, done_date))

    def add_citation(
        self, chassis_id: str, entry: Mapping[str, str], dedupe_token: Optional[str] = None
    ) -> Optional[LedgerBucket]:
        return self._ledger_op(self.ledger.add_citation(chassis_id, entry, dedupe_token))

    def add_repair(
        self, chassis_id: str, entry: Mapping[str, str], dedupe_token: Optional[str] = None
    ) -> Optional[LedgerBucket]:
        return self._ledger_op(self.ledger.add_repair(chassis_id, entry, dedupe_token))

    def delete_citation(self, chassis_id: str, citation_id: str) -> Optional[LedgerBucket]:
        return self._ledger_op(self.ledger.delete_citation(chassis_id, citation_id))

    def delete_repair(self, chassis_id: str, repair_id: str) -> Optional[LedgerBucket]:
        return self._ledger_op(self.ledger.delete_repair(chassis_id, repair_id))

    def delete_inspection(
        self, chassis_id: str, kind: str, entry_id: str
    ) -> Optional[LedgerBucket]:
        return self._ledger_op(self.ledger.delete_inspection(chassis_id, kind, entry_id))

    # -------------------------------------------------------------------------
    # Remote changes
    # -------------------------------------------------------------------------

    def apply_change(self, change: FleetChange) -> None:
        """Fold a remote fleet change in: whole-record upsert or delete by id."""
        if change.kind == ChangeKind.DELETED:
            self._set_records(r for r in self._records if r.id != change.record.id)
        else:
            self._upsert(change.record)
        logger.debug("Applied remote %s for chassis %s", change.kind.value, change.record.id)

    def apply_ledger_change(self, change: LedgerChange) -> None:
        """Fold a remote ledger change in: whole-bucket upsert or delete."""
        if change.kind == ChangeKind.DELETED or change.bucket is None:
            self.ledger.discard_bucket(change.chassis_id)
            if self._index(change.chassis_id) is not None:
                self.ledger.ensure_bucket(change.chassis_id)
        else:
            self.ledger.replace_bucket(change.chassis_id, change.bucket)
        logger.debug("Applied remote ledger %s for chassis %s", change.kind.value, change.chassis_id)

    def handle_change(self, change) -> None:
        """Dispatch a feed event to apply_change or apply_ledger_change."""
        if isinstance(change, LedgerChange):
            self.apply_ledger_change(change)
        else:
            self.apply_change(change)

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def status_of(self, record: ChassisRecord, today: Optional[date] = None) -> StatusResult:
        """Overall status of a record: its most urgent due date."""
        return aggregate(
            record.registration_due,
            record.annual_due,
            record.bit_due,
            self.soon_days,
            today or self.today(),
        )

    def matches_filter(
        self, record: ChassisRecord, status_filter: str = "all", today: Optional[date] = None
    ) -> bool:
        """
        Status filter predicate.

        'ok' means nothing overdue or due soon, so it includes records with
        no dates on file.
        """
        if status_filter not in STATUS_FILTERS:
            raise ValueError(f"Unknown status filter '{status_filter}'")
        if status_filter == "all":
            return True
        status = self.status_of(record, today).status
        if status_filter == "overdue":
            return status == Status.OVERDUE
        if status_filter == "soon":
            return status == Status.DUE_SOON
        return status in (Status.OK, Status.NONE)

    def view(
        self,
        query: str = "",
        status_filter: str = "all",
        sort_key: str = "next_due",
        descending: bool = False,
    ) -> List[ChassisRecord]:
        """Search, filter and sort the fleet."""
        today = self.today()
        matching = [
            r
            for r in self._records
            if r.matches(query) and self.matches_filter(r, status_filter, today)
        ]
        return sort_records(matching, sort_key, descending)

    def status_counts(self, today: Optional[date] = None) -> dict:
        """Number of records in each overall status."""
        today = today or self.today()
        counts = {status: 0 for status in Status}
        for record in self._records:
            counts[self.status_of(record, today).status] += 1
        return counts

    def export_csv(self, records: Optional[Sequence[ChassisRecord]] = None) -> str:
        """CSV text of ``records`` (default: the full sorted view), with header."""
        if records is None:
            records = self.view()
        out = io.StringIO()
        writer = csv.writer(out, lineterminator="\n")
        writer.writerow([name for name, _ in EXPORT_FIELDS])
        for record in records:
            writer.writerow([getattr(record, attr) or "" for _, attr in EXPORT_FIELDS])
        return out.getvalue()
