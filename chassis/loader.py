"""YAML loading and saving utilities for fleet data."""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Tuple, Union

import yaml

from .calculations import INSPECTION_KINDS
from .chassis_record import ChassisRecord
from .citation import CitationEvent
from .dates import to_iso
from .inspection import InspectionEvent
from .ledger import LedgerBucket
from .repair import RepairEvent

logger = logging.getLogger(__name__)

Snapshot = Tuple[List[ChassisRecord], Dict[str, LedgerBucket]]


def _text(value: Any) -> str:
    return "" if value is None else str(value)


# =============================================================================
# Records
# =============================================================================


def record_from_dict(dct: Mapping[str, Any]) -> ChassisRecord:
    """Parse a chassis dict (camelCase keys) into a ChassisRecord."""
    return ChassisRecord(
        id=_text(dct["id"]),
        unit=_text(dct.get("unit")),
        plate=_text(dct.get("plate")),
        vin=_text(dct.get("vin")),
        registration_due=to_iso(dct.get("registrationDue")),
        annual_due=to_iso(dct.get("annualDue")),
        bit_due=to_iso(dct.get("bitDue")),
        notes=_text(dct.get("notes")),
    )


def record_to_dict(record: ChassisRecord) -> Dict[str, Any]:
    """Serialize a ChassisRecord, omitting empty fields for cleaner YAML."""
    d: Dict[str, Any] = {"id": record.id}
    for key, value in (
        ("unit", record.unit),
        ("plate", record.plate),
        ("vin", record.vin),
        ("registrationDue", record.registration_due),
        ("annualDue", record.annual_due),
        ("bitDue", record.bit_due),
        ("notes", record.notes),
    ):
        if value:
            d[key] = value
    return d


# =============================================================================
# Ledger buckets
# =============================================================================


def _inspection_from_dict(dct: Mapping[str, Any]) -> InspectionEvent:
    return InspectionEvent(
        id=_text(dct["id"]),
        done_date=to_iso(dct.get("doneDate")),
        due_date=to_iso(dct.get("dueDate")),
        entered_at=_text(dct.get("enteredAt")),
    )


def _citation_from_dict(dct: Mapping[str, Any]) -> CitationEvent:
    return CitationEvent(
        id=_text(dct["id"]),
        date=to_iso(dct.get("date")),
        number=_text(dct.get("number")),
        location=_text(dct.get("location")),
        notes=_text(dct.get("notes")),
        token=dct.get("token"),
    )


def _repair_from_dict(dct: Mapping[str, Any]) -> RepairEvent:
    return RepairEvent(
        id=_text(dct["id"]),
        date=to_iso(dct.get("date")),
        vendor=_text(dct.get("vendor")),
        work=_text(dct.get("work")),
        notes=_text(dct.get("notes")),
        citation_id=_text(dct.get("citationId")),
        token=dct.get("token"),
    )


def bucket_from_dict(dct: Mapping[str, Any]) -> LedgerBucket:
    """
    Parse a ledger bucket. Missing sub-collections load as empty, and repair
    links to citations that are not in the bucket are cleared.
    """
    dct = dct or {}
    inspections = dct.get("inspections") or {}
    bucket = LedgerBucket(
        citations=tuple(_citation_from_dict(c) for c in dct.get("citations") or []),
        repairs=tuple(_repair_from_dict(r) for r in dct.get("repairs") or []),
        **{
            kind: tuple(_inspection_from_dict(e) for e in inspections.get(kind) or [])
            for kind in INSPECTION_KINDS
        },
    )
    return bucket.without_dangling_links()


def bucket_to_dict(bucket: LedgerBucket) -> Dict[str, Any]:
    citations = []
    for c in bucket.citations:
        entry = {
            "id": c.id,
            "date": c.date,
            "number": c.number,
            "location": c.location,
            "notes": c.notes,
        }
        if c.token:
            entry["token"] = c.token
        citations.append(entry)

    repairs = []
    for r in bucket.repairs:
        entry = {
            "id": r.id,
            "date": r.date,
            "vendor": r.vendor,
            "work": r.work,
            "notes": r.notes,
            "citationId": r.citation_id,
        }
        if r.token:
            entry["token"] = r.token
        repairs.append(entry)

    return {
        "citations": citations,
        "repairs": repairs,
        "inspections": {
            kind: [
                {
                    "id": e.id,
                    "doneDate": e.done_date,
                    "dueDate": e.due_date,
                    "enteredAt": e.entered_at,
                }
                for e in events
            ]
            for kind, events in bucket.inspections.items()
        },
    }


# =============================================================================
# Files
# =============================================================================


def load_fleet(filename: Union[str, Path]) -> Snapshot:
    """
    Load the fleet and its ledger from a YAML file.

    A file that does not exist yet loads as an empty fleet.
    """
    path = Path(filename)
    if not path.exists():
        logger.info("No fleet file at %s; starting empty", path)
        return [], {}

    with open(path, "r") as fp:
        data = yaml.load(fp, Loader=yaml.SafeLoader) or {}

    records = [record_from_dict(d) for d in data.get("chassis") or []]
    buckets = {
        str(chassis_id): bucket_from_dict(bucket)
        for chassis_id, bucket in (data.get("ledger") or {}).items()
    }
    return records, buckets


def save_fleet(
    filename: Union[str, Path],
    records: Iterable[ChassisRecord],
    buckets: Mapping[str, LedgerBucket],
) -> None:
    """Write the fleet and its ledger to a YAML file."""
    path = Path(filename)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "chassis": [record_to_dict(r) for r in records],
        "ledger": {
            chassis_id: bucket_to_dict(bucket) for chassis_id, bucket in buckets.items()
        },
    }

    with open(path, "w") as fp:
        yaml.dump(
            data,
            fp,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
            width=120,
        )


# =============================================================================
# Persistence collaborators
# =============================================================================


class FleetStore:
    """
    Persistence collaborator interface.

    load() returns (records, buckets); save() receives a full snapshot after
    each mutation. subscribe() registers a callback for FleetChange and
    LedgerChange events from other writers and returns an unsubscribe
    callable.
    """

    def load(self) -> Snapshot:
        raise NotImplementedError

    def save(
        self, records: Iterable[ChassisRecord], buckets: Mapping[str, LedgerBucket]
    ) -> None:
        raise NotImplementedError

    def subscribe(self, callback: Callable[[Any], None]) -> Callable[[], None]:
        return lambda: None


class YamlFleetStore(FleetStore):
    """Keeps the fleet in a single YAML file. Has no change feed."""

    def __init__(self, filename: Union[str, Path]):
        self.filename = Path(filename)

    def load(self) -> Snapshot:
        return load_fleet(self.filename)

    def save(
        self, records: Iterable[ChassisRecord], buckets: Mapping[str, LedgerBucket]
    ) -> None:
        save_fleet(self.filename, records, buckets)
        logger.debug("Saved fleet to %s", self.filename)
