"""
Bulk import of chassis from tabular rows.

Rows are lists of raw cells, whether they came from a CSV file or a
spreadsheet. The pipeline is:

    rows -> HeaderedInput | HeaderlessInput -> FieldMapping
         -> candidate ChassisRecords -> de-duplicated ImportResult

Structural problems (no header, missing column, nothing usable) abort the
whole import. Rows whose unit, plate and VIN are all empty are skipped.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple, Union

from .chassis_record import ChassisRecord
from .errors import HeadersNotDetectedError, MissingColumnError, NoUsableRowsError
from .identity import new_id

logger = logging.getLogger(__name__)

Row = Sequence[Any]
RowMatrix = Sequence[Row]

UNIT_HEADERS = frozenset(
    {"unit", "unit#", "unitnumber", "chassis", "chassis#", "chassisnumber"}
)
PLATE_HEADERS = frozenset({"plate", "plate#", "license", "licenseplate", "tag"})
VIN_HEADERS = frozenset({"vin"})

FIELDS = ("unit", "plate", "vin")
HEADER_SYNONYMS = {
    "unit": UNIT_HEADERS,
    "plate": PLATE_HEADERS,
    "vin": VIN_HEADERS,
}
ALL_HEADERS = UNIT_HEADERS | PLATE_HEADERS | VIN_HEADERS


@dataclass(frozen=True)
class HeaderedInput:
    """Row 0 was recognised as a header row."""

    header: Row
    data_rows: RowMatrix


@dataclass(frozen=True)
class HeaderlessInput:
    """No header found; columns are assumed to be unit, plate, VIN."""

    data_rows: RowMatrix


DetectedInput = Union[HeaderedInput, HeaderlessInput]


@dataclass(frozen=True)
class FieldMapping:
    """Column index of each target field."""

    unit: int
    plate: int
    vin: int


@dataclass(frozen=True)
class ImportResult:
    """Records accepted by an import and the number skipped as duplicates."""

    accepted: Tuple[ChassisRecord, ...]
    skipped: int = 0

    @property
    def total(self) -> int:
        return len(self.accepted) + self.skipped

    @property
    def summary(self) -> str:
        text = f"Imported {len(self.accepted)} chassis"
        if self.skipped:
            text += f" (skipped {self.skipped} duplicates)"
        return text + "."


def normalize_header(cell: Any) -> str:
    """'Unit #' -> 'unit#'"""
    text = "" if cell is None else str(cell)
    return re.sub(r"\s+", "", text.strip().lower())


def cell_text(cell: Any) -> str:
    """Render a raw cell as trimmed text ('' for empty cells)."""
    if cell is None:
        return ""
    if isinstance(cell, float) and cell.is_integer():
        cell = int(cell)
    return str(cell).strip()


def detect_header(rows: RowMatrix) -> DetectedInput:
    """Decide whether row 0 is a header row."""
    if not rows:
        raise NoUsableRowsError("File is empty.")
    first = list(rows[0] or [])
    if any(normalize_header(cell) in ALL_HEADERS for cell in first):
        return HeaderedInput(header=first, data_rows=rows[1:])
    if len(first) >= 3:
        return HeaderlessInput(data_rows=rows)
    raise HeadersNotDetectedError()


def map_columns(detected: DetectedInput) -> FieldMapping:
    """Map unit/plate/VIN to column indices."""
    if isinstance(detected, HeaderlessInput):
        return FieldMapping(unit=0, plate=1, vin=2)

    indices = {field: -1 for field in FIELDS}
    for i, cell in enumerate(detected.header):
        name = normalize_header(cell)
        for field, synonyms in HEADER_SYNONYMS.items():
            if name in synonyms:
                indices[field] = i

    missing = [field for field in FIELDS if indices[field] == -1]
    if missing:
        raise MissingColumnError(missing)
    return FieldMapping(**indices)


def _read(row: Row, index: int) -> str:
    if index < 0 or index >= len(row):
        return ""
    return cell_text(row[index])


def extract_candidates(
    data_rows: Iterable[Optional[Row]],
    mapping: FieldMapping,
    id_factory: Optional[Callable[[], str]] = None,
) -> List[ChassisRecord]:
    """Build candidate records, skipping rows with no unit, plate or VIN."""
    make_id = id_factory or new_id
    candidates = []
    for row in data_rows:
        if not row:
            continue
        unit = _read(row, mapping.unit)
        plate = _read(row, mapping.plate)
        vin = _read(row, mapping.vin)
        if not (unit or plate or vin):
            continue
        candidates.append(ChassisRecord(id=make_id(), unit=unit, plate=plate, vin=vin))
    return candidates


def _composite_key(record: ChassisRecord) -> str:
    return f"{(record.unit or '').upper()}|{(record.plate or '').upper()}"


def deduplicate(
    candidates: Iterable[ChassisRecord], existing: Iterable[ChassisRecord]
) -> Tuple[List[ChassisRecord], int]:
    """
    Drop candidates already present in ``existing`` or earlier in the batch.

    A candidate is a duplicate when its VIN (if any) or its UNIT|PLATE key
    has been seen. Returns the accepted candidates in input order and the
    number skipped.
    """
    existing = list(existing)
    seen_vins = {(r.vin or "").upper() for r in existing}
    seen_keys = {_composite_key(r) for r in existing}

    accepted = []
    skipped = 0
    for candidate in candidates:
        vin = (candidate.vin or "").upper()
        key = _composite_key(candidate)
        if (vin and vin in seen_vins) or key in seen_keys:
            skipped += 1
            continue
        seen_vins.add(vin)
        seen_keys.add(key)
        accepted.append(candidate)
    return accepted, skipped


def reconcile(
    rows: RowMatrix,
    existing: Iterable[ChassisRecord] = (),
    id_factory: Optional[Callable[[], str]] = None,
) -> ImportResult:
    """Run the full import pipeline against the current fleet."""
    detected = detect_header(rows)
    mapping = map_columns(detected)
    candidates = extract_candidates(detected.data_rows, mapping, id_factory)
    if not candidates:
        raise NoUsableRowsError()

    accepted, skipped = deduplicate(candidates, existing)
    logger.info(
        "Import: %d rows, %d accepted, %d duplicates (%s)",
        len(candidates),
        len(accepted),
        skipped,
        "headered" if isinstance(detected, HeaderedInput) else "headerless",
    )
    return ImportResult(accepted=tuple(accepted), skipped=skipped)
