"""ChassisRecord dataclass for fleet members."""

from dataclasses import dataclass, replace
from typing import Optional, Tuple


@dataclass(frozen=True)
class ChassisRecord:
    """A trailer chassis and its three compliance due dates."""

    id: str
    unit: str = ""
    plate: str = ""
    vin: str = ""
    registration_due: str = ""
    annual_due: str = ""
    bit_due: str = ""
    notes: str = ""

    @property
    def due_dates(self) -> Tuple[str, str, str]:
        return (self.registration_due, self.annual_due, self.bit_due)

    @property
    def next_due(self) -> Optional[str]:
        """Earliest due date on file, or None when all three are empty."""
        dates = [d for d in self.due_dates if d]
        return min(dates) if dates else None

    @property
    def display_name(self) -> str:
        """Human-readable label: unit, falling back to plate, then id."""
        return self.unit or self.plate or self.id

    def matches(self, query: str) -> bool:
        """Case-insensitive substring search over unit, plate, VIN and notes."""
        q = (query or "").strip().lower()
        if not q:
            return True
        return any(
            q in (field or "").lower()
            for field in (self.unit, self.plate, self.vin, self.notes)
        )

    def replace(self, **changes) -> "ChassisRecord":
        """Copy of this record with ``changes`` applied (the id never changes)."""
        changes.pop("id", None)
        return replace(self, **changes)
