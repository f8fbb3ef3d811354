"""InspectionEvent dataclass for annual/BIT inspection history."""

from dataclasses import dataclass


@dataclass(frozen=True)
class InspectionEvent:
    """A completed inspection and the due date it establishes."""

    id: str
    done_date: str
    due_date: str
    entered_at: str
