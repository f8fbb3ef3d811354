"""RepairEvent dataclass for repair records."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RepairEvent:
    """
    A repair performed on a chassis.

    ``citation_id`` optionally links the repair to the citation it
    addressed. It is either empty or the id of a citation in the same
    ledger bucket; deleting that citation clears it.
    """

    id: str
    date: str = ""
    vendor: str = ""
    work: str = ""
    notes: str = ""
    citation_id: str = ""
    token: Optional[str] = None
