"""Change events delivered by a persistence collaborator's feed."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .chassis_record import ChassisRecord
from .ledger import LedgerBucket


class ChangeKind(Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


@dataclass(frozen=True)
class FleetChange:
    """A whole-record change to the fleet table."""

    kind: ChangeKind
    record: ChassisRecord


@dataclass(frozen=True)
class LedgerChange:
    """A whole-bucket change to the ledger table. ``bucket`` is None on delete."""

    kind: ChangeKind
    chassis_id: str
    bucket: Optional[LedgerBucket] = None
