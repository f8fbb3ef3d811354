"""StatusResult dataclass for a classified due date."""

from dataclasses import dataclass
from typing import Union

from .status import Status


@dataclass(frozen=True)
class StatusResult:
    """Classification of a single due date."""

    status: Status
    label: str
    days: Union[int, float]

    @property
    def is_due(self) -> bool:
        return self.status in (Status.OVERDUE, Status.DUE_SOON)
