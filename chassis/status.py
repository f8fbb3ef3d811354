"""Status enum for compliance urgency tiers."""

from enum import Enum


class Status(Enum):
    """Compliance status tiers. Lower value = more urgent."""

    OVERDUE = 1
    DUE_SOON = 2
    OK = 3
    NONE = 4  # No date on file
