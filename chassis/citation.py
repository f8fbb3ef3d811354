"""CitationEvent dataclass for roadside citations."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CitationEvent:
    """A citation issued against a chassis."""

    id: str
    date: str = ""
    number: str = ""
    location: str = ""
    notes: str = ""
    token: Optional[str] = None  # Guards against double submission
