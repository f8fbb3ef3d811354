"""
Per-chassis ledger of inspections, citations and repairs.

A LedgerStore maps chassis ids to immutable LedgerBucket snapshots. Every
mutation builds a new bucket and a new mapping, so a bucket handed to a
caller never changes underneath it.

Invariant: a repair's ``citation_id`` is either empty or the id of a
citation in the same bucket.
"""

import logging
from collections import Counter
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Dict, Iterable, Mapping, Optional, Tuple

from .calculations import INSPECTION_KINDS, inspection_due_date
from .citation import CitationEvent
from .dates import to_iso
from .identity import new_id
from .inspection import InspectionEvent
from .repair import RepairEvent

logger = logging.getLogger(__name__)


def _check_kind(kind: str) -> str:
    if kind not in INSPECTION_KINDS:
        raise ValueError(f"Unknown inspection kind '{kind}'")
    return kind


@dataclass(frozen=True)
class LedgerBucket:
    """History for one chassis. Each collection is ordered newest first."""

    citations: Tuple[CitationEvent, ...] = ()
    repairs: Tuple[RepairEvent, ...] = ()
    annual: Tuple[InspectionEvent, ...] = ()
    bit: Tuple[InspectionEvent, ...] = ()

    @property
    def inspections(self) -> Dict[str, Tuple[InspectionEvent, ...]]:
        return {kind: getattr(self, kind) for kind in INSPECTION_KINDS}

    def inspections_for(self, kind: str) -> Tuple[InspectionEvent, ...]:
        return getattr(self, _check_kind(kind))

    def with_inspections(
        self, kind: str, events: Iterable[InspectionEvent]
    ) -> "LedgerBucket":
        return replace(self, **{_check_kind(kind): tuple(events)})

    def get_citation(self, citation_id: str) -> Optional[CitationEvent]:
        for citation in self.citations:
            if citation.id == citation_id:
                return citation
        return None

    def without_dangling_links(self) -> "LedgerBucket":
        """Copy with every repair link to a missing citation cleared."""
        known = {c.id for c in self.citations}
        if all(not r.citation_id or r.citation_id in known for r in self.repairs):
            return self
        repairs = tuple(
            r if not r.citation_id or r.citation_id in known
            else replace(r, citation_id="")
            for r in self.repairs
        )
        return replace(self, repairs=repairs)


class LedgerStore:
    """
    Owns the chassis id -> LedgerBucket mapping.

    Operations on a chassis without a bucket are no-ops that return None;
    callers are expected to ensure_bucket() first.
    """

    def __init__(
        self,
        buckets: Optional[Mapping[str, LedgerBucket]] = None,
        id_factory: Optional[Callable[[], str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._buckets: Dict[str, LedgerBucket] = dict(buckets or {})
        self._new_id = id_factory or new_id
        self._clock = clock or datetime.now

    @property
    def buckets(self) -> Dict[str, LedgerBucket]:
        """Snapshot of the id -> bucket mapping."""
        return dict(self._buckets)

    def bucket(self, chassis_id: str) -> Optional[LedgerBucket]:
        return self._buckets.get(chassis_id)

    def __contains__(self, chassis_id: str) -> bool:
        return chassis_id in self._buckets

    def _swap(self, chassis_id: str, bucket: LedgerBucket) -> LedgerBucket:
        self._buckets = {**self._buckets, chassis_id: bucket}
        return bucket

    def _existing(self, chassis_id: str, action: str) -> Optional[LedgerBucket]:
        bucket = self._buckets.get(chassis_id)
        if bucket is None:
            logger.debug("No ledger bucket for %s; ignoring %s", chassis_id, action)
        return bucket

    # -------------------------------------------------------------------------
    # Buckets
    # -------------------------------------------------------------------------

    def ensure_bucket(self, chassis_id: str) -> LedgerBucket:
        """Return the bucket for ``chassis_id``, creating an empty one if needed."""
        bucket = self._buckets.get(chassis_id)
        if bucket is not None:
            return bucket
        return self._swap(chassis_id, LedgerBucket())

    def ensure_buckets(self, chassis_ids: Iterable[str]) -> Dict[str, LedgerBucket]:
        """Ensure buckets for many ids in a single swap."""
        missing = [i for i in chassis_ids if i not in self._buckets]
        if missing:
            updated = dict(self._buckets)
            for chassis_id in missing:
                updated[chassis_id] = LedgerBucket()
            self._buckets = updated
        return self.buckets

    def replace_bucket(self, chassis_id: str, bucket: LedgerBucket) -> LedgerBucket:
        """Whole-bucket upsert (e.g. from a remote change feed)."""
        return self._swap(chassis_id, bucket.without_dangling_links())

    def discard_bucket(self, chassis_id: str) -> None:
        if chassis_id in self._buckets:
            self._buckets = {
                k: v for k, v in self._buckets.items() if k != chassis_id
            }

    # -------------------------------------------------------------------------
    # Inspections
    # -------------------------------------------------------------------------

    def record_inspection(
        self, chassis_id: str, kind: str, done_date
    ) -> Optional[LedgerBucket]:
        """
        Record an inspection completed on ``done_date``.

        A repeat of the most recent done date for the same kind is a no-op,
        so resubmitting an edit does not duplicate history.
        """
        _check_kind(kind)
        bucket = self._existing(chassis_id, "inspection")
        if bucket is None:
            return None
        done = to_iso(done_date)
        if not done:
            return bucket
        events = bucket.inspections_for(kind)
        if events and events[0].done_date == done:
            logger.debug("%s inspection %s already recorded for %s", kind, done, chassis_id)
            return bucket
        event = InspectionEvent(
            id=self._new_id(),
            done_date=done,
            due_date=inspection_due_date(kind, done),
            entered_at=self._clock().isoformat(timespec="seconds"),
        )
        return self._swap(chassis_id, bucket.with_inspections(kind, (event,) + events))

    def delete_inspection(
        self, chassis_id: str, kind: str, entry_id: str
    ) -> Optional[LedgerBucket]:
        _check_kind(kind)
        bucket = self._existing(chassis_id, "inspection delete")
        if bucket is None:
            return None
        events = [e for e in bucket.inspections_for(kind) if e.id != entry_id]
        return self._swap(chassis_id, bucket.with_inspections(kind, events))

    # -------------------------------------------------------------------------
    # Citations and repairs
    # -------------------------------------------------------------------------

    def add_citation(
        self,
        chassis_id: str,
        entry: Mapping[str, str],
        dedupe_token: Optional[str] = None,
    ) -> Optional[LedgerBucket]:
        """Prepend a citation. A token already present makes this a no-op."""
        bucket = self._existing(chassis_id, "citation")
        if bucket is None:
            return None
        if dedupe_token and any(c.token == dedupe_token for c in bucket.citations):
            logger.debug("Duplicate citation submission %s for %s", dedupe_token, chassis_id)
            return bucket
        citation = CitationEvent(
            id=self._new_id(),
            date=to_iso(entry.get("date")),
            number=entry.get("number") or "",
            location=entry.get("location") or "",
            notes=entry.get("notes") or "",
            token=dedupe_token,
        )
        return self._swap(
            chassis_id, replace(bucket, citations=(citation,) + bucket.citations)
        )

    def add_repair(
        self,
        chassis_id: str,
        entry: Mapping[str, str],
        dedupe_token: Optional[str] = None,
    ) -> Optional[LedgerBucket]:
        """
        Prepend a repair. A token already present makes this a no-op.

        A ``citation_id`` that does not name a citation in this bucket is
        dropped rather than stored as a dangling link.
        """
        bucket = self._existing(chassis_id, "repair")
        if bucket is None:
            return None
        if dedupe_token and any(r.token == dedupe_token for r in bucket.repairs):
            logger.debug("Duplicate repair submission %s for %s", dedupe_token, chassis_id)
            return bucket
        citation_id = entry.get("citation_id") or ""
        if citation_id and bucket.get_citation(citation_id) is None:
            logger.debug("Citation %s not in ledger for %s; link cleared", citation_id, chassis_id)
            citation_id = ""
        repair = RepairEvent(
            id=self._new_id(),
            date=to_iso(entry.get("date")),
            vendor=entry.get("vendor") or "",
            work=entry.get("work") or "",
            notes=entry.get("notes") or "",
            citation_id=citation_id,
            token=dedupe_token,
        )
        return self._swap(chassis_id, replace(bucket, repairs=(repair,) + bucket.repairs))

    def delete_citation(
        self, chassis_id: str, citation_id: str
    ) -> Optional[LedgerBucket]:
        """Remove a citation and unlink every repair that referenced it."""
        bucket = self._existing(chassis_id, "citation delete")
        if bucket is None:
            return None
        citations = tuple(c for c in bucket.citations if c.id != citation_id)
        repairs = tuple(
            replace(r, citation_id="") if r.citation_id == citation_id else r
            for r in bucket.repairs
        )
        return self._swap(
            chassis_id, replace(bucket, citations=citations, repairs=repairs)
        )

    def delete_repair(self, chassis_id: str, repair_id: str) -> Optional[LedgerBucket]:
        bucket = self._existing(chassis_id, "repair delete")
        if bucket is None:
            return None
        repairs = tuple(r for r in bucket.repairs if r.id != repair_id)
        return self._swap(chassis_id, replace(bucket, repairs=repairs))

    def linked_repair_counts(self, chassis_id: str) -> Dict[str, int]:
        """Number of repairs linked to each citation in the bucket."""
        bucket = self._buckets.get(chassis_id)
        if bucket is None:
            return {}
        return dict(Counter(r.citation_id for r in bucket.repairs if r.citation_id))
