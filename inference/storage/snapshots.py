"""
Snapshot Store
==============

Immutable, lineage-linked snapshots over an append-only collection store.

INVARIANTS:
- A stored snapshot is never rewritten; update/delete always raise
- A user's n-th snapshot points at the (n-1)-th via previous_snapshot_id
- A user's snapshot timestamps strictly increase, so "latest" is the
  maximum timestamp and never a tie
- Feedback lives in its own collection and never touches the claim

CONCURRENCY:
create_snapshot holds the user's lock stripe across find-latest and append, so
writers in one process cannot fork a chain. Separate processes writing
the same file store are not serialized; verify_lineage reports forks.
"""

from __future__ import annotations
from datetime import datetime, timedelta
from decimal import Decimal
from typing import (
    TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Sequence, Tuple,
)
import logging
import threading
import uuid

from ..contracts.base import (
    AuditEventType, ImmutabilityViolationError, PersistenceError, Resonance,
    SnapshotSource, content_hash, format_timestamp, milliseconds_between,
    utc_now,
)
from ..contracts.entities import (
    Claim, ClaimChanges, ClaimFeedback, Pattern, PatternChanges, Snapshot,
    SnapshotDiff, Theme, ThemeLists,
)
from ..domain.serialization import (
    feedback_from_dict, feedback_to_dict, snapshot_from_dict, snapshot_to_dict,
)
from .backends import CLAIM_FEEDBACK, SNAPSHOTS, CollectionStore
from .evolution import EvolutionTimeline, build_evolution_timeline
from .lineage import LineageReport, analyze_lineage

if TYPE_CHECKING:
    from ..observability import AuditLog

logger = logging.getLogger(__name__)


FEEDBACK_DELTAS: Dict[Resonance, Decimal] = {
    Resonance.FITS: Decimal("0.1"),
    Resonance.PARTIAL: Decimal("0"),
    Resonance.DOESNT_FIT: Decimal("-0.2"),
}

MIN_ADJUSTMENT = Decimal("-0.5")
MAX_ADJUSTMENT = Decimal("0.3")

DEFAULT_HISTORY_LIMIT = 10

LOCK_STRIPES = 64

_TICK = timedelta(microseconds=1)


class SnapshotStore:
    """
    Snapshot persistence with lineage, diffing and claim feedback.

    BOUNDARY ENFORCEMENT:
    - ONLY performs append operations
    - NEVER modifies existing data
    - Store failures on create propagate as PersistenceError
    - Lookup misses return None or an empty tuple, never raise
    """

    def __init__(
        self,
        store: CollectionStore,
        audit_log: Optional["AuditLog"] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self._store = store
        self._audit = audit_log
        self._clock = clock
        self._locks = tuple(threading.Lock() for _ in range(LOCK_STRIPES))

    def _lock_for(self, user_id: str) -> threading.Lock:
        """One of a fixed set of locks; a user always maps to the same one."""
        return self._locks[int(content_hash(user_id), 16) % len(self._locks)]

    def _read(self, collection: str) -> List[dict]:
        try:
            return self._store.read(collection)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(
                f"Failed to read {collection}: {e}", ("collection", collection)
            ) from e

    def _append(self, collection: str, record: dict) -> None:
        try:
            self._store.append(collection, record)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(
                f"Failed to append to {collection}: {e}", ("collection", collection)
            ) from e

    def _user_snapshots(self, user_id: str) -> List[Snapshot]:
        """A user's snapshots in append order."""
        return [
            snapshot_from_dict(record)
            for record in self._read(SNAPSHOTS)
            if record.get("user_id") == user_id
        ]

    # =========================================================================
    # WRITE PATH
    # =========================================================================

    def create_snapshot(
        self,
        user_id: str,
        source: SnapshotSource,
        claims: Sequence[Claim],
        patterns: Sequence[Pattern],
        themes: Sequence[Theme],
        signal_snapshot_id: Optional[str] = None,
        trigger_event_id: Optional[str] = None
    ) -> Snapshot:
        """
        Append a new snapshot linked to the user's current latest.

        Find-latest and append run under the user's lock.
        """
        with self._lock_for(user_id):
            latest = self.get_latest_snapshot(user_id)

            timestamp = self._clock()
            if latest is not None and timestamp <= latest.timestamp:
                timestamp = latest.timestamp + _TICK

            previous_id = latest.snapshot_id if latest else None
            snapshot_id = "snap_" + content_hash(
                user_id, format_timestamp(timestamp), previous_id, length=16
            )

            snapshot = Snapshot(
                snapshot_id=snapshot_id,
                user_id=user_id,
                timestamp=timestamp,
                source=SnapshotSource(source),
                claims=tuple(claims),
                patterns=tuple(patterns),
                themes=tuple(themes),
                signal_snapshot_id=signal_snapshot_id,
                previous_snapshot_id=previous_id,
                trigger_event_id=trigger_event_id,
            )
            self._append(SNAPSHOTS, snapshot_to_dict(snapshot))

        logger.info(
            "Created snapshot %s for %s (%d claims, %d patterns, %d themes)",
            snapshot.snapshot_id, user_id, len(snapshot.claims),
            len(snapshot.patterns), len(snapshot.themes)
        )

        if self._audit is not None:
            self._audit.log(
                AuditEventType.SNAPSHOT_CREATED,
                user_id,
                snapshot.snapshot_id,
                {
                    "source": snapshot.source.value,
                    "claim_count": len(snapshot.claims),
                    "pattern_count": len(snapshot.patterns),
                    "theme_count": len(snapshot.themes),
                    "previous_snapshot_id": previous_id,
                },
            )

        return snapshot

    def update_snapshot(self, snapshot_id: str, *args, **kwargs) -> None:
        """Forbidden. Snapshots are immutable; create a new one instead."""
        raise ImmutabilityViolationError(
            "Snapshots are immutable. Create a new snapshot instead.",
            ("snapshot_id", str(snapshot_id)),
            ("operation", "update")
        )

    def delete_snapshot(self, snapshot_id: str, *args, **kwargs) -> None:
        """Forbidden. Bulk erasure is handled outside the inference core."""
        raise ImmutabilityViolationError(
            "Snapshots cannot be deleted. Erasure is handled by a separate process.",
            ("snapshot_id", str(snapshot_id)),
            ("operation", "delete")
        )

    # =========================================================================
    # READ PATH
    # =========================================================================

    def get_latest_snapshot(self, user_id: str) -> Optional[Snapshot]:
        snapshots = self._user_snapshots(user_id)
        if not snapshots:
            return None
        # on equal timestamps the later append wins
        indexed = max(enumerate(snapshots), key=lambda pair: (pair[1].timestamp, pair[0]))
        return indexed[1]

    def get_snapshot(self, snapshot_id: str) -> Optional[Snapshot]:
        for record in self._read(SNAPSHOTS):
            if record.get("snapshot_id") == snapshot_id:
                return snapshot_from_dict(record)
        return None

    def get_snapshot_history(
        self,
        user_id: str,
        limit: int = DEFAULT_HISTORY_LIMIT
    ) -> Tuple[Snapshot, ...]:
        """A user's snapshots, newest first."""
        snapshots = self._user_snapshots(user_id)
        ordered = sorted(reversed(snapshots), key=lambda s: s.timestamp, reverse=True)
        return tuple(ordered[:max(limit, 0)])

    def get_lineage(self, snapshot_id: str) -> Tuple[Snapshot, ...]:
        """The snapshot followed by its ancestors back to the root."""
        by_id = {
            record["snapshot_id"]: record for record in self._read(SNAPSHOTS)
        }
        lineage = []
        seen = set()
        current = snapshot_id
        while current is not None and current in by_id and current not in seen:
            seen.add(current)
            snapshot = snapshot_from_dict(by_id[current])
            lineage.append(snapshot)
            current = snapshot.previous_snapshot_id
        return tuple(lineage)

    def verify_lineage(self, user_id: str) -> LineageReport:
        return analyze_lineage(user_id, self._user_snapshots(user_id))

    def get_evolution_timeline(
        self,
        user_id: str,
        limit: int = DEFAULT_HISTORY_LIMIT
    ) -> Optional[EvolutionTimeline]:
        """How the user's last `limit` snapshots evolved; None without snapshots."""
        return build_evolution_timeline(user_id, self._user_snapshots(user_id), limit)

    def compare_snapshots(self, older_id: str, newer_id: str) -> Optional[SnapshotDiff]:
        older = self.get_snapshot(older_id)
        newer = self.get_snapshot(newer_id)
        if older is None or newer is None:
            return None

        older_claim_ids = {c.claim_id for c in older.claims}
        newer_claim_ids = {c.claim_id for c in newer.claims}
        older_pattern_ids = {p.pattern_id for p in older.patterns}
        newer_pattern_ids = {p.pattern_id for p in newer.patterns}

        return SnapshotDiff(
            older_snapshot_id=older.snapshot_id,
            newer_snapshot_id=newer.snapshot_id,
            time_delta_ms=milliseconds_between(older.timestamp, newer.timestamp),
            claims=ClaimChanges(
                added=tuple(c for c in newer.claims if c.claim_id not in older_claim_ids),
                removed=tuple(c for c in older.claims if c.claim_id not in newer_claim_ids),
                stable=len(older_claim_ids & newer_claim_ids),
            ),
            patterns=PatternChanges(
                added=tuple(p for p in newer.patterns
                            if p.pattern_id not in older_pattern_ids),
                removed=tuple(p for p in older.patterns
                              if p.pattern_id not in newer_pattern_ids),
                stable=len(older_pattern_ids & newer_pattern_ids),
            ),
            themes=ThemeLists(older=older.themes, newer=newer.themes),
        )

    # =========================================================================
    # CLAIM FEEDBACK
    # =========================================================================

    def record_claim_feedback(
        self,
        user_id: str,
        claim_id: str,
        resonance: Resonance,
        context_tags: Optional[Iterable[str]] = None
    ) -> ClaimFeedback:
        feedback = ClaimFeedback(
            feedback_id=f"fb_{uuid.uuid4().hex[:16]}",
            claim_id=claim_id,
            user_id=user_id,
            resonance=Resonance(resonance),
            timestamp=self._clock(),
            context_tags=None if context_tags is None else tuple(context_tags),
        )
        self._append(CLAIM_FEEDBACK, feedback_to_dict(feedback))

        if self._audit is not None:
            self._audit.log(
                AuditEventType.CLAIM_FEEDBACK_RECEIVED,
                user_id,
                claim_id,
                {
                    "feedback_id": feedback.feedback_id,
                    "resonance": feedback.resonance.value,
                },
            )

        return feedback

    def get_claim_feedback(self, claim_id: str) -> Tuple[ClaimFeedback, ...]:
        """All feedback for a claim, oldest first."""
        return tuple(
            feedback_from_dict(record)
            for record in self._read(CLAIM_FEEDBACK)
            if record.get("claim_id") == claim_id
        )

    def get_claim_confidence_adjustment(self, claim_id: str) -> float:
        """Sum of feedback deltas, clamped to [-0.5, 0.3]. Derived at read time."""
        total = sum(
            (FEEDBACK_DELTAS[f.resonance] for f in self.get_claim_feedback(claim_id)),
            Decimal("0"),
        )
        return float(max(MIN_ADJUSTMENT, min(MAX_ADJUSTMENT, total)))
