"""
Snapshot Storage Layer

RESPONSIBILITY: Append-only persistence of snapshots, claim feedback and
audit events; lineage between a user's snapshots
ALLOWED INPUTS: Frozen records from contracts
OUTPUTS: Snapshot, SnapshotDiff, ClaimFeedback, EvolutionTimeline, derived
adjustments

WHAT THIS LAYER MUST NOT DO:
============================
- Generate claims, patterns or themes
- Interpret signals
- Delete or modify existing data (append-only)

BOUNDARY ENFORCEMENT:
=====================
- Collections are append-only lists of plain dict records
- Stored records are never rewritten in place
- update/delete on snapshots raise ImmutabilityViolationError
- Read or write failures surface as PersistenceError
"""

from .backends import (
    SNAPSHOTS, CLAIM_FEEDBACK, AUDIT_LOG,
    CollectionStore, InMemoryCollectionStore, FileCollectionStore,
    StorageConfig, create_collection_store,
)
from .evolution import EvolutionTimeline, build_evolution_timeline
from .lineage import LineageReport, analyze_lineage
from .snapshots import SnapshotStore, FEEDBACK_DELTAS

__all__ = [
    "SNAPSHOTS",
    "CLAIM_FEEDBACK",
    "AUDIT_LOG",
    "CollectionStore",
    "InMemoryCollectionStore",
    "FileCollectionStore",
    "StorageConfig",
    "create_collection_store",
    "EvolutionTimeline",
    "build_evolution_timeline",
    "LineageReport",
    "analyze_lineage",
    "SnapshotStore",
    "FEEDBACK_DELTAS",
]
