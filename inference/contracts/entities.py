"""
Entity Contracts
================

The records that flow between layers:

    Signal → Claim → Pattern → Theme → Snapshot

INVARIANTS:
- Every record is a frozen dataclass
- Every collection field is a tuple (lists are frozen on construction)
- Timestamps are aware UTC datetimes
- Layer ids are validated against the fixed 1..15 taxonomy

A Claim, Pattern or Theme is never edited. A later Snapshot supersedes it.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .base import (
    AuditEventType, ClaimConfidence, ClaimPolarity, ClaimStatus,
    PatternCategory, Resonance, SignalSource, SnapshotSource, ThemePriority,
    ensure_utc, round_two_places, validate_layer_id,
)


RawValue = Union[str, int, float, bool, Tuple[str, ...]]

SNAPSHOT_VERSION = "1.0.0"


def _freeze(value: Any) -> Any:
    """Recursively convert lists/sets/dicts to tuples."""
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return tuple(sorted(_freeze(v) for v in value))
    if isinstance(value, Mapping):
        return tuple((str(k), _freeze(v)) for k, v in value.items())
    return value


def freeze_metadata(metadata: Optional[Mapping[str, Any]]) -> Tuple[Tuple[str, Any], ...]:
    """Turn a metadata mapping into an immutable tuple of pairs."""
    if not metadata:
        return ()
    return tuple((str(k), _freeze(v)) for k, v in metadata.items())


def _set(obj: Any, name: str, value: Any) -> None:
    object.__setattr__(obj, name, value)


# =============================================================================
# SIGNAL (transient input, never persisted here)
# =============================================================================

@dataclass(frozen=True)
class Signal:
    """
    A single piece of evidence from a user interaction.

    layer_ids declares which layers the signal may speak to; a rule can
    only produce claims inside this set.
    """
    signal_id: str
    user_id: str
    question_id: str
    layer_ids: Tuple[int, ...]
    raw_value: RawValue
    timestamp: datetime
    source: SignalSource
    normalized_value: Optional[str] = None

    def __post_init__(self):
        if not self.signal_id:
            raise ValueError("signal_id must be a non-empty string")
        if not self.question_id:
            raise ValueError("question_id must be a non-empty string")
        layer_ids = tuple(self.layer_ids)
        for layer_id in layer_ids:
            validate_layer_id(layer_id)
        _set(self, 'layer_ids', layer_ids)
        _set(self, 'raw_value', _freeze(self.raw_value))
        _set(self, 'timestamp', ensure_utc(self.timestamp))
        if not isinstance(self.source, SignalSource):
            _set(self, 'source', SignalSource(self.source))


# =============================================================================
# CLAIM (atomic, layer-scoped assertion)
# =============================================================================

@dataclass(frozen=True)
class Claim:
    """The smallest explainable unit of the model."""
    claim_id: str
    layer_id: int
    text: str
    polarity: ClaimPolarity
    confidence: ClaimConfidence
    evidence_refs: Tuple[str, ...]
    status: ClaimStatus
    created_at: datetime
    user_id: str

    def __post_init__(self):
        validate_layer_id(self.layer_id)
        _set(self, 'evidence_refs', tuple(self.evidence_refs))
        _set(self, 'created_at', ensure_utc(self.created_at))


# =============================================================================
# PATTERN (named recurring dynamic)
# =============================================================================

@dataclass(frozen=True)
class Pattern:
    """A recurring dynamic promoted from a cluster of claims."""
    pattern_id: str
    category: PatternCategory
    layer_ids: Tuple[int, ...]
    name: str
    one_liner: str
    supporting_claim_ids: Tuple[str, ...]
    growth_edges: Tuple[str, ...]
    confidence: ClaimConfidence
    stability_index: float
    created_at: datetime
    user_id: str

    def __post_init__(self):
        if not 0.0 <= self.stability_index <= 1.0:
            raise ValueError("stability_index must be between 0.0 and 1.0")
        _set(self, 'layer_ids', tuple(self.layer_ids))
        _set(self, 'supporting_claim_ids', tuple(self.supporting_claim_ids))
        _set(self, 'growth_edges', tuple(self.growth_edges))
        _set(self, 'created_at', ensure_utc(self.created_at))


# =============================================================================
# THEME (higher-order tension)
# =============================================================================

@dataclass(frozen=True)
class Theme:
    """A tension or priority synthesized from a cluster of patterns."""
    theme_id: str
    name: str
    summary: str
    priority: ThemePriority
    supporting_pattern_ids: Tuple[str, ...]
    created_at: datetime
    user_id: str
    layer_ids: Tuple[int, ...] = field(default_factory=tuple)

    def __post_init__(self):
        _set(self, 'supporting_pattern_ids', tuple(self.supporting_pattern_ids))
        _set(self, 'layer_ids', tuple(self.layer_ids))
        _set(self, 'created_at', ensure_utc(self.created_at))


# =============================================================================
# SNAPSHOT (unit of persistence)
# =============================================================================

@dataclass(frozen=True)
class Snapshot:
    """
    Immutable point-in-time bundle of claims, patterns and themes.

    previous_snapshot_id links to the prior latest snapshot of the same
    user, forming a singly-linked append-only chain.
    """
    snapshot_id: str
    user_id: str
    timestamp: datetime
    source: SnapshotSource
    claims: Tuple[Claim, ...]
    patterns: Tuple[Pattern, ...]
    themes: Tuple[Theme, ...]
    version: str = SNAPSHOT_VERSION
    signal_snapshot_id: Optional[str] = None
    previous_snapshot_id: Optional[str] = None
    trigger_event_id: Optional[str] = None

    def __post_init__(self):
        _set(self, 'claims', tuple(self.claims))
        _set(self, 'patterns', tuple(self.patterns))
        _set(self, 'themes', tuple(self.themes))
        _set(self, 'timestamp', ensure_utc(self.timestamp))

    @property
    def is_root(self) -> bool:
        return self.previous_snapshot_id is None

    @property
    def mean_stability(self) -> float:
        if not self.patterns:
            return 0.0
        total = sum(p.stability_index for p in self.patterns)
        return round_two_places(total / len(self.patterns))


@dataclass(frozen=True)
class ClaimChanges:
    added: Tuple[Claim, ...]
    removed: Tuple[Claim, ...]
    stable: int


@dataclass(frozen=True)
class PatternChanges:
    added: Tuple[Pattern, ...]
    removed: Tuple[Pattern, ...]
    stable: int


@dataclass(frozen=True)
class ThemeLists:
    """Themes are reported wholesale, not diffed element-wise."""
    older: Tuple[Theme, ...]
    newer: Tuple[Theme, ...]


@dataclass(frozen=True)
class SnapshotDiff:
    older_snapshot_id: str
    newer_snapshot_id: str
    time_delta_ms: int
    claims: ClaimChanges
    patterns: PatternChanges
    themes: ThemeLists


# =============================================================================
# FEEDBACK & AUDIT (append-only side records)
# =============================================================================

@dataclass(frozen=True)
class ClaimFeedback:
    """
    User resonance with a claim.
    Stored separately; never mutates the claim it refers to.
    """
    feedback_id: str
    claim_id: str
    user_id: str
    resonance: Resonance
    timestamp: datetime
    context_tags: Optional[Tuple[str, ...]] = None

    def __post_init__(self):
        if self.context_tags is not None:
            _set(self, 'context_tags', tuple(self.context_tags))
        _set(self, 'timestamp', ensure_utc(self.timestamp))


@dataclass(frozen=True)
class AuditEvent:
    """Immutable audit trail entry, loosely keyed to any record by target_id."""
    event_id: str
    event_type: AuditEventType
    user_id: str
    target_id: str
    timestamp: datetime
    metadata: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    def __post_init__(self):
        _set(self, 'metadata', tuple(self.metadata))
        _set(self, 'timestamp', ensure_utc(self.timestamp))

    def metadata_dict(self) -> Dict[str, Any]:
        return dict(self.metadata)
