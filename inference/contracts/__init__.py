"""
Contracts shared by every layer of the inference pipeline.

Layers import records from here and never from each other's
implementations.
"""

from .base import (
    ErrorCode, Error, InferenceError, ImmutabilityViolationError,
    PersistenceError, SignalSource, ClaimPolarity, ClaimConfidence,
    ClaimStatus, PatternCategory, ThemePriority, SnapshotSource, Resonance,
    AuditEventType, LayerDefinition, LAYER_DEFINITIONS, get_layer_definition,
)
from .entities import (
    Signal, Claim, Pattern, Theme, Snapshot, SnapshotDiff, ClaimChanges,
    PatternChanges, ThemeLists, ClaimFeedback, AuditEvent, SNAPSHOT_VERSION,
    freeze_metadata,
)

__all__ = [
    # Errors
    "ErrorCode",
    "Error",
    "InferenceError",
    "ImmutabilityViolationError",
    "PersistenceError",
    # Enums
    "SignalSource",
    "ClaimPolarity",
    "ClaimConfidence",
    "ClaimStatus",
    "PatternCategory",
    "ThemePriority",
    "SnapshotSource",
    "Resonance",
    "AuditEventType",
    # Taxonomy
    "LayerDefinition",
    "LAYER_DEFINITIONS",
    "get_layer_definition",
    # Records
    "Signal",
    "Claim",
    "Pattern",
    "Theme",
    "Snapshot",
    "SnapshotDiff",
    "ClaimChanges",
    "PatternChanges",
    "ThemeLists",
    "ClaimFeedback",
    "AuditEvent",
    "SNAPSHOT_VERSION",
    "freeze_metadata",
]
