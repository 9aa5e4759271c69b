"""
Base Contracts and Shared Types

These are the foundational types used across all layers.
All types here are IMMUTABLE and represent pure data.
No behavior, no side effects, no dependencies.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- All types are frozen dataclasses or enums
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from typing import Optional, Tuple, Union
from enum import Enum, auto
import hashlib
import math


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    No silent fallbacks - every error state is enumerated.
    """
    # Input errors
    INVALID_RECORD = auto()

    # Storage errors
    IMMUTABILITY_VIOLATION = auto()
    PERSISTENCE_FAILURE = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data as well as exceptions - they can be stored and queried.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


class InferenceError(Exception):
    """Root of all typed errors raised by the inference pipeline."""

    code: ErrorCode = ErrorCode.INVALID_RECORD

    def __init__(self, message: str, *context: Tuple[str, str]):
        super().__init__(message)
        self.error = Error(
            code=self.code,
            message=message,
            timestamp=datetime.now(timezone.utc),
            context=tuple(context)
        )


class ImmutabilityViolationError(InferenceError):
    """
    Raised on any attempt to update or delete a persisted snapshot.

    This is an invariant violation, not a recoverable condition.
    """
    code = ErrorCode.IMMUTABILITY_VIOLATION


class PersistenceError(InferenceError):
    """Raised when the underlying collection store fails a read or write."""
    code = ErrorCode.PERSISTENCE_FAILURE


# =============================================================================
# CLASSIFICATION ENUMS
# =============================================================================

class SignalSource(Enum):
    """Interaction flow a signal was captured from."""
    ONBOARDING = "onboarding"
    CHECKIN = "checkin"
    DEEPENING = "deepening"
    RELATIONAL = "relational"
    REFINEMENT = "refinement"


class ClaimPolarity(Enum):
    STRENGTH = "strength"
    FRICTION = "friction"
    NEUTRAL = "neutral"


class ClaimConfidence(Enum):
    """
    Ordinal confidence shared by claims and patterns.
    Ordering matters: EMERGING < MODERATE < DEVELOPED < INTEGRATED.
    """
    EMERGING = "emerging"
    MODERATE = "moderate"
    DEVELOPED = "developed"
    INTEGRATED = "integrated"


class ClaimStatus(Enum):
    ACTIVE = "active"
    SUPERSEDED = "superseded"
    REJECTED = "rejected"


class PatternCategory(Enum):
    INDIVIDUAL = "individual"
    RELATIONAL = "relational"
    TEAM = "team"


class ThemePriority(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SnapshotSource(Enum):
    """Why a snapshot was created."""
    ONBOARDING = "onboarding"
    RECALIBRATION = "recalibration"
    CHECK_IN = "check_in"
    REFINEMENT = "refinement"
    SYSTEM_DERIVED = "system_derived"
    REGENERATION = "regeneration"
    API = "api"


class Resonance(Enum):
    """User resonance with a claim."""
    FITS = "fits"
    PARTIAL = "partial"
    DOESNT_FIT = "doesnt_fit"


class AuditEventType(Enum):
    """Explicit audit event types."""
    SNAPSHOT_CREATED = "snapshot_created"
    CLAIM_CREATED = "claim_created"
    CLAIM_FEEDBACK_RECEIVED = "claim_feedback_received"
    PATTERN_PROMOTED = "pattern_promoted"
    THEME_DETECTED = "theme_detected"
    MODULE_GENERATED = "module_generated"
    PIPELINE_COMPLETED = "pipeline_completed"


# =============================================================================
# TEMPORAL TYPES (Immutable, explicit semantics)
# =============================================================================

def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(iso_string: str) -> datetime:
    dt = datetime.fromisoformat(iso_string.replace('Z', '+00:00'))
    return ensure_utc(dt)


def format_timestamp(value: datetime) -> str:
    return ensure_utc(value).isoformat()


def milliseconds_between(older: datetime, newer: datetime) -> int:
    """Signed whole milliseconds from older to newer."""
    delta: timedelta = ensure_utc(newer) - ensure_utc(older)
    return (delta.days * 86_400_000
            + delta.seconds * 1000
            + delta.microseconds // 1000)


# =============================================================================
# IDENTITY HELPERS (Deterministic, hash-derived)
# =============================================================================

def content_hash(*parts: object, length: int = 8) -> str:
    """Stable short hash of the given parts."""
    seed = "|".join(str(p) for p in parts)
    return hashlib.sha256(seed.encode('utf-8')).hexdigest()[:length]


# =============================================================================
# NUMERIC HELPERS
# =============================================================================

def to_decimal(value: Union[float, int, Decimal]) -> Decimal:
    """Decimal view of a number; floats go via repr so 0.53 stays 0.53."""
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round_two_places(value: float) -> float:
    """
    Round a float to 2 decimals, ties upward: floor(x * 100 + 0.5) / 100.

    The rounding happens on the float product, so a sum that lands just
    under a tie (0.5249999999999999) rounds down to 0.52.
    """
    return math.floor(value * 100 + 0.5) / 100


# =============================================================================
# LAYER TAXONOMY (Fixed, 15 layers)
# =============================================================================

MIN_LAYER_ID = 1
MAX_LAYER_ID = 15


def validate_layer_id(layer_id: int) -> None:
    if isinstance(layer_id, bool) or not isinstance(layer_id, int):
        raise ValueError(f"layer id must be an int, got {layer_id!r}")
    if not MIN_LAYER_ID <= layer_id <= MAX_LAYER_ID:
        raise ValueError(
            f"layer id must be between {MIN_LAYER_ID} and {MAX_LAYER_ID}, got {layer_id}"
        )


@dataclass(frozen=True)
class LayerDefinition:
    """One of the fixed personality dimensions."""
    layer_id: int
    name: str
    cluster: str  # A..E
    primary_focus: str
    stability_type: str  # "stable" or "dynamic"


LAYER_DEFINITIONS: Tuple[LayerDefinition, ...] = (
    LayerDefinition(1, "Core Disposition", "A",
                    "Baseline temperament and inner climate", "stable"),
    LayerDefinition(2, "Energy Orientation", "A",
                    "How energy is gained, lost, and paced", "dynamic"),
    LayerDefinition(3, "Perception & Information Processing", "A",
                    "How information is taken in and structured", "stable"),
    LayerDefinition(4, "Decision Logic", "B",
                    "How conclusions are reached and trade-offs made", "dynamic"),
    LayerDefinition(5, "Motivational Drivers", "B",
                    "What deeply motivates and sustains effort", "stable"),
    LayerDefinition(6, "Stress & Pressure Patterns", "B",
                    "How pressure is experienced and responded to", "dynamic"),
    LayerDefinition(7, "Emotional Regulation & Expression", "C",
                    "How emotions are processed and shared", "dynamic"),
    LayerDefinition(8, "Behavioural Rhythm & Execution", "C",
                    "Work style, pacing, and follow-through", "dynamic"),
    LayerDefinition(9, "Communication Mode", "C",
                    "Preferred ways of expressing and receiving meaning", "dynamic"),
    LayerDefinition(10, "Relational Energy & Boundaries", "D",
                    "How connection, distance, and closeness are managed", "dynamic"),
    LayerDefinition(11, "Relational Patterning", "D",
                    "Repeating patterns in key relationships", "dynamic"),
    LayerDefinition(12, "Social Role & Influence Expression", "D",
                    "How a person shows up in groups and power structures", "dynamic"),
    LayerDefinition(13, "Identity Coherence & Maturity", "E",
                    "How integrated and grounded the sense of self is", "stable"),
    LayerDefinition(14, "Growth Arc & Learning Orientation", "E",
                    "Long-term developmental direction and learning style", "dynamic"),
    LayerDefinition(15, "Life Navigation & Current Edge", "E",
                    "How major decisions are made and where growth pressure sits now", "dynamic"),
)


def get_layer_definition(layer_id: int) -> Optional[LayerDefinition]:
    for definition in LAYER_DEFINITIONS:
        if definition.layer_id == layer_id:
            return definition
    return None
