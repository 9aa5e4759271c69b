import json
from dataclasses import asdict
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from ..contracts.base import (
    AuditEventType, ClaimConfidence, ClaimPolarity, ClaimStatus,
    PatternCategory, Resonance, SnapshotSource, ThemePriority,
    format_timestamp, parse_timestamp,
)
from ..contracts.entities import (
    AuditEvent, Claim, ClaimFeedback, Pattern, Snapshot, SnapshotDiff, Theme,
    freeze_metadata,
)


class StrictRecordEncoder(json.JSONEncoder):
    """
    JSON Encoder that prioritizes Fidelity over Flexibility.

    RULES:
    1. Dates MUST be ISO 8601 strings (UTC).
    2. Enums MUST use their .value.
    3. Decimals are written as floats (stability values carry 2 decimals).
    4. Sets -> Lists (sorted for determinism). Tuples are lists already.
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return format_timestamp(obj)
        if isinstance(obj, date):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, Decimal):
            return float(obj)
        if isinstance(obj, (set, frozenset)):
            return sorted(list(obj))
        if hasattr(obj, "__dataclass_fields__"):
            return asdict(obj)

        return super().default(obj)


def dumps(record: Any) -> str:
    """Single-line, key-sorted JSON for a record or plain dict."""
    return json.dumps(record, cls=StrictRecordEncoder, sort_keys=True,
                      separators=(",", ":"), ensure_ascii=False)


def _optional_tuple(value: Optional[List[Any]]):
    return None if value is None else tuple(value)


# =============================================================================
# CLAIM / PATTERN / THEME
# =============================================================================

def claim_to_dict(claim: Claim) -> Dict[str, Any]:
    return {
        "claim_id": claim.claim_id,
        "layer_id": claim.layer_id,
        "text": claim.text,
        "polarity": claim.polarity.value,
        "confidence": claim.confidence.value,
        "evidence_refs": list(claim.evidence_refs),
        "status": claim.status.value,
        "created_at": format_timestamp(claim.created_at),
        "user_id": claim.user_id,
    }


def claim_from_dict(data: Dict[str, Any]) -> Claim:
    return Claim(
        claim_id=data["claim_id"],
        layer_id=data["layer_id"],
        text=data["text"],
        polarity=ClaimPolarity(data["polarity"]),
        confidence=ClaimConfidence(data["confidence"]),
        evidence_refs=tuple(data["evidence_refs"]),
        status=ClaimStatus(data["status"]),
        created_at=parse_timestamp(data["created_at"]),
        user_id=data["user_id"],
    )


def pattern_to_dict(pattern: Pattern) -> Dict[str, Any]:
    return {
        "pattern_id": pattern.pattern_id,
        "category": pattern.category.value,
        "layer_ids": list(pattern.layer_ids),
        "name": pattern.name,
        "one_liner": pattern.one_liner,
        "supporting_claim_ids": list(pattern.supporting_claim_ids),
        "growth_edges": list(pattern.growth_edges),
        "confidence": pattern.confidence.value,
        "stability_index": pattern.stability_index,
        "created_at": format_timestamp(pattern.created_at),
        "user_id": pattern.user_id,
    }


def pattern_from_dict(data: Dict[str, Any]) -> Pattern:
    return Pattern(
        pattern_id=data["pattern_id"],
        category=PatternCategory(data["category"]),
        layer_ids=tuple(data["layer_ids"]),
        name=data["name"],
        one_liner=data["one_liner"],
        supporting_claim_ids=tuple(data["supporting_claim_ids"]),
        growth_edges=tuple(data["growth_edges"]),
        confidence=ClaimConfidence(data["confidence"]),
        stability_index=float(data["stability_index"]),
        created_at=parse_timestamp(data["created_at"]),
        user_id=data["user_id"],
    )


def theme_to_dict(theme: Theme) -> Dict[str, Any]:
    return {
        "theme_id": theme.theme_id,
        "name": theme.name,
        "summary": theme.summary,
        "priority": theme.priority.value,
        "supporting_pattern_ids": list(theme.supporting_pattern_ids),
        "layer_ids": list(theme.layer_ids),
        "created_at": format_timestamp(theme.created_at),
        "user_id": theme.user_id,
    }


def theme_from_dict(data: Dict[str, Any]) -> Theme:
    return Theme(
        theme_id=data["theme_id"],
        name=data["name"],
        summary=data["summary"],
        priority=ThemePriority(data["priority"]),
        supporting_pattern_ids=tuple(data["supporting_pattern_ids"]),
        created_at=parse_timestamp(data["created_at"]),
        user_id=data["user_id"],
        layer_ids=tuple(data.get("layer_ids", ())),
    )


# =============================================================================
# SNAPSHOT
# =============================================================================

def snapshot_to_dict(snapshot: Snapshot) -> Dict[str, Any]:
    return {
        "snapshot_id": snapshot.snapshot_id,
        "user_id": snapshot.user_id,
        "timestamp": format_timestamp(snapshot.timestamp),
        "source": snapshot.source.value,
        "version": snapshot.version,
        "claims": [claim_to_dict(c) for c in snapshot.claims],
        "patterns": [pattern_to_dict(p) for p in snapshot.patterns],
        "themes": [theme_to_dict(t) for t in snapshot.themes],
        "signal_snapshot_id": snapshot.signal_snapshot_id,
        "previous_snapshot_id": snapshot.previous_snapshot_id,
        "trigger_event_id": snapshot.trigger_event_id,
    }


def snapshot_from_dict(data: Dict[str, Any]) -> Snapshot:
    return Snapshot(
        snapshot_id=data["snapshot_id"],
        user_id=data["user_id"],
        timestamp=parse_timestamp(data["timestamp"]),
        source=SnapshotSource(data["source"]),
        claims=tuple(claim_from_dict(c) for c in data["claims"]),
        patterns=tuple(pattern_from_dict(p) for p in data["patterns"]),
        themes=tuple(theme_from_dict(t) for t in data["themes"]),
        version=data["version"],
        signal_snapshot_id=data.get("signal_snapshot_id"),
        previous_snapshot_id=data.get("previous_snapshot_id"),
        trigger_event_id=data.get("trigger_event_id"),
    )


def diff_to_dict(diff: SnapshotDiff) -> Dict[str, Any]:
    return {
        "older_snapshot_id": diff.older_snapshot_id,
        "newer_snapshot_id": diff.newer_snapshot_id,
        "time_delta_ms": diff.time_delta_ms,
        "claims": {
            "added": [claim_to_dict(c) for c in diff.claims.added],
            "removed": [claim_to_dict(c) for c in diff.claims.removed],
            "stable": diff.claims.stable,
        },
        "patterns": {
            "added": [pattern_to_dict(p) for p in diff.patterns.added],
            "removed": [pattern_to_dict(p) for p in diff.patterns.removed],
            "stable": diff.patterns.stable,
        },
        "themes": {
            "older": [theme_to_dict(t) for t in diff.themes.older],
            "newer": [theme_to_dict(t) for t in diff.themes.newer],
        },
    }


# =============================================================================
# FEEDBACK / AUDIT
# =============================================================================

def feedback_to_dict(feedback: ClaimFeedback) -> Dict[str, Any]:
    return {
        "feedback_id": feedback.feedback_id,
        "claim_id": feedback.claim_id,
        "user_id": feedback.user_id,
        "resonance": feedback.resonance.value,
        "context_tags": (None if feedback.context_tags is None
                         else list(feedback.context_tags)),
        "timestamp": format_timestamp(feedback.timestamp),
    }


def feedback_from_dict(data: Dict[str, Any]) -> ClaimFeedback:
    return ClaimFeedback(
        feedback_id=data["feedback_id"],
        claim_id=data["claim_id"],
        user_id=data["user_id"],
        resonance=Resonance(data["resonance"]),
        timestamp=parse_timestamp(data["timestamp"]),
        context_tags=_optional_tuple(data.get("context_tags")),
    )


def audit_event_to_dict(event: AuditEvent) -> Dict[str, Any]:
    # metadata goes through the encoder so nested tuples become lists
    metadata = json.loads(json.dumps(event.metadata_dict(), cls=StrictRecordEncoder))
    return {
        "event_id": event.event_id,
        "event_type": event.event_type.value,
        "user_id": event.user_id,
        "target_id": event.target_id,
        "metadata": metadata,
        "timestamp": format_timestamp(event.timestamp),
    }


def audit_event_from_dict(data: Dict[str, Any]) -> AuditEvent:
    return AuditEvent(
        event_id=data["event_id"],
        event_type=AuditEventType(data["event_type"]),
        user_id=data["user_id"],
        target_id=data["target_id"],
        timestamp=parse_timestamp(data["timestamp"]),
        metadata=freeze_metadata(data.get("metadata")),
    )
