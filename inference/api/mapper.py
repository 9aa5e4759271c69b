"""
API Mapper
==========

Transforms pipeline records into response DTOs and request models into
Signals. Structure is exposed as stored; nothing is smoothed or ranked.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from ..contracts.base import (
    Resonance, SignalSource, SnapshotSource, content_hash, format_timestamp, utc_now,
)
from ..contracts.entities import AuditEvent, Signal, Snapshot
from ..domain.serialization import audit_event_to_dict, snapshot_to_dict
from ..engine import PipelineOutput
from ..storage import EvolutionTimeline, LineageReport


# =============================================================================
# REQUEST MODELS
# =============================================================================

class SignalIn(BaseModel):
    question_id: str
    layer_ids: List[int]
    raw_value: Union[bool, int, float, str, List[str]]
    source: SignalSource = SignalSource.ONBOARDING
    signal_id: Optional[str] = None
    timestamp: Optional[datetime] = None
    normalized_value: Optional[str] = None


class ProcessSignalsRequest(BaseModel):
    signals: List[SignalIn] = Field(default_factory=list)
    source: SnapshotSource = SnapshotSource.API
    signal_snapshot_id: Optional[str] = None
    trigger_event_id: Optional[str] = None


class FeedbackRequest(BaseModel):
    resonance: Resonance
    context_tags: Optional[List[str]] = None


def signal_from_request(user_id: str, position: int, body: SignalIn) -> Signal:
    """Build a Signal; a missing id is derived from the request content."""
    timestamp = body.timestamp or utc_now()
    signal_id = body.signal_id or "sig_" + content_hash(
        user_id, body.question_id, body.raw_value, timestamp.isoformat(), position,
        length=12
    )
    return Signal(
        signal_id=signal_id,
        user_id=user_id,
        question_id=body.question_id,
        layer_ids=tuple(body.layer_ids),
        raw_value=body.raw_value,
        timestamp=timestamp,
        source=body.source,
        normalized_value=body.normalized_value,
    )


# =============================================================================
# RESPONSE DTOs
# =============================================================================

def map_snapshot_to_dto(snapshot: Snapshot) -> Dict[str, Any]:
    dto = snapshot_to_dict(snapshot)
    dto["mean_stability"] = snapshot.mean_stability
    return dto


def map_output_to_dto(output: PipelineOutput) -> Dict[str, Any]:
    metadata = output.metadata
    return {
        "snapshot": map_snapshot_to_dto(output.snapshot),
        "metadata": {
            "claim_count": metadata.claim_count,
            "pattern_count": metadata.pattern_count,
            "theme_count": metadata.theme_count,
            "stability_index": metadata.stability_index,
            "processing_time_ms": metadata.processing_time_ms,
        },
        "narratives": [module.to_dict() for module in output.narratives],
    }


def map_lineage_report_to_dto(report: LineageReport) -> Dict[str, Any]:
    return {
        "user_id": report.user_id,
        "snapshot_count": report.snapshot_count,
        "root_ids": list(report.root_ids),
        "forks": [
            {"parent_id": parent, "child_ids": list(children)}
            for parent, children in report.forks
        ],
        "dangling_ids": list(report.dangling_ids),
        "is_linear": report.is_linear,
    }


def map_audit_event_to_dto(event: AuditEvent) -> Dict[str, Any]:
    return audit_event_to_dict(event)


def map_evolution_to_dto(timeline: EvolutionTimeline) -> Dict[str, Any]:
    growth = timeline.overall_growth
    return {
        "user_id": timeline.user_id,
        "snapshots": [
            {
                "snapshot_id": s.snapshot_id,
                "created_at": format_timestamp(s.created_at),
                "pattern_count": s.pattern_count,
                "claim_count": s.claim_count,
                "theme_count": s.theme_count,
                "average_stability": s.average_stability,
            }
            for s in timeline.snapshots
        ],
        "pattern_changes": [
            {
                "pattern_id": c.pattern_id,
                "pattern_name": c.pattern_name,
                "previous_stability": c.previous_stability,
                "current_stability": c.current_stability,
                "change_percent": c.change_percent,
                "direction": c.direction.value,
                "first_seen": format_timestamp(c.first_seen),
            }
            for c in timeline.pattern_changes
        ],
        "theme_evolution": [
            {
                "theme_id": t.theme_id,
                "theme_name": t.theme_name,
                "strength_history": [
                    {"date": format_timestamp(p.timestamp), "strength": p.strength}
                    for p in t.strength_history
                ],
                "trend": t.trend.value,
                "current_strength": t.current_strength,
            }
            for t in timeline.theme_evolution
        ],
        "overall_growth": {
            "overall_progress": growth.overall_progress,
            "stability_growth": growth.stability_growth,
            "new_patterns_discovered": growth.new_patterns_discovered,
            "areas_of_improvement": list(growth.areas_of_improvement),
            "areas_needing_attention": list(growth.areas_needing_attention),
        },
    }
