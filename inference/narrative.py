"""
Narrative Collaborator Boundary
===============================

A snapshot is handed to narrative collaborators once it is stored.
Collaborators are read-only consumers of the snapshot's frozen tuples;
prose generation itself (hosted models, prompting) lives outside the
inference core.

The core ships one collaborator, StructuredSummaryCollaborator, which
renders the structured input a prose generator would receive.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Tuple

from .contracts.base import ClaimPolarity, content_hash, utc_now
from .contracts.entities import Snapshot


@dataclass(frozen=True)
class NarrativeModule:
    """Output of one collaborator for one snapshot."""
    module_id: str
    module_type: str
    snapshot_id: str
    user_id: str
    sections: Tuple[Tuple[str, Tuple[str, ...]], ...]
    created_at: datetime
    metadata: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    def section(self, name: str) -> Tuple[str, ...]:
        return dict(self.sections).get(name, ())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module_id": self.module_id,
            "module_type": self.module_type,
            "snapshot_id": self.snapshot_id,
            "user_id": self.user_id,
            "sections": {name: list(lines) for name, lines in self.sections},
            "created_at": self.created_at.isoformat(),
            "metadata": dict(self.metadata),
        }


class NarrativeCollaborator:
    """
    Abstract interface for narrative generation.

    Concrete collaborators implement generate(). The pipeline treats a
    raised exception as a failed module and keeps the snapshot.
    """

    name: str = "narrative"

    def generate(self, snapshot: Snapshot) -> NarrativeModule:
        """Render one module from a stored snapshot."""
        raise NotImplementedError


class StructuredSummaryCollaborator(NarrativeCollaborator):
    """
    Structured summary of a snapshot, one section per prose block.

    Sections:
    - headline: one-liners of the most stable patterns
    - strengths / frictions: claim texts by polarity
    - tensions: theme names with priority
    - growth_edges: growth edges of the promoted patterns, deduplicated
    """

    name = "structured_summary"

    def __init__(
        self,
        headline_size: int = 3,
        clock: Callable[[], datetime] = utc_now
    ):
        self._headline_size = headline_size
        self._clock = clock

    def generate(self, snapshot: Snapshot) -> NarrativeModule:
        ranked = sorted(snapshot.patterns, key=lambda p: -p.stability_index)
        headline = tuple(p.one_liner for p in ranked[:self._headline_size])

        strengths = tuple(c.text for c in snapshot.claims
                          if c.polarity == ClaimPolarity.STRENGTH)
        frictions = tuple(c.text for c in snapshot.claims
                          if c.polarity == ClaimPolarity.FRICTION)
        tensions = tuple(f"{t.name} ({t.priority.value})" for t in snapshot.themes)

        growth_edges = []
        for pattern in snapshot.patterns:
            for edge in pattern.growth_edges:
                if edge not in growth_edges:
                    growth_edges.append(edge)

        return NarrativeModule(
            module_id="mod_" + content_hash(self.name, snapshot.snapshot_id, length=16),
            module_type=self.name,
            snapshot_id=snapshot.snapshot_id,
            user_id=snapshot.user_id,
            sections=(
                ("headline", headline),
                ("strengths", strengths),
                ("frictions", frictions),
                ("tensions", tensions),
                ("growth_edges", tuple(growth_edges)),
            ),
            created_at=self._clock(),
            metadata=(
                ("claim_count", len(snapshot.claims)),
                ("pattern_count", len(snapshot.patterns)),
                ("theme_count", len(snapshot.themes)),
            ),
        )
