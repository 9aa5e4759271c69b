"""
Engine Orchestration Module

This module provides the unified interface for running signals through
every layer while maintaining strict boundary separation.

DESIGN PRINCIPLES:
==================
1. Layers communicate ONLY through contracts
2. Engines are constructed here and passed their rule libraries
3. Every stage is recorded in the audit trail
4. No shared mutable state between layers except the append-only store
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence, Tuple
import logging
import os
import time

from .contracts.base import (
    AuditEventType, Resonance, SnapshotSource, utc_now,
)
from .contracts.entities import ClaimFeedback, Signal, Snapshot, SnapshotDiff
from .core import ClaimEngine, PatternEngine, ThemeEngine
from .narrative import NarrativeCollaborator, NarrativeModule
from .observability import AuditConfig, AuditLog
from .storage import (
    CollectionStore, EvolutionTimeline, SnapshotStore, StorageConfig,
    create_collection_store,
)
from .storage.snapshots import DEFAULT_HISTORY_LIMIT

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class ServerConfig:
    """HTTP server settings, used by run_server.py."""
    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "INFO"


@dataclass
class PipelineConfig:
    """Unified configuration for the entire pipeline."""
    storage: StorageConfig = None
    audit: AuditConfig = None
    server: ServerConfig = None

    def __post_init__(self):
        self.storage = self.storage or StorageConfig()
        self.audit = self.audit or AuditConfig()
        self.server = self.server or ServerConfig()

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        """
        Build a config from PIE_* environment variables.

        PIE_STORAGE_BACKEND  memory | file (default memory)
        PIE_STORAGE_DIR      directory for the file backend (default ./data)
        PIE_LOG_LEVEL        logging level name (default INFO)
        PIE_HOST, PIE_PORT   server bind address (default 127.0.0.1:8000)
        """
        backend_type = os.environ.get("PIE_STORAGE_BACKEND", "memory").lower()
        storage_dir = os.environ.get("PIE_STORAGE_DIR")
        if backend_type == "file" and not storage_dir:
            storage_dir = os.path.join(os.getcwd(), "data")

        return cls(
            storage=StorageConfig(backend_type=backend_type, storage_dir=storage_dir),
            audit=AuditConfig(),
            server=ServerConfig(
                host=os.environ.get("PIE_HOST", "127.0.0.1"),
                port=int(os.environ.get("PIE_PORT", "8000")),
                log_level=os.environ.get("PIE_LOG_LEVEL", "INFO").upper(),
            ),
        )


# =============================================================================
# OUTPUT
# =============================================================================

@dataclass(frozen=True)
class PipelineMetadata:
    claim_count: int
    pattern_count: int
    theme_count: int
    stability_index: float  # mean pattern stability, 2 decimals
    processing_time_ms: int


@dataclass(frozen=True)
class PipelineOutput:
    snapshot: Snapshot
    metadata: PipelineMetadata
    narratives: Tuple[NarrativeModule, ...] = field(default_factory=tuple)


def _metadata_for(snapshot: Snapshot, processing_time_ms: int) -> PipelineMetadata:
    return PipelineMetadata(
        claim_count=len(snapshot.claims),
        pattern_count=len(snapshot.patterns),
        theme_count=len(snapshot.themes),
        stability_index=snapshot.mean_stability,
        processing_time_ms=processing_time_ms,
    )


# =============================================================================
# PIPELINE
# =============================================================================

class InferencePipeline:
    """
    Unified entry point for the inference pipeline.

    LAYER FLOW:
    ===========
    1. ClaimEngine: Signal → Claim
    2. PatternEngine: Claim → Pattern
    3. ThemeEngine: Pattern → Theme
    4. SnapshotStore: immutable, lineage-linked persistence
    5. Narrative collaborators: read-only consumers of the snapshot
    6. AuditLog: records every stage

    NO LAYER BYPASSES THIS FLOW.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        store: Optional[CollectionStore] = None,
        claim_engine: Optional[ClaimEngine] = None,
        pattern_engine: Optional[PatternEngine] = None,
        theme_engine: Optional[ThemeEngine] = None,
        collaborators: Sequence[NarrativeCollaborator] = (),
        clock: Callable[[], datetime] = utc_now
    ):
        self._config = config or PipelineConfig()
        self._store = store or create_collection_store(self._config.storage)

        self._claims = claim_engine or ClaimEngine(clock=clock)
        self._patterns = pattern_engine or PatternEngine(clock=clock)
        self._themes = theme_engine or ThemeEngine(clock=clock)

        self._audit = AuditLog(self._store, self._config.audit, clock=clock)
        self._snapshots = SnapshotStore(self._store, self._audit, clock=clock)
        self._collaborators: List[NarrativeCollaborator] = list(collaborators)

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def claim_engine(self) -> ClaimEngine:
        return self._claims

    @property
    def pattern_engine(self) -> PatternEngine:
        return self._patterns

    @property
    def theme_engine(self) -> ThemeEngine:
        return self._themes

    @property
    def snapshot_store(self) -> SnapshotStore:
        return self._snapshots

    @property
    def audit_log(self) -> AuditLog:
        return self._audit

    def register_collaborator(self, collaborator: NarrativeCollaborator) -> None:
        self._collaborators.append(collaborator)

    # =========================================================================
    # MAIN FLOW
    # =========================================================================

    def process_signals(
        self,
        user_id: str,
        signals: Iterable[Signal],
        source: SnapshotSource,
        signal_snapshot_id: Optional[str] = None,
        trigger_event_id: Optional[str] = None
    ) -> PipelineOutput:
        """
        Run signals through every layer and persist one snapshot.

        Returns a complete snapshot or raises PersistenceError; a failing
        collaborator never undoes the stored snapshot.
        """
        started = time.perf_counter()
        signals = tuple(signals)
        seen_ids = set()
        for signal in signals:
            if signal.user_id != user_id:
                raise ValueError(
                    f"signal {signal.signal_id} belongs to {signal.user_id}, not {user_id}"
                )
            # claim ids derive from signal ids, which must be unique per batch
            if signal.signal_id in seen_ids:
                raise ValueError(f"duplicate signal id {signal.signal_id} in one batch")
            seen_ids.add(signal.signal_id)

        # Layer 1: claims
        claims = self._claims.generate(signals)
        for claim in claims:
            self._audit.log(AuditEventType.CLAIM_CREATED, user_id, claim.claim_id, {
                "layer_id": claim.layer_id,
                "polarity": claim.polarity.value,
                "confidence": claim.confidence.value,
                "evidence_refs": claim.evidence_refs,
            })

        # Layer 2: patterns
        patterns = self._patterns.detect(claims, user_id)
        for pattern in patterns:
            self._audit.log(AuditEventType.PATTERN_PROMOTED, user_id, pattern.pattern_id, {
                "stability_index": pattern.stability_index,
                "confidence": pattern.confidence.value,
                "supporting_claim_count": len(pattern.supporting_claim_ids),
            })

        # Layer 3: themes
        themes = self._themes.detect(patterns, user_id)
        for theme in themes:
            self._audit.log(AuditEventType.THEME_DETECTED, user_id, theme.theme_id, {
                "priority": theme.priority.value,
                "supporting_pattern_ids": theme.supporting_pattern_ids,
            })

        logger.info(
            "Derived %d claims, %d patterns, %d themes for %s from %d signals",
            len(claims), len(patterns), len(themes), user_id, len(signals)
        )

        # Layer 4: persistence (errors propagate)
        snapshot = self._snapshots.create_snapshot(
            user_id=user_id,
            source=source,
            claims=claims,
            patterns=patterns,
            themes=themes,
            signal_snapshot_id=signal_snapshot_id,
            trigger_event_id=trigger_event_id,
        )

        # Layer 5: narrative collaborators
        narratives = self._run_collaborators(snapshot)

        processing_time_ms = int((time.perf_counter() - started) * 1000)
        metadata = _metadata_for(snapshot, processing_time_ms)

        self._audit.log(AuditEventType.PIPELINE_COMPLETED, user_id, snapshot.snapshot_id, {
            "claim_count": metadata.claim_count,
            "pattern_count": metadata.pattern_count,
            "theme_count": metadata.theme_count,
            "stability_index": metadata.stability_index,
            "processing_time_ms": metadata.processing_time_ms,
        })

        return PipelineOutput(snapshot=snapshot, metadata=metadata, narratives=narratives)

    def _run_collaborators(self, snapshot: Snapshot) -> Tuple[NarrativeModule, ...]:
        modules = []
        for collaborator in self._collaborators:
            try:
                module = collaborator.generate(snapshot)
            except Exception as e:
                logger.warning(
                    "Narrative collaborator %s failed for snapshot %s: %s",
                    collaborator.name, snapshot.snapshot_id, e, exc_info=True
                )
                self._audit.log(
                    AuditEventType.MODULE_GENERATED, snapshot.user_id, snapshot.snapshot_id,
                    {"module_type": collaborator.name, "status": "failed", "error": str(e)}
                )
                continue

            modules.append(module)
            self._audit.log(
                AuditEventType.MODULE_GENERATED, snapshot.user_id, module.module_id,
                {"module_type": module.module_type, "status": "generated",
                 "snapshot_id": snapshot.snapshot_id}
            )
        return tuple(modules)

    # =========================================================================
    # PASS-THROUGHS
    # =========================================================================

    def record_claim_feedback(
        self,
        user_id: str,
        claim_id: str,
        resonance: Resonance,
        context_tags: Optional[Iterable[str]] = None
    ) -> ClaimFeedback:
        return self._snapshots.record_claim_feedback(user_id, claim_id, resonance, context_tags)

    def compare_snapshots(self, older_id: str, newer_id: str) -> Optional[SnapshotDiff]:
        return self._snapshots.compare_snapshots(older_id, newer_id)

    def get_snapshot_history(
        self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> Tuple[Snapshot, ...]:
        return self._snapshots.get_snapshot_history(user_id, limit)

    def get_evolution_timeline(
        self, user_id: str, limit: int = DEFAULT_HISTORY_LIMIT
    ) -> Optional[EvolutionTimeline]:
        return self._snapshots.get_evolution_timeline(user_id, limit)

    def get_latest_output(self, user_id: str) -> Optional[PipelineOutput]:
        """Latest snapshot with its metadata recomputed; no narratives."""
        snapshot = self._snapshots.get_latest_snapshot(user_id)
        if snapshot is None:
            return None
        return PipelineOutput(snapshot=snapshot, metadata=_metadata_for(snapshot, 0))
