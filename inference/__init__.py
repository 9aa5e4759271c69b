"""
Personality Inference Engine

This package implements the layered inference pipeline that turns raw
user signals into an auditable model of a person. Each layer communicates
only through explicit contracts, never through shared mutable state.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Responsibility: Immutable records and shared enums
   - Outputs: Signal, Claim, Pattern, Theme, Snapshot, AuditEvent
   - MUST NOT: Depend on any other layer

2. RULE LIBRARIES (rules/)
   - Responsibility: Static, inspectable configuration data
   - Outputs: Claim generation rules, pattern library, theme library
   - MUST NOT: Change at runtime

3. CORE ENGINES (core/)
   - Responsibility: Signal → Claim → Pattern → Theme
   - Allowed inputs: Records from contracts, rules from rules/
   - MUST NOT: Perform I/O, read global state, learn weights

4. SNAPSHOT STORAGE (storage/)
   - Responsibility: Append-only, lineage-linked persistence
   - Outputs: Snapshot, SnapshotDiff, ClaimFeedback
   - MUST NOT: Update or delete a stored snapshot

5. OBSERVABILITY & AUDIT (observability/)
   - Responsibility: Append-only event trail for every state change
   - MUST NOT: Block or abort the operation being audited

6. ORCHESTRATION (engine.py)
   - Responsibility: Signals → Claims → Patterns → Themes → Snapshot
   - Hands finished snapshots to narrative collaborators (narrative.py)

CONSTRAINTS ENFORCED:
=====================
- Immutability-first: All records are frozen dataclasses with tuple fields
- Append-only: No in-place mutation of any persisted snapshot
- Deterministic: Identical signals always produce identical claim contents
- Explicit errors: Invariant violations raise typed exceptions
- Explainable: Every output traces back to rules and evidence
"""

from .engine import InferencePipeline, PipelineConfig, PipelineOutput

__all__ = [
    "InferencePipeline",
    "PipelineConfig",
    "PipelineOutput",
]

__version__ = "1.0.0"
