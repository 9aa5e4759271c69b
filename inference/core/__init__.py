"""
Core Inference Engines

Signal → Claim → Pattern → Theme.

MUST NOT:
- Perform I/O of any kind
- Hold state between calls beyond the injected libraries and clock
- Reach into storage or observability
"""

from .claims import ClaimEngine, claim_id_for
from .patterns import PatternEngine, aggregate_confidence, stability_index
from .themes import ThemeEngine, assign_priority, priority_score

__all__ = [
    "ClaimEngine",
    "claim_id_for",
    "PatternEngine",
    "aggregate_confidence",
    "stability_index",
    "ThemeEngine",
    "assign_priority",
    "priority_score",
]
