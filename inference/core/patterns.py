"""
Pattern Engine
==============

Claim → Pattern promotion over a fixed pattern library.

PROMOTION:
A claim supports a definition iff its layer is eligible and its text
contains one of the definition's keywords. Each definition promotes
independently; one claim may support several patterns.

STABILITY INDEX:
Score factors (weighted sum, rounded to 2 decimals):
1. Claim count (0.3): min(n / (2 * min_supporting_claims), 1)
2. Layer spread (0.3): distinct supporting layers / eligible layers
3. Confidence (0.4): mean of emerging=.25, moderate=.5, developed=.75,
   integrated=1 over the supporting claims

The score is a float sum taken in that order and rounded with
floor(x * 100 + 0.5) / 100. Stored stability values depend on both, so
neither may change: three moderate claims on one of three eligible
layers score 0.5249999999999999 and round to 0.52.
"""

from __future__ import annotations
from datetime import datetime
from fractions import Fraction
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from ..contracts.base import (
    ClaimConfidence, PatternCategory, round_two_places, utc_now,
)
from ..contracts.entities import Claim, Pattern
from ..rules.pattern_library import PatternDefinition, DEFAULT_PATTERN_LIBRARY


Clock = Callable[[], datetime]


# =============================================================================
# CONFIDENCE SCALES
# =============================================================================

CONFIDENCE_ORDINAL: Dict[ClaimConfidence, int] = {
    ClaimConfidence.EMERGING: 1,
    ClaimConfidence.MODERATE: 2,
    ClaimConfidence.DEVELOPED: 3,
    ClaimConfidence.INTEGRATED: 4,
}

CONFIDENCE_WEIGHT: Dict[ClaimConfidence, float] = {
    ClaimConfidence.EMERGING: 0.25,
    ClaimConfidence.MODERATE: 0.5,
    ClaimConfidence.DEVELOPED: 0.75,
    ClaimConfidence.INTEGRATED: 1.0,
}

COUNT_WEIGHT = 0.3
SPREAD_WEIGHT = 0.3
CONFIDENCE_FACTOR_WEIGHT = 0.4


def aggregate_confidence(claims: Sequence[Claim]) -> ClaimConfidence:
    """Mean ordinal confidence, re-bucketed at 3.5 / 2.5 / 1.5."""
    if not claims:
        return ClaimConfidence.EMERGING

    mean = Fraction(sum(CONFIDENCE_ORDINAL[c.confidence] for c in claims), len(claims))
    if mean >= Fraction(7, 2):
        return ClaimConfidence.INTEGRATED
    if mean >= Fraction(5, 2):
        return ClaimConfidence.DEVELOPED
    if mean >= Fraction(3, 2):
        return ClaimConfidence.MODERATE
    return ClaimConfidence.EMERGING


def stability_index(claims: Sequence[Claim], definition: PatternDefinition) -> float:
    """Stability of a pattern supported by the given claims, in [0, 1]."""
    if not claims:
        return 0.0

    count_factor = min(len(claims) / (definition.min_supporting_claims * 2), 1)
    distinct_layers = {c.layer_id for c in claims}
    spread_factor = len(distinct_layers) / len(definition.eligible_layers)
    confidence_factor = sum(CONFIDENCE_WEIGHT[c.confidence] for c in claims) / len(claims)

    score = (count_factor * COUNT_WEIGHT
             + spread_factor * SPREAD_WEIGHT
             + confidence_factor * CONFIDENCE_FACTOR_WEIGHT)
    return round_two_places(score)


def supports(claim: Claim, definition: PatternDefinition) -> bool:
    if claim.layer_id not in definition.eligible_layers:
        return False
    text = claim.text.lower()
    return any(keyword.lower() in text for keyword in definition.claim_keywords)


class PatternEngine:
    """
    Detects recurring dynamics in a claim set.

    Pure and deterministic: the same claims always promote the same
    patterns with the same stability.
    """

    def __init__(
        self,
        library: Sequence[PatternDefinition] = DEFAULT_PATTERN_LIBRARY,
        clock: Clock = utc_now
    ):
        self._library: Tuple[PatternDefinition, ...] = tuple(library)
        self._clock = clock

    def detect(self, claims: Iterable[Claim], user_id: str) -> Tuple[Pattern, ...]:
        """Promoted patterns, in library order."""
        claims = tuple(claims)
        created_at = self._clock()
        patterns = []

        for definition in self._library:
            supporting = [c for c in claims if supports(c, definition)]
            if len(supporting) < definition.min_supporting_claims:
                continue

            layer_ids: List[int] = []
            for claim in supporting:
                if claim.layer_id not in layer_ids:
                    layer_ids.append(claim.layer_id)

            patterns.append(Pattern(
                pattern_id=definition.pattern_id,
                category=definition.category,
                layer_ids=tuple(layer_ids),
                name=definition.name,
                one_liner=definition.one_liner,
                supporting_claim_ids=tuple(c.claim_id for c in supporting),
                growth_edges=definition.growth_edges,
                confidence=aggregate_confidence(supporting),
                stability_index=stability_index(supporting, definition),
                created_at=created_at,
                user_id=user_id,
            ))

        return tuple(patterns)

    # -------------------------------------------------------------------------
    # Library access and read-only helpers
    # -------------------------------------------------------------------------

    def definition(self, pattern_id: str) -> Optional[PatternDefinition]:
        for definition in self._library:
            if definition.pattern_id == pattern_id:
                return definition
        return None

    def definitions(self) -> Tuple[PatternDefinition, ...]:
        return self._library

    @staticmethod
    def group_by_category(
        patterns: Iterable[Pattern]
    ) -> Dict[PatternCategory, Tuple[Pattern, ...]]:
        grouped: Dict[PatternCategory, List[Pattern]] = {
            category: [] for category in PatternCategory
        }
        for pattern in patterns:
            grouped[pattern.category].append(pattern)
        return {category: tuple(items) for category, items in grouped.items()}

    @staticmethod
    def most_stable(patterns: Iterable[Pattern], limit: int = 5) -> Tuple[Pattern, ...]:
        """Highest stability first; ties keep their input order."""
        ranked = sorted(patterns, key=lambda p: -p.stability_index)
        return tuple(ranked[:limit])
