"""
Theme Engine
============

Pattern → Theme synthesis, one level above the pattern engine.

A pattern supports a theme iff its id is listed by the theme definition
and its category is eligible. A theme promotes iff enough patterns
support it.

Priority score factors:
1. Pattern count (0.4): min(n / (2 * min_supporting_patterns), 1)
2. Stability (0.6): mean stability_index of the supporting patterns

Buckets: >= 0.6 high, >= 0.4 medium, otherwise low.
"""

from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from ..contracts.base import ThemePriority, to_decimal, utc_now
from ..contracts.entities import Pattern, Theme
from ..rules.theme_library import ThemeDefinition, DEFAULT_THEME_LIBRARY


Clock = Callable[[], datetime]

COUNT_WEIGHT = Decimal("0.4")
STABILITY_WEIGHT = Decimal("0.6")

HIGH_THRESHOLD = Decimal("0.6")
MEDIUM_THRESHOLD = Decimal("0.4")

PRIORITY_ORDER = {
    ThemePriority.HIGH: 0,
    ThemePriority.MEDIUM: 1,
    ThemePriority.LOW: 2,
}


def priority_score(patterns: Sequence[Pattern], definition: ThemeDefinition) -> Decimal:
    if not patterns:
        return Decimal(0)
    count_factor = min(
        Decimal(len(patterns)) / Decimal(2 * definition.min_supporting_patterns),
        Decimal(1)
    )
    mean_stability = sum(to_decimal(p.stability_index) for p in patterns) / len(patterns)
    return COUNT_WEIGHT * count_factor + STABILITY_WEIGHT * mean_stability


def assign_priority(patterns: Sequence[Pattern], definition: ThemeDefinition) -> ThemePriority:
    score = priority_score(patterns, definition)
    if score >= HIGH_THRESHOLD:
        return ThemePriority.HIGH
    if score >= MEDIUM_THRESHOLD:
        return ThemePriority.MEDIUM
    return ThemePriority.LOW


def supports(pattern: Pattern, definition: ThemeDefinition) -> bool:
    return (pattern.pattern_id in definition.detect_from_patterns
            and pattern.category in definition.eligible_categories)


class ThemeEngine:
    """Synthesizes tension themes from promoted patterns."""

    def __init__(
        self,
        library: Sequence[ThemeDefinition] = DEFAULT_THEME_LIBRARY,
        clock: Clock = utc_now
    ):
        self._library: Tuple[ThemeDefinition, ...] = tuple(library)
        self._clock = clock

    def detect(self, patterns: Iterable[Pattern], user_id: str) -> Tuple[Theme, ...]:
        """Promoted themes, high priority first; library order within a priority."""
        patterns = tuple(patterns)
        created_at = self._clock()
        themes = []

        for definition in self._library:
            supporting = [p for p in patterns if supports(p, definition)]
            if len(supporting) < definition.min_supporting_patterns:
                continue

            layer_ids: List[int] = []
            for pattern in supporting:
                for layer_id in pattern.layer_ids:
                    if layer_id not in layer_ids:
                        layer_ids.append(layer_id)

            themes.append(Theme(
                theme_id=definition.theme_id,
                name=definition.name,
                summary=definition.summary,
                priority=assign_priority(supporting, definition),
                supporting_pattern_ids=tuple(p.pattern_id for p in supporting),
                created_at=created_at,
                user_id=user_id,
                layer_ids=tuple(sorted(layer_ids)),
            ))

        # sorted() is stable, so library order survives within a bucket
        return tuple(sorted(themes, key=lambda t: PRIORITY_ORDER[t.priority]))

    def definition(self, theme_id: str) -> Optional[ThemeDefinition]:
        for definition in self._library:
            if definition.theme_id == theme_id:
                return definition
        return None

    def definitions(self) -> Tuple[ThemeDefinition, ...]:
        return self._library

    @staticmethod
    def primary_themes(themes: Iterable[Theme]) -> Tuple[Theme, ...]:
        return tuple(t for t in themes if t.priority == ThemePriority.HIGH)
