"""
Evolution Timeline
==================

How a user's model moved across their most recent snapshots.

The window is the last `limit` snapshots, oldest first. Stabilities are
reported on a 0-100 scale. Change measures compare the oldest snapshot
in the window with the latest one; theme strength is tracked through
every snapshot of the window.

THEME STRENGTH:
0.7 * mean(stability * 100) over the supporting patterns present in the
snapshot, plus 0.3 * a priority score (high=90, medium=60, low=30).
A theme with no supporting pattern present scores its priority alone.

Whole-number results round half upward: floor(x + 0.5).
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import math

from ..contracts.base import ThemePriority
from ..contracts.entities import Pattern, Snapshot, Theme


PRIORITY_SCORES: Dict[ThemePriority, int] = {
    ThemePriority.HIGH: 90,
    ThemePriority.MEDIUM: 60,
    ThemePriority.LOW: 30,
}

PATTERN_STABILITY_WEIGHT = 0.7
PRIORITY_WEIGHT = 0.3

DIRECTION_THRESHOLD = 5  # percent
TREND_THRESHOLD = 5  # strength points
AREA_THRESHOLD = 10  # strength points
WEAK_THEME_STRENGTH = 50
MAX_AREAS = 3


class PatternDirection(Enum):
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"


class StrengthTrend(Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"


# =============================================================================
# RESULT RECORDS
# =============================================================================

@dataclass(frozen=True)
class SnapshotSummary:
    snapshot_id: str
    created_at: datetime
    pattern_count: int
    claim_count: int
    theme_count: int
    average_stability: int  # 0-100


@dataclass(frozen=True)
class PatternChange:
    """A pattern of the latest snapshot against the oldest in the window."""
    pattern_id: str
    pattern_name: str
    previous_stability: float  # 0 when the pattern is new
    current_stability: float
    change_percent: int
    direction: PatternDirection
    first_seen: datetime


@dataclass(frozen=True)
class StrengthPoint:
    timestamp: datetime
    strength: float


@dataclass(frozen=True)
class ThemeEvolution:
    theme_id: str
    theme_name: str
    strength_history: Tuple[StrengthPoint, ...]
    trend: StrengthTrend
    current_strength: float


@dataclass(frozen=True)
class GrowthMetric:
    overall_progress: int  # 0-100
    stability_growth: int  # percent change in mean stability
    new_patterns_discovered: int
    areas_of_improvement: Tuple[str, ...]
    areas_needing_attention: Tuple[str, ...]


NO_GROWTH = GrowthMetric(
    overall_progress=0,
    stability_growth=0,
    new_patterns_discovered=0,
    areas_of_improvement=(),
    areas_needing_attention=(),
)


@dataclass(frozen=True)
class EvolutionTimeline:
    user_id: str
    snapshots: Tuple[SnapshotSummary, ...]
    pattern_changes: Tuple[PatternChange, ...]
    theme_evolution: Tuple[ThemeEvolution, ...]
    overall_growth: GrowthMetric


# =============================================================================
# SCORING
# =============================================================================

def round_whole(value: float) -> int:
    return math.floor(value + 0.5)


def _mean_percent(patterns: Sequence[Pattern]) -> float:
    """Mean stability on the 0-100 scale; 0 with no patterns."""
    total = 0.0
    for pattern in patterns:
        total += pattern.stability_index * 100
    return total / max(len(patterns), 1)


def theme_strength(theme: Theme, patterns: Sequence[Pattern]) -> float:
    priority_score = PRIORITY_SCORES[theme.priority]
    supporting = [p for p in patterns if p.pattern_id in theme.supporting_pattern_ids]
    if not supporting:
        return priority_score
    return (_mean_percent(supporting) * PATTERN_STABILITY_WEIGHT
            + priority_score * PRIORITY_WEIGHT)


def summarize_snapshot(snapshot: Snapshot) -> SnapshotSummary:
    return SnapshotSummary(
        snapshot_id=snapshot.snapshot_id,
        created_at=snapshot.timestamp,
        pattern_count=len(snapshot.patterns),
        claim_count=len(snapshot.claims),
        theme_count=len(snapshot.themes),
        average_stability=round_whole(_mean_percent(snapshot.patterns)),
    )


# =============================================================================
# ANALYSIS
# =============================================================================

def analyze_pattern_changes(snapshots: Sequence[Snapshot]) -> Tuple[PatternChange, ...]:
    """Changes for every pattern of the latest snapshot, largest first."""
    if len(snapshots) < 2:
        return ()

    oldest, latest = snapshots[0], snapshots[-1]
    previous_by_id = {p.pattern_id: p for p in oldest.patterns}
    changes: List[PatternChange] = []

    for pattern in latest.patterns:
        previous = previous_by_id.get(pattern.pattern_id)
        previous_stability = 0.0 if previous is None else previous.stability_index * 100
        current_stability = pattern.stability_index * 100

        if previous_stability > 0:
            change_percent = round_whole(
                (current_stability - previous_stability) / previous_stability * 100
            )
        else:
            change_percent = 100

        if change_percent > DIRECTION_THRESHOLD:
            direction = PatternDirection.IMPROVING
        elif change_percent < -DIRECTION_THRESHOLD:
            direction = PatternDirection.DECLINING
        else:
            direction = PatternDirection.STABLE

        changes.append(PatternChange(
            pattern_id=pattern.pattern_id,
            pattern_name=pattern.name,
            previous_stability=previous_stability,
            current_stability=current_stability,
            change_percent=change_percent,
            direction=direction,
            first_seen=oldest.timestamp if previous is not None else latest.timestamp,
        ))

    return tuple(sorted(changes, key=lambda c: -abs(c.change_percent)))


def analyze_theme_evolution(snapshots: Sequence[Snapshot]) -> Tuple[ThemeEvolution, ...]:
    """Strength history of every theme seen in at least two snapshots."""
    names: Dict[str, str] = {}
    histories: Dict[str, List[StrengthPoint]] = {}

    for snapshot in snapshots:
        for theme in snapshot.themes:
            if theme.theme_id not in histories:
                histories[theme.theme_id] = []
                names[theme.theme_id] = theme.name
            histories[theme.theme_id].append(
                StrengthPoint(snapshot.timestamp, theme_strength(theme, snapshot.patterns))
            )

    evolutions = []
    for theme_id, history in histories.items():
        if len(history) < 2:
            continue
        first, last = history[0].strength, history[-1].strength
        if last > first + TREND_THRESHOLD:
            trend = StrengthTrend.UP
        elif last < first - TREND_THRESHOLD:
            trend = StrengthTrend.DOWN
        else:
            trend = StrengthTrend.STABLE
        evolutions.append(ThemeEvolution(
            theme_id=theme_id,
            theme_name=names[theme_id],
            strength_history=tuple(history),
            trend=trend,
            current_strength=last,
        ))
    return tuple(evolutions)


def _first_distinct(names: Iterable[str], limit: int) -> Tuple[str, ...]:
    seen: List[str] = []
    for name in names:
        if name not in seen:
            seen.append(name)
    return tuple(seen[:limit])


def calculate_growth(snapshots: Sequence[Snapshot]) -> GrowthMetric:
    if len(snapshots) < 2:
        return NO_GROWTH

    oldest, latest = snapshots[0], snapshots[-1]
    old_mean = _mean_percent(oldest.patterns)
    new_mean = _mean_percent(latest.patterns)
    stability_growth = 0
    if old_mean > 0:
        stability_growth = round_whole((new_mean - old_mean) / old_mean * 100)

    old_ids = {p.pattern_id for p in oldest.patterns}
    new_patterns = [p for p in latest.patterns if p.pattern_id not in old_ids]

    old_themes = {t.theme_id: t for t in oldest.themes}
    improving: List[str] = []
    attention: List[str] = []
    for theme in latest.themes:
        strength = theme_strength(theme, latest.patterns)
        old_theme = old_themes.get(theme.theme_id)
        if old_theme is not None:
            old_strength = theme_strength(old_theme, oldest.patterns)
            if strength > old_strength + AREA_THRESHOLD:
                improving.append(theme.name)
            elif strength < old_strength - AREA_THRESHOLD:
                attention.append(theme.name)
        if strength < WEAK_THEME_STRENGTH:
            attention.append(theme.name)

    return GrowthMetric(
        overall_progress=min(100, max(0, 50 + stability_growth)),
        stability_growth=stability_growth,
        new_patterns_discovered=len(new_patterns),
        areas_of_improvement=_first_distinct(improving, MAX_AREAS),
        areas_needing_attention=_first_distinct(attention, MAX_AREAS),
    )


def build_evolution_timeline(
    user_id: str,
    snapshots: Iterable[Snapshot],
    limit: int
) -> Optional[EvolutionTimeline]:
    """Timeline over the user's last `limit` snapshots; None without any."""
    ordered = sorted(snapshots, key=lambda s: s.timestamp)
    window = ordered[-limit:] if limit > 0 else []
    if not window:
        return None

    return EvolutionTimeline(
        user_id=user_id,
        snapshots=tuple(summarize_snapshot(s) for s in window),
        pattern_changes=analyze_pattern_changes(window),
        theme_evolution=analyze_theme_evolution(window),
        overall_growth=calculate_growth(window),
    )
