"""
Theme Library
=============

High-level polarity tensions synthesized from promoted patterns.

A pattern supports a theme iff its id is listed in detect_from_patterns
AND its category is eligible. A theme is promoted iff at least
min_supporting_patterns patterns support it.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

from ..contracts.base import PatternCategory


INDIVIDUAL_ONLY: Tuple[PatternCategory, ...] = (PatternCategory.INDIVIDUAL,)


@dataclass(frozen=True)
class ThemeDefinition:
    theme_id: str
    name: str
    summary: str
    detect_from_patterns: Tuple[str, ...]
    min_supporting_patterns: int
    eligible_categories: Tuple[PatternCategory, ...] = INDIVIDUAL_ONLY
    eligible_layer_clusters: Tuple[str, ...] = ()

    def __post_init__(self):
        if self.min_supporting_patterns < 1:
            raise ValueError("min_supporting_patterns must be at least 1")


DEFAULT_THEME_LIBRARY: Tuple[ThemeDefinition, ...] = (
    ThemeDefinition(
        theme_id="THM.CONTROL_VS_TRUST",
        name="Control ↔ Trust",
        summary="A recurring tension between controlling outcomes and trusting emergence",
        detect_from_patterns=("PAT.IND.PRESSURE_CONTROLLER", "PAT.IND.STRUCTURED_PROCESSOR",
                              "PAT.IND.INITIATOR_STANCE"),
        min_supporting_patterns=2,
        eligible_layer_clusters=("B", "C"),
    ),
    ThemeDefinition(
        theme_id="THM.ACHIEVEMENT_VS_BALANCE",
        name="Achievement ↔ Balance",
        summary="A recurring tension between driving toward goals and sustaining equilibrium",
        detect_from_patterns=("PAT.IND.DRIVE_MAXIMIZER", "PAT.IND.PRESSURE_CONTROLLER"),
        min_supporting_patterns=1,
        eligible_layer_clusters=("B",),
    ),
    ThemeDefinition(
        theme_id="THM.CONNECTION_VS_AUTONOMY",
        name="Connection ↔ Autonomy",
        summary="A recurring tension between deep connection and protected independence",
        detect_from_patterns=("PAT.IND.RELATIONAL_WARMTH", "PAT.IND.BOUNDARY_CLARITY",
                              "PAT.IND.SOLITUDE_RECHARGER", "PAT.IND.PEOPLE_ENERGIZER"),
        min_supporting_patterns=2,
        eligible_layer_clusters=("C", "D"),
    ),
    ThemeDefinition(
        theme_id="THM.STABILITY_VS_GROWTH",
        name="Stability ↔ Growth",
        summary="A recurring tension between maintaining stability and pursuing development",
        detect_from_patterns=("PAT.IND.STABILITY_ANCHOR", "PAT.IND.EXPLORER_MIND",
                              "PAT.IND.GROWTH_EDGE_ACTIVE"),
        min_supporting_patterns=2,
        eligible_layer_clusters=("A", "E"),
    ),
    ThemeDefinition(
        theme_id="THM.EXPRESSION_VS_PROTECTION",
        name="Expression ↔ Protection",
        summary="A recurring tension between showing up fully and protecting capacity",
        detect_from_patterns=("PAT.IND.PRESSURE_WITHDRAWAL", "PAT.IND.BOUNDARY_POROSITY",
                              "PAT.IND.RESPONDER_STANCE"),
        min_supporting_patterns=2,
        eligible_layer_clusters=("C", "D"),
    ),
    ThemeDefinition(
        theme_id="THM.STRUCTURE_VS_EMERGENCE",
        name="Structure ↔ Emergence",
        summary="A recurring tension between planning and allowing things to unfold",
        detect_from_patterns=("PAT.IND.STRUCTURED_PROCESSOR", "PAT.IND.EXPLORER_MIND"),
        min_supporting_patterns=2,
        eligible_layer_clusters=("A", "B"),
    ),
)
