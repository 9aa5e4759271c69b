"""
Pattern Library
===============

Named recurring dynamics that claims can be promoted into.

A claim supports a definition iff its layer is eligible AND its text
contains (case-insensitively) at least one keyword. A definition is
promoted iff at least min_supporting_claims claims support it.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Tuple

from ..contracts.base import PatternCategory


@dataclass(frozen=True)
class PatternDefinition:
    pattern_id: str
    category: PatternCategory
    name: str
    one_liner: str
    eligible_layers: Tuple[int, ...]
    claim_keywords: Tuple[str, ...]
    min_supporting_claims: int
    growth_edges: Tuple[str, ...]

    def __post_init__(self):
        if self.min_supporting_claims < 1:
            raise ValueError("min_supporting_claims must be at least 1")
        if not self.eligible_layers:
            raise ValueError("eligible_layers must not be empty")


DEFAULT_PATTERN_LIBRARY: Tuple[PatternDefinition, ...] = (
    # Cluster A: core architecture
    PatternDefinition(
        pattern_id="PAT.IND.STABILITY_ANCHOR",
        category=PatternCategory.INDIVIDUAL,
        name="Stability Anchor",
        one_liner="You naturally create groundedness for yourself and others",
        eligible_layers=(1, 2),
        claim_keywords=("stable", "steady", "grounded", "calm", "composed"),
        min_supporting_claims=2,
        growth_edges=("Notice when stability becomes rigidity", "Explore safe instability"),
    ),
    PatternDefinition(
        pattern_id="PAT.IND.EXPLORER_MIND",
        category=PatternCategory.INDIVIDUAL,
        name="Explorer Mind",
        one_liner="You seek novelty and possibility before settling on a path",
        eligible_layers=(1, 3, 14),
        claim_keywords=("creative", "curious", "explore", "imaginative", "novelty"),
        min_supporting_claims=2,
        growth_edges=("Ground exploration with commitment windows",
                      "Notice when exploration avoids completion"),
    ),
    PatternDefinition(
        pattern_id="PAT.IND.STRUCTURED_PROCESSOR",
        category=PatternCategory.INDIVIDUAL,
        name="Structured Processor",
        one_liner="You organize information systematically before acting",
        eligible_layers=(3, 4, 8),
        claim_keywords=("analytical", "logical", "structured", "precise",
                        "systematic", "gather", "map"),
        min_supporting_claims=2,
        growth_edges=("Trust incomplete data sometimes",
                      "Balance structure with spontaneous action"),
    ),
    PatternDefinition(
        pattern_id="PAT.IND.RELATIONAL_WARMTH",
        category=PatternCategory.INDIVIDUAL,
        name="Relational Warmth",
        one_liner="Connection and care are central to how you operate",
        eligible_layers=(1, 10, 11),
        claim_keywords=("caring", "empathetic", "supportive", "warm", "connection"),
        min_supporting_claims=2,
        growth_edges=("Protect capacity to give", "Notice when warmth depletes you"),
    ),

    # Cluster B: processing and stress
    PatternDefinition(
        pattern_id="PAT.IND.DRIVE_MAXIMIZER",
        category=PatternCategory.INDIVIDUAL,
        name="Drive Maximizer",
        one_liner="You push toward goals with sustained intensity",
        eligible_layers=(5, 8),
        claim_keywords=("driven", "ambitious", "focused", "determined", "push"),
        min_supporting_claims=2,
        growth_edges=("Build recovery into achievement cycles",
                      "Separate self-worth from output"),
    ),
    PatternDefinition(
        pattern_id="PAT.IND.PRESSURE_CONTROLLER",
        category=PatternCategory.INDIVIDUAL,
        name="Pressure Controller",
        one_liner="Under stress, you instinctively reach for structure and control",
        eligible_layers=(6, 8),
        claim_keywords=("control", "over-function", "push harder", "details", "rigid"),
        min_supporting_claims=2,
        growth_edges=("Practice deliberate release", "Recognize control as anxiety signal"),
    ),
    PatternDefinition(
        pattern_id="PAT.IND.PRESSURE_WITHDRAWAL",
        category=PatternCategory.INDIVIDUAL,
        name="Pressure Withdrawal",
        one_liner="Under stress, you naturally withdraw to protect capacity",
        eligible_layers=(6, 7, 10),
        claim_keywords=("withdraw", "shut down", "distant", "quiet", "retreat"),
        min_supporting_claims=2,
        growth_edges=("Signal withdrawal intent to others", "Build re-emergence rituals"),
    ),
    PatternDefinition(
        pattern_id="PAT.IND.SOLITUDE_RECHARGER",
        category=PatternCategory.INDIVIDUAL,
        name="Solitude Recharger",
        one_liner="You recover energy primarily through time alone",
        eligible_layers=(2,),
        claim_keywords=("solitude", "alone", "quiet", "space"),
        min_supporting_claims=1,
        growth_edges=("Protect solitude proactively", "Communicate recovery needs"),
    ),
    PatternDefinition(
        pattern_id="PAT.IND.PEOPLE_ENERGIZER",
        category=PatternCategory.INDIVIDUAL,
        name="People Energizer",
        one_liner="You gain energy through interaction and connection",
        eligible_layers=(2,),
        claim_keywords=("people", "connection", "social", "talk"),
        min_supporting_claims=1,
        growth_edges=("Balance output with solo recovery",
                      "Notice quality vs quantity of contact"),
    ),

    # Clusters C-D: relational
    PatternDefinition(
        pattern_id="PAT.IND.BOUNDARY_CLARITY",
        category=PatternCategory.INDIVIDUAL,
        name="Boundary Clarity",
        one_liner="You maintain clear definition between yourself and others",
        eligible_layers=(10,),
        claim_keywords=("clear boundaries", "definition", "protect"),
        min_supporting_claims=1,
        growth_edges=("Allow appropriate permeability", "Notice when clarity feels cold"),
    ),
    PatternDefinition(
        pattern_id="PAT.IND.BOUNDARY_POROSITY",
        category=PatternCategory.INDIVIDUAL,
        name="Boundary Porosity",
        one_liner="You absorb others' states more readily than you realize",
        eligible_layers=(10,),
        claim_keywords=("porous", "over-merging", "absorb"),
        min_supporting_claims=1,
        growth_edges=("Practice distinguishing self from other",
                      "Create energetic reset rituals"),
    ),
    PatternDefinition(
        pattern_id="PAT.IND.INITIATOR_STANCE",
        category=PatternCategory.INDIVIDUAL,
        name="Initiator Stance",
        one_liner="You naturally start conversations, propose directions, move things forward",
        eligible_layers=(8, 12),
        claim_keywords=("initiator", "start", "propose", "forward"),
        min_supporting_claims=1,
        growth_edges=("Create space for others to lead",
                      "Notice initiating as control pattern"),
    ),
    PatternDefinition(
        pattern_id="PAT.IND.RESPONDER_STANCE",
        category=PatternCategory.INDIVIDUAL,
        name="Responder Stance",
        one_liner="You prefer to react, refine, and support rather than initiate",
        eligible_layers=(8, 12),
        claim_keywords=("responder", "react", "refine", "support"),
        min_supporting_claims=1,
        growth_edges=("Practice initiating in safe contexts",
                      "Own ideas before they're polished"),
    ),

    # Cluster E: edge and growth
    PatternDefinition(
        pattern_id="PAT.IND.GROWTH_EDGE_ACTIVE",
        category=PatternCategory.INDIVIDUAL,
        name="Active Growth Edge",
        one_liner="You have a live development frontier you're aware of",
        eligible_layers=(14, 15),
        claim_keywords=("growth edge", "development", "tension", "decision"),
        min_supporting_claims=1,
        growth_edges=("Pace the edge work", "Celebrate incremental shifts"),
    ),
)
