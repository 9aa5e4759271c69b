"""
Claim Generation Rules
======================

Static mapping from question patterns to claim text, polarity and
default confidence. Rules are plain data plus small pure functions;
nothing here is learned or weighted.

A rule fires when its matcher is found in a signal's question_id, and
produces one claim per layer in (eligible_layer_ids ∩ signal.layer_ids).
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple
import re

from ..contracts.base import ClaimConfidence, ClaimPolarity
from ..contracts.entities import RawValue


PolarityFn = Callable[[RawValue], ClaimPolarity]
TemplateFn = Callable[[RawValue, int], str]

ALL_LAYERS: Tuple[int, ...] = tuple(range(1, 16))


@dataclass(frozen=True)
class ClaimGenerationRule:
    """One inspectable signal → claim rule."""
    rule_id: str
    matcher: str  # regular expression searched in question_id
    eligible_layer_ids: Tuple[int, ...]
    polarity_fn: PolarityFn
    template_fn: TemplateFn
    default_confidence: ClaimConfidence

    def matches(self, question_id: str) -> bool:
        return re.search(self.matcher, question_id) is not None


# =============================================================================
# VALUE HELPERS
# =============================================================================

def _words(value: RawValue) -> List[str]:
    if isinstance(value, tuple):
        return [str(v) for v in value if str(v)]
    return [w for w in re.split(r"[,\s]+", str(value)) if w]


def _items(value: RawValue) -> List[str]:
    if isinstance(value, tuple):
        return [str(v) for v in value]
    return [str(value)]


def _as_text(value: RawValue) -> str:
    if isinstance(value, tuple):
        return ", ".join(str(v) for v in value)
    return str(value)


def _clip(text: str, limit: int) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def _constant(polarity: ClaimPolarity) -> PolarityFn:
    return lambda _value: polarity


# =============================================================================
# INFERENCE VOCABULARY
# =============================================================================

DISPOSITION_VOCABULARY: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("calm", "steady", "stable", "grounded", "composed"),
     "stability and groundedness"),
    (("creative", "curious", "innovative", "imaginative"),
     "creativity and exploration"),
    (("analytical", "logical", "precise", "thorough", "structured"),
     "precision and structured thinking"),
    (("caring", "empathetic", "supportive", "kind", "warm"),
     "warmth and connection"),
    (("driven", "ambitious", "focused", "determined"),
     "drive and focus"),
)

STRESS_VOCABULARY: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("anxious", "worried", "overthinking", "scattered"),
     "heightened mental activity and overthinking"),
    (("withdraw", "withdrawn", "withdrawing", "quiet", "distant", "closed", "retreat"),
     "withdrawal and containment"),
    (("irritable", "snappy", "impatient", "reactive"),
     "reactivity and sharpness"),
    (("controlling", "rigid", "demanding"),
     "increased control and rigidity"),
    (("tired", "exhausted", "depleted", "flat"),
     "energy depletion and fatigue"),
)

DEFAULT_DISPOSITION = "qualities you recognize as central to who you are"
DEFAULT_STRESS_PATTERN = "a shift in your usual patterns"

FRICTION_MOVES: Tuple[str, ...] = (
    "over-function", "push harder", "control details",
    "shut down", "withdraw", "quiet", "distant", "retreat", "people-please",
)

TRAIT_STRENGTH_MARKERS: Tuple[str, ...] = (
    "strength", "steady", "reliable", "clear", "grounded", "balanced",
)
TRAIT_FRICTION_MARKERS: Tuple[str, ...] = (
    "challenge", "pressure", "difficult", "struggle", "tension",
)


def _lookup(words: Sequence[str], vocabulary, default: str) -> str:
    lowered = {w.lower() for w in words}
    for keywords, label in vocabulary:
        if lowered.intersection(keywords):
            return label
    return default


def infer_disposition(words: Sequence[str]) -> str:
    return _lookup(words, DISPOSITION_VOCABULARY, DEFAULT_DISPOSITION)


def infer_stress_pattern(words: Sequence[str]) -> str:
    return _lookup(words, STRESS_VOCABULARY, DEFAULT_STRESS_PATTERN)


# =============================================================================
# POLARITY FUNCTIONS
# =============================================================================

def stress_word_polarity(value: RawValue) -> ClaimPolarity:
    """A recognised stress pattern is friction; anything else is neutral."""
    if infer_stress_pattern(_words(value)) == DEFAULT_STRESS_PATTERN:
        return ClaimPolarity.NEUTRAL
    return ClaimPolarity.FRICTION


def default_move_polarity(value: RawValue) -> ClaimPolarity:
    move = _as_text(value).lower()
    if any(marker in move for marker in FRICTION_MOVES):
        return ClaimPolarity.FRICTION
    return ClaimPolarity.NEUTRAL


def boundary_polarity(value: RawValue) -> ClaimPolarity:
    style = _as_text(value).strip().lower()
    if style in ("too porous", "too rigid"):
        return ClaimPolarity.FRICTION
    if style == "clear":
        return ClaimPolarity.STRENGTH
    return ClaimPolarity.NEUTRAL


def trait_polarity(value: RawValue) -> ClaimPolarity:
    text = _as_text(value).lower()
    if any(marker in text for marker in TRAIT_STRENGTH_MARKERS):
        return ClaimPolarity.STRENGTH
    if any(marker in text for marker in TRAIT_FRICTION_MARKERS):
        return ClaimPolarity.FRICTION
    return ClaimPolarity.NEUTRAL


# =============================================================================
# TEMPLATES
# =============================================================================

def self_best_text(value: RawValue, layer_id: int) -> str:
    words = _words(value)
    top_words = ", ".join(words[:3])
    return (f"At your best, you describe yourself as {top_words}. "
            f"This suggests a baseline disposition toward {infer_disposition(words)}.")


def self_stress_text(value: RawValue, layer_id: int) -> str:
    pattern = infer_stress_pattern(_words(value))
    return (f"Under pressure, you tend toward {pattern}. "
            "This pattern often shows up when stakes feel high.")


def recovery_text(value: RawValue, layer_id: int) -> str:
    methods = " and ".join(_items(value))
    return (f"You restore energy most reliably through {methods}. "
            "This is a key pattern in how you sustain yourself.")


def complexity_text(value: RawValue, layer_id: int) -> str:
    items = _items(value)
    style = items[0].lower() if items and items[0] else "gather & integrate"
    return (f"When facing complexity, you tend to {style}. "
            "This shapes how you approach decisions and uncertainty.")


def default_move_text(value: RawValue, layer_id: int) -> str:
    move = _as_text(value).lower()
    return (f"Under pressure, your default move is to {move}. "
            "This pattern often emerges before conscious choice.")


def boundary_text(value: RawValue, layer_id: int) -> str:
    style = _as_text(value).strip().lower()
    if style == "clear":
        return ("You tend to maintain clear boundaries in relationships. "
                "This creates definition in how you connect.")
    if style == "too porous":
        return ("Your boundaries can become porous, especially under emotional pressure. "
                "This may lead to over-merging or difficulty protecting your space.")
    if style == "too rigid":
        return ("Your boundaries tend toward rigidity. While this creates safety, "
                "it may also limit connection or flexibility.")
    return "Your boundary style is context-dependent, shifting based on relationship and situation."


def collaboration_text(value: RawValue, layer_id: int) -> str:
    role = _as_text(value).strip().lower()
    if role == "initiator":
        return ("In collaboration, you typically take the initiator role: starting "
                "conversations, proposing directions, and moving things forward.")
    if role == "responder":
        return ("In collaboration, you typically take the responder role: reacting to "
                "proposals, refining ideas, and supporting momentum others create.")
    return ("Your collaboration style is context-dependent, shifting between "
            "initiating and responding based on the situation.")


def current_edge_text(value: RawValue, layer_id: int) -> str:
    text = _clip(_as_text(value), 100)
    return (f'Right now, your growth edge involves: "{text}". '
            "This is where development pressure currently sits.")


def protect_text(value: RawValue, layer_id: int) -> str:
    text = _as_text(value)[:80]
    return f'What you most want to protect: "{text}". This reveals a core motivational anchor.'


def trait_text(value: RawValue, layer_id: int) -> str:
    """Persisted trait descriptions are already claim-shaped; keep two sentences."""
    description = _as_text(value)
    sentences = [s for s in re.split(r"\.\s+", description) if len(s) > 20]
    if len(sentences) >= 2:
        return ". ".join(sentences[:2]).rstrip(".") + "."
    return description


# =============================================================================
# DEFAULT LIBRARY
# =============================================================================

DEFAULT_CLAIM_RULES: Tuple[ClaimGenerationRule, ...] = (
    ClaimGenerationRule(
        rule_id="RULE.SELF_BEST",
        matcher=r"lex\.self_best",
        eligible_layer_ids=(1, 2),
        polarity_fn=_constant(ClaimPolarity.STRENGTH),
        template_fn=self_best_text,
        default_confidence=ClaimConfidence.EMERGING,
    ),
    ClaimGenerationRule(
        rule_id="RULE.SELF_STRESS",
        matcher=r"lex\.self_stress",
        eligible_layer_ids=(6, 7),
        polarity_fn=stress_word_polarity,
        template_fn=self_stress_text,
        default_confidence=ClaimConfidence.EMERGING,
    ),
    ClaimGenerationRule(
        rule_id="RULE.RECOVERY_METHODS",
        matcher=r"recovery\.methods",
        eligible_layer_ids=(2,),
        polarity_fn=_constant(ClaimPolarity.STRENGTH),
        template_fn=recovery_text,
        default_confidence=ClaimConfidence.MODERATE,
    ),
    ClaimGenerationRule(
        rule_id="RULE.COMPLEXITY_RESPONSE",
        matcher=r"processing\.complexity_response",
        eligible_layer_ids=(3, 4),
        polarity_fn=_constant(ClaimPolarity.NEUTRAL),
        template_fn=complexity_text,
        default_confidence=ClaimConfidence.MODERATE,
    ),
    ClaimGenerationRule(
        rule_id="RULE.STRESS_DEFAULT_MOVE",
        matcher=r"stress\.default_move",
        eligible_layer_ids=(6, 8),
        polarity_fn=default_move_polarity,
        template_fn=default_move_text,
        default_confidence=ClaimConfidence.MODERATE,
    ),
    ClaimGenerationRule(
        rule_id="RULE.BOUNDARY_STYLE",
        matcher=r"rel\.boundary_style",
        eligible_layer_ids=(10,),
        polarity_fn=boundary_polarity,
        template_fn=boundary_text,
        default_confidence=ClaimConfidence.MODERATE,
    ),
    ClaimGenerationRule(
        rule_id="RULE.COLLABORATION_ROLE",
        matcher=r"rel\.collaboration_role",
        eligible_layer_ids=(12, 8),
        polarity_fn=_constant(ClaimPolarity.NEUTRAL),
        template_fn=collaboration_text,
        default_confidence=ClaimConfidence.MODERATE,
    ),
    ClaimGenerationRule(
        rule_id="RULE.CURRENT_EDGE",
        matcher=r"edge\.current_text",
        eligible_layer_ids=(15,),
        polarity_fn=_constant(ClaimPolarity.NEUTRAL),
        template_fn=current_edge_text,
        default_confidence=ClaimConfidence.EMERGING,
    ),
    ClaimGenerationRule(
        rule_id="RULE.PROTECT",
        matcher=r"motivation\.protect_text",
        eligible_layer_ids=(5, 13),
        polarity_fn=_constant(ClaimPolarity.STRENGTH),
        template_fn=protect_text,
        default_confidence=ClaimConfidence.MODERATE,
    ),
    # Wildcard: re-derives claims from persisted layer-scored traits.
    ClaimGenerationRule(
        rule_id="RULE.TRAIT",
        matcher=r"^TRAIT\.L\d+",
        eligible_layer_ids=ALL_LAYERS,
        polarity_fn=trait_polarity,
        template_fn=trait_text,
        default_confidence=ClaimConfidence.DEVELOPED,
    ),
)
