"""
Claim Engine
============

Signal → Claim. Pure function over a fixed rule list.

GUARANTEES:
- No I/O, no global state, no network
- Same signals → same claim contents (and the same claim ids)
- Unmatched signals produce nothing; that is not an error
"""

from __future__ import annotations
from collections import Counter
from datetime import datetime
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple

from ..contracts.base import (
    ClaimPolarity, ClaimStatus, LayerDefinition, content_hash,
    get_layer_definition, utc_now,
)
from ..contracts.entities import Claim, Signal
from ..rules.claim_rules import ClaimGenerationRule, DEFAULT_CLAIM_RULES


Clock = Callable[[], datetime]


def claim_id_for(signal: Signal, rule: ClaimGenerationRule, layer_id: int) -> str:
    """
    Content-addressed claim id.

    Re-deriving the same signal yields the same id; a new signal always
    yields a new one.
    """
    digest = content_hash(signal.user_id, signal.signal_id, rule.rule_id, layer_id)
    return f"CLM.L{layer_id}.{digest}"


class ClaimEngine:
    """
    Transforms raw signals into atomic, layer-scoped claims.

    The rule list is injected so tests and alternate deployments can
    swap it without touching module state.
    """

    def __init__(
        self,
        rules: Sequence[ClaimGenerationRule] = DEFAULT_CLAIM_RULES,
        clock: Clock = utc_now
    ):
        self._rules: Tuple[ClaimGenerationRule, ...] = tuple(rules)
        self._clock = clock

    @property
    def rules(self) -> Tuple[ClaimGenerationRule, ...]:
        return self._rules

    def generate_from_signal(self, signal: Signal) -> Tuple[Claim, ...]:
        """Claims for one signal, in rule order then rule layer order."""
        claims = []
        created_at = self._clock()
        declared = set(signal.layer_ids)

        for rule in self._rules:
            if not rule.matches(signal.question_id):
                continue

            for layer_id in rule.eligible_layer_ids:
                if layer_id not in declared:
                    continue

                claims.append(Claim(
                    claim_id=claim_id_for(signal, rule, layer_id),
                    layer_id=layer_id,
                    text=rule.template_fn(signal.raw_value, layer_id),
                    polarity=rule.polarity_fn(signal.raw_value),
                    confidence=rule.default_confidence,
                    evidence_refs=(signal.signal_id,),
                    status=ClaimStatus.ACTIVE,
                    created_at=created_at,
                    user_id=signal.user_id,
                ))

        return tuple(claims)

    def generate(self, signals: Iterable[Signal]) -> Tuple[Claim, ...]:
        """Claims for an ordered batch of signals (e.g. a full onboarding)."""
        all_claims = []
        for signal in signals:
            all_claims.extend(self.generate_from_signal(signal))
        return tuple(all_claims)

    # -------------------------------------------------------------------------
    # Read-only helpers over claim sets
    # -------------------------------------------------------------------------

    @staticmethod
    def filter_by_layer(claims: Iterable[Claim], layer_id: int) -> Tuple[Claim, ...]:
        return tuple(c for c in claims if c.layer_id == layer_id)

    @staticmethod
    def filter_by_polarity(
        claims: Iterable[Claim],
        polarity: ClaimPolarity
    ) -> Tuple[Claim, ...]:
        return tuple(c for c in claims if c.polarity == polarity)

    @staticmethod
    def layer_coverage(claims: Iterable[Claim]) -> Dict[int, int]:
        """Claim count per layer, for coverage analysis."""
        return dict(Counter(c.layer_id for c in claims))

    @staticmethod
    def layer_definition(layer_id: int) -> Optional[LayerDefinition]:
        return get_layer_definition(layer_id)
