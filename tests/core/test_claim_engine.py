"""
Claim Engine Tests
==================

Signal → Claim generation against the default rule library and small
hand-built rule sets.
"""

import re

import pytest
from dataclasses import FrozenInstanceError

from inference.contracts.base import (
    ClaimConfidence, ClaimPolarity, ClaimStatus,
)
from inference.core import ClaimEngine
from inference.rules import ClaimGenerationRule

from tests.fixtures import (
    FixedClock, TickingClock, T2, make_signal, withdrawal_signals,
)


class TestRuleMatching:

    def test_default_move_yields_friction_claim_on_declared_layer(self):
        """Rule eligible on (6, 8) fires only on the layer the signal declares."""
        engine = ClaimEngine(clock=FixedClock())
        signal = make_signal("sig_1", "stress.default_move", "withdraw", (6,))

        claims = engine.generate_from_signal(signal)

        assert len(claims) == 1
        claim = claims[0]
        assert claim.layer_id == 6
        assert claim.polarity == ClaimPolarity.FRICTION
        assert claim.confidence == ClaimConfidence.MODERATE
        assert claim.status == ClaimStatus.ACTIVE
        assert claim.evidence_refs == ("sig_1",)
        assert claim.text == (
            "Under pressure, your default move is to withdraw. "
            "This pattern often emerges before conscious choice."
        )

    def test_one_signal_can_yield_claims_on_several_layers(self):
        engine = ClaimEngine(clock=FixedClock())
        signal = make_signal("sig_1", "stress.default_move", "push harder", (6, 8))

        claims = engine.generate_from_signal(signal)

        assert [c.layer_id for c in claims] == [6, 8]
        assert all(c.polarity == ClaimPolarity.FRICTION for c in claims)

    def test_layers_outside_rule_are_ignored(self):
        """Only rule.eligible ∩ signal.layer_ids produce claims."""
        engine = ClaimEngine(clock=FixedClock())
        signal = make_signal("sig_1", "lex.self_best", "calm, curious, driven", (1, 2, 3))

        claims = engine.generate_from_signal(signal)

        assert [c.layer_id for c in claims] == [1, 2]
        assert all(c.polarity == ClaimPolarity.STRENGTH for c in claims)
        assert all(c.confidence == ClaimConfidence.EMERGING for c in claims)
        assert claims[0].text == (
            "At your best, you describe yourself as calm, curious, driven. "
            "This suggests a baseline disposition toward stability and groundedness."
        )

    def test_unmatched_signal_produces_nothing(self):
        engine = ClaimEngine()
        signal = make_signal("sig_1", "unknown.question", "anything", (1,))

        assert engine.generate([signal]) == ()

    def test_disjoint_layers_produce_nothing(self):
        engine = ClaimEngine()
        signal = make_signal("sig_1", "rel.boundary_style", "clear", (1, 2))

        assert engine.generate([signal]) == ()

    def test_neutral_default_move(self):
        engine = ClaimEngine(clock=FixedClock())
        signal = make_signal("sig_1", "stress.default_move", "make a list", (6,))

        (claim,) = engine.generate([signal])
        assert claim.polarity == ClaimPolarity.NEUTRAL

    def test_boundary_style_polarity(self):
        engine = ClaimEngine(clock=FixedClock())
        clear = make_signal("sig_c", "rel.boundary_style", "clear", (10,))
        porous = make_signal("sig_p", "rel.boundary_style", "too porous", (10,))
        flexible = make_signal("sig_f", "rel.boundary_style", "depends", (10,))

        polarities = [c.polarity for c in engine.generate([clear, porous, flexible])]

        assert polarities == [
            ClaimPolarity.STRENGTH, ClaimPolarity.FRICTION, ClaimPolarity.NEUTRAL
        ]

    def test_list_raw_value(self):
        engine = ClaimEngine(clock=FixedClock())
        signal = make_signal("sig_1", "recovery.methods", ["solitude", "long walks"], (2,))

        (claim,) = engine.generate([signal])

        assert claim.text.startswith(
            "You restore energy most reliably through solitude and long walks."
        )
        assert claim.polarity == ClaimPolarity.STRENGTH

    def test_current_edge_text_is_clipped(self):
        engine = ClaimEngine(clock=FixedClock())
        signal = make_signal("sig_1", "edge.current_text", "x" * 150, (15,))

        (claim,) = engine.generate([signal])

        assert '"' + "x" * 100 + '..."' in claim.text


class TestTraitWildcard:

    def test_trait_rule_rederives_from_persisted_description(self):
        engine = ClaimEngine(clock=FixedClock())
        description = (
            "You stay steady under pressure and keep others grounded. "
            "This gives teams a reliable anchor in difficult moments. "
            "Short one."
        )
        signal = make_signal("trait_6", "TRAIT.L6.stress_response", description, (6,))

        (claim,) = engine.generate([signal])

        assert claim.layer_id == 6
        assert claim.confidence == ClaimConfidence.DEVELOPED
        assert claim.polarity == ClaimPolarity.STRENGTH
        assert claim.text == (
            "You stay steady under pressure and keep others grounded. "
            "This gives teams a reliable anchor in difficult moments."
        )

    def test_trait_rule_requires_prefix(self):
        engine = ClaimEngine()
        signal = make_signal("trait_x", "legacy.TRAIT.L6", "steady", (6,))

        assert engine.generate([signal]) == ()


class TestIdentityAndTime:

    def test_claim_ids_are_content_addressed(self):
        signal = make_signal("sig_1", "stress.default_move", "withdraw", (6,))

        first = ClaimEngine(clock=TickingClock()).generate([signal])
        second = ClaimEngine(clock=FixedClock(T2)).generate([signal])

        assert re.match(r"^CLM\.L6\.[0-9a-f]{8}$", first[0].claim_id)
        assert first[0].claim_id == second[0].claim_id

    def test_distinct_signals_get_distinct_ids(self):
        claims = ClaimEngine().generate(withdrawal_signals())

        assert len({c.claim_id for c in claims}) == 3

    def test_created_at_comes_from_clock(self):
        engine = ClaimEngine(clock=FixedClock(T2))
        (claim,) = engine.generate(withdrawal_signals()[:1])

        assert claim.created_at == T2

    def test_claims_are_frozen(self):
        (claim,) = ClaimEngine().generate(withdrawal_signals()[:1])

        with pytest.raises(FrozenInstanceError):
            claim.text = "edited"


class TestInjectedRules:

    def test_custom_rule_library(self):
        rule = ClaimGenerationRule(
            rule_id="RULE.TEST",
            matcher=r"^test\.",
            eligible_layer_ids=(3,),
            polarity_fn=lambda value: ClaimPolarity.NEUTRAL,
            template_fn=lambda value, layer: f"Layer {layer} says {value}",
            default_confidence=ClaimConfidence.INTEGRATED,
        )
        engine = ClaimEngine(rules=[rule], clock=FixedClock())
        matching = make_signal("sig_1", "test.question", "hello", (3,))
        default_only = make_signal("sig_2", "stress.default_move", "withdraw", (6,))

        claims = engine.generate([matching, default_only])

        assert len(claims) == 1
        assert claims[0].text == "Layer 3 says hello"
        assert claims[0].confidence == ClaimConfidence.INTEGRATED
        assert engine.rules == (rule,)


class TestHelpers:

    def test_filters_and_coverage(self):
        engine = ClaimEngine(clock=FixedClock())
        signals = withdrawal_signals() + (
            make_signal("sig_r", "recovery.methods", "solitude", (2,)),
        )
        claims = engine.generate(signals)

        assert len(engine.filter_by_layer(claims, 6)) == 3
        assert len(engine.filter_by_polarity(claims, ClaimPolarity.STRENGTH)) == 1
        assert engine.layer_coverage(claims) == {6: 3, 2: 1}

    def test_layer_definition(self):
        definition = ClaimEngine.layer_definition(6)

        assert definition.name == "Stress & Pressure Patterns"
        assert definition.cluster == "B"
        assert ClaimEngine.layer_definition(16) is None
