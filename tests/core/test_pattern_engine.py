"""
Pattern Engine Tests
====================

Promotion thresholds, confidence aggregation and the stability
index of promoted patterns.
"""

import pytest

from inference.contracts.base import ClaimConfidence, PatternCategory, round_two_places
from inference.core import ClaimEngine, PatternEngine, aggregate_confidence, stability_index
from inference.rules import DEFAULT_PATTERN_LIBRARY, PatternDefinition

from tests.fixtures import (
    FixedClock, USER_A, make_claim, make_pattern, withdrawal_signals,
)


WITHDRAWAL = "PAT.IND.PRESSURE_WITHDRAWAL"


def withdrawal_definition() -> PatternDefinition:
    return PatternEngine().definition(WITHDRAWAL)


class TestPromotion:

    def test_withdrawal_scenario_promotes_with_stability(self):
        """3 moderate layer-6 claims: 0.225 + 0.1 + 0.2 sums to 0.52499..., so 0.52."""
        claims = ClaimEngine(clock=FixedClock()).generate(withdrawal_signals())

        patterns = PatternEngine(clock=FixedClock()).detect(claims, USER_A)

        assert [p.pattern_id for p in patterns] == [WITHDRAWAL]
        pattern = patterns[0]
        assert pattern.stability_index == 0.52
        assert pattern.confidence == ClaimConfidence.MODERATE
        assert pattern.layer_ids == (6,)
        assert pattern.supporting_claim_ids == tuple(c.claim_id for c in claims)
        assert pattern.category == PatternCategory.INDIVIDUAL
        assert pattern.user_id == USER_A
        assert pattern.growth_edges == withdrawal_definition().growth_edges

    def test_below_threshold_is_not_promoted(self):
        """min_supporting_claims = 2: one claim is not enough, two are."""
        engine = PatternEngine()
        one = (make_claim("c1", 6, "I withdraw"),)
        two = one + (make_claim("c2", 7, "I go quiet"),)

        assert engine.detect(one, USER_A) == ()
        assert [p.pattern_id for p in engine.detect(two, USER_A)] == [WITHDRAWAL]

    def test_keyword_match_is_case_insensitive(self):
        claims = (
            make_claim("c1", 6, "I WITHDRAW fast"),
            make_claim("c2", 6, "I Retreat inward"),
        )

        patterns = PatternEngine().detect(claims, USER_A)

        assert [p.pattern_id for p in patterns] == [WITHDRAWAL]

    def test_ineligible_layer_does_not_support(self):
        claims = (
            make_claim("c1", 6, "I withdraw"),
            make_claim("c2", 3, "I withdraw"),
        )

        assert PatternEngine().detect(claims, USER_A) == ()

    def test_claim_may_support_several_patterns(self):
        """No exclusivity: one layer-2 claim promotes both min-1 recharge patterns."""
        claims = (make_claim("c1", 2, "Quiet time alone and people to talk to"),)

        ids = [p.pattern_id for p in PatternEngine().detect(claims, USER_A)]

        assert ids == ["PAT.IND.SOLITUDE_RECHARGER", "PAT.IND.PEOPLE_ENERGIZER"]

    def test_no_claims_no_patterns(self):
        assert PatternEngine().detect((), USER_A) == ()


class TestStabilityIndex:

    def test_two_layers_full_count(self):
        """4 moderate claims on layers 6 and 7: 0.3 + 0.2 + 0.2 = 0.7."""
        claims = (
            make_claim("c1", 6, "withdraw"),
            make_claim("c2", 6, "withdraw again"),
            make_claim("c3", 7, "quiet"),
            make_claim("c4", 7, "distant"),
        )

        (pattern,) = PatternEngine().detect(claims, USER_A)

        assert pattern.stability_index == 0.7
        assert pattern.layer_ids == (6, 7)

    def test_full_spread_integrated(self):
        claims = (
            make_claim("c1", 6, "withdraw", ClaimConfidence.INTEGRATED),
            make_claim("c2", 7, "quiet", ClaimConfidence.INTEGRATED),
            make_claim("c3", 10, "distant", ClaimConfidence.INTEGRATED),
            make_claim("c4", 10, "retreat", ClaimConfidence.INTEGRATED),
        )

        (pattern,) = PatternEngine().detect(claims, USER_A)

        assert pattern.stability_index == 1.0
        assert pattern.confidence == ClaimConfidence.INTEGRATED

    def test_empty_support_is_zero(self):
        assert stability_index((), withdrawal_definition()) == 0.0

    def test_count_factor_is_capped(self):
        """Beyond 2k claims the count factor stays at 1."""
        definition = withdrawal_definition()
        four = tuple(make_claim(f"c{i}", 6, "withdraw") for i in range(4))
        ten = tuple(make_claim(f"c{i}", 6, "withdraw") for i in range(10))

        assert stability_index(four, definition) == stability_index(ten, definition)

    def test_withdrawal_sum_rounds_down(self):
        """The factor sum lands just below the .525 tie, so it rounds to .52."""
        claims = tuple(
            make_claim(f"c{i}", 6, "withdraw", ClaimConfidence.MODERATE) for i in range(3)
        )

        assert stability_index(claims, withdrawal_definition()) == 0.52

    @pytest.mark.parametrize("value,expected", [
        (0.5249999999999999, 0.52),
        (0.525, 0.53),
        (0.0, 0.0),
        (1.0, 1.0),
    ])
    def test_round_two_places(self, value, expected):
        assert round_two_places(value) == expected


class TestConfidenceAggregation:

    @pytest.mark.parametrize("confidences, expected", [
        ((ClaimConfidence.EMERGING,), ClaimConfidence.EMERGING),
        ((ClaimConfidence.EMERGING, ClaimConfidence.MODERATE), ClaimConfidence.MODERATE),
        ((ClaimConfidence.MODERATE, ClaimConfidence.DEVELOPED), ClaimConfidence.DEVELOPED),
        ((ClaimConfidence.DEVELOPED, ClaimConfidence.INTEGRATED), ClaimConfidence.INTEGRATED),
        ((ClaimConfidence.EMERGING, ClaimConfidence.EMERGING, ClaimConfidence.MODERATE),
         ClaimConfidence.EMERGING),
    ])
    def test_mean_ordinal_is_rebucketed(self, confidences, expected):
        claims = [make_claim(f"c{i}", 6, "x", c) for i, c in enumerate(confidences)]

        assert aggregate_confidence(claims) == expected


class TestLibraryAccess:

    def test_default_library_is_used(self):
        engine = PatternEngine()

        assert engine.definitions() == DEFAULT_PATTERN_LIBRARY
        assert len(engine.definitions()) == 14
        assert engine.definition("PAT.IND.MISSING") is None

    def test_withdrawal_definition_values(self):
        definition = withdrawal_definition()

        assert definition.eligible_layers == (6, 7, 10)
        assert definition.min_supporting_claims == 2
        assert {"withdraw", "quiet", "distant"} <= set(definition.claim_keywords)

    def test_custom_library(self):
        definition = PatternDefinition(
            pattern_id="PAT.TEAM.TEST",
            category=PatternCategory.TEAM,
            name="Test",
            one_liner="Test pattern",
            eligible_layers=(1,),
            claim_keywords=("alpha",),
            min_supporting_claims=1,
            growth_edges=(),
        )
        engine = PatternEngine(library=[definition])

        (pattern,) = engine.detect((make_claim("c1", 1, "Alpha signal"),), USER_A)

        assert pattern.pattern_id == "PAT.TEAM.TEST"
        assert pattern.category == PatternCategory.TEAM

    def test_definition_validation(self):
        with pytest.raises(ValueError):
            PatternDefinition("P", PatternCategory.INDIVIDUAL, "n", "o", (1,), ("k",), 0, ())
        with pytest.raises(ValueError):
            PatternDefinition("P", PatternCategory.INDIVIDUAL, "n", "o", (), ("k",), 1, ())


class TestHelpers:

    def test_group_by_category(self):
        patterns = (
            make_pattern("PAT.IND.A", 0.5),
            make_pattern("PAT.REL.B", 0.5, category=PatternCategory.RELATIONAL),
        )

        grouped = PatternEngine.group_by_category(patterns)

        assert [p.pattern_id for p in grouped[PatternCategory.INDIVIDUAL]] == ["PAT.IND.A"]
        assert [p.pattern_id for p in grouped[PatternCategory.RELATIONAL]] == ["PAT.REL.B"]
        assert grouped[PatternCategory.TEAM] == ()

    def test_most_stable_keeps_input_order_on_ties(self):
        patterns = (
            make_pattern("PAT.IND.A", 0.4),
            make_pattern("PAT.IND.B", 0.9),
            make_pattern("PAT.IND.C", 0.4),
        )

        ranked = PatternEngine.most_stable(patterns, limit=2)

        assert [p.pattern_id for p in ranked] == ["PAT.IND.B", "PAT.IND.A"]
