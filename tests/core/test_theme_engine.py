"""
Theme Engine Tests
==================

Theme promotion from patterns, priority buckets and output ordering.
"""

from decimal import Decimal

import pytest

from inference.contracts.base import PatternCategory, ThemePriority
from inference.core import ThemeEngine, priority_score
from inference.rules import DEFAULT_THEME_LIBRARY, ThemeDefinition

from tests.fixtures import FixedClock, T2, USER_A, make_pattern


EXPRESSION = "THM.EXPRESSION_VS_PROTECTION"
ACHIEVEMENT = "THM.ACHIEVEMENT_VS_BALANCE"
CONNECTION = "THM.CONNECTION_VS_AUTONOMY"


class TestPromotion:

    def test_single_pattern_does_not_promote_min_two_theme(self):
        patterns = (make_pattern("PAT.IND.PRESSURE_WITHDRAWAL", 0.53),)

        assert ThemeEngine().detect(patterns, USER_A) == ()

    def test_two_supporting_patterns_promote(self):
        patterns = (
            make_pattern("PAT.IND.PRESSURE_WITHDRAWAL", 0.53, layer_ids=(6,)),
            make_pattern("PAT.IND.BOUNDARY_POROSITY", 0.7, layer_ids=(10,)),
        )

        (theme,) = ThemeEngine(clock=FixedClock(T2)).detect(patterns, USER_A)

        assert theme.theme_id == EXPRESSION
        assert theme.name == "Expression ↔ Protection"
        assert theme.supporting_pattern_ids == (
            "PAT.IND.PRESSURE_WITHDRAWAL", "PAT.IND.BOUNDARY_POROSITY"
        )
        assert theme.layer_ids == (6, 10)
        assert theme.created_at == T2
        assert theme.user_id == USER_A
        # 0.4 * 0.5 + 0.6 * 0.615 = 0.569
        assert theme.priority == ThemePriority.MEDIUM

    def test_ineligible_category_does_not_support(self):
        patterns = (
            make_pattern("PAT.IND.PRESSURE_WITHDRAWAL", 0.9),
            make_pattern("PAT.IND.BOUNDARY_POROSITY", 0.9,
                         category=PatternCategory.RELATIONAL),
        )

        assert ThemeEngine().detect(patterns, USER_A) == ()

    def test_unlisted_pattern_does_not_support(self):
        patterns = (
            make_pattern("PAT.IND.PRESSURE_WITHDRAWAL", 0.9),
            make_pattern("PAT.IND.DRIVE_MAXIMIZER", 0.9),
        )

        themes = ThemeEngine().detect(patterns, USER_A)

        assert [t.theme_id for t in themes] == [ACHIEVEMENT]


class TestPriority:

    def test_output_sorted_high_medium_low(self):
        patterns = (
            make_pattern("PAT.IND.SOLITUDE_RECHARGER", 0.2),
            make_pattern("PAT.IND.BOUNDARY_CLARITY", 0.2),
            make_pattern("PAT.IND.PRESSURE_WITHDRAWAL", 0.53),
            make_pattern("PAT.IND.BOUNDARY_POROSITY", 0.7),
            make_pattern("PAT.IND.DRIVE_MAXIMIZER", 0.9),
            make_pattern("PAT.IND.PRESSURE_CONTROLLER", 0.8),
        )

        themes = ThemeEngine().detect(patterns, USER_A)

        assert [(t.theme_id, t.priority) for t in themes] == [
            (ACHIEVEMENT, ThemePriority.HIGH),     # 0.4 + 0.51 = 0.91
            (EXPRESSION, ThemePriority.MEDIUM),    # 0.2 + 0.369 = 0.569
            (CONNECTION, ThemePriority.LOW),       # 0.2 + 0.12 = 0.32
        ]

    def test_high_threshold_is_inclusive(self):
        """Three patterns at 0.5: 0.4 * 0.75 + 0.6 * 0.5 = 0.6 exactly."""
        patterns = (
            make_pattern("PAT.IND.PRESSURE_WITHDRAWAL", 0.5),
            make_pattern("PAT.IND.BOUNDARY_POROSITY", 0.5),
            make_pattern("PAT.IND.RESPONDER_STANCE", 0.5),
        )
        definition = ThemeEngine().definition(EXPRESSION)

        assert priority_score(patterns, definition) == Decimal("0.6")
        (theme,) = ThemeEngine().detect(patterns, USER_A)
        assert theme.priority == ThemePriority.HIGH

    def test_medium_threshold_is_inclusive(self):
        """Count factor saturated, zero stability: exactly 0.4."""
        patterns = (
            make_pattern("PAT.IND.DRIVE_MAXIMIZER", 0.0),
            make_pattern("PAT.IND.PRESSURE_CONTROLLER", 0.0),
        )

        (theme,) = ThemeEngine().detect(patterns, USER_A)

        assert theme.theme_id == ACHIEVEMENT
        assert theme.priority == ThemePriority.MEDIUM

    @pytest.mark.parametrize("stability, expected", [
        (0.33, ThemePriority.LOW),      # 0.2 + 0.198
        (0.34, ThemePriority.MEDIUM),   # 0.2 + 0.204
        (0.66, ThemePriority.MEDIUM),   # 0.2 + 0.396
        (0.67, ThemePriority.HIGH),     # 0.2 + 0.402
    ])
    def test_single_pattern_buckets(self, stability, expected):
        patterns = (make_pattern("PAT.IND.DRIVE_MAXIMIZER", stability),)

        (theme,) = ThemeEngine().detect(patterns, USER_A)

        assert theme.priority == expected


class TestLibraryAccess:

    def test_default_library(self):
        engine = ThemeEngine()

        assert engine.definitions() == DEFAULT_THEME_LIBRARY
        assert len(engine.definitions()) == 6
        assert engine.definition("THM.MISSING") is None

    def test_primary_themes(self):
        patterns = (
            make_pattern("PAT.IND.DRIVE_MAXIMIZER", 0.9),
            make_pattern("PAT.IND.PRESSURE_WITHDRAWAL", 0.53),
            make_pattern("PAT.IND.BOUNDARY_POROSITY", 0.7),
        )
        themes = ThemeEngine().detect(patterns, USER_A)

        primary = ThemeEngine.primary_themes(themes)

        assert [t.theme_id for t in primary] == [ACHIEVEMENT]

    def test_definition_validation(self):
        with pytest.raises(ValueError):
            ThemeDefinition("THM.X", "X", "x", ("PAT.IND.A",), 0)
