"""
Rule Libraries

Static configuration data for the three engines. Loaded once at import
and passed explicitly to engine constructors, so a caller can swap in
its own libraries without touching process-wide state.
"""

from .claim_rules import ClaimGenerationRule, DEFAULT_CLAIM_RULES
from .pattern_library import PatternDefinition, DEFAULT_PATTERN_LIBRARY
from .theme_library import ThemeDefinition, DEFAULT_THEME_LIBRARY

__all__ = [
    "ClaimGenerationRule",
    "DEFAULT_CLAIM_RULES",
    "PatternDefinition",
    "DEFAULT_PATTERN_LIBRARY",
    "ThemeDefinition",
    "DEFAULT_THEME_LIBRARY",
]
