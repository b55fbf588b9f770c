"""Edge-case rule catalog for spells, features and combat maneuvers.

Submodules:
    tables: Rule data per category
    catalog: EdgeCaseRule shapes, lookup, dispatch and ruleset detection
"""

from __future__ import annotations

from sheet_engine.rules.catalog import (
    DEFAULT_TABLES,
    EdgeCaseRule,
    ReusableRule,
    RuleApplication,
    RuleCatalog,
    TooComplicatedRule,
    apply_rule,
    detect_ruleset,
    get_rule_catalog,
    normalize_rule_name,
)


__all__ = [
    "DEFAULT_TABLES",
    "EdgeCaseRule",
    "ReusableRule",
    "RuleApplication",
    "RuleCatalog",
    "TooComplicatedRule",
    "apply_rule",
    "detect_ruleset",
    "get_rule_catalog",
    "normalize_rule_name",
]
