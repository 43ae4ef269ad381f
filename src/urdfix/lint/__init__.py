"""Lint rule engine and the built-in rule set."""

from .engine import elevate_warnings, has_issues, lint, run_rules
from .rules import DEFAULT_RULES, LintRule, RuleCheck

__all__ = [
    "DEFAULT_RULES",
    "LintRule",
    "RuleCheck",
    "elevate_warnings",
    "has_issues",
    "lint",
    "run_rules",
]
