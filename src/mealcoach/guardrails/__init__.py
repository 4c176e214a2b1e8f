"""
MealCoach - Diet guardrails.

Rulesets per diet and the hard-block terms derived from them.
"""

from mealcoach.guardrails.exclude_terms import (
    extract_hard_block_terms,
    load_hard_block_terms_for_diet,
)
from mealcoach.guardrails.ruleset_loader import (
    GuardrailsRepo,
    SupabaseGuardrailsRepo,
    load_guardrails_ruleset,
)
from mealcoach.guardrails.types import GuardRule, GuardrailsRuleset, RuleMatch

__all__ = [
    "GuardRule",
    "GuardrailsRepo",
    "GuardrailsRuleset",
    "RuleMatch",
    "SupabaseGuardrailsRepo",
    "extract_hard_block_terms",
    "load_guardrails_ruleset",
    "load_hard_block_terms_for_diet",
]
