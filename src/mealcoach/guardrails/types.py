"""
Guardrails - Type definitions.

A ruleset is the set of allow/block rules for one diet. Rules are loaded
read-only from the database per diet, evaluation mode and locale.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

# "block" has priority over "allow"
RuleAction = Literal["allow", "block"]

# "hard" blocks output (fail closed), "soft" only warns
Strictness = Literal["hard", "soft"]

MatchTarget = Literal["ingredient", "step", "metadata"]

# canonical_id matches identifiers (NEVO code), not free text
MatchMode = Literal["exact", "word_boundary", "substring", "canonical_id"]

EvaluationMode = Literal["recipe_adaptation", "meal_planner", "plan_chat"]

Locale = Literal["nl", "en"]

GuardReasonCode = Literal[
    "FORBIDDEN_INGREDIENT",
    "ALLERGEN_PRESENT",
    "DISLIKED_INGREDIENT",
    "MISSING_REQUIRED_CATEGORY",
    "INVALID_CATEGORY",
    "INVALID_NEVO_CODE",
    "INVALID_CANONICAL_ID",
    "CALORIE_TARGET_MISS",
    "MACRO_TARGET_MISS",
    "MEAL_PREFERENCE_MISS",
    "MEAL_STRUCTURE_VIOLATION",
    "SOFT_CONSTRAINT_VIOLATION",
    "UNKNOWN_ERROR",
]


class RuleMatch(BaseModel):
    """
    Matching criteria. Terms are lowercase.

    Modes outside MatchMode come straight from the database and are kept;
    consumers skip modes they do not implement.
    """

    term: str
    synonyms: list[str] | None = None
    canonical_id: str | None = None
    preferred_match_mode: MatchMode | str | None = None


class RuleMetadata(BaseModel):
    rule_code: str
    label: str
    category: str | None = None
    specificity: Literal["user", "diet", "global"] | None = None
    is_non_enforcing_allow: bool = False


class RemediationHint(BaseModel):
    """Suggestion for resolving a violation (substitute, remove, ...)."""

    type: Literal["substitute", "remove", "add_required", "reduce"]
    payload: dict[str, Any]
    prompt_text: str


class GuardRule(BaseModel):
    """
    Individual guardrail rule. id is stable across loads.

    action, strictness and target accept unknown database values; only the
    known values are enforced by consumers.
    """

    id: str
    action: RuleAction | str
    strictness: Strictness | str
    priority: int = 50
    target: MatchTarget | str
    match: RuleMatch
    metadata: RuleMetadata
    remediation: list[RemediationHint] | None = None


class ProvenanceSource(BaseModel):
    kind: Literal["db", "overlay", "fallback"]
    ref: str
    loaded_at: str
    details: dict[str, Any] = Field(default_factory=dict)


class Provenance(BaseModel):
    source: Literal["database", "fallback"]
    loaded_at: str
    sources: list[ProvenanceSource] = Field(default_factory=list)
    errors: list[str] | None = None
    reason: str | None = None


class GuardrailsRuleset(BaseModel):
    diet_id: str
    version: int
    rules: list[GuardRule]
    heuristics: dict[str, list[str]] | None = None
    provenance: Provenance
    content_hash: str
