"""
Guardrails - Ruleset Loader.

Loads a GuardrailsRuleset for one diet from three database sources:
1. diet_category_constraints (+ category items) -> one rule per active item
2. recipe_adaptation_rules -> block rules with an explicit match mode
3. recipe_adaptation_heuristics -> heuristic term lists (added sugar)

Repository reads return Result values. A read that fails is recorded in the
provenance; when BOTH rule sources fail the load raises RulesetLoadError so
meal planning fails closed. A diet with no rules at all gets the hardcoded
fallback ruleset.
"""

import hashlib
import json
import logging
from datetime import UTC, datetime
from typing import Any, Protocol

from pydantic import ValidationError

from mealcoach.db.adapter import DatabaseAdapter
from mealcoach.errors import RulesetLoadError
from mealcoach.guardrails.types import (
    EvaluationMode,
    GuardRule,
    GuardrailsRuleset,
    Locale,
    Provenance,
    ProvenanceSource,
    RemediationHint,
    RuleMatch,
    RuleMetadata,
)
from mealcoach.result import Err, Ok, Result

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 50

VALID_REASON_CODES = {
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
}


# =============================================================================
# Repository
# =============================================================================


class GuardrailsRepo(Protocol):
    """Database access for rulesets (mockable in tests)."""

    async def load_constraints(self, diet_id: str) -> Result[list[dict]]:
        ...

    async def load_recipe_adaptation_rules(self, diet_id: str) -> Result[list[dict]]:
        ...

    async def load_heuristics(self, diet_id: str) -> Result[list[dict]]:
        ...


class SupabaseGuardrailsRepo:
    """GuardrailsRepo backed by Supabase tables."""

    def __init__(self, client: DatabaseAdapter | None = None):
        if client is None:
            from mealcoach.db.client import get_service_client

            client = get_service_client()
        self._client = client

    def _fetch(self, source: str, build) -> Result[list[dict]]:
        try:
            response = build().execute()
        except Exception as e:
            logger.error(f"Loading {source} failed: {e}")
            return Err(error=f"{source}: {e}", code="DB_ERROR")
        return Ok(response.data or [])

    async def load_constraints(self, diet_id: str) -> Result[list[dict]]:
        # Inactive rows are loaded too; status filtering happens in the mapper
        return self._fetch(
            "diet_category_constraints",
            lambda: self._client.table("diet_category_constraints")
            .select(
                "*, category:ingredient_categories(id, code, name_nl, category_type, "
                "items:ingredient_category_items(term, term_nl, synonyms, is_active))"
            )
            .eq("diet_type_id", diet_id)
            .order("rule_priority")
            .order("priority"),
        )

    async def load_recipe_adaptation_rules(self, diet_id: str) -> Result[list[dict]]:
        return self._fetch(
            "recipe_adaptation_rules",
            lambda: self._client.table("recipe_adaptation_rules")
            .select("*")
            .eq("diet_type_id", diet_id)
            .order("priority", desc=True),
        )

    async def load_heuristics(self, diet_id: str) -> Result[list[dict]]:
        return self._fetch(
            "recipe_adaptation_heuristics",
            lambda: self._client.table("recipe_adaptation_heuristics")
            .select("*")
            .eq("diet_type_id", diet_id)
            .eq("is_active", True),
        )


# =============================================================================
# Row mapping
# =============================================================================


def _lower_all(values: list[str] | None) -> list[str] | None:
    lowered = [v.lower() for v in values or [] if isinstance(v, str)]
    return lowered or None


def map_constraint_item_to_rule(constraint: dict, item_index: int) -> GuardRule:
    """One category item of a diet constraint -> one ingredient rule."""
    category = constraint["category"]
    item = category["items"][item_index]
    category_type = category.get("category_type")
    action = constraint.get("rule_action") or ("block" if category_type == "forbidden" else "allow")
    strictness = constraint.get("strictness") or "hard"

    if category_type == "required":
        rule_code = "MISSING_REQUIRED_CATEGORY"
    elif strictness == "hard":
        rule_code = "FORBIDDEN_INGREDIENT"
    else:
        rule_code = "SOFT_CONSTRAINT_VIOLATION"

    name = category.get("name_nl") or category.get("code", "")
    if action == "allow":
        label = f"{name} (Toegestaan)"
    else:
        label = f"{name} ({'Strikt verboden' if strictness == 'hard' else 'Niet gewenst'})"

    return GuardRule(
        id=f"db:diet_category_constraints:{constraint['id']}:{item_index}",
        action=action,
        strictness=strictness,
        priority=constraint.get("rule_priority") or DEFAULT_PRIORITY,
        target="ingredient",
        match=RuleMatch(
            term=item["term"].lower(),
            synonyms=_lower_all(item.get("synonyms")),
        ),
        metadata=RuleMetadata(
            rule_code=rule_code,
            label=label,
            category=category.get("code"),
            specificity="diet",
            is_non_enforcing_allow=action == "allow",
        ),
    )


def map_recipe_adaptation_rule(row: dict) -> GuardRule:
    """Recipe adaptation rows are always block rules."""
    term = row["term"].lower()
    rule_code = row.get("rule_code") if row.get("rule_code") in VALID_REASON_CODES else "UNKNOWN_ERROR"
    suggestions = row.get("substitution_suggestions") or []

    remediation = None
    if suggestions:
        remediation = [
            RemediationHint(
                type="substitute",
                payload={"original": term, "alternatives": suggestions},
                prompt_text=f"Replace '{term}' with {' or '.join(suggestions)}",
            )
        ]

    return GuardRule(
        id=f"db:recipe_adaptation_rules:{row['id']}",
        action="block",
        strictness="soft" if "SOFT" in rule_code else "hard",
        priority=row.get("priority") or DEFAULT_PRIORITY,
        target=row.get("target") or "ingredient",
        match=RuleMatch(
            term=term,
            synonyms=_lower_all(row.get("synonyms")),
            preferred_match_mode=row.get("match_mode") or "word_boundary",
        ),
        metadata=RuleMetadata(
            rule_code=rule_code,
            label=row.get("rule_label") or term,
            specificity="diet",
        ),
        remediation=remediation,
    )


def hash_content(payload: Any) -> str:
    """Stable sha256 over canonical JSON."""
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()


def _policy_hash(diet_id: str, rules: list[GuardRule], heuristics: dict | None) -> str:
    return hash_content(
        {
            "dietId": diet_id,
            "rules": [r.model_dump(mode="json") for r in rules],
            "heuristics": heuristics,
        }
    )


def get_fallback_ruleset(diet_id: str, now: str | None = None) -> GuardrailsRuleset:
    """Hardcoded basic rules for diets without any database rules."""
    now = now or datetime.now(UTC).isoformat()
    rules = [
        GuardRule(
            id="fallback:melk",
            action="block",
            strictness="hard",
            target="ingredient",
            match=RuleMatch(term="melk", synonyms=["koemelk", "volle melk"]),
            metadata=RuleMetadata(
                rule_code="FORBIDDEN_INGREDIENT",
                label="Lactose-intolerantie",
                specificity="global",
            ),
        ),
        GuardRule(
            id="fallback:pasta",
            action="block",
            strictness="hard",
            target="ingredient",
            match=RuleMatch(
                term="pasta",
                synonyms=["spaghetti", "penne", "fusilli", "macaroni", "orzo"],
            ),
            metadata=RuleMetadata(
                rule_code="FORBIDDEN_INGREDIENT",
                label="Glutenvrij dieet",
                specificity="global",
            ),
            remediation=[
                RemediationHint(
                    type="substitute",
                    payload={"original": "pasta", "alternatives": ["rijstnoedels", "zucchininoedels"]},
                    prompt_text="Replace 'pasta' with rijstnoedels or zucchininoedels",
                )
            ],
        ),
    ]
    heuristics = {"addedSugarTerms": ["suiker", "siroop", "stroop"]}
    return GuardrailsRuleset(
        diet_id=diet_id,
        version=1,
        rules=rules,
        heuristics=heuristics,
        provenance=Provenance(
            source="fallback",
            loaded_at=now,
            reason="No database rules found, using hardcoded fallback",
        ),
        content_hash=_policy_hash(diet_id, rules, heuristics),
    )


# =============================================================================
# Loader
# =============================================================================


def _is_active(row: dict) -> bool:
    return row.get("is_active", True) is not False


# Malformed rows (missing or null term, bad priority) are skipped, not fatal
_ROW_ERRORS = (KeyError, TypeError, AttributeError, ValidationError)


async def load_guardrails_ruleset(
    diet_id: str,
    mode: EvaluationMode,
    locale: Locale = "nl",
    repo: GuardrailsRepo | None = None,
    now: str | None = None,
) -> GuardrailsRuleset:
    """
    Load the ruleset for a diet.

    Mode and locale are accepted for the provider contract; the current
    sources are not mode- or locale-specific.

    Raises:
        RulesetLoadError: when both rule sources failed to load
    """
    repo = repo or SupabaseGuardrailsRepo()
    now = now or datetime.now(UTC).isoformat()
    logger.debug(f"Loading guardrails ruleset diet={diet_id} mode={mode} locale={locale}")

    rules_by_id: dict[str, GuardRule] = {}
    sources: list[ProvenanceSource] = []
    errors: list[str] = []
    updated_ats: list[str] = []

    # 1. Category constraints
    constraints_result = await repo.load_constraints(diet_id)
    constraints = constraints_result.data if isinstance(constraints_result, Ok) else []
    if isinstance(constraints_result, Err):
        errors.append(constraints_result.error)

    constraint_rule_count = 0
    for constraint in constraints:
        category = constraint.get("category")
        if not category or not category.get("items"):
            continue
        # Paused constraints are neither enforced nor warned about
        if constraint.get("is_paused") is True or not _is_active(constraint):
            continue
        for index, item in enumerate(category["items"]):
            if not _is_active(item):
                continue
            try:
                rule = map_constraint_item_to_rule(constraint, index)
            except _ROW_ERRORS as e:
                logger.warning(f"Skipping malformed constraint item {constraint.get('id')}:{index}: {e}")
                continue
            rules_by_id[rule.id] = rule
            constraint_rule_count += 1
        if constraint.get("updated_at"):
            updated_ats.append(constraint["updated_at"])

    if constraints:
        sources.append(
            ProvenanceSource(
                kind="db",
                ref="diet_category_constraints",
                loaded_at=now,
                details={
                    "constraintCount": len(constraints),
                    "activeConstraintCount": sum(1 for c in constraints if _is_active(c)),
                    "ruleCount": constraint_rule_count,
                },
            )
        )

    # 2. Recipe adaptation rules (same id -> later source wins)
    rules_result = await repo.load_recipe_adaptation_rules(diet_id)
    adaptation_rows = rules_result.data if isinstance(rules_result, Ok) else []
    if isinstance(rules_result, Err):
        errors.append(rules_result.error)

    active_rows = [row for row in adaptation_rows if _is_active(row)]
    for row in active_rows:
        try:
            rule = map_recipe_adaptation_rule(row)
        except _ROW_ERRORS as e:
            logger.warning(f"Skipping malformed recipe adaptation rule {row.get('id')}: {e}")
            continue
        rules_by_id[rule.id] = rule
    updated_ats.extend(row["updated_at"] for row in adaptation_rows if row.get("updated_at"))

    if adaptation_rows:
        sources.append(
            ProvenanceSource(
                kind="db",
                ref="recipe_adaptation_rules",
                loaded_at=now,
                details={"ruleCount": len(active_rows), "activeRuleCount": len(active_rows)},
            )
        )

    if isinstance(constraints_result, Err) and isinstance(rules_result, Err):
        raise RulesetLoadError(
            f"Guardrails ruleset for diet {diet_id} could not be loaded: {'; '.join(errors)}"
        )

    # 3. Heuristics
    heuristics_result = await repo.load_heuristics(diet_id)
    heuristic_rows = heuristics_result.data if isinstance(heuristics_result, Ok) else []
    if isinstance(heuristics_result, Err):
        errors.append(heuristics_result.error)

    added_sugar = next((h for h in heuristic_rows if h.get("heuristic_type") == "added_sugar"), None)
    added_sugar_terms = list((added_sugar or {}).get("terms") or [])
    heuristics = {"addedSugarTerms": added_sugar_terms} if added_sugar_terms else None
    updated_ats.extend(h["updated_at"] for h in heuristic_rows if h.get("updated_at"))

    if not rules_by_id:
        logger.info(f"No guardrails rules for diet {diet_id}, using fallback ruleset")
        return get_fallback_ruleset(diet_id, now)

    rules = sorted(rules_by_id.values(), key=lambda r: r.id)

    version = 1
    if updated_ats:
        version = int(hash_content(",".join(sorted(updated_ats)))[:8], 16) or 1

    return GuardrailsRuleset(
        diet_id=diet_id,
        version=version,
        rules=rules,
        heuristics=heuristics,
        provenance=Provenance(
            source="database",
            loaded_at=now,
            sources=sources,
            errors=errors or None,
        ),
        content_hash=_policy_hash(diet_id, rules, heuristics),
    )
