"""
Guardrails - Hard-block exclude terms.

Turns a diet's guardrails ruleset into plain exclude terms for the
candidate pool sanitizer. Only hard ingredient blocks matched by text are
used: canonical_id rules match identifiers, not names, and soft rules only
warn.
"""

import logging
import uuid
from collections.abc import Iterable

from mealcoach.db.adapter import DatabaseAdapter
from mealcoach.errors import RulesetLoadError
from mealcoach.guardrails.ruleset_loader import (
    GuardrailsRepo,
    SupabaseGuardrailsRepo,
    load_guardrails_ruleset,
)
from mealcoach.guardrails.types import GuardRule, Locale

logger = logging.getLogger(__name__)

TEXT_MATCH_MODES = {None, "exact", "word_boundary", "substring"}


def _is_hard_ingredient_block(rule: GuardRule) -> bool:
    return (
        rule.action == "block"
        and rule.strictness == "hard"
        and rule.target == "ingredient"
        and rule.match.preferred_match_mode in TEXT_MATCH_MODES
    )


def extract_hard_block_terms(rules: Iterable[GuardRule]) -> list[str]:
    """
    Collect term + synonyms of hard ingredient block rules.

    Terms are trimmed; empties are dropped; duplicates keep their first
    position.
    """
    seen: dict[str, None] = {}
    for rule in rules:
        if not _is_hard_ingredient_block(rule):
            continue
        for value in [rule.match.term, *(rule.match.synonyms or [])]:
            term = (value or "").strip()
            if term:
                seen.setdefault(term, None)
    return list(seen)


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def resolve_diet_id(diet_key: str, client: DatabaseAdapter) -> str:
    """
    Map a diet key (e.g. "wahls_paleo_plus") to its diet_types id.

    UUIDs pass through. An unknown key is returned as-is so rules stored
    under the key itself still load.
    """
    if _is_uuid(diet_key):
        return diet_key

    try:
        result = (
            client.table("diet_types")
            .select("id")
            .eq("key", diet_key)
            .limit(1)
            .execute()
        )
    except Exception as e:
        raise RulesetLoadError(f"Could not resolve diet key {diet_key}: {e}") from e

    if result.data:
        return str(result.data[0]["id"])

    logger.debug(f"Diet key {diet_key} not found in diet_types, using key as id")
    return diet_key


async def load_hard_block_terms_for_diet(
    diet_key: str,
    locale: Locale = "nl",
    client: DatabaseAdapter | None = None,
    repo: GuardrailsRepo | None = None,
) -> list[str]:
    """
    Hard-block terms for a diet in meal_planner mode.

    Raises:
        RulesetLoadError: ruleset could not be loaded (no silent fallback)
    """
    if client is None:
        from mealcoach.db.client import get_service_client

        client = get_service_client()

    diet_id = resolve_diet_id(diet_key, client)
    ruleset = await load_guardrails_ruleset(
        diet_id,
        mode="meal_planner",
        locale=locale,
        repo=repo or SupabaseGuardrailsRepo(client),
    )
    terms = extract_hard_block_terms(ruleset.rules)
    logger.info(
        f"Hard-block terms for diet {diet_key}: {len(terms)} "
        f"(ruleset v{ruleset.version}, {ruleset.provenance.source})"
    )
    return terms
