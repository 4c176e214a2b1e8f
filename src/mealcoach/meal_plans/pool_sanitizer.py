"""
MealCoach - Candidate Pool Sanitization.

Dedupe, exclude-term filtering and before/after metrics for the candidate
pool handed to the plan generator. Pure functions over the input pool: a
new pool is returned and the caller's lists are never modified.

Order per category: dedupe -> user exclude terms -> extra (guardrails) terms.
"""

import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from mealcoach.meal_plans.models import CandidatePool, IngredientCandidate
from mealcoach.tools.normalize import normalize_name

logger = logging.getLogger(__name__)

METRIC_CATEGORIES = ("proteins", "vegetables", "fruits", "fats")

C = TypeVar("C")


# =============================================================================
# Results and metrics
# =============================================================================


@dataclass
class FilterResult:
    """Kept candidates plus how many were dropped."""

    kept: list[IngredientCandidate]
    removed_count: int


@dataclass
class PoolCategoryCounts:
    proteins: int = 0
    vegetables: int = 0
    fruits: int = 0
    fats: int = 0

    @classmethod
    def of(cls, pool: CandidatePool) -> "PoolCategoryCounts":
        return cls(**{cat: len(pool.get(cat) or []) for cat in METRIC_CATEGORIES})

    def to_dict(self) -> dict[str, int]:
        return {cat: getattr(self, cat) for cat in METRIC_CATEGORIES}


@dataclass
class PoolSanitizationMetrics:
    """
    Observability for metadata.generator.poolMetrics.

    removed_by_exclude_terms counts user AND guardrails removals in the four
    metric categories. removed_by_guardrails_terms counts guardrails removals
    across all categories and is None unless extra terms removed something.
    """

    before: PoolCategoryCounts
    after: PoolCategoryCounts
    removed_duplicates: int = 0
    removed_by_exclude_terms: int = 0
    removed_by_guardrails_terms: int | None = None

    def to_dict(self) -> dict:
        out = {
            "before": self.before.to_dict(),
            "after": self.after.to_dict(),
            "removedDuplicates": self.removed_duplicates,
            "removedByExcludeTerms": self.removed_by_exclude_terms,
        }
        if self.removed_by_guardrails_terms is not None:
            out["removedByGuardrailsTerms"] = self.removed_by_guardrails_terms
        return out


@dataclass
class SanitizedPool:
    pool: CandidatePool
    metrics: PoolSanitizationMetrics


# =============================================================================
# Building blocks
# =============================================================================


def _dedupe_key(candidate: IngredientCandidate) -> str:
    # Blank codes fall back to the name; other codes are keyed as stored
    if candidate.nevo_code and candidate.nevo_code.strip():
        return candidate.nevo_code
    return normalize_name(candidate.name) or "unknown"


def dedupe_by_nevo_or_name(candidates: Sequence[IngredientCandidate]) -> FilterResult:
    """
    Unique by nevo_code; falls back to normalized name, then "unknown".

    First occurrence wins and order is preserved. Idempotent.
    """
    seen: set[str] = set()
    kept: list[IngredientCandidate] = []
    for candidate in candidates:
        key = _dedupe_key(candidate)
        if key in seen:
            continue
        seen.add(key)
        kept.append(candidate)
    return FilterResult(kept=kept, removed_count=len(candidates) - len(kept))


def _normalized_terms(terms: Iterable[str] | None) -> list[str]:
    if not terms:
        return []
    return [t for t in (normalize_name(term) for term in terms) if t]


def filter_by_exclude_terms(
    candidates: list[IngredientCandidate],
    terms: Sequence[str] | None,
) -> FilterResult:
    """
    Drop candidates whose normalized name contains any normalized term.

    Empty/None terms -> the same list object back, nothing removed.
    """
    normalized_terms = _normalized_terms(terms)
    if not normalized_terms:
        return FilterResult(kept=candidates, removed_count=0)

    kept = [
        c for c in candidates
        if not any(term in normalize_name(c.name) for term in normalized_terms)
    ]
    return FilterResult(kept=kept, removed_count=len(candidates) - len(kept))


# =============================================================================
# Pool sanitation
# =============================================================================


def sanitize_candidate_pool(
    pool: CandidatePool,
    exclude_terms: Sequence[str] = (),
    extra_exclude_terms: Sequence[str] | None = None,
) -> SanitizedPool:
    """
    Sanitize every category: dedupe, then exclude terms, then extra terms.

    Args:
        pool: Category -> candidates (not modified)
        exclude_terms: User allergies, dislikes and excluded ingredients
        extra_exclude_terms: Additional terms (guardrails hard blocks); their
            removals are reported separately

    Returns:
        SanitizedPool with a new pool mapping and metrics for the four
        metric categories.
    """
    before = PoolCategoryCounts.of(pool)
    use_extra = bool(extra_exclude_terms)
    removed_duplicates = 0
    removed_by_exclude = 0
    removed_by_guardrails = 0
    sanitized: CandidatePool = {}

    for category, candidates in pool.items():
        deduped = dedupe_by_nevo_or_name(candidates or [])
        after_user = filter_by_exclude_terms(deduped.kept, exclude_terms)
        after_extra = (
            filter_by_exclude_terms(after_user.kept, extra_exclude_terms)
            if use_extra
            else FilterResult(kept=after_user.kept, removed_count=0)
        )

        if category in METRIC_CATEGORIES:
            removed_duplicates += deduped.removed_count
            removed_by_exclude += after_user.removed_count + after_extra.removed_count
        removed_by_guardrails += after_extra.removed_count
        sanitized[category] = list(after_extra.kept)

    for category in METRIC_CATEGORIES:
        sanitized.setdefault(category, [])

    metrics = PoolSanitizationMetrics(
        before=before,
        after=PoolCategoryCounts.of(sanitized),
        removed_duplicates=removed_duplicates,
        removed_by_exclude_terms=removed_by_exclude,
    )
    if use_extra and removed_by_guardrails > 0:
        metrics.removed_by_guardrails_terms = removed_by_guardrails

    return SanitizedPool(pool=sanitized, metrics=metrics)


HardBlockTermsLoader = Callable[[str, str], Awaitable[list[str]]]


async def prepare_candidate_pool(
    pool: CandidatePool,
    exclude_terms: Sequence[str] = (),
    *,
    diet_key: str | None = None,
    locale: str = "nl",
    enforce_guardrails: bool | None = None,
    load_terms: HardBlockTermsLoader | None = None,
) -> SanitizedPool:
    """
    Sanitize a freshly built pool, pulling guardrails terms when enforced.

    Guardrails load failures propagate: plan generation fails closed rather
    than generating with blocked ingredients in the pool.
    """
    if enforce_guardrails is None:
        from mealcoach.config import settings

        enforce_guardrails = settings.enforce_guardrails_meal_planner

    guardrails_terms: list[str] = []
    if enforce_guardrails and diet_key:
        if load_terms is None:
            from mealcoach.guardrails.exclude_terms import load_hard_block_terms_for_diet

            load_terms = load_hard_block_terms_for_diet
        guardrails_terms = await load_terms(diet_key, locale)
        logger.info(f"Guardrails hard-block terms for {diet_key}: {len(guardrails_terms)}")

    result = sanitize_candidate_pool(
        pool,
        exclude_terms,
        extra_exclude_terms=guardrails_terms or None,
    )
    logger.info(f"Pool sanitized: {result.metrics.to_dict()}")
    return result


# =============================================================================
# Generator template pools
# =============================================================================


def filter_template_pools_by_exclude_terms(
    pools: dict[str, list[C]],
    exclude_terms: Sequence[str] | None,
    name_of: Callable[[C], str] = lambda item: item["name"],
) -> dict[str, list[C]]:
    """
    Apply exclude terms to the generator's protein/veg/fat/flavor pools.

    DB pool items bypass the candidate pool, so an allergy term must be
    applied here too. Items only need a name (see name_of).
    """
    normalized_terms = _normalized_terms(exclude_terms)
    if not normalized_terms:
        return pools

    def keep(item: C) -> bool:
        name = normalize_name(name_of(item))
        return not any(term in name for term in normalized_terms)

    return {slot: [item for item in items if keep(item)] for slot, items in pools.items()}
