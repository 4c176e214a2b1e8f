"""
MealCoach - Meal Plan Shopping Service.

Pantry coverage and shopping lists from the ingredient refs of a finished
meal plan. Read-only: nothing is written to the database.

Collaborators are injected (nutrition lookup, canonical resolver, pantry
provider, cache) and default to the Supabase-backed implementations.
"""

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from mealcoach.meal_plans.models import MealPlanResponse
from mealcoach.meal_plans.shopping_models import (
    CoverageTotals,
    MealCoverage,
    MealIngredientCoverage,
    MealPlanCoverage,
    PantryAvailability,
    ShoppingListGroup,
    ShoppingListItem,
    ShoppingListResponse,
    ShoppingListTotals,
)
from mealcoach.nutrition.cache import LookupCache, get_default_cache
from mealcoach.nutrition.nevo import parse_nevo_code

logger = logging.getLogger(__name__)

# Sentinel for "in stock, quantity unknown"
MAX_SAFE_INTEGER = 2**53 - 1

DEFAULT_CATEGORY = "Overig"

# Dutch food group keywords -> shopping category, checked in order
CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("Eiwit", ("vlees", "vis", "gevogelte", "eieren", "zuivel", "peulvruchten", "noten", "zaden")),
    ("Groente", ("groente",)),
    ("Fruit", ("fruit",)),
    ("Vetten", ("vet", "olie", "boter")),
    ("Koolhydraten", ("graan", "brood", "pasta", "rijst", "aardappel")),
]


# =============================================================================
# Collaborator protocols
# =============================================================================


class NutritionLookup(Protocol):
    async def get_by_code(self, code: int) -> dict[str, Any] | None:
        ...


class CanonicalResolver(Protocol):
    async def resolve_ids_by_codes(self, codes: Sequence[str]) -> dict[str, str]:
        ...


class PantryProvider(Protocol):
    async def load_availability_by_codes(
        self, user_id: str, nevo_codes: Sequence[str]
    ) -> list[PantryAvailability]:
        ...


# =============================================================================
# Helpers
# =============================================================================


def calculate_available_g(pantry: PantryAvailability | None) -> float:
    """Grams available for one pantry entry (0 when absent)."""
    if pantry is None:
        return 0
    if pantry.available_g is not None:
        return pantry.available_g
    if pantry.is_available is True:
        return MAX_SAFE_INTEGER
    return 0


def derive_category(food: dict[str, Any] | None) -> str | None:
    """
    Shopping category from the NEVO Dutch food group.

    Unmapped groups fall through as the raw group name; None when the food
    has no group.
    """
    group_raw = (food or {}).get("food_group_nl")
    if not group_raw:
        return None

    group = str(group_raw).lower()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(keyword in group for keyword in keywords):
            return category
    return str(group_raw)


def coverage_pct(total_required_g: float, total_missing_g: float) -> float:
    """Covered share in percent, one decimal, halves rounded up. 100 when nothing is required."""
    if total_required_g == 0:
        return 100
    return math.floor((total_required_g - total_missing_g) / total_required_g * 100 * 10 + 0.5) / 10


def _pantry_map(pantry: Sequence[PantryAvailability] | None) -> dict[str, PantryAvailability]:
    return {item.nevo_code: item for item in pantry or []}


def _display_name(food: dict[str, Any] | None, nevo_code: str) -> str:
    food = food or {}
    name = food.get("name_nl") or food.get("name_en")
    if name:
        return str(name)
    return f"NEVO {nevo_code}" if nevo_code else "Onbekend"


@dataclass
class _Aggregate:
    nevo_code: str
    required_g: float
    canonical_ingredient_id: str | None = None
    tags: list[str] = field(default_factory=list)


# =============================================================================
# Service
# =============================================================================


class MealPlannerShoppingService:
    """Coverage and shopping list builder."""

    def __init__(
        self,
        nutrition: NutritionLookup | None = None,
        canonical_resolver: CanonicalResolver | None = None,
        pantry_provider: PantryProvider | None = None,
        cache: LookupCache | None = None,
    ):
        if nutrition is None:
            from mealcoach.nutrition.nevo import NevoLookup

            nutrition = NevoLookup()
        if canonical_resolver is None:
            from mealcoach.ingredients.canonical import CanonicalIngredientResolver

            canonical_resolver = CanonicalIngredientResolver()
        if pantry_provider is None:
            from mealcoach.pantry.service import PantryService

            pantry_provider = PantryService()

        self.nutrition = nutrition
        self.canonical_resolver = canonical_resolver
        self.pantry_provider = pantry_provider
        self.cache = cache if cache is not None else get_default_cache()

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    async def get_food_cached(self, nevo_code: str) -> dict[str, Any] | None:
        """
        NEVO food record for a code, cached by code.

        Only found records are cached. Lookup errors degrade to None so one
        bad reference does not blank the whole list.
        """
        if not nevo_code:
            return None

        cached = self.cache.get(nevo_code)
        if cached is not None:
            return cached

        code = parse_nevo_code(nevo_code)
        if code is None:
            return None

        try:
            food = await self.nutrition.get_by_code(code)
        except Exception as e:
            logger.warning(f"Nutrition lookup failed for NEVO {nevo_code}, using placeholder: {e}")
            return None

        if food:
            self.cache.set(nevo_code, food)
        return food

    async def load_pantry(self, user_id: str | None, nevo_codes: Sequence[str]) -> list[PantryAvailability]:
        """Pantry snapshot; any failure reads as "no pantry data"."""
        if not user_id or not nevo_codes:
            return []
        try:
            return await self.pantry_provider.load_availability_by_codes(user_id, list(nevo_codes))
        except Exception as e:
            logger.warning(f"Pantry unavailable for user {user_id}, continuing without: {e}")
            return []

    # -------------------------------------------------------------------------
    # Coverage
    # -------------------------------------------------------------------------

    async def build_coverage(
        self,
        plan: MealPlanResponse,
        pantry: Sequence[PantryAvailability] | None = None,
    ) -> MealPlanCoverage:
        """
        Pantry coverage per meal plus plan totals.

        Meals without ingredient refs are skipped, as are refs without a
        nevo_code.
        """
        pantry_by_code = _pantry_map(pantry)
        meals: list[MealCoverage] = []
        total_required = 0.0
        total_missing = 0.0

        for meal in plan.iter_meals():
            if not meal.ingredient_refs:
                continue

            ingredients: list[MealIngredientCoverage] = []
            for ref in meal.ingredient_refs:
                if not ref.nevo_code:
                    continue
                food = await self.get_food_cached(ref.nevo_code)
                available_g = calculate_available_g(pantry_by_code.get(ref.nevo_code))
                missing_g = max(ref.quantity_g - available_g, 0)

                ingredients.append(
                    MealIngredientCoverage(
                        nevo_code=ref.nevo_code,
                        name=_display_name(food, ref.nevo_code),
                        required_g=ref.quantity_g,
                        available_g=available_g,
                        missing_g=missing_g,
                        in_pantry=available_g > 0,
                        tags=list(ref.tags),
                    )
                )
                total_required += ref.quantity_g
                total_missing += missing_g

            meals.append(
                MealCoverage(
                    date=meal.date,
                    meal_slot=meal.slot,
                    meal_title=meal.name,
                    ingredients=ingredients,
                )
            )

        return MealPlanCoverage(
            days=meals,
            totals=CoverageTotals(
                required_g=total_required,
                missing_g=total_missing,
                coverage_pct=coverage_pct(total_required, total_missing),
            ),
        )

    # -------------------------------------------------------------------------
    # Shopping list
    # -------------------------------------------------------------------------

    def _aggregate(self, plan: MealPlanResponse) -> dict[str, _Aggregate]:
        """Required grams per ingredient over the whole plan (canon:/nevo: keys)."""
        aggregates: dict[str, _Aggregate] = {}
        for meal in plan.iter_meals():
            for ref in meal.ingredient_refs:
                nevo_code = (ref.nevo_code or "").strip()
                if ref.canonical_ingredient_id:
                    key = f"canon:{ref.canonical_ingredient_id}"
                elif nevo_code:
                    key = f"nevo:{nevo_code}"
                else:
                    continue

                existing = aggregates.get(key)
                if existing:
                    existing.required_g += ref.quantity_g
                else:
                    aggregates[key] = _Aggregate(
                        nevo_code=nevo_code,
                        required_g=ref.quantity_g,
                        canonical_ingredient_id=ref.canonical_ingredient_id,
                        tags=list(ref.tags),
                    )
        return aggregates

    async def build_shopping_list(
        self,
        plan: MealPlanResponse,
        pantry: Sequence[PantryAvailability] | None = None,
    ) -> ShoppingListResponse:
        """Aggregated shopping list grouped by category."""
        pantry_by_code = _pantry_map(pantry)
        aggregates = self._aggregate(plan)

        # Only nevo: entries still need a canonical id
        uncanonical_codes = list(dict.fromkeys(
            agg.nevo_code for key, agg in aggregates.items()
            if key.startswith("nevo:") and agg.nevo_code
        ))
        nevo_to_canonical = await self.canonical_resolver.resolve_ids_by_codes(uncanonical_codes)
        missing_canonical = sorted(code for code in uncanonical_codes if code not in nevo_to_canonical)

        items: list[ShoppingListItem] = []
        total_required = 0.0
        total_missing = 0.0

        for key, agg in aggregates.items():
            if key.startswith("canon:"):
                canonical_id = key[len("canon:"):]
            else:
                canonical_id = nevo_to_canonical.get(agg.nevo_code)

            food = await self.get_food_cached(agg.nevo_code)
            available_g = calculate_available_g(pantry_by_code.get(agg.nevo_code))
            missing_g = max(agg.required_g - available_g, 0)

            items.append(
                ShoppingListItem(
                    nevo_code=agg.nevo_code,
                    name=_display_name(food, agg.nevo_code),
                    required_g=agg.required_g,
                    available_g=available_g,
                    missing_g=missing_g,
                    category=derive_category(food) or DEFAULT_CATEGORY,
                    tags=agg.tags,
                    canonical_ingredient_id=canonical_id or None,
                )
            )
            total_required += agg.required_g
            total_missing += missing_g

        grouped: dict[str, list[ShoppingListItem]] = {}
        for item in items:
            grouped.setdefault(item.category or DEFAULT_CATEGORY, []).append(item)

        groups = [
            ShoppingListGroup(category=category, items=sorted(group_items, key=lambda i: i.name))
            for category, group_items in sorted(grouped.items())
        ]

        return ShoppingListResponse(
            groups=groups,
            totals=ShoppingListTotals(
                items=len(items),
                required_g=total_required,
                missing_g=total_missing,
            ),
            missing_canonical_ingredient_nevo_codes=missing_canonical,
        )

    # -------------------------------------------------------------------------
    # Pantry-aware variants
    # -------------------------------------------------------------------------

    async def build_coverage_with_pantry(self, plan: MealPlanResponse, user_id: str) -> MealPlanCoverage:
        pantry = await self.load_pantry(user_id, plan.nevo_codes())
        return await self.build_coverage(plan, pantry)

    async def build_shopping_list_with_pantry(
        self, plan: MealPlanResponse, user_id: str
    ) -> ShoppingListResponse:
        pantry = await self.load_pantry(user_id, plan.nevo_codes())
        return await self.build_shopping_list(plan, pantry)
