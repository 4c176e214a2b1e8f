"""
MealCoach - Meal plan sanity validator.

Post-generation culinary checks: meal names, ingredient counts and
quantities, ingredient refs, duplicates and empty days. No DB access.

Issues end up in metadata.generator.sanity where the tuning advisor reads
them.
"""

import copy
import logging
from typing import Literal

from pydantic import Field

from mealcoach.meal_plans.models import CamelModel, Meal, MealIngredientRef, MealPlanResponse

logger = logging.getLogger(__name__)

SanityIssueCode = Literal[
    "EMPTY_NAME",
    "PLACEHOLDER_NAME",
    "INGREDIENT_COUNT_OUT_OF_RANGE",
    "INGREDIENT_QTY_OUT_OF_RANGE",
    "MISSING_NEVO_CODE",
    "DUPLICATE_INGREDIENT",
    "EMPTY_DAY",
]

PLACEHOLDER_NAMES = {
    "tbd",
    "n/a",
    "na",
    "meal",
    "recept",
    "recipe",
    "unknown",
    "ontbijt",
    "lunch",
    "diner",
    "avondeten",
}

# Single-ingredient meals (banaan, smoothie) are fine
MIN_INGREDIENTS = 1
MAX_INGREDIENTS = 10
MIN_QTY_G = 1
MAX_QTY_G = 400


class SanityIssue(CamelModel):
    code: SanityIssueCode
    message: str
    meal_id: str | None = None
    date: str | None = None


class SanityResult(CamelModel):
    ok: bool
    issues: list[SanityIssue] = Field(default_factory=list)


def is_placeholder_name(name: str) -> bool:
    n = name.strip().lower()
    return not n or n in PLACEHOLDER_NAMES or len(n) <= 2


def _ref_key(ref: MealIngredientRef) -> str | None:
    """nevo:/custom:/fdc: identity, None when the ref has no source id."""
    for prefix, value in (
        ("nevo", ref.nevo_code),
        ("custom", ref.custom_food_id),
        ("fdc", ref.fdc_id),
    ):
        value = (value or "").strip()
        if value:
            return f"{prefix}:{value}"
    return None


def _validate_meal(meal: Meal, day_date: str) -> list[SanityIssue]:
    issues: list[SanityIssue] = []

    def issue(code: SanityIssueCode, message: str) -> None:
        issues.append(SanityIssue(code=code, message=message, meal_id=meal.id, date=day_date))

    name = (meal.name or "").strip()
    if not name:
        issue("EMPTY_NAME", "Meal name is empty")
    elif is_placeholder_name(name):
        issue("PLACEHOLDER_NAME", f'Meal name looks like a placeholder: "{name[:30]}"')

    refs = meal.ingredient_refs
    if not MIN_INGREDIENTS <= len(refs) <= MAX_INGREDIENTS:
        issue(
            "INGREDIENT_COUNT_OUT_OF_RANGE",
            f"Ingredient count {len(refs)} must be between {MIN_INGREDIENTS} and {MAX_INGREDIENTS}",
        )

    seen: set[str] = set()
    for index, ref in enumerate(refs):
        key = _ref_key(ref)
        if key is None:
            issue("MISSING_NEVO_CODE", f"Ingredient ref at index {index} has no nevoCode, customFoodId, or fdcId")
            continue
        if key in seen:
            issue("DUPLICATE_INGREDIENT", f"Duplicate ingredient in meal: {key}")
        seen.add(key)

        if not MIN_QTY_G <= ref.quantity_g <= MAX_QTY_G:
            issue(
                "INGREDIENT_QTY_OUT_OF_RANGE",
                f"quantityG {ref.quantity_g:g} must be between {MIN_QTY_G} and {MAX_QTY_G}",
            )

    return issues


def validate_meal_plan_sanity(plan: MealPlanResponse) -> SanityResult:
    """Every day needs a meal; every meal must pass the meal checks."""
    issues: list[SanityIssue] = []
    for day in plan.days:
        if not day.meals:
            issues.append(SanityIssue(code="EMPTY_DAY", message="Day has no meals", date=day.date))
        for meal in day.meals:
            issues.extend(_validate_meal(meal, day.date))

    if issues:
        logger.info(f"Sanity check found {len(issues)} issue(s)")
    return SanityResult(ok=not issues, issues=issues)


def attach_sanity_metadata(plan: MealPlanResponse) -> MealPlanResponse:
    """Copy of the plan with the sanity result under metadata.generator.sanity."""
    result = validate_meal_plan_sanity(plan)
    metadata = copy.deepcopy(plan.metadata or {})
    generator = metadata.setdefault("generator", {})
    generator["sanity"] = result.model_dump(by_alias=True, exclude_none=True)
    return plan.model_copy(update={"metadata": metadata})
