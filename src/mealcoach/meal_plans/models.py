"""
MealCoach - Meal plan and candidate pool models.

These mirror the JSON the plan generator produces and the API returns.
Field names are snake_case in Python and camelCase on the wire.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for wire models: camelCase aliases, extra fields preserved."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


# =============================================================================
# Candidate Pool
# =============================================================================


class IngredientCandidate(CamelModel):
    """
    One ingredient option in the candidate pool.

    Identity for dedupe is nevo_code when non-empty, else the normalized name.
    Other display fields (food group, energy, ...) ride along as extras.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    nevo_code: str | None = None


# Category key -> candidates. Keys beyond proteins/vegetables/fruits/fats
# (carbs, dairy_liquids, ...) are allowed and sanitized the same way.
CandidatePool = dict[str, list[IngredientCandidate]]


def parse_candidate_pool(raw: dict[str, list[dict[str, Any]]]) -> CandidatePool:
    """Build a CandidatePool from plain JSON data."""
    return {
        category: [IngredientCandidate.model_validate(item) for item in items or []]
        for category, items in raw.items()
    }


# =============================================================================
# Meal Plan
# =============================================================================


class MealIngredientRef(CamelModel):
    """
    Ingredient reference within a meal.

    Shopping aggregation uses canonical_ingredient_id when present, else
    nevo_code; refs with neither are skipped.
    """

    quantity_g: float
    nevo_code: str | None = None
    canonical_ingredient_id: str | None = None
    custom_food_id: str | None = None
    fdc_id: str | None = None
    display_name: str | None = None
    tags: list[str] = Field(default_factory=list)


class Meal(CamelModel):
    """A single meal in a plan day."""

    id: str | None = None
    name: str = ""
    slot: str | None = None
    date: str | None = None
    ingredient_refs: list[MealIngredientRef] = Field(default_factory=list)


class MealPlanDay(CamelModel):
    """One day of a meal plan."""

    date: str = ""
    meals: list[Meal] = Field(default_factory=list)


class MealPlanResponse(CamelModel):
    """
    A generated meal plan.

    metadata.generator carries generator telemetry: templateInfo.quality
    (forced repeat counts) and sanity (issues found after generation).
    """

    request_id: str | None = None
    days: list[MealPlanDay] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None

    def iter_meals(self):
        for day in self.days:
            yield from day.meals

    def nevo_codes(self) -> list[str]:
        """Distinct NEVO codes referenced by the plan, in first-seen order."""
        seen: dict[str, None] = {}
        for meal in self.iter_meals():
            for ref in meal.ingredient_refs:
                if ref.nevo_code:
                    seen.setdefault(ref.nevo_code, None)
        return list(seen)
