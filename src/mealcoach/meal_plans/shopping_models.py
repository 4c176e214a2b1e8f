"""
MealCoach - Shopping list and pantry coverage models.

Output contracts of the shopping service. They are serialized straight to
HTTP responses, so building them validates the aggregation result.
"""

from pydantic import Field

from mealcoach.meal_plans.models import CamelModel


class PantryAvailability(CamelModel):
    """
    Pantry snapshot for one NEVO code.

    available_g wins when set; is_available=True without a quantity means
    "effectively unlimited"; anything else counts as 0 g.
    """

    nevo_code: str
    available_g: float | None = None
    is_available: bool | None = None


# =============================================================================
# Coverage
# =============================================================================


class MealIngredientCoverage(CamelModel):
    nevo_code: str
    name: str
    required_g: float = Field(ge=0)
    available_g: float = Field(ge=0)
    missing_g: float = Field(ge=0)
    in_pantry: bool
    tags: list[str] = Field(default_factory=list)


class MealCoverage(CamelModel):
    date: str | None = None
    meal_slot: str | None = None
    meal_title: str = ""
    ingredients: list[MealIngredientCoverage] = Field(default_factory=list)


class CoverageTotals(CamelModel):
    required_g: float = Field(ge=0)
    missing_g: float = Field(ge=0)
    coverage_pct: float = Field(ge=0, le=100)


class MealPlanCoverage(CamelModel):
    """Per-meal coverage; `days` holds one entry per meal with ingredients."""

    days: list[MealCoverage] = Field(default_factory=list)
    totals: CoverageTotals


# =============================================================================
# Shopping list
# =============================================================================


class ShoppingListItem(CamelModel):
    nevo_code: str
    name: str
    required_g: float = Field(ge=0)
    available_g: float = Field(ge=0)
    missing_g: float = Field(ge=0)
    category: str
    tags: list[str] = Field(default_factory=list)
    canonical_ingredient_id: str | None = None


class ShoppingListGroup(CamelModel):
    category: str
    items: list[ShoppingListItem] = Field(default_factory=list)


class ShoppingListTotals(CamelModel):
    items: int = Field(ge=0)
    required_g: float = Field(ge=0)
    missing_g: float = Field(ge=0)


class ShoppingListResponse(CamelModel):
    """
    Shopping list grouped by category.

    missing_canonical_ingredient_nevo_codes lists plan NEVO codes without a
    canonical ingredient; a data-quality signal for the catalog.
    """

    groups: list[ShoppingListGroup] = Field(default_factory=list)
    totals: ShoppingListTotals
    missing_canonical_ingredient_nevo_codes: list[str] = Field(default_factory=list)
