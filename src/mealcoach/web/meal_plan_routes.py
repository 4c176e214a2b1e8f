"""
Meal plan API endpoints.

Thin layer over the shopping service, tuning advisor and guardrails terms.
Service construction goes through dependencies so tests can override them.
"""

import logging
from collections.abc import Awaitable, Callable

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field

from mealcoach.db.adapter import DatabaseAdapter
from mealcoach.errors import MealCoachError, TuningContractError
from mealcoach.guardrails.exclude_terms import load_hard_block_terms_for_diet
from mealcoach.guardrails.types import Locale
from mealcoach.meal_plans.generator_config import load_advisor_config
from mealcoach.meal_plans.models import CamelModel, MealPlanResponse
from mealcoach.meal_plans.shopping import MealPlannerShoppingService
from mealcoach.meal_plans.shopping_models import (
    MealPlanCoverage,
    PantryAvailability,
    ShoppingListResponse,
)
from mealcoach.meal_plans.tuning_advisor import GeneratorConfigForAdvisor, get_tuning_suggestions
from mealcoach.pantry.service import PantryService
from mealcoach.web.auth import CurrentUser, get_current_user, get_user_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/meal-plans", tags=["meal-plans"])


# =============================================================================
# Request Models
# =============================================================================


class PlanRequest(CamelModel):
    plan: MealPlanResponse


class PlanWithPantryRequest(PlanRequest):
    pantry: list[PantryAvailability] | None = None


class TuningRequest(CamelModel):
    """Either an explicit config or a diet key to load it for."""
    preview: MealPlanResponse
    config: GeneratorConfigForAdvisor | None = None
    diet_key: str | None = None


class TuningActionOut(CamelModel):
    kind: str
    target: str
    hint: str


class TuningSuggestionOut(CamelModel):
    severity: str
    code: str
    title: str
    actions: list[TuningActionOut] = Field(default_factory=list)


# =============================================================================
# Dependencies
# =============================================================================


def get_shopping_service() -> MealPlannerShoppingService:
    return MealPlannerShoppingService()


def get_user_shopping_service(
    client: DatabaseAdapter = Depends(get_user_client),
) -> MealPlannerShoppingService:
    """Shopping service whose pantry reads run as the user (RLS)."""
    return MealPlannerShoppingService(pantry_provider=PantryService(client))


def get_terms_loader() -> Callable[..., Awaitable[list[str]]]:
    return load_hard_block_terms_for_diet


def get_config_loader() -> Callable[[str], GeneratorConfigForAdvisor]:
    return load_advisor_config


def _http_error(e: MealCoachError) -> HTTPException:
    """Map domain errors to responses; internals stay in the log."""
    if isinstance(e, TuningContractError):
        logger.error(f"Tuning contract violated: {e}")
        return HTTPException(status_code=500, detail=e.code)
    logger.error(f"Upstream failure ({e.code}): {e}")
    return HTTPException(status_code=502, detail=e.code)


# =============================================================================
# Coverage / Shopping
# =============================================================================


@router.post("/coverage", response_model=MealPlanCoverage, response_model_exclude_none=True)
async def build_coverage(
    req: PlanWithPantryRequest,
    user: CurrentUser = Depends(get_current_user),
    service: MealPlannerShoppingService = Depends(get_shopping_service),
):
    """Pantry coverage for a plan with a caller-supplied pantry snapshot."""
    return await service.build_coverage(req.plan, req.pantry)


@router.post("/shopping-list", response_model=ShoppingListResponse, response_model_exclude_none=True)
async def build_shopping_list(
    req: PlanWithPantryRequest,
    user: CurrentUser = Depends(get_current_user),
    service: MealPlannerShoppingService = Depends(get_shopping_service),
):
    return await service.build_shopping_list(req.plan, req.pantry)


@router.post("/coverage/pantry", response_model=MealPlanCoverage, response_model_exclude_none=True)
async def build_coverage_with_pantry(
    req: PlanRequest,
    user: CurrentUser = Depends(get_current_user),
    service: MealPlannerShoppingService = Depends(get_user_shopping_service),
):
    """Pantry coverage against the user's stored pantry."""
    return await service.build_coverage_with_pantry(req.plan, user.id)


@router.post("/shopping-list/pantry", response_model=ShoppingListResponse, response_model_exclude_none=True)
async def build_shopping_list_with_pantry(
    req: PlanRequest,
    user: CurrentUser = Depends(get_current_user),
    service: MealPlannerShoppingService = Depends(get_user_shopping_service),
):
    return await service.build_shopping_list_with_pantry(req.plan, user.id)


# =============================================================================
# Tuning / Guardrails
# =============================================================================


@router.post("/tuning-suggestions", response_model=list[TuningSuggestionOut])
async def tuning_suggestions(
    req: TuningRequest,
    user: CurrentUser = Depends(get_current_user),
    load_config: Callable[[str], GeneratorConfigForAdvisor] = Depends(get_config_loader),
):
    """Advisor output for a generated plan preview."""
    if req.config is None and not req.diet_key:
        raise HTTPException(status_code=400, detail="Provide either config or dietKey")

    try:
        config = req.config or load_config(req.diet_key)
        suggestions = get_tuning_suggestions(req.preview, config)
    except MealCoachError as e:
        raise _http_error(e)

    return [s.to_dict() for s in suggestions]


@router.get("/guardrails/{diet_key}/hard-block-terms", response_model=list[str])
async def hard_block_terms(
    diet_key: str,
    locale: Locale = "nl",
    user: CurrentUser = Depends(get_current_user),
    load_terms: Callable[..., Awaitable[list[str]]] = Depends(get_terms_loader),
):
    """Hard-block exclude terms the meal planner applies for a diet."""
    try:
        return await load_terms(diet_key, locale)
    except MealCoachError as e:
        raise _http_error(e)
