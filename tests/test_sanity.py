"""Tests for the post-generation meal plan sanity checks."""

import pytest

from mealcoach.meal_plans.models import MealPlanResponse
from mealcoach.meal_plans.sanity import (
    attach_sanity_metadata,
    is_placeholder_name,
    validate_meal_plan_sanity,
)


def _plan_with_meal(name="Zalm met spinazie", refs=None, meal_id="m1") -> MealPlanResponse:
    if refs is None:
        refs = [{"nevoCode": "412", "quantityG": 120}]
    return MealPlanResponse.model_validate({
        "days": [{"date": "2026-01-05", "meals": [{"id": meal_id, "name": name, "ingredientRefs": refs}]}],
    })


def _codes(result) -> list[str]:
    return [issue.code for issue in result.issues]


class TestPlaceholderNames:

    @pytest.mark.parametrize("name", ["TBD", " lunch ", "Recept", "ab", "", "   "])
    def test_placeholders(self, name):
        assert is_placeholder_name(name)

    @pytest.mark.parametrize("name", ["Kip met broccoli", "Smoothie", "Lunchsalade"])
    def test_real_names(self, name):
        assert not is_placeholder_name(name)


class TestValidateMealPlanSanity:

    def test_clean_plan(self, sample_plan):
        result = validate_meal_plan_sanity(sample_plan)
        assert result.ok
        assert result.issues == []

    def test_empty_name(self):
        result = validate_meal_plan_sanity(_plan_with_meal(name="  "))
        assert _codes(result) == ["EMPTY_NAME"]

    def test_placeholder_name(self):
        result = validate_meal_plan_sanity(_plan_with_meal(name="Diner"))
        assert _codes(result) == ["PLACEHOLDER_NAME"]
        assert result.issues[0].meal_id == "m1"
        assert result.issues[0].date == "2026-01-05"

    def test_no_ingredients(self):
        assert _codes(validate_meal_plan_sanity(_plan_with_meal(refs=[]))) == ["INGREDIENT_COUNT_OUT_OF_RANGE"]

    def test_too_many_ingredients(self):
        refs = [{"nevoCode": str(i), "quantityG": 10} for i in range(11)]
        assert _codes(validate_meal_plan_sanity(_plan_with_meal(refs=refs))) == ["INGREDIENT_COUNT_OUT_OF_RANGE"]

    def test_single_ingredient_is_fine(self):
        assert validate_meal_plan_sanity(_plan_with_meal(name="Banaan", refs=[{"nevoCode": "601", "quantityG": 120}])).ok

    def test_quantity_bounds(self):
        refs = [
            {"nevoCode": "1", "quantityG": 0.5},
            {"nevoCode": "2", "quantityG": 1},
            {"nevoCode": "3", "quantityG": 400},
            {"nevoCode": "4", "quantityG": 401},
        ]
        result = validate_meal_plan_sanity(_plan_with_meal(refs=refs))
        assert _codes(result) == ["INGREDIENT_QTY_OUT_OF_RANGE", "INGREDIENT_QTY_OUT_OF_RANGE"]

    def test_ref_without_source_id(self):
        refs = [
            {"quantityG": 50, "displayName": "Zelfgemaakte saus"},
            {"customFoodId": "cf-1", "quantityG": 50},
            {"fdcId": "17001", "quantityG": 50},
        ]
        result = validate_meal_plan_sanity(_plan_with_meal(refs=refs))
        assert _codes(result) == ["MISSING_NEVO_CODE"]
        assert "index 0" in result.issues[0].message

    def test_duplicate_ingredient(self):
        refs = [{"nevoCode": "205", "quantityG": 50}, {"nevoCode": "205", "quantityG": 80}]
        result = validate_meal_plan_sanity(_plan_with_meal(refs=refs))
        assert _codes(result) == ["DUPLICATE_INGREDIENT"]
        assert "nevo:205" in result.issues[0].message

    def test_same_code_different_source_is_not_duplicate(self):
        refs = [{"nevoCode": "205", "quantityG": 50}, {"customFoodId": "205", "quantityG": 50}]
        assert validate_meal_plan_sanity(_plan_with_meal(refs=refs)).ok

    def test_empty_day(self):
        plan = MealPlanResponse.model_validate({"days": [{"date": "2026-01-07", "meals": []}]})
        result = validate_meal_plan_sanity(plan)
        assert _codes(result) == ["EMPTY_DAY"]
        assert result.issues[0].date == "2026-01-07"
        assert result.issues[0].meal_id is None


class TestAttachSanityMetadata:

    def test_attaches_camel_case_result(self):
        plan = _plan_with_meal(name="TBD")
        annotated = attach_sanity_metadata(plan)

        sanity = annotated.metadata["generator"]["sanity"]
        assert sanity["ok"] is False
        assert sanity["issues"][0] == {
            "code": "PLACEHOLDER_NAME",
            "message": 'Meal name looks like a placeholder: "TBD"',
            "mealId": "m1",
            "date": "2026-01-05",
        }
        assert plan.metadata is None

    def test_keeps_existing_generator_metadata(self, sample_plan):
        sample_plan.metadata = {"generator": {"templateInfo": {"quality": {"repeatsForced": 1}}}}

        annotated = attach_sanity_metadata(sample_plan)

        generator = annotated.metadata["generator"]
        assert generator["templateInfo"]["quality"]["repeatsForced"] == 1
        assert generator["sanity"] == {"ok": True, "issues": []}
        assert "sanity" not in sample_plan.metadata["generator"]
