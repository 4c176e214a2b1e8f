"""Tests for the meal plan API endpoints."""

import pytest
from fastapi.testclient import TestClient

from mealcoach import __version__
from mealcoach.errors import GeneratorConfigError, RulesetLoadError, TuningContractError
from mealcoach.meal_plans.shopping import MealPlannerShoppingService
from mealcoach.meal_plans.shopping_models import PantryAvailability
from mealcoach.meal_plans.tuning_advisor import GeneratorConfigForAdvisor
from mealcoach.nutrition.cache import TTLCache
from mealcoach.web import meal_plan_routes as routes
from mealcoach.web.app import app
from mealcoach.web.auth import CurrentUser, get_current_user

USER = CurrentUser(id="user-1", access_token="token")

PLAN = {
    "days": [{
        "date": "2026-01-05",
        "meals": [{
            "id": "m1",
            "name": "Kip met broccoli",
            "slot": "dinner",
            "ingredientRefs": [
                {"nevoCode": "50", "quantityG": 600},
                {"nevoCode": "205", "quantityG": 400},
            ],
        }],
    }],
}


class FakeNutrition:
    async def get_by_code(self, code):
        return {
            50: {"name_nl": "Kipfilet", "food_group_nl": "Vlees en gevogelte"},
            205: {"name_nl": "Broccoli", "food_group_nl": "Groenten"},
        }.get(code)


class FakeResolver:
    async def resolve_ids_by_codes(self, codes):
        return {"205": "canon-broccoli"} if "205" in codes else {}


class FakePantry:
    def __init__(self):
        self.calls = []

    async def load_availability_by_codes(self, user_id, nevo_codes):
        self.calls.append(user_id)
        return [PantryAvailability(nevo_code="50", available_g=350), PantryAvailability(nevo_code="205", available_g=400)]


@pytest.fixture
def pantry():
    return FakePantry()


@pytest.fixture
def client(pantry):
    service = MealPlannerShoppingService(
        nutrition=FakeNutrition(),
        canonical_resolver=FakeResolver(),
        pantry_provider=pantry,
        cache=TTLCache(),
    )
    app.dependency_overrides[get_current_user] = lambda: USER
    app.dependency_overrides[routes.get_shopping_service] = lambda: service
    app.dependency_overrides[routes.get_user_shopping_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health():
    response = TestClient(app).get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "version": __version__}


def test_requires_authorization():
    response = TestClient(app).post("/api/meal-plans/coverage", json={"plan": PLAN})
    assert response.status_code == 401


class TestCoverageRoutes:

    def test_coverage_with_supplied_pantry(self, client):
        response = client.post("/api/meal-plans/coverage", json={
            "plan": PLAN,
            "pantry": [{"nevoCode": "50", "availableG": 350}, {"nevoCode": "205", "isAvailable": True}],
        })

        assert response.status_code == 200
        body = response.json()
        assert body["totals"] == {"requiredG": 1000, "missingG": 250, "coveragePct": 75.0}
        meal = body["days"][0]
        assert meal["mealTitle"] == "Kip met broccoli"
        assert meal["mealSlot"] == "dinner"
        assert meal["ingredients"][0]["name"] == "Kipfilet"

    def test_coverage_without_pantry(self, client):
        body = client.post("/api/meal-plans/coverage", json={"plan": PLAN}).json()
        assert body["totals"]["coveragePct"] == 0

    def test_coverage_with_stored_pantry(self, client, pantry):
        body = client.post("/api/meal-plans/coverage/pantry", json={"plan": PLAN}).json()

        assert pantry.calls == ["user-1"]
        assert body["totals"]["coveragePct"] == 75.0

    def test_shopping_list(self, client):
        body = client.post("/api/meal-plans/shopping-list", json={"plan": PLAN}).json()

        assert [g["category"] for g in body["groups"]] == ["Eiwit", "Groente"]
        assert body["groups"][1]["items"][0]["canonicalIngredientId"] == "canon-broccoli"
        assert body["missingCanonicalIngredientNevoCodes"] == ["50"]
        assert body["totals"] == {"items": 2, "requiredG": 1000, "missingG": 1000}

    def test_shopping_list_with_stored_pantry(self, client, pantry):
        body = client.post("/api/meal-plans/shopping-list/pantry", json={"plan": PLAN}).json()
        assert body["totals"]["missingG"] == 250
        assert pantry.calls == ["user-1"]

    def test_invalid_plan_is_rejected(self, client):
        response = client.post("/api/meal-plans/coverage", json={"plan": {"days": [{"meals": [{"ingredientRefs": [{}]}]}]}})
        assert response.status_code == 422


class TestTuningRoute:

    def test_with_explicit_config(self, client):
        response = client.post("/api/meal-plans/tuning-suggestions", json={
            "preview": PLAN,
            "config": {"dietKey": "keto", "poolItems": {"protein": 1, "veg": 10, "fat": 4}},
        })

        assert response.status_code == 200
        [suggestion] = response.json()
        assert suggestion["code"] == "POOL_LOW"
        assert suggestion["actions"][0]["kind"] == "pool"

    def test_loads_config_by_diet_key(self, client):
        loaded = []

        def load(diet_key):
            loaded.append(diet_key)
            return GeneratorConfigForAdvisor(diet_key=diet_key)

        app.dependency_overrides[routes.get_config_loader] = lambda: load
        response = client.post("/api/meal-plans/tuning-suggestions", json={"preview": PLAN, "dietKey": "keto"})

        assert response.status_code == 200
        assert loaded == ["keto"]
        assert [s["code"] for s in response.json()] == ["POOL_LOW"]

    def test_requires_config_or_diet_key(self, client):
        response = client.post("/api/meal-plans/tuning-suggestions", json={"preview": PLAN})
        assert response.status_code == 400

    def test_config_load_failure(self, client):
        def load(diet_key):
            raise GeneratorConfigError("boom")

        app.dependency_overrides[routes.get_config_loader] = lambda: load
        response = client.post("/api/meal-plans/tuning-suggestions", json={"preview": PLAN, "dietKey": "keto"})

        assert response.status_code == 502
        assert response.json()["detail"] == "MEAL_PLAN_CONFIG_INVALID"

    def test_contract_violation_is_server_error(self, client, monkeypatch):
        def broken(preview, config):
            raise TuningContractError("bad kind")

        monkeypatch.setattr(routes, "get_tuning_suggestions", broken)
        response = client.post("/api/meal-plans/tuning-suggestions", json={
            "preview": PLAN,
            "config": {"dietKey": "keto"},
        })

        assert response.status_code == 500
        assert response.json()["detail"] == "TUNING_ACTION_KIND_INVALID"


class TestHardBlockTermsRoute:

    def test_returns_terms(self, client):
        calls = []

        async def load(diet_key, locale):
            calls.append((diet_key, locale))
            return ["melk", "kaas"]

        app.dependency_overrides[routes.get_terms_loader] = lambda: load
        response = client.get("/api/meal-plans/guardrails/wahls_paleo_plus/hard-block-terms?locale=en")

        assert response.json() == ["melk", "kaas"]
        assert calls == [("wahls_paleo_plus", "en")]

    def test_load_failure_is_bad_gateway(self, client):
        async def load(diet_key, locale):
            raise RulesetLoadError("db down")

        app.dependency_overrides[routes.get_terms_loader] = lambda: load
        response = client.get("/api/meal-plans/guardrails/keto/hard-block-terms")

        assert response.status_code == 502
        assert response.json()["detail"] == "GUARDRAILS_RULESET_LOAD_FAILED"

    def test_unknown_locale_rejected(self, client):
        assert client.get("/api/meal-plans/guardrails/keto/hard-block-terms?locale=fr").status_code == 422
