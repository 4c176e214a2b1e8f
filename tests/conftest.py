"""
Pytest configuration and fixtures for MealCoach tests.
"""

import os
from unittest.mock import MagicMock

import pytest

# Set test environment before importing mealcoach modules
os.environ["MEALCOACH_ENV"] = "development"
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key-not-real")

from mealcoach.meal_plans.models import MealPlanResponse, parse_candidate_pool  # noqa: E402

QUERY_METHODS = ("select", "eq", "in_", "order", "limit", "single", "maybe_single", "range")


def make_query(data=None, error: Exception | None = None) -> MagicMock:
    """Chainable query builder mock; execute() returns data or raises."""
    query = MagicMock()
    for method in QUERY_METHODS:
        getattr(query, method).return_value = query
    if error is not None:
        query.execute.side_effect = error
    else:
        query.execute.return_value = MagicMock(data=data if data is not None else [])
    return query


@pytest.fixture
def mock_supabase():
    """Mock Supabase client for unit tests (every table returns no rows)."""
    mock_client = MagicMock()
    mock_client.table.return_value = make_query([])
    return mock_client


@pytest.fixture
def table_client():
    """
    Factory for a mock client with per-table results.

    Values are row lists or exceptions (raised from execute()).
    """

    def _make(tables: dict) -> MagicMock:
        queries = {
            name: make_query(error=value) if isinstance(value, Exception) else make_query(value)
            for name, value in tables.items()
        }
        client = MagicMock()
        client.table.side_effect = lambda name: queries.setdefault(name, make_query([]))
        client.queries = queries
        return client

    return _make


@pytest.fixture
def sample_pool():
    """Candidate pool with a duplicate NEVO code and a cheese."""
    return parse_candidate_pool({
        "proteins": [
            {"name": "Kipfilet", "nevoCode": "50"},
            {"name": "Kipfilet rauw", "nevoCode": "50"},
            {"name": "Goudse Kaas", "nevoCode": "301"},
            {"name": "Zalm", "nevoCode": "412"},
        ],
        "vegetables": [
            {"name": "Broccoli", "nevoCode": "205"},
            {"name": "Spinazie", "nevoCode": "206"},
        ],
        "fruits": [{"name": "Appel", "nevoCode": "601"}],
        "fats": [{"name": "Olijfolie", "nevoCode": "701"}],
        "carbs": [
            {"name": "Pasta", "nevoCode": "801"},
            {"name": "Rijst", "nevoCode": "802"},
        ],
    })


def _meal(meal_id: str, name: str, refs: list[dict], date: str = "2026-01-05", slot: str = "dinner") -> dict:
    return {"id": meal_id, "name": name, "slot": slot, "date": date, "ingredientRefs": refs}


@pytest.fixture
def sample_plan() -> MealPlanResponse:
    """Two-day plan; broccoli (205) sits in a veg slot of three meals."""
    return MealPlanResponse.model_validate({
        "requestId": "req-1",
        "days": [
            {
                "date": "2026-01-05",
                "meals": [
                    _meal("m1", "Kip met broccoli", [
                        {"nevoCode": "50", "quantityG": 150},
                        {"nevoCode": "205", "quantityG": 100},
                        {"nevoCode": "206", "quantityG": 80},
                        {"nevoCode": "701", "quantityG": 10},
                    ]),
                    _meal("m2", "Zalm met broccoli", [
                        {"nevoCode": "412", "quantityG": 120},
                        {"nevoCode": "205", "quantityG": 100},
                        {"nevoCode": "701", "quantityG": 10},
                    ], slot="lunch"),
                ],
            },
            {
                "date": "2026-01-06",
                "meals": [
                    _meal("m3", "Kipsalade", [
                        {"nevoCode": "50", "quantityG": 100, "canonicalIngredientId": "canon-kip"},
                        {"nevoCode": "205", "quantityG": 50},
                    ], date="2026-01-06"),
                ],
            },
        ],
    })
