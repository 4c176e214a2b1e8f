"""
MealCoach - Database access.
"""

from mealcoach.db.adapter import DatabaseAdapter
from mealcoach.db.client import (
    get_authenticated_client,
    get_client,
    get_service_client,
)

__all__ = [
    "DatabaseAdapter",
    "get_authenticated_client",
    "get_client",
    "get_service_client",
]
