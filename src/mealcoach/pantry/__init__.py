"""
MealCoach - Pantry.
"""

from mealcoach.pantry.service import PantryService

__all__ = ["PantryService"]
