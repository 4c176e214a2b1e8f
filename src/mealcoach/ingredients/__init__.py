"""
MealCoach - Canonical ingredients.
"""

from mealcoach.ingredients.canonical import CanonicalIngredientResolver

__all__ = ["CanonicalIngredientResolver"]
