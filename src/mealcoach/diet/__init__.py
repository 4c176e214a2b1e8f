"""
MealCoach - Diet category matching.
"""

from mealcoach.diet.categories import (
    CategoryMatcher,
    SubstringCategoryMatcher,
    categories_of,
    is_dairy,
    is_grain,
    is_in_category,
    is_legume,
    is_nightshade,
    matches_category,
)

__all__ = [
    "CategoryMatcher",
    "SubstringCategoryMatcher",
    "categories_of",
    "is_dairy",
    "is_grain",
    "is_in_category",
    "is_legume",
    "is_nightshade",
    "matches_category",
]
