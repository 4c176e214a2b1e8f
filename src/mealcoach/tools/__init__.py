"""
MealCoach - Text and unit utilities.
"""

from mealcoach.tools.normalize import normalize_ingredient_token, normalize_name
from mealcoach.tools.units import canonicalize_unit, units_match

__all__ = [
    "canonicalize_unit",
    "normalize_ingredient_token",
    "normalize_name",
    "units_match",
]
