"""
MealCoach - Nutrition reference data (NEVO).
"""

from mealcoach.nutrition.cache import LookupCache, TTLCache, get_default_cache
from mealcoach.nutrition.nevo import NevoLookup, parse_nevo_code

__all__ = ["LookupCache", "NevoLookup", "TTLCache", "get_default_cache", "parse_nevo_code"]
