"""
MealCoach - deterministic pre/post-processing around meal-plan generation.

Candidate pool sanitation, guardrails hard-block terms, pantry coverage and
shopping lists, and generator tuning suggestions.
"""

__version__ = "0.3.0"
