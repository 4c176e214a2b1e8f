"""
MealCoach - Observability.
"""

from mealcoach.observability.run_logger import RunLogger

__all__ = ["RunLogger"]
