"""
MealCoach - Meal plan pre/post-processing.

Candidate pool sanitation before generation; sanity checks, shopping
lists and tuning advice after.
"""
