"""
MealCoach - Web API.
"""
