"""
MealCoach - Domain exceptions.

Only failures that must stop the caller are raised. Missing upstream data
(unknown NEVO codes, absent canonical ids) degrades to placeholders instead.
"""


class MealCoachError(Exception):
    """Base class for all MealCoach errors."""

    code: str = "MEALCOACH_ERROR"


class RulesetLoadError(MealCoachError):
    """Guardrails ruleset could not be loaded. Meal planning fails closed."""

    code = "GUARDRAILS_RULESET_LOAD_FAILED"


class PantryLoadError(MealCoachError):
    """Pantry availability could not be loaded."""

    code = "PANTRY_LOAD_FAILED"


class GeneratorConfigError(MealCoachError):
    """Generator configuration is missing or invalid."""

    code = "MEAL_PLAN_CONFIG_INVALID"


class TuningContractError(MealCoachError):
    """A tuning suggestion carries an action kind outside the allowed set."""

    code = "TUNING_ACTION_KIND_INVALID"
