"""
MealCoach - Unit Canonicalization.

Maps free-text unit strings to a canonical token so nutrient units from
different sources (NEVO, FNDDS, custom foods) can be compared.
No conversion between units happens here.
"""

# Micro sign (U+00B5) and Greek small mu (U+03BC) both show up in source data
MICRO_SIGNS = ("µ", "μ")

UNIT_ALIASES = {
    "mcg": "ug",
    "gram": "g",
    "grams": "g",
    "milligram": "mg",
    "milligrams": "mg",
    "kcalorie": "kcal",
    "kcalories": "kcal",
}


def canonicalize_unit(unit: str | None) -> str | None:
    """
    Canonicalize a unit string for comparison.

    Examples:
        canonicalize_unit("µg") -> "ug"
        canonicalize_unit(" MCG ") -> "ug"
        canonicalize_unit("Grams") -> "g"
        canonicalize_unit("") -> None
    """
    if not isinstance(unit, str):
        return None

    normalized = unit.strip().lower()
    if not normalized:
        return None

    for sign in MICRO_SIGNS:
        normalized = normalized.replace(sign, "u")

    return UNIT_ALIASES.get(normalized, normalized)


def units_match(a: str | None, b: str | None) -> bool:
    """True when both units canonicalize to the same non-empty token."""
    ca = canonicalize_unit(a)
    return ca is not None and ca == canonicalize_unit(b)
