"""
MealCoach - Name Normalization.

Two normalizers with different jobs:
- normalize_name: display-ish form used for pool dedupe and exclude terms
- normalize_ingredient_token: underscore token used by category matching
"""

import re

_WHITESPACE = re.compile(r"\s+")
_NON_ALNUM_ASCII = re.compile(r"[^a-z0-9\s]")
_UNDERSCORES = re.compile(r"_+")


def normalize_name(name: str) -> str:
    """
    Normalize a candidate name for dedupe and exclude-term matching.

    Operations:
    - Strip leading/trailing whitespace, lowercase
    - Collapse whitespace runs to one space
    - Drop punctuation (Unicode letters, digits and spaces are kept)

    No diacritic folding: "crème" and "creme" stay different.

    Examples:
        normalize_name("  Goudse  Kaas ") -> "goudse kaas"
        normalize_name("Kip (filet), rauw") -> "kip filet rauw"
    """
    collapsed = _WHITESPACE.sub(" ", name.strip().lower())
    return "".join(ch for ch in collapsed if ch.isalnum() or ch == " ")


def normalize_ingredient_token(name: str) -> str:
    """
    Normalize an ingredient name to an underscore token for category matching.

    Examples:
        normalize_ingredient_token("Sweet Potato") -> "sweet_potato"
        normalize_ingredient_token("  bell-pepper! ") -> "bell_pepper"
        normalize_ingredient_token("crème fraîche") -> "cr_me_fra_che"
    """
    token = _NON_ALNUM_ASCII.sub(" ", name.lower().strip())
    token = _WHITESPACE.sub("_", token)
    token = _UNDERSCORES.sub("_", token)
    return token.strip("_")
