"""
MealCoach - Category terms from the database.

Admins maintain extra category terms (with Dutch variants and synonyms) in
ingredient_categories / ingredient_category_items. These are merged on top
of the static lists in categories.py.
"""

import logging

from mealcoach.db.adapter import DatabaseAdapter
from mealcoach.db.client import get_service_client
from mealcoach.diet.categories import SubstringCategoryMatcher, set_category_matcher

logger = logging.getLogger(__name__)


def load_category_terms(client: DatabaseAdapter | None = None) -> dict[str, list[str]]:
    """
    Load active category items keyed by category code.

    Each item contributes its term, its Dutch term and its synonyms.
    Returns an empty mapping when the tables are unavailable; the static
    lists keep working on their own.
    """
    client = client or get_service_client()
    try:
        result = (
            client.table("ingredient_categories")
            .select("code, is_active, items:ingredient_category_items(term, term_nl, synonyms, is_active)")
            .eq("is_active", True)
            .execute()
        )
    except Exception as e:
        logger.warning(f"Loading category terms failed, using static lists only: {e}")
        return {}

    terms: dict[str, list[str]] = {}
    for row in result.data or []:
        code = row.get("code")
        if not code:
            continue
        bucket = terms.setdefault(code, [])
        for item in row.get("items") or []:
            if item.get("is_active") is False:
                continue
            for value in [item.get("term"), item.get("term_nl"), *(item.get("synonyms") or [])]:
                if value and value.strip() and value not in bucket:
                    bucket.append(value.strip())

    logger.info(f"Loaded DB category terms for {len(terms)} categories")
    return terms


def install_db_category_matcher(client: DatabaseAdapter | None = None) -> SubstringCategoryMatcher:
    """Build a matcher with static + DB terms and make it the process default."""
    matcher = SubstringCategoryMatcher(extra_terms=load_category_terms(client))
    set_category_matcher(matcher)
    return matcher
