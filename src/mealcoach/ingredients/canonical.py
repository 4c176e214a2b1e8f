"""
MealCoach - Canonical ingredient resolver.

Maps source codes (NEVO) to canonical ingredient ids through the
canonical_ingredient_catalog_v1 view. Resolution is best effort: codes
that cannot be resolved are simply absent from the result.
"""

import logging
import re
from collections.abc import Iterable

from mealcoach.db.adapter import DatabaseAdapter

logger = logging.getLogger(__name__)

CANONICAL_CATALOG_VIEW = "canonical_ingredient_catalog_v1"
CANONICAL_LOOKUP_COLUMNS = "ingredient_id, ref_value"
NEVO_REF_BATCH_SIZE = 100

# View missing (migrations not applied): later batches would fail the same way
_SCHEMA_MISSING = re.compile(r"schema cache|relation.*does not exist|could not find", re.IGNORECASE)


def _batches(values: list[str], size: int) -> Iterable[list[str]]:
    for start in range(0, len(values), size):
        yield values[start:start + size]


class CanonicalIngredientResolver:
    """Batch resolver nevo_code -> canonical ingredient id."""

    def __init__(
        self,
        client: DatabaseAdapter | None = None,
        ref_type: str = "nevo",
        batch_size: int = NEVO_REF_BATCH_SIZE,
    ):
        self._client = client
        self.ref_type = ref_type
        self.batch_size = batch_size

    @property
    def client(self) -> DatabaseAdapter:
        if self._client is None:
            from mealcoach.db.client import get_service_client

            self._client = get_service_client()
        return self._client

    async def resolve_ids_by_codes(self, codes: Iterable[str]) -> dict[str, str]:
        """
        Resolve codes in batches.

        Failed batches are logged and skipped; a missing catalog view stops
        the lookup and returns what was resolved so far.
        """
        unique = [code for code in dict.fromkeys(codes) if code]
        resolved: dict[str, str] = {}
        if not unique:
            return resolved

        for batch in _batches(unique, self.batch_size):
            try:
                result = (
                    self.client.table(CANONICAL_CATALOG_VIEW)
                    .select(CANONICAL_LOOKUP_COLUMNS)
                    .eq("ref_type", self.ref_type)
                    .in_("ref_value", batch)
                    .execute()
                )
            except Exception as e:
                if _SCHEMA_MISSING.search(str(e)):
                    logger.warning(
                        f"{CANONICAL_CATALOG_VIEW} not available (migrations not applied?): {e}"
                    )
                    return resolved
                logger.error(f"Canonical ingredient lookup failed for batch of {len(batch)}: {e}")
                continue

            for row in result.data or []:
                ref_value = row.get("ref_value")
                ingredient_id = row.get("ingredient_id")
                if ref_value is not None and ingredient_id is not None:
                    resolved[str(ref_value)] = str(ingredient_id)

        unresolved = len(unique) - len(resolved)
        if unresolved:
            logger.info(f"{unresolved} of {len(unique)} {self.ref_type} codes have no canonical ingredient")
        return resolved
