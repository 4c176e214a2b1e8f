"""
MealCoach - NEVO food lookup.

NEVO is the Dutch food composition table. Records live in nevo_foods and
are keyed by a numeric nevo_code.
"""

import logging
from typing import Any

from mealcoach.db.adapter import DatabaseAdapter

logger = logging.getLogger(__name__)


def parse_nevo_code(code: str | int | None) -> int | None:
    """Leading-integer parse of a NEVO code ("1234" -> 1234, "abc" -> None)."""
    if code is None:
        return None
    if isinstance(code, int):
        return code
    text = str(code).strip()
    digits = ""
    for i, ch in enumerate(text):
        if ch.isdigit() or (i == 0 and ch in "+-"):
            digits += ch
        else:
            break
    try:
        return int(digits)
    except ValueError:
        return None


class NevoLookup:
    """Read-only access to nevo_foods."""

    def __init__(self, client: DatabaseAdapter | None = None):
        self._client = client

    @property
    def client(self) -> DatabaseAdapter:
        if self._client is None:
            from mealcoach.db.client import get_service_client

            self._client = get_service_client()
        return self._client

    async def get_by_code(self, code: int) -> dict[str, Any] | None:
        """
        Fetch one NEVO food record.

        Returns None for unknown codes and on query errors.
        """
        try:
            result = (
                self.client.table("nevo_foods")
                .select("*")
                .eq("nevo_code", code)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.warning(f"NEVO lookup failed for code {code}: {e}")
            return None

        if not result.data:
            return None
        return result.data[0]
