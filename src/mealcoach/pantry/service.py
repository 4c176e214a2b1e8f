"""
MealCoach - Pantry availability.

Read side of the user's pantry: which NEVO codes are in stock and how many
grams are available.
"""

import logging
from collections.abc import Sequence

from mealcoach.db.adapter import DatabaseAdapter
from mealcoach.errors import PantryLoadError
from mealcoach.meal_plans.shopping_models import PantryAvailability

logger = logging.getLogger(__name__)


class PantryService:
    """Pantry reads for one Supabase client (RLS applies per client)."""

    def __init__(self, client: DatabaseAdapter | None = None):
        self._client = client

    @property
    def client(self) -> DatabaseAdapter:
        if self._client is None:
            from mealcoach.db.client import get_client

            self._client = get_client()
        return self._client

    async def load_availability_by_codes(
        self,
        user_id: str,
        nevo_codes: Sequence[str],
    ) -> list[PantryAvailability]:
        """
        Pantry availability for the given codes.

        Raises:
            PantryLoadError: query failed or returned unreadable rows
        """
        if not nevo_codes:
            return []

        try:
            result = (
                self.client.table("pantry_items")
                .select("nevo_code, available_g, is_available")
                .eq("user_id", user_id)
                .in_("nevo_code", list(nevo_codes))
                .execute()
            )
            return [
                PantryAvailability(
                    nevo_code=str(row["nevo_code"]),
                    available_g=float(row["available_g"]) if row.get("available_g") is not None else None,
                    is_available=row.get("is_available"),
                )
                for row in result.data or []
            ]
        except Exception as e:
            raise PantryLoadError(f"Failed to load pantry availability: {e}") from e
