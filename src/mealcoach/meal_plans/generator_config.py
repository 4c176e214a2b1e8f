"""
MealCoach - Generator config loader for the tuning advisor.

Builds a GeneratorConfigForAdvisor from the admin-managed generator tables:

- meal_plan_generator_settings: per diet_key, else "default", else built-in
- meal_plan_pool_items: active items for the diet plus "default"; a diet
  item overrides the default item with the same item_key
- meal_plan_templates + meal_plan_template_slots: active templates

Empty pools are not an error here: reporting them is the advisor's job.
"""

import logging
from typing import Any

from mealcoach.db.adapter import DatabaseAdapter
from mealcoach.errors import GeneratorConfigError
from mealcoach.meal_plans.tuning_advisor import (
    GeneratorConfigForAdvisor,
    GeneratorSettings,
    PoolItemCounts,
    TemplateConfig,
    TemplateSlotConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_DIET_KEY = "default"
POOL_CATEGORIES = ("protein", "veg", "fat", "flavor")
REQUIRED_SLOTS = ("protein", "veg1", "veg2", "fat")

DEFAULT_SETTINGS = GeneratorSettings(
    max_ingredients=10,
    max_flavor_items=2,
    protein_repeat_cap_7d=2,
    template_repeat_cap_7d=3,
    signature_retry_limit=8,
)


def _execute(source: str, query) -> list[dict[str, Any]]:
    try:
        return query.execute().data or []
    except Exception as e:
        raise GeneratorConfigError(f"Could not load {source}: {e}") from e


def _load_settings(client: DatabaseAdapter, diet_key: str) -> GeneratorSettings:
    rows = _execute(
        "meal_plan_generator_settings",
        client.table("meal_plan_generator_settings")
        .select(
            "diet_key, max_ingredients, max_flavor_items, protein_repeat_cap_7d, "
            "template_repeat_cap_7d, signature_retry_limit"
        )
        .in_("diet_key", [diet_key, DEFAULT_DIET_KEY]),
    )
    row = next((r for r in rows if r.get("diet_key") == diet_key), None)
    row = row or next((r for r in rows if r.get("diet_key") == DEFAULT_DIET_KEY), None)
    if row is None:
        return DEFAULT_SETTINGS.model_copy()

    values = {
        name: int(row[name]) if row.get(name) is not None else getattr(DEFAULT_SETTINGS, name)
        for name in GeneratorSettings.model_fields
    }
    return GeneratorSettings(**values)


def _load_pool_counts(client: DatabaseAdapter, diet_key: str) -> PoolItemCounts:
    rows = _execute(
        "meal_plan_pool_items",
        client.table("meal_plan_pool_items")
        .select("diet_key, category, item_key")
        .eq("is_active", True)
        .in_("diet_key", [diet_key, DEFAULT_DIET_KEY]),
    )

    counts = {}
    for category in POOL_CATEGORIES:
        in_category = [r for r in rows if r.get("category") == category]
        # A diet item replaces the default item with the same item_key
        item_keys = {r["item_key"] for r in in_category if r.get("diet_key") in (DEFAULT_DIET_KEY, diet_key)}
        counts[category] = len(item_keys)
    return PoolItemCounts(**counts)


def _load_templates(client: DatabaseAdapter) -> list[TemplateConfig]:
    template_rows = _execute(
        "meal_plan_templates",
        client.table("meal_plan_templates")
        .select("id, template_key, name_nl, max_steps")
        .eq("is_active", True),
    )
    if not template_rows:
        return []

    slot_rows = _execute(
        "meal_plan_template_slots",
        client.table("meal_plan_template_slots")
        .select("template_id, slot_key, default_g, min_g, max_g")
        .in_("template_id", [t["id"] for t in template_rows]),
    )

    slots_by_template: dict[str, list[dict]] = {}
    for slot in slot_rows:
        slots_by_template.setdefault(slot["template_id"], []).append(slot)

    templates = []
    for row in template_rows:
        slots = slots_by_template.get(row["id"], [])
        missing = [key for key in REQUIRED_SLOTS if key not in {s["slot_key"] for s in slots}]
        if missing:
            logger.warning(f"Template {row['template_key']} is missing required slots: {missing}")
        templates.append(
            TemplateConfig(
                template_key=row["template_key"],
                slots=[
                    TemplateSlotConfig(
                        slot_key=s["slot_key"],
                        default_g=float(s["default_g"]),
                        min_g=float(s["min_g"]),
                        max_g=float(s["max_g"]),
                    )
                    for s in slots
                ],
            )
        )
    return templates


def load_advisor_config(diet_key: str, client: DatabaseAdapter | None = None) -> GeneratorConfigForAdvisor:
    """
    Load the advisor config for a diet.

    Raises:
        GeneratorConfigError: a generator table could not be read
    """
    if client is None:
        from mealcoach.db.client import get_service_client

        client = get_service_client()

    effective_key = (diet_key or "").strip() or DEFAULT_DIET_KEY
    config = GeneratorConfigForAdvisor(
        diet_key=effective_key,
        pool_items=_load_pool_counts(client, effective_key),
        settings=_load_settings(client, effective_key),
        templates=_load_templates(client),
    )
    logger.info(f"Advisor config for {effective_key}: pools={config.pool_items.model_dump()}")
    return config
