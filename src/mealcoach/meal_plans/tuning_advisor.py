"""
MealCoach - Generator Tuning Advisor.

Reads the telemetry a generated plan carries (forced repeats, sanity
issues) together with the generator configuration and returns concrete
tuning suggestions for the admin. Pure and deterministic: no DB access.

Rules, in emission order:
1. REPEATS_FORCED   - generator had to repeat proteins/templates
2. POOL_LOW         - protein/veg/fat pools too small for variety
3. SANITY_*         - tailored advice for known sanity issue codes
4. VEG_MONOTONY     - same vegetable in veg slots of 3+ meals

Output: warn before info (stable), at most 8 suggestions.
"""

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Literal

from pydantic import Field

from mealcoach.errors import TuningContractError
from mealcoach.meal_plans.models import CamelModel, MealPlanResponse

logger = logging.getLogger(__name__)

TUNING_ACTION_KINDS = ("setting", "pool", "slot")
TuningActionKind = Literal["setting", "pool", "slot"]
Severity = Literal["info", "warn"]

MAX_SUGGESTIONS = 8
VEG_MONOTONY_THRESHOLD = 3

# Settings caps below this get a "+1" hint when repeats were forced
REPEAT_CAP_HINT_BELOW = 5

MIN_POOL_SIZES = {"protein": 3, "veg": 3, "fat": 2}

# Template slot order: 0=protein, 1=veg1, 2=veg2, 3=fat, 4+=flavor
VEG_SLOT_POSITIONS = (1, 2)


# =============================================================================
# Models
# =============================================================================


@dataclass(frozen=True)
class TuningAction:
    kind: TuningActionKind
    target: str
    hint: str


@dataclass(frozen=True)
class TuningSuggestion:
    severity: Severity
    code: str
    title: str
    actions: list[TuningAction] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class PoolItemCounts(CamelModel):
    protein: int = 0
    veg: int = 0
    fat: int = 0
    flavor: int = 0


class GeneratorSettings(CamelModel):
    """Generator knobs; wire names stay snake_case like the settings table."""

    max_ingredients: int = Field(10, alias="max_ingredients")
    max_flavor_items: int = Field(2, alias="max_flavor_items")
    protein_repeat_cap_7d: int = Field(2, alias="protein_repeat_cap_7d")
    template_repeat_cap_7d: int = Field(3, alias="template_repeat_cap_7d")
    signature_retry_limit: int = Field(8, alias="signature_retry_limit")


class TemplateSlotConfig(CamelModel):
    slot_key: str = Field(alias="slot_key")
    default_g: float = Field(alias="default_g")
    min_g: float = Field(alias="min_g")
    max_g: float = Field(alias="max_g")


class TemplateConfig(CamelModel):
    template_key: str = Field(alias="template_key")
    slots: list[TemplateSlotConfig] = Field(default_factory=list)


class GeneratorConfigForAdvisor(CamelModel):
    """Minimal generator config the advisor needs (admin data + diet key)."""

    diet_key: str
    pool_items: PoolItemCounts = Field(default_factory=PoolItemCounts)
    settings: GeneratorSettings = Field(default_factory=GeneratorSettings)
    templates: list[TemplateConfig] | None = None


# =============================================================================
# Telemetry
# =============================================================================


def _generator_meta(preview: MealPlanResponse) -> tuple[dict[str, Any] | None, dict[str, Any] | None]:
    """(templateInfo.quality, sanity) from metadata.generator."""
    generator = (preview.metadata or {}).get("generator")
    if not isinstance(generator, dict):
        return None, None
    template_info = generator.get("templateInfo") or {}
    quality = template_info.get("quality") if isinstance(template_info, dict) else None
    sanity = generator.get("sanity")
    return quality or None, sanity if isinstance(sanity, dict) else None


def _as_number(value: Any) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0


# =============================================================================
# Rules
# =============================================================================


def _repeats_forced(quality: dict[str, Any] | None, config: GeneratorConfigForAdvisor) -> TuningSuggestion | None:
    if not quality:
        return None
    forced = [
        _as_number(quality.get("repeatsForced")),
        _as_number(quality.get("proteinRepeatsForced")),
        _as_number(quality.get("templateRepeatsForced")),
    ]
    if not any(count > 0 for count in forced):
        return None

    settings = config.settings
    actions = [
        TuningAction(
            kind="pool",
            target=f"Pools → diet_key={config.diet_key}",
            hint="Voeg meer items toe aan protein/veg/fat om herhaling te verminderen.",
        )
    ]
    if settings.protein_repeat_cap_7d < REPEAT_CAP_HINT_BELOW:
        actions.append(
            TuningAction(
                kind="setting",
                target="protein_repeat_cap_7d",
                hint=f"Overweeg +1 (nu {settings.protein_repeat_cap_7d}).",
            )
        )
    if settings.template_repeat_cap_7d < REPEAT_CAP_HINT_BELOW:
        actions.append(
            TuningAction(
                kind="setting",
                target="template_repeat_cap_7d",
                hint=f"Overweeg +1 (nu {settings.template_repeat_cap_7d}).",
            )
        )

    top_proteins = (quality.get("proteinCountsTop") or [])[:3]
    if top_proteins:
        listed = ", ".join(f"nevo {p.get('nevoCode')} ({p.get('count')}x)" for p in top_proteins)
        actions.append(TuningAction(kind="pool", target="protein", hint=f"Meest herhaald: {listed}."))

    top_templates = (quality.get("templateCounts") or [])[:2]
    if top_templates:
        listed = ", ".join(f"{t.get('id')} ({t.get('count')}x)" for t in top_templates)
        actions.append(TuningAction(kind="slot", target="templates", hint=f"Meest gebruikt: {listed}."))

    return TuningSuggestion(
        severity="warn",
        code="REPEATS_FORCED",
        title="Forced repeats in plan",
        actions=actions[:3],
    )


def _pool_low(config: GeneratorConfigForAdvisor) -> TuningSuggestion | None:
    low = [
        f"{pool} ({getattr(config.pool_items, pool)})"
        for pool, minimum in MIN_POOL_SIZES.items()
        if getattr(config.pool_items, pool) < minimum
    ]
    if not low:
        return None
    return TuningSuggestion(
        severity="warn",
        code="POOL_LOW",
        title="Pools te klein voor variatie",
        actions=[
            TuningAction(
                kind="pool",
                target=f"Pools → diet_key={config.diet_key}, category",
                hint=f"Voeg minimaal 5–10 items toe aan: {', '.join(low)}.",
            )
        ],
    )


def _sanity(sanity: dict[str, Any] | None, config: GeneratorConfigForAdvisor) -> list[TuningSuggestion]:
    issues = (sanity or {}).get("issues") or []
    codes = {issue.get("code") for issue in issues if isinstance(issue, dict)}
    out: list[TuningSuggestion] = []

    if "INGREDIENT_COUNT_OUT_OF_RANGE" in codes:
        actions = [
            TuningAction(
                kind="setting",
                target="max_ingredients",
                hint=(
                    f"Pas aan (nu {config.settings.max_ingredients}) "
                    "of controleer slot default_g/min_g/max_g."
                ),
            )
        ]
        if config.templates:
            actions.append(
                TuningAction(kind="slot", target="Templates → slots", hint="Verhoog veg2/fat default_g indien nodig.")
            )
        out.append(
            TuningSuggestion(
                severity="warn",
                code="SANITY_INGREDIENT_COUNT",
                title="Aantal ingrediënten buiten bereik",
                actions=actions,
            )
        )

    if "PLACEHOLDER_NAME" in codes:
        out.append(
            TuningSuggestion(
                severity="warn",
                code="SANITY_PLACEHOLDER",
                title="Placeholder meal names",
                actions=[
                    TuningAction(
                        kind="pool",
                        target=f"Pools → diet_key={config.diet_key}",
                        hint="Breid pools uit voor meer variatie.",
                    ),
                    TuningAction(kind="slot", target="templates", hint="Meer templates of sanity retry met andere seed."),
                ],
            )
        )

    if "EMPTY_DAY" in codes:
        out.append(
            TuningSuggestion(
                severity="warn",
                code="SANITY_EMPTY_DAY",
                title="Dag zonder maaltijden",
                actions=[
                    TuningAction(
                        kind="pool",
                        target=f"Pools → diet_key={config.diet_key}",
                        hint="Pools of caps te strikt; voeg items toe.",
                    ),
                    TuningAction(
                        kind="setting",
                        target="protein_repeat_cap_7d / template_repeat_cap_7d",
                        hint="Overweeg caps te verhogen.",
                    ),
                ],
            )
        )

    unhandled = codes - {"INGREDIENT_COUNT_OUT_OF_RANGE", "PLACEHOLDER_NAME", "EMPTY_DAY"}
    if unhandled:
        logger.debug(f"Sanity codes without tuning advice: {sorted(c for c in unhandled if c)}")
    return out


def _veg_monotony(preview: MealPlanResponse, config: GeneratorConfigForAdvisor) -> TuningSuggestion | None:
    counts: dict[str, int] = {}
    for meal in preview.iter_meals():
        refs = meal.ingredient_refs
        for position in VEG_SLOT_POSITIONS:
            if position < len(refs) and refs[position].nevo_code:
                code = refs[position].nevo_code
                counts[code] = counts.get(code, 0) + 1

    # One suggestion at most, whichever code repeats first
    if not any(count >= VEG_MONOTONY_THRESHOLD for count in counts.values()):
        return None
    return TuningSuggestion(
        severity="info",
        code="VEG_MONOTONY",
        title="Zelfde groente vaak herhaald",
        actions=[
            TuningAction(
                kind="pool",
                target=f"Pools → diet_key={config.diet_key}, category=veg",
                hint="Veg pool uitbreiden.",
            ),
            TuningAction(
                kind="setting",
                target="protein_repeat_cap_7d",
                hint="Eventueel aanpassen om herhaling te sturen.",
            ),
        ],
    )


def _check_action_kinds(suggestions: list[TuningSuggestion]) -> None:
    for suggestion in suggestions:
        for action in suggestion.actions:
            if action.kind not in TUNING_ACTION_KINDS:
                raise TuningContractError(
                    f"TuningAction.kind must be one of {', '.join(TUNING_ACTION_KINDS)}; "
                    f"got: {action.kind!r}"
                )


def sort_and_cap(suggestions: list[TuningSuggestion], limit: int = MAX_SUGGESTIONS) -> list[TuningSuggestion]:
    """Warn before info, original order kept within a severity."""
    return sorted(suggestions, key=lambda s: 0 if s.severity == "warn" else 1)[:limit]


def get_tuning_suggestions(
    preview: MealPlanResponse,
    config: GeneratorConfigForAdvisor,
    check_contract: bool | None = None,
) -> list[TuningSuggestion]:
    """
    Tuning suggestions for a generated plan.

    Args:
        preview: Generated plan including metadata.generator telemetry
        config: Generator configuration for the plan's diet
        check_contract: Validate action kinds; defaults to on outside production

    Raises:
        TuningContractError: an action kind is invalid (contract check only)
    """
    quality, sanity = _generator_meta(preview)

    out: list[TuningSuggestion] = []
    for suggestion in (_repeats_forced(quality, config), _pool_low(config)):
        if suggestion:
            out.append(suggestion)
    out.extend(_sanity(sanity, config))
    monotony = _veg_monotony(preview, config)
    if monotony:
        out.append(monotony)

    if check_contract is None:
        from mealcoach.config import settings

        check_contract = not settings.is_production
    if check_contract:
        _check_action_kinds(out)

    return sort_and_cap(out)
