"""
MealCoach - CLI Entry Point.

Usage:
    mealcoach advise plan.json --config config.json   Tuning suggestions
    mealcoach advise plan.json --diet-key wahls_paleo  Config loaded from DB
    mealcoach sanity plan.json                         Sanity issues
    mealcoach shopping plan.json --pantry pantry.json  Shopping list + coverage
    mealcoach terms wahls_paleo                        Guardrails hard-block terms
    mealcoach sanitize pool.json --exclude kaas        Pool sanitation metrics
    mealcoach unit " MCG "                             Canonical unit
    mealcoach serve                                    Start the API server

Every command except unit/serve accepts --log to write a JSONL run log.
"""

import asyncio
import json
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.table import Table

from mealcoach.config import configure_logging
from mealcoach.errors import MealCoachError
from mealcoach.observability.run_logger import RunLogger

app = typer.Typer(
    name="mealcoach",
    help="MealCoach - meal plan guardrails, shopping lists and generator tuning.",
    add_completion=False,
)
console = Console()


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Cannot read {path}: {e}[/red]")
        raise typer.Exit(1)


def _load_plan(path: Path):
    from mealcoach.meal_plans.models import MealPlanResponse

    return MealPlanResponse.model_validate(_read_json(path))


def _fail(e: MealCoachError, run_log: RunLogger) -> NoReturn:
    run_log.log("error", code=e.code, error=str(e))
    run_log.close()
    console.print(f"[red]FAIL {e.code}: {e}[/red]")
    raise typer.Exit(1)


# =============================================================================
# Tuning / Sanity
# =============================================================================


@app.command()
def advise(
    plan_file: Path = typer.Argument(..., help="Generated plan JSON (with metadata.generator)"),
    config_file: Path | None = typer.Option(None, "--config", "-c", help="GeneratorConfigForAdvisor JSON"),
    diet_key: str | None = typer.Option(None, "--diet-key", "-d", help="Load generator config for this diet"),
    log_run: bool = typer.Option(False, "--log", help="Write a run log to run_logs/"),
) -> None:
    """Print tuning suggestions for a generated plan."""
    from mealcoach.meal_plans.generator_config import load_advisor_config
    from mealcoach.meal_plans.tuning_advisor import GeneratorConfigForAdvisor, get_tuning_suggestions

    configure_logging()
    if config_file is None and not diet_key:
        console.print("[red]Provide --config or --diet-key[/red]")
        raise typer.Exit(2)

    run_log = RunLogger("advise", enabled=log_run)
    plan = _load_plan(plan_file)

    try:
        if config_file is not None:
            config = GeneratorConfigForAdvisor.model_validate(_read_json(config_file))
        else:
            config = load_advisor_config(diet_key)
        suggestions = get_tuning_suggestions(plan, config)
    except MealCoachError as e:
        _fail(e, run_log)

    run_log.log("tuning_suggestions", diet_key=config.diet_key, suggestions=[s.to_dict() for s in suggestions])
    run_log.close()

    if not suggestions:
        console.print("[green]No tuning suggestions.[/green]")
        return

    for s in suggestions:
        color = "yellow" if s.severity == "warn" else "cyan"
        console.print(f"\n[{color}]{s.severity.upper()}[/{color}] [bold]{s.code}[/bold] {s.title}")
        for action in s.actions:
            console.print(f"  • [{action.kind}] {action.target}: {action.hint}")


@app.command()
def sanity(
    plan_file: Path = typer.Argument(..., help="Meal plan JSON"),
    log_run: bool = typer.Option(False, "--log", help="Write a run log to run_logs/"),
) -> None:
    """Print culinary sanity issues of a plan."""
    from mealcoach.meal_plans.sanity import validate_meal_plan_sanity

    configure_logging()
    result = validate_meal_plan_sanity(_load_plan(plan_file))

    with RunLogger("sanity", enabled=log_run) as run_log:
        run_log.log("sanity", ok=result.ok, issues=result.model_dump(by_alias=True)["issues"])

    if result.ok:
        console.print("[green]OK[/green] No sanity issues")
        return

    table = Table(title=f"Sanity issues ({len(result.issues)})")
    table.add_column("Code")
    table.add_column("Date")
    table.add_column("Meal")
    table.add_column("Message")
    for issue in result.issues:
        table.add_row(issue.code, issue.date or "", issue.meal_id or "", issue.message)
    console.print(table)


# =============================================================================
# Shopping
# =============================================================================


@app.command()
def shopping(
    plan_file: Path = typer.Argument(..., help="Meal plan JSON"),
    pantry_file: Path | None = typer.Option(None, "--pantry", "-p", help="Pantry snapshot JSON list"),
    user_id: str | None = typer.Option(None, "--user-id", "-u", help="Load pantry for this user (default: DEV_USER_ID)"),
    log_run: bool = typer.Option(False, "--log", help="Write a run log to run_logs/"),
) -> None:
    """Print the grouped shopping list and pantry coverage."""
    from mealcoach.config import settings
    from mealcoach.meal_plans.shopping import MAX_SAFE_INTEGER, MealPlannerShoppingService
    from mealcoach.meal_plans.shopping_models import PantryAvailability

    configure_logging()
    plan = _load_plan(plan_file)
    service = MealPlannerShoppingService()
    run_log = RunLogger("shopping", enabled=log_run)

    async def build():
        if pantry_file is not None:
            pantry = [PantryAvailability.model_validate(p) for p in _read_json(pantry_file)]
        else:
            pantry = await service.load_pantry(user_id or settings.dev_user_id, plan.nevo_codes())
        return await service.build_shopping_list(plan, pantry), await service.build_coverage(plan, pantry)

    run_log.step_start("build_shopping_list")
    shopping_list, coverage = asyncio.run(build())
    run_log.step_end("build_shopping_list", {
        "totals": shopping_list.totals,
        "coverage": coverage.totals,
        "missing_canonical": shopping_list.missing_canonical_ingredient_nevo_codes,
    })
    run_log.close()

    def grams(value: float) -> str:
        return "∞" if value >= MAX_SAFE_INTEGER else f"{value:g}"

    for group in shopping_list.groups:
        table = Table(title=group.category, title_justify="left")
        table.add_column("Ingredient")
        table.add_column("NEVO")
        table.add_column("Required g", justify="right")
        table.add_column("Available g", justify="right")
        table.add_column("Missing g", justify="right")
        for item in group.items:
            table.add_row(item.name, item.nevo_code, grams(item.required_g), grams(item.available_g), grams(item.missing_g))
        console.print(table)

    totals = shopping_list.totals
    console.print(
        f"\n[bold]{totals.items} items[/bold], required {totals.required_g:g} g, "
        f"missing {totals.missing_g:g} g, coverage {coverage.totals.coverage_pct}%"
    )
    if shopping_list.missing_canonical_ingredient_nevo_codes:
        codes = ", ".join(shopping_list.missing_canonical_ingredient_nevo_codes)
        console.print(f"[yellow]WARN[/yellow] No canonical ingredient for NEVO: {codes}")


# =============================================================================
# Guardrails / Pool
# =============================================================================


@app.command()
def terms(
    diet_key: str = typer.Argument(..., help="Diet key or diet id"),
    locale: str = typer.Option("nl", "--locale", help="nl or en"),
    log_run: bool = typer.Option(False, "--log", help="Write a run log to run_logs/"),
) -> None:
    """Print the guardrails hard-block terms for a diet."""
    from mealcoach.guardrails.exclude_terms import load_hard_block_terms_for_diet

    configure_logging()
    if locale not in ("nl", "en"):
        console.print(f"[red]Invalid locale: {locale}[/red]")
        raise typer.Exit(2)

    run_log = RunLogger("terms", enabled=log_run)
    try:
        block_terms = asyncio.run(load_hard_block_terms_for_diet(diet_key, locale))
    except MealCoachError as e:
        _fail(e, run_log)

    run_log.log("hard_block_terms", diet_key=diet_key, count=len(block_terms), terms=block_terms)
    run_log.close()

    console.print(f"\n[bold]{len(block_terms)} hard-block terms for {diet_key}[/bold]")
    for term in block_terms:
        console.print(f"  • {term}")


@app.command()
def sanitize(
    pool_file: Path = typer.Argument(..., help="Candidate pool JSON (category -> candidates)"),
    exclude: list[str] = typer.Option([], "--exclude", "-x", help="Exclude term (repeatable)"),
    diet_key: str | None = typer.Option(None, "--diet-key", "-d", help="Also apply guardrails terms for this diet"),
    log_run: bool = typer.Option(False, "--log", help="Write a run log to run_logs/"),
) -> None:
    """Sanitize a candidate pool and print the metrics."""
    from mealcoach.meal_plans.models import parse_candidate_pool
    from mealcoach.meal_plans.pool_sanitizer import prepare_candidate_pool

    configure_logging()
    pool = parse_candidate_pool(_read_json(pool_file))
    run_log = RunLogger("sanitize", enabled=log_run)

    try:
        result = asyncio.run(prepare_candidate_pool(
            pool,
            exclude,
            diet_key=diet_key,
            enforce_guardrails=bool(diet_key),
        ))
    except MealCoachError as e:
        _fail(e, run_log)

    metrics = result.metrics.to_dict()
    run_log.log("pool_metrics", exclude_terms=exclude, diet_key=diet_key, metrics=metrics)
    run_log.close()

    table = Table(title="Candidate pool")
    table.add_column("Category")
    table.add_column("Before", justify="right")
    table.add_column("After", justify="right")
    for category, before in metrics["before"].items():
        table.add_row(category, str(before), str(metrics["after"][category]))
    console.print(table)
    console.print(
        f"Removed: {metrics['removedDuplicates']} duplicates, "
        f"{metrics['removedByExcludeTerms']} by exclude terms"
        + (f" ({metrics['removedByGuardrailsTerms']} by guardrails)" if "removedByGuardrailsTerms" in metrics else "")
    )


@app.command()
def unit(value: str = typer.Argument(..., help="Unit text, e.g. 'µg' or 'grams'")) -> None:
    """Print the canonical form of a unit."""
    from mealcoach.tools.units import canonicalize_unit

    canonical = canonicalize_unit(value)
    console.print(canonical if canonical is not None else "[dim]<none>[/dim]")


# =============================================================================
# Server
# =============================================================================


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the API server."""
    import os

    import uvicorn

    actual_port = int(os.environ.get("PORT", port))
    console.print(f"\n[bold green]MealCoach API[/bold green] on http://localhost:{actual_port}\n")
    uvicorn.run("mealcoach.web.app:app", host="0.0.0.0", port=actual_port, reload=reload)


@app.command()
def version() -> None:
    """Show version information."""
    from mealcoach import __version__

    console.print(f"MealCoach version {__version__}")


if __name__ == "__main__":
    app()
