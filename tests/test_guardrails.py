"""Tests for guardrails ruleset loading and hard-block term extraction."""

import asyncio

import pytest

from mealcoach.errors import RulesetLoadError
from mealcoach.guardrails.exclude_terms import (
    extract_hard_block_terms,
    load_hard_block_terms_for_diet,
    resolve_diet_id,
)
from mealcoach.guardrails.ruleset_loader import (
    SupabaseGuardrailsRepo,
    get_fallback_ruleset,
    load_guardrails_ruleset,
)
from mealcoach.guardrails.types import GuardRule, RuleMatch, RuleMetadata
from mealcoach.result import Err, Ok

NOW = "2026-01-05T12:00:00+00:00"
DIET_ID = "0b6a3c1e-2f4d-4e8a-9c7b-1a2b3c4d5e6f"


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio needed)."""
    return asyncio.run(coro)


def _rule(
    rule_id: str,
    term: str,
    synonyms: list[str] | None = None,
    action: str = "block",
    strictness: str = "hard",
    target: str = "ingredient",
    mode: str | None = None,
) -> GuardRule:
    return GuardRule(
        id=rule_id,
        action=action,
        strictness=strictness,
        target=target,
        match=RuleMatch(term=term, synonyms=synonyms, preferred_match_mode=mode),
        metadata=RuleMetadata(rule_code="FORBIDDEN_INGREDIENT", label=term),
    )


class FakeRepo:
    """In-memory GuardrailsRepo."""

    def __init__(self, constraints=None, rules=None, heuristics=None):
        self.constraints = constraints if constraints is not None else Ok([])
        self.rules = rules if rules is not None else Ok([])
        self.heuristics = heuristics if heuristics is not None else Ok([])
        self.diet_ids = []

    async def load_constraints(self, diet_id):
        self.diet_ids.append(diet_id)
        return self.constraints

    async def load_recipe_adaptation_rules(self, diet_id):
        return self.rules

    async def load_heuristics(self, diet_id):
        return self.heuristics


def _constraint(cid="c1", category_type="forbidden", items=None, **extra):
    return {
        "id": cid,
        "rule_priority": 80,
        "updated_at": "2026-01-01T00:00:00Z",
        "category": {
            "id": "cat-1",
            "code": "dairy",
            "name_nl": "Zuivel",
            "category_type": category_type,
            "items": items if items is not None else [
                {"term": "Melk", "synonyms": ["Karnemelk", "Volle melk"], "is_active": True},
                {"term": "kaas", "synonyms": [], "is_active": True},
            ],
        },
        **extra,
    }


# =============================================================================
# Term extraction
# =============================================================================


class TestExtractHardBlockTerms:

    def test_soft_rule_excluded(self):
        rules = [
            _rule("r1", "pinda", ["peanut"]),
            _rule("r2", "suiker", ["sugar"], strictness="soft"),
        ]
        assert extract_hard_block_terms(rules) == ["pinda", "peanut"]

    def test_allow_and_non_ingredient_rules_excluded(self):
        rules = [
            _rule("r1", "olijfolie", action="allow"),
            _rule("r2", "frituren", target="step"),
            _rule("r3", "gluten"),
        ]
        assert extract_hard_block_terms(rules) == ["gluten"]

    def test_canonical_id_mode_skipped(self):
        rules = [
            _rule("r1", "1234", mode="canonical_id"),
            _rule("r2", "tarwe", mode="word_boundary"),
            _rule("r3", "rogge", mode="exact"),
            _rule("r4", "spelt", mode="substring"),
        ]
        assert extract_hard_block_terms(rules) == ["tarwe", "rogge", "spelt"]

    def test_trimmed_deduped_in_order(self):
        rules = [
            _rule("r1", " melk ", ["koemelk", "", "  "]),
            _rule("r2", "koemelk", ["melk", "room"]),
        ]
        assert extract_hard_block_terms(rules) == ["melk", "koemelk", "room"]


# =============================================================================
# Ruleset loader
# =============================================================================


class TestLoadGuardrailsRuleset:

    def test_constraint_items_become_rules(self):
        repo = FakeRepo(constraints=Ok([_constraint()]))

        ruleset = _run(load_guardrails_ruleset(DIET_ID, "meal_planner", repo=repo, now=NOW))

        assert [r.id for r in ruleset.rules] == [
            "db:diet_category_constraints:c1:0",
            "db:diet_category_constraints:c1:1",
        ]
        melk = ruleset.rules[0]
        assert melk.action == "block"
        assert melk.strictness == "hard"
        assert melk.priority == 80
        assert melk.match.term == "melk"
        assert melk.match.synonyms == ["karnemelk", "volle melk"]
        assert melk.metadata.rule_code == "FORBIDDEN_INGREDIENT"
        assert melk.metadata.label == "Zuivel (Strikt verboden)"
        # empty synonyms list -> None
        assert ruleset.rules[1].match.synonyms is None
        assert ruleset.provenance.source == "database"
        assert ruleset.provenance.sources[0].details["ruleCount"] == 2

    def test_soft_and_required_constraints(self):
        repo = FakeRepo(constraints=Ok([
            _constraint("c1", strictness="soft"),
            _constraint("c2", category_type="required", items=[{"term": "spinazie", "is_active": True}]),
        ]))

        ruleset = _run(load_guardrails_ruleset(DIET_ID, "meal_planner", repo=repo, now=NOW))
        by_id = {r.id: r for r in ruleset.rules}

        soft = by_id["db:diet_category_constraints:c1:0"]
        assert soft.metadata.rule_code == "SOFT_CONSTRAINT_VIOLATION"
        assert soft.metadata.label == "Zuivel (Niet gewenst)"
        required = by_id["db:diet_category_constraints:c2:0"]
        assert required.action == "allow"
        assert required.metadata.rule_code == "MISSING_REQUIRED_CATEGORY"
        assert required.metadata.label == "Zuivel (Toegestaan)"
        assert required.metadata.is_non_enforcing_allow is True

    def test_paused_and_inactive_skipped(self):
        repo = FakeRepo(constraints=Ok([
            _constraint("c1", is_paused=True),
            _constraint("c2", is_active=False),
            _constraint("c3", items=[
                {"term": "melk", "is_active": False},
                {"term": "boter", "is_active": True},
            ]),
        ]))

        ruleset = _run(load_guardrails_ruleset(DIET_ID, "meal_planner", repo=repo, now=NOW))

        assert [r.id for r in ruleset.rules] == ["db:diet_category_constraints:c3:1"]

    def test_recipe_adaptation_rules(self):
        repo = FakeRepo(rules=Ok([
            {
                "id": "r9",
                "term": "Pasta",
                "synonyms": ["Spaghetti"],
                "rule_code": "FORBIDDEN_INGREDIENT",
                "rule_label": "Glutenvrij",
                "substitution_suggestions": ["rijstnoedels", "courgetti"],
                "priority": 90,
                "is_active": True,
            },
            {"id": "r10", "term": "honing", "rule_code": "SOFT_CONSTRAINT_VIOLATION", "match_mode": "exact"},
            {"id": "r11", "term": "x", "rule_code": "NOT_A_CODE"},
            {"id": "r12", "term": "oud", "rule_code": "FORBIDDEN_INGREDIENT", "is_active": False},
        ]))

        ruleset = _run(load_guardrails_ruleset(DIET_ID, "recipe_adaptation", repo=repo, now=NOW))
        by_id = {r.id: r for r in ruleset.rules}

        pasta = by_id["db:recipe_adaptation_rules:r9"]
        assert pasta.strictness == "hard"
        assert pasta.match.preferred_match_mode == "word_boundary"
        assert pasta.match.synonyms == ["spaghetti"]
        assert pasta.remediation[0].prompt_text == "Replace 'pasta' with rijstnoedels or courgetti"
        honing = by_id["db:recipe_adaptation_rules:r10"]
        assert honing.strictness == "soft"
        assert honing.match.preferred_match_mode == "exact"
        assert by_id["db:recipe_adaptation_rules:r11"].metadata.rule_code == "UNKNOWN_ERROR"
        assert "db:recipe_adaptation_rules:r12" not in by_id

    def test_rules_sorted_by_id(self):
        repo = FakeRepo(
            constraints=Ok([_constraint("c1")]),
            rules=Ok([{"id": "a1", "term": "x", "rule_code": "FORBIDDEN_INGREDIENT"}]),
        )
        ruleset = _run(load_guardrails_ruleset(DIET_ID, "meal_planner", repo=repo, now=NOW))
        ids = [r.id for r in ruleset.rules]
        assert ids == sorted(ids)

    def test_heuristics(self):
        repo = FakeRepo(
            constraints=Ok([_constraint()]),
            heuristics=Ok([{"heuristic_type": "added_sugar", "terms": ["suiker", "stroop"]}]),
        )
        ruleset = _run(load_guardrails_ruleset(DIET_ID, "meal_planner", repo=repo, now=NOW))
        assert ruleset.heuristics == {"addedSugarTerms": ["suiker", "stroop"]}

    def test_no_rules_uses_fallback(self):
        ruleset = _run(load_guardrails_ruleset(DIET_ID, "meal_planner", repo=FakeRepo(), now=NOW))

        assert ruleset.provenance.source == "fallback"
        assert [r.id for r in ruleset.rules] == ["fallback:melk", "fallback:pasta"]
        assert ruleset.heuristics == {"addedSugarTerms": ["suiker", "siroop", "stroop"]}

    def test_partial_failure_recorded(self):
        repo = FakeRepo(
            constraints=Ok([_constraint()]),
            rules=Err(error="recipe_adaptation_rules: timeout", code="DB_ERROR"),
        )
        ruleset = _run(load_guardrails_ruleset(DIET_ID, "meal_planner", repo=repo, now=NOW))

        assert len(ruleset.rules) == 2
        assert ruleset.provenance.errors == ["recipe_adaptation_rules: timeout"]

    def test_all_rule_sources_failing_raises(self):
        repo = FakeRepo(
            constraints=Err(error="constraints: down"),
            rules=Err(error="rules: down"),
        )
        with pytest.raises(RulesetLoadError):
            _run(load_guardrails_ruleset(DIET_ID, "meal_planner", repo=repo, now=NOW))

    def test_unknown_database_values_load(self):
        repo = FakeRepo(
            constraints=Ok([_constraint(rule_action="warn", strictness="advisory")]),
            rules=Ok([
                {"id": "r1", "term": "gluten", "match_mode": "regex", "target": "step"},
            ]),
        )
        ruleset = _run(load_guardrails_ruleset(DIET_ID, "meal_planner", repo=repo, now=NOW))
        by_id = {r.id: r for r in ruleset.rules}

        melk = by_id["db:diet_category_constraints:c1:0"]
        assert melk.action == "warn"
        assert melk.strictness == "advisory"
        gluten = by_id["db:recipe_adaptation_rules:r1"]
        assert gluten.match.preferred_match_mode == "regex"
        assert gluten.target == "step"

    def test_malformed_rows_skipped(self):
        repo = FakeRepo(
            constraints=Ok([_constraint(items=[{"term": None}, {"term": "Kaas"}])]),
            rules=Ok([
                {"id": "r1", "term": None},
                {"id": "r2", "term": "pinda", "priority": "high"},
                {"term": "zonder-id"},
                {"id": "r3", "term": "Soja"},
            ]),
        )
        ruleset = _run(load_guardrails_ruleset(DIET_ID, "meal_planner", repo=repo, now=NOW))

        assert [r.id for r in ruleset.rules] == [
            "db:diet_category_constraints:c1:1",
            "db:recipe_adaptation_rules:r3",
        ]
        assert ruleset.provenance.source != "fallback"

    def test_content_hash_and_version_are_stable(self):
        def load():
            repo = FakeRepo(constraints=Ok([_constraint()]))
            return _run(load_guardrails_ruleset(DIET_ID, "meal_planner", repo=repo, now=NOW))

        first, second = load(), load()
        assert first.content_hash == second.content_hash
        assert len(first.content_hash) == 64
        assert first.version == second.version
        assert first.version > 0

    def test_fallback_hash_differs_per_diet(self):
        assert get_fallback_ruleset("a", NOW).content_hash != get_fallback_ruleset("b", NOW).content_hash


class TestSupabaseGuardrailsRepo:

    def test_reads_return_ok(self, table_client):
        client = table_client({"diet_category_constraints": [_constraint()]})
        repo = SupabaseGuardrailsRepo(client)

        result = _run(repo.load_constraints(DIET_ID))

        assert isinstance(result, Ok)
        assert result.data[0]["id"] == "c1"
        client.queries["diet_category_constraints"].eq.assert_called_with("diet_type_id", DIET_ID)

    def test_query_error_becomes_err(self, table_client):
        client = table_client({"recipe_adaptation_rules": RuntimeError("timeout")})
        result = _run(SupabaseGuardrailsRepo(client).load_recipe_adaptation_rules(DIET_ID))

        assert isinstance(result, Err)
        assert "timeout" in result.error


# =============================================================================
# load_hard_block_terms_for_diet
# =============================================================================


class TestLoadHardBlockTermsForDiet:

    def test_resolves_key_and_extracts_terms(self, table_client):
        client = table_client({"diet_types": [{"id": DIET_ID}]})
        repo = FakeRepo(constraints=Ok([_constraint()]))

        terms = _run(load_hard_block_terms_for_diet("wahls_paleo_plus", "nl", client=client, repo=repo))

        assert repo.diet_ids == [DIET_ID]
        assert terms == ["melk", "karnemelk", "volle melk", "kaas"]

    def test_uuid_used_directly(self, mock_supabase):
        assert resolve_diet_id(DIET_ID, mock_supabase) == DIET_ID
        mock_supabase.table.assert_not_called()

    def test_unknown_key_used_as_is(self, mock_supabase):
        assert resolve_diet_id("unknown_diet", mock_supabase) == "unknown_diet"

    def test_diet_lookup_failure_raises(self, table_client):
        client = table_client({"diet_types": RuntimeError("connection refused")})
        with pytest.raises(RulesetLoadError):
            _run(load_hard_block_terms_for_diet("keto", client=client, repo=FakeRepo()))

    def test_ruleset_failure_propagates(self, mock_supabase):
        repo = FakeRepo(constraints=Err(error="down"), rules=Err(error="down"))
        with pytest.raises(RulesetLoadError):
            _run(load_hard_block_terms_for_diet(DIET_ID, client=mock_supabase, repo=repo))

    def test_fallback_terms(self, mock_supabase):
        terms = _run(load_hard_block_terms_for_diet(DIET_ID, client=mock_supabase, repo=FakeRepo()))
        assert terms == ["melk", "koemelk", "volle melk", "pasta", "spaghetti", "penne", "fusilli", "macaroni", "orzo"]

    def test_non_text_match_modes_ignored(self, mock_supabase):
        repo = FakeRepo(rules=Ok([
            {"id": "r1", "term": "Pinda", "synonyms": ["Peanut"], "match_mode": "exact"},
            {"id": "r2", "term": "gluten", "match_mode": "regex"},
        ]))
        terms = _run(load_hard_block_terms_for_diet(DIET_ID, client=mock_supabase, repo=repo))
        assert terms == ["pinda", "peanut"]

    def test_unknown_constraint_action_contributes_no_terms(self, mock_supabase):
        repo = FakeRepo(
            constraints=Ok([_constraint(rule_action="warn")]),
            rules=Ok([{"id": "r1", "term": "pinda"}]),
        )
        terms = _run(load_hard_block_terms_for_diet(DIET_ID, client=mock_supabase, repo=repo))
        assert terms == ["pinda"]
