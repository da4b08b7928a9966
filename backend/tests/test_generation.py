import json
import random

import pytest

from recetai.models.schemas import GenerationRequest
from recetai.services.recipe.cache import create_cache_key
from recetai.services.recipe.errors import LLMCommunicationError, RecipeValidationError
from recetai.services.recipe.generation import RecipeService

from conftest import FakeCache, FakeVectorSearch, ScriptedLLM, fenced, recipe_payload, run_async


def _request(diet="omnivore", themes=("arroz",), **goals):
    return GenerationRequest.model_validate({
        "preferences": {"diet": diet, "ingredientThemes": list(themes)},
        "nutritionalGoals": goals,
    })


def _service(catalog, llm, cache=None, vector_hits=None, **kwargs):
    return RecipeService(
        catalog=catalog,
        vector_search=FakeVectorSearch(vector_hits if vector_hits is not None else {"arroz": ["p1"]}),
        llm=llm,
        cache=cache or FakeCache(),
        rng=random.Random(0),
        **kwargs,
    )


VALID = fenced(recipe_payload())
TOO_MANY_CALORIES = fenced(recipe_payload(nutritionalInfo={"calories": 900, "protein": 38, "carbs": 55, "fat": 12}))


class TestHappyPath:
    def test_valid_first_response(self, catalog):
        llm = ScriptedLLM(VALID)
        recipe = run_async(_service(catalog, llm).generate_recipe(_request()))
        assert recipe.name == "arroz con pollo"
        assert llm.calls == 1

    def test_prompt_contains_theme_candidates(self, catalog):
        llm = ScriptedLLM(VALID)
        run_async(_service(catalog, llm).generate_recipe(_request()))
        assert "- arroz integral (Hacendado)" in llm.prompts[0]


class TestCache:
    def test_second_identical_request_hits_cache(self, catalog):
        llm = ScriptedLLM(VALID)
        cache = FakeCache()
        service = _service(catalog, llm, cache)
        first = run_async(service.generate_recipe(_request()))
        second = run_async(service.generate_recipe(_request()))
        assert first == second
        assert llm.calls == 1
        assert cache.puts == 1

    def test_cache_read_failure_is_a_miss(self, catalog):
        llm = ScriptedLLM(VALID)
        recipe = run_async(_service(catalog, llm, FakeCache(fail_get=True)).generate_recipe(_request()))
        assert recipe.name == "arroz con pollo"

    def test_cache_write_failure_still_returns(self, catalog):
        llm = ScriptedLLM(VALID)
        cache = FakeCache(fail_put=True)
        recipe = run_async(_service(catalog, llm, cache).generate_recipe(_request()))
        assert recipe.name == "arroz con pollo"
        assert cache.puts == 1

    def test_failures_are_not_cached(self, catalog):
        cache = FakeCache()
        with pytest.raises(RecipeValidationError):
            run_async(_service(catalog, ScriptedLLM(TOO_MANY_CALORIES), cache).generate_recipe(_request(maxCalories=600)))
        assert cache.entries == {}


class TestRetries:
    def test_always_invalid_uses_exactly_six_calls(self, catalog):
        llm = ScriptedLLM(TOO_MANY_CALORIES)
        with pytest.raises(RecipeValidationError, match="after several attempts"):
            run_async(_service(catalog, llm).generate_recipe(_request(maxCalories=600)))
        assert llm.calls == 2 * (RecipeService.MAX_RETRIES + 1)
        assert llm.sessions == llm.calls

    def test_attempts_resolve_themes_and_corrections_reuse_them(self, catalog):
        llm = ScriptedLLM(TOO_MANY_CALORIES)
        vs = FakeVectorSearch({"arroz": ["p1"]})
        service = RecipeService(catalog=catalog, vector_search=vs, llm=llm, cache=FakeCache(), rng=random.Random(0))
        with pytest.raises(RecipeValidationError):
            run_async(service.generate_recipe(_request(maxCalories=600)))

        # 새 시도(F)마다 테마 재검색, 교정(C)은 기존 후보 재사용
        assert vs.queries == ["arroz"] * 3
        kinds = ["C" if p.startswith("Your previous response") else "F" for p in llm.prompts]
        assert kinds == ["F", "C"] * 3

    def test_max_retries_zero_uses_two_calls(self, catalog):
        llm = ScriptedLLM(TOO_MANY_CALORIES)
        with pytest.raises(RecipeValidationError):
            run_async(_service(catalog, llm, max_retries=0).generate_recipe(_request(maxCalories=600)))
        assert llm.calls == 2

    def test_correction_fixes_domain_error(self, catalog):
        llm = ScriptedLLM(TOO_MANY_CALORIES, VALID)
        recipe = run_async(_service(catalog, llm).generate_recipe(_request(maxCalories=600)))
        assert recipe.nutritionalInfo.calories == 520
        assert llm.calls == 2
        correction = llm.prompts[1]
        assert "The recipe exceeds the maximum of 600 calories. Total: 900.00" in correction
        assert "## ORIGINAL INSTRUCTIONS" in correction

    def test_correction_fixes_schema_error(self, catalog):
        bad = fenced(recipe_payload(ingredients=[{"name": "leche", "quantity": 200, "unit": "ml"}]))
        llm = ScriptedLLM(bad, VALID)
        recipe = run_async(_service(catalog, llm).generate_recipe(_request()))
        assert recipe.ingredients[0].unit == "g"
        assert "ingredients.0.unit" in llm.prompts[1]

    def test_unparseable_correction_falls_back_to_new_attempt(self, catalog):
        llm = ScriptedLLM(TOO_MANY_CALORIES, "sorry, no json", VALID)
        recipe = run_async(_service(catalog, llm).generate_recipe(_request(maxCalories=600)))
        assert recipe.name == "arroz con pollo"
        assert llm.calls == 3

    def test_missing_theme_is_corrected(self, catalog):
        no_rice = recipe_payload(ingredients=[{"name": "tomate", "quantity": 1, "unit": "unit"}])
        llm = ScriptedLLM(fenced(no_rice), VALID)
        run_async(_service(catalog, llm).generate_recipe(_request()))
        assert "does not include the required theme: arroz" in llm.prompts[1]


class TestDietOverlay:
    def test_overlay_applies_on_attempt(self, catalog):
        # low-fat → maxFat 15 though the user left it unset
        fatty = fenced(recipe_payload(nutritionalInfo={"calories": 500, "protein": 30, "carbs": 40, "fat": 25}))
        llm = ScriptedLLM(fatty, VALID)
        run_async(_service(catalog, llm).generate_recipe(_request(diet="low-fat")))
        assert "maximum of 15 g fat" in llm.prompts[1]

    def test_user_goal_overrides_overlay(self, catalog):
        fatty = fenced(recipe_payload(nutritionalInfo={"calories": 500, "protein": 30, "carbs": 40, "fat": 25}))
        llm = ScriptedLLM(fatty)
        recipe = run_async(_service(catalog, llm).generate_recipe(_request(diet="low-fat", maxFat=50)))
        assert recipe.nutritionalInfo.fat == 25
        assert llm.calls == 1

    def test_correction_uses_explicit_goals_only(self, catalog):
        fatty = fenced(recipe_payload(nutritionalInfo={"calories": 500, "protein": 30, "carbs": 40, "fat": 25}))
        llm = ScriptedLLM(fatty)
        recipe = run_async(_service(catalog, llm).generate_recipe(_request(diet="low-fat")))
        # rejected on attempt, accepted by the correction step
        assert recipe.nutritionalInfo.fat == 25
        assert llm.calls == 2


class TestCommunicationErrors:
    def test_unparseable_first_response_is_not_retried(self, catalog):
        llm = ScriptedLLM("not json at all")
        with pytest.raises(LLMCommunicationError) as exc:
            run_async(_service(catalog, llm).generate_recipe(_request()))
        assert exc.value.raw_response == "not json at all"
        assert llm.calls == 1

    def test_transport_error_wrapped(self, catalog):
        llm = ScriptedLLM(TimeoutError("read timeout"))
        with pytest.raises(LLMCommunicationError, match="Failed to generate the recipe: read timeout"):
            run_async(_service(catalog, llm).generate_recipe(_request()))
        assert llm.calls == 1

    def test_catalog_failure_wrapped(self, catalog):
        async def broken_sample(exclude_ids, limit):
            raise ConnectionError("mongo down")

        catalog.sample = broken_sample
        llm = ScriptedLLM(VALID)
        with pytest.raises(LLMCommunicationError, match="mongo down"):
            run_async(_service(catalog, llm).generate_recipe(_request()))
        assert llm.calls == 0

    def test_theme_search_failure_degrades_to_generic(self, catalog):
        llm = ScriptedLLM(VALID)
        service = _service(catalog, llm, vector_hits={"arroz": RuntimeError("index missing")})
        run_async(service.generate_recipe(_request()))
        assert "- arroz (generic)" in llm.prompts[0]


class TestCacheKey:
    def test_same_content_same_key(self):
        a = GenerationRequest.model_validate(
            {"preferences": {"diet": "vegan", "ingredientThemes": ["tofu"]}, "nutritionalGoals": {"maxFat": 20}}
        )
        b = GenerationRequest.model_validate(
            json.loads('{"nutritionalGoals": {"maxFat": 20}, "preferences": {"ingredientThemes": ["tofu"], "diet": "vegan"}}')
        )
        assert create_cache_key(a) == create_cache_key(b)

    def test_different_goals_different_key(self):
        assert create_cache_key(_request(maxCalories=600)) != create_cache_key(_request(maxCalories=700))

    def test_key_is_sha1_hex(self):
        key = create_cache_key(_request())
        assert len(key) == 40
        int(key, 16)
