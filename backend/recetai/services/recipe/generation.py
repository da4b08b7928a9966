# recetai/services/recipe/generation.py
# 레시피 생성 오케스트레이터
#
#   CacheCheck ─hit─▶ 반환
#       │miss
#       ▼
#   Attempt(n) ─ n > MAX_RETRIES ─▶ RecipeValidationError (시도 초과)
#       │ 테마 해석 + 카탈로그 샘플 → 프롬프트 → LLM → 파싱 → 스키마 → 식단 목표 병합 → 도메인 검증
#       ├─ 성공 ─▶ CacheWrite ─▶ 반환
#       ├─ 스키마/도메인 오류 ─▶ Correct(n+1)
#       └─ 그 외 오류 ─▶ LLMCommunicationError 즉시 전파 (재시도 없음)
#   Correct(m): 교정 프롬프트 1회 (테마 데이터 재사용) ─ 성공 ▶ CacheWrite / 실패 ▶ Attempt(m)
#
# LLM 호출은 최대 2 * (MAX_RETRIES + 1) 회

from __future__ import annotations
import logging
import random
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import ValidationError

from recetai.models.schemas import GenerationRequest, RecipeSuggestion
from recetai.services.llm_openai import send_and_extract_json, start_session
from recetai.services.recipe.cache import create_cache_key
from recetai.services.recipe.catalog_sampler import DEFAULT_PRODUCT_FETCH_LIMIT, sample_catalog
from recetai.services.recipe.diet import apply_diet_goals
from recetai.services.recipe.errors import ErrorMessages, LLMCommunicationError, RecipeValidationError
from recetai.services.recipe.ports import CacheStore, CatalogReader, LLMClient, VectorSearch
from recetai.services.recipe.prompt_builder import build_correction_prompt, build_prompt
from recetai.services.recipe.theme_resolver import (
    DEFAULT_SAMPLE_SIZE,
    DEFAULT_TOP_K,
    ThemeResolution,
    resolve_themes,
)
from recetai.services.recipe.validator import validate_recipe

# 교정 프롬프트로 되돌릴 수 있는 오류
CORRECTABLE_ERRORS = (ValidationError, RecipeValidationError)


@dataclass
class _AttemptOutcome:
    resolution: ThemeResolution
    prompt: str
    raw_text: Optional[str]
    recipe: Optional[RecipeSuggestion] = None
    error: Optional[BaseException] = None


class RecipeService:
    MAX_RETRIES = 2
    PRODUCT_FETCH_LIMIT = DEFAULT_PRODUCT_FETCH_LIMIT

    def __init__(
        self,
        catalog: CatalogReader,
        vector_search: VectorSearch,
        llm: LLMClient,
        cache: CacheStore,
        *,
        max_retries: Optional[int] = None,
        product_fetch_limit: Optional[int] = None,
        theme_top_k: int = DEFAULT_TOP_K,
        theme_sample_size: int = DEFAULT_SAMPLE_SIZE,
        rng: Optional[random.Random] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.catalog = catalog
        self.vector_search = vector_search
        self.llm = llm
        self.cache = cache
        self.max_retries = self.MAX_RETRIES if max_retries is None else max_retries
        self.product_fetch_limit = product_fetch_limit or self.PRODUCT_FETCH_LIMIT
        self.theme_top_k = theme_top_k
        self.theme_sample_size = theme_sample_size
        self.rng = rng or random.Random()
        self.log = logger or logging.getLogger(__name__)

    async def generate_recipe(self, request: GenerationRequest) -> RecipeSuggestion:
        """요청 → 검증된 레시피. 캐시 우선, 캐시 장애는 생성 흐름을 막지 않는다.

        Raises:
            RecipeValidationError: 재시도를 모두 써도 유효한 레시피를 못 얻음
            LLMCommunicationError: LLM 통신/파싱 실패 또는 예상 못 한 오류
        """
        key = create_cache_key(request)

        cached = await self._read_cache(key)
        if cached is not None:
            self.log.info("recipe cache hit key=%s", key)
            return cached

        recipe = await self._generate_with_retries(request)
        await self._write_cache(key, recipe)
        return recipe

    # ------------------------------
    # 캐시 (best-effort)
    # ------------------------------

    async def _read_cache(self, key: str) -> Optional[RecipeSuggestion]:
        try:
            entry = await self.cache.get(key)
        except Exception:
            self.log.exception("Error reading recipe cache key=%s", key)
            return None
        return entry.recipe if entry else None

    async def _write_cache(self, key: str, recipe: RecipeSuggestion) -> None:
        try:
            await self.cache.put(key, recipe)
        except Exception:
            self.log.exception("Error writing recipe cache key=%s", key)

    # ------------------------------
    # 생성 상태 기계
    # ------------------------------

    async def _generate_with_retries(self, request: GenerationRequest) -> RecipeSuggestion:
        attempt = 0
        while True:
            if attempt > self.max_retries:
                raise RecipeValidationError(ErrorMessages.generation_failed_after_several_attempts())

            # Attempt(n)
            outcome = await self._attempt(request, attempt)
            if outcome.recipe is not None:
                return outcome.recipe

            # Correct(n+1): 실패하면 카운터가 오른 상태로 다시 Attempt
            attempt += 1
            correction_prompt = build_correction_prompt(outcome.error, outcome.raw_text, outcome.prompt)
            try:
                return await self._correct(request, correction_prompt, outcome.resolution)
            except Exception as e:
                self.log.warning("correction %d failed: %s", attempt, _short(e))

    async def _attempt(self, request: GenerationRequest, attempt: int) -> "_AttemptOutcome":
        """전체 1회 시도. 스키마/도메인 오류는 outcome.error 로 돌려주고, 그 외는 LLMCommunicationError."""
        self.log.info("recipe generation attempt %d", attempt)
        raw_text: Optional[str] = None
        try:
            themes = request.preferences.ingredientThemes
            resolution = await resolve_themes(
                themes,
                self.catalog,
                self.vector_search,
                top_k=self.theme_top_k,
                sample_size=self.theme_sample_size,
                rng=self.rng,
            )
            products = await sample_catalog(resolution.products, self.catalog, self.product_fetch_limit)
            prompt = build_prompt(request, products, themes, resolution.themes_not_found)

            session = start_session(self.llm)
            raw_text, payload = await send_and_extract_json(session, prompt)
        except LLMCommunicationError:
            raise
        except Exception as e:
            raise LLMCommunicationError(ErrorMessages.generation_failed(e), raw_text) from e

        outcome = _AttemptOutcome(resolution=resolution, prompt=prompt, raw_text=raw_text)
        try:
            recipe = RecipeSuggestion.model_validate(payload)

            # 식단 암묵 목표를 사용자 목표에 병합 (사용자 값 우선)
            goals = apply_diet_goals(request.nutritionalGoals, request.preferences.diet)
            effective = request.model_copy(update={"nutritionalGoals": goals})
            validate_recipe(recipe, effective, resolution.theme_matches)
            outcome.recipe = recipe
        except CORRECTABLE_ERRORS as e:
            self.log.info("attempt %d rejected: %s", attempt, _short(e))
            outcome.error = e
        except Exception as e:
            raise LLMCommunicationError(ErrorMessages.generation_failed(e), raw_text) from e
        return outcome

    async def _correct(
        self,
        request: GenerationRequest,
        correction_prompt: str,
        resolution: ThemeResolution,
    ) -> RecipeSuggestion:
        # 테마 재해석 없이 같은 후보로 검증, 식단 목표는 다시 병합하지 않는다
        session = start_session(self.llm)
        _, payload = await send_and_extract_json(session, correction_prompt)
        recipe = RecipeSuggestion.model_validate(payload)
        validate_recipe(recipe, request, resolution.theme_matches)
        return recipe


def _short(e: Any, limit: int = 200) -> str:
    s = str(e).replace("\n", " ")
    return s if len(s) <= limit else s[:limit] + "…"
