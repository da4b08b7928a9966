# recetai/services/recipe/validator.py
# 스키마를 통과한 레시피의 도메인 검증
# (1) 필수 테마 포함 여부: 후보 상품명과 재료명의 단어 겹침으로 의미 매칭
# (2) 영양 목표 범위: 설정된 목표만 비교
# 위반 시 RecipeValidationError (교정 프롬프트에 그대로 인용됨)

from __future__ import annotations
import logging
import re
from typing import List, Mapping, Optional, Sequence

from recetai.models.schemas import GenerationRequest, NutritionalGoals, NutritionalInfo, RecipeSuggestion
from recetai.services.recipe.errors import ErrorMessages, RecipeValidationError

log = logging.getLogger(__name__)

WORD_SPLIT_RE = re.compile(r"[\s()]+")
MIN_WORD_LEN = 3  # 2글자 이하(de, la, y ...)는 무시


def _words(name: str) -> List[str]:
    return [w for w in WORD_SPLIT_RE.split((name or "").lower()) if len(w) >= MIN_WORD_LEN]


def semantic_match(ingredient_names: Sequence[str], candidate_names: Sequence[str]) -> bool:
    """재료 중 하나라도 후보 상품명과 겹치면 True.

    후보명이 한 단어면 한 단어 겹침으로 충분, 두 단어 이상이면 최소 두 단어가 겹쳐야 한다.
    ("pollo" vs "pechuga de pollo" → 불일치)
    """
    candidates = [_words(c) for c in candidate_names]
    for ing in ingredient_names:
        ing_words = _words(ing)
        for cand_words in candidates:
            shared = [w for w in ing_words if w in cand_words]
            needed = 1 if len(cand_words) == 1 else 2
            if len(shared) >= needed:
                return True
    return False


def validate_recipe(
    recipe: RecipeSuggestion,
    request: GenerationRequest,
    theme_matches: Optional[Mapping[str, Sequence[str]]] = None,
) -> None:
    validate_ingredient_themes(recipe, request.preferences.ingredientThemes, theme_matches)

    goals = request.nutritionalGoals
    if goals.has_goals():
        validate_nutrition(recipe.nutritionalInfo, goals)


def validate_ingredient_themes(
    recipe: RecipeSuggestion,
    themes: Sequence[str],
    theme_matches: Optional[Mapping[str, Sequence[str]]] = None,
) -> None:
    if not themes:
        return

    ingredient_names = [i.name for i in recipe.ingredients]
    for theme in themes:
        key = theme.lower()
        candidates = (theme_matches or {}).get(key) or []

        if not candidates:
            # 카탈로그에 없는 테마: 엄격 검증 불가 → 통과
            log.warning("Cannot strictly validate theme %r (no products in DB). Accepting recipe.", key)
            continue

        if not semantic_match(ingredient_names, candidates):
            raise RecipeValidationError(ErrorMessages.missing_theme(theme))


def validate_nutrition(info: NutritionalInfo, goals: NutritionalGoals) -> None:
    if goals.minCalories is not None and info.calories < goals.minCalories:
        raise RecipeValidationError(ErrorMessages.value_below_min("calories", goals.minCalories, info.calories))
    if goals.maxCalories is not None and info.calories > goals.maxCalories:
        raise RecipeValidationError(ErrorMessages.value_above_max("calories", goals.maxCalories, info.calories))
    if goals.minProtein is not None and info.protein < goals.minProtein:
        raise RecipeValidationError(ErrorMessages.value_below_min("g protein", goals.minProtein, info.protein))
    if goals.maxCarbs is not None and info.carbs > goals.maxCarbs:
        raise RecipeValidationError(ErrorMessages.value_above_max("g carbs", goals.maxCarbs, info.carbs))
    if goals.minCarbs is not None and info.carbs < goals.minCarbs:
        raise RecipeValidationError(ErrorMessages.value_below_min("g carbs", goals.minCarbs, info.carbs))
    if goals.maxFat is not None and info.fat > goals.maxFat:
        raise RecipeValidationError(ErrorMessages.value_above_max("g fat", goals.maxFat, info.fat))
