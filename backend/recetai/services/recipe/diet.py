# recetai/services/recipe/diet.py
# 식단별 정적 테이블 (프롬프트 설명 / 암묵적 영양 목표)
# - Diet enum 전 멤버가 두 테이블에 모두 있어야 함 (import 시 점검)
# - 목표 병합은 사용자가 비워둔 키만 채운다 (사용자 값 우선)

from __future__ import annotations
from types import MappingProxyType
from typing import Mapping

from recetai.models.schemas import Diet, NutritionalGoals

DIET_DESCRIPTIONS: Mapping[Diet, str] = MappingProxyType({
    Diet.VEGAN: "Must be 100% plant-based, no animal products including honey, dairy, or eggs.",
    Diet.VEGETARIAN: "May include dairy and eggs but no meat, poultry, or fish.",
    Diet.OMNIVORE: "May include all food groups including meat, dairy, and plant-based ingredients.",
    Diet.GLUTEN_FREE: "Must not contain wheat, barley, rye, or any gluten sources.",
    Diet.LACTOSE_FREE: "Must not contain lactose or dairy products.",
    Diet.KETO: "Must be very low in carbs (under 10g net carbs per serving).",
    Diet.LOW_CARB: "Must contain less than 25g of net carbs per serving.",
    Diet.HIGH_PROTEIN: "Must contain at least 30g of protein per serving.",
    Diet.HIGH_FIBER: "Must contain at least 15g of fiber per serving.",
    Diet.LOW_FAT: "Must contain no more than 15g of fat per serving.",
    Diet.PRE_WORKOUT: "Must provide at least 40g of carbs and no more than 15g of fat per serving.",
})

# 식단이 암묵적으로 요구하는 영양 목표
DIET_GOAL_OVERLAY: Mapping[Diet, Mapping[str, float]] = MappingProxyType({
    Diet.VEGAN: MappingProxyType({}),
    Diet.VEGETARIAN: MappingProxyType({}),
    Diet.OMNIVORE: MappingProxyType({}),
    Diet.GLUTEN_FREE: MappingProxyType({}),
    Diet.LACTOSE_FREE: MappingProxyType({}),
    Diet.KETO: MappingProxyType({"maxCarbs": 10, "maxFat": 60}),
    Diet.LOW_CARB: MappingProxyType({"maxCarbs": 25}),
    Diet.HIGH_PROTEIN: MappingProxyType({"minProtein": 30}),
    Diet.HIGH_FIBER: MappingProxyType({}),
    Diet.LOW_FAT: MappingProxyType({"maxFat": 15}),
    Diet.PRE_WORKOUT: MappingProxyType({"minCarbs": 40, "maxFat": 15}),
})

for _table in (DIET_DESCRIPTIONS, DIET_GOAL_OVERLAY):
    _missing = set(Diet) - set(_table)
    if _missing:
        raise RuntimeError(f"diet table incomplete: {sorted(d.value for d in _missing)}")


def apply_diet_goals(goals: NutritionalGoals, diet: Diet) -> NutritionalGoals:
    """식단 오버레이를 사용자 목표에 병합. 사용자가 지정한 값은 절대 덮어쓰지 않는다."""
    overlay = DIET_GOAL_OVERLAY[Diet(diet)]
    fill = {k: v for k, v in overlay.items() if getattr(goals, k) is None}
    if not fill:
        return goals
    return goals.model_copy(update=fill)
