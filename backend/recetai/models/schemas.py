# recetai/models/schemas.py
# 요청/응답 Pydantic 모델
# GenerationRequest: 레시피 생성 입력 (불변, 캐시 키 해시 대상)
# RecipeSuggestion: LLM 출력 스키마 (스키마 검증 통과해야 채택)
# 필드명은 프론트와 동일한 camelCase 그대로 사용

from __future__ import annotations
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

class Diet(str, Enum):
    VEGAN = "vegan"
    VEGETARIAN = "vegetarian"
    OMNIVORE = "omnivore"
    GLUTEN_FREE = "gluten-free"
    LACTOSE_FREE = "lactose-free"
    KETO = "keto"
    LOW_CARB = "low-carb"
    HIGH_PROTEIN = "high-protein"
    HIGH_FIBER = "high-fiber"
    LOW_FAT = "low-fat"
    PRE_WORKOUT = "pre-workout"

class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

# ------------------------------
# 입력
# ------------------------------

class Preferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    diet: Diet
    excludedIngredients: List[str] = Field(default_factory=list)
    ingredientThemes: List[str] = Field(default_factory=list)
    cookingTime: Optional[int] = Field(default=None, gt=0)   # 분 단위
    difficulty: Optional[Difficulty] = None

    @field_validator("excludedIngredients", "ingredientThemes", mode="before")
    @classmethod
    def _v_strip(cls, v):
        # 공백/빈 문자열 제거
        return [str(x).strip() for x in (v or []) if str(x).strip()]

class NutritionalGoals(BaseModel):
    model_config = ConfigDict(frozen=True)

    minCalories: Optional[float] = Field(default=None, ge=0)
    maxCalories: Optional[float] = Field(default=None, ge=0)
    minProtein: Optional[float] = Field(default=None, ge=0)
    maxCarbs: Optional[float] = Field(default=None, ge=0)
    minCarbs: Optional[float] = Field(default=None, ge=0)
    maxFat: Optional[float] = Field(default=None, ge=0)

    def has_goals(self) -> bool:
        return any(v is not None for v in self.model_dump().values())

class GenerationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    preferences: Preferences
    nutritionalGoals: NutritionalGoals = Field(default_factory=NutritionalGoals)

# ------------------------------
# LLM 출력
# ------------------------------

# 무게 단위 또는 셀 수 있는 단위만 허용 (ml/tbsp 등은 스키마 오류)
WEIGHT_UNITS = frozenset({"g", "kg"})
COUNT_UNITS = frozenset({"unit", "units", "piece", "pieces", "unidad", "unidades", "pieza", "piezas"})
ALLOWED_UNITS = WEIGHT_UNITS | COUNT_UNITS

class Ingredient(BaseModel):
    name: str = Field(min_length=1)
    quantity: float
    unit: str = Field(min_length=1)

    @field_validator("unit")
    @classmethod
    def _v_unit(cls, v: str) -> str:
        unit = v.strip().lower()
        if unit not in ALLOWED_UNITS:
            raise ValueError(f"Unit must be one of: {', '.join(sorted(ALLOWED_UNITS))}")
        return unit

class NutritionalInfo(BaseModel):
    calories: float = Field(ge=0)
    protein: float = Field(ge=0)
    carbs: float = Field(ge=0)
    fat: float = Field(ge=0)
    sugar: Optional[float] = Field(default=None, ge=0)
    saturatedFat: Optional[float] = Field(default=None, ge=0)
    sodium: Optional[float] = Field(default=None, ge=0)
    fiber: Optional[float] = Field(default=None, ge=0)

class RecipeSuggestion(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    preparationTime: int = Field(gt=0)
    servings: int = Field(gt=0)
    difficulty: Difficulty
    ingredients: List[Ingredient] = Field(min_length=1)
    steps: List[str] = Field(min_length=1)
    nutritionalInfo: NutritionalInfo
    dietaryTags: List[str]

    @field_validator("steps")
    @classmethod
    def _v_steps(cls, v: List[str]) -> List[str]:
        if any(not (s or "").strip() for s in v):
            raise ValueError("Steps cannot be empty strings")
        return v

# ------------------------------
# 카탈로그 / 벡터 검색
# ------------------------------

class ProductNutrition(BaseModel):
    # 미량 영양소 등 추가 필드는 그대로 보존
    model_config = ConfigDict(extra="allow")

    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None

class CatalogProduct(BaseModel):
    id: str
    name: str
    brand: Optional[str] = None
    category: Optional[str] = None
    nutritionalInfo: ProductNutrition = Field(default_factory=ProductNutrition)

class VectorHit(BaseModel):
    id: str
    score: float
