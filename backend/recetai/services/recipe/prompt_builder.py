# recetai/services/recipe/prompt_builder.py
# 레시피 생성 프롬프트 / 교정 프롬프트 생성 (순수 함수)
# - 값이 없는 항목은 "Not specified"/"Any"/"None" 같은 명시적 표기로 채운다
# - 교정 프롬프트: 위반 규칙 + 잘못된 응답 앞 1000자 + 원래 지시문 전체

from __future__ import annotations
from typing import List, Optional, Sequence

from pydantic import ValidationError

from recetai.models.schemas import (
    CatalogProduct,
    GenerationRequest,
    NutritionalGoals,
    Preferences,
)
from recetai.services.recipe.diet import DIET_DESCRIPTIONS
from recetai.services.recipe.errors import format_number

INVALID_SNIPPET_CHARS = 1000

STATIC_PROMPT_INSTRUCTIONS = """
### REQUIRED RESPONSE FORMAT (VALID JSON)
```json
{
  "name": "string",
  "description": "string",
  "preparationTime": number,
  "servings": number,
  "difficulty": "easy" | "medium" | "hard",
  "ingredients": [
    {
      "name": "string",
      "quantity": number,
      "unit": "string"
    }
  ],
  "steps": ["string"],
  "nutritionalInfo": {
    "calories": number,
    "protein": number,
    "carbs": number,
    "fat": number,
    "sugar": number,
    "saturatedFat": number,
    "sodium": number,
    "fiber": number
  },
  "dietaryTags": ["string"]
}
```

### STRICT RULES (MUST BE FOLLOWED)
1.  **VALID JSON**: The response MUST be a single JSON code block. Do not include any text before or after.
2.  **INGREDIENTS**:
    - You MUST base the recipe on ingredients from the "AVAILABLE INGREDIENT DATABASE".
    - You MUST satisfy all "MANDATORY INGREDIENT THEMES" by selecting at least one matching product from the list for each theme.
    - Generic ingredients must be added with a plain name and counted in the nutritional information with your best estimate.
    - All quantities and units are required.
3.  **NUTRITION**:
    - The generated nutritional information (calories, protein, etc.) MUST be a realistic calculation based on the provided ingredients and their quantities.
    - It MUST meet the defined NUTRITIONAL GOALS.
4.  **DIFFICULTY**: Must be "easy", "medium", or "hard".
5.  **LANGUAGE**: Everything in lowercase (except proper nouns if necessary).
6.  **UNITS**: All ingredient "unit" fields MUST be "g" (grams), "kg" (kilograms) or "unit" for countable items (eggs, fruits). Do NOT use "ml", "tbsp", "tsp", "cup" or any other measure.

### VALID EXAMPLE:
```json
{
  "name": "ensalada de quinoa con pechuga de pollo",
  "description": "ensalada fresca con quinoa y pechuga de pollo de la lista.",
  "preparationTime": 25,
  "servings": 2,
  "difficulty": "easy",
  "ingredients": [
    {"name": "quinoa (Hacendado)", "quantity": 100, "unit": "g"},
    {"name": "pechuga de pollo (Hacendado)", "quantity": 150, "unit": "g"},
    {"name": "tomate", "quantity": 1, "unit": "unit"},
    {"name": "aceite de oliva virgen extra (Hacendado)", "quantity": 10, "unit": "g"}
  ],
  "steps": ["cocer la quinoa", "picar las verduras", "cocinar el pollo a la plancha"],
  "nutritionalInfo": {
    "calories": 450,
    "protein": 30,
    "carbs": 40,
    "fat": 20,
    "fiber": 6
  },
  "dietaryTags": ["high protein", "gluten free"]
}
```

### FINAL INSTRUCTIONS
Generate the recipe. Remember: your response must be ONLY the JSON block, and it must follow ALL the rules, especially using ingredients from the lists and meeting the nutritional goals.
"""


def _num(v: Optional[float], unit: str = "") -> str:
    return "N/A" if v is None else f"{format_number(v)}{unit}"


def build_prompt(
    request: GenerationRequest,
    products: Sequence[CatalogProduct],
    themes: Sequence[str],
    themes_not_found: Sequence[str] = (),
) -> str:
    parts = [
        "## RECIPE GENERATION INSTRUCTIONS",
        "Your task is to generate a recipe in SPANISH that STRICTLY meets all the requirements.",
        build_dietary_preferences_section(request.preferences),
        build_nutritional_goals_section(request.nutritionalGoals),
        build_ingredient_themes_section(themes, themes_not_found),
        build_available_ingredients_section(products, themes),
        STATIC_PROMPT_INSTRUCTIONS.strip(),
    ]
    return "\n\n".join(p for p in parts if p)


def build_correction_prompt(
    error: BaseException,
    invalid_response: Optional[str] = None,
    original_prompt: Optional[str] = None,
) -> str:
    if isinstance(error, ValidationError):
        error_details = "; ".join(
            f"{'.'.join(str(p) for p in e['loc'])} : {e['msg']}" for e in error.errors()
        )
    else:
        error_details = str(error)

    snippet = (
        invalid_response.replace("\\n", "\n")[:INVALID_SNIPPET_CHARS]
        if invalid_response
        else "No response text captured."
    )

    return f"""
Your previous response failed a validation rule.
You MUST correct your response based on the error.

## THE ERROR YOU MADE
{error_details}

## YOUR INVALID RESPONSE (snippet)
```json
{snippet}...
```

## ORIGINAL INSTRUCTIONS (Follow ALL of them)
{original_prompt or ""}

Please review your calculations and ingredient list. You MUST provide ONLY the corrected, valid JSON block.
""".strip()


def build_dietary_preferences_section(preferences: Preferences) -> str:
    diet = preferences.diet
    excluded = ", ".join(preferences.excludedIngredients) or "None"
    cooking = f"{preferences.cookingTime} minutes" if preferences.cookingTime else "Not specified"
    difficulty = preferences.difficulty.value if preferences.difficulty else "Any"

    return "\n".join([
        "### DIETARY PREFERENCES",
        f"- **Diet type**: {diet.value} ({DIET_DESCRIPTIONS[diet]})",
        f"- **Ingredients to avoid**: {excluded}",
        f"- **Cooking time**: {cooking}",
        f"- **Difficulty**: {difficulty}",
    ])


# (필드, 표시 라벨, 단위)
_GOAL_LINES = [
    ("minCalories", "Minimum calories", ""),
    ("maxCalories", "Maximum calories", ""),
    ("minProtein", "Minimum protein", "g"),
    ("maxCarbs", "Maximum carbs", "g"),
    ("minCarbs", "Minimum carbs", "g"),
    ("maxFat", "Maximum fat", "g"),
]


def build_nutritional_goals_section(goals: NutritionalGoals) -> str:
    lines = [
        f"- {label}: {_num(getattr(goals, key), unit)}"
        for key, label, unit in _GOAL_LINES
        if getattr(goals, key) is not None
    ]
    content = "\n".join(lines) if lines else "No specific nutritional goals specified."
    return f"### NUTRITIONAL GOALS (Per serving)\n{content}"


def build_ingredient_themes_section(
    themes: Sequence[str],
    themes_not_found: Sequence[str] = (),
) -> str:
    if not themes:
        return ""

    not_found = {t.lower() for t in themes_not_found}
    found: List[str] = [t for t in themes if t.lower() not in not_found]
    generic: List[str] = [t for t in themes if t.lower() in not_found]

    out = ["### MANDATORY INGREDIENT THEMES"]
    if found:
        out.append(
            'The recipe MUST include at least one product from the "AVAILABLE" list '
            "that matches each of the following themes:"
        )
        out.extend(f"- {t}" for t in found)
    if generic:
        if found:
            out.append("")
        out.append("#### Generic Ingredients")
        out.append(
            "No products were found in the database for the following themes. "
            "Add each one as a plain-language ingredient and estimate its nutritional contribution:"
        )
        out.extend(f"- {t} (generic)" for t in generic)
    return "\n".join(out)


def build_available_ingredients_section(
    products: Sequence[CatalogProduct],
    themes: Sequence[str] = (),
) -> str:
    out = [
        "### AVAILABLE INGREDIENT DATABASE",
        "Here are the ingredients from the database you can use to build the recipe:",
        format_products(products),
    ]
    if not products and themes:
        out.append("")
        out.append("#### WARNING")
        out.append(
            "No products found in the database. Generate a generic recipe using "
            "common ingredients that match the mandatory themes."
        )
    return "\n".join(out)


def format_products(products: Sequence[CatalogProduct]) -> str:
    if not products:
        return "No specific products available. Use common ingredients."

    lines = []
    for p in products:
        n = p.nutritionalInfo
        brand = f" ({p.brand})" if p.brand else ""
        lines.append(
            f"- {p.name}{brand} | "
            f"Calories: {_num(n.calories)} | "
            f"Protein: {_num(n.protein, 'g')} | "
            f"Carbs: {_num(n.carbs, 'g')} | "
            f"Fat: {_num(n.fat, 'g')}"
        )
    return "\n".join(lines)
