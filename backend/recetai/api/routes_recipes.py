# recetai/api/routes_recipes.py
# 요청(선호 + 영양 목표) → 레시피 생성 파이프라인 → 검증된 레시피 1개

from __future__ import annotations
import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from recetai.core.deps import get_recipe_service
from recetai.models.schemas import GenerationRequest
from recetai.services.recipe.errors import LLMNotReady, RecipeGenerationError
from recetai.services.recipe.generation import RecipeService

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/recipes", tags=["recipes"])


@router.post("/generate")
async def generate_recipe(
    body: Any = Body(None),
    service: RecipeService = Depends(get_recipe_service),
):
    # 본문 검증은 직접 (에러 응답 형태를 맞추기 위해)
    try:
        request = GenerationRequest.model_validate(body)
    except ValidationError as e:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "Invalid request body",
                "errors": [
                    {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                    for err in e.errors()
                ],
            },
        )

    try:
        recipe = await service.generate_recipe(request)
    except LLMNotReady as e:
        raise HTTPException(status_code=503, detail=str(e))
    except RecipeGenerationError as e:
        log.error("recipe generation failed: %s", e)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Failed to generate recipe", "error": str(e)},
        )

    return {"success": True, "data": recipe.model_dump(mode="json")}
