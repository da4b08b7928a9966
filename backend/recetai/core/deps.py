# 공용 의존성 (서비스 조립). 테스트에서는 app.dependency_overrides 로 교체한다.
from fastapi import Depends

from recetai.core.config import settings
from recetai.db.init import get_db
from recetai.services.catalog.products import MongoProductCatalog
from recetai.services.catalog.vector_search import MongoVectorSearch
from recetai.services.llm_openai import OpenAIChatClient
from recetai.services.recipe.cache import MongoRecipeCache
from recetai.services.recipe.generation import RecipeService

# LLM 클라이언트는 프로세스당 하나 (내부 HTTP 커넥션 재사용)
_llm: OpenAIChatClient | None = None

def get_llm_client() -> OpenAIChatClient:
    global _llm
    if _llm is None:
        _llm = OpenAIChatClient()
    return _llm

def get_product_catalog(db=Depends(get_db)) -> MongoProductCatalog:
    return MongoProductCatalog(db)

def get_recipe_service(
    db=Depends(get_db),
    llm: OpenAIChatClient = Depends(get_llm_client),
) -> RecipeService:
    # 요청마다 조립 (상태는 Mongo와 LLM 클라이언트에만 있음)
    return RecipeService(
        catalog=MongoProductCatalog(db),
        vector_search=MongoVectorSearch(db),
        llm=llm,
        cache=MongoRecipeCache(db),
        max_retries=settings.RECIPE_MAX_RETRIES,
        product_fetch_limit=settings.PRODUCT_FETCH_LIMIT,
        theme_top_k=settings.THEME_SEARCH_TOP_K,
        theme_sample_size=settings.THEME_SAMPLE_SIZE,
    )
