# 환경변수 로딩 (.env)
from typing import List

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"  # 필요 시 prod/staging로 분리
    MONGO_DB: str = "recetai"

    # OpenAI (레시피 생성 + 상품 임베딩)
    OPENAI_API_KEY: str | None = None
    OPENAI_CHAT_MODEL: str = "gpt-4o-mini"
    OPENAI_EMBED_MODEL: str = "text-embedding-3-small"
    OPENAI_TEMPERATURE: float = 0.7
    OPENAI_TOP_P: float = 0.9
    OPENAI_MAX_TOKENS: int = 2048
    OPENAI_TIMEOUT_SECONDS: float = 60.0

    # 생성 파이프라인 한도
    RECIPE_MAX_RETRIES: int = 2
    PRODUCT_FETCH_LIMIT: int = 158       # 모델에게 보여줄 상품 최대 개수
    THEME_SEARCH_TOP_K: int = 50
    THEME_SAMPLE_SIZE: int = 10
    VECTOR_SCORE_THRESHOLD: float = 0.7  # 코사인 유사도 하한
    RECIPE_CACHE_TTL_SECONDS: int = 60 * 60 * 24

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    class Config:
        env_file = ".env"

settings = Settings()
