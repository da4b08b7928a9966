# recetai/services/recipe/ports.py
# 생성 파이프라인이 의존하는 외부 협력자 계약
# 운영 구현: Mongo(카탈로그/캐시/벡터), OpenAI(채팅) / 테스트: tests/conftest.py 의 fake

from __future__ import annotations
from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from pydantic import BaseModel

from recetai.models.schemas import CatalogProduct, RecipeSuggestion, VectorHit


class CacheEntry(BaseModel):
    key: str
    recipe: RecipeSuggestion
    createdAt: Optional[datetime] = None


class CatalogReader(Protocol):
    async def find_by_ids(self, ids: Sequence[str]) -> List[CatalogProduct]: ...

    async def sample(self, exclude_ids: Sequence[str], limit: int) -> List[CatalogProduct]: ...


class VectorSearch(Protocol):
    async def search(self, text: str, k: int) -> List[VectorHit]: ...


class CacheStore(Protocol):
    async def get(self, key: str) -> Optional[CacheEntry]: ...

    async def put(self, key: str, recipe: RecipeSuggestion) -> None: ...


class LLMSession(Protocol):
    async def send(self, prompt: str) -> str: ...


class LLMClient(Protocol):
    def open(self) -> LLMSession: ...
