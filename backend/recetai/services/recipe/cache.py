# recetai/services/recipe/cache.py
# 요청 내용 기반(content-addressed) 레시피 캐시
# - 키: 요청 JSON 정규화(키 정렬, None 제거) → sha1
# - 만료: recipe_cache.createdAt TTL 인덱스(24h)가 담당 (db/indexes.py)
# - 한 번 쓰면 갱신하지 않음: $setOnInsert 업서트 → 먼저 쓴 쪽이 남는다
# - 읽을 수 없는 항목은 get 에서 삭제 (miss 처리)

from __future__ import annotations
import hashlib
import json
import logging
from datetime import datetime, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError

from recetai.models.schemas import GenerationRequest, RecipeSuggestion
from recetai.services.recipe.ports import CacheEntry

log = logging.getLogger(__name__)

CACHE_COLLECTION = "recipe_cache"


def create_cache_key(request: GenerationRequest) -> str:
    payload = request.model_dump(mode="json", exclude_none=True)
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha1(canonical.encode("utf-8")).hexdigest()


class MongoRecipeCache:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.col = db[CACHE_COLLECTION]

    async def get(self, key: str) -> Optional[CacheEntry]:
        doc = await self.col.find_one({"key": key}, {"_id": 0})
        if not doc:
            return None
        try:
            return CacheEntry.model_validate(doc)
        except ValidationError as e:
            # 스키마가 바뀐 옛 항목: 지워야 다음 put 이 새로 쓴다 ($setOnInsert)
            log.warning("dropping unreadable cache entry key=%s (%d validation errors)", key, e.error_count())
            await self.col.delete_one({"key": key})
            return None

    async def put(self, key: str, recipe: RecipeSuggestion) -> None:
        await self.col.update_one(
            {"key": key},
            {
                "$setOnInsert": {
                    "key": key,
                    "recipe": recipe.model_dump(mode="json"),
                    "createdAt": datetime.now(timezone.utc),
                }
            },
            upsert=True,
        )
