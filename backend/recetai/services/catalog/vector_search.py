# recetai/services/catalog/vector_search.py
# 테마 문자열 → 임베딩 → products.embedding 과 코사인 유사도 비교 → 상위 k개
# - 유사도 하한(VECTOR_SCORE_THRESHOLD) 미만은 버린다
# - 임베딩을 못 만들면(키 없음 등) 빈 결과 = 테마 미발견 처리
# - 상품 벡터는 인스턴스당 한 번만 읽는다 (deps 에서 요청마다 생성 → 요청당 1회 스캔)
# - 전체 벡터를 메모리에 올리는 선형 스캔: 수천 개 규모까지. 그 이상은 Atlas Vector Search 등으로 교체

from __future__ import annotations
import logging
import math
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase

from recetai.core.config import settings
from recetai.models.schemas import VectorHit
from recetai.services.catalog.products import PRODUCTS_COLLECTION
from recetai.services.catalog.embeddings import embed_text

log = logging.getLogger(__name__)

Embedder = Callable[[str], Awaitable[Optional[List[float]]]]


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    dot = 0.0
    na = 0.0
    nb = 0.0
    for x, y in zip(a, b):
        dot += float(x) * float(y)
        na += float(x) * float(x)
        nb += float(y) * float(y)
    if na <= 0 or nb <= 0:
        return 0.0
    return dot / (math.sqrt(na) * math.sqrt(nb))


class MongoVectorSearch:
    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        embedder: Embedder = embed_text,
        score_threshold: Optional[float] = None,
    ):
        self.col = db[PRODUCTS_COLLECTION]
        self.embedder = embedder
        self.score_threshold = (
            settings.VECTOR_SCORE_THRESHOLD if score_threshold is None else score_threshold
        )
        self._vectors: Optional[List[Tuple[str, List[float]]]] = None

    async def _load_vectors(self) -> List[Tuple[str, List[float]]]:
        if self._vectors is None:
            cursor = self.col.find({"embedding": {"$exists": True}}, {"embedding": 1})
            self._vectors = [(str(doc["_id"]), doc.get("embedding") or []) async for doc in cursor]
        return self._vectors

    async def search(self, text: str, k: int) -> List[VectorHit]:
        vec = await self.embedder(text)
        if vec is None:
            log.warning("no embedding for %r, vector search skipped", text)
            return []

        hits: List[VectorHit] = []
        for product_id, embedding in await self._load_vectors():
            score = cosine_similarity(vec, embedding)
            if score >= self.score_threshold:
                hits.append(VectorHit(id=product_id, score=score))

        hits.sort(key=lambda h: h.score, reverse=True)
        return hits[:k]
