# 목적: 상품 임베딩 생성/저장. 키 없거나 장애 시 None 반환해 파이프라인을 막지 않는다.
# 저장 위치: products 문서의 embedding 필드 (벡터 검색은 vector_search.py)

import logging
from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection

try:
    from openai import AsyncOpenAI
    _OPENAI_OK = True
except Exception:
    _OPENAI_OK = False

from recetai.core.config import settings

log = logging.getLogger(__name__)

_client = None

def _get_client():
    # 키가 나중에 주입될 수도 있어 최초 사용 시점에 생성
    global _client
    if _client is None and _OPENAI_OK and settings.OPENAI_API_KEY:
        _client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
    return _client

def product_search_text(doc: Dict) -> str:
    # 상품명 + 브랜드를 임베딩 입력으로
    name = doc.get("name") or ""
    brand = doc.get("brand") or ""
    return f"{name} {brand}".strip()

async def embed_text(text: str) -> Optional[List[float]]:
    client = _get_client()
    if not client:
        return None
    text = (text or "").strip()
    if not text:
        return None
    try:
        emb = await client.embeddings.create(model=settings.OPENAI_EMBED_MODEL, input=text)
        return emb.data[0].embedding
    except Exception:
        log.exception("embedding failed (text=%r)", text[:60])
        return None

async def upsert_vector_for_product(products: AsyncIOMotorCollection, doc: Dict) -> bool:
    # 상품 한 건에 embedding 필드를 추가/갱신. 저장했으면 True
    vec = await embed_text(product_search_text(doc))
    if vec is None:
        return False
    await products.update_one({"_id": doc["_id"]}, {"$set": {"embedding": vec}})
    return True
