# recetai/services/catalog/products.py
# products 컬렉션 읽기 전용 접근 (카탈로그 리더)
# - find_by_ids / sample: 생성 파이프라인용
# - list_products / get_product: 상품 조회 API용 (필터/검색/페이지네이션)

from __future__ import annotations
import logging
import math
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorDatabase

from recetai.models.schemas import CatalogProduct

log = logging.getLogger(__name__)

# 임베딩 벡터는 응답/프롬프트에 필요 없으므로 항상 제외
NO_EMBEDDING = {"embedding": 0}
MAX_PAGE_SIZE = 100
PRODUCTS_COLLECTION = "products"


def _oid(v: Any) -> Any:
    # 문자열 id는 가능하면 ObjectId로, 아니면 원본 그대로
    if isinstance(v, str):
        try:
            return ObjectId(v)
        except (InvalidId, TypeError):
            return v
    return v


def to_catalog_product(doc: Mapping[str, Any]) -> CatalogProduct:
    return CatalogProduct(
        id=str(doc.get("_id") or doc.get("id") or ""),
        name=doc.get("name") or "",
        brand=doc.get("brand") or None,
        category=doc.get("category") or None,
        nutritionalInfo=doc.get("nutritionalInfo") or {},
    )


class MongoProductCatalog:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.col = db[PRODUCTS_COLLECTION]

    async def find_by_ids(self, ids: Sequence[str]) -> List[CatalogProduct]:
        if not ids:
            return []
        q = {"_id": {"$in": [_oid(i) for i in ids]}}
        docs = await self.col.find(q, NO_EMBEDDING).to_list(length=len(ids))
        return [to_catalog_product(d) for d in docs]

    async def sample(self, exclude_ids: Sequence[str], limit: int) -> List[CatalogProduct]:
        # 순서 보장 없음. 이미 고른 상품만 제외
        if limit <= 0:
            return []
        q = {"_id": {"$nin": [_oid(i) for i in exclude_ids]}}
        docs = await self.col.find(q, NO_EMBEDDING).limit(limit).to_list(length=limit)
        return [to_catalog_product(d) for d in docs]

    async def list_products(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Dict[str, Any]:
        q: Dict[str, Any] = {}
        if category:
            q["category"] = {"$regex": re.escape(category), "$options": "i"}
        if search:
            rx = {"$regex": re.escape(search), "$options": "i"}
            q["$or"] = [{"name": rx}, {"brand": rx}, {"category": rx}]

        page = max(1, int(page))
        limit = max(1, min(int(limit), MAX_PAGE_SIZE))
        skip = (page - 1) * limit

        docs = await (
            self.col.find(q, NO_EMBEDDING).sort("name", 1).skip(skip).limit(limit).to_list(length=limit)
        )
        total = await self.col.count_documents(q)

        return {
            "success": True,
            "count": len(docs),
            "total": total,
            "page": page,
            "pages": math.ceil(total / limit),
            "data": [to_catalog_product(d).model_dump() for d in docs],
        }

    async def get_product(self, product_id: str) -> Optional[CatalogProduct]:
        doc = await self.col.find_one({"_id": _oid(product_id)}, NO_EMBEDDING)
        return to_catalog_product(doc) if doc else None
