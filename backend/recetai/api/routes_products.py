# recetai/api/routes_products.py
# 상품 카탈로그 조회 (필터/검색/페이지네이션)

from __future__ import annotations
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from recetai.core.deps import get_product_catalog
from recetai.services.catalog.products import MongoProductCatalog

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("")
async def list_products(
    category: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1),
    catalog: MongoProductCatalog = Depends(get_product_catalog),
):
    # limit 상한은 서비스에서 MAX_PAGE_SIZE 로 자른다
    return await catalog.list_products(category=category, search=search, page=page, limit=limit)


@router.get("/{product_id}")
async def get_product(product_id: str, catalog: MongoProductCatalog = Depends(get_product_catalog)):
    product = await catalog.get_product(product_id)
    if not product:
        raise HTTPException(404, "Product not found")
    return {"success": True, "data": product.model_dump()}
