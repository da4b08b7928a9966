# recetai/services/recipe/catalog_sampler.py
# 모델에게 보여줄 상품 목록 구성: 테마 후보 먼저 + 나머지는 임의 상품으로 채움
# 결과는 항상 limit 개 이하 (프롬프트 크기 상한)

from __future__ import annotations
from typing import List, Mapping

from recetai.models.schemas import CatalogProduct
from recetai.services.recipe.ports import CatalogReader

DEFAULT_PRODUCT_FETCH_LIMIT = 158


async def sample_catalog(
    found: Mapping[str, CatalogProduct],
    catalog: CatalogReader,
    limit: int = DEFAULT_PRODUCT_FETCH_LIMIT,
) -> List[CatalogProduct]:
    products = list(found.values())[:limit]

    remaining = limit - len(products)
    if remaining > 0:
        exclude_ids = [p.id for p in products]
        extra = await catalog.sample(exclude_ids, remaining)
        products.extend(extra[:remaining])

    return products
