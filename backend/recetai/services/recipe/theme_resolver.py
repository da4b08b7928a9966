# recetai/services/recipe/theme_resolver.py
# 재료 테마("chicken" 등) → 벡터 검색 → 후보 상품 일부 무작위 샘플
# - 후보 이름은 검증 단계의 의미 매칭에 사용 (theme_matches, 소문자 키)
# - 검색 결과가 없거나 검색 중 예외 → 해당 테마만 "미발견"(generic) 처리, 전체는 계속

from __future__ import annotations
import logging
import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from recetai.models.schemas import CatalogProduct
from recetai.services.recipe.ports import CatalogReader, VectorSearch

log = logging.getLogger(__name__)

DEFAULT_TOP_K = 50
DEFAULT_SAMPLE_SIZE = 10


@dataclass
class ThemeResolution:
    products: Dict[str, CatalogProduct] = field(default_factory=dict)   # id → 상품 (중복 없음)
    themes_not_found: List[str] = field(default_factory=list)
    theme_matches: Dict[str, List[str]] = field(default_factory=dict)  # 소문자 테마 → 후보 상품명


def distinct_themes(themes: Sequence[str]) -> List[str]:
    # 대소문자 무시 중복 제거, 첫 등장 순서 유지
    seen, out = set(), []
    for t in themes or []:
        t = (t or "").strip()
        if t and t.lower() not in seen:
            seen.add(t.lower())
            out.append(t)
    return out


async def resolve_themes(
    themes: Sequence[str],
    catalog: CatalogReader,
    vector_search: VectorSearch,
    *,
    top_k: int = DEFAULT_TOP_K,
    sample_size: int = DEFAULT_SAMPLE_SIZE,
    rng: Optional[random.Random] = None,
) -> ThemeResolution:
    rng = rng or random.Random()
    res = ThemeResolution()

    # 테마끼리 독립이지만 순차 처리 (요청당 호출 수가 적다)
    for theme in distinct_themes(themes):
        try:
            hits = await vector_search.search(theme, top_k)
            if not hits:
                res.themes_not_found.append(theme)
                continue

            picked = rng.sample(list(hits), min(sample_size, len(hits)))
            products = await catalog.find_by_ids([h.id for h in picked])
            res.theme_matches[theme.lower()] = [p.name for p in products]
            for p in products:
                res.products[p.id] = p
        except Exception:
            log.exception("vector search failed for theme %r", theme)
            res.themes_not_found.append(theme)

    log.info(
        "themes resolved: matched=%s not_found=%s products=%d",
        list(res.theme_matches), res.themes_not_found, len(res.products),
    )
    return res
