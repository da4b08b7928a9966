# recetai/scripts/index_product_vectors.py
# embedding 필드가 없는 상품에 임베딩을 채운다 (테마 벡터 검색용)
#   python -m recetai.scripts.index_product_vectors [--all] [--limit N]
import argparse
import asyncio
import logging

from recetai.core.config import settings
from recetai.core.logging import setup_logging
from recetai.db.init import close_db, init_db
from recetai.services.catalog.embeddings import upsert_vector_for_product
from recetai.services.catalog.products import PRODUCTS_COLLECTION

log = logging.getLogger("recetai.scripts.index_product_vectors")

async def index_products(db, reindex: bool = False, limit: int = 0) -> tuple[int, int]:
    # (처리 건수, 저장 건수)
    col = db[PRODUCTS_COLLECTION]
    q = {} if reindex else {"embedding": {"$exists": False}}
    cursor = col.find(q, {"name": 1, "brand": 1})
    if limit:
        cursor = cursor.limit(limit)

    seen = stored = 0
    async for doc in cursor:
        seen += 1
        if await upsert_vector_for_product(col, doc):
            stored += 1
        if seen % 100 == 0:
            log.info("indexed %d/%d", stored, seen)
    return seen, stored

async def main(argv=None):
    ap = argparse.ArgumentParser(description="Backfill product embeddings")
    ap.add_argument("--all", action="store_true", help="re-embed products that already have a vector")
    ap.add_argument("--limit", type=int, default=0)
    args = ap.parse_args(argv)

    setup_logging(settings.LOG_LEVEL)
    if not settings.OPENAI_API_KEY:
        log.error("OPENAI_API_KEY not set, nothing to do")
        return

    db = await init_db()
    try:
        seen, stored = await index_products(db, reindex=args.all, limit=args.limit)
    finally:
        await close_db()
    log.info("done: candidates=%d, embedded=%d", seen, stored)

if __name__ == "__main__":
    asyncio.run(main())
