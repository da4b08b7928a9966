# recetai/db/indexes.py
# 컬렉션 인덱스 생성
# 앱 스타트업에서 한 번 ensure_indexes()를 await로 호출한다.

from recetai.core.config import settings
from recetai.db.init import get_db
from recetai.services.catalog.products import PRODUCTS_COLLECTION
from recetai.services.recipe.cache import CACHE_COLLECTION

# 상품 카탈로그: 이름/카테고리 검색 + (name, brand) 중복 방지
async def ensure_product_indexes(db):
    col = db[PRODUCTS_COLLECTION]
    await col.create_index("name")
    await col.create_index("category")
    await col.create_index([("name", 1), ("brand", 1)], unique=True)

# 레시피 캐시: key 유일 + createdAt TTL (만료는 Mongo가 지움)
async def ensure_cache_indexes(db):
    col = db[CACHE_COLLECTION]
    await col.create_index("key", unique=True)
    await col.create_index("createdAt", expireAfterSeconds=settings.RECIPE_CACHE_TTL_SECONDS)

async def ensure_indexes():
    db = get_db()
    await ensure_product_indexes(db)
    await ensure_cache_indexes(db)
