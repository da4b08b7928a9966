# recetai/main.py
# FastAPI 앱 초기화 및 라우터 설정
# 라우터는 각 기능별로 분리하여 관리

from __future__ import annotations

import logging
from asyncio import sleep
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from recetai.api.routes_products import router as products_router  # 상품 카탈로그 조회
from recetai.api.routes_recipes import router as recipes_router    # 레시피 생성
from recetai.core.config import settings
from recetai.core.logging import setup_logging

# DB 초기화/인덱스
# init_db/close_db: 앱 시작/종료 시 커넥션 생성/정리
# get_db: 런타임에 DB 핸들 얻기
from recetai.db.init import get_db, init_db, close_db
from recetai.db.indexes import ensure_indexes

setup_logging(settings.LOG_LEVEL)
log = logging.getLogger(__name__)

DB_INIT_ATTEMPTS = 20
DB_INIT_DELAY_SECONDS = 1.0

app = FastAPI(title="RecetAI - Recipe Generation API", version="0.1.0")

# CORS: 프론트 출처 허용 + 쿠키 전달
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 앱 시작/종료 이벤트 핸들러
@app.on_event("startup")
async def on_startup() -> None:
    # 1) DB 먼저 붙는다 (최대 20회, 1초 간격)
    db = None
    for i in range(DB_INIT_ATTEMPTS):
        try:
            db = await init_db()
            log.info("db ready")
            break
        except Exception as e:
            log.warning("db init retry %d: %s", i + 1, e)
            await sleep(DB_INIT_DELAY_SECONDS)
    if db is None:
        log.error("db init failed after retries")
        return

    # 2) 인덱스 보장 (캐시 TTL 포함)
    try:
        await ensure_indexes()
        log.info("indexes ensured")
    except Exception:
        log.exception("ensure_indexes failed")

@app.on_event("shutdown")
async def on_shutdown() -> None:
    # 몽고db 커넥션 정리
    await close_db()

@app.get("/")
async def root():
    return {"status": "ok"}

@app.get("/health")
async def health():
    ok = {"status": "ok", "db": "skip"}
    try:
        db = get_db()
        await db.command("ping")
        ok["db"] = "ok"
    except Exception as e:
        ok["db"] = f"error: {e}"
    return ok

# 라우터 prefix는 각 파일 내에서 정의함 , 중복 prefix 금지
app.include_router(recipes_router)
app.include_router(products_router)
