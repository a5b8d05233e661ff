"""
api/app.py — FastAPI 앱 인스턴스 + 세션 미들웨어 + static 파일 서빙
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse

from config import SESSION_CLEANUP_INTERVAL, STATIC_DIR
from api.routes import router
import api.session as session
from exam_prep_cbt.services.backend_client import BackendClient

logger = logging.getLogger(__name__)

SESSION_COOKIE = "cbt_session"


async def _cleanup_loop(interval: float) -> None:
    # 화면 dispose 가 asyncio 태스크를 취소하므로 스레드가 아닌 이벤트 루프에서 정리
    while True:
        await asyncio.sleep(interval)
        removed = session.cleanup_expired()
        if removed:
            logger.info(f"만료 세션 {removed}개 정리")


def create_app(backend: Optional[BackendClient] = None) -> FastAPI:
    """
    Args:
        backend: 백엔드 클라이언트. None이면 config.BACKEND_URL 로 생성 (테스트에서 주입용).
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = backend or BackendClient()
        app.state.backend = client
        cleanup_task = asyncio.create_task(_cleanup_loop(SESSION_CLEANUP_INTERVAL))
        try:
            yield
        finally:
            cleanup_task.cancel()
            session.clear_all()
            await client.aclose()

    app = FastAPI(title="Exam Prep CBT", docs_url=None, redoc_url=None, lifespan=lifespan)

    # CORS (모바일 브라우저 등 다양한 출처 허용)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 세션 미들웨어: 쿠키에서 세션 ID를 읽고, 없으면 새로 발급
    @app.middleware("http")
    async def session_middleware(request: Request, call_next):
        sid = request.cookies.get(SESSION_COOKIE)
        if not sid or session.get_session(sid) is None:
            sid = session.create_session()

        request.state.session_id = sid
        response: Response = await call_next(request)
        response.set_cookie(
            key=SESSION_COOKIE,
            value=sid,
            httponly=True,
            samesite="lax",
            max_age=session.cookie_max_age(sid),
        )
        return response

    app.include_router(router)

    # static 파일 마운트
    if os.path.isdir(STATIC_DIR):
        app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

    # 루트 → index.html
    @app.get("/")
    async def serve_index():
        index_path = os.path.join(STATIC_DIR, "index.html")
        if os.path.exists(index_path):
            return FileResponse(index_path)
        return {"error": "index.html not found"}

    return app
