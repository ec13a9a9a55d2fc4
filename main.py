from contextlib import asynccontextmanager
from pathlib import Path
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi_limiter import FastAPILimiter
import redis.asyncio as redis
from routers import app_router
from config import settings
from database import engine, Base
from errors import AppError, Unauthorized
from notifications import NotificationBuffer
from realtime import ClientRegistry
from security import SecurityMiddleware, global_rate_limit
import models  # ensure model registration
import os
import logging

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent


async def app_error_handler(request: Request, exc: AppError):
    logger.info(
        "%s %s: %s (%s) client=%s",
        request.method, request.url.path, exc.__class__.__name__, exc,
        getattr(request.state, "client_id", None) or request.cookies.get("client_id"),
    )
    # Pages send the browser to the login form; everything else gets the bare status
    if isinstance(exc, Unauthorized) and request.method == "GET":
        return RedirectResponse("/auth/login", status_code=303)
    return Response(status_code=exc.status_code, headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.info("%s %s: bad request parameters %s", request.method, request.url.path, exc.errors())
    return Response(status_code=400)


def create_app() -> FastAPI:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    registry = ClientRegistry()
    buffer = NotificationBuffer()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        redis_client = None
        if settings.RATE_LIMIT_ENABLED:
            redis_client = redis.from_url(settings.REDIS_URL, encoding="utf-8", decode_responses=True)
            await FastAPILimiter.init(redis_client)
        logger.info("app.start: %s (%s)", settings.PROJECT_NAME, settings.APP_ENV)
        try:
            yield
        finally:
            # Ends every open SSE stream so the server can finish its graceful shutdown
            registry.close()
            if redis_client is not None:
                await redis_client.aclose()
            logger.info("app.stop")

    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan, dependencies=[Depends(global_rate_limit)])
    app.state.registry = registry
    app.state.notifications = buffer

    app.add_middleware(SecurityMiddleware)
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    # IMPORTANT:
    # Avoid calling create_all() unconditionally in production; Alembic owns the
    # schema there. We only auto-create in test/dev scenarios (SQLite or env flag).
    if os.environ.get("TESTING") or engine.url.get_backend_name() == "sqlite" or os.environ.get("DEV_AUTO_CREATE") == "1":
        Base.metadata.create_all(bind=engine)

    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")
    app.include_router(app_router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        timeout_graceful_shutdown=settings.SHUTDOWN_GRACE_SECONDS,
    )
