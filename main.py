"""
FastAPI application entry point.

Registers routers, middleware, and exception handlers.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Depends
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError, HTTPException
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from datetime import datetime, timezone

from api.config.settings import settings
from api.utils.exceptions import BaseAPIException
from api.utils.exception_handlers import (
    base_api_exception_handler,
    request_validation_exception_handler,
    http_exception_handler,
    general_exception_handler,
    rate_limit_exception_handler,
)
from api.utils.logger import get_logger
from api.apps.auth.routers import router as auth_router
from api.apps.users.routers import router as users_router
from api.apps.complaints.routers import router as complaints_router
from api.apps.ai.routers import router as ai_router
from api.apps.analytics.routers import router as analytics_router
from api.core.cache import CacheManager
from api.core.dependencies import get_cache
from api.core.rate_limit import limiter
from api.db.database import create_engine, create_session_factory, get_session, init_models

logger = get_logger(__name__)


# ── Lifespan ──────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the engine once, hand sessions out via app.state, dispose on exit."""
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION} [{settings.ENVIRONMENT}]")

    engine = create_engine(settings.DATABASE_URL)
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    if settings.AUTO_CREATE_TABLES:
        await init_models(engine)

    yield

    await engine.dispose()
    if get_cache.cache_info().currsize:
        await get_cache().close()
    logger.info("Shutdown complete")


# ── App ───────────────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=f"Help desk for {settings.UNIVERSITY_NAME}: complaints, routing and AI-assisted resolution",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.state.limiter = limiter


# ── Middleware ────────────────────────────────────────────────────────────────

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Exception Handlers ────────────────────────────────────────────────────────

app.add_exception_handler(BaseAPIException, base_api_exception_handler)          # type: ignore[arg-type]
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)  # type: ignore[arg-type]
app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)        # type: ignore[arg-type]
app.add_exception_handler(HTTPException, http_exception_handler)                  # type: ignore[arg-type]
app.add_exception_handler(Exception, general_exception_handler)


# ── Routers ───────────────────────────────────────────────────────────────────

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(ai_router)
app.include_router(complaints_router)
app.include_router(analytics_router)

# ── Metrics Mount ─────────────────────────────────────────────────────────────
app.mount("/metrics", make_asgi_app())


# ── Health ────────────────────────────────────────────────────────────────────

@app.get("/health", tags=["Infra"])
async def health():
    """Liveness probe: must respond < 200ms."""
    return {"status": "ok", "version": settings.APP_VERSION}


@app.get("/ready", tags=["Infra"])
async def ready(
    session: AsyncSession = Depends(get_session),
    cache: CacheManager = Depends(get_cache),
):
    """
    Readiness probe: verifies the database and Redis are reachable.
    Returns 503 if any dependency is down.
    """
    checks = {}
    healthy = True

    try:
        await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.error(f"DB health check failed: {e}")
        checks["database"] = f"error: {str(e)[:80]}"
        healthy = False

    if await cache.ping():
        checks["redis"] = "ok"
    else:
        checks["redis"] = "error: unreachable"
        healthy = False

    payload = {
        "status": "ready" if healthy else "degraded",
        "checks": checks,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

    if not healthy:
        return JSONResponse(status_code=503, content=payload)

    return payload
