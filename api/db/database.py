"""
Database engine and session plumbing.

The engine is built once at startup (see `main.lifespan`) and kept on
`app.state`; request handlers receive sessions through `get_session`.
Nothing here holds a module-level pool.
"""

from typing import Any, AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from api.config.settings import settings
from api.db.base_model import Base
from api.utils.logger import get_logger

logger = get_logger(__name__)


def create_engine(url: str, **kwargs: Any) -> AsyncEngine:
    """Build an async engine. Pool options only apply to server databases."""
    if not url.startswith("sqlite"):
        kwargs.setdefault("pool_pre_ping", True)
        kwargs.setdefault("pool_size", settings.DATABASE_POOL_SIZE)
    return create_async_engine(url, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_models(engine: AsyncEngine) -> None:
    """Create tables for every registered model (idempotent)."""
    # Imported for their side effect of registering tables on Base.metadata
    from api.apps.auth import models as _auth_models  # noqa: F401
    from api.apps.complaints import models as _complaint_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created or already exist")


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request, closed afterwards."""
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as session:
        yield session
