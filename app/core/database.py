from typing import AsyncIterator

import structlog
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from app.core.config import settings

logger = structlog.get_logger(__name__)


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """Async engine for the calendar database.

    SQLite (used by the test suite) gets no connection pool tuning; any
    server backend gets pre-ping and periodic recycling.
    """
    if make_url(url).get_backend_name() == "sqlite":
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
        kwargs.setdefault("pool_recycle", 300)
    return create_async_engine(url, echo=settings.DEBUG, **kwargs)


engine = build_engine(settings.DATABASE_URL)

AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

Base = declarative_base()


async def init_db():
    """Check the calendar database is reachable at startup."""
    url = make_url(settings.DATABASE_URL)
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info(
            "Calendar database reachable",
            backend=url.get_backend_name(),
            host=url.host,
            database=url.database,
        )
    except Exception as e:
        logger.error("Calendar database unreachable", host=url.host, exc_info=e)
        raise


async def get_db() -> AsyncIterator[AsyncSession]:
    """Read-only session per request; the engine never commits."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.error("Calendar session error", exc_info=e)
            raise
