from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.database import init_db
from app.core.logging import configure_logging
from app.core.redis import redis_client

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await init_db()
    logger.info(
        "Scheduling engine starting",
        environment=settings.ENVIRONMENT,
        policy_cache=redis_client.enabled,
        peer_url=settings.PEER_SCHEDULING_URL,
    )
    yield
    await redis_client.close()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health():
    return {"status": "healthy", "version": settings.VERSION}
