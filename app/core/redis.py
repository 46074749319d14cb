import json
from typing import Any, Optional

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

from app.core.config import settings

logger = structlog.get_logger(__name__)


class RedisClient:
    """JSON cache over Redis for slow-changing company policy.

    Every failure is logged and reported as a miss (``get``) or as
    ``False`` (``set``/``delete``), so callers fall back to the database.
    """

    def __init__(self, url: Optional[str] = None):
        self.url = url
        self._client: Optional[redis.Redis] = None

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def _connection(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.Redis.from_url(
                self.url, decode_responses=True, retry_on_timeout=True
            )
        return self._client

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await self._connection().get(key)
        except RedisError as e:
            logger.error("Policy cache read failed", key=key, exc_info=e)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Discarding unreadable cache entry", key=key)
            return None

    async def set(self, key: str, value: Any, expire: Optional[int] = None) -> bool:
        try:
            return bool(await self._connection().set(key, json.dumps(value), ex=expire))
        except RedisError as e:
            logger.error("Policy cache write failed", key=key, exc_info=e)
            return False

    async def delete(self, key: str) -> bool:
        try:
            return await self._connection().delete(key) > 0
        except RedisError as e:
            logger.error("Policy cache delete failed", key=key, exc_info=e)
            return False

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None


redis_client = RedisClient(settings.REDIS_URL)
