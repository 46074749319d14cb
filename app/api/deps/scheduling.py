from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.redis import redis_client
from app.services.calendar_store import CalendarRepository, SqlAlchemyCalendarRepository
from app.services.peer_scheduling import PeerSchedulingClient
from app.services.policy_cache import CachedCalendarRepository
from app.services.scheduling import SchedulingEngineService


async def get_calendar_repository(
    db: AsyncSession = Depends(get_db),
) -> CalendarRepository:
    """Repository for the request's session, policy rows cached when Redis is set."""
    repository = SqlAlchemyCalendarRepository(db)
    if redis_client.enabled:
        return CachedCalendarRepository(repository, redis_client)
    return repository


@lru_cache
def get_peer_client() -> PeerSchedulingClient:
    return PeerSchedulingClient()


async def get_scheduling_engine(
    repository: CalendarRepository = Depends(get_calendar_repository),
    peer_client: PeerSchedulingClient = Depends(get_peer_client),
) -> SchedulingEngineService:
    return SchedulingEngineService(repository, peer_client=peer_client)
