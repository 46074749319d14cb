from datetime import date as date_type
from typing import List, Optional

import structlog

from app.core.config import settings
from app.core.redis import RedisClient
from app.schemas.calendar import (
    AppointmentSnapshot,
    BookingPolicySnapshot,
    BusinessHoursSnapshot,
    ProfessionalSnapshot,
    ScheduleBlockSnapshot,
    ServiceSnapshot,
)
from app.services.calendar_store import CalendarRepository

logger = structlog.get_logger(__name__)


class CachedCalendarRepository:
    """Serve business hours and booking policy rows from Redis.

    Only slow-changing company policy is cached; appointments, blocks,
    services and professionals always come from the wrapped repository.
    """

    def __init__(
        self,
        repository: CalendarRepository,
        cache: RedisClient,
        ttl_seconds: Optional[int] = None,
    ):
        self.repository = repository
        self.cache = cache
        self.ttl_seconds = ttl_seconds or settings.POLICY_CACHE_TTL_SECONDS

    @staticmethod
    def business_hours_key(company_id: str, weekday: int) -> str:
        return f"business_hours:{company_id}:{weekday}"

    @staticmethod
    def booking_policy_key(company_id: str) -> str:
        return f"booking_policy:{company_id}"

    async def get_business_hours(
        self, company_id: str, weekday: int
    ) -> Optional[BusinessHoursSnapshot]:
        key = self.business_hours_key(company_id, weekday)
        cached = await self.cache.get(key)
        if isinstance(cached, dict):
            logger.debug("Business hours served from cache", key=key)
            return BusinessHoursSnapshot.model_validate(cached)

        hours = await self.repository.get_business_hours(company_id, weekday)
        if hours is not None:
            await self.cache.set(key, hours.model_dump(mode="json"), expire=self.ttl_seconds)
        return hours

    async def get_booking_policy(
        self, company_id: str
    ) -> Optional[BookingPolicySnapshot]:
        key = self.booking_policy_key(company_id)
        cached = await self.cache.get(key)
        if isinstance(cached, dict):
            logger.debug("Booking policy served from cache", key=key)
            return BookingPolicySnapshot.model_validate(cached)

        policy = await self.repository.get_booking_policy(company_id)
        if policy is not None:
            await self.cache.set(key, policy.model_dump(mode="json"), expire=self.ttl_seconds)
        return policy

    async def invalidate_company(self, company_id: str) -> None:
        """Drop every cached policy row of a company after it is edited."""
        await self.cache.delete(self.booking_policy_key(company_id))
        for weekday in range(7):
            await self.cache.delete(self.business_hours_key(company_id, weekday))

    async def get_active_schedule_blocks(
        self,
        company_id: str,
        professional_id: str,
        start_date: date_type,
        end_date: date_type,
    ) -> List[ScheduleBlockSnapshot]:
        return await self.repository.get_active_schedule_blocks(
            company_id, professional_id, start_date, end_date
        )

    async def get_occupying_appointments(
        self,
        professional_id: str,
        day: date_type,
        exclude_id: Optional[str] = None,
    ) -> List[AppointmentSnapshot]:
        return await self.repository.get_occupying_appointments(
            professional_id, day, exclude_id
        )

    async def get_service(
        self, service_id: str, company_id: str
    ) -> Optional[ServiceSnapshot]:
        return await self.repository.get_service(service_id, company_id)

    async def get_professional(
        self, professional_id: str, company_id: str
    ) -> Optional[ProfessionalSnapshot]:
        return await self.repository.get_professional(professional_id, company_id)
