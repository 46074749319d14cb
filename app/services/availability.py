import asyncio
from datetime import date as date_type, datetime, timedelta
from typing import List, Optional, Protocol, Sequence, Tuple

import httpx
import structlog

from app.core.config import settings
from app.core.exceptions import ProfessionalNotFoundError, ServiceNotFoundError
from app.models.appointment import AppointmentStatus
from app.schemas.calendar import ProfessionalSnapshot, ServiceSnapshot
from app.schemas.scheduling import (
    AvailabilityRangeResponse,
    AvailabilityResponse,
    DatedSlot,
    DayAvailability,
    RecommendedSlot,
    WorkingHoursWindow,
)
from app.services.calendar_store import CalendarRepository
from app.services.peer_scheduling import PeerSchedulingClient
from app.services.slots import SlotGenerator
from app.utils.time import combine, parse_date, parse_time, to_minutes, weekday_name

logger = structlog.get_logger(__name__)

# Used when a working day of the professional's schedule has no explicit times
DEFAULT_SHIFT_START = "09:00"
DEFAULT_SHIFT_END = "17:00"

# Starts offered as the "popular" recommendation of a day, both inclusive
POPULAR_MORNING = (parse_time("09:00"), parse_time("11:00"))


class BookedSlotsProvider(Protocol):
    async def booked_slots(self, professional_id: str, day: date_type) -> List[str]: ...


class LocalBookedSlotsProvider:
    """Start times of the local repository's occupying appointments."""

    def __init__(self, repository: CalendarRepository):
        self.repository = repository

    async def booked_slots(self, professional_id: str, day: date_type) -> List[str]:
        appointments = await self.repository.get_occupying_appointments(
            professional_id, day
        )
        return [a.time for a in appointments]


class RemoteBookedSlotsProvider:
    """Start times booked on the peer scheduling service.

    The lookup is bounded by ``timeout`` seconds; a timeout or any transport
    or payload failure yields no remote bookings instead of an error.
    """

    def __init__(self, client: PeerSchedulingClient, timeout: Optional[float] = None):
        self.client = client
        self.timeout = (
            settings.PEER_SCHEDULING_TIMEOUT_SECONDS if timeout is None else timeout
        )

    async def booked_slots(self, professional_id: str, day: date_type) -> List[str]:
        try:
            appointments = await asyncio.wait_for(
                self.client.get_scheduled_appointments(professional_id, day.isoformat()),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.HTTPError, ValueError) as e:
            logger.warning(
                "Peer scheduling lookup failed; using local bookings only",
                professional_id=professional_id,
                date=day.isoformat(),
                error=str(e) or e.__class__.__name__,
            )
            return []

        cancelled = AppointmentStatus.CANCELLED.value
        return [
            a.time
            for a in appointments
            if a.time and a.status.lower() != cancelled
        ]


def resolve_working_hours(
    professional: ProfessionalSnapshot, day: date_type
) -> Optional[WorkingHoursWindow]:
    """The professional's shift for the weekday of ``day``, or None when off."""
    schedule = professional.work_schedule or {}
    entry = schedule.get(weekday_name(day))
    if not isinstance(entry, dict) or entry.get("disabled"):
        return None
    return WorkingHoursWindow(
        start=(entry.get("start") or DEFAULT_SHIFT_START)[:5],
        end=(entry.get("end") or DEFAULT_SHIFT_END)[:5],
    )


def recommend_slots(days: Sequence[DayAvailability], limit: int) -> List[RecommendedSlot]:
    """First free start of each day, plus its first mid-morning start when different."""
    recommended = []
    for day in days:
        if not day.available_slots:
            continue
        first = day.available_slots[0]
        recommended.append(
            RecommendedSlot(date=day.date, time=first, reason="first_available")
        )
        morning = next(
            (
                slot
                for slot in day.available_slots
                if POPULAR_MORNING[0] <= to_minutes(slot) <= POPULAR_MORNING[1]
            ),
            None,
        )
        if morning is not None and morning != first:
            recommended.append(
                RecommendedSlot(date=day.date, time=morning, reason="popular_morning")
            )
    return recommended[:limit]


class AvailabilityCalculator:
    """Free start times of a professional for one service, per day or over a range."""

    def __init__(
        self,
        repository: CalendarRepository,
        providers: Sequence[BookedSlotsProvider],
    ):
        self.repository = repository
        self.providers = list(providers)

    async def calculate(
        self, company_id: str, professional_id: str, service_id: str, date: str
    ) -> AvailabilityResponse:
        professional, service = await self._resolve(
            company_id, professional_id, service_id
        )
        day = await self._day_availability(professional, service, parse_date(date))
        return AvailabilityResponse(
            available_slots=day.available_slots,
            working_hours=day.working_hours,
            booked_slots=day.booked_slots,
        )

    async def calculate_range(
        self,
        company_id: str,
        professional_id: str,
        service_id: str,
        start_date: str,
        days: int,
    ) -> AvailabilityRangeResponse:
        """Availability of ``days`` consecutive days starting at ``start_date``."""
        if days <= 0:
            raise ValueError("The number of days must be positive")

        professional, service = await self._resolve(
            company_id, professional_id, service_id
        )
        first = parse_date(start_date)
        results = []
        for offset in range(days):
            results.append(
                await self._day_availability(
                    professional, service, first + timedelta(days=offset)
                )
            )

        logger.debug(
            "Availability range calculated",
            professional_id=professional_id,
            start_date=start_date,
            days=days,
            open_days=sum(1 for d in results if d.available_slots),
        )
        return AvailabilityRangeResponse(
            days=results,
            recommended_slots=recommend_slots(results, settings.MAX_RECOMMENDED_SLOTS),
        )

    async def next_available_slots(
        self,
        company_id: str,
        professional_id: str,
        service_id: str,
        after_date: str,
        limit: int,
        not_before: Optional[datetime] = None,
        max_days: Optional[int] = None,
    ) -> List[DatedSlot]:
        """Earliest free starts from ``after_date`` on, searching a bounded number of days.

        Starts at or before ``not_before`` are skipped.
        """
        professional, service = await self._resolve(
            company_id, professional_id, service_id
        )
        max_days = settings.NEXT_SLOTS_SEARCH_DAYS if max_days is None else max_days

        found: List[DatedSlot] = []
        day = parse_date(after_date)
        for _ in range(max_days):
            if len(found) >= limit:
                break
            availability = await self._day_availability(professional, service, day)
            for slot in availability.available_slots:
                if not_before is not None and combine(day, to_minutes(slot)) <= not_before:
                    continue
                found.append(DatedSlot(date=day.isoformat(), time=slot))
            day += timedelta(days=1)

        logger.debug(
            "Next available slots searched",
            professional_id=professional_id,
            after_date=after_date,
            found=len(found),
        )
        return found[:limit]

    async def is_slot_available(
        self,
        company_id: str,
        professional_id: str,
        service_id: str,
        date: str,
        time: str,
    ) -> bool:
        parse_time(time)
        availability = await self.calculate(company_id, professional_id, service_id, date)
        return time in availability.available_slots

    async def _resolve(
        self, company_id: str, professional_id: str, service_id: str
    ) -> Tuple[ProfessionalSnapshot, ServiceSnapshot]:
        professional = await self.repository.get_professional(
            professional_id, company_id
        )
        if professional is None:
            raise ProfessionalNotFoundError(professional_id)

        service = await self.repository.get_service(service_id, company_id)
        if service is None or not service.is_active:
            raise ServiceNotFoundError(service_id)
        return professional, service

    async def _day_availability(
        self,
        professional: ProfessionalSnapshot,
        service: ServiceSnapshot,
        day: date_type,
    ) -> DayAvailability:
        working_hours = resolve_working_hours(professional, day)
        if working_hours is None:
            logger.debug(
                "Professional does not work on this day",
                professional_id=professional.id,
                date=day.isoformat(),
            )
            return DayAvailability(date=day.isoformat(), working_hours=None)

        generator = SlotGenerator(
            working_hours.start, working_hours.end, service.duration_minutes
        )
        booked = await self._booked_slots(professional.id, day)
        booked_set = set(booked)
        available = [slot for slot in generator if slot not in booked_set]

        logger.debug(
            "Professional availability calculated",
            professional_id=professional.id,
            date=day.isoformat(),
            service_id=service.id,
            working_hours=working_hours.model_dump(),
            booked_slots=len(booked),
            available_slots=len(available),
        )
        return DayAvailability(
            date=day.isoformat(),
            available_slots=available,
            working_hours=working_hours,
            booked_slots=booked,
        )

    async def _booked_slots(self, professional_id: str, day: date_type) -> List[str]:
        """Sorted union of every provider's booked starts.

        Providers run concurrently; when one fails the others are cancelled
        before the error propagates.
        """
        tasks = [
            asyncio.ensure_future(p.booked_slots(professional_id, day))
            for p in self.providers
        ]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return sorted({slot for slots in results for slot in slots})
