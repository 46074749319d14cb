from datetime import datetime
from typing import Callable, List, Optional

import structlog

from app.core.config import settings
from app.schemas.scheduling import (
    AppointmentValidationRequest,
    AvailabilityRangeResponse,
    AvailabilityResponse,
    DatedSlot,
    ErrorCode,
    ValidationOptions,
    ValidationVerdict,
)
from app.services.availability import (
    AvailabilityCalculator,
    LocalBookedSlotsProvider,
    RemoteBookedSlotsProvider,
)
from app.services.calendar_store import CalendarRepository
from app.services.peer_scheduling import PeerSchedulingClient
from app.services.suggestions import AlternativeTimeSuggester
from app.services.validation import ValidationOrchestrator
from app.utils.time import as_local, local_now

logger = structlog.get_logger(__name__)


class SchedulingEngineService:
    """Booking decisions and availability for one tenant-scoped repository.

    Every call reads a fresh snapshot through the repository and performs no
    writes, so concurrent calls share no state.
    """

    def __init__(
        self,
        repository: CalendarRepository,
        peer_client: Optional[PeerSchedulingClient] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.repository = repository
        self.clock = clock or local_now
        self.orchestrator = ValidationOrchestrator(repository)
        self.suggester = AlternativeTimeSuggester(repository, self.orchestrator)

        providers = [LocalBookedSlotsProvider(repository)]
        if peer_client is not None:
            providers.append(RemoteBookedSlotsProvider(peer_client))
        self.availability = AvailabilityCalculator(repository, providers)

    def _now(self, override: Optional[datetime] = None) -> datetime:
        return as_local(override) if override is not None else as_local(self.clock())

    async def validate_appointment(
        self,
        request: AppointmentValidationRequest,
        options: Optional[ValidationOptions] = None,
    ) -> ValidationVerdict:
        """Decide whether the requested slot can be booked.

        A ``schedule_conflict`` verdict is enriched with alternative start
        times on the same day unless ``options.include_alternatives`` is off.
        """
        options = options or ValidationOptions(max_suggestions=settings.DEFAULT_SUGGESTIONS)
        now = self._now(options.now)

        logger.info(
            "Validating appointment",
            company_id=request.company_id,
            professional_id=request.professional_id,
            service_id=request.service_id,
            date=request.date,
            time=request.time,
            exclude_appointment_id=request.exclude_appointment_id,
        )
        verdict = await self.orchestrator.validate(request, now)

        if (
            verdict.error_code == ErrorCode.SCHEDULE_CONFLICT
            and options.include_alternatives
        ):
            alternatives = await self.suggester.suggest(
                request, self._limit(options.max_suggestions), now
            )
            verdict = verdict.model_copy(update={"alternative_times": alternatives})

        if not verdict.valid:
            logger.info(
                "Appointment rejected",
                professional_id=request.professional_id,
                date=request.date,
                time=request.time,
                error_code=verdict.error_code,
            )
        return verdict

    async def get_availability(
        self, company_id: str, professional_id: str, service_id: str, date: str
    ) -> AvailabilityResponse:
        return await self.availability.calculate(
            company_id, professional_id, service_id, date
        )

    async def get_availability_range(
        self,
        company_id: str,
        professional_id: str,
        service_id: str,
        start_date: str,
        days: int,
    ) -> AvailabilityRangeResponse:
        """Per-day availability over consecutive days, with recommended starts."""
        days = min(days, settings.MAX_AVAILABILITY_RANGE_DAYS)
        return await self.availability.calculate_range(
            company_id, professional_id, service_id, start_date, days
        )

    async def get_next_available_slots(
        self,
        company_id: str,
        professional_id: str,
        service_id: str,
        after_date: Optional[str] = None,
        limit: int = 10,
        now: Optional[datetime] = None,
    ) -> List[DatedSlot]:
        """Earliest free starts from ``after_date`` (default today), never in the past."""
        current = self._now(now)
        return await self.availability.next_available_slots(
            company_id,
            professional_id,
            service_id,
            after_date or current.date().isoformat(),
            limit,
            not_before=current,
        )

    async def is_slot_available(
        self,
        company_id: str,
        professional_id: str,
        service_id: str,
        date: str,
        time: str,
    ) -> bool:
        return await self.availability.is_slot_available(
            company_id, professional_id, service_id, date, time
        )

    async def suggest_alternatives(
        self,
        request: AppointmentValidationRequest,
        max_suggestions: int,
        now: Optional[datetime] = None,
    ) -> List[str]:
        return await self.suggester.suggest(
            request, self._limit(max_suggestions), self._now(now)
        )

    @staticmethod
    def _limit(max_suggestions: int) -> int:
        return max(0, min(max_suggestions, settings.MAX_SUGGESTIONS))
