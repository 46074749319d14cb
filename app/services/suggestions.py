from datetime import datetime
from typing import List

import structlog

from app.schemas.scheduling import AppointmentValidationRequest
from app.services.business_hours import opening_window
from app.services.calendar_store import CalendarRepository
from app.services.slots import SlotGenerator
from app.services.validation import ValidationOrchestrator
from app.utils.time import format_time, parse_date, weekday_number

logger = structlog.get_logger(__name__)


class AlternativeTimeSuggester:
    """Earliest legal start times on the requested day, best effort."""

    def __init__(
        self, repository: CalendarRepository, orchestrator: ValidationOrchestrator
    ):
        self.repository = repository
        self.orchestrator = orchestrator

    async def suggest(
        self,
        request: AppointmentValidationRequest,
        max_suggestions: int,
        now: datetime,
    ) -> List[str]:
        if max_suggestions <= 0:
            return []

        day = parse_date(request.date)
        hours = await self.repository.get_business_hours(
            request.company_id, weekday_number(day)
        )
        if hours is None or not hours.is_open:
            return []

        service = await self.repository.get_service(
            request.service_id, request.company_id
        )
        if service is None or not service.is_active:
            return []

        start, end = opening_window(hours)
        generator = SlotGenerator(
            format_time(start), format_time(end), service.duration_minutes
        )

        suggestions = []
        for slot in generator:
            candidate = request.model_copy(update={"time": slot})
            verdict = await self.orchestrator.validate(candidate, now)
            if verdict.valid:
                suggestions.append(slot)
                if len(suggestions) >= max_suggestions:
                    break

        logger.debug(
            "Alternative times suggested",
            professional_id=request.professional_id,
            date=request.date,
            requested_time=request.time,
            suggestions=suggestions,
        )
        return suggestions
