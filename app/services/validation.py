from dataclasses import dataclass, field
from datetime import date as date_type, datetime
from typing import Awaitable, Callable, Optional, Sequence

import structlog

from app.schemas.calendar import ServiceSnapshot
from app.schemas.scheduling import AppointmentValidationRequest, ValidationVerdict
from app.services.booking_policy import AdvanceBookingPolicy
from app.services.business_hours import BusinessHoursValidator
from app.services.calendar_store import CalendarRepository
from app.services.conflicts import ConflictDetector, service_verdict
from app.services.schedule_blocks import AvailabilityBlockChecker
from app.utils.time import parse_date

logger = structlog.get_logger(__name__)


@dataclass
class ValidationContext:
    """State carried between the stages of one validation call."""

    request: AppointmentValidationRequest
    day: date_type
    now: datetime
    service: Optional[ServiceSnapshot] = field(default=None)


Stage = Callable[[ValidationContext], Awaitable[ValidationVerdict]]


class ValidationOrchestrator:
    """Runs the booking validators in a fixed order, stopping at the first failure.

    The order is part of the contract: service, conflicts, business hours,
    booking window, schedule blocks. A later stage's data is only fetched
    when every earlier stage passed.
    """

    def __init__(self, repository: CalendarRepository):
        self.repository = repository
        self.conflict_detector = ConflictDetector(repository)
        self.business_hours = BusinessHoursValidator(repository)
        self.booking_policy = AdvanceBookingPolicy(repository)
        self.block_checker = AvailabilityBlockChecker(repository)

    @property
    def stages(self) -> Sequence[tuple[str, Stage]]:
        return (
            ("service", self._check_service),
            ("conflicts", self._check_conflicts),
            ("business_hours", self._check_business_hours),
            ("booking_policy", self._check_booking_policy),
            ("schedule_blocks", self._check_schedule_blocks),
        )

    async def validate(
        self, request: AppointmentValidationRequest, now: datetime
    ) -> ValidationVerdict:
        context = ValidationContext(
            request=request, day=parse_date(request.date), now=now
        )

        for name, stage in self.stages:
            verdict = await stage(context)
            if not verdict.valid:
                logger.debug(
                    "Validation stopped",
                    stage=name,
                    error_code=verdict.error_code,
                    professional_id=request.professional_id,
                    date=request.date,
                    time=request.time,
                )
                return verdict

        logger.debug(
            "All validations passed",
            professional_id=request.professional_id,
            date=request.date,
            time=request.time,
        )
        return ValidationVerdict.passed()

    async def _check_service(self, context: ValidationContext) -> ValidationVerdict:
        request = context.request
        context.service = await self.repository.get_service(
            request.service_id, request.company_id
        )
        return service_verdict(context.service, request.service_id)

    async def _check_conflicts(self, context: ValidationContext) -> ValidationVerdict:
        request = context.request
        return await self.conflict_detector.detect(
            request.professional_id,
            context.day,
            request.time,
            context.service.duration_minutes,
            request.exclude_appointment_id,
        )

    async def _check_business_hours(
        self, context: ValidationContext
    ) -> ValidationVerdict:
        return await self.business_hours.validate(
            context.request.company_id, context.day, context.request.time
        )

    async def _check_booking_policy(
        self, context: ValidationContext
    ) -> ValidationVerdict:
        return await self.booking_policy.validate(
            context.request.company_id, context.day, context.request.time, context.now
        )

    async def _check_schedule_blocks(
        self, context: ValidationContext
    ) -> ValidationVerdict:
        request = context.request
        return await self.block_checker.validate(
            request.company_id, request.professional_id, context.day, request.time
        )
