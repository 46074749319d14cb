from datetime import date as date_type
from typing import Iterable, List, Optional

import structlog

from app.schemas.calendar import AppointmentSnapshot, ServiceSnapshot
from app.schemas.scheduling import (
    AppointmentValidationRequest,
    ConflictingAppointment,
    ErrorCode,
    ValidationVerdict,
)
from app.services.calendar_store import CalendarRepository
from app.utils.time import parse_date, to_minutes

logger = structlog.get_logger(__name__)


def intervals_overlap(
    start_a: int, end_a: int, start_b: int, end_b: int
) -> bool:
    """Half-open overlap test; touching endpoints do not overlap."""
    return start_a < end_b and start_b < end_a


def find_conflicts(
    start: int, duration: int, existing: Iterable[AppointmentSnapshot]
) -> List[AppointmentSnapshot]:
    """Every existing appointment whose interval overlaps [start, start+duration)."""
    end = start + duration
    conflicts = []
    for appointment in existing:
        existing_start = to_minutes(appointment.time)
        existing_end = existing_start + appointment.duration_minutes
        if intervals_overlap(start, end, existing_start, existing_end):
            conflicts.append(appointment)
    return sorted(conflicts, key=lambda a: (to_minutes(a.time), a.id))


def service_verdict(service: Optional[ServiceSnapshot], service_id: str) -> ValidationVerdict:
    if service is None or not service.is_active:
        return ValidationVerdict.failed(
            ErrorCode.SERVICE_NOT_FOUND,
            "Service not found or inactive",
            details={"service_id": service_id},
        )
    return ValidationVerdict.passed()


class ConflictDetector:
    """Detects overlaps with the professional's other occupying appointments."""

    def __init__(self, repository: CalendarRepository):
        self.repository = repository

    async def detect(
        self,
        professional_id: str,
        day: date_type,
        time: str,
        service_duration: int,
        exclude_appointment_id: Optional[str] = None,
    ) -> ValidationVerdict:
        existing = await self.repository.get_occupying_appointments(
            professional_id, day, exclude_appointment_id
        )
        conflicts = find_conflicts(to_minutes(time), service_duration, existing)

        if not conflicts:
            return ValidationVerdict.passed()

        logger.info(
            "Schedule conflict detected",
            professional_id=professional_id,
            date=day.isoformat(),
            time=time,
            conflicts=len(conflicts),
        )
        return ValidationVerdict.failed(
            ErrorCode.SCHEDULE_CONFLICT,
            f"Schedule conflict: the professional already has "
            f"{len(conflicts)} appointment(s) in this period",
            conflicting_appointments=[
                ConflictingAppointment(
                    id=a.id,
                    time=a.time,
                    duration=a.duration_minutes,
                    service=a.service_name,
                    status=a.status,
                )
                for a in conflicts
            ],
        )

    async def validate(self, request: AppointmentValidationRequest) -> ValidationVerdict:
        """Resolve the requested service, then search for overlaps."""
        service = await self.repository.get_service(
            request.service_id, request.company_id
        )
        verdict = service_verdict(service, request.service_id)
        if not verdict.valid:
            return verdict

        return await self.detect(
            request.professional_id,
            parse_date(request.date),
            request.time,
            service.duration_minutes,
            request.exclude_appointment_id,
        )
