from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse

from app.api.deps.scheduling import get_scheduling_engine
from app.core.exceptions import ProfessionalNotFoundError, ServiceNotFoundError
from app.schemas.scheduling import (
    AppointmentValidationRequest,
    AvailabilityRangeResponse,
    AvailabilityResponse,
    ErrorCode,
    NextAvailableSlotsResponse,
    SlotAvailabilityResponse,
    SuggestionsResponse,
    ValidationOptions,
    ValidationVerdict,
)
from app.services.scheduling import SchedulingEngineService
from app.utils.time import DATE_PATTERN, TIME_PATTERN

logger = structlog.get_logger(__name__)

router = APIRouter()


def verdict_status_code(verdict: ValidationVerdict) -> int:
    if verdict.valid:
        return status.HTTP_200_OK
    if verdict.error_code == ErrorCode.SCHEDULE_CONFLICT:
        return status.HTTP_409_CONFLICT
    return status.HTTP_400_BAD_REQUEST


@router.post("/appointments/validate", response_model=ValidationVerdict)
async def validate_appointment(
    request: AppointmentValidationRequest,
    include_alternatives: bool = Query(
        True, description="Suggest other start times when the slot is taken"
    ),
    max_suggestions: int = Query(3, ge=1, le=20),
    engine: SchedulingEngineService = Depends(get_scheduling_engine),
) -> JSONResponse:
    """
    Validate if an appointment can be scheduled at the requested time.

    Checks run in a fixed order and the first failure is returned:
    - Service exists and is active
    - No overlap with the professional's other appointments
    - Company business hours and lunch break
    - Minimum/maximum advance booking and same-day rule
    - Holidays and personal schedule blocks
    """
    verdict = await engine.validate_appointment(
        request,
        ValidationOptions(
            include_alternatives=include_alternatives,
            max_suggestions=max_suggestions,
        ),
    )
    return JSONResponse(
        status_code=verdict_status_code(verdict),
        content=verdict.model_dump(mode="json"),
    )


@router.post("/appointments/suggestions", response_model=SuggestionsResponse)
async def suggest_alternatives(
    request: AppointmentValidationRequest,
    max_suggestions: int = Query(3, ge=1, le=20),
    engine: SchedulingEngineService = Depends(get_scheduling_engine),
) -> SuggestionsResponse:
    """Earliest start times on the requested day that pass every validation."""
    alternatives = await engine.suggest_alternatives(request, max_suggestions)
    return SuggestionsResponse(alternative_times=alternatives)


@router.get(
    "/professionals/{professional_id}/availability",
    response_model=AvailabilityResponse,
)
async def get_professional_availability(
    professional_id: str,
    company_id: str = Query(..., description="Company (tenant) ID"),
    service_id: str = Query(..., description="Service to size the slots"),
    date: str = Query(..., pattern=DATE_PATTERN.pattern, description="YYYY-MM-DD"),
    engine: SchedulingEngineService = Depends(get_scheduling_engine),
) -> AvailabilityResponse:
    """
    Free start times of a professional for a service on one day.

    Bookings are merged from the local calendar and the peer scheduling
    service; when the peer is unreachable only local bookings are used.
    """
    try:
        return await engine.get_availability(
            company_id, professional_id, service_id, date
        )
    except (ProfessionalNotFoundError, ServiceNotFoundError) as e:
        logger.info("Availability lookup failed", error=str(e))
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get(
    "/professionals/{professional_id}/availability/range",
    response_model=AvailabilityRangeResponse,
)
async def get_professional_availability_range(
    professional_id: str,
    company_id: str = Query(..., description="Company (tenant) ID"),
    service_id: str = Query(..., description="Service to size the slots"),
    start_date: str = Query(..., pattern=DATE_PATTERN.pattern, description="YYYY-MM-DD"),
    days: int = Query(7, ge=1, le=31),
    engine: SchedulingEngineService = Depends(get_scheduling_engine),
) -> AvailabilityRangeResponse:
    """Availability for consecutive days, with up to five recommended starts."""
    try:
        return await engine.get_availability_range(
            company_id, professional_id, service_id, start_date, days
        )
    except (ProfessionalNotFoundError, ServiceNotFoundError) as e:
        logger.info("Availability range lookup failed", error=str(e))
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get(
    "/professionals/{professional_id}/next-available",
    response_model=NextAvailableSlotsResponse,
)
async def get_next_available_slots(
    professional_id: str,
    company_id: str = Query(..., description="Company (tenant) ID"),
    service_id: str = Query(..., description="Service to size the slots"),
    after_date: Optional[str] = Query(
        None, pattern=DATE_PATTERN.pattern, description="YYYY-MM-DD, default today"
    ),
    limit: int = Query(10, ge=1, le=50),
    engine: SchedulingEngineService = Depends(get_scheduling_engine),
) -> NextAvailableSlotsResponse:
    """Earliest free starts, searching at most 30 days ahead."""
    try:
        slots = await engine.get_next_available_slots(
            company_id, professional_id, service_id, after_date, limit
        )
    except (ProfessionalNotFoundError, ServiceNotFoundError) as e:
        logger.info("Next available slots lookup failed", error=str(e))
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return NextAvailableSlotsResponse(slots=slots)


@router.get(
    "/professionals/{professional_id}/availability/slot",
    response_model=SlotAvailabilityResponse,
)
async def check_slot_availability(
    professional_id: str,
    company_id: str = Query(..., description="Company (tenant) ID"),
    service_id: str = Query(..., description="Service to size the slots"),
    date: str = Query(..., pattern=DATE_PATTERN.pattern, description="YYYY-MM-DD"),
    time: str = Query(..., pattern=TIME_PATTERN.pattern, description="HH:MM"),
    engine: SchedulingEngineService = Depends(get_scheduling_engine),
) -> SlotAvailabilityResponse:
    try:
        available = await engine.is_slot_available(
            company_id, professional_id, service_id, date, time
        )
    except (ProfessionalNotFoundError, ServiceNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return SlotAvailabilityResponse(available=available)
