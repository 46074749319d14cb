from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.utils.time import parse_date, parse_time


class ErrorCode(str, Enum):
    SERVICE_NOT_FOUND = "service_not_found"
    SCHEDULE_CONFLICT = "schedule_conflict"
    NO_SCHEDULE_CONFIGURED = "no_schedule_configured"
    DAY_CLOSED = "day_closed"
    OUTSIDE_HOURS = "outside_hours"
    LUNCH_BREAK = "lunch_break"
    INSUFFICIENT_LEAD = "insufficient_lead"
    TOO_FAR_AHEAD = "too_far_ahead"
    SAME_DAY_NOT_ALLOWED = "same_day_not_allowed"
    PROFESSIONAL_UNAVAILABLE = "professional_unavailable"


class AppointmentValidationRequest(BaseModel):
    company_id: str
    professional_id: str
    service_id: str
    customer_id: Optional[str] = None
    date: str = Field(..., description="Local calendar day, YYYY-MM-DD")
    time: str = Field(..., description="Local wall-clock start, HH:MM (24-hour)")
    exclude_appointment_id: Optional[str] = None

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: str) -> str:
        parse_date(v)
        return v

    @field_validator("time")
    @classmethod
    def validate_time(cls, v: str) -> str:
        parse_time(v)
        return v


class ValidationOptions(BaseModel):
    now: Optional[datetime] = Field(
        None, description="Clock override; local wall-clock time when naive"
    )
    include_alternatives: bool = True
    max_suggestions: int = Field(3, ge=1)


class ConflictingAppointment(BaseModel):
    id: str
    time: str
    duration: int
    service: Optional[str] = None
    status: str


class ValidationVerdict(BaseModel):
    valid: bool
    error_code: Optional[ErrorCode] = None
    message: Optional[str] = None
    conflicting_appointments: List[ConflictingAppointment] = Field(
        default_factory=list
    )
    alternative_times: List[str] = Field(default_factory=list)
    details: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def passed(cls) -> "ValidationVerdict":
        return cls(valid=True)

    @classmethod
    def failed(cls, error_code: ErrorCode, message: str, **kwargs) -> "ValidationVerdict":
        return cls(valid=False, error_code=error_code, message=message, **kwargs)


class WorkingHoursWindow(BaseModel):
    start: str
    end: str


class AvailabilityResponse(BaseModel):
    available_slots: List[str] = Field(default_factory=list)
    working_hours: Optional[WorkingHoursWindow] = None
    booked_slots: List[str] = Field(default_factory=list)


class SuggestionsResponse(BaseModel):
    alternative_times: List[str] = Field(default_factory=list)


class DayAvailability(AvailabilityResponse):
    date: str


class RecommendedSlot(BaseModel):
    date: str
    time: str
    reason: str = Field(..., description="first_available or popular_morning")


class AvailabilityRangeResponse(BaseModel):
    days: List[DayAvailability] = Field(default_factory=list)
    recommended_slots: List[RecommendedSlot] = Field(default_factory=list)


class DatedSlot(BaseModel):
    date: str
    time: str


class NextAvailableSlotsResponse(BaseModel):
    slots: List[DatedSlot] = Field(default_factory=list)


class SlotAvailabilityResponse(BaseModel):
    available: bool
