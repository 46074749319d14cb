"""Read-only snapshots the repository hands to the engine."""

from datetime import date, time
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


def _normalize_time(v):
    if v is None:
        return v
    if isinstance(v, time):
        return v.strftime("%H:%M")
    if isinstance(v, str):
        return v[:5]
    return v


class ServiceSnapshot(BaseModel):
    id: str
    company_id: str
    name: str = ""
    duration_minutes: int = Field(..., gt=0)
    is_active: bool = True

    class Config:
        from_attributes = True


class ProfessionalSnapshot(BaseModel):
    id: str
    company_id: str
    name: str = ""
    work_schedule: Optional[Dict[str, Any]] = None
    is_active: bool = True

    class Config:
        from_attributes = True


class BusinessHoursSnapshot(BaseModel):
    company_id: str
    day_of_week: int = Field(..., ge=0, le=6)
    is_open: bool = True
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    lunch_start: Optional[str] = None
    lunch_end: Optional[str] = None

    @field_validator(
        "start_time", "end_time", "lunch_start", "lunch_end", mode="before"
    )
    @classmethod
    def normalize_times(cls, v):
        return _normalize_time(v)

    class Config:
        from_attributes = True


class BookingPolicySnapshot(BaseModel):
    company_id: str
    min_advance_booking_hours: Optional[int] = Field(None, ge=0)
    max_advance_booking_days: Optional[int] = Field(None, ge=0)
    allow_same_day_booking: Optional[bool] = None

    class Config:
        from_attributes = True


class ScheduleBlockSnapshot(BaseModel):
    id: str
    company_id: str
    professional_id: Optional[str] = None
    start_date: date
    end_date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    block_type: str = "other"
    title: str
    description: Optional[str] = None
    active: bool = True

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def normalize_times(cls, v):
        return _normalize_time(v)

    @property
    def is_company_wide(self) -> bool:
        return self.professional_id is None

    @property
    def is_full_day(self) -> bool:
        return not self.start_time or not self.end_time

    class Config:
        from_attributes = True


class AppointmentSnapshot(BaseModel):
    """Occupying appointment with the duration of its own service resolved."""

    id: str
    professional_id: str
    date: date
    time: str
    duration_minutes: int = Field(..., gt=0)
    status: str
    service_name: Optional[str] = None

    @field_validator("time", mode="before")
    @classmethod
    def normalize_time(cls, v):
        return _normalize_time(v)


class PeerAppointment(BaseModel):
    """Appointment as reported by the peer scheduling service."""

    id: str
    time: Optional[str] = None
    duration: Optional[int] = None
    status: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v):
        return str(v) if v is not None else v

    @field_validator("time", mode="before")
    @classmethod
    def normalize_time(cls, v):
        return _normalize_time(v)
