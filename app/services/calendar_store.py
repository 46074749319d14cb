from datetime import date as date_type
from typing import List, Optional, Protocol

import structlog
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import CalendarDataError
from app.models.appointment import OCCUPYING_STATUSES, Appointment
from app.models.booking_policy import BookingPolicy
from app.models.business_hours import BusinessHours
from app.models.professional import Professional
from app.models.schedule_block import ScheduleBlock
from app.models.service import Service
from app.schemas.calendar import (
    AppointmentSnapshot,
    BookingPolicySnapshot,
    BusinessHoursSnapshot,
    ProfessionalSnapshot,
    ScheduleBlockSnapshot,
    ServiceSnapshot,
)

logger = structlog.get_logger(__name__)


class CalendarRepository(Protocol):
    """Read side of the calendar data the engine decides on."""

    async def get_business_hours(
        self, company_id: str, weekday: int
    ) -> Optional[BusinessHoursSnapshot]: ...

    async def get_booking_policy(
        self, company_id: str
    ) -> Optional[BookingPolicySnapshot]: ...

    async def get_active_schedule_blocks(
        self,
        company_id: str,
        professional_id: str,
        start_date: date_type,
        end_date: date_type,
    ) -> List[ScheduleBlockSnapshot]: ...

    async def get_occupying_appointments(
        self,
        professional_id: str,
        day: date_type,
        exclude_id: Optional[str] = None,
    ) -> List[AppointmentSnapshot]: ...

    async def get_service(
        self, service_id: str, company_id: str
    ) -> Optional[ServiceSnapshot]: ...

    async def get_professional(
        self, professional_id: str, company_id: str
    ) -> Optional[ProfessionalSnapshot]: ...


class SqlAlchemyCalendarRepository:
    """CalendarRepository backed by an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_business_hours(
        self, company_id: str, weekday: int
    ) -> Optional[BusinessHoursSnapshot]:
        query = select(BusinessHours).where(
            and_(
                BusinessHours.company_id == company_id,
                BusinessHours.day_of_week == weekday,
            )
        )
        result = await self.db.execute(query)
        row = result.scalar_one_or_none()
        return BusinessHoursSnapshot.model_validate(row) if row else None

    async def get_booking_policy(
        self, company_id: str
    ) -> Optional[BookingPolicySnapshot]:
        result = await self.db.execute(
            select(BookingPolicy).where(BookingPolicy.company_id == company_id)
        )
        row = result.scalar_one_or_none()
        return BookingPolicySnapshot.model_validate(row) if row else None

    async def get_active_schedule_blocks(
        self,
        company_id: str,
        professional_id: str,
        start_date: date_type,
        end_date: date_type,
    ) -> List[ScheduleBlockSnapshot]:
        # Personal blocks sort ahead of company-wide ones
        query = (
            select(ScheduleBlock)
            .where(
                and_(
                    ScheduleBlock.company_id == company_id,
                    ScheduleBlock.active.is_(True),
                    ScheduleBlock.start_date <= end_date,
                    ScheduleBlock.end_date >= start_date,
                    or_(
                        ScheduleBlock.professional_id == professional_id,
                        ScheduleBlock.professional_id.is_(None),
                    ),
                )
            )
            .order_by(
                ScheduleBlock.professional_id.is_(None),
                ScheduleBlock.start_date,
                ScheduleBlock.id,
            )
        )
        result = await self.db.execute(query)
        return [ScheduleBlockSnapshot.model_validate(b) for b in result.scalars().all()]

    async def get_occupying_appointments(
        self,
        professional_id: str,
        day: date_type,
        exclude_id: Optional[str] = None,
    ) -> List[AppointmentSnapshot]:
        conditions = [
            Appointment.professional_id == professional_id,
            Appointment.date == day,
            Appointment.status.in_([s.value for s in OCCUPYING_STATUSES]),
        ]
        if exclude_id:
            conditions.append(Appointment.id != exclude_id)

        query = (
            select(Appointment, Service.duration_minutes, Service.name)
            .outerjoin(Service, Service.id == Appointment.service_id)
            .where(and_(*conditions))
            .order_by(Appointment.time)
        )
        result = await self.db.execute(query)

        snapshots = []
        for appointment, duration, service_name in result.all():
            if not duration:
                logger.error(
                    "Occupying appointment without a resolvable service duration",
                    appointment_id=appointment.id,
                    service_id=appointment.service_id,
                )
                raise CalendarDataError(
                    f"Appointment {appointment.id} references missing service "
                    f"{appointment.service_id}"
                )
            snapshots.append(
                AppointmentSnapshot(
                    id=appointment.id,
                    professional_id=appointment.professional_id,
                    date=appointment.date,
                    time=appointment.time,
                    duration_minutes=duration,
                    status=appointment.status,
                    service_name=service_name,
                )
            )
        return snapshots

    async def get_service(
        self, service_id: str, company_id: str
    ) -> Optional[ServiceSnapshot]:
        result = await self.db.execute(
            select(Service).where(
                and_(Service.id == service_id, Service.company_id == company_id)
            )
        )
        row = result.scalar_one_or_none()
        return ServiceSnapshot.model_validate(row) if row else None

    async def get_professional(
        self, professional_id: str, company_id: str
    ) -> Optional[ProfessionalSnapshot]:
        result = await self.db.execute(
            select(Professional).where(
                and_(
                    Professional.id == professional_id,
                    Professional.company_id == company_id,
                )
            )
        )
        row = result.scalar_one_or_none()
        return ProfessionalSnapshot.model_validate(row) if row else None
