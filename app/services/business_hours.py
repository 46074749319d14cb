from datetime import date as date_type

import structlog

from app.schemas.calendar import BusinessHoursSnapshot
from app.schemas.scheduling import ErrorCode, ValidationVerdict
from app.services.calendar_store import CalendarRepository
from app.utils.time import to_minutes, weekday_number

logger = structlog.get_logger(__name__)

# Used when a day is marked open without explicit times
DEFAULT_OPENING = "08:00"
DEFAULT_CLOSING = "18:00"


def opening_window(hours: BusinessHoursSnapshot) -> tuple[int, int]:
    """Opening and closing minute of an open day."""
    return (
        to_minutes(hours.start_time or DEFAULT_OPENING),
        to_minutes(hours.end_time or DEFAULT_CLOSING),
    )


def check_business_hours(
    hours: BusinessHoursSnapshot, minute: int
) -> ValidationVerdict:
    """Decide a start minute against one weekday's business-hours row."""
    if not hours.is_open:
        return ValidationVerdict.failed(
            ErrorCode.DAY_CLOSED, "The company is closed on this day of the week"
        )

    start, end = opening_window(hours)
    # Both opening and closing minutes are bookable starts
    if minute < start or minute > end:
        return ValidationVerdict.failed(
            ErrorCode.OUTSIDE_HOURS,
            f"Outside business hours. Open from {hours.start_time or DEFAULT_OPENING} "
            f"to {hours.end_time or DEFAULT_CLOSING}.",
            details={"opening": start, "closing": end},
        )

    if hours.lunch_start and hours.lunch_end:
        lunch_start = to_minutes(hours.lunch_start)
        lunch_end = to_minutes(hours.lunch_end)
        if lunch_start <= minute < lunch_end:
            return ValidationVerdict.failed(
                ErrorCode.LUNCH_BREAK,
                f"Requested time falls in the lunch break "
                f"({hours.lunch_start} to {hours.lunch_end})",
            )

    return ValidationVerdict.passed()


class BusinessHoursValidator:
    """Checks a requested start against company operating hours for its weekday."""

    def __init__(self, repository: CalendarRepository):
        self.repository = repository

    async def validate(
        self, company_id: str, day: date_type, time: str
    ) -> ValidationVerdict:
        weekday = weekday_number(day)
        hours = await self.repository.get_business_hours(company_id, weekday)

        if hours is None:
            logger.info(
                "No business hours configured",
                company_id=company_id,
                weekday=weekday,
            )
            return ValidationVerdict.failed(
                ErrorCode.NO_SCHEDULE_CONFIGURED,
                "Business hours are not configured for this day of the week",
            )

        verdict = check_business_hours(hours, to_minutes(time))
        logger.debug(
            "Business hours checked",
            company_id=company_id,
            date=day.isoformat(),
            time=time,
            valid=verdict.valid,
            error_code=verdict.error_code,
        )
        return verdict
