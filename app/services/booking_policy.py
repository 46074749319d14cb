from dataclasses import dataclass
from datetime import date as date_type, datetime
from typing import Optional

import structlog

from app.core.config import settings
from app.schemas.calendar import BookingPolicySnapshot
from app.schemas.scheduling import ErrorCode, ValidationVerdict
from app.services.calendar_store import CalendarRepository
from app.utils.time import combine, to_minutes

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class EffectivePolicy:
    min_advance_booking_hours: int
    max_advance_booking_days: int
    allow_same_day_booking: bool

    @classmethod
    def resolve(cls, policy: Optional[BookingPolicySnapshot]) -> "EffectivePolicy":
        """Fill absent policy values with the configured defaults."""

        def pick(value, default):
            return default if value is None else value

        if policy is None:
            policy = BookingPolicySnapshot(company_id="")
        return cls(
            min_advance_booking_hours=pick(
                policy.min_advance_booking_hours,
                settings.DEFAULT_MIN_ADVANCE_BOOKING_HOURS,
            ),
            max_advance_booking_days=pick(
                policy.max_advance_booking_days,
                settings.DEFAULT_MAX_ADVANCE_BOOKING_DAYS,
            ),
            allow_same_day_booking=pick(
                policy.allow_same_day_booking,
                settings.DEFAULT_ALLOW_SAME_DAY_BOOKING,
            ),
        )


def check_booking_window(
    policy: EffectivePolicy, day: date_type, time: str, now: datetime
) -> ValidationVerdict:
    """Apply the same-day, lead-time and max-advance rules, in that order."""
    today = now.date()

    if day == today and not policy.allow_same_day_booking:
        return ValidationVerdict.failed(
            ErrorCode.SAME_DAY_NOT_ALLOWED, "Same-day bookings are not allowed"
        )

    requested = combine(day, to_minutes(time))
    lead_hours = (requested - now).total_seconds() / 3600
    if lead_hours < policy.min_advance_booking_hours:
        return ValidationVerdict.failed(
            ErrorCode.INSUFFICIENT_LEAD,
            f"Appointments must be booked at least "
            f"{policy.min_advance_booking_hours} hours in advance",
            details={"lead_hours": round(lead_hours, 2)},
        )

    if (day - today).days > policy.max_advance_booking_days:
        return ValidationVerdict.failed(
            ErrorCode.TOO_FAR_AHEAD,
            f"Appointments can be booked at most "
            f"{policy.max_advance_booking_days} days in advance",
        )

    return ValidationVerdict.passed()


class AdvanceBookingPolicy:
    """Lead-time and booking-window rules of a company."""

    def __init__(self, repository: CalendarRepository):
        self.repository = repository

    async def validate(
        self, company_id: str, day: date_type, time: str, now: datetime
    ) -> ValidationVerdict:
        policy = EffectivePolicy.resolve(
            await self.repository.get_booking_policy(company_id)
        )
        verdict = check_booking_window(policy, day, time, now)
        logger.debug(
            "Booking window checked",
            company_id=company_id,
            date=day.isoformat(),
            time=time,
            now=now.isoformat(),
            valid=verdict.valid,
            error_code=verdict.error_code,
        )
        return verdict
