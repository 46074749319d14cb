from datetime import date as date_type
from typing import Iterable, Optional

import structlog

from app.schemas.calendar import ScheduleBlockSnapshot
from app.schemas.scheduling import ErrorCode, ValidationVerdict
from app.services.calendar_store import CalendarRepository
from app.utils.time import to_minutes

logger = structlog.get_logger(__name__)


def block_covers(block: ScheduleBlockSnapshot, day: date_type, minute: int) -> bool:
    """Whether an active block covers a start minute on a given day."""
    if not block.active:
        return False
    if not (block.start_date <= day <= block.end_date):
        return False
    if block.is_full_day:
        return True
    return to_minutes(block.start_time) <= minute < to_minutes(block.end_time)


def find_blocking(
    blocks: Iterable[ScheduleBlockSnapshot],
    professional_id: str,
    day: date_type,
    minute: int,
) -> Optional[ScheduleBlockSnapshot]:
    """First block covering the moment, personal blocks ahead of company-wide."""
    applicable = [
        b
        for b in blocks
        if b.professional_id is None or b.professional_id == professional_id
    ]
    # sorted() is stable, so repository order is kept within each group
    applicable = sorted(applicable, key=lambda b: b.is_company_wide)
    for block in applicable:
        if block_covers(block, day, minute):
            return block
    return None


class AvailabilityBlockChecker:
    """Rejects moments covered by a holiday, leave or other explicit block."""

    def __init__(self, repository: CalendarRepository):
        self.repository = repository

    async def validate(
        self, company_id: str, professional_id: str, day: date_type, time: str
    ) -> ValidationVerdict:
        blocks = await self.repository.get_active_schedule_blocks(
            company_id, professional_id, day, day
        )
        block = find_blocking(blocks, professional_id, day, to_minutes(time))

        if block is None:
            return ValidationVerdict.passed()

        logger.info(
            "Professional blocked",
            professional_id=professional_id,
            block_id=block.id,
            company_wide=block.is_company_wide,
            date=day.isoformat(),
            time=time,
        )
        return ValidationVerdict.failed(
            ErrorCode.PROFESSIONAL_UNAVAILABLE,
            f"Professional unavailable: {block.title}",
            details={
                "block_id": block.id,
                "block_type": block.block_type,
                "description": block.description,
                "company_wide": block.is_company_wide,
            },
        )
