import enum
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    String,
    Text,
    Time,
)
from sqlalchemy.sql import func

from app.core.database import Base


class BlockType(enum.Enum):
    HOLIDAY = "holiday"
    VACATION = "vacation"
    MAINTENANCE = "maintenance"
    PERSONAL = "personal"
    OTHER = "other"


class ScheduleBlock(Base):
    """Explicit unavailability window.

    A null ``professional_id`` blocks the whole company; a null time range
    blocks every minute of each day in ``start_date..end_date``.
    """

    __tablename__ = "schedule_blocks"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(String(36), nullable=False)
    professional_id = Column(String(36), nullable=True)

    # Inclusive date range
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    # Optional time-of-day range, half-open
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)

    block_type = Column(String(50), nullable=False, default=BlockType.OTHER.value)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_schedule_blocks_company_dates", "company_id", "start_date", "end_date"),
        CheckConstraint("end_date >= start_date", name="check_block_date_range"),
    )

    @property
    def is_company_wide(self) -> bool:
        return self.professional_id is None

    def __repr__(self):
        owner = "company" if self.is_company_wide else f"professional={self.professional_id}"
        return (
            f"<ScheduleBlock(id={self.id}, {owner}, type={self.block_type}, "
            f"{self.start_date} - {self.end_date}, active={self.active})>"
        )
