import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    SmallInteger,
    String,
    Time,
    UniqueConstraint,
)
from sqlalchemy.sql import func

from app.core.database import Base


class BusinessHours(Base):
    """Company operating hours for one weekday (0 = Sunday ... 6 = Saturday)."""

    __tablename__ = "business_hours"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(String(36), nullable=False, index=True)
    day_of_week = Column(SmallInteger, nullable=False)

    is_open = Column(Boolean, default=True, nullable=False)
    start_time = Column(Time, nullable=True)
    end_time = Column(Time, nullable=True)

    # Lunch break (optional)
    lunch_start = Column(Time, nullable=True)
    lunch_end = Column(Time, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        UniqueConstraint("company_id", "day_of_week", name="uq_business_hours_day"),
        CheckConstraint(
            "day_of_week >= 0 AND day_of_week <= 6", name="check_day_of_week"
        ),
    )

    def __repr__(self):
        lunch_info = ""
        if self.lunch_start and self.lunch_end:
            lunch_info = f", lunch={self.lunch_start}-{self.lunch_end}"
        return (
            f"<BusinessHours(company_id={self.company_id}, day={self.day_of_week}, "
            f"open={self.is_open}: {self.start_time}-{self.end_time}{lunch_info})>"
        )
