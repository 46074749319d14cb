import uuid

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from app.core.database import Base


class BookingPolicy(Base):
    """Per-company booking window rules.

    Null columns fall back to the configured defaults at validation time.
    """

    __tablename__ = "booking_policies"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(String(36), unique=True, nullable=False)

    min_advance_booking_hours = Column(Integer, nullable=True)
    max_advance_booking_days = Column(Integer, nullable=True)
    allow_same_day_booking = Column(Boolean, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self):
        return (
            f"<BookingPolicy(company_id={self.company_id}, "
            f"min_hours={self.min_advance_booking_hours}, "
            f"max_days={self.max_advance_booking_days}, "
            f"same_day={self.allow_same_day_booking})>"
        )
