import enum
import uuid

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Time,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class AppointmentStatus(enum.Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    RESCHEDULED = "rescheduled"


# Statuses that reserve their time slot; all others are transparent to
# conflict detection.
OCCUPYING_STATUSES = (
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.IN_PROGRESS,
)

_OCCUPYING_CLAUSE = "status IN ({})".format(
    ", ".join(f"'{s.value}'" for s in OCCUPYING_STATUSES)
)


class Appointment(Base):
    """Booked appointment for one professional on one local calendar day."""

    __tablename__ = "appointments"

    # Core identity
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(String(36), nullable=False, index=True)

    # Participants
    professional_id = Column(String(36), ForeignKey("professionals.id"), nullable=False)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    customer_id = Column(String(36), nullable=True)

    # Local wall-clock start
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)

    status = Column(
        String(20), nullable=False, default=AppointmentStatus.SCHEDULED.value, index=True
    )
    notes = Column(Text, nullable=True)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Insert-time guard against two occupying bookings at the same start
    __table_args__ = (
        Index("ix_appointments_professional_date", "professional_id", "date"),
        Index(
            "uq_appointments_occupied_start",
            "professional_id",
            "date",
            "time",
            unique=True,
            postgresql_where=text(_OCCUPYING_CLAUSE),
            sqlite_where=text(_OCCUPYING_CLAUSE),
        ),
    )

    service = relationship("Service")
    professional = relationship("Professional")

    @property
    def is_occupying(self) -> bool:
        return self.status in {s.value for s in OCCUPYING_STATUSES}

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, status='{self.status}', "
            f"date='{self.date}', time='{self.time}', "
            f"professional_id={self.professional_id})>"
        )
