import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, String
from sqlalchemy.sql import func

from app.core.database import Base


class Professional(Base):
    """Professional with an individual weekly schedule.

    ``work_schedule`` maps lower-case weekday names to
    ``{"start": "HH:MM", "end": "HH:MM", "disabled": bool}``.
    """

    __tablename__ = "professionals"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    company_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)

    work_schedule = Column(JSON, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self):
        return f"<Professional(id={self.id}, name='{self.name}')>"
