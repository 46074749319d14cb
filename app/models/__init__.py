# Import all models to ensure they are registered with SQLAlchemy
from . import (
    appointment,
    booking_policy,
    business_hours,
    professional,
    schedule_block,
    service,
)

__all__ = [
    "appointment",
    "booking_policy",
    "business_hours",
    "professional",
    "schedule_block",
    "service",
]
