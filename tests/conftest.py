import os
import sys
from datetime import datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Add the app directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from app.core.database import Base, build_engine
from app.models import (  # noqa: F401  registers every table on Base.metadata
    appointment,
    booking_policy,
    business_hours,
    professional,
    schedule_block,
    service,
)
from app.schemas.scheduling import AppointmentValidationRequest
from tests.fakes import (
    COMPANY_ID,
    LONG_SERVICE_ID,
    MONDAY,
    MONDAY_WEEKDAY,
    PROFESSIONAL_ID,
    SERVICE_ID,
    InMemoryCalendarRepository,
)

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def db():
    """Create a fresh database session for each test."""
    engine = build_engine(TEST_DATABASE_URL, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def now():
    """Fixed local wall-clock time: the Friday before MONDAY, 10:00."""
    return datetime(2024, 11, 29, 10, 0)


@pytest.fixture
def repository():
    """Company open Monday 08:00-18:00 with lunch 12:00-13:00."""
    repo = InMemoryCalendarRepository()
    repo.add_business_hours(
        COMPANY_ID,
        MONDAY_WEEKDAY,
        is_open=True,
        start_time="08:00",
        end_time="18:00",
        lunch_start="12:00",
        lunch_end="13:00",
    )
    repo.add_service(SERVICE_ID, COMPANY_ID, 30, name="Haircut")
    repo.add_service(LONG_SERVICE_ID, COMPANY_ID, 60, name="Coloring")
    return repo


@pytest.fixture
def make_request():
    def _make(time: str = "14:00", **overrides) -> AppointmentValidationRequest:
        fields = {
            "company_id": COMPANY_ID,
            "professional_id": PROFESSIONAL_ID,
            "service_id": SERVICE_ID,
            "date": MONDAY.isoformat(),
            "time": time,
        }
        fields.update(overrides)
        return AppointmentValidationRequest(**fields)

    return _make
