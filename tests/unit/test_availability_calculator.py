"""Test per-professional availability with local and peer bookings."""

import asyncio
from datetime import date, datetime

import httpx
import pytest

from app.core.exceptions import (
    CalendarDataError,
    ProfessionalNotFoundError,
    ServiceNotFoundError,
)
from app.schemas.calendar import ProfessionalSnapshot
from app.schemas.scheduling import DayAvailability
from app.services.availability import (
    AvailabilityCalculator,
    LocalBookedSlotsProvider,
    RemoteBookedSlotsProvider,
    recommend_slots,
    resolve_working_hours,
)
from app.services.peer_scheduling import PeerSchedulingClient
from tests.fakes import (
    COMPANY_ID,
    LONG_SERVICE_ID,
    MONDAY,
    PROFESSIONAL_ID,
    SERVICE_ID,
    FakePeerClient,
)

DAY = MONDAY.isoformat()


def professional(work_schedule=None) -> ProfessionalSnapshot:
    return ProfessionalSnapshot(
        id=PROFESSIONAL_ID, company_id=COMPANY_ID, name="Ana", work_schedule=work_schedule
    )


@pytest.fixture
def staffed_repository(repository):
    repository.professionals[PROFESSIONAL_ID] = professional(
        {"monday": {"start": "09:00", "end": "12:00"}}
    )
    return repository


def calculator(repository, peer=None, timeout=None) -> AvailabilityCalculator:
    providers = [LocalBookedSlotsProvider(repository)]
    if peer is not None:
        providers.append(RemoteBookedSlotsProvider(peer, timeout=timeout))
    return AvailabilityCalculator(repository, providers)


class TestResolveWorkingHours:
    def test_explicit_shift(self):
        pro = professional({"monday": {"start": "10:00:00", "end": "16:00:00"}})
        window = resolve_working_hours(pro, MONDAY)
        assert (window.start, window.end) == ("10:00", "16:00")

    def test_missing_times_use_default_shift(self):
        window = resolve_working_hours(professional({"monday": {}}), MONDAY)
        assert (window.start, window.end) == ("09:00", "17:00")

    def test_disabled_or_missing_day_is_off(self):
        assert resolve_working_hours(professional({"monday": {"disabled": True}}), MONDAY) is None
        assert resolve_working_hours(professional({"tuesday": {}}), MONDAY) is None
        assert resolve_working_hours(professional(None), MONDAY) is None


class TestAvailabilityCalculator:
    """Slot generation minus booked start times."""

    @pytest.mark.asyncio
    async def test_free_day(self, staffed_repository):
        result = await calculator(staffed_repository).calculate(
            COMPANY_ID, PROFESSIONAL_ID, LONG_SERVICE_ID, DAY
        )
        assert result.available_slots == ["09:00", "09:30", "10:00", "10:30", "11:00"]
        assert result.working_hours.start == "09:00"
        assert result.working_hours.end == "12:00"
        assert result.booked_slots == []

    @pytest.mark.asyncio
    async def test_local_bookings_are_removed_by_start_time(self, staffed_repository):
        staffed_repository.add_appointment("a1", PROFESSIONAL_ID, MONDAY, "10:00", 30)
        staffed_repository.add_appointment(
            "a2", PROFESSIONAL_ID, MONDAY, "11:00", 30, status="cancelled"
        )
        result = await calculator(staffed_repository).calculate(
            COMPANY_ID, PROFESSIONAL_ID, SERVICE_ID, DAY
        )
        assert "10:00" not in result.available_slots
        assert "11:00" in result.available_slots
        assert result.booked_slots == ["10:00"]

    @pytest.mark.asyncio
    async def test_union_of_local_and_peer_bookings(self, staffed_repository):
        staffed_repository.add_appointment("a1", PROFESSIONAL_ID, MONDAY, "10:00", 30)
        peer = FakePeerClient(
            [
                {"id": 7, "time": "09:30", "duration": 30, "status": "scheduled"},
                {"id": 8, "time": "10:00", "duration": 30, "status": "confirmed"},
                {"id": 9, "time": "11:00", "duration": 30, "status": "CANCELLED"},
            ]
        )
        result = await calculator(staffed_repository, peer).calculate(
            COMPANY_ID, PROFESSIONAL_ID, SERVICE_ID, DAY
        )
        assert result.booked_slots == ["09:30", "10:00"]
        assert result.available_slots == ["09:00", "10:30", "11:00", "11:30"]
        assert peer.requests == [(PROFESSIONAL_ID, DAY)]

    @pytest.mark.asyncio
    async def test_peer_timeout_falls_back_to_local(self, staffed_repository):
        staffed_repository.add_appointment("a1", PROFESSIONAL_ID, MONDAY, "10:00", 30)
        peer = FakePeerClient(
            [{"id": 1, "time": "09:00", "status": "scheduled"}], delay=1
        )
        result = await calculator(staffed_repository, peer, timeout=0.01).calculate(
            COMPANY_ID, PROFESSIONAL_ID, SERVICE_ID, DAY
        )
        assert result.booked_slots == ["10:00"]
        assert "09:00" in result.available_slots

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [httpx.ConnectError("connection refused"), ValueError("bad body")],
    )
    async def test_peer_failure_falls_back_to_local(self, staffed_repository, error):
        peer = FakePeerClient(error=error)
        result = await calculator(staffed_repository, peer).calculate(
            COMPANY_ID, PROFESSIONAL_ID, SERVICE_ID, DAY
        )
        assert result.booked_slots == []
        assert len(result.available_slots) == 6

    @pytest.mark.asyncio
    async def test_day_off_has_no_slots(self, staffed_repository):
        result = await calculator(staffed_repository).calculate(
            COMPANY_ID, PROFESSIONAL_ID, SERVICE_ID, date(2024, 12, 3).isoformat()
        )
        assert result.available_slots == []
        assert result.working_hours is None
        assert result.booked_slots == []

    @pytest.mark.asyncio
    async def test_unknown_professional(self, repository):
        with pytest.raises(ProfessionalNotFoundError):
            await calculator(repository).calculate(
                COMPANY_ID, "ghost", SERVICE_ID, DAY
            )

    @pytest.mark.asyncio
    async def test_unknown_service(self, staffed_repository):
        with pytest.raises(ServiceNotFoundError):
            await calculator(staffed_repository).calculate(
                COMPANY_ID, PROFESSIONAL_ID, "missing", DAY
            )

    @pytest.mark.asyncio
    async def test_malformed_peer_list_falls_back_to_local(self, staffed_repository):
        def handler(request):
            return httpx.Response(200, json={"success": True, "data": 5})

        peer = PeerSchedulingClient(
            base_url="http://peer.test", transport=httpx.MockTransport(handler)
        )
        result = await calculator(staffed_repository, peer).calculate(
            COMPANY_ID, PROFESSIONAL_ID, SERVICE_ID, DAY
        )
        assert result.booked_slots == []
        assert result.available_slots == [
            "09:00", "09:30", "10:00", "10:30", "11:00", "11:30"
        ]

    def test_zero_timeout_is_kept(self):
        provider = RemoteBookedSlotsProvider(FakePeerClient(), timeout=0)
        assert provider.timeout == 0


class RecordingProvider:
    """Provider that sleeps until cancelled and remembers the cancellation."""

    def __init__(self):
        self.cancelled = False

    async def booked_slots(self, professional_id, day):
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return []


class FailingProvider:
    async def booked_slots(self, professional_id, day):
        raise CalendarDataError("unreadable appointment row")


class TestBookedSlotsProviders:
    @pytest.mark.asyncio
    async def test_failing_provider_cancels_the_others(self, staffed_repository):
        slow = RecordingProvider()
        calc = AvailabilityCalculator(staffed_repository, [FailingProvider(), slow])

        with pytest.raises(CalendarDataError):
            await calc.calculate(COMPANY_ID, PROFESSIONAL_ID, SERVICE_ID, DAY)
        assert slow.cancelled is True


@pytest.fixture
def weekday_repository(repository):
    """Professional working 08:00-10:00 Monday to Wednesday."""
    shift = {"start": "08:00", "end": "10:00"}
    repository.professionals[PROFESSIONAL_ID] = professional(
        {"monday": shift, "tuesday": shift, "wednesday": shift}
    )
    return repository


class TestAvailabilityRange:
    @pytest.mark.asyncio
    async def test_days_in_order_with_days_off(self, weekday_repository):
        result = await calculator(weekday_repository).calculate_range(
            COMPANY_ID, PROFESSIONAL_ID, SERVICE_ID, DAY, 7
        )

        assert [d.date for d in result.days] == [
            "2024-12-02", "2024-12-03", "2024-12-04", "2024-12-05",
            "2024-12-06", "2024-12-07", "2024-12-08",
        ]
        assert result.days[0].available_slots == ["08:00", "08:30", "09:00", "09:30"]
        assert result.days[3].available_slots == []
        assert result.days[3].working_hours is None

    @pytest.mark.asyncio
    async def test_recommendations_are_capped(self, weekday_repository):
        result = await calculator(weekday_repository).calculate_range(
            COMPANY_ID, PROFESSIONAL_ID, SERVICE_ID, DAY, 7
        )

        assert [(r.date, r.time, r.reason) for r in result.recommended_slots] == [
            ("2024-12-02", "08:00", "first_available"),
            ("2024-12-02", "09:00", "popular_morning"),
            ("2024-12-03", "08:00", "first_available"),
            ("2024-12-03", "09:00", "popular_morning"),
            ("2024-12-04", "08:00", "first_available"),
        ]

    @pytest.mark.asyncio
    async def test_bookings_apply_per_day(self, weekday_repository):
        weekday_repository.add_appointment("a1", PROFESSIONAL_ID, MONDAY, "08:00", 30)
        result = await calculator(weekday_repository).calculate_range(
            COMPANY_ID, PROFESSIONAL_ID, SERVICE_ID, DAY, 2
        )

        assert result.days[0].available_slots == ["08:30", "09:00", "09:30"]
        assert result.days[0].booked_slots == ["08:00"]
        assert result.days[1].available_slots == ["08:00", "08:30", "09:00", "09:30"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("days", [0, -3])
    async def test_non_positive_days_rejected(self, weekday_repository, days):
        with pytest.raises(ValueError):
            await calculator(weekday_repository).calculate_range(
                COMPANY_ID, PROFESSIONAL_ID, SERVICE_ID, DAY, days
            )

    @pytest.mark.asyncio
    async def test_unknown_professional(self, repository):
        with pytest.raises(ProfessionalNotFoundError):
            await calculator(repository).calculate_range(
                COMPANY_ID, "ghost", SERVICE_ID, DAY, 3
            )


class TestRecommendSlots:
    def test_morning_start_equal_to_first_is_not_repeated(self):
        day = DayAvailability(date=DAY, available_slots=["09:00", "09:30"])
        recommended = recommend_slots([day], 5)
        assert [(r.time, r.reason) for r in recommended] == [("09:00", "first_available")]

    def test_afternoon_only_day_has_no_morning_pick(self):
        day = DayAvailability(date=DAY, available_slots=["14:00", "14:30"])
        recommended = recommend_slots([day], 5)
        assert [(r.time, r.reason) for r in recommended] == [("14:00", "first_available")]

    def test_days_without_slots_are_skipped(self):
        assert recommend_slots([DayAvailability(date=DAY)], 5) == []


class TestNextAvailableSlots:
    @pytest.mark.asyncio
    async def test_search_continues_into_following_weeks(self, staffed_repository):
        slots = await calculator(staffed_repository).next_available_slots(
            COMPANY_ID, PROFESSIONAL_ID, SERVICE_ID, DAY, limit=8
        )

        assert [(s.date, s.time) for s in slots[-3:]] == [
            ("2024-12-02", "11:30"),
            ("2024-12-09", "09:00"),
            ("2024-12-09", "09:30"),
        ]
        assert len(slots) == 8

    @pytest.mark.asyncio
    async def test_starts_not_after_cutoff_are_skipped(self, staffed_repository):
        slots = await calculator(staffed_repository).next_available_slots(
            COMPANY_ID,
            PROFESSIONAL_ID,
            SERVICE_ID,
            DAY,
            limit=4,
            not_before=datetime(2024, 12, 2, 10, 0),
        )

        assert [(s.date, s.time) for s in slots] == [
            ("2024-12-02", "10:30"),
            ("2024-12-02", "11:00"),
            ("2024-12-02", "11:30"),
            ("2024-12-09", "09:00"),
        ]

    @pytest.mark.asyncio
    async def test_search_window_is_bounded(self, staffed_repository):
        slots = await calculator(staffed_repository).next_available_slots(
            COMPANY_ID, PROFESSIONAL_ID, SERVICE_ID, DAY, limit=50, max_days=6
        )
        assert {s.date for s in slots} == {"2024-12-02"}
        assert len(slots) == 6

    @pytest.mark.asyncio
    async def test_no_schedule_finds_nothing(self, repository):
        repository.professionals[PROFESSIONAL_ID] = professional(None)
        slots = await calculator(repository).next_available_slots(
            COMPANY_ID, PROFESSIONAL_ID, SERVICE_ID, DAY, limit=5
        )
        assert slots == []


class TestIsSlotAvailable:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "time,expected",
        [("10:30", True), ("10:00", False), ("10:15", False), ("12:00", False)],
    )
    async def test_slot_check(self, staffed_repository, time, expected):
        staffed_repository.add_appointment("a1", PROFESSIONAL_ID, MONDAY, "10:00", 30)
        available = await calculator(staffed_repository).is_slot_available(
            COMPANY_ID, PROFESSIONAL_ID, SERVICE_ID, DAY, time
        )
        assert available is expected

    @pytest.mark.asyncio
    async def test_malformed_time_rejected(self, staffed_repository):
        with pytest.raises(ValueError):
            await calculator(staffed_repository).is_slot_available(
                COMPANY_ID, PROFESSIONAL_ID, SERVICE_ID, DAY, "9:00"
            )
