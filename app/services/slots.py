from typing import Iterator

from app.utils.time import format_time, to_minutes

MAX_SLOT_STEP_MINUTES = 30


class SlotGenerator:
    """Candidate start times between opening and closing for one service.

    Iterating yields ``HH:MM`` strings in ascending order at a step of
    ``min(30, duration)`` minutes, keeping only starts whose service still
    ends by closing time. The object can be iterated any number of times.
    """

    def __init__(self, start_time: str, end_time: str, duration_minutes: int):
        if duration_minutes <= 0:
            raise ValueError("Service duration must be a positive number of minutes")
        self.start = to_minutes(start_time)
        self.end = to_minutes(end_time)
        self.duration = duration_minutes
        self.step = min(MAX_SLOT_STEP_MINUTES, duration_minutes)

    def minutes(self) -> Iterator[int]:
        slot = self.start
        while slot + self.duration <= self.end:
            yield slot
            slot += self.step

    def __iter__(self) -> Iterator[str]:
        return (format_time(m) for m in self.minutes())

    def __repr__(self):
        return (
            f"<SlotGenerator({format_time(self.start)}-{format_time(self.end)}, "
            f"duration={self.duration}, step={self.step})>"
        )
