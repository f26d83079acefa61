from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Optional, Protocol


class Clock(Protocol):
    """Source of the authoritative server time."""

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock:
    """Local wall clock of the server."""

    def now(self) -> datetime:
        return datetime.now()


@dataclass
class FixedClock:
    """Clock frozen at ``current`` until moved; used by tests and scripts."""

    current: datetime = field(default_factory=lambda: datetime(2026, 1, 5, 9, 0, 0))

    def now(self) -> datetime:
        return self.current

    def set(self, value: datetime) -> None:
        self.current = value

    def advance(self, *, minutes: int = 0, seconds: int = 0) -> datetime:
        self.current = self.current + timedelta(minutes=minutes, seconds=seconds)
        return self.current


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_time_of_day(value: str) -> time:
    """Parse HH:MM or HH:MM:SS into a time."""
    fmt = "%H:%M:%S" if value.count(":") == 2 else "%H:%M"
    return datetime.strptime(value.strip(), fmt).time()


def whole_minutes(delta: timedelta) -> int:
    """Floor a duration to whole minutes (negative durations floor towards -inf)."""
    return int(delta.total_seconds() // 60)


def minutes_between(start: datetime, end: datetime) -> int:
    return whole_minutes(end - start)


def at_time(day: date, t: time) -> datetime:
    return datetime.combine(day, t)


def shift_duration_minutes(start: time, end: time) -> int:
    """Nominal shift length; an end at or before the start crosses midnight."""
    start_dt = datetime.combine(date.min, start)
    end_dt = datetime.combine(date.min, end)
    if end_dt <= start_dt:
        end_dt += timedelta(days=1)
    return minutes_between(start_dt, end_dt)


def within_window(moment: time, start: Optional[time], end: Optional[time]) -> bool:
    """True when ``moment`` is inside [start, end]; open windows always match."""
    if start is None or end is None:
        return True
    if start <= end:
        return start <= moment <= end
    return moment >= start or moment <= end


def format_hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"
