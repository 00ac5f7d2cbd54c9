"""Business-hours oracle.

Pure function of wall-clock time: whether the shop is open and, when it is
closed, when it opens next. The weekly schedule is configuration, evaluated
in a fixed civil timezone independent of the host timezone.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

WEEKDAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


@dataclass(frozen=True)
class BusinessSchedule:
    """Weekly opening schedule (weekdays use Monday=0 .. Sunday=6)."""

    open_days: frozenset[int] = field(default_factory=lambda: frozenset(range(6)))
    open_hour: int = 10
    close_hour: int = 19
    timezone: str = "Europe/Amsterdam"

    def __post_init__(self) -> None:
        if not 0 <= self.open_hour < self.close_hour <= 24:
            raise ValueError(
                f"Invalid opening hours {self.open_hour}-{self.close_hour}: "
                "expected 0 <= open_hour < close_hour <= 24"
            )
        bad_days = [d for d in self.open_days if not 0 <= d <= 6]
        if bad_days:
            raise ValueError(f"Invalid weekdays in schedule: {sorted(bad_days)}")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone '{self.timezone}'") from e

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


@dataclass(frozen=True)
class BusinessStatus:
    is_open: bool
    message: str
    next_open_time: str | None = None


def _format_hour(hour: int) -> str:
    """24 -> '12 AM', 19 -> '7 PM', 10 -> '10 AM'."""
    hour %= 24
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12} {suffix}"


def _format_clock(hour: int) -> str:
    hour %= 24
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12}:00 {suffix}"


def local_time(now: datetime, schedule: BusinessSchedule) -> datetime:
    """Convert ``now`` to the schedule's timezone.

    Naive datetimes are taken to already be wall-clock time in that timezone.
    """
    if now.tzinfo is None:
        return now.replace(tzinfo=schedule.tz)
    return now.astimezone(schedule.tz)


def is_open_at(now: datetime, schedule: BusinessSchedule) -> bool:
    local = local_time(now, schedule)
    return local.weekday() in schedule.open_days and (
        schedule.open_hour <= local.hour < schedule.close_hour
    )


def business_status(now: datetime, schedule: BusinessSchedule) -> BusinessStatus:
    """Evaluate the schedule at ``now``."""
    local = local_time(now, schedule)

    if is_open_at(local, schedule):
        return BusinessStatus(is_open=True, message=f"Open until {_format_hour(schedule.close_hour)}")

    if not schedule.open_days:
        return BusinessStatus(is_open=False, message="Closed")

    # Today still counts when we're before opening hour on a business day.
    start = 0 if local.hour < schedule.open_hour else 1
    for offset in range(start, start + 7):
        day = local.date() + timedelta(days=offset)
        if day.weekday() in schedule.open_days:
            break

    clock = _format_clock(schedule.open_hour)
    if offset == 0:
        next_open = clock
    elif offset == 1:
        next_open = f"Tomorrow {clock}"
    else:
        next_open = f"{WEEKDAY_NAMES[day.weekday()]} {clock}"

    return BusinessStatus(
        is_open=False,
        message=f"Closed - Opens {next_open}",
        next_open_time=next_open,
    )
