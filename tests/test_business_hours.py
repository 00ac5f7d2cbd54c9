from datetime import UTC, datetime

import pytest

from walkin.shared.business_hours import BusinessSchedule, business_status, is_open_at

# 2024-01-01 is a Monday
SCHEDULE = BusinessSchedule()


def test_open_during_hours():
    status = business_status(datetime(2024, 1, 2, 14, 0), SCHEDULE)
    assert status.is_open
    assert status.message == "Open until 7 PM"
    assert status.next_open_time is None


def test_before_opening_opens_same_day():
    status = business_status(datetime(2024, 1, 1, 9, 59), SCHEDULE)
    assert not status.is_open
    assert status.next_open_time == "10:00 AM"
    assert status.message == "Closed - Opens 10:00 AM"


def test_after_closing_opens_tomorrow():
    status = business_status(datetime(2024, 1, 5, 20, 0), SCHEDULE)
    assert not status.is_open
    assert status.next_open_time == "Tomorrow 10:00 AM"


def test_saturday_closing_skips_sunday():
    status = business_status(datetime(2024, 1, 6, 19, 0), SCHEDULE)
    assert not status.is_open
    assert status.next_open_time == "Monday 10:00 AM"
    assert status.message == "Closed - Opens Monday 10:00 AM"


def test_sunday_opens_tomorrow():
    status = business_status(datetime(2024, 1, 7, 12, 0), SCHEDULE)
    assert not status.is_open
    assert status.next_open_time == "Tomorrow 10:00 AM"


def test_boundaries():
    assert is_open_at(datetime(2024, 1, 1, 10, 0), SCHEDULE)
    assert is_open_at(datetime(2024, 1, 1, 18, 59), SCHEDULE)
    assert not is_open_at(datetime(2024, 1, 1, 19, 0), SCHEDULE)


def test_aware_time_is_converted_to_business_timezone():
    # Amsterdam is UTC+1 in January
    assert not business_status(datetime(2024, 1, 1, 8, 30, tzinfo=UTC), SCHEDULE).is_open
    assert business_status(datetime(2024, 1, 1, 9, 30, tzinfo=UTC), SCHEDULE).is_open


def test_no_open_days_is_always_closed():
    schedule = BusinessSchedule(open_days=frozenset())
    status = business_status(datetime(2024, 1, 1, 12, 0), schedule)
    assert not status.is_open
    assert status.message == "Closed"
    assert status.next_open_time is None


def test_custom_schedule():
    schedule = BusinessSchedule(open_days=frozenset({2}), open_hour=9, close_hour=24, timezone="UTC")
    assert business_status(datetime(2024, 1, 3, 23, 0), schedule).message == "Open until 12 AM"
    # Thursday: next Wednesday is six days out
    assert business_status(datetime(2024, 1, 4, 12, 0), schedule).next_open_time == "Wednesday 9:00 AM"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"open_hour": 19, "close_hour": 10},
        {"open_hour": 10, "close_hour": 10},
        {"close_hour": 25},
        {"open_days": frozenset({7})},
        {"timezone": "Mars/Olympus_Mons"},
    ],
)
def test_invalid_schedule(kwargs):
    with pytest.raises(ValueError):
        BusinessSchedule(**kwargs)
