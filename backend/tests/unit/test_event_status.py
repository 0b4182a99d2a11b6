from datetime import datetime, timedelta

import pytest

from ndrop.services.event_status import calculate_event_status, filter_events_by_status

START = "2025-06-01T10:00:00Z"
END = "2025-06-01T12:00:00Z"


@pytest.mark.parametrize(
    "now, expected",
    [
        ("2025-06-01T09:00:00Z", "upcoming"),
        ("2025-06-01T10:00:00Z", "ongoing"),
        ("2025-06-01T11:00:00Z", "ongoing"),
        ("2025-06-01T12:00:00Z", "completed"),
        ("2025-06-01T13:00:00Z", "completed"),
    ],
)
def test_status_around_event_window(now, expected):
    assert calculate_event_status(START, END, now) == expected


def test_status_never_regresses_as_time_moves_forward():
    order = {"upcoming": 0, "ongoing": 1, "completed": 2}
    start = datetime(2025, 6, 1, 10)
    end = datetime(2025, 6, 1, 12)
    previous = -1
    for minutes in range(0, 6 * 60, 7):
        now = datetime(2025, 6, 1, 8) + timedelta(minutes=minutes)
        rank = order[calculate_event_status(start, end, now)]
        assert rank >= previous
        previous = rank


def test_aware_and_naive_values_compare_as_utc():
    assert calculate_event_status("2025-06-01T19:00:00+09:00", END, datetime(2025, 6, 1, 10, 30)) == "ongoing"


def test_filter_events_by_status():
    class _Event:
        def __init__(self, start, end):
            self.start_date = start
            self.end_date = end

    now = datetime(2025, 6, 1, 11)
    past = _Event(datetime(2025, 5, 1), datetime(2025, 5, 2))
    live = _Event(datetime(2025, 6, 1, 10), datetime(2025, 6, 1, 12))
    future = _Event(datetime(2025, 7, 1), datetime(2025, 7, 2))
    events = [past, live, future]

    assert filter_events_by_status(events, "ongoing", now) == [live]
    assert filter_events_by_status(events, "completed", now) == [past]
    assert filter_events_by_status(events, None, now) == events
