import math
from datetime import date, datetime

import pytest

from catalog.crowdfunding import compute_status, parse_date_flexible

NOW = datetime(2024, 6, 1, 12, 0)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2024-06-30", date(2024, 6, 30)),
        ("2024-6-3", date(2024, 6, 3)),
        ("06/30/2024", date(2024, 6, 30)),
        ("30/06/2024", date(2024, 6, 30)),
        ("05/06/2024", date(2024, 5, 6)),
        ("2024-02-30", None),
        ("13/13/2024", None),
        ("soon", None),
        ("", None),
    ],
)
def test_parse_date_flexible(value, expected):
    assert parse_date_flexible(value) == expected


def test_upcoming_within_a_week_counts_days():
    status = compute_status({"Launch Date (YYYY-MM-DD)": "2024-06-04"}, NOW)
    assert status.status == "Upcoming"
    assert status.label == "Launches in 3 days"


def test_upcoming_beyond_a_week_shows_date():
    status = compute_status(
        {"Launch Date (YYYY-MM-DD)": "2024-09-30", "End Date (YYYY-MM-DD)": "2024-10-30"}, NOW
    )
    assert status.status == "Upcoming"
    assert status.label == "Launches Sep 30, 2024"


def test_live_and_ended():
    live = compute_status(
        {"Launch Date (YYYY-MM-DD)": "2024-05-01", "End Date (YYYY-MM-DD)": "2024-06-02"}, NOW
    )
    assert (live.status, live.label) == ("Live", "Ends in 1 day")

    ended = compute_status(
        {"Launch Date (YYYY-MM-DD)": "2024-01-01", "End Date (YYYY-MM-DD)": "2024-02-01"}, NOW
    )
    assert (ended.status, ended.label) == ("Ended", "Ended Feb 1, 2024")


def test_end_only_rows():
    live = compute_status({"End Date (YYYY-MM-DD)": "2024-07-04"}, NOW)
    assert (live.status, live.label) == ("Live", "Ends Jul 4, 2024")
    assert live.sort_launch == 0.0

    ended = compute_status({"End Date (YYYY-MM-DD)": "2024-05-04"}, NOW)
    assert ended.status == "Ended"


def test_missing_dates_are_tba_and_sort_last():
    status = compute_status({}, NOW)
    assert (status.status, status.label) == ("Upcoming", "Date TBA")
    assert status.sort_launch == math.inf
    assert status.sort_end == math.inf
