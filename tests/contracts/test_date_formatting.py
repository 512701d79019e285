"""Tests for moment-style date pattern formatting."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone

from integration_runtime.helpers.dates import format_date, parse_date


def test_tokens_render_calendar_and_clock_fields() -> None:
    moment = datetime(2024, 3, 9, 15, 4, 5, 120000)

    assert format_date(moment, "YYYY-MM-DD HH:mm:ss.SSS") == "2024-03-09 15:04:05.120"
    assert format_date(moment, "dddd, MMMM Do YYYY h:mm A") == "Saturday, March 9th 2024 3:04 PM"
    assert format_date(moment, "ddd D MMM YY, hh a") == "Sat 9 Mar 24, 03 pm"


def test_bracketed_text_is_literal() -> None:
    assert format_date("2024-03-09", "[Day] D [of] MMMM") == "Day 9 of March"


def test_offsets_and_epoch_tokens() -> None:
    moment = datetime(2024, 1, 1, 0, 0, tzinfo=timezone(timedelta(hours=-5)))

    assert format_date(moment, "Z") == "-05:00"
    assert format_date(moment, "ZZ") == "-0500"
    assert format_date(datetime(1970, 1, 1, 0, 0, 10, tzinfo=UTC), "X") == "10"


def test_default_pattern_is_iso_like() -> None:
    assert format_date("2024-03-09T08:30:00+00:00") == "2024-03-09T08:30:00+00:00"


def test_ordinals() -> None:
    assert [format_date(date(2024, 1, day), "Do") for day in (1, 2, 3, 4, 11, 12, 13, 21, 22, 23)] == [
        "1st",
        "2nd",
        "3rd",
        "4th",
        "11th",
        "12th",
        "13th",
        "21st",
        "22nd",
        "23rd",
    ]


def test_parse_date_inputs() -> None:
    assert parse_date("07/04/2023") == datetime(2023, 7, 4)
    assert parse_date(86_400_000) == datetime(1970, 1, 2, tzinfo=UTC)
    assert parse_date(True) is None
    assert parse_date("   ") is None
    assert format_date("garbage", "YYYY") is None
