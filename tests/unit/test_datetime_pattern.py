"""
Unit tests for Joda-style date/time pattern formatting.
"""

from datetime import datetime, timedelta, timezone

import pytest

from s3_loader.datetime_pattern import compile_pattern, format_datetime
from s3_loader.errors import InvalidPatternError

# Friday, day 64 of 2021, ISO week 9
TS = datetime(2021, 3, 5, 14, 7, 9, 123_456, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "pattern,expected",
    [
        ("yyyy-MM-dd'T'HH:mm:ss.SSS'Z'", "2021-03-05T14:07:09.123Z"),
        ("yyyy/MM/dd", "2021/03/05"),
        ("y", "2021"),
        ("yy", "21"),
        ("yyyyy", "02021"),
        ("YYYY", "2021"),
        ("M", "3"),
        ("MMM", "Mar"),
        ("MMMM", "March"),
        ("d", "5"),
        ("D", "64"),
        ("DDD", "064"),
        ("E", "Fri"),
        ("EEEE", "Friday"),
        ("e", "5"),
        ("w", "9"),
        ("ww", "09"),
        ("xxxx", "2021"),
        ("H", "14"),
        ("h a", "2 PM"),
        ("K", "2"),
        ("k", "14"),
        ("m", "7"),
        ("s", "9"),
        ("S", "1"),
        ("SS", "12"),
        ("SSSSSS", "123000"),
        ("G", "AD"),
        ("C", "20"),
        ("z", "UTC"),
        ("zzzz", "Coordinated Universal Time"),
        ("Z", "+0000"),
        ("ZZ", "+00:00"),
        ("ZZZ", "UTC"),
        ("''", "'"),
        ("'o''clock'", "o'clock"),
        ("{yyyy}", "{2021}"),
        ("", ""),
    ],
)
def test_format(pattern, expected):
    assert format_datetime(TS, pattern) == expected


def test_midnight_clock_hours():
    midnight = datetime(2021, 3, 5, tzinfo=timezone.utc)
    assert format_datetime(midnight, "hh a") == "12 AM"
    assert format_datetime(midnight, "kk") == "24"
    assert format_datetime(midnight, "KK") == "00"


def test_week_year_differs_from_calendar_year():
    """2021-01-01 belongs to ISO week 53 of 2020."""
    jan1 = datetime(2021, 1, 1, tzinfo=timezone.utc)
    assert format_datetime(jan1, "xxxx-'W'ww") == "2020-W53"


def test_non_utc_input_is_converted():
    ts = datetime(2021, 3, 5, 14, 0, tzinfo=timezone(timedelta(hours=-5)))
    assert format_datetime(ts, "HH") == "19"


@pytest.mark.parametrize("pattern", ["not-a-pattern", "q", "yyyy-MM-ddTHH", "bogus", "{foo}"])
def test_illegal_components_raise(pattern):
    with pytest.raises(InvalidPatternError):
        format_datetime(TS, pattern)


def test_invalid_pattern_error_is_value_error():
    with pytest.raises(ValueError, match="Illegal pattern component: q"):
        compile_pattern("q")


def test_compile_pattern_tokens():
    assert compile_pattern("yyyy-MM") == (("y", 4), ("", "-"), ("M", 2))
