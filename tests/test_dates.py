# tests/test_dates.py

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from dates import coerce_due_date, day_bounds, parse_iso_datetime


@pytest.mark.parametrize(
    "value",
    [None, "", "   ", "not a date", "2024-13-40", "31/12/2024", True, False, [], {}, object(), float("nan")],
)
def test_coerce_due_date_turns_garbage_into_none(value) -> None:
    assert coerce_due_date(value) is None


def test_coerce_due_date_parses_iso_strings() -> None:
    assert coerce_due_date("2024-05-01") == datetime(2024, 5, 1)
    assert coerce_due_date("2024-05-01T09:30:00") == datetime(2024, 5, 1, 9, 30)


def test_coerce_due_date_normalises_offsets_to_naive_utc() -> None:
    assert coerce_due_date("2024-05-01T09:30:00.000Z") == datetime(2024, 5, 1, 9, 30)
    assert coerce_due_date("2024-05-01T09:30:00+02:00") == datetime(2024, 5, 1, 7, 30)

    aware = datetime(2024, 5, 1, 12, 0, tzinfo=timezone(timedelta(hours=-3)))
    assert coerce_due_date(aware) == datetime(2024, 5, 1, 15, 0)


def test_coerce_due_date_accepts_dates_and_epoch_millis() -> None:
    assert coerce_due_date(date(2024, 5, 1)) == datetime(2024, 5, 1)
    assert coerce_due_date(0) == datetime(1970, 1, 1)
    assert coerce_due_date(1714555800000) == datetime(2024, 5, 1, 9, 30)


def test_coerce_due_date_rejects_out_of_range_timestamps() -> None:
    assert coerce_due_date(10**20) is None


def test_coerce_due_date_keeps_naive_datetimes() -> None:
    value = datetime(2030, 1, 2, 3, 4, 5)
    assert coerce_due_date(value) == value


def test_parse_iso_datetime_raises_on_bad_input() -> None:
    with pytest.raises(ValueError):
        parse_iso_datetime("yesterday")


def test_day_bounds_cover_the_whole_day() -> None:
    start, end = day_bounds(date(2024, 2, 29))
    assert start == datetime(2024, 2, 29, 0, 0, 0)
    assert end == datetime(2024, 2, 29, 23, 59, 59, 999999)
