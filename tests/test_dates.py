from __future__ import annotations

import logging
from datetime import date, datetime

import pandas as pd
import pytest

from crm_autopilot.dates import (
    clean_iso_string,
    format_long_date,
    is_same_date,
    normalize,
    shift_days,
)


def test_normalize_returns_datetime_unchanged() -> None:
    value = datetime(2024, 3, 5, 10, 30)

    assert normalize(value) is value


def test_normalize_promotes_plain_date_to_midnight() -> None:
    assert normalize(date(2024, 3, 5)) == datetime(2024, 3, 5)


def test_normalize_converts_pandas_timestamp() -> None:
    result = normalize(pd.Timestamp("2024-03-05 08:00"))

    assert type(result) is datetime
    assert result == datetime(2024, 3, 5, 8, 0)


@pytest.mark.parametrize(
    "raw, cleaned",
    [
        ("2024-03-05T10:30:00Z", "2024-03-05 10:30:00"),
        ("2024-03-05T00:00:00", "2024-03-05 00:00:00"),
        ("2023-12-31T23:59:59Z", "2023-12-31 23:59:59"),
    ],
)
def test_iso_marker_is_stripped_before_parsing(raw: str, cleaned: str) -> None:
    assert clean_iso_string(raw) == cleaned
    assert normalize(raw) == normalize(cleaned)
    assert normalize(raw) == datetime.fromisoformat(cleaned)


def test_clean_iso_string_leaves_words_alone() -> None:
    assert clean_iso_string("Tuesday") == "Tuesday"


def test_normalize_parses_month_first_strings() -> None:
    assert normalize("03/05/2024") == datetime(2024, 3, 5)


def test_unparseable_string_returns_none_and_logs(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="crm_autopilot")

    assert normalize("not a date", row=7) is None
    assert "Row 7: Invalid date format after parsing" in caplog.text


@pytest.mark.parametrize("raw", [None, "", "   ", 42, 3.5, True, object(), pd.NaT])
def test_missing_or_non_date_values_return_none(raw: object) -> None:
    assert normalize(raw) is None


def test_missing_value_logs_row(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="crm_autopilot")

    normalize(None, row=3)

    assert "Row 3: Invalid or missing date" in caplog.text


def test_is_same_date_ignores_time_of_day() -> None:
    d = datetime(2024, 2, 29, 0, 0)

    assert is_same_date(d, d)
    assert is_same_date(d, datetime(2024, 2, 29, 23, 59))
    assert is_same_date(d, date(2024, 2, 29))
    assert not is_same_date(d, datetime(2024, 3, 1))
    assert not is_same_date(d, datetime(2023, 2, 28))


@pytest.mark.parametrize(
    "start, expected",
    [
        (datetime(2023, 3, 1), datetime(2023, 1, 18)),
        (datetime(2024, 3, 1), datetime(2024, 1, 19)),
        (datetime(2024, 1, 10), datetime(2023, 11, 29)),
        (datetime(2024, 6, 1, 14, 45), datetime(2024, 4, 20, 14, 45)),
    ],
)
def test_shift_days_back_42_crosses_month_and_year(start: datetime, expected: datetime) -> None:
    assert shift_days(start, -42) == expected


def test_format_long_date() -> None:
    assert format_long_date(datetime(2024, 3, 1)) == "March 01, 2024"
    assert format_long_date(None) == "N/A"


@pytest.mark.parametrize("raw", ["today", "now", "Now", "tomorrow", "March"])
def test_relative_words_are_not_dates(raw: str) -> None:
    assert normalize(raw) is None
