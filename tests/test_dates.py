from datetime import date, datetime

import pytest

from statement_ingest.dates import format_date, from_serial, parse_date, parse_date_cell, to_date
from statement_ingest.errors import DateParseFailure


def test_day_first_date() -> None:
    assert parse_date("05.03.2024") == date(2024, 3, 5)


def test_time_of_day_is_dropped() -> None:
    assert parse_date("05.03.2024 14:22") == date(2024, 3, 5)
    assert parse_date("05.03.2024 14:22:07") == date(2024, 3, 5)


def test_iso_date() -> None:
    assert parse_date("2024-03-05") == date(2024, 3, 5)


@pytest.mark.parametrize(
    "text",
    [
        "31.04.2024",  # no such day; must not roll into May
        "31.02.2024",
        "15.13.1999",
        "29.02.2023",
        "00.01.2024",
        "05.13.2024",
        "05.03.1899",
        "5.3.2024",
        "",
        "Дата",
    ],
)
def test_invalid_dates_yield_none(text: str) -> None:
    assert parse_date(text) is None


def test_leap_day() -> None:
    assert parse_date("29.02.2024") == date(2024, 2, 29)


def test_to_date_reports_reason() -> None:
    with pytest.raises(DateParseFailure, match="no such calendar day"):
        to_date("31.04.2024")


def test_serial_dates() -> None:
    assert from_serial(25569) == date(1970, 1, 1)
    assert from_serial(45356) == date(2024, 3, 5)
    # Fractional part is the time of day.
    assert from_serial(45356.75) == date(2024, 3, 5)


def test_date_cells() -> None:
    assert parse_date_cell(datetime(2024, 3, 5, 14, 0)) == date(2024, 3, 5)
    assert parse_date_cell(date(2024, 3, 5)) == date(2024, 3, 5)
    assert parse_date_cell(45356) == date(2024, 3, 5)
    assert parse_date_cell("05.03.2024") == date(2024, 3, 5)
    assert parse_date_cell("total") is None
    assert parse_date_cell(None) is None


def test_format_date() -> None:
    assert format_date(date(2024, 3, 5)) == "05.03.2024"


@pytest.mark.parametrize(
    "d",
    [date(1900, 1, 1), date(1999, 12, 31), date(2024, 2, 29), date(2100, 12, 31)],
)
def test_format_then_parse_is_identity(d: date) -> None:
    assert parse_date(format_date(d)) == d
