"""Date normalization for day-first statement dates.

Statements print dates as ``dd.mm.yyyy`` (optionally followed by a time of
day, which the canonical record does not keep). Tabular sources may also hand
us native ``date``/``datetime`` cells or spreadsheet serial numbers.

Validation is two-step: digit ranges first (day 1–31, month 1–12, year
1900–2100), then the calendar itself, so ``31.04.2024`` and ``29.02.2023``
are rejected rather than rolled over into the next month.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta

from .errors import DateParseFailure
from .logging_setup import get_logger

_logger = get_logger("statement_ingest.dates")

MIN_YEAR = 1900
MAX_YEAR = 2100

# Day zero of spreadsheet serial dates (serial 25569 == 1970-01-01).
SERIAL_EPOCH = date(1899, 12, 30)

_DAY_FIRST_RE = re.compile(r"^(\d{2})\.(\d{2})\.(\d{4})(?:\s+\d{1,2}:\d{2}(?::\d{2})?)?$")
_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ]\d{2}:\d{2}(?::\d{2})?)?$")


def _build(day: int, month: int, year: int, text: object) -> date:
    if not (1 <= day <= 31 and 1 <= month <= 12 and MIN_YEAR <= year <= MAX_YEAR):
        raise DateParseFailure(text, "date component out of range")
    # date() rejects day overflow instead of rolling into the next month.
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise DateParseFailure(text, "no such calendar day") from exc


def to_date(text: str) -> date:
    """Strictly parse ``dd.mm.yyyy`` (or ISO ``yyyy-mm-dd``); raise on failure."""

    if not isinstance(text, str):
        raise DateParseFailure(text, "not a string")
    s = text.strip()
    m = _DAY_FIRST_RE.match(s)
    if m:
        return _build(int(m.group(1)), int(m.group(2)), int(m.group(3)), text)
    m = _ISO_RE.match(s)
    if m:
        return _build(int(m.group(3)), int(m.group(2)), int(m.group(1)), text)
    raise DateParseFailure(text, "unrecognized date format")


def parse_date(text: str | None) -> date | None:
    """Return the calendar date in ``text`` or ``None``; never raises."""

    if text is None:
        return None
    try:
        return to_date(text)
    except DateParseFailure as exc:
        _logger.debug("date dropped: %s", exc)
        return None


def from_serial(serial: float) -> date:
    """Convert a spreadsheet serial day count into a date."""

    if isinstance(serial, bool) or not math.isfinite(serial):
        raise DateParseFailure(serial, "not a serial day count")
    try:
        d = SERIAL_EPOCH + timedelta(days=math.floor(serial))
    except OverflowError as exc:
        raise DateParseFailure(serial, "serial out of range") from exc
    if not (MIN_YEAR <= d.year <= MAX_YEAR):
        raise DateParseFailure(serial, "date component out of range")
    return d


def parse_date_cell(value: object) -> date | None:
    """Parse a tabular cell: native date/datetime, serial number, or text."""

    if value is None:
        return None
    try:
        if isinstance(value, datetime):
            d = value.date()
            return d if MIN_YEAR <= d.year <= MAX_YEAR else None
        if isinstance(value, date):
            return value if MIN_YEAR <= value.year <= MAX_YEAR else None
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return from_serial(value)
        return to_date(str(value))
    except DateParseFailure as exc:
        _logger.debug("date cell dropped: %s", exc)
        return None


def format_date(d: date) -> str:
    return d.strftime("%d.%m.%Y")


__all__ = [
    "MIN_YEAR",
    "MAX_YEAR",
    "SERIAL_EPOCH",
    "to_date",
    "parse_date",
    "from_serial",
    "parse_date_cell",
    "format_date",
]
