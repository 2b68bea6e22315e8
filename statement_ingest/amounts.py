"""Amount normalization for locale-variant statement numbers.

Banks print the same value as ``+12 345,67``, ``12 345.67 ₽``,
``-1234,50 RUR`` or ``12 345,67``. :func:`parse_amount` strips
whitespace (including no-break and narrow no-break spaces) and currency
glyphs, finds the first signed number, drops thousands separators and
canonicalizes the decimal mark to a dot.

``parse_amount`` never raises: an unparseable value yields ``Decimal(0)``,
which callers treat as "no amount" (a zero amount is never a valid
transaction). :func:`to_decimal` is the strict variant and raises
:class:`~statement_ingest.errors.AmountParseFailure`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .errors import AmountParseFailure
from .logging_setup import get_logger

_logger = get_logger("statement_ingest.amounts")

ZERO = Decimal(0)
_CENT = Decimal("0.01")

_CURRENCY_RE = re.compile(r"₽|\$|€|RUR|RUB|руб\.?", re.IGNORECASE)
_MINUS_CHARS = str.maketrans({"−": "-", "–": "-"})


@dataclass(frozen=True, slots=True)
class AmountConvention:
    """How one institution writes numbers.

    ``decimal_marks`` lists accepted decimal separators (the first one is used
    when formatting). ``thousands_sep`` is only used when formatting; while
    parsing, whitespace separators are removed up front and a non-whitespace
    separator is stripped only when it is not a decimal mark.
    """

    name: str
    decimal_marks: tuple[str, ...] = (",",)
    thousands_sep: str = " "

    def number_re(self) -> re.Pattern[str]:
        marks = re.escape("".join(self.decimal_marks))
        if self.thousands_sep.strip() and self.thousands_sep not in self.decimal_marks:
            sep = re.escape(self.thousands_sep)
            grouped = rf"\d{{1,3}}(?:{sep}\d{{3}})+(?:[{marks}]\d{{1,2}})?"
            return re.compile(rf"[+-]?(?:{grouped}|\d+(?:[{marks}]\d{{1,2}})?)")
        return re.compile(rf"[+-]?\d+(?:[{marks}]\d{{1,2}})?")


COMMA_DECIMAL = AmountConvention("comma", decimal_marks=(",",))
DOT_DECIMAL = AmountConvention("dot", decimal_marks=(".",))
EITHER_DECIMAL = AmountConvention("either", decimal_marks=(",", "."))


def _clean(text: str) -> str:
    s = text.translate(_MINUS_CHARS)
    s = _CURRENCY_RE.sub("", s)
    return re.sub(r"\s+", "", s)


def to_decimal(value: object, convention: AmountConvention = EITHER_DECIMAL) -> Decimal:
    """Strictly parse ``value`` into a signed :class:`~decimal.Decimal`.

    Accepts numeric cell values (``int``/``float``/``Decimal``) as-is.
    Raises :class:`AmountParseFailure` when no number can be located.
    """

    if isinstance(value, bool) or value is None:
        raise AmountParseFailure(value)
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise AmountParseFailure(value)
        return value
    if isinstance(value, (int, float)):
        try:
            d = Decimal(str(value))
        except InvalidOperation as exc:
            raise AmountParseFailure(value) from exc
        if not d.is_finite():
            raise AmountParseFailure(value)
        return d

    s = _clean(str(value))
    m = convention.number_re().search(s)
    if not m:
        raise AmountParseFailure(value)
    token = m.group(0)
    sep = convention.thousands_sep
    if sep.strip() and sep not in convention.decimal_marks:
        token = token.replace(sep, "")
    for mark in convention.decimal_marks:
        token = token.replace(mark, ".")
    try:
        return Decimal(token)
    except InvalidOperation as exc:
        raise AmountParseFailure(value) from exc


def parse_amount(value: object, convention: AmountConvention = EITHER_DECIMAL) -> Decimal:
    """Parse ``value`` into a signed decimal; ``Decimal(0)`` when impossible."""

    try:
        return to_decimal(value, convention)
    except AmountParseFailure as exc:
        _logger.debug("amount dropped: %s", exc)
        return ZERO


def format_amount(value: Decimal, convention: AmountConvention = COMMA_DECIMAL) -> str:
    """Render ``value`` with two decimals in ``convention``'s own notation.

    ``format_amount(Decimal("-12345.6"), COMMA_DECIMAL) == "-12 345,60"``.
    """

    q = value.quantize(_CENT, rounding=ROUND_HALF_UP)
    sign = "-" if q < 0 else ""
    whole, frac = f"{abs(q):.2f}".split(".")
    groups: list[str] = []
    while len(whole) > 3:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    groups.insert(0, whole)
    return f"{sign}{convention.thousands_sep.join(groups)}{convention.decimal_marks[0]}{frac}"


def quantize_cents(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


__all__ = [
    "AmountConvention",
    "COMMA_DECIMAL",
    "DOT_DECIMAL",
    "EITHER_DECIMAL",
    "ZERO",
    "to_decimal",
    "parse_amount",
    "format_amount",
    "quantize_cents",
]
