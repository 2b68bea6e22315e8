from decimal import Decimal

import pytest

from statement_ingest.amounts import (
    COMMA_DECIMAL,
    DOT_DECIMAL,
    EITHER_DECIMAL,
    format_amount,
    parse_amount,
    to_decimal,
)
from statement_ingest.errors import AmountParseFailure


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("+12 345,67", Decimal("12345.67")),
        ("12 345.67 ₽", Decimal("12345.67")),
        ("-1234,50 RUR", Decimal("-1234.50")),
        ("12 345,67", Decimal("12345.67")),
        ("12 345,67", Decimal("12345.67")),
        ("−300,00", Decimal("-300.00")),
        ("1 000", Decimal("1000")),
    ],
)
def test_parse_amount_locale_variants(text: str, expected: Decimal) -> None:
    assert parse_amount(text, EITHER_DECIMAL) == expected


def test_comma_convention_does_not_read_dot_as_decimal_mark() -> None:
    assert parse_amount("12 345,67", COMMA_DECIMAL) == Decimal("12345.67")
    assert parse_amount("12345.67", COMMA_DECIMAL) == Decimal("12345")


@pytest.mark.parametrize("value", ["", "   ", "abc", None, "₽"])
def test_parse_amount_unparseable_is_zero(value) -> None:
    assert parse_amount(value) == Decimal(0)


def test_native_numbers_pass_through() -> None:
    assert parse_amount(1500) == Decimal("1500")
    assert parse_amount(-12.5) == Decimal("-12.5")
    assert parse_amount(Decimal("3.10")) == Decimal("3.10")


def test_to_decimal_raises_with_snippet() -> None:
    with pytest.raises(AmountParseFailure) as excinfo:
        to_decimal("n/a")
    assert excinfo.value.snippet == "n/a"
    assert isinstance(excinfo.value, ValueError)


def test_format_amount_in_institution_notation() -> None:
    assert format_amount(Decimal("-12345.6")) == "-12 345,60"
    assert format_amount(Decimal("1000"), DOT_DECIMAL) == "1 000.00"
    assert format_amount(Decimal("0.5")) == "0,50"


@pytest.mark.parametrize("value", ["12345.67", "-0.01", "1000000", "-987654.32"])
def test_format_then_parse_is_identity(value: str) -> None:
    d = Decimal(value)
    for convention in (COMMA_DECIMAL, DOT_DECIMAL):
        assert parse_amount(format_amount(d, convention), convention) == d
