"""Ozon Bank statements.

One operation per match, with the sign printed apart from the amount::

    12.04.2024 10:15:42 784512 Оплата товаров Ozon - 1 499.00 ₽
    <date>     <time>   <number> <description>  <sign> <amount>
"""

from __future__ import annotations

import re

from ..amounts import AmountConvention
from ..models import CandidateRecord
from .base import ExtractionRule, Institution, TextStrategy

KEY = "ozon"
NAME = "Ozon Bank"

CONVENTION = AmountConvention("ozon", decimal_marks=(".", ","))

OPERATION_RE = re.compile(
    r"(\d{2}\.\d{2}\.\d{4})\s+(\d{2}:\d{2}:\d{2})\s+(\d+)\s+(.+?)\s+([+-])\s?([\d\s]+[.,]\d{2})\s?₽"
)


def _operation(m: re.Match[str], s: TextStrategy) -> CandidateRecord:
    date_s, time_s, number, description, sign, amount_s = m.groups()
    return CandidateRecord(
        raw=m.group(0),
        date=s.parse_date(date_s),
        amount=s.parse_amount(sign + amount_s),
        description=description.strip(),
        meta={"time": time_s, "number": number, "pattern": "operation"},
    )


STRATEGY = TextStrategy(
    key=KEY,
    name=NAME,
    convention=CONVENTION,
    rules=(ExtractionRule("operation", OPERATION_RE, _operation),),
)

# Ozon Bank only exports PDF statements.
INSTITUTION = Institution(
    key=KEY,
    name=NAME,
    text=STRATEGY,
    aliases=("ozon-bank", "ozonbank", "озон", "озон банк"),
    text_markers=("озон банк", "ozon"),
)
