"""Tinkoff (T-Bank) statements.

Each operation in the PDF export carries both the operation and the posting
timestamps, the amount in operation currency and in account currency, the
description and the last four card digits::

    05.03.2024 14:20 06.03.2024 09:00 -1 250.00 ₽ -1 250.00 ₽ Кафе Ромашка 1234

The first amount is used; the second (account currency) is kept in ``meta``.
"""

from __future__ import annotations

import re

from ..amounts import AmountConvention
from ..models import CandidateRecord
from .base import ExtractionRule, Institution, TabularLayout, TextStrategy

KEY = "tinkoff"
NAME = "Tinkoff"

# Dot decimals, though older exports still print a comma.
CONVENTION = AmountConvention("tinkoff", decimal_marks=(".", ","))

OPERATION_RE = re.compile(
    r"(\d{2}\.\d{2}\.\d{4})\s+(\d{2}:\d{2})\s+"
    r"(\d{2}\.\d{2}\.\d{4})\s+\d{2}:\d{2}\s+"
    r"([+-]?\d[\d\s]*[.,]\d{2})\s*₽\s*"
    r"([+-]?\d[\d\s]*[.,]\d{2})\s*₽\s*"
    r"([А-Яа-яЁёA-Za-z0-9 .№()%-]+?)\s+(\d{4})"
)


def _operation(m: re.Match[str], s: TextStrategy) -> CandidateRecord:
    date_s, time_s, posted_s, amount_s, account_amount_s, description, card = m.groups()
    return CandidateRecord(
        raw=m.group(0),
        date=s.parse_date(date_s),
        amount=s.parse_amount(amount_s),
        description=description.strip(),
        meta={
            "time": time_s,
            "posted": posted_s,
            "account_amount": s.parse_amount(account_amount_s),
            "card": card,
            "pattern": "operation",
        },
    )


STRATEGY = TextStrategy(
    key=KEY,
    name=NAME,
    convention=CONVENTION,
    rules=(ExtractionRule("operation", OPERATION_RE, _operation),),
)

LAYOUTS: tuple[TabularLayout, ...] = (
    TabularLayout(
        KEY,
        "tinkoff:date-description-amount-category",
        {"date": "A", "description": "B", "amount": "C", "category": "D"},
        convention=CONVENTION,
    ),
    TabularLayout(
        KEY,
        "tinkoff:date-time-description-amount-category",
        {"date": "A", "time": "B", "description": "C", "amount": "D", "category": "E"},
        convention=CONVENTION,
    ),
)

INSTITUTION = Institution(
    key=KEY,
    name=NAME,
    text=STRATEGY,
    layouts=LAYOUTS,
    aliases=("tbank", "t-bank", "тинькофф", "тбанк"),
    cell_markers=("ТИНЬКОФФ", "TINKOFF"),
    text_markers=("тинькофф", "tinkoff", "тбанк", "t-bank"),
)
