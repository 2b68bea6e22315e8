"""Alfa-Bank statements.

PDF exports print an operation code between the date and the description::

    14.02.2024 CRD_4R7T12 Перевод с карты на карту -3 000,00 RUR

The code is kept in front of the description (``[CRD_4R7T12] Перевод ...``)
so that same-day operations with identical text stay distinguishable, but
categories are inferred from the description without it.

Spreadsheet exports come in three shapes: separate income/expense columns,
a single signed amount column, and the wide "card operations" sheet where
the fields sit in columns B, F, L and N.
"""

from __future__ import annotations

import re

from ..amounts import EITHER_DECIMAL
from ..models import CandidateRecord
from .base import ExtractionRule, Institution, TabularLayout, TextStrategy

KEY = "alfabank"
NAME = "Alfa-Bank"

CONVENTION = EITHER_DECIMAL

OPERATION_RE = re.compile(
    r"(\d{2}\.\d{2}\.\d{4})\s+([A-Z0-9_]+)\s+(.+?)\s+([+-]?\d[\d\s]*[.,]\d{2})\s*RUR"
)


def _operation(m: re.Match[str], s: TextStrategy) -> CandidateRecord:
    date_s, code, description, amount_s = m.groups()
    plain = description.strip()
    return CandidateRecord(
        raw=m.group(0),
        date=s.parse_date(date_s),
        amount=s.parse_amount(amount_s),
        description=f"[{code}] {plain}",
        classify_text=plain,
        meta={"code": code, "pattern": "operation"},
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
        "alfabank:date-description-income-expense-balance",
        {"date": "A", "description": "B", "income": "C", "expense": "D", "balance": "E"},
        convention=CONVENTION,
    ),
    TabularLayout(
        KEY,
        "alfabank:date-description-amount-balance",
        {"date": "A", "description": "B", "amount": "C", "balance": "D"},
        convention=CONVENTION,
    ),
    TabularLayout(
        KEY,
        "alfabank:card-operations",
        {"date": "B", "description": "L", "amount": "N", "category": "F"},
        convention=CONVENTION,
    ),
)

INSTITUTION = Institution(
    key=KEY,
    name=NAME,
    text=STRATEGY,
    layouts=LAYOUTS,
    aliases=("alfa", "alfa-bank", "альфа", "альфа-банк"),
    cell_markers=("АЛЬФА-БАНК", "АЛЬФА БАНК", "АЛЬФАБАНК", "ALFA-BANK"),
    text_markers=("альфа-банк", "alfa-bank", "alfabank"),
)
