"""Sberbank statements.

Text layout (PDF export), one operation per match::

    05.03.2024 14:20 001 Пенсия ПФР +12 345,67 55 000,00
    <date>     <time> <code> <description> <amount> <balance>

Older export engines drop the code/balance columns, hence two fallbacks:
``date description amount`` and ``date time description amount``. Without
the time/code anchors those also match letterhead lines, so their matches are
screened through :data:`FALLBACK_SCREEN` first.

Amounts use a comma decimal mark and space thousands separators.
"""

from __future__ import annotations

import re

from ..amounts import COMMA_DECIMAL
from ..models import CandidateRecord
from .base import COMMON_NOISE, ExtractionRule, Institution, TabularLayout, TextStrategy

KEY = "sberbank"
NAME = "Sberbank"

_DATE = r"(\d{2}\.\d{2}\.\d{4})"
_AMOUNT = r"([+-]?\d{1,3}(?:\s\d{3})*(?:,\d{2})?)"
_BALANCE = r"(\d{1,3}(?:\s\d{3})*(?:,\d{2})?)"

PRIMARY_RE = re.compile(rf"{_DATE}\s+(\d{{2}}:\d{{2}})\s+(\d+)\s+(.+?)\s+{_AMOUNT}\s+{_BALANCE}")
DATE_DESCRIPTION_AMOUNT_RE = re.compile(rf"{_DATE}\s+(.+?)\s+{_AMOUNT}")
DATE_TIME_DESCRIPTION_AMOUNT_RE = re.compile(rf"{_DATE}\s+(\d{{2}}:\d{{2}})\s+(.+?)\s+{_AMOUNT}")

FALLBACK_SCREEN: tuple[str, ...] = COMMON_NOISE + (
    "альфа-банк",
    "www.alfabank.ru",
    "генеральная лицензия банка россии",
    "страница",
    "итого",
    "баланс на начало",
    "баланс на конец",
    "выписка",
    "период",
    "счет",
    "карта",
    "номер",
    "лицензия",
    "банк россии",
)


def _primary(m: re.Match[str], s: TextStrategy) -> CandidateRecord:
    date_s, time_s, code, description, amount_s, balance_s = m.groups()
    return CandidateRecord(
        raw=m.group(0),
        date=s.parse_date(date_s),
        amount=s.parse_amount(amount_s),
        description=description.strip(),
        balance=s.parse_amount(balance_s),
        meta={"time": time_s, "code": code, "pattern": "primary"},
    )


def _date_description_amount(m: re.Match[str], s: TextStrategy) -> CandidateRecord:
    date_s, description, amount_s = m.groups()
    return CandidateRecord(
        raw=m.group(0),
        date=s.parse_date(date_s),
        amount=s.parse_amount(amount_s),
        description=description.strip(),
        meta={"pattern": "alternative1"},
    )


def _date_time_description_amount(m: re.Match[str], s: TextStrategy) -> CandidateRecord:
    date_s, time_s, description, amount_s = m.groups()
    return CandidateRecord(
        raw=m.group(0),
        date=s.parse_date(date_s),
        amount=s.parse_amount(amount_s),
        description=description.strip(),
        meta={"time": time_s, "pattern": "alternative2"},
    )


STRATEGY = TextStrategy(
    key=KEY,
    name=NAME,
    convention=COMMA_DECIMAL,
    rules=(
        ExtractionRule("primary", PRIMARY_RE, _primary),
        ExtractionRule(
            "alternative1", DATE_DESCRIPTION_AMOUNT_RE, _date_description_amount, screen=FALLBACK_SCREEN
        ),
        ExtractionRule(
            "alternative2",
            DATE_TIME_DESCRIPTION_AMOUNT_RE,
            _date_time_description_amount,
            screen=FALLBACK_SCREEN,
        ),
    ),
)

LAYOUTS: tuple[TabularLayout, ...] = (
    TabularLayout(
        KEY,
        "sberbank:date-time-amount-description-balance",
        {"date": "A", "time": "B", "amount": "C", "description": "D", "balance": "E"},
        convention=COMMA_DECIMAL,
    ),
    TabularLayout(
        KEY,
        "sberbank:date-description-amount-balance",
        {"date": "A", "description": "B", "amount": "C", "balance": "D"},
        convention=COMMA_DECIMAL,
    ),
)

INSTITUTION = Institution(
    key=KEY,
    name=NAME,
    text=STRATEGY,
    layouts=LAYOUTS,
    aliases=("sber", "сбербанк", "сбер"),
    cell_markers=("СБЕРБАНК", "СБЕР БАНК", "SBERBANK"),
    text_markers=("сбербанк", "sberbank"),
)
