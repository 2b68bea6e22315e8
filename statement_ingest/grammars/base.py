"""Shared machinery for institution grammars.

An institution grammar is data: an ordered tuple of :class:`ExtractionRule`
objects for extracted statement text, zero or more :class:`TabularLayout`
column mappings for spreadsheets, a boilerplate deny-list and the amount
convention the bank prints numbers in. :class:`TextStrategy` runs the rules
with fallback semantics:

- rules are tried in order;
- the first rule that yields at least one viable candidate (parsed date and
  non-zero amount) is used exclusively;
- candidates of a rule are never merged with those of another rule.

A rule may carry its own ``screen`` deny-list. Matches whose description hits
it are dropped inside the rule and never count toward viability, which keeps
loose fallback patterns from committing on letterhead lines.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, TypeAlias

from ..amounts import EITHER_DECIMAL, AmountConvention, parse_amount
from ..categories import DEFAULT_CLASSIFIER, fold, normalize_category
from ..dates import parse_date, parse_date_cell
from ..documents import Cell, CellGrid
from ..logging_setup import get_logger
from ..models import CandidateRecord

_logger = get_logger("statement_ingest.grammars")

MIN_DESCRIPTION_LENGTH = 3

# Boilerplate that appears in every supported bank's exports.
COMMON_NOISE: tuple[str, ...] = (
    "действителен до",
    "для проверки подлинности",
    "итого по операциям",
    "остаток на",
    "генеральная лицензия",
    "расшифровка операций",
    "продолжение на следующей странице",
    "дата формирования",
    "пао сбербанк",
    "www.sberbank.ru",
)

_DIGITS_ONLY_RE = re.compile(r"^\d+$")

Classifier: TypeAlias = Callable[[str | None], str]


def is_noise(description: str | None, deny_list: tuple[str, ...]) -> bool:
    """True when ``description`` is boilerplate rather than a transaction."""

    if not description:
        return True
    desc = fold(description.strip())
    if any(p in desc for p in deny_list):
        return True
    return len(desc) < MIN_DESCRIPTION_LENGTH or bool(_DIGITS_ONLY_RE.match(desc))


@dataclass(frozen=True, slots=True)
class ExtractionRule:
    """One structural pattern plus the mapping from a match to a candidate."""

    name: str
    pattern: re.Pattern[str]
    build: Callable[[re.Match[str], TextStrategy], CandidateRecord]
    screen: tuple[str, ...] = ()

    def screens_out(self, description: str | None) -> bool:
        return bool(self.screen) and is_noise(description, self.screen)


@dataclass(frozen=True, slots=True)
class TextStrategy:
    """Extraction strategy for one institution's statement text."""

    key: str
    name: str
    rules: tuple[ExtractionRule, ...]
    convention: AmountConvention = EITHER_DECIMAL
    deny_list: tuple[str, ...] = COMMON_NOISE
    classifier: Classifier = DEFAULT_CLASSIFIER

    def parse_amount(self, text: object) -> Decimal:
        return parse_amount(text, self.convention)

    def parse_date(self, text: str | None) -> date | None:
        return parse_date(text)

    def classify(self, description: str | None) -> str:
        return self.classifier(description)

    def is_noise(self, description: str | None) -> bool:
        return is_noise(description, self.deny_list)

    def extract(self, text: str) -> Iterator[CandidateRecord]:
        """Yield candidates in document order from the first productive rule.

        Matches seen before the rule's first viable candidate are buffered
        and released once the rule is committed to; a rule with no viable
        candidate is discarded entirely.
        """

        for rule in self.rules:
            pending: list[CandidateRecord] = []
            committed = False
            for m in rule.pattern.finditer(text):
                cand = rule.build(m, self)
                if rule.screens_out(cand.description):
                    continue
                if committed:
                    yield cand
                    continue
                pending.append(cand)
                if cand.date is not None and cand.amount:
                    committed = True
                    _logger.debug("%s: using rule %r", self.key, rule.name)
                    yield from pending
                    pending.clear()
            if committed:
                return
            _logger.debug("%s: rule %r produced no candidates", self.key, rule.name)


# Tabular fields that a layout may map but does not require a header for.
OPTIONAL_FIELDS = frozenset({"time", "category", "balance"})
_AMOUNT_FIELDS = frozenset({"amount", "income", "expense", "balance"})


@dataclass(frozen=True, slots=True)
class TabularLayout:
    """Column-letter mapping for one spreadsheet export variant."""

    institution: str
    name: str
    columns: Mapping[str, str]
    convention: AmountConvention = EITHER_DECIMAL
    deny_list: tuple[str, ...] = COMMON_NOISE
    classifier: Classifier = DEFAULT_CLASSIFIER

    @property
    def required_fields(self) -> tuple[str, ...]:
        return tuple(f for f in self.columns if f not in OPTIONAL_FIELDS)

    def is_noise(self, description: str | None) -> bool:
        return is_noise(description, self.deny_list)

    def classify(self, description: str | None) -> str:
        return self.classifier(description)

    def _cell_value(self, cell: Cell, fieldname: str) -> Any:
        if fieldname == "date":
            return parse_date_cell(cell.value)
        if fieldname in _AMOUNT_FIELDS:
            return parse_amount(cell.value, self.convention)
        if fieldname == "time" and hasattr(cell.value, "strftime"):
            return cell.value.strftime("%H:%M")
        return cell.text().strip()

    def parse_row(self, grid: CellGrid, row: int) -> CandidateRecord | None:
        """Map one row through the layout; ``None`` when the row is empty."""

        values: dict[str, Any] = {}
        raw_parts: list[str] = []
        for fieldname, column in self.columns.items():
            cell = grid.get_cell(row, column)
            if cell.is_empty:
                continue
            values[fieldname] = self._cell_value(cell, fieldname)
            raw_parts.append(cell.text().strip())
        if not values:
            return None

        description = values.get("description") or None
        category_cell = values.get("category") or None
        meta: dict[str, Any] = {"layout": self.name, "row": row}
        if values.get("time"):
            meta["time"] = values["time"]

        return CandidateRecord(
            raw=" | ".join(raw_parts),
            date=values.get("date"),
            amount=values.get("amount"),
            income=values.get("income") or None,
            expense=values.get("expense") or None,
            balance=values.get("balance"),
            description=description,
            category=normalize_category(category_cell) if category_cell else None,
            meta=meta,
        ).normalized()

    def extract(self, grid: CellGrid, header_row: int) -> Iterator[CandidateRecord]:
        """Yield one candidate per non-empty row below ``header_row``."""

        for row in range(header_row + 1, grid.row_count + 1):
            cand = self.parse_row(grid, row)
            if cand is not None:
                yield cand


@dataclass(frozen=True, slots=True)
class Institution:
    """Registry entry: one bank, its grammars and its identifying markers."""

    key: str
    name: str
    text: TextStrategy | None
    layouts: tuple[TabularLayout, ...] = ()
    aliases: tuple[str, ...] = ()
    # Upper-cased substrings that identify the bank in spreadsheet cells.
    cell_markers: tuple[str, ...] = ()
    # Case-folded substrings that identify the bank in statement text.
    text_markers: tuple[str, ...] = ()


__all__ = [
    "COMMON_NOISE",
    "MIN_DESCRIPTION_LENGTH",
    "OPTIONAL_FIELDS",
    "Classifier",
    "is_noise",
    "ExtractionRule",
    "TextStrategy",
    "TabularLayout",
    "Institution",
]
