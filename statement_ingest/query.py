"""Read-side helpers over an aggregated transaction collection.

- :func:`aggregate` flattens statements into :class:`LedgerRow` values that
  carry their statement's account, file name, period and parse time.
- :func:`filter_and_sort` applies :class:`TransactionFilters` (AND
  semantics) and an optional single-field :class:`SortSpec`.

Both accept ``TransactionRecord`` values, ``LedgerRow`` values or plain
mappings (records loaded back from a store), return new lists and never
raise on malformed records: a missing or unreadable field simply does not
match a filter, and sorts after every record that has it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, TypeVar

from .dedupe import coerce_amount, coerce_date, record_field
from .models import Statement, StatementPeriod, TransactionRecord

RecT = TypeVar("RecT")


@dataclass(frozen=True, slots=True)
class LedgerRow:
    """One transaction with the context of the statement it came from."""

    date: date
    amount: Decimal
    description: str
    category: str
    institution: str
    raw: str = ""
    meta: Mapping[str, Any] = field(default_factory=dict)
    account: str | None = None
    file_name: str | None = None
    period: StatementPeriod | None = None
    parsed_at: datetime | None = None

    @classmethod
    def from_record(cls, rec: TransactionRecord, statement: Statement) -> LedgerRow:
        return cls(
            date=rec.date,
            amount=rec.amount,
            description=rec.description,
            category=rec.category,
            institution=rec.institution or statement.institution,
            raw=rec.raw,
            meta=rec.meta,
            account=statement.account,
            file_name=statement.file_name,
            period=statement.period,
            parsed_at=statement.parsed_at,
        )


def aggregate(statements: Iterable[Statement]) -> list[LedgerRow]:
    """Flatten ``statements`` into ledger rows, statement order then record order."""

    return [LedgerRow.from_record(r, s) for s in statements for r in s.records]


@dataclass(frozen=True, slots=True)
class TransactionFilters:
    """Conjunctive filters; ``None`` (or empty) means "do not filter"."""

    institution: str | None = None
    category: str | None = None
    date_from: date | str | None = None
    date_to: date | str | None = None
    search: str | None = None


@dataclass(frozen=True, slots=True)
class SortSpec:
    field: str
    descending: bool = False


def _matches(rec: Any, f: TransactionFilters, lo: date | None, hi: date | None) -> bool:
    if f.institution and record_field(rec, "institution") != f.institution:
        return False
    if f.category and record_field(rec, "category") != f.category:
        return False
    if lo is not None or hi is not None:
        d = coerce_date(record_field(rec, "date"))
        if d is None:
            return False
        if lo is not None and d < lo:
            return False
        if hi is not None and d > hi:
            return False
    if f.search:
        q = f.search.casefold()
        haystack = (record_field(rec, n) for n in ("description", "category", "institution"))
        if not any(isinstance(v, str) and q in v.casefold() for v in haystack):
            return False
    return True


# Sort keys are (kind, value) so values of different kinds never get compared.
_NUMBER, _DATE, _TEXT = 0, 1, 2


def _sort_key(rec: Any, name: str) -> tuple[int, Any] | None:
    value = record_field(rec, name)
    if value is None:
        return None
    if name == "date":
        d = coerce_date(value)
        return (_DATE, d) if d is not None else None
    if name == "amount":
        amt = coerce_amount(value)
        return (_NUMBER, amt) if amt is not None else None
    if isinstance(value, bool):
        return (_TEXT, str(value).casefold())
    if isinstance(value, (int, float, Decimal)):
        return (_NUMBER, coerce_amount(value))
    if isinstance(value, (date, datetime)):
        return (_DATE, coerce_date(value))
    return (_TEXT, str(value).casefold())


def filter_and_sort(
    records: Iterable[RecT],
    filters: TransactionFilters | None = None,
    sort: SortSpec | None = None,
) -> list[RecT]:
    """Return the records passing ``filters``, ordered by ``sort``.

    Date bounds are inclusive. Sorting is stable; records without the sort
    field (or with an unreadable value) come last in either direction, in
    their input order.
    """

    f = filters or TransactionFilters()
    lo = coerce_date(f.date_from) if f.date_from is not None else None
    hi = coerce_date(f.date_to) if f.date_to is not None else None
    out = [r for r in records if _matches(r, f, lo, hi)]
    if sort is None or not sort.field:
        return out

    keyed: list[tuple[tuple[int, Any], RecT]] = []
    missing: list[RecT] = []
    for rec in out:
        k = _sort_key(rec, sort.field)
        if k is None or k[1] is None:
            missing.append(rec)
        else:
            keyed.append((k, rec))
    keyed.sort(key=lambda kr: kr[0], reverse=sort.descending)
    return [rec for _k, rec in keyed] + missing


__all__ = [
    "LedgerRow",
    "aggregate",
    "TransactionFilters",
    "SortSpec",
    "filter_and_sort",
]
