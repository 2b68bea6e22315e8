"""Data models for ``statement_ingest``.

- :class:`CandidateRecord`: a transaction-shaped value produced by an
  institution grammar before any validity filtering. Every field except
  ``raw`` may be missing; tabular layouts may carry separate ``income`` /
  ``expense`` columns instead of a signed ``amount``.
- :class:`TransactionRecord`: the canonical output unit. Only ever built
  with a parsed date and a non-zero amount.
- :class:`Statement`: one parsed document, immutable once assembled.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any


class ContainerType(StrEnum):
    """Declared container of a decoded document."""

    TABULAR = "tabular"
    TEXTUAL = "textual"


@dataclass(frozen=True, slots=True)
class CandidateRecord:
    """Raw extraction result with optional fields.

    ``amount`` is ``None`` when the layout only has income/expense columns;
    :meth:`normalized` reduces those to a single signed amount so nothing
    downstream branches on field presence.
    """

    raw: str
    date: date | None = None
    amount: Decimal | None = None
    income: Decimal | None = None
    expense: Decimal | None = None
    balance: Decimal | None = None
    description: str | None = None
    category: str | None = None
    # Description used for category inference when it differs from the
    # displayed one (e.g. Alfa-Bank prefixes the operation code).
    classify_text: str | None = None
    meta: Mapping[str, Any] = field(default_factory=dict)

    def normalized(self) -> CandidateRecord:
        """Return a copy whose ``amount`` is signed and income/expense cleared.

        A non-zero income wins and is positive; otherwise a non-zero expense
        becomes negative; otherwise the plain ``amount`` is kept.
        """

        if self.income is None and self.expense is None:
            return self
        if self.income:
            signed = abs(self.income)
        elif self.expense:
            signed = -abs(self.expense)
        else:
            signed = self.amount
        return replace(self, amount=signed, income=None, expense=None)


@dataclass(frozen=True, slots=True)
class TransactionRecord:
    """A single canonical transaction.

    ``amount`` is positive for inflow and negative for outflow. ``meta``
    holds institution-specific auxiliary fields (time of day, operation
    code, running balance, strategy tag) and is opaque to everything but the
    grammar that produced it.
    """

    date: date
    amount: Decimal
    description: str
    category: str
    institution: str
    raw: str = ""
    meta: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.date, date):
            raise ValueError(f"TransactionRecord.date must be a date, got {self.date!r}")
        if not isinstance(self.amount, Decimal) or self.amount == 0:
            raise ValueError(
                f"TransactionRecord.amount must be a non-zero Decimal, got {self.amount!r}"
            )

    def to_json_dict(self) -> dict[str, Any]:
        """JSON-friendly mapping: ISO date, numeric amount, meta values stringified."""

        return {
            "date": self.date.isoformat(),
            "amount": float(self.amount),
            "description": self.description,
            "category": self.category,
            "institution": self.institution,
            "raw": self.raw,
            "meta": {k: _json_scalar(v) for k, v in self.meta.items()},
        }


def _json_scalar(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


@dataclass(frozen=True, slots=True)
class StatementPeriod:
    date_from: date | None
    date_to: date | None


@dataclass(frozen=True, slots=True)
class Statement:
    """One parsed source document.

    ``institution`` is the display name used to label the records;
    ``institution_key`` is the registry key of the grammar that extracted
    them (they differ when a tabular document's content names another bank).
    """

    institution: str
    institution_key: str
    records: tuple[TransactionRecord, ...]
    file_name: str | None
    parsed_at: datetime
    account: str | None = None
    owner: str | None = None
    period: StatementPeriod | None = None

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    """Outcome of one pipeline run.

    ``yielded_nothing`` is set when a recognized grammar ran to completion
    but no record survived filtering. It is informational; the statement is
    still returned (with zero records).
    """

    statement: Statement
    candidates: int
    rejected_noise: int
    rejected_invalid: int
    intra_duplicates: int

    @property
    def yielded_nothing(self) -> bool:
        return not self.statement.records


__all__ = [
    "ContainerType",
    "CandidateRecord",
    "TransactionRecord",
    "StatementPeriod",
    "Statement",
    "ExtractionResult",
]
