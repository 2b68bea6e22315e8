"""Export bundle schema (version ``2.0``).

A bundle is the JSON backup of a record store::

    {
      "version": "2.0",
      "exportedAt": "2024-03-06T10:00:00Z",
      "format": "transactions",
      "transactions": [{"date": "2024-03-05", "amount": 12345.67, ...}],
      "categories": ["Food", "Income"],
      "summary": {"totalTransactions": 1, "totalCategories": 2,
                  "banks": ["Sberbank"],
                  "dateRange": {"from": "2024-03-05", "to": "2024-03-05"}}
    }

Dates serialize as ISO-8601 dates and amounts as JSON numbers. Unknown record
keys (``account``, ``fileName``, ...) are carried through unchanged. Bundles
written by the earlier browser app (``bank`` instead of ``institution``,
timestamps instead of dates) validate too.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    ValidationError,
    field_validator,
)

from .categories import OTHER
from .dedupe import coerce_date, record_field
from .errors import BundleFormatError

BUNDLE_VERSION = "2.0"

JsonAmount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class BundleTransaction(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    date: date
    amount: JsonAmount
    description: str = ""
    category: str = OTHER
    institution: str = Field(
        default="", validation_alias=AliasChoices("institution", "bank")
    )
    raw: str = ""
    meta: dict[str, Any] = Field(default_factory=dict)

    @field_validator("amount", mode="before")
    @classmethod
    def _exact_amount(cls, v: Any) -> Any:
        # JSON numbers arrive as floats; go through repr to keep 12345.67 exact.
        if isinstance(v, float):
            return str(v)
        return v

    @field_validator("date", mode="before")
    @classmethod
    def _calendar_day(cls, v: Any) -> Any:
        # Timestamps ("2024-03-05T00:00:00.000Z") keep only their calendar day.
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v


class DateRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    date_from: date = Field(alias="from")
    date_to: date = Field(alias="to")


class BundleSummary(BaseModel):
    totalTransactions: int
    totalCategories: int
    banks: list[str]
    dateRange: DateRange | None = None


class ExportBundle(BaseModel):
    model_config = ConfigDict(extra="allow")

    version: str = BUNDLE_VERSION
    exportedAt: datetime = Field(default_factory=lambda: datetime.now(UTC))
    format: Literal["transactions"] = "transactions"
    transactions: list[BundleTransaction]
    categories: list[str] = Field(default_factory=list)
    summary: BundleSummary | None = None

    def to_json(self, *, indent: int | None = 2) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)


def summarize(records: Sequence[Any], categories: Sequence[str]) -> BundleSummary:
    banks: dict[str, None] = {}
    days: list[date] = []
    for rec in records:
        inst = record_field(rec, "institution")
        if inst:
            banks.setdefault(str(inst), None)
        d = coerce_date(record_field(rec, "date"))
        if d is not None:
            days.append(d)
    return BundleSummary(
        totalTransactions=len(records),
        totalCategories=len(categories),
        banks=list(banks),
        dateRange=DateRange(date_from=min(days), date_to=max(days)) if days else None,
    )


def build_bundle(
    records: Sequence[Mapping[str, Any]],
    categories: Sequence[str],
    *,
    exported_at: datetime | None = None,
) -> ExportBundle:
    """Bundle stored records (as returned by ``load_records``) and categories."""

    return ExportBundle(
        exportedAt=exported_at or datetime.now(UTC),
        transactions=[BundleTransaction.model_validate(dict(r)) for r in records],
        categories=list(categories),
        summary=summarize(records, categories),
    )


def parse_bundle(data: ExportBundle | Mapping[str, Any] | str | bytes) -> ExportBundle:
    """Validate a bundle from JSON text or a decoded mapping."""

    if isinstance(data, ExportBundle):
        return data
    try:
        if isinstance(data, (str, bytes)):
            return ExportBundle.model_validate_json(data)
        return ExportBundle.model_validate(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        where = ".".join(str(p) for p in first["loc"]) or "bundle"
        raise BundleFormatError(f"invalid export bundle: {where}: {first['msg']}") from exc


__all__ = [
    "BUNDLE_VERSION",
    "BundleTransaction",
    "DateRange",
    "BundleSummary",
    "ExportBundle",
    "summarize",
    "build_bundle",
    "parse_bundle",
]
