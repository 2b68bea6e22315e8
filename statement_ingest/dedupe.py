"""Cross-statement duplicate detection.

Source documents carry no transaction ids, so identity is heuristic: the
Identity Key is a SHA-256 fingerprint over

- the calendar date (``YYYY-MM-DD``),
- the amount quantized to cents,
- the description with all whitespace removed and case folded,
- the institution name,
- the canonical category label.

Time of day and running balance are not part of the key, so two
same-day operations with identical amount and text collapse into one.

Records may be :class:`~statement_ingest.models.TransactionRecord` values,
ledger rows, or plain mappings loaded back from a store. Missing or malformed
fields never raise; they contribute ``None`` to the fingerprint.
"""

from __future__ import annotations

import hashlib
import json
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Generic, TypeVar

from .amounts import quantize_cents
from .categories import normalize_category
from .dates import parse_date
from .logging_setup import get_logger

_logger = get_logger("statement_ingest.dedupe")

_WS_RE = re.compile(r"\s+")

RecT = TypeVar("RecT")


def record_field(rec: Any, name: str) -> Any:
    """Read ``name`` from a record object or mapping; ``None`` when absent."""

    if isinstance(rec, Mapping):
        value = rec.get(name)
        # Exports written by the browser app used "bank" for the institution.
        if value is None and name == "institution":
            value = rec.get("bank")
        return value
    return getattr(rec, name, None)


def coerce_amount(raw: Any) -> Decimal | None:
    """Amount as a cent-quantized Decimal, or ``None`` when not numeric."""

    if raw is None or isinstance(raw, bool):
        return None
    try:
        d = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return None
    if not d.is_finite():
        return None
    try:
        return quantize_cents(d)
    except InvalidOperation:
        # Too many digits to hold at cent precision.
        return None


def coerce_date(raw: Any) -> date | None:
    """Calendar date of a date, datetime, ISO or dd.mm.yyyy value, else ``None``."""

    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str):
        return None
    s = raw.strip()
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return parse_date(s)


def _norm_description(raw: Any) -> str:
    if raw is None:
        return ""
    return _WS_RE.sub("", str(raw)).casefold()


def identity_key(rec: Any) -> str:
    """Stable fingerprint of ``rec``; equal keys mean duplicate records."""

    d = coerce_date(record_field(rec, "date"))
    amt = coerce_amount(record_field(rec, "amount"))
    category = record_field(rec, "category")
    institution = record_field(rec, "institution")
    payload = {
        "date": d.isoformat() if d else None,
        "amount": f"{amt:.2f}" if amt is not None else None,
        "description": _norm_description(record_field(rec, "description")),
        "institution": str(institution).strip() if institution is not None else None,
        "category": normalize_category(str(category)) if category else "",
    }
    data = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class DedupeResult(Generic[RecT]):
    unique_records: list[RecT]
    duplicate_records: list[RecT]


def dedupe(existing: Iterable[Any], new: Iterable[RecT]) -> DedupeResult[RecT]:
    """Partition ``new`` into records unseen in ``existing`` and duplicates.

    Keys of ``existing`` are computed once. ``new`` is walked in order; the
    first record with a given key is unique and later ones are duplicates.
    Both partitions keep input order.
    """

    seen = {identity_key(r) for r in existing}
    unique: list[RecT] = []
    duplicates: list[RecT] = []
    for rec in new:
        key = identity_key(rec)
        if key in seen:
            duplicates.append(rec)
        else:
            seen.add(key)
            unique.append(rec)
    _logger.debug("dedupe: %d unique, %d duplicate", len(unique), len(duplicates))
    return DedupeResult(unique_records=unique, duplicate_records=duplicates)


def remove_duplicates(records: Iterable[RecT]) -> list[RecT]:
    """Collapse one collection onto its first occurrence per Identity Key."""

    return dedupe((), records).unique_records


__all__ = [
    "record_field",
    "coerce_amount",
    "coerce_date",
    "identity_key",
    "DedupeResult",
    "dedupe",
    "remove_duplicates",
]
