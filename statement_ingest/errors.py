"""Typed failures surfaced by the ingestion pipeline.

Detection and selection failures are fatal to a whole document and reach the
caller as one of the classes below. Field-level failures
(:class:`AmountParseFailure`, :class:`DateParseFailure`) are raised only by
the strict helpers in :mod:`statement_ingest.amounts` and
:mod:`statement_ingest.dates` and are always recovered at the boundary of
``parse_amount`` / ``parse_date``; they never abort a statement.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


class IngestError(Exception):
    """Base class for every error raised by ``statement_ingest``."""

    def __init__(self, message: str, *, snippet: str | None = None) -> None:
        super().__init__(message)
        self.snippet = snippet


class UnsupportedContainer(IngestError):
    def __init__(self, container: object, *, snippet: str | None = None) -> None:
        super().__init__(
            f"unsupported document container: {container!r} (expected 'tabular' or 'textual')",
            snippet=snippet,
        )
        self.container = container


@dataclass(frozen=True, slots=True)
class DetectionAttempt:
    """One rejected (institution, layout) combination during tabular detection."""

    institution: str
    layout: str
    header_row: int | None
    reason: str

    def describe(self) -> str:
        where = f"row {self.header_row}" if self.header_row is not None else "no header row"
        return f"{self.institution} [{self.layout}] at {where}: {self.reason}"


class FormatNotRecognized(IngestError):
    """No header row / tabular layout combination matched.

    ``attempts`` lists every institution layout that was tried and why it was
    rejected, so the caller can report more than a bare "unknown format".
    """

    def __init__(
        self,
        attempts: Iterable[DetectionAttempt] = (),
        *,
        snippet: str | None = None,
    ) -> None:
        self.attempts: tuple[DetectionAttempt, ...] = tuple(attempts)
        lines = [a.describe() for a in self.attempts]
        detail = "; ".join(lines) if lines else "no header row with date/description/amount vocabulary"
        super().__init__(f"statement format not recognized ({detail})", snippet=snippet)


class InstitutionNotSelected(IngestError):
    def __init__(self, file_name: str | None = None, *, snippet: str | None = None) -> None:
        where = f" for {file_name!r}" if file_name else ""
        super().__init__(
            f"textual statements require an explicit institution selection{where}",
            snippet=snippet,
        )
        self.file_name = file_name


class UnknownInstitution(IngestError, KeyError):
    def __init__(self, key: object, known: Iterable[str] = ()) -> None:
        self.key = key
        self.known = tuple(known)
        msg = f"unknown institution: {key!r}"
        if self.known:
            msg += f" (registered: {', '.join(self.known)})"
        IngestError.__init__(self, msg, snippet=str(key) if key is not None else None)

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message.
        return str(self.args[0])


class RecordNotFound(IngestError, KeyError):
    def __init__(self, record_id: str) -> None:
        IngestError.__init__(self, f"no stored record with id {record_id!r}", snippet=record_id)
        self.record_id = record_id

    def __str__(self) -> str:
        return str(self.args[0])


class BundleFormatError(IngestError):
    """An import bundle is not valid JSON or lacks the ``transactions`` array."""


class DocumentDecodeError(IngestError):
    """A statement file is not text in the expected encoding."""

    def __init__(self, file_name: str, encoding: str, reason: object) -> None:
        super().__init__(
            f"cannot decode '{file_name}' as {encoding}: {reason}",
            snippet=file_name,
        )
        self.encoding = encoding


class AmountParseFailure(IngestError, ValueError):
    def __init__(self, text: object) -> None:
        super().__init__(f"invalid amount: {text!r}", snippet=None if text is None else str(text))


class DateParseFailure(IngestError, ValueError):
    def __init__(self, text: object, reason: str = "invalid date") -> None:
        super().__init__(f"{reason}: {text!r}", snippet=None if text is None else str(text))


__all__ = [
    "IngestError",
    "UnsupportedContainer",
    "DetectionAttempt",
    "FormatNotRecognized",
    "InstitutionNotSelected",
    "UnknownInstitution",
    "RecordNotFound",
    "BundleFormatError",
    "DocumentDecodeError",
    "AmountParseFailure",
    "DateParseFailure",
]
