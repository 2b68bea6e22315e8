"""The extraction pipeline: one decoded document in, one Statement out.

Stages run linearly, without retries::

    Detect -> SelectStrategy -> Extract -> FilterNoise -> ValidateRecord
           -> (intra-document duplicate pass) -> AssembleStatement

Detection and selection failures raise and produce nothing. Field-level
failures only drop the candidate that carries them. A statement with zero
records is a valid outcome (see ``ExtractionResult.yielded_nothing``).

The pipeline holds no mutable state; the same instance may run documents on
several threads at once.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal

from .detection import detect_tabular, extract_metadata, select_institution
from .documents import Document, GridDocument, TextDocument
from .errors import UnsupportedContainer
from .logging_setup import get_logger
from .models import (
    CandidateRecord,
    ContainerType,
    ExtractionResult,
    Statement,
    StatementPeriod,
    TransactionRecord,
)
from .registry import InstitutionRegistry, build_default_registry

_logger = get_logger("statement_ingest.pipeline")

# Absolute amounts above this are extraction errors (e.g. an account number
# read as an amount), not transactions.
AMOUNT_CEILING = Decimal(1_000_000)


@dataclass(frozen=True, slots=True)
class _Extraction:
    """What the Detect/SelectStrategy stages hand to the shared tail."""

    institution: str
    institution_key: str
    candidates: list[CandidateRecord]
    is_noise: Callable[[str | None], bool]
    classify: Callable[[str | None], str]
    account: str | None = None
    owner: str | None = None
    period: StatementPeriod | None = None


def _is_valid(cand: CandidateRecord) -> bool:
    if not isinstance(cand.date, date) or not cand.amount:
        return False
    if abs(cand.amount) > AMOUNT_CEILING:
        return False
    return bool(cand.description and cand.description.strip())


def _intra_key(cand: CandidateRecord) -> tuple[date | None, str, Decimal | None]:
    return (cand.date, (cand.description or "").strip(), cand.amount)


class ExtractionPipeline:
    """Turn decoded documents into :class:`~statement_ingest.models.Statement` values."""

    def __init__(
        self,
        registry: InstitutionRegistry | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ):
        self.registry = registry or build_default_registry()
        self._clock = clock or (lambda: datetime.now(UTC))

    def run(self, document: Document, *, institution: str | None = None) -> ExtractionResult:
        """Run every stage on ``document``.

        ``institution`` is the caller's explicit selection. It is required
        for textual documents; tabular documents are detected from their
        header row and content, and a given selection is only validated.
        """

        container = getattr(document, "container", None)
        if container == ContainerType.TEXTUAL and isinstance(document, TextDocument):
            ext = self._textual(document, institution)
        elif container == ContainerType.TABULAR and isinstance(document, GridDocument):
            ext = self._tabular(document, institution)
        else:
            raise UnsupportedContainer(container)
        return self._finish(ext, getattr(document, "file_name", None))

    # -- Detect / SelectStrategy / Extract ---------------------------------

    def _textual(self, document: TextDocument, selection: str | None) -> _Extraction:
        inst = select_institution(self.registry, selection, file_name=document.file_name)
        strategy = self.registry.get_strategy(inst.key)
        meta = extract_metadata(document.text)
        return _Extraction(
            institution=inst.name,
            institution_key=inst.key,
            candidates=list(strategy.extract(document.text)),
            is_noise=strategy.is_noise,
            classify=strategy.classify,
            account=meta.account,
            owner=meta.owner,
            period=meta.period,
        )

    def _tabular(self, document: GridDocument, selection: str | None) -> _Extraction:
        if selection is not None:
            self.registry.resolve(selection)
            _logger.debug("Selection %r ignored for tabular document; layout is detected", selection)
        found = detect_tabular(document.grid, self.registry)
        layout = found.layout
        return _Extraction(
            institution=found.display_name,
            institution_key=found.institution.key,
            candidates=list(layout.extract(document.grid, found.header_row)),
            is_noise=layout.is_noise,
            classify=layout.classify,
        )

    # -- FilterNoise / ValidateRecord / dedupe / Assemble --------------------

    def _finish(self, ext: _Extraction, file_name: str | None) -> ExtractionResult:
        kept: list[CandidateRecord] = []
        noise = invalid = duplicates = 0
        seen: set[tuple[date | None, str, Decimal | None]] = set()

        for cand in ext.candidates:
            if ext.is_noise(cand.description):
                noise += 1
                continue
            if not _is_valid(cand):
                invalid += 1
                continue
            key = _intra_key(cand)
            if key in seen:
                duplicates += 1
                continue
            seen.add(key)
            kept.append(cand)

        records = tuple(self._to_record(c, ext) for c in kept)
        statement = Statement(
            institution=ext.institution,
            institution_key=ext.institution_key,
            records=records,
            file_name=file_name,
            parsed_at=self._clock(),
            account=ext.account,
            owner=ext.owner,
            period=ext.period,
        )
        _logger.info(
            "%s: %d candidates, %d noise, %d invalid, %d duplicates -> %d records (%s)",
            file_name or "<document>",
            len(ext.candidates),
            noise,
            invalid,
            duplicates,
            len(records),
            ext.institution,
        )
        return ExtractionResult(
            statement=statement,
            candidates=len(ext.candidates),
            rejected_noise=noise,
            rejected_invalid=invalid,
            intra_duplicates=duplicates,
        )

    @staticmethod
    def _to_record(cand: CandidateRecord, ext: _Extraction) -> TransactionRecord:
        meta = dict(cand.meta)
        if cand.balance is not None:
            meta["balance"] = cand.balance
        description = (cand.description or "").strip()
        return TransactionRecord(
            date=cand.date,  # type: ignore[arg-type]  # checked by _is_valid
            amount=cand.amount,  # type: ignore[arg-type]
            description=description,
            category=cand.category or ext.classify(cand.classify_text or description),
            institution=ext.institution,
            raw=cand.raw,
            meta=meta,
        )


__all__ = ["AMOUNT_CEILING", "ExtractionPipeline"]
