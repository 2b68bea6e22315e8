"""Concurrent per-document extraction.

Each document is processed end to end by one task on a bounded
``ThreadPoolExecutor``. Tasks share only the (immutable) pipeline and
registry, so no locking is needed here; serializing the dedupe/save step is
the importer's job (see :mod:`statement_ingest.importer`).

- :func:`p_map`: order-preserving bounded map over an iterable.
- :func:`extract_documents`: run the pipeline over many documents; a
  document that fails detection or selection yields a
  :class:`DocumentOutcome` carrying the error and does not affect the rest.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import TypeVar

from .documents import Document
from .errors import IngestError
from .logging_setup import get_logger
from .models import ExtractionResult
from .pipeline import ExtractionPipeline

_logger = get_logger("statement_ingest.concurrency")

InT = TypeVar("InT")
OutT = TypeVar("OutT")

_WORKERS_ENV = "STATEMENT_INGEST_MAX_WORKERS"
DEFAULT_WORKERS = 4
MAX_WORKERS = 16


def p_map(
    iterable: Iterable[InT],
    mapper: Callable[[InT], OutT],
    *,
    concurrency: int,
) -> list[OutT]:
    """Map ``iterable`` through ``mapper`` with at most ``concurrency`` calls in flight.

    The result preserves input order. The first mapper error propagates and
    any not-yet-started work is cancelled.
    """

    if not isinstance(concurrency, int) or isinstance(concurrency, bool) or concurrency < 1:
        raise ValueError("concurrency must be a positive integer")

    # Not materialized up front, so large inputs stream through the window.
    it = enumerate(iterable)
    results: dict[int, OutT] = {}
    future_to_idx: dict[Future[OutT], int] = {}

    def _submit(pool: ThreadPoolExecutor) -> Future[OutT] | None:
        try:
            idx, item = next(it)
        except StopIteration:
            return None
        fut = pool.submit(mapper, item)
        future_to_idx[fut] = idx
        return fut

    with ThreadPoolExecutor(max_workers=concurrency) as pool:
        active: set[Future[OutT]] = set()
        for _ in range(concurrency):
            fut = _submit(pool)
            if fut is None:
                break
            active.add(fut)

        while active:
            done, active = wait(active, return_when=FIRST_COMPLETED)
            for fut in done:
                idx = future_to_idx.pop(fut)
                try:
                    results[idx] = fut.result()
                except Exception:
                    pool.shutdown(wait=False, cancel_futures=True)
                    raise
            for _ in range(len(done)):
                fut = _submit(pool)
                if fut is None:
                    break
                active.add(fut)

    return [results[i] for i in range(len(results))]


def resolve_workers(n_items: int, requested: int | None = None) -> int:
    """Worker count: explicit request, else env, else ``min(4, n_items)``; capped at 16."""

    if requested is None:
        env_val = os.getenv(_WORKERS_ENV, "").strip()
        if env_val.isdigit():
            requested = int(env_val)
        else:
            if env_val:
                _logger.warning("Ignoring non-numeric %s=%r", _WORKERS_ENV, env_val)
            requested = min(DEFAULT_WORKERS, n_items)
    return max(1, min(requested, MAX_WORKERS))


@dataclass(frozen=True, slots=True)
class DocumentOutcome:
    """Per-document result: exactly one of ``result`` and ``error`` is set."""

    document: Document
    result: ExtractionResult | None = None
    error: IngestError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def extract_documents(
    pipeline: ExtractionPipeline,
    documents: Sequence[Document],
    *,
    selection: str | None = None,
    concurrency: int | None = None,
) -> list[DocumentOutcome]:
    """Run ``pipeline`` over ``documents`` concurrently, in input order.

    Typed ingestion failures are captured per document. Anything else is a
    bug and propagates.
    """

    def _one(doc: Document) -> DocumentOutcome:
        try:
            return DocumentOutcome(doc, result=pipeline.run(doc, institution=selection))
        except IngestError as exc:
            _logger.warning("%s: %s", getattr(doc, "file_name", None) or "<document>", exc)
            return DocumentOutcome(doc, error=exc)

    if not documents:
        return []
    return p_map(documents, _one, concurrency=resolve_workers(len(documents), concurrency))


__all__ = [
    "p_map",
    "resolve_workers",
    "DocumentOutcome",
    "extract_documents",
]
