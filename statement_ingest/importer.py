"""Import extracted statements into a record store without duplicates.

:meth:`StatementImporter.import_statements` reads the stored corpus,
partitions the incoming records with :func:`statement_ingest.dedupe.dedupe`
and saves the unique ones, all under a single lock. Two concurrent imports
against the same importer therefore never both accept records that would
have been mutual duplicates.

Only complete statements are accepted; a document whose extraction failed
never reaches this module.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass, field

from .dedupe import dedupe
from .logging_setup import get_logger
from .models import Statement, TransactionRecord
from .storage import TransactionRepository

_logger = get_logger("statement_ingest.importer")


@dataclass(frozen=True, slots=True)
class ImportReport:
    saved_ids: list[str] = field(default_factory=list)
    unique_records: list[TransactionRecord] = field(default_factory=list)
    duplicate_records: list[TransactionRecord] = field(default_factory=list)

    @property
    def unique(self) -> int:
        return len(self.unique_records)

    @property
    def duplicates(self) -> int:
        return len(self.duplicate_records)


class StatementImporter:
    def __init__(self, repository: TransactionRepository):
        self.repository = repository
        self._lock = threading.Lock()

    def import_statements(self, statements: Iterable[Statement]) -> ImportReport:
        records = [r for s in statements for r in s.records]
        with self._lock:
            existing = self.repository.load_records()
            result = dedupe(existing, records)
            ids = self.repository.save_records(result.unique_records)
        _logger.info(
            "Imported %d records (%d duplicates skipped)",
            len(result.unique_records),
            len(result.duplicate_records),
        )
        return ImportReport(
            saved_ids=ids,
            unique_records=result.unique_records,
            duplicate_records=result.duplicate_records,
        )


__all__ = ["ImportReport", "StatementImporter"]
