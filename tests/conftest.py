"""Pytest configuration for test isolation.

The record store resolves its location from ``STATEMENT_INGEST_DATABASE_URL``
and caches one engine per URL for the life of the process. Each test gets its
own SQLite file under ``tmp_path`` and the engine cache is emptied afterwards,
so no test ever sees records written by another.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest

from statement_ingest.pipeline import ExtractionPipeline
from statement_ingest.registry import InstitutionRegistry, build_default_registry
from statement_ingest.storage import dispose_engines

FIXED_NOW = datetime(2024, 3, 6, 10, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _isolate_store(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Point the store at a per-test SQLite file and drop cached engines."""

    db_file = tmp_path / "store.db"
    monkeypatch.setenv("STATEMENT_INGEST_DATABASE_URL", f"sqlite+pysqlite:///{db_file}")
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("STATEMENT_INGEST_MAX_WORKERS", raising=False)
    yield
    dispose_engines()


@pytest.fixture
def registry() -> InstitutionRegistry:
    return build_default_registry()


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def pipeline(registry: InstitutionRegistry) -> ExtractionPipeline:
    return ExtractionPipeline(registry, clock=lambda: FIXED_NOW)

