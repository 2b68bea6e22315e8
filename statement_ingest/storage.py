"""Record persistence.

Stored records are plain JSON objects kept in a key-value store:

- ``transaction-<ns>-<suffix>`` keys hold one record each, as produced by
  :meth:`TransactionRecord.to_json_dict` plus ``id`` and ``createdAt``;
  keys sort in save order;
- the ``categories`` key holds the user's category list.

:class:`RecordStore` is the store boundary (``get``/``set``/``delete``/
``keys``). :class:`MemoryStore` backs tests and one-shot runs;
:class:`SqlStore` keeps the same key/value shape in a single SQLAlchemy
table. :class:`TransactionRepository` implements record and category
operations on top of any store.

Usage
-----
repo = TransactionRepository(SqlStore())          # URL from the environment
ids = repo.save_records(statement.records)
rows = repo.load_records()
"""

from __future__ import annotations

import os
import threading
import time
import uuid
from collections.abc import Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

from sqlalchemy import JSON, DateTime, String, create_engine, delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from .categories import normalize_category
from .dedupe import coerce_date, identity_key
from .errors import RecordNotFound
from .export import ExportBundle, build_bundle, parse_bundle
from .logging_setup import get_logger
from .models import TransactionRecord

_logger = get_logger("statement_ingest.storage")

TRANSACTION_PREFIX = "transaction-"
CATEGORIES_KEY = "categories"
UNKNOWN_INSTITUTION = "Unknown bank"

_DEFAULT_DB_URL = "sqlite+pysqlite:///./.statement_ingest.db"


# ---------------------------------------------------------------------------
# Store boundary
# ---------------------------------------------------------------------------


@runtime_checkable
class RecordStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> bool: ...

    def keys(self, prefix: str = "") -> list[str]:
        """Keys starting with ``prefix``, in ascending order."""
        ...


class MemoryStore:
    """In-process :class:`RecordStore`."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def keys(self, prefix: str = "") -> list[str]:
        with self._lock:
            return sorted(k for k in self._data if k.startswith(prefix))


# ---------------------------------------------------------------------------
# SQLAlchemy-backed store
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


class KeyValueEntry(Base):
    __tablename__ = "si_key_values"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    value: Mapped[Any] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )


def database_url(override: str | None = None) -> str:
    """Resolve the store URL: argument, env vars, then a local SQLite file."""

    return (
        override
        or os.getenv("STATEMENT_INGEST_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or _DEFAULT_DB_URL
    )


_ENGINES: dict[str, tuple[Engine, sessionmaker[Session]]] = {}
_ENGINES_LOCK = threading.Lock()


def get_engine(*, database_url: str) -> tuple[Engine, sessionmaker[Session]]:
    """Return the shared engine and session factory for ``database_url``."""

    with _ENGINES_LOCK:
        cached = _ENGINES.get(database_url)
        if cached is None:
            engine = create_engine(database_url, pool_pre_ping=True)
            Base.metadata.create_all(bind=engine)
            maker = sessionmaker(bind=engine, expire_on_commit=False, class_=Session)
            cached = _ENGINES[database_url] = (engine, maker)
        return cached


def dispose_engines() -> None:
    """Close every cached engine (tests, process shutdown)."""

    with _ENGINES_LOCK:
        for engine, _maker in _ENGINES.values():
            engine.dispose()
        _ENGINES.clear()


@contextmanager
def session_scope(*, database_url: str) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    _engine, maker = get_engine(database_url=database_url)
    session = maker()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


class SqlStore:
    """:class:`RecordStore` over one key/JSON table; one session per call."""

    def __init__(self, url: str | None = None):
        self.url = database_url(url)
        get_engine(database_url=self.url)

    def get(self, key: str) -> Any | None:
        with session_scope(database_url=self.url) as s:
            entry = s.get(KeyValueEntry, key)
            return entry.value if entry is not None else None

    def set(self, key: str, value: Any) -> None:
        with session_scope(database_url=self.url) as s:
            entry = s.get(KeyValueEntry, key)
            if entry is None:
                s.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value
                entry.updated_at = datetime.now(UTC)

    def delete(self, key: str) -> bool:
        with session_scope(database_url=self.url) as s:
            result = s.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
            return bool(result.rowcount)

    def keys(self, prefix: str = "") -> list[str]:
        with session_scope(database_url=self.url) as s:
            stmt = select(KeyValueEntry.key).order_by(KeyValueEntry.key)
            if prefix:
                stmt = stmt.where(KeyValueEntry.key.startswith(prefix, autoescape=True))
            return list(s.execute(stmt).scalars())


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

_ID_LOCK = threading.Lock()
_LAST_NS = 0


def new_record_id() -> str:
    """Fresh ``transaction-`` key; ids from one process sort in creation order."""

    global _LAST_NS
    with _ID_LOCK:
        ns = max(time.time_ns(), _LAST_NS + 1)
        _LAST_NS = ns
    return f"{TRANSACTION_PREFIX}{ns:020d}-{uuid.uuid4().hex[:9]}"


def _json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(k): _json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_value(v) for v in value]
    return value


def _to_stored(rec: TransactionRecord | Mapping[str, Any]) -> dict[str, Any]:
    if isinstance(rec, TransactionRecord):
        data = rec.to_json_dict()
    else:
        data = {str(k): _json_value(v) for k, v in rec.items()}
        if not data.get("institution"):
            data["institution"] = data.pop("bank", None) or UNKNOWN_INSTITUTION
        d = coerce_date(data.get("date"))
        if d is not None:
            data["date"] = d.isoformat()
    data["category"] = normalize_category(data.get("category"))
    return data


@dataclass(frozen=True, slots=True)
class DuplicateRemoval:
    removed: int
    remaining: int


@dataclass(frozen=True, slots=True)
class ImportSummary:
    imported: int
    categories_restored: bool


class TransactionRepository:
    """Record and category operations over a :class:`RecordStore`."""

    def __init__(self, store: RecordStore):
        self.store = store

    # -- records -----------------------------------------------------------

    def save_records(self, records: Iterable[TransactionRecord | Mapping[str, Any]]) -> list[str]:
        """Store each record under a new id (category normalized); return the ids."""

        ids: list[str] = []
        for rec in records:
            data = _to_stored(rec)
            rid = new_record_id()
            data["id"] = rid
            data["createdAt"] = datetime.now(UTC).isoformat()
            self.store.set(rid, data)
            ids.append(rid)
        _logger.info("Saved %d records", len(ids))
        return ids

    def load_records(self) -> list[dict[str, Any]]:
        """Every stored record, in save order."""

        out: list[dict[str, Any]] = []
        for key in self.store.keys(TRANSACTION_PREFIX):
            value = self.store.get(key)
            if isinstance(value, Mapping):
                out.append(dict(value))
        return out

    def get(self, record_id: str) -> dict[str, Any] | None:
        value = self.store.get(record_id) if record_id.startswith(TRANSACTION_PREFIX) else None
        return dict(value) if isinstance(value, Mapping) else None

    def delete(self, record_id: str) -> bool:
        if not record_id.startswith(TRANSACTION_PREFIX):
            return False
        return self.store.delete(record_id)

    def delete_all(self) -> int:
        keys = self.store.keys(TRANSACTION_PREFIX)
        for key in keys:
            self.store.delete(key)
        _logger.info("Deleted %d records", len(keys))
        return len(keys)

    def clear(self) -> int:
        """Delete every record and the category list."""

        count = self.delete_all()
        self.store.delete(CATEGORIES_KEY)
        return count

    def update_category(self, record_id: str, category: str) -> dict[str, Any]:
        """Apply a user's category correction to one stored record."""

        current = self.get(record_id)
        if current is None:
            raise RecordNotFound(record_id)
        current["category"] = normalize_category(category)
        current["updatedAt"] = datetime.now(UTC).isoformat()
        self.store.set(record_id, current)
        return current

    def remove_duplicates(self) -> DuplicateRemoval:
        """Delete stored records whose Identity Key repeats an earlier one."""

        seen: set[str] = set()
        removed = 0
        records = self.load_records()
        for rec in records:
            key = identity_key(rec)
            if key in seen:
                self.store.delete(rec["id"])
                removed += 1
            else:
                seen.add(key)
        _logger.info("Removed %d duplicate records", removed)
        return DuplicateRemoval(removed=removed, remaining=len(records) - removed)

    # -- categories --------------------------------------------------------

    def categories(self) -> list[str]:
        data = self.store.get(CATEGORIES_KEY)
        if isinstance(data, Mapping) and isinstance(data.get("categories"), list):
            return [str(c) for c in data["categories"]]
        return []

    def save_categories(self, categories: Sequence[str]) -> list[str]:
        cats = list(categories)
        self.store.set(
            CATEGORIES_KEY,
            {"categories": cats, "updatedAt": datetime.now(UTC).isoformat(), "version": "1.0"},
        )
        return cats

    def add_category(self, name: str) -> list[str]:
        cats = self.categories()
        if name not in cats:
            cats = self.save_categories(sorted([*cats, name]))
        return cats

    def rename_category(self, old: str, new: str) -> list[str]:
        """Rename ``old`` in the category list and re-label stored records."""

        cats = self.categories()
        if old in cats:
            cats = self.save_categories(sorted(new if c == old else c for c in cats))
        label = normalize_category(new)
        for rec in self.load_records():
            if rec.get("category") == old:
                self.update_category(rec["id"], label)
        return cats

    def delete_category(self, name: str) -> list[str]:
        return self.save_categories([c for c in self.categories() if c != name])

    # -- bundles -----------------------------------------------------------

    def export_bundle(self) -> ExportBundle:
        return build_bundle(self.load_records(), self.categories())

    def import_bundle(
        self, data: ExportBundle | Mapping[str, Any] | str | bytes
    ) -> ImportSummary:
        """Save every bundled record under a fresh id; restore categories if present."""

        bundle = parse_bundle(data)
        records = [
            t.model_dump(mode="json", exclude={"id", "createdAt", "updatedAt"})
            for t in bundle.transactions
        ]
        ids = self.save_records(records)
        restored = "categories" in bundle.model_fields_set
        if restored:
            self.save_categories(bundle.categories)
        return ImportSummary(imported=len(ids), categories_restored=restored)


__all__ = [
    "TRANSACTION_PREFIX",
    "CATEGORIES_KEY",
    "RecordStore",
    "MemoryStore",
    "SqlStore",
    "KeyValueEntry",
    "database_url",
    "get_engine",
    "dispose_engines",
    "session_scope",
    "new_record_id",
    "DuplicateRemoval",
    "ImportSummary",
    "TransactionRepository",
]
