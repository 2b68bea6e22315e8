"""Public interface for the ``statement_ingest`` package.

Symbol re-exports only; there is no runtime logic here. The pipeline turns
one decoded statement document into a :class:`Statement`; the importer,
store and query helpers work on the resulting records.
"""

from .concurrency import DocumentOutcome, extract_documents
from .dedupe import DedupeResult, dedupe, identity_key, remove_duplicates
from .documents import GridDocument, ListGrid, TextDocument
from .errors import (
    BundleFormatError,
    DocumentDecodeError,
    FormatNotRecognized,
    IngestError,
    InstitutionNotSelected,
    RecordNotFound,
    UnknownInstitution,
    UnsupportedContainer,
)
from .export import ExportBundle, build_bundle, parse_bundle
from .importer import ImportReport, StatementImporter
from .models import (
    CandidateRecord,
    ContainerType,
    ExtractionResult,
    Statement,
    StatementPeriod,
    TransactionRecord,
)
from .pipeline import ExtractionPipeline
from .query import LedgerRow, SortSpec, TransactionFilters, aggregate, filter_and_sort
from .registry import InstitutionRegistry, build_default_registry
from .storage import MemoryStore, SqlStore, TransactionRepository

__all__ = [
    # Pipeline
    "ExtractionPipeline",
    "InstitutionRegistry",
    "build_default_registry",
    "extract_documents",
    "DocumentOutcome",
    # Documents
    "TextDocument",
    "GridDocument",
    "ListGrid",
    # Models
    "ContainerType",
    "CandidateRecord",
    "TransactionRecord",
    "Statement",
    "StatementPeriod",
    "ExtractionResult",
    # Records
    "dedupe",
    "remove_duplicates",
    "identity_key",
    "DedupeResult",
    "aggregate",
    "filter_and_sort",
    "TransactionFilters",
    "SortSpec",
    "LedgerRow",
    "StatementImporter",
    "ImportReport",
    "TransactionRepository",
    "MemoryStore",
    "SqlStore",
    "ExportBundle",
    "build_bundle",
    "parse_bundle",
    # Errors
    "IngestError",
    "UnsupportedContainer",
    "FormatNotRecognized",
    "InstitutionNotSelected",
    "UnknownInstitution",
    "RecordNotFound",
    "BundleFormatError",
    "DocumentDecodeError",
]
