"""Format and institution detection.

Tabular documents
-----------------
The first :data:`HEADER_SCAN_ROWS` rows are scanned for a header row, i.e. a
row with at least one cell naming a date, description, amount, income or
expense field. Every registered tabular layout is tested against each such
row; a layout matches when the header cell in the column of every required
field contains vocabulary for that field. The first (row, layout) match wins.

Independently, every string cell in the grid is scanned for institution
markers. When a marker is found its institution names the statement, while
the structurally matched layout still governs column extraction.

When nothing matches, :class:`~statement_ingest.errors.FormatNotRecognized`
lists each (institution, layout) that was tried and why it was rejected.

Textual documents
-----------------
Textual documents are never auto-detected: the caller's explicit selection
is required (:func:`select_institution`). :func:`scan_text_for_institution`
is offered to callers that want to pre-fill that selection from content.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .dates import parse_date
from .documents import CellGrid, column_index
from .errors import DetectionAttempt, FormatNotRecognized, InstitutionNotSelected
from .grammars import Institution, TabularLayout
from .logging_setup import get_logger
from .models import StatementPeriod
from .registry import InstitutionRegistry, build_default_registry

_logger = get_logger("statement_ingest.detection")

HEADER_SCAN_ROWS = 20

# Case-insensitive substrings that identify a header cell's field.
HEADER_VOCABULARY: dict[str, tuple[str, ...]] = {
    "date": ("дата", "date"),
    "description": ("описание", "операция", "description", "transaction"),
    "amount": ("сумма", "amount"),
    "category": ("категория", "category"),
    "income": ("приход", "доход", "income"),
    "expense": ("расход", "expense"),
}

# Fields whose vocabulary marks a row as a header candidate.
_HEADER_ROW_FIELDS = ("date", "description", "amount", "income", "expense")


def header_names_field(header: str | None, fieldname: str) -> bool:
    """True when ``header`` contains vocabulary recognized for ``fieldname``."""

    if not header:
        return False
    h = header.casefold()
    return any(word in h for word in HEADER_VOCABULARY.get(fieldname, ()))


def _row_headers(grid: CellGrid, row: int) -> dict[int, str]:
    return {col: cell.text().strip() for col, cell in grid.iter_row(row)}


def _is_header_row(headers: dict[int, str]) -> bool:
    return any(
        header_names_field(h, f) for h in headers.values() for f in _HEADER_ROW_FIELDS
    )


def _layout_mismatch(layout: TabularLayout, headers: dict[int, str]) -> str | None:
    """Reason ``layout`` does not fit ``headers``, or ``None`` when it does."""

    for fieldname in layout.required_fields:
        letter = layout.columns[fieldname]
        header = headers.get(column_index(letter))
        if not header:
            return f"no header in column {letter} for required field {fieldname!r}"
        if not header_names_field(header, fieldname):
            return f"column {letter} header {header!r} does not name field {fieldname!r}"
    return None


@dataclass(frozen=True, slots=True)
class TabularDetection:
    """Outcome of tabular detection.

    ``institution`` owns the matched ``layout``; ``content_institution`` is
    the institution whose marker was found in the cells, if any.
    """

    layout: TabularLayout
    header_row: int
    institution: Institution
    content_institution: Institution | None = None

    @property
    def display_name(self) -> str:
        return (self.content_institution or self.institution).name


def scan_grid_for_institution(
    grid: CellGrid, registry: InstitutionRegistry
) -> Institution | None:
    """First institution whose marker occurs in any string cell, in row order."""

    for row in range(1, grid.row_count + 1):
        for _col, cell in grid.iter_row(row):
            if not isinstance(cell.value, str):
                continue
            inst = registry.institution_for_marker(cell.value)
            if inst is not None:
                return inst
    return None


def detect_tabular(grid: CellGrid, registry: InstitutionRegistry) -> TabularDetection:
    """Find the header row and layout of ``grid``; raise when none matches."""

    attempts: list[DetectionAttempt] = []
    layouts = registry.tabular_layouts()
    found: tuple[int, TabularLayout] | None = None

    for row in range(1, min(HEADER_SCAN_ROWS, grid.row_count) + 1):
        headers = _row_headers(grid, row)
        if not _is_header_row(headers):
            continue
        for layout in layouts:
            reason = _layout_mismatch(layout, headers)
            if reason is None:
                found = (row, layout)
                break
            attempts.append(DetectionAttempt(layout.institution, layout.name, row, reason))
        if found is not None:
            break

    if found is None:
        if not attempts:
            reason = f"no header row with field vocabulary in the first {HEADER_SCAN_ROWS} rows"
            attempts = [DetectionAttempt(lo.institution, lo.name, None, reason) for lo in layouts]
        attempts.extend(
            DetectionAttempt(inst.key, "-", None, "no tabular layout registered")
            for inst in registry
            if not inst.layouts
        )
        raise FormatNotRecognized(attempts)

    header_row, layout = found
    detection = TabularDetection(
        layout=layout,
        header_row=header_row,
        institution=registry.resolve(layout.institution),
        content_institution=scan_grid_for_institution(grid, registry),
    )
    _logger.info(
        "Detected layout %s at header row %d (labelled %s)",
        layout.name,
        header_row,
        detection.display_name,
    )
    return detection


def select_institution(
    registry: InstitutionRegistry, selection: str | None, *, file_name: str | None = None
) -> Institution:
    """Resolve the caller's institution selection for a textual document."""

    if selection is None or not selection.strip():
        raise InstitutionNotSelected(file_name)
    return registry.resolve(selection)


def scan_text_for_institution(
    text: str, registry: InstitutionRegistry | None = None
) -> str | None:
    """Key of the first institution named in ``text``, or ``None``."""

    inst = (registry or build_default_registry()).institution_for_text(text)
    return inst.key if inst is not None else None


# ---------------------------------------------------------------------------
# Statement metadata (textual documents)
# ---------------------------------------------------------------------------

_ACCOUNT_RE = re.compile(r"№\s*(\d{20,})")
_OWNER_RE = re.compile(r"(?:Владелец|Owner):([^\n]+)")
_PERIOD_RE = re.compile(
    r"(?:Период выписки|Statement period):\s*(\d{2}\.\d{2}\.\d{4})\s*[–-]\s*(\d{2}\.\d{2}\.\d{4})"
)


@dataclass(frozen=True, slots=True)
class StatementMetadata:
    account: str | None = None
    owner: str | None = None
    period: StatementPeriod | None = None


def extract_metadata(text: str) -> StatementMetadata:
    account = owner = None
    period = None
    if m := _ACCOUNT_RE.search(text):
        account = m.group(1)
    if m := _OWNER_RE.search(text):
        owner = m.group(1).strip() or None
    if m := _PERIOD_RE.search(text):
        period = StatementPeriod(parse_date(m.group(1)), parse_date(m.group(2)))
    return StatementMetadata(account=account, owner=owner, period=period)


__all__ = [
    "HEADER_SCAN_ROWS",
    "HEADER_VOCABULARY",
    "header_names_field",
    "TabularDetection",
    "detect_tabular",
    "scan_grid_for_institution",
    "select_institution",
    "scan_text_for_institution",
    "StatementMetadata",
    "extract_metadata",
]
