"""Decoded document inputs.

Turning PDF or spreadsheet bytes into page text or a cell grid happens
outside this package. The pipeline consumes the decoded forms defined here:

- :class:`TextDocument`: page texts joined by newlines, page order preserved.
- :class:`GridDocument`: a :class:`CellGrid` with 1-based rows and lettered
  columns. Any object with ``row_count``, ``get_cell`` and ``iter_row``
  satisfies the protocol; :class:`ListGrid` is the in-memory implementation
  used by the CSV loader and tests.
"""

from __future__ import annotations

import csv
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from os import PathLike
from pathlib import Path
from typing import Protocol, TypeAlias, runtime_checkable

from .errors import DocumentDecodeError
from .models import ContainerType


class CellKind(StrEnum):
    STRING = "string"
    NUMBER = "number"
    DATE = "date"
    EMPTY = "empty"


@dataclass(frozen=True, slots=True)
class Cell:
    value: object
    kind: CellKind

    @classmethod
    def of(cls, value: object) -> Cell:
        """Wrap a raw value, inferring its type tag."""

        if value is None or (isinstance(value, str) and not value.strip()):
            return cls(None, CellKind.EMPTY)
        if isinstance(value, (date, datetime)):
            return cls(value, CellKind.DATE)
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            return cls(value, CellKind.NUMBER)
        return cls(str(value), CellKind.STRING)

    @property
    def is_empty(self) -> bool:
        return self.kind is CellKind.EMPTY

    def text(self) -> str:
        return "" if self.value is None else str(self.value)


EMPTY_CELL = Cell(None, CellKind.EMPTY)


def column_index(letters: str) -> int:
    """``"A" -> 1``, ``"Z" -> 26``, ``"AA" -> 27``."""

    idx = 0
    for ch in letters.strip().upper():
        if not "A" <= ch <= "Z":
            raise ValueError(f"invalid column letter: {letters!r}")
        idx = idx * 26 + (ord(ch) - 64)
    if idx == 0:
        raise ValueError(f"invalid column letter: {letters!r}")
    return idx


@runtime_checkable
class CellGrid(Protocol):
    @property
    def row_count(self) -> int: ...

    def get_cell(self, row: int, column: str) -> Cell: ...

    def iter_row(self, row: int) -> Iterator[tuple[int, Cell]]:
        """Yield ``(column_index, cell)`` for every populated cell in ``row``."""
        ...


class ListGrid:
    """A :class:`CellGrid` backed by a list of rows (row 1 is ``rows[0]``)."""

    def __init__(self, rows: Iterable[Sequence[object]]):
        self._rows: list[list[Cell]] = [
            [v if isinstance(v, Cell) else Cell.of(v) for v in row] for row in rows
        ]

    @property
    def row_count(self) -> int:
        return len(self._rows)

    def get_cell(self, row: int, column: str) -> Cell:
        if not 1 <= row <= len(self._rows):
            return EMPTY_CELL
        cells = self._rows[row - 1]
        col = column_index(column)
        return cells[col - 1] if col <= len(cells) else EMPTY_CELL

    def iter_row(self, row: int) -> Iterator[tuple[int, Cell]]:
        if not 1 <= row <= len(self._rows):
            return
        for i, cell in enumerate(self._rows[row - 1], start=1):
            if not cell.is_empty:
                yield i, cell


@dataclass(frozen=True, slots=True)
class TextDocument:
    text: str
    file_name: str | None = None
    container: ContainerType = ContainerType.TEXTUAL


@dataclass(frozen=True, slots=True)
class GridDocument:
    grid: CellGrid
    file_name: str | None = None
    container: ContainerType = ContainerType.TABULAR


Document: TypeAlias = TextDocument | GridDocument


def join_pages(pages: Iterable[str]) -> str:
    """Concatenate page texts in order, one newline after each page."""

    return "".join(f"{p}\n" for p in pages)


def load_text_document(path: str | PathLike[str], *, encoding: str = "utf-8") -> TextDocument:
    """Read already-extracted statement text; form feeds separate pages."""

    p = Path(path)
    try:
        text = p.read_text(encoding=encoding)
    except UnicodeDecodeError as exc:
        raise DocumentDecodeError(p.name, encoding, exc.reason) from exc
    return TextDocument(text=join_pages(text.split("\f")), file_name=p.name)


def load_csv_document(
    path: str | PathLike[str],
    *,
    delimiter: str | None = None,
    encoding: str = "utf-8-sig",
) -> GridDocument:
    """Read a CSV export into a string-cell grid (delimiter sniffed when omitted)."""

    p = Path(path)
    try:
        with p.open(encoding=encoding, newline="") as f:
            sample = f.read(8192)
            f.seek(0)
            if delimiter is None:
                try:
                    delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t").delimiter
                except csv.Error:
                    delimiter = ","
            rows = list(csv.reader(f, delimiter=delimiter))
    except UnicodeDecodeError as exc:
        raise DocumentDecodeError(p.name, encoding, exc.reason) from exc
    return GridDocument(grid=ListGrid(rows), file_name=p.name)


__all__ = [
    "CellKind",
    "Cell",
    "EMPTY_CELL",
    "column_index",
    "CellGrid",
    "ListGrid",
    "TextDocument",
    "GridDocument",
    "Document",
    "join_pages",
    "load_text_document",
    "load_csv_document",
]
