"""Command-line interface for ``statement_ingest``.

Subcommands
-----------
- ``parse PATH [--bank KEY] [--json]``: run the pipeline on one document and
  print its records.
- ``import PATH... [--bank KEY]``: extract documents concurrently, skip
  records already in the store and save the rest.
- ``list``: query stored records (filters AND together).
- ``set-category ID CATEGORY``: correct one stored record's category.
- ``export OUT.json`` / ``restore IN.json``: write or load a backup bundle.
- ``dedupe-store``: collapse duplicates already in the store.
- ``banks``: show the registered institutions.

Documents are read by suffix: ``.txt`` is already-extracted statement text
(pages separated by form feeds), ``.csv`` is a spreadsheet export. Both are
decoded as UTF-8 unless ``--encoding`` names another codec.

Every ingestion failure is printed as a single ``Error: ...`` line on stderr
and the command exits with status 1.
"""

from __future__ import annotations

import codecs
import json
import sys
from datetime import date
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from .concurrency import extract_documents
from .dedupe import coerce_date
from .documents import Document, load_csv_document, load_text_document
from .errors import IngestError
from .importer import StatementImporter
from .logging_setup import configure_logging
from .pipeline import ExtractionPipeline
from .query import SortSpec, TransactionFilters, filter_and_sort
from .registry import build_default_registry
from .storage import SqlStore, TransactionRepository

console = Console()

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Parse bank statements into canonical transaction records and keep them "
        "in a local store. Loads a .env from the working directory before running."
    ),
)

BANK_OPTION = typer.Option(
    "--bank",
    "-b",
    help="Institution key or alias (required for .txt statements; see `banks`).",
)
DATABASE_URL_OPTION = typer.Option(
    "--database-url",
    help="Override STATEMENT_INGEST_DATABASE_URL / DATABASE_URL.",
)
ENCODING_OPTION = typer.Option(
    "--encoding",
    help="Text encoding of the statement files (default: utf-8; e.g. cp1251).",
)

_TEXT_SUFFIXES = {".txt"}
_GRID_SUFFIXES = {".csv"}


def _fail(message: str) -> typer.Exit:
    print(f"Error: {message}", file=sys.stderr)
    return typer.Exit(1)


def _load_document(path: Path, encoding: str | None = None) -> Document:
    if encoding is not None:
        try:
            codecs.lookup(encoding)
        except LookupError as e:
            raise _fail(f"Unknown encoding '{encoding}'") from e
    suffix = path.suffix.lower()
    if suffix in _TEXT_SUFFIXES:
        return load_text_document(path, encoding=encoding or "utf-8")
    if suffix in _GRID_SUFFIXES:
        return load_csv_document(path, encoding=encoding or "utf-8-sig")
    raise _fail(f"Unsupported file type '{suffix or path.name}' (expected .txt or .csv): {path}")


def _date_bound(value: str | None, option: str) -> date | None:
    if value is None:
        return None
    parsed = coerce_date(value)
    if parsed is None:
        raise _fail(f"Invalid {option} date '{value}' (expected YYYY-MM-DD or DD.MM.YYYY)")
    return parsed


def _repository(database_url: str | None) -> TransactionRepository:
    return TransactionRepository(SqlStore(database_url))


def _records_table(rows: list[dict], *, title: str | None = None, with_id: bool = False) -> Table:
    table = Table(title=title)
    if with_id:
        table.add_column("id", overflow="fold")
    table.add_column("date")
    table.add_column("amount", justify="right")
    table.add_column("description", overflow="fold")
    table.add_column("category")
    table.add_column("institution")
    for row in rows:
        cells = [
            str(row.get("date", "")),
            f"{row.get('amount', '')}",
            str(row.get("description", "")),
            str(row.get("category", "")),
            str(row.get("institution") or row.get("bank") or ""),
        ]
        table.add_row(*([str(row.get("id", ""))] + cells if with_id else cells))
    return table


@app.command("parse")
def parse_cmd(
    path: Annotated[Path, typer.Argument(help="Statement file (.txt or .csv).")],
    bank: Annotated[str | None, BANK_OPTION] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print records as JSON.")] = False,
    encoding: Annotated[str | None, ENCODING_OPTION] = None,
) -> None:
    """Parse one statement and print its records without storing them."""

    try:
        document = _load_document(path, encoding)
        result = ExtractionPipeline().run(document, institution=bank)
    except OSError as e:
        raise _fail(f"Failed to read '{path}': {e}") from e
    except IngestError as e:
        raise _fail(str(e)) from e

    statement = result.statement
    rows = [r.to_json_dict() for r in statement.records]
    if as_json:
        typer.echo(json.dumps(rows, ensure_ascii=False, indent=2))
        return

    console.print(_records_table(rows, title=f"{statement.institution}: {path.name}"))
    typer.echo(
        f"{len(statement)} records "
        f"({result.candidates} candidates, {result.rejected_noise} noise, "
        f"{result.rejected_invalid} invalid, {result.intra_duplicates} repeated)"
    )


@app.command("import")
def import_cmd(
    paths: Annotated[list[Path], typer.Argument(help="Statement files (.txt or .csv).")],
    bank: Annotated[str | None, BANK_OPTION] = None,
    encoding: Annotated[str | None, ENCODING_OPTION] = None,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Extract statements and save their records, skipping known duplicates."""

    documents: list[Document] = []
    failed = 0
    for path in paths:
        try:
            documents.append(_load_document(path, encoding))
        except typer.Exit:
            failed += 1
        except OSError as e:
            print(f"Error: Failed to read '{path}': {e}", file=sys.stderr)
            failed += 1
        except IngestError as e:
            print(f"Error: {e}", file=sys.stderr)
            failed += 1

    outcomes = extract_documents(ExtractionPipeline(), documents, selection=bank)
    statements = []
    for outcome in outcomes:
        if outcome.ok and outcome.result is not None:
            statements.append(outcome.result.statement)
        else:
            name = outcome.document.file_name or "<document>"
            print(f"Error: {name}: {outcome.error}", file=sys.stderr)
            failed += 1

    report = StatementImporter(_repository(database_url)).import_statements(statements)
    typer.echo(
        f"Imported {report.unique} records from {len(statements)} statements "
        f"({report.duplicates} duplicates skipped)"
    )
    if failed:
        raise typer.Exit(1)


@app.command("list")
def list_cmd(
    bank: Annotated[str | None, typer.Option("--bank", help="Institution display name.")] = None,
    category: Annotated[str | None, typer.Option("--category")] = None,
    date_from: Annotated[str | None, typer.Option("--from", help="YYYY-MM-DD or DD.MM.YYYY")] = None,
    date_to: Annotated[str | None, typer.Option("--to", help="YYYY-MM-DD or DD.MM.YYYY")] = None,
    search: Annotated[str | None, typer.Option("--search")] = None,
    sort: Annotated[str | None, typer.Option("--sort", help="Field to sort by.")] = None,
    desc: Annotated[bool, typer.Option("--desc", help="Sort descending.")] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print records as JSON.")] = False,
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """List stored records."""

    filters = TransactionFilters(
        institution=bank,
        category=category,
        date_from=_date_bound(date_from, "--from"),
        date_to=_date_bound(date_to, "--to"),
        search=search,
    )
    spec = SortSpec(sort, descending=desc) if sort else None
    rows = filter_and_sort(_repository(database_url).load_records(), filters, spec)
    if as_json:
        typer.echo(json.dumps(rows, ensure_ascii=False, indent=2))
        return
    console.print(_records_table(rows, with_id=True))
    typer.echo(f"{len(rows)} records")


@app.command("set-category")
def set_category_cmd(
    record_id: Annotated[str, typer.Argument(help="Stored record id.")],
    category: Annotated[str, typer.Argument(help="New category label.")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Correct the category of one stored record."""

    try:
        updated = _repository(database_url).update_category(record_id, category)
    except IngestError as e:
        raise _fail(str(e)) from e
    typer.echo(f"{record_id}\t{updated['category']}")


@app.command("export")
def export_cmd(
    out: Annotated[Path, typer.Argument(help="Destination .json file.")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Write every stored record and the category list to a JSON bundle."""

    bundle = _repository(database_url).export_bundle()
    try:
        out.write_text(bundle.to_json(), encoding="utf-8")
    except OSError as e:
        raise _fail(f"Failed to write '{out}': {e}") from e
    typer.echo(f"Exported {len(bundle.transactions)} records to {out}")


@app.command("restore")
def restore_cmd(
    source: Annotated[Path, typer.Argument(help="Bundle written by `export`.")],
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Load a JSON bundle into the store (records are saved under new ids)."""

    try:
        summary = _repository(database_url).import_bundle(source.read_bytes())
    except OSError as e:
        raise _fail(f"Failed to read '{source}': {e}") from e
    except IngestError as e:
        raise _fail(str(e)) from e
    note = " and categories" if summary.categories_restored else ""
    typer.echo(f"Restored {summary.imported} records{note}")


@app.command("dedupe-store")
def dedupe_store_cmd(
    database_url: Annotated[str | None, DATABASE_URL_OPTION] = None,
) -> None:
    """Delete stored records that duplicate an earlier stored record."""

    removal = _repository(database_url).remove_duplicates()
    typer.echo(f"Removed {removal.removed} duplicates; {removal.remaining} records remain")


@app.command("banks")
def banks_cmd() -> None:
    """Show registered institutions and the document kinds they support."""

    table = Table()
    table.add_column("key")
    table.add_column("name")
    table.add_column("aliases")
    table.add_column("text")
    table.add_column("layouts", justify="right")
    for inst in build_default_registry():
        table.add_row(
            inst.key,
            inst.name,
            ", ".join(inst.aliases),
            "yes" if inst.text is not None else "no",
            str(len(inst.layouts)),
        )
    console.print(table)


@app.callback()
def _root(
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="DEBUG, INFO, WARNING... (default: STATEMENT_INGEST_LOG_LEVEL or INFO)."),
    ] = None,
) -> None:
    """Load ``.env`` from the working directory and configure logging."""

    # override=False keeps variables already set in the environment
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
