import json
from pathlib import Path

from typer.testing import CliRunner

from statement_ingest.cli import app

runner = CliRunner()

SBER_TEXT = (
    "ПАО Сбербанк\n"
    "05.03.2024 14:20 001 Пенсия ПФР +12 345,67 55 000,00\n"
    "\f"
    "06.03.2024 10:05 002 Магнит продукты -1 250,00 53 750,00\n"
)

CSV_TEXT = "Дата;Описание;Сумма\n05.03.2024;Salary;50000\n06.03.2024;Кафе Ромашка;-420,00\n"


def _write(tmp_path: Path, name: str, content: str) -> Path:
    p = tmp_path / name
    p.write_text(content, encoding="utf-8")
    return p


def test_parse_text_statement_as_json(tmp_path: Path) -> None:
    path = _write(tmp_path, "sber.txt", SBER_TEXT)
    result = runner.invoke(app, ["parse", str(path), "--bank", "sber", "--json"])

    assert result.exit_code == 0, result.output
    rows = json.loads(result.stdout)
    assert [r["description"] for r in rows] == ["Пенсия ПФР", "Магнит продукты"]
    assert rows[0]["category"] == "Pension"
    assert rows[0]["amount"] == 12345.67


def test_parse_text_requires_bank(tmp_path: Path) -> None:
    path = _write(tmp_path, "sber.txt", SBER_TEXT)
    result = runner.invoke(app, ["parse", str(path)])

    assert result.exit_code == 1
    assert "Error: textual statements require an explicit institution selection" in result.output


def test_parse_rejects_unknown_file_type(tmp_path: Path) -> None:
    path = _write(tmp_path, "scan.pdf", "%PDF")
    result = runner.invoke(app, ["parse", str(path)])

    assert result.exit_code == 1
    assert "Unsupported file type '.pdf'" in result.output


def test_parse_missing_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["parse", str(tmp_path / "nope.csv")])

    assert result.exit_code == 1
    assert "Error: Failed to read" in result.output


def test_parse_csv_table(tmp_path: Path) -> None:
    path = _write(tmp_path, "export.csv", CSV_TEXT)
    result = runner.invoke(app, ["parse", str(path)])

    assert result.exit_code == 0, result.output
    assert "2 records" in result.stdout


def test_import_then_list(tmp_path: Path) -> None:
    csv_path = _write(tmp_path, "export.csv", CSV_TEXT)

    first = runner.invoke(app, ["import", str(csv_path)])
    again = runner.invoke(app, ["import", str(csv_path)])

    assert first.exit_code == 0, first.output
    assert "Imported 2 records from 1 statements (0 duplicates skipped)" in first.stdout
    assert "Imported 0 records from 1 statements (2 duplicates skipped)" in again.stdout

    listed = runner.invoke(app, ["list", "--json", "--sort", "amount"])
    rows = json.loads(listed.stdout)
    assert [r["description"] for r in rows] == ["Кафе Ромашка", "Salary"]

    filtered = runner.invoke(app, ["list", "--json", "--category", "Income"])
    assert [r["description"] for r in json.loads(filtered.stdout)] == ["Salary"]


def test_import_reports_failures_but_saves_the_rest(tmp_path: Path) -> None:
    good = _write(tmp_path, "export.csv", CSV_TEXT)
    bad = _write(tmp_path, "other.csv", "foo,bar\n1,2\n")
    result = runner.invoke(app, ["import", str(good), str(bad)])

    assert result.exit_code == 1
    assert "Error: other.csv: statement format not recognized" in result.output
    assert "Imported 2 records" in result.output


def test_set_category(tmp_path: Path) -> None:
    runner.invoke(app, ["import", str(_write(tmp_path, "export.csv", CSV_TEXT))])
    rows = json.loads(runner.invoke(app, ["list", "--json", "--search", "ромашка"]).stdout)

    result = runner.invoke(app, ["set-category", rows[0]["id"], "питание"])
    assert result.exit_code == 0, result.output
    assert result.stdout.strip().endswith("Food")

    missing = runner.invoke(app, ["set-category", "transaction-x", "Food"])
    assert missing.exit_code == 1
    assert "Error: no stored record" in missing.output


def test_export_restore_and_dedupe(tmp_path: Path) -> None:
    runner.invoke(app, ["import", str(_write(tmp_path, "export.csv", CSV_TEXT))])
    out = tmp_path / "backup.json"

    exported = runner.invoke(app, ["export", str(out)])
    assert exported.exit_code == 0, exported.output
    assert json.loads(out.read_text(encoding="utf-8"))["summary"]["totalTransactions"] == 2

    restored = runner.invoke(app, ["restore", str(out)])
    assert "Restored 2 records and categories" in restored.stdout

    deduped = runner.invoke(app, ["dedupe-store"])
    assert "Removed 2 duplicates; 2 records remain" in deduped.stdout


def test_restore_rejects_bad_bundle(tmp_path: Path) -> None:
    path = _write(tmp_path, "bad.json", '{"version": "2.0"}')
    result = runner.invoke(app, ["restore", str(path)])

    assert result.exit_code == 1
    assert "Error: invalid export bundle" in result.output


def test_banks(tmp_path: Path) -> None:
    result = runner.invoke(app, ["banks"])

    assert result.exit_code == 0
    for key in ("sberbank", "tinkoff", "ozon", "alfabank"):
        assert key in result.stdout


def test_parse_non_utf8_statement_is_a_clean_error(tmp_path: Path) -> None:
    path = tmp_path / "sber.txt"
    path.write_bytes(SBER_TEXT.encode("cp1251"))
    result = runner.invoke(app, ["parse", str(path), "--bank", "sber"])

    assert result.exit_code == 1
    assert "Error: cannot decode 'sber.txt' as utf-8" in result.output
    assert "Traceback" not in result.output


def test_parse_with_explicit_encoding(tmp_path: Path) -> None:
    path = tmp_path / "sber.txt"
    path.write_bytes(SBER_TEXT.encode("cp1251"))
    result = runner.invoke(app, ["parse", str(path), "--bank", "sber", "--encoding", "cp1251", "--json"])

    assert result.exit_code == 0, result.output
    rows = json.loads(result.stdout)
    assert [r["description"] for r in rows] == ["Пенсия ПФР", "Магнит продукты"]


def test_parse_unknown_encoding(tmp_path: Path) -> None:
    path = _write(tmp_path, "sber.txt", SBER_TEXT)
    result = runner.invoke(app, ["parse", str(path), "--bank", "sber", "--encoding", "no-such-codec"])

    assert result.exit_code == 1
    assert "Error: Unknown encoding 'no-such-codec'" in result.output


def test_import_keeps_going_past_undecodable_file(tmp_path: Path) -> None:
    good = _write(tmp_path, "export.csv", CSV_TEXT)
    bad = tmp_path / "legacy.csv"
    bad.write_bytes(CSV_TEXT.encode("cp1251"))
    result = runner.invoke(app, ["import", str(bad), str(good)])

    assert result.exit_code == 1
    assert "Error: cannot decode 'legacy.csv' as utf-8-sig" in result.output
    assert "Imported 2 records from 1 statements" in result.output


def test_list_date_bounds(tmp_path: Path) -> None:
    runner.invoke(app, ["import", str(_write(tmp_path, "export.csv", CSV_TEXT))])

    bounded = runner.invoke(app, ["list", "--json", "--from", "06.03.2024"])
    assert [r["description"] for r in json.loads(bounded.stdout)] == ["Кафе Ромашка"]

    invalid = runner.invoke(app, ["list", "--from", "2024-13-01"])
    assert invalid.exit_code == 1
    assert "Error: Invalid --from date '2024-13-01'" in invalid.output


def test_log_level_option() -> None:
    result = runner.invoke(app, ["--log-level", "DEBUG", "banks"])

    assert result.exit_code == 0, result.output
    assert "sberbank" in result.stdout
