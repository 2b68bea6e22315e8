import json
from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from statement_ingest.errors import BundleFormatError
from statement_ingest.export import build_bundle, parse_bundle
from statement_ingest.storage import MemoryStore, TransactionRepository

STORED = [
    {
        "id": "transaction-1",
        "date": "2024-03-05",
        "amount": 12345.67,
        "description": "Пенсия ПФР",
        "category": "Pension",
        "institution": "Sberbank",
        "raw": "05.03.2024 14:20 001 Пенсия ПФР +12 345,67 55 000,00",
        "meta": {"time": "14:20"},
        "fileName": "sber.pdf",
    },
    {
        "id": "transaction-2",
        "date": "2024-03-09",
        "amount": -80.0,
        "description": "Метро",
        "category": "Transport",
        "institution": "Tinkoff",
    },
]


def test_bundle_shape() -> None:
    bundle = build_bundle(STORED, ["Pension", "Transport"], exported_at=datetime(2024, 3, 10, tzinfo=UTC))
    data = json.loads(bundle.to_json())

    assert data["version"] == "2.0"
    assert data["format"] == "transactions"
    assert data["exportedAt"].startswith("2024-03-10T00:00:00")
    assert data["transactions"][0]["date"] == "2024-03-05"
    assert data["transactions"][0]["amount"] == 12345.67
    assert data["transactions"][0]["fileName"] == "sber.pdf"
    assert data["summary"] == {
        "totalTransactions": 2,
        "totalCategories": 2,
        "banks": ["Sberbank", "Tinkoff"],
        "dateRange": {"from": "2024-03-05", "to": "2024-03-09"},
    }


def test_empty_bundle_has_no_date_range() -> None:
    data = json.loads(build_bundle([], []).to_json())
    assert data["summary"]["dateRange"] is None
    assert data["transactions"] == []


def test_parse_keeps_amounts_exact() -> None:
    bundle = parse_bundle(build_bundle(STORED, []).to_json())
    assert bundle.transactions[0].amount == Decimal("12345.67")
    assert bundle.transactions[1].date == date(2024, 3, 9)


def test_parse_accepts_older_bundles() -> None:
    legacy = {
        "version": "1.0",
        "transactions": [
            {"date": "2024-03-05T00:00:00.000Z", "amount": 100, "description": "x", "bank": "Sberbank"}
        ],
    }
    (tx,) = parse_bundle(legacy).transactions
    assert tx.institution == "Sberbank"
    assert tx.date == date(2024, 3, 5)
    assert tx.category == "Other"


@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        {"version": "2.0"},
        {"transactions": [{"amount": 1}]},
        {"transactions": "nope"},
    ],
)
def test_invalid_bundles(payload) -> None:
    with pytest.raises(BundleFormatError, match="invalid export bundle"):
        parse_bundle(payload)


def test_repository_restore_saves_under_new_ids() -> None:
    source = TransactionRepository(MemoryStore())
    source.save_records(STORED)
    source.save_categories(["Pension", "Transport"])
    text = source.export_bundle().to_json()

    target = TransactionRepository(MemoryStore())
    summary = target.import_bundle(text)
    rows = target.load_records()

    assert summary.imported == 2
    assert summary.categories_restored
    assert target.categories() == ["Pension", "Transport"]
    assert {r["description"] for r in rows} == {"Пенсия ПФР", "Метро"}
    assert all(r["id"] not in {"transaction-1", "transaction-2"} for r in rows)
    assert rows[0]["fileName"] == "sber.pdf"
    assert rows[0]["amount"] == 12345.67


def test_restore_without_categories_leaves_list_alone() -> None:
    repo = TransactionRepository(MemoryStore())
    repo.save_categories(["Food"])
    summary = repo.import_bundle({"transactions": []})

    assert not summary.categories_restored
    assert repo.categories() == ["Food"]
