import pytest

from statement_ingest.categories import (
    CATEGORY_LABELS,
    GROCERIES,
    INCOME,
    OTHER,
    PENSION,
    TRANSFERS,
    CategoryRule,
    KeywordClassifier,
    classify,
    normalize_category,
)


@pytest.mark.parametrize(
    ("description", "label"),
    [
        ("Пенсия ПФР", PENSION),
        ("Pension payment", PENSION),
        ("Перевод с карты на карту", TRANSFERS),
        ("Прочие операции", OTHER),
        ("Магнит у дома", GROCERIES),
        ("ПЯТЕРОЧКА 1234", GROCERIES),
        ("Зарплата за февраль", INCOME),
        ("Salary", INCOME),
        ("Непонятная строка", OTHER),
        ("", OTHER),
    ],
)
def test_default_rules(description: str, label: str) -> None:
    assert classify(description) == label


def test_rule_order_is_priority() -> None:
    # Both rules match; the earlier one wins.
    assert classify("Pension transfer") == PENSION
    assert classify("Transfer of salary") == TRANSFERS


def test_yo_folds_to_ye() -> None:
    clf = KeywordClassifier([CategoryRule("Fees", ("счет",))])
    assert clf("Обслуживание счёта") == "Fees"


def test_custom_default_label() -> None:
    clf = KeywordClassifier([], default="Unsorted")
    assert clf("anything") == "Unsorted"
    assert clf.labels == ("Unsorted",)


@pytest.mark.parametrize(
    ("label", "canonical"),
    [
        ("Прочее", OTHER),
        ("прочие", OTHER),
        ("  other  ", OTHER),
        ("Misc", OTHER),
        ("", OTHER),
        (None, OTHER),
        ("Продукты", GROCERIES),
        ("Travel   plans", "Travel plans"),
    ],
)
def test_normalize_category(label, canonical: str) -> None:
    assert normalize_category(label) == canonical


def test_default_rules_only_use_canonical_labels() -> None:
    assert set(KeywordClassifier().labels) <= set(CATEGORY_LABELS)
