import textwrap
from datetime import date
from decimal import Decimal

from statement_ingest.documents import ListGrid
from statement_ingest.grammars import COMMON_NOISE, is_noise
from statement_ingest.grammars import alfabank, ozon, sberbank, tinkoff


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n")


def test_sberbank_primary_rule() -> None:
    text = _dedent(
        """
        ПАО Сбербанк
        Выписка по счёту № 40817810000000000001
        05.03.2024 14:20 001 Пенсия ПФР +12 345,67 55 000,00
        06.03.2024 10:05 002 Магнит продукты -1 250,00 53 750,00
        """
    )
    cands = list(sberbank.STRATEGY.extract(text))

    assert [c.date for c in cands] == [date(2024, 3, 5), date(2024, 3, 6)]
    assert [c.amount for c in cands] == [Decimal("12345.67"), Decimal("-1250.00")]
    assert [c.description for c in cands] == ["Пенсия ПФР", "Магнит продукты"]
    assert cands[0].balance == Decimal("55000.00")
    assert cands[0].meta == {"time": "14:20", "code": "001", "pattern": "primary"}


def test_sberbank_falls_back_when_primary_finds_nothing() -> None:
    text = _dedent(
        """
        05.03.2024 Перевод с карты 1 500,00
        07.03.2024 Кафе Ромашка -420,00
        """
    )
    cands = list(sberbank.STRATEGY.extract(text))

    assert [c.description for c in cands] == ["Перевод с карты", "Кафе Ромашка"]
    assert [c.amount for c in cands] == [Decimal("1500.00"), Decimal("-420.00")]
    assert all(c.meta["pattern"] == "alternative1" for c in cands)


def test_sberbank_fallback_screens_letterhead_lines() -> None:
    text = _dedent(
        """
        Выписка за период 01.03.2024 итого 100,00
        05.03.2024 Перевод с карты 1 500,00
        """
    )
    cands = list(sberbank.STRATEGY.extract(text))

    assert [c.description for c in cands] == ["Перевод с карты"]


def test_sberbank_rules_are_not_merged() -> None:
    # The primary rule matches the first line, so the second line (only
    # matched by a fallback) is not extracted.
    text = _dedent(
        """
        05.03.2024 14:20 001 Пенсия ПФР +12 345,67 55 000,00
        07.03.2024 Кафе Ромашка -420,00
        """
    )
    cands = list(sberbank.STRATEGY.extract(text))

    assert [c.meta["pattern"] for c in cands] == ["primary"]


def test_tinkoff_operation() -> None:
    text = "05.03.2024 14:20 06.03.2024 09:00 -1 250.00 ₽ -1 250.00 ₽ Кафе Ромашка 1234\n"
    (cand,) = tinkoff.STRATEGY.extract(text)

    assert cand.date == date(2024, 3, 5)
    assert cand.amount == Decimal("-1250.00")
    assert cand.description == "Кафе Ромашка"
    assert cand.meta["card"] == "1234"
    assert cand.meta["posted"] == "06.03.2024"
    assert cand.meta["account_amount"] == Decimal("-1250.00")
    assert cand.meta["pattern"] == "operation"


def test_ozon_sign_is_printed_apart() -> None:
    text = _dedent(
        """
        12.04.2024 10:15:42 784512 Оплата товаров Ozon - 1 499.00 ₽
        13.04.2024 09:00:01 784513 Возврат средств + 250.00 ₽
        """
    )
    cands = list(ozon.STRATEGY.extract(text))

    assert [c.amount for c in cands] == [Decimal("-1499.00"), Decimal("250.00")]
    assert [c.meta["number"] for c in cands] == ["784512", "784513"]
    assert {c.meta["pattern"] for c in cands} == {"operation"}


def test_alfabank_code_prefix() -> None:
    text = "14.02.2024 CRD_4R7T12 Перевод с карты на карту -3 000,00 RUR\n"
    (cand,) = alfabank.STRATEGY.extract(text)

    assert cand.description == "[CRD_4R7T12] Перевод с карты на карту"
    assert cand.classify_text == "Перевод с карты на карту"
    assert cand.amount == Decimal("-3000.00")
    assert cand.meta == {"code": "CRD_4R7T12", "pattern": "operation"}
    assert alfabank.STRATEGY.classify(cand.classify_text) == "Transfers"


def test_no_rule_matches_yields_nothing() -> None:
    assert list(sberbank.STRATEGY.extract("Страница 1 из 3\n")) == []


def test_noise_filter() -> None:
    assert is_noise("Остаток на 01.03.2024", COMMON_NOISE)
    assert is_noise("ab", COMMON_NOISE)
    assert is_noise("123456", COMMON_NOISE)
    assert is_noise("   ", COMMON_NOISE)
    assert is_noise(None, COMMON_NOISE)
    assert not is_noise("Кафе Ромашка", COMMON_NOISE)


def test_income_expense_row_is_signed() -> None:
    layout = alfabank.LAYOUTS[0]
    grid = ListGrid(
        [
            ["Дата", "Описание", "Приход", "Расход", "Остаток"],
            ["05.03.2024", "Зарплата", "50 000,00", "", "60 000,00"],
            ["06.03.2024", "Магнит", "", "1 200,50", "58 799,50"],
            [],
        ]
    )
    cands = list(layout.extract(grid, header_row=1))

    assert [c.amount for c in cands] == [Decimal("50000.00"), Decimal("-1200.50")]
    assert [c.balance for c in cands] == [Decimal("60000.00"), Decimal("58799.50")]
    assert cands[0].income is None and cands[0].expense is None


def test_category_cell_is_normalized() -> None:
    layout = tinkoff.LAYOUTS[0]
    grid = ListGrid(
        [
            ["Дата", "Описание", "Сумма", "Категория"],
            ["05.03.2024", "Лента", "-300.00", "Продукты"],
            ["06.03.2024", "Кино", "-500.00", ""],
        ]
    )
    cands = list(layout.extract(grid, header_row=1))

    assert [c.category for c in cands] == ["Groceries", None]
