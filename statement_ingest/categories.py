"""Category inference and label normalization.

Categories are inferred from the free-text description by an ordered list of
keyword rules; the first rule with a keyword contained in the case-folded
description wins, and no match yields :data:`OTHER`.

Rule order is behaviour: pension keywords are checked before transfer
keywords, which are checked before the generic "other" keywords, and so on.
Reordering :data:`DEFAULT_RULES` changes classification outcomes.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

PENSION = "Pension"
TRANSFERS = "Transfers"
OTHER = "Other"
GROCERIES = "Groceries"
TRANSPORT = "Transport"
FOOD = "Food"
INCOME = "Income"

CATEGORY_LABELS: tuple[str, ...] = (
    PENSION,
    TRANSFERS,
    OTHER,
    GROCERIES,
    TRANSPORT,
    FOOD,
    INCOME,
)


@dataclass(frozen=True, slots=True)
class CategoryRule:
    label: str
    keywords: tuple[str, ...]

    def matches(self, folded: str) -> bool:
        return any(k in folded for k in self.keywords)


DEFAULT_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(PENSION, ("пенсия пфр", "pension")),
    CategoryRule(TRANSFERS, ("перевод с карты", "альфа-банк", "card transfer", "transfer")),
    CategoryRule(OTHER, ("прочие операции", "прочие", "прочее", "other operations", "miscellaneous")),
    CategoryRule(GROCERIES, ("продукт", "магнит", "пятерочка", "grocer", "supermarket")),
    CategoryRule(TRANSPORT, ("транспорт", "метро", "автобус", "transport", "metro", "subway", "taxi")),
    CategoryRule(FOOD, ("кафе", "ресторан", "еда", "cafe", "restaurant")),
    CategoryRule(INCOME, ("зарплат", "доход", "salary", "income")),
)

# Spellings that collapse onto one canonical label (keys are folded).
_SYNONYMS: dict[str, str] = {
    "прочее": OTHER,
    "прочие": OTHER,
    "прочие операции": OTHER,
    "other": OTHER,
    "others": OTHER,
    "other operations": OTHER,
    "misc": OTHER,
    "miscellaneous": OTHER,
    "пенсия": PENSION,
    "переводы": TRANSFERS,
    "продукты": GROCERIES,
    "транспорт": TRANSPORT,
    "питание": FOOD,
    "доходы": INCOME,
}


def fold(text: str) -> str:
    """Case-fold ``text`` and map ``ё`` to ``е`` for keyword matching."""

    return text.casefold().replace("ё", "е")


def normalize_category(label: str | None) -> str:
    """Trim, collapse whitespace and map synonyms onto canonical labels.

    Empty or missing labels become :data:`OTHER`. Unknown labels are kept
    (trimmed), so user-defined categories survive.
    """

    if label is None:
        return OTHER
    s = " ".join(str(label).split())
    if not s:
        return OTHER
    return _SYNONYMS.get(fold(s), s)


class KeywordClassifier:
    """Ordered keyword rules; the first matching rule's label wins."""

    def __init__(self, rules: Iterable[CategoryRule] = DEFAULT_RULES, *, default: str = OTHER):
        self.rules: tuple[CategoryRule, ...] = tuple(rules)
        self.default = default

    @property
    def labels(self) -> Sequence[str]:
        seen: dict[str, None] = {}
        for r in self.rules:
            seen.setdefault(r.label, None)
        seen.setdefault(self.default, None)
        return tuple(seen)

    def __call__(self, description: str | None) -> str:
        folded = fold(description or "")
        for rule in self.rules:
            if rule.matches(folded):
                return rule.label
        return self.default


DEFAULT_CLASSIFIER = KeywordClassifier()


def classify(description: str | None) -> str:
    """Classify ``description`` with :data:`DEFAULT_RULES`."""

    return DEFAULT_CLASSIFIER(description)


__all__ = [
    "PENSION",
    "TRANSFERS",
    "OTHER",
    "GROCERIES",
    "TRANSPORT",
    "FOOD",
    "INCOME",
    "CATEGORY_LABELS",
    "CategoryRule",
    "DEFAULT_RULES",
    "KeywordClassifier",
    "DEFAULT_CLASSIFIER",
    "classify",
    "fold",
    "normalize_category",
]
