"""Institution registry.

An :class:`InstitutionRegistry` is built once (usually through
:func:`build_default_registry`) and handed to the extraction pipeline. It is
never mutated after construction, so one instance can be shared by any
number of concurrent extraction tasks.

Lookups accept the canonical key or any alias, case-insensitively::

    registry = build_default_registry()
    registry.get_strategy("sber")      # -> Sberbank TextStrategy
    registry.display_name("t-bank")    # -> "Tinkoff"
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from .errors import UnknownInstitution
from .grammars import DEFAULT_INSTITUTIONS, Institution, TabularLayout, TextStrategy


def _norm_key(key: str) -> str:
    return key.strip().casefold()


class InstitutionRegistry:
    """Read-only lookup table from institution key/alias to its grammars."""

    def __init__(self, institutions: Iterable[Institution]):
        by_key: dict[str, Institution] = {}
        lookup: dict[str, str] = {}
        for inst in institutions:
            key = _norm_key(inst.key)
            if key in by_key:
                raise ValueError(f"institution registered twice: {inst.key!r}")
            by_key[key] = inst
            for name in (inst.key, *inst.aliases):
                n = _norm_key(name)
                owner = lookup.setdefault(n, key)
                if owner != key:
                    raise ValueError(f"alias {name!r} is claimed by both {owner!r} and {key!r}")
        self._by_key = by_key
        self._lookup = lookup
        self._layouts: tuple[TabularLayout, ...] = tuple(
            layout for inst in by_key.values() for layout in inst.layouts
        )

    def __iter__(self) -> Iterator[Institution]:
        return iter(self._by_key.values())

    def __len__(self) -> int:
        return len(self._by_key)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and _norm_key(key) in self._lookup

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(i.key for i in self._by_key.values())

    def resolve(self, key: str) -> Institution:
        """Return the institution registered under ``key`` (or an alias of it)."""

        if not isinstance(key, str) or _norm_key(key) not in self._lookup:
            raise UnknownInstitution(key, self.keys)
        return self._by_key[self._lookup[_norm_key(key)]]

    def get_strategy(self, key: str) -> TextStrategy:
        inst = self.resolve(key)
        if inst.text is None:
            raise UnknownInstitution(key, tuple(i.key for i in self if i.text is not None))
        return inst.text

    def display_name(self, key: str) -> str:
        return self.resolve(key).name

    def tabular_layouts(self) -> tuple[TabularLayout, ...]:
        """Every registered tabular layout, in registration order."""

        return self._layouts

    def institution_for_marker(self, text: str) -> Institution | None:
        """First institution whose upper-cased cell marker occurs in ``text``."""

        upper = text.upper()
        for inst in self._by_key.values():
            if any(marker in upper for marker in inst.cell_markers):
                return inst
        return None

    def institution_for_text(self, text: str) -> Institution | None:
        """First institution whose text marker occurs in case-folded ``text``."""

        folded = text.casefold()
        for inst in self._by_key.values():
            if any(marker in folded for marker in inst.text_markers):
                return inst
        return None


def build_default_registry() -> InstitutionRegistry:
    return InstitutionRegistry(DEFAULT_INSTITUTIONS)


__all__ = ["InstitutionRegistry", "build_default_registry"]
