"""Institution grammars, one module per bank.

``DEFAULT_INSTITUTIONS`` is the registration order used by
:func:`statement_ingest.registry.build_default_registry`; tabular layouts are
tried in that order during detection.
"""

from __future__ import annotations

from . import alfabank, ozon, sberbank, tinkoff
from .base import (
    COMMON_NOISE,
    MIN_DESCRIPTION_LENGTH,
    OPTIONAL_FIELDS,
    Classifier,
    ExtractionRule,
    Institution,
    TabularLayout,
    TextStrategy,
    is_noise,
)

DEFAULT_INSTITUTIONS: tuple[Institution, ...] = (
    sberbank.INSTITUTION,
    tinkoff.INSTITUTION,
    ozon.INSTITUTION,
    alfabank.INSTITUTION,
)

__all__ = [
    "COMMON_NOISE",
    "MIN_DESCRIPTION_LENGTH",
    "OPTIONAL_FIELDS",
    "Classifier",
    "ExtractionRule",
    "Institution",
    "TabularLayout",
    "TextStrategy",
    "is_noise",
    "DEFAULT_INSTITUTIONS",
]
