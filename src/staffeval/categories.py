"""Fixed catalog of evaluation categories.

Every evaluation scores the same nine dimensions. The maxima add up to 100,
so an evaluation's total score is directly a percentage.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    max_points: int


CATEGORIES: Sequence[Category] = (
    Category("fachlicheKompetenz", "Fachliche Kompetenz", 10),
    Category("zuverlaessigkeit", "Zuverlässigkeit", 10),
    Category("qualitaetAusfuehrung", "Qualität der Ausführung", 10),
    Category("dokumentation", "Dokumentation und Berichtswesen", 10),
    Category("zusammenarbeit", "Zusammenarbeit im Team", 15),
    Category("kommunikation", "Kommunikationsfähigkeiten", 10),
    Category("konfliktmanagement", "Konfliktmanagement", 10),
    Category("selbststaendigkeit", "Selbstständigkeit und Problemlösungsfähigkeiten", 10),
    Category("vorschriften", "Einhalten von Vorschriften und Richtlinien", 15),
)

CATEGORY_IDS: Sequence[str] = tuple(category.id for category in CATEGORIES)

_BY_ID: Dict[str, Category] = {category.id: category for category in CATEGORIES}

MAX_TOTAL_SCORE = sum(category.max_points for category in CATEGORIES)


def get_category(category_id: str) -> Category:
    """Return the catalog entry for ``category_id``.

    Raises:
        KeyError: when the id is not part of the catalog.
    """
    return _BY_ID[category_id]


def is_known(category_id: str) -> bool:
    return category_id in _BY_ID


__all__ = ["CATEGORIES", "CATEGORY_IDS", "Category", "MAX_TOTAL_SCORE", "get_category", "is_known"]
