from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from .errors import ValidationError
from .model import Quote

# UI-only pseudo-category; never stored on a quote.
ALL_CATEGORIES = "all"


def is_all(category: Optional[str]) -> bool:
    return category is None or category == ALL_CATEGORIES


def normalize_filter(value: Optional[str]) -> str:
    if value is None:
        return ALL_CATEGORIES
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("filter must be a non-empty string")
    return value.strip()


def available_categories(quotes: Iterable[Quote], include_all: bool = True) -> List[str]:
    """Distinct categories in order of first appearance."""
    seen: dict[str, None] = {}
    for q in quotes:
        seen.setdefault(q.category, None)
    cats = list(seen)
    if include_all:
        return [ALL_CATEGORIES, *cats]
    return cats


def filter_quotes(quotes: Sequence[Quote], category: Optional[str]) -> List[Quote]:
    if is_all(category):
        return list(quotes)
    return [q for q in quotes if q.category == category]
