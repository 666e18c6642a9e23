"""Quote model, filtering and reconciliation logic; no I/O."""

from .errors import (
    FormatError,
    PersistenceReadError,
    QuoteKeeperError,
    TransportError,
    ValidationError,
)
from .filters import ALL_CATEGORIES, available_categories, filter_quotes
from .model import LocalIdAllocator, Quote
from .reconcile import MergeResult, reconcile

__all__ = [
    "ALL_CATEGORIES",
    "FormatError",
    "LocalIdAllocator",
    "MergeResult",
    "PersistenceReadError",
    "Quote",
    "QuoteKeeperError",
    "TransportError",
    "ValidationError",
    "available_categories",
    "filter_quotes",
    "reconcile",
]
