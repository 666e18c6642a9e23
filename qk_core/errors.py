from __future__ import annotations


class QuoteKeeperError(Exception):
    """Base class for all quote keeper errors."""


class ValidationError(QuoteKeeperError, ValueError):
    """A quote or filter value failed validation (e.g. empty text)."""


class FormatError(QuoteKeeperError, ValueError):
    """A serialized payload does not have the expected shape."""


class TransportError(QuoteKeeperError):
    """The remote source could not be reached or answered with an error."""


class PersistenceReadError(QuoteKeeperError):
    """The persisted snapshot is missing or unreadable."""
