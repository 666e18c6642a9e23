from .engine import SyncEngine, SyncFailure, SyncState, SyncSummary
from .remote import RemoteQuoteClient
from .scheduler import PeriodicSync

__all__ = [
    "PeriodicSync",
    "RemoteQuoteClient",
    "SyncEngine",
    "SyncFailure",
    "SyncState",
    "SyncSummary",
]
