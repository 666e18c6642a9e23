from .persistence import JsonFileKeyValueStore, KeyValueStore, MemoryKeyValueStore
from .store import QuoteStore

__all__ = ["JsonFileKeyValueStore", "KeyValueStore", "MemoryKeyValueStore", "QuoteStore"]
