from .file_store import JsonFileKeyValueStore
from .ipfs import PinataContentStore
from .memory_ledger import InMemoryLedger
from .memory_store import InMemoryContentStore, InMemoryKeyValueStore

__all__ = [
    "InMemoryContentStore",
    "InMemoryKeyValueStore",
    "InMemoryLedger",
    "JsonFileKeyValueStore",
    "PinataContentStore",
]
