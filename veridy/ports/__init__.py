from .content_store import IContentStorePort
from .key_value_store import IKeyValueStorePort
from .ledger import ILedgerPort

__all__ = ["IContentStorePort", "IKeyValueStorePort", "ILedgerPort"]
