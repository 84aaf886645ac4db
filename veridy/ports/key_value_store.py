from abc import ABC, abstractmethod


class IKeyValueStorePort(ABC):
    """Port for local Key-Value storage.
    Holds ECDH key pairs and per-listing content keys; never shared.
    """

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """Retrieve a value by key. Returns None if not found."""
        ...

    @abstractmethod
    def put(self, key: str, value: bytes) -> None:
        """Store a value by key. Overwrites existing value."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete a key-value pair. Missing keys are ignored."""
        ...

    @abstractmethod
    def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with prefix."""
        ...
