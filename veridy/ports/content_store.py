from abc import ABC, abstractmethod


class IContentStorePort(ABC):
    """Port for content-addressed blob storage.
    The same bytes always yield the same locator.
    """

    @abstractmethod
    async def put(self, data: bytes) -> str:
        """Store bytes and return their locator."""
        ...

    @abstractmethod
    async def get(self, locator: str) -> bytes:
        """Return the bytes stored under locator.

        Raises ContentStoreError if they cannot be retrieved.
        """
        ...

    async def aclose(self) -> None:
        """Release transport resources. Stores without any keep the default."""
        return None
