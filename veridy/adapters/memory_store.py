import hashlib

from veridy.exceptions import ContentStoreError
from veridy.ports.content_store import IContentStorePort
from veridy.ports.key_value_store import IKeyValueStorePort


class InMemoryKeyValueStore(IKeyValueStorePort):
    def __init__(self) -> None:
        self.store: dict[str, bytes] = {}

    def get(self, key: str) -> bytes | None:
        return self.store.get(key)

    def put(self, key: str, value: bytes) -> None:
        self.store[key] = value

    def delete(self, key: str) -> None:
        if key in self.store:
            del self.store[key]

    def keys(self, prefix: str = "") -> list[str]:
        return [k for k in self.store if k.startswith(prefix)]


class InMemoryContentStore(IContentStorePort):
    """Locators are the SHA-256 hex of the stored bytes."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}

    async def put(self, data: bytes) -> str:
        locator = hashlib.sha256(data).hexdigest()
        self.blobs[locator] = bytes(data)
        return locator

    async def get(self, locator: str) -> bytes:
        try:
            return self.blobs[locator]
        except KeyError:
            raise ContentStoreError(f"No content for locator {locator}", locator=locator)
