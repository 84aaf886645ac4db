"""
Seller-side retention of content keys.

A content key must outlive the seller's session for as long as its listing
is unsold: losing it makes the sale unfulfillable. Keys are stored hex
encoded under ``symkey:<owner>:<listing_id>`` in any key-value backend, so
a file-backed store survives restarts.
"""

import logging
from typing import Optional

from .exceptions import KeyNotFoundError, LengthMismatchError
from .models import SYMMETRIC_KEY_SIZE
from .ports.key_value_store import IKeyValueStorePort

logger = logging.getLogger(__name__)


class SymmetricKeyStore:
    """Maps (seller, listing id) to that listing's content key."""

    NAMESPACE = "symkey"

    def __init__(self, backend: IKeyValueStorePort):
        self._backend = backend

    def _prefix(self, owner: str) -> str:
        return f"{self.NAMESPACE}:{owner.lower()}:"

    def _slot(self, owner: str, listing_id: int | str) -> str:
        return f"{self._prefix(owner)}{listing_id}"

    def put(self, owner: str, listing_id: int | str, key: bytes) -> None:
        if len(key) != SYMMETRIC_KEY_SIZE:
            raise LengthMismatchError(
                f"Symmetric key must be {SYMMETRIC_KEY_SIZE} bytes, got {len(key)}",
                expected=SYMMETRIC_KEY_SIZE,
                actual=len(key),
            )
        self._backend.put(self._slot(owner, listing_id), key.hex().encode())
        logger.debug(f"Retained content key for listing {listing_id}")

    def get(self, owner: str, listing_id: int | str) -> Optional[bytes]:
        raw = self._backend.get(self._slot(owner, listing_id))
        if raw is None:
            return None
        return bytes.fromhex(raw.decode())

    def require(self, owner: str, listing_id: int | str) -> bytes:
        """Return the key or raise KeyNotFoundError."""
        key = self.get(owner, listing_id)
        if key is None:
            raise KeyNotFoundError(listing_id=int(listing_id), owner=owner)
        return key

    def discard(self, owner: str, listing_id: int | str) -> None:
        self._backend.delete(self._slot(owner, listing_id))
        logger.debug(f"Discarded content key for listing {listing_id}")

    def listing_ids(self, owner: str) -> list[int]:
        prefix = self._prefix(owner)
        return sorted(int(slot[len(prefix):]) for slot in self._backend.keys(prefix))
