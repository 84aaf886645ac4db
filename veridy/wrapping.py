"""
Key wrapping for on-ledger delivery.

    wrapped = ECDH(local_priv, remote_pub) XOR content_key

The result is exactly 32 bytes so it fits the ledger's bytes32 field, and
either party can undo it with their own private key and the other's public
key. There is no nonce: a given (seller, buyer) secret acts as a one-time
pad and must wrap one content key per purchase. Two listings sold by the
same seller to the same buyer reuse that pad, so their wrapped keys XOR to
K1 ^ K2.
"""

import logging

from .exceptions import LengthMismatchError
from .keys import KeyManager, derive_shared_secret
from .models import SYMMETRIC_KEY_SIZE, WRAPPED_KEY_SIZE

logger = logging.getLogger(__name__)


def xor_bytes(a: bytes, b: bytes) -> bytes:
    """XOR two byte strings of equal length."""
    if len(a) != len(b):
        raise LengthMismatchError(
            f"Cannot XOR {len(a)} bytes with {len(b)} bytes",
            expected=len(a),
            actual=len(b),
        )
    return bytes(x ^ y for x, y in zip(a, b))


class KeyWrapper:
    """Wraps and unwraps content keys with an ECDH shared secret."""

    def __init__(self, key_manager: KeyManager | None = None):
        self._key_manager = key_manager

    def _shared_secret(self, local_private_key: bytes, remote_public_key: bytes) -> bytes:
        if self._key_manager is not None:
            return self._key_manager.derive_shared_secret(local_private_key, remote_public_key)
        return derive_shared_secret(local_private_key, remote_public_key)

    def wrap(self, symmetric_key: bytes, local_private_key: bytes, remote_public_key: bytes) -> bytes:
        """
        Wrap a content key for the holder of remote_public_key.

        Raises:
            LengthMismatchError: If the content key is not 32 bytes
            InvalidKeyError: If either ECDH key is malformed
        """
        if len(symmetric_key) != SYMMETRIC_KEY_SIZE:
            raise LengthMismatchError(
                f"Symmetric key must be {SYMMETRIC_KEY_SIZE} bytes, got {len(symmetric_key)}",
                expected=SYMMETRIC_KEY_SIZE,
                actual=len(symmetric_key),
            )
        secret = self._shared_secret(local_private_key, remote_public_key)
        wrapped = xor_bytes(secret, symmetric_key)
        logger.debug(f"Wrapped content key for peer {remote_public_key.hex()[:16]}...")
        return wrapped

    def unwrap(self, wrapped_key: bytes, local_private_key: bytes, remote_public_key: bytes) -> bytes:
        """
        Recover a content key wrapped by the holder of remote_public_key.

        A wrong key pair does not fail here; it yields a different 32-byte
        value, which then fails authenticated decryption.
        """
        if len(wrapped_key) != WRAPPED_KEY_SIZE:
            raise LengthMismatchError(
                f"Wrapped key must be {WRAPPED_KEY_SIZE} bytes, got {len(wrapped_key)}",
                expected=WRAPPED_KEY_SIZE,
                actual=len(wrapped_key),
            )
        secret = self._shared_secret(local_private_key, remote_public_key)
        return xor_bytes(secret, wrapped_key)
