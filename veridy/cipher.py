"""
Content encryption and integrity.

Blobs are AES-256-GCM encrypted with a fresh 96-bit nonce per call. The
nonce is prepended so a blob decrypts on its own:

    nonce (12) || ciphertext || tag (16)

The content digest is SHA-256 over the plaintext and is what a listing
publishes; it can only be checked after decryption.
"""

import hashlib
import hmac
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .exceptions import IntegrityError, KeyGenerationError, LengthMismatchError
from .models import SYMMETRIC_KEY_SIZE

NONCE_SIZE = 12
TAG_SIZE = 16


def generate_symmetric_key() -> bytes:
    """Return 32 cryptographically secure random bytes."""
    try:
        return os.urandom(SYMMETRIC_KEY_SIZE)
    except NotImplementedError as e:
        raise KeyGenerationError("No secure randomness source available", cause=e)


def digest(data: bytes) -> str:
    """
    Calculate SHA-256 hash of data.

    Returns:
        Hex-encoded hash string
    """
    return hashlib.sha256(data).hexdigest()


def _check_key(key: bytes) -> None:
    if len(key) != SYMMETRIC_KEY_SIZE:
        raise LengthMismatchError(
            f"Symmetric key must be {SYMMETRIC_KEY_SIZE} bytes, got {len(key)}",
            expected=SYMMETRIC_KEY_SIZE,
            actual=len(key),
        )


def encrypt(plaintext: bytes, key: bytes) -> bytes:
    """
    Encrypt content with AES-256-GCM.

    Args:
        plaintext: Content to encrypt
        key: 32-byte symmetric key

    Returns:
        nonce || ciphertext || tag
    """
    _check_key(key)
    try:
        nonce = os.urandom(NONCE_SIZE)
    except NotImplementedError as e:
        raise KeyGenerationError("No secure randomness source available", cause=e)
    return nonce + AESGCM(key).encrypt(nonce, plaintext, None)


def decrypt(blob: bytes, key: bytes) -> bytes:
    """
    Decrypt a blob produced by :func:`encrypt`.

    Raises:
        IntegrityError: If authentication fails (wrong key, corruption,
            tampering) or the blob is too short to hold a nonce and tag
    """
    _check_key(key)
    if len(blob) < NONCE_SIZE + TAG_SIZE:
        raise IntegrityError(f"Encrypted blob too short ({len(blob)} bytes)")

    nonce, body = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
    try:
        return AESGCM(key).decrypt(nonce, body, None)
    except InvalidTag as e:
        raise IntegrityError("Authentication tag mismatch: wrong key or corrupted content", cause=e)


class ContentCipher:
    """Stateless facade over the content primitives, injectable into the coordinator."""

    def generate_symmetric_key(self) -> bytes:
        return generate_symmetric_key()

    def digest(self, data: bytes) -> str:
        return digest(data)

    def encrypt(self, plaintext: bytes, key: bytes) -> bytes:
        return encrypt(plaintext, key)

    def decrypt(self, blob: bytes, key: bytes) -> bytes:
        return decrypt(blob, key)

    def verify(self, plaintext: bytes, expected_digest: str) -> bool:
        """Check plaintext against a published digest in constant time."""
        return hmac.compare_digest(digest(plaintext), expected_digest.lower())
