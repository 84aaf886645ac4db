"""
ECDH key management.

This module provides:
- P-256 key pair generation
- Per-identity key pair provisioning backed by a local key-value store
- Raw ECDH shared secret derivation

Public keys are uncompressed SEC1 points (65 bytes), private keys are the
raw 32-byte scalar. The shared secret is the 32-byte x-coordinate of the
ECDH point, the same value WebCrypto's ``deriveBits(256)`` yields, so both
parties agree on it whatever stack they run.
"""

import json
import logging
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from .exceptions import InvalidKeyError, KeyGenerationError
from .models import KeyPair, Participant
from .ports.key_value_store import IKeyValueStorePort

logger = logging.getLogger(__name__)

CURVE = ec.SECP256R1()
PUBLIC_KEY_SIZE = 65
PRIVATE_KEY_SIZE = 32
SHARED_SECRET_SIZE = 32


def generate_key_pair() -> KeyPair:
    """
    Generate a P-256 key pair for ECDH key agreement.

    Returns:
        KeyPair with raw private scalar and uncompressed public point

    Raises:
        KeyGenerationError: If the backend or randomness source fails
    """
    try:
        private_key = ec.generate_private_key(CURVE)
    except (OSError, UnsupportedAlgorithm) as e:
        raise KeyGenerationError(f"Failed to generate P-256 key pair: {e}", cause=e)

    private_bytes = private_key.private_numbers().private_value.to_bytes(PRIVATE_KEY_SIZE, "big")
    public_bytes = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.X962,
        format=serialization.PublicFormat.UncompressedPoint,
    )
    return KeyPair(private_key=private_bytes, public_key=public_bytes)


def load_private_key(private_key: bytes) -> ec.EllipticCurvePrivateKey:
    if len(private_key) != PRIVATE_KEY_SIZE:
        raise InvalidKeyError(f"Private key must be {PRIVATE_KEY_SIZE} bytes, got {len(private_key)}")
    try:
        return ec.derive_private_key(int.from_bytes(private_key, "big"), CURVE)
    except ValueError as e:
        raise InvalidKeyError(f"Private key is not a valid P-256 scalar: {e}", cause=e)


def load_public_key(public_key: bytes) -> ec.EllipticCurvePublicKey:
    if len(public_key) != PUBLIC_KEY_SIZE:
        raise InvalidKeyError(f"Public key must be {PUBLIC_KEY_SIZE} bytes, got {len(public_key)}")
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(CURVE, public_key)
    except ValueError as e:
        raise InvalidKeyError(f"Public key is not a point on P-256: {e}", cause=e)


def derive_shared_secret(local_private_key: bytes, remote_public_key: bytes) -> bytes:
    """
    Derive the ECDH shared secret.

    Args:
        local_private_key: Our raw P-256 private scalar
        remote_public_key: Peer's uncompressed P-256 public point

    Returns:
        32-byte shared secret, identical from either side of the exchange

    Raises:
        InvalidKeyError: If either key is malformed or off-curve
    """
    ours = load_private_key(local_private_key)
    theirs = load_public_key(remote_public_key)
    try:
        return ours.exchange(ec.ECDH(), theirs)
    except ValueError as e:
        raise InvalidKeyError(f"Key agreement failed: {e}", cause=e)


class KeyManager:
    """
    Provisions and retrieves ECDH key pairs per wallet identity.

    A pair is created on first use and persisted in the injected store for
    the identity's lifetime. Only the public half is ever logged.

    Usage:
        manager = KeyManager(JsonFileKeyValueStore(config.keys_path))
        keys = manager.ensure_key_pair("0xSeller")
        secret = manager.derive_shared_secret(keys.private_key, buyer_public_key)
    """

    NAMESPACE = "ecdh"

    def __init__(self, store: IKeyValueStorePort):
        self._store = store

    def _slot(self, identity: str) -> str:
        return f"{self.NAMESPACE}:{identity.lower()}"

    def generate_key_pair(self) -> KeyPair:
        return generate_key_pair()

    def get_key_pair(self, identity: str) -> Optional[KeyPair]:
        """Return the identity's persisted key pair, if any."""
        raw = self._store.get(self._slot(identity))
        if raw is None:
            return None
        return KeyPair.model_validate(json.loads(raw))

    def ensure_key_pair(self, identity: str) -> KeyPair:
        """
        Return the identity's key pair, generating and persisting it if needed.

        Repeated calls for the same identity return the same pair.
        """
        existing = self.get_key_pair(identity)
        if existing is not None:
            return existing

        keys = generate_key_pair()
        self._store.put(self._slot(identity), json.dumps(keys.model_dump()).encode())
        logger.info(f"Provisioned ECDH key pair for {identity} ({keys.public_key_short})")
        return keys

    def participant(self, identity: str) -> Participant:
        """Bundle an identity with its (ensured) key pair."""
        return Participant(address=identity, keys=self.ensure_key_pair(identity))

    def forget(self, identity: str) -> None:
        """Drop the identity's persisted key pair."""
        self._store.delete(self._slot(identity))
        logger.info(f"Removed ECDH key pair for {identity}")

    def derive_shared_secret(self, local_private_key: bytes, remote_public_key: bytes) -> bytes:
        return derive_shared_secret(local_private_key, remote_public_key)
