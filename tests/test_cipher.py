"""
Tests for content encryption and integrity.
"""

import hashlib

import pytest
from unittest.mock import patch

from veridy.cipher import (
    NONCE_SIZE,
    TAG_SIZE,
    ContentCipher,
    decrypt,
    digest,
    encrypt,
    generate_symmetric_key,
)
from veridy.exceptions import IntegrityError, KeyGenerationError, LengthMismatchError


class TestDigest:
    def test_matches_sha256(self):
        assert digest(b"hello world") == hashlib.sha256(b"hello world").hexdigest()

    def test_is_deterministic(self):
        assert digest(b"data") == digest(b"data")

    def test_empty_input(self):
        assert digest(b"") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


class TestSymmetricKey:
    def test_length(self):
        assert len(generate_symmetric_key()) == 32

    def test_unique(self):
        assert generate_symmetric_key() != generate_symmetric_key()

    def test_randomness_unavailable(self):
        with patch("veridy.cipher.os.urandom", side_effect=NotImplementedError):
            with pytest.raises(KeyGenerationError):
                generate_symmetric_key()


class TestEncryption:
    """Tests for AES-256-GCM content encryption."""

    @pytest.mark.parametrize("plaintext", [b"", b"hello world", bytes(range(256)) * 40])
    def test_roundtrip(self, plaintext):
        key = generate_symmetric_key()

        assert decrypt(encrypt(plaintext, key), key) == plaintext

    def test_layout(self):
        """Output is nonce || ciphertext || tag."""
        blob = encrypt(b"hello world", generate_symmetric_key())

        assert len(blob) == NONCE_SIZE + len(b"hello world") + TAG_SIZE

    def test_fresh_nonce_per_call(self):
        key = generate_symmetric_key()

        first = encrypt(b"same", key)
        second = encrypt(b"same", key)

        assert first[:NONCE_SIZE] != second[:NONCE_SIZE]
        assert first != second

    def test_wrong_key_raises_integrity_error(self):
        blob = encrypt(b"secret", generate_symmetric_key())

        with pytest.raises(IntegrityError):
            decrypt(blob, generate_symmetric_key())

    @pytest.mark.parametrize("position", [0, NONCE_SIZE, -1])
    def test_bit_flip_raises_integrity_error(self, position):
        """Flipping one bit in nonce, body or tag is always detected."""
        key = generate_symmetric_key()
        blob = bytearray(encrypt(b"secret content", key))
        blob[position] ^= 0x01

        with pytest.raises(IntegrityError):
            decrypt(bytes(blob), key)

    def test_truncated_blob_raises_integrity_error(self):
        key = generate_symmetric_key()

        with pytest.raises(IntegrityError):
            decrypt(b"\x00" * (NONCE_SIZE + TAG_SIZE - 1), key)

    def test_short_key_rejected(self):
        with pytest.raises(LengthMismatchError) as exc:
            encrypt(b"data", b"\x00" * 16)
        assert exc.value.expected == 32
        assert exc.value.actual == 16


class TestContentCipher:
    def test_verify(self):
        cipher = ContentCipher()
        data = b"hello world"

        assert cipher.verify(data, cipher.digest(data))
        assert cipher.verify(data, cipher.digest(data).upper())
        assert not cipher.verify(b"hello there", cipher.digest(data))

    def test_facade_roundtrip(self):
        cipher = ContentCipher()
        key = cipher.generate_symmetric_key()

        assert cipher.decrypt(cipher.encrypt(b"payload", key), key) == b"payload"
