"""
Tests for wrapping content keys with an ECDH secret.
"""

import pytest

from veridy.adapters import InMemoryKeyValueStore
from veridy.cipher import decrypt, encrypt, generate_symmetric_key
from veridy.exceptions import IntegrityError, InvalidKeyError, LengthMismatchError
from veridy.keys import KeyManager, derive_shared_secret, generate_key_pair
from veridy.wrapping import KeyWrapper, xor_bytes


class TestXor:
    def test_xor(self):
        assert xor_bytes(b"\x0f\xf0", b"\xff\xff") == b"\xf0\x0f"

    def test_self_inverse(self):
        a = generate_symmetric_key()
        b = generate_symmetric_key()

        assert xor_bytes(xor_bytes(a, b), b) == a

    def test_length_mismatch(self):
        with pytest.raises(LengthMismatchError):
            xor_bytes(b"\x00" * 32, b"\x00" * 31)


class TestKeyWrapper:
    """Tests for wrap/unwrap symmetry and failure modes."""

    def test_wrap_unwrap_symmetry(self):
        seller = generate_key_pair()
        buyer = generate_key_pair()
        key = generate_symmetric_key()
        wrapper = KeyWrapper()

        wrapped = wrapper.wrap(key, seller.private_key, buyer.public_key)
        recovered = wrapper.unwrap(wrapped, buyer.private_key, seller.public_key)

        assert recovered == key
        assert len(wrapped) == 32

    def test_wrapped_key_is_secret_xor_key(self):
        seller = generate_key_pair()
        buyer = generate_key_pair()
        key = generate_symmetric_key()

        wrapped = KeyWrapper().wrap(key, seller.private_key, buyer.public_key)

        assert wrapped == xor_bytes(derive_shared_secret(seller.private_key, buyer.public_key), key)
        assert wrapped != key

    def test_third_party_cannot_recover_key(self):
        """An eavesdropper with the wrapped key and both public keys gets a different value."""
        seller = generate_key_pair()
        buyer = generate_key_pair()
        eve = generate_key_pair()
        key = generate_symmetric_key()
        blob = encrypt(b"secret file", key)
        wrapper = KeyWrapper()

        wrapped = wrapper.wrap(key, seller.private_key, buyer.public_key)
        guess = wrapper.unwrap(wrapped, eve.private_key, seller.public_key)

        assert guess != key
        with pytest.raises(IntegrityError):
            decrypt(blob, guess)

    def test_uses_injected_key_manager(self):
        manager = KeyManager(InMemoryKeyValueStore())
        seller = manager.ensure_key_pair("0xSeller")
        buyer = manager.ensure_key_pair("0xBuyer")
        key = generate_symmetric_key()
        wrapper = KeyWrapper(manager)

        wrapped = wrapper.wrap(key, seller.private_key, buyer.public_key)

        assert wrapper.unwrap(wrapped, buyer.private_key, seller.public_key) == key

    def test_wrap_rejects_short_key(self):
        seller = generate_key_pair()
        buyer = generate_key_pair()

        with pytest.raises(LengthMismatchError):
            KeyWrapper().wrap(b"\x01" * 16, seller.private_key, buyer.public_key)

    def test_unwrap_rejects_short_wrapped_key(self):
        seller = generate_key_pair()
        buyer = generate_key_pair()

        with pytest.raises(LengthMismatchError):
            KeyWrapper().unwrap(b"\x01" * 31, buyer.private_key, seller.public_key)

    def test_malformed_peer_key(self):
        seller = generate_key_pair()

        with pytest.raises(InvalidKeyError):
            KeyWrapper().wrap(generate_symmetric_key(), seller.private_key, b"\x04" * 10)


class TestPadReuse:
    """The ECDH pad is fixed per (seller, buyer) pair, not per listing."""

    def test_same_pair_wraps_xor_to_key_difference(self):
        seller = generate_key_pair()
        buyer = generate_key_pair()
        k1 = generate_symmetric_key()
        k2 = generate_symmetric_key()
        wrapper = KeyWrapper()

        w1 = wrapper.wrap(k1, seller.private_key, buyer.public_key)
        w2 = wrapper.wrap(k2, seller.private_key, buyer.public_key)

        assert xor_bytes(w1, w2) == xor_bytes(k1, k2)

    def test_different_buyers_get_different_pads(self):
        seller = generate_key_pair()
        key = generate_symmetric_key()
        wrapper = KeyWrapper()

        w1 = wrapper.wrap(key, seller.private_key, generate_key_pair().public_key)
        w2 = wrapper.wrap(key, seller.private_key, generate_key_pair().public_key)

        assert w1 != w2
