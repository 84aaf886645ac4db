"""
Shared fixtures: an in-process ledger, content store and local key storage.
"""

import pytest

from veridy.adapters import InMemoryContentStore, InMemoryKeyValueStore, InMemoryLedger
from veridy.config import NETWORKS
from veridy.coordinator import EscrowCoordinator
from veridy.key_store import SymmetricKeyStore
from veridy.keys import KeyManager
from veridy.models import ListingMetadata

PRICE = 5_000_000  # 5 USDT


@pytest.fixture
def local_store():
    return InMemoryKeyValueStore()


@pytest.fixture
def key_manager(local_store):
    return KeyManager(local_store)


@pytest.fixture
def key_store(local_store):
    return SymmetricKeyStore(local_store)


@pytest.fixture
def ledger():
    return InMemoryLedger(clock=lambda: 1_700_000_000)


@pytest.fixture
def content_store():
    return InMemoryContentStore()


@pytest.fixture
def coordinator(ledger, content_store, key_store):
    return EscrowCoordinator(ledger, content_store, key_store, NETWORKS["sepolia"])


@pytest.fixture
def seller(key_manager):
    return key_manager.participant("0xSeller")


@pytest.fixture
def buyer(key_manager, ledger):
    participant = key_manager.participant("0xBuyer")
    ledger.mint(participant.address, 3 * PRICE)
    return participant


@pytest.fixture
def other_buyer(key_manager, ledger):
    participant = key_manager.participant("0xOtherBuyer")
    ledger.mint(participant.address, 3 * PRICE)
    return participant


@pytest.fixture
def metadata():
    return ListingMetadata(title="Greeting", description="A short text", file_type="txt")
