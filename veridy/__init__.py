"""
Veridy - trustless sale of encrypted content over an escrow ledger.

A seller encrypts a file under a fresh content key and lists it; a buyer
escrows the price; the seller publishes the content key wrapped with an
ECDH secret only the buyer can recompute, which releases the escrow. The
key never exists in plaintext on the ledger, in transit or at the store.

Quick Start:
    from veridy import EscrowCoordinator, KeyManager, ListingMetadata, NETWORKS
    from veridy.adapters import InMemoryContentStore, InMemoryKeyValueStore, InMemoryLedger
    from veridy.key_store import SymmetricKeyStore

    local = InMemoryKeyValueStore()
    keys = KeyManager(local)
    coordinator = EscrowCoordinator(
        InMemoryLedger(), InMemoryContentStore(), SymmetricKeyStore(local), NETWORKS["sepolia"]
    )

    seller = keys.participant("0xSeller")
    listing = await coordinator.publish_content(
        seller, b"hello world", ListingMetadata(title="Greeting", file_type="txt"), 5_000_000
    )
"""

from .cipher import ContentCipher
from .config import NETWORKS, NetworkConfig, VeridyConfig, get_network
from .coordinator import EscrowCoordinator
from .exceptions import (
    AlreadyAcceptedError,
    ContentStoreError,
    CryptoError,
    DuplicatePurchaseError,
    InsufficientFundsError,
    IntegrityError,
    IntegrityWarning,
    InvalidKeyError,
    KeyGenerationError,
    KeyNotFoundError,
    KeyRetentionError,
    LedgerRejectedError,
    LengthMismatchError,
    ListingMismatchError,
    NotPendingError,
    SelfPurchaseError,
    VeridyError,
    WrappedKeyNotSetError,
)
from .key_store import SymmetricKeyStore
from .keys import KeyManager
from .models import (
    KeyPair,
    Listing,
    ListingMetadata,
    ListingStatus,
    Order,
    Participant,
    Purchase,
    PurchaseStatus,
    ZERO_WRAPPED_KEY,
)
from .wrapping import KeyWrapper

__version__ = "1.0.0"

__all__ = [
    # Core
    "KeyManager",
    "ContentCipher",
    "KeyWrapper",
    "EscrowCoordinator",
    "SymmetricKeyStore",
    # Config
    "VeridyConfig",
    "NetworkConfig",
    "NETWORKS",
    "get_network",
    # Models
    "KeyPair",
    "Participant",
    "Listing",
    "ListingMetadata",
    "ListingStatus",
    "Order",
    "Purchase",
    "PurchaseStatus",
    "ZERO_WRAPPED_KEY",
    # Exceptions
    "VeridyError",
    "CryptoError",
    "KeyGenerationError",
    "InvalidKeyError",
    "LengthMismatchError",
    "IntegrityError",
    "IntegrityWarning",
    "KeyNotFoundError",
    "KeyRetentionError",
    "ListingMismatchError",
    "LedgerRejectedError",
    "SelfPurchaseError",
    "DuplicatePurchaseError",
    "AlreadyAcceptedError",
    "NotPendingError",
    "WrappedKeyNotSetError",
    "InsufficientFundsError",
    "ContentStoreError",
    # Version
    "__version__",
]
