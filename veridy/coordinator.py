"""
Escrow coordination.

Drives the listing and purchase lifecycle against the ledger and sequences
the cryptographic steps around each transition:

    Listing:  ACTIVE <-> INACTIVE,  ACTIVE -> SOLD (terminal)
    Purchase: ESCROWED -> ACCEPTED | CANCELLED (both terminal)

The ledger is the only source of truth. Every write is followed by a read,
and a transition is reported only once the ledger shows it.
"""

import logging
import warnings
from typing import Optional

from .cipher import ContentCipher
from .config import NetworkConfig
from .exceptions import (
    AlreadyAcceptedError,
    IntegrityWarning,
    KeyNotFoundError,
    KeyRetentionError,
    LedgerRejectedError,
    ListingMismatchError,
    NotAuthorizedError,
    NotPendingError,
    VeridyError,
    WrappedKeyNotSetError,
)
from .key_store import SymmetricKeyStore
from .models import (
    Listing,
    ListingMetadata,
    Order,
    Participant,
    Purchase,
    PurchaseStatus,
    from_base_units,
    to_base_units,
)
from .ports.content_store import IContentStorePort
from .ports.ledger import ILedgerPort
from .wrapping import KeyWrapper

logger = logging.getLogger(__name__)


def _same(a: str, b: str) -> bool:
    return a.lower() == b.lower()


class EscrowCoordinator:
    """
    Seller and buyer operations for one ledger deployment.

    The content-key store is injected: the seller side must keep each
    listing's key until that listing is sold, across sessions, or the
    sale can never be fulfilled.

    Every identity has one static key pair, so all wraps from one seller
    to one buyer share the same ECDH pad. If that buyer purchases two of
    the seller's listings, the two wrapped keys XOR to K1 ^ K2. Each
    purchase is wrapped exactly once here, but the pad is only one-time
    per (seller, buyer) pair, not per listing.

    Usage:
        coordinator = EscrowCoordinator(ledger, content_store, key_store, NETWORKS["arbitrum"])

        # Seller
        listing = await coordinator.publish_content(seller, data, metadata, price)

        # Buyer
        purchase = await coordinator.request_purchase(buyer, listing.id)

        # Seller
        await coordinator.accept_purchase(seller, purchase)

        # Buyer
        plaintext = await coordinator.fulfill_purchase(buyer, purchase, listing)
    """

    def __init__(
        self,
        ledger: ILedgerPort,
        content_store: IContentStorePort,
        key_store: SymmetricKeyStore,
        network: NetworkConfig,
        cipher: Optional[ContentCipher] = None,
        wrapper: Optional[KeyWrapper] = None,
    ):
        self.ledger = ledger
        self.content_store = content_store
        self.key_store = key_store
        self.network = network
        self.cipher = cipher or ContentCipher()
        self.wrapper = wrapper or KeyWrapper()

    def __repr__(self) -> str:
        return f"EscrowCoordinator(network={self.network.name}, chain_id={self.network.chain_id})"

    # Units

    def to_units(self, amount: str) -> int:
        """Convert a human price ("5", "0.25") to base units of the escrow token."""
        return to_base_units(amount, self.network.token_decimals)

    def format_units(self, units: int) -> str:
        return f"{from_base_units(units, self.network.token_decimals)} {self.network.token_symbol}"

    # Seller operations

    async def create_listing(
        self,
        seller: Participant,
        content_digest: str,
        content_locator: str,
        metadata: ListingMetadata,
        price: int,
    ) -> Listing:
        """
        Publish a listing for content that is already encrypted and stored.

        Raises:
            LedgerRejectedError: If the ledger refuses the listing (e.g. bad price)
        """
        listing_id = await self._submit_listing(seller, content_digest, content_locator, metadata, price)
        return await self.ledger.get_listing(listing_id)

    async def _submit_listing(
        self,
        seller: Participant,
        content_digest: str,
        content_locator: str,
        metadata: ListingMetadata,
        price: int,
    ) -> int:
        listing_id = await self.ledger.create_listing(
            seller.address,
            seller.public_key,
            content_digest,
            content_locator,
            metadata.title,
            metadata.description,
            metadata.file_type,
            metadata.file_size_bytes,
            price,
        )
        logger.info(
            f"[{self.network.name}] Listing {listing_id} created by {seller.address} "
            f"for {self.format_units(price)}"
        )
        return listing_id

    async def publish_content(
        self,
        seller: Participant,
        plaintext: bytes,
        metadata: ListingMetadata,
        price: int,
    ) -> Listing:
        """
        Encrypt, store and list content in one step.

        A fresh content key is generated for the listing and retained in the
        key store as soon as the ledger has assigned the listing id.

        Raises:
            KeyRetentionError: If the listing was created but the key store
                failed; the exception carries the key so the caller can
                still keep it
        """
        key = self.cipher.generate_symmetric_key()
        content_digest = self.cipher.digest(plaintext)
        blob = self.cipher.encrypt(plaintext, key)
        locator = await self.content_store.put(blob)
        logger.debug(f"Stored {len(blob)} encrypted bytes at {locator}")

        if not metadata.file_size_bytes:
            metadata = metadata.model_copy(update={"file_size_bytes": len(plaintext)})

        listing_id = await self._submit_listing(seller, content_digest, locator, metadata, price)
        try:
            self.key_store.put(seller.address, listing_id, key)
        except (OSError, VeridyError) as e:
            logger.error(f"Listing {listing_id} is live but its content key was not retained: {e}")
            raise KeyRetentionError(listing_id, key, cause=e)
        return await self.ledger.get_listing(listing_id)

    async def update_listing(
        self, seller: Participant, listing_id: int, title: str, description: str, price: int
    ) -> Listing:
        await self.ledger.update_listing(seller.address, listing_id, title, description, price)
        logger.info(f"[{self.network.name}] Listing {listing_id} updated")
        return await self.ledger.get_listing(listing_id)

    async def deactivate_listing(self, seller: Participant, listing_id: int) -> Listing:
        await self.ledger.deactivate_listing(seller.address, listing_id)
        listing = await self.ledger.get_listing(listing_id)
        logger.info(f"[{self.network.name}] Listing {listing_id} is now {listing.status.value}")
        return listing

    async def reactivate_listing(self, seller: Participant, listing_id: int) -> Listing:
        await self.ledger.reactivate_listing(seller.address, listing_id)
        listing = await self.ledger.get_listing(listing_id)
        logger.info(f"[{self.network.name}] Listing {listing_id} is now {listing.status.value}")
        return listing

    async def accept_purchase(
        self,
        seller: Participant,
        purchase: Purchase,
        symmetric_key: Optional[bytes] = None,
    ) -> Purchase:
        """
        Deliver the content key to the buyer and release escrow.

        The key is wrapped against the buyer public key the ledger holds for
        this purchase. When symmetric_key is omitted it is taken from the
        key store; it is discarded once the ledger reports the listing sold.

        Raises:
            AlreadyAcceptedError: If the listing was already sold
            NotPendingError: If the purchase is no longer escrowed
            KeyNotFoundError: If the content key is no longer held locally
        """
        current = await self.ledger.get_purchase(purchase.id)
        listing = await self.ledger.get_listing(current.listing_id)

        if not _same(listing.seller, seller.address):
            raise NotAuthorizedError(
                f"{seller.address} is not the seller of listing {listing.id}",
                details={"listing_id": listing.id},
            )
        if listing.sold:
            raise AlreadyAcceptedError(listing.id)
        if not current.is_pending:
            raise NotPendingError(current.id, current.status.value)

        if symmetric_key is None:
            try:
                symmetric_key = self.key_store.require(seller.address, listing.id)
            except KeyNotFoundError:
                # A concurrent accept may have sold the listing and dropped the key
                if (await self.ledger.get_listing(listing.id)).sold:
                    raise AlreadyAcceptedError(listing.id)
                raise

        wrapped = self.wrapper.wrap(symmetric_key, seller.private_key, current.buyer_public_key)
        await self.ledger.accept_purchase(seller.address, current.id, wrapped)

        updated = await self.ledger.get_purchase(current.id)
        sold = await self.ledger.get_listing(listing.id)
        if updated.status is not PurchaseStatus.ACCEPTED or updated.wrapped_key != wrapped or not sold.sold:
            raise LedgerRejectedError(
                f"Ledger did not record acceptance of purchase {current.id}",
                details={"purchase_id": current.id, "status": updated.status.value},
            )

        self.key_store.discard(seller.address, listing.id)
        logger.info(
            f"[{self.network.name}] Purchase {current.id} accepted; listing {listing.id} sold, "
            f"{self.format_units(updated.amount)} released to seller"
        )
        return updated

    def discard_listing_key(self, seller: Participant, listing_id: int) -> None:
        """Forget a listing's content key. The listing can no longer be sold."""
        self.key_store.discard(seller.address, listing_id)
        logger.warning(f"Content key for listing {listing_id} discarded by {seller.address}")

    # Buyer operations

    async def request_purchase(self, buyer: Participant, listing_id: int) -> Purchase:
        """
        Escrow the listing price and register the buyer's public key.

        Raises:
            SelfPurchaseError: If the buyer is the seller
            DuplicatePurchaseError: If the buyer already has a pending purchase
            InsufficientFundsError: If escrow cannot be funded
        """
        listing = await self.ledger.get_listing(listing_id)
        await self._ensure_allowance(buyer, listing.price)

        purchase_id = await self.ledger.purchase_listing(buyer.address, listing_id, buyer.public_key)
        purchase = await self.ledger.get_purchase(purchase_id)
        if purchase.status is not PurchaseStatus.ESCROWED or not _same(purchase.buyer, buyer.address):
            raise LedgerRejectedError(
                f"Ledger did not record purchase {purchase_id} as escrowed",
                details={"purchase_id": purchase_id},
            )

        logger.info(
            f"[{self.network.name}] Purchase {purchase_id} on listing {listing_id}: "
            f"{self.format_units(purchase.amount)} escrowed"
        )
        return purchase

    async def _ensure_allowance(self, buyer: Participant, amount: int) -> None:
        current = await self.ledger.allowance(buyer.address)
        if current >= amount:
            return
        logger.debug(f"Approving {amount} for escrow (current allowance {current})")
        await self.ledger.approve(buyer.address, amount)

    async def cancel_purchase(self, buyer: Participant, purchase: Purchase) -> Purchase:
        """
        Withdraw a pending purchase and refund the escrow.

        Raises:
            NotPendingError: If the purchase is already accepted or cancelled
        """
        current = await self.ledger.get_purchase(purchase.id)
        if not _same(current.buyer, buyer.address):
            raise NotAuthorizedError(
                f"{buyer.address} is not the buyer of purchase {current.id}",
                details={"purchase_id": current.id},
            )
        if not current.is_pending:
            raise NotPendingError(current.id, current.status.value)

        await self.ledger.cancel_purchase(buyer.address, current.id)

        updated = await self.ledger.get_purchase(current.id)
        if updated.status is not PurchaseStatus.CANCELLED:
            raise LedgerRejectedError(
                f"Ledger did not record cancellation of purchase {current.id}",
                details={"purchase_id": current.id, "status": updated.status.value},
            )
        logger.info(
            f"[{self.network.name}] Purchase {current.id} cancelled; "
            f"{self.format_units(updated.amount)} refunded"
        )
        return updated

    async def fulfill_purchase(
        self,
        buyer: Participant,
        purchase: Purchase,
        listing: Optional[Listing] = None,
    ) -> bytes:
        """
        Fetch, unwrap, decrypt and verify purchased content.

        A digest mismatch after successful decryption does not raise: the
        plaintext is returned and an IntegrityWarning is emitted, since the
        sale is already final.

        Raises:
            WrappedKeyNotSetError: If the purchase is not accepted yet
            IntegrityError: If the content does not decrypt under the recovered key
        """
        current = await self.ledger.get_purchase(purchase.id)
        if current.status is not PurchaseStatus.ACCEPTED or not current.has_wrapped_key:
            raise WrappedKeyNotSetError(current.id, current.status.value)
        if not _same(current.buyer, buyer.address):
            raise NotAuthorizedError(
                f"{buyer.address} is not the buyer of purchase {current.id}",
                details={"purchase_id": current.id},
            )

        if listing is None:
            listing = await self.ledger.get_listing(current.listing_id)
        elif listing.id != current.listing_id:
            raise ListingMismatchError(current.id, current.listing_id, listing.id)

        blob = await self.content_store.get(listing.content_locator)
        key = self.wrapper.unwrap(current.wrapped_key, buyer.private_key, listing.seller_public_key)
        plaintext = self.cipher.decrypt(blob, key)

        if not self.cipher.verify(plaintext, listing.content_hash):
            actual = self.cipher.digest(plaintext)
            logger.warning(
                f"Content hash mismatch for listing {listing.id}: "
                f"expected {listing.content_hash}, got {actual}"
            )
            warnings.warn(
                IntegrityWarning(
                    f"Content of listing {listing.id} does not match its published digest",
                    expected=listing.content_hash,
                    actual=actual,
                ),
                stacklevel=2,
            )
        else:
            logger.info(f"Purchase {current.id} fulfilled: {len(plaintext)} bytes verified")

        return plaintext

    # Reads

    async def get_listing(self, listing_id: int) -> Listing:
        return await self.ledger.get_listing(listing_id)

    async def get_purchase(self, purchase_id: int) -> Purchase:
        return await self.ledger.get_purchase(purchase_id)

    async def get_active_listings(self, offset: int = 0, limit: int = 50) -> list[Listing]:
        return await self.ledger.get_active_listings(offset, limit)

    async def get_listings_by_seller(self, seller: str) -> list[Listing]:
        return await self.ledger.get_listings_by_seller(seller)

    async def _join(self, purchases: list[Purchase]) -> list[Order]:
        listings: dict[int, Listing] = {}
        orders = []
        for purchase in purchases:
            if purchase.listing_id not in listings:
                listings[purchase.listing_id] = await self.ledger.get_listing(purchase.listing_id)
            orders.append(Order(purchase=purchase, listing=listings[purchase.listing_id]))
        return orders

    async def get_purchases_by_buyer(self, buyer: str) -> list[Order]:
        return await self._join(await self.ledger.get_purchases_by_buyer(buyer))

    async def get_pending_orders_for_seller(self, seller: str) -> list[Order]:
        return await self._join(await self.ledger.get_pending_purchases_for_seller(seller))

    async def get_completed_purchases_by_buyer(self, buyer: str) -> list[Order]:
        return await self._join(await self.ledger.get_completed_purchases_by_buyer(buyer))

    async def has_purchased(self, listing_id: int, buyer: str) -> tuple[bool, int]:
        return await self.ledger.has_buyer_purchased_listing(listing_id, buyer)
