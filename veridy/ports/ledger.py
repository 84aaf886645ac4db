from abc import ABC, abstractmethod

from veridy.models import Listing, Purchase


class ILedgerPort(ABC):
    """Port for the append-only marketplace ledger.

    Every write names its ``sender``: the wallet address the call is made
    from. The ledger is the sole source of truth for listing and purchase
    state; it serialises concurrent writes against the same record and
    reports rejections as LedgerRejectedError subclasses.
    """

    # Writes

    @abstractmethod
    async def create_listing(
        self,
        sender: str,
        seller_public_key: bytes,
        content_hash: str,
        content_locator: str,
        title: str,
        description: str,
        file_type: str,
        file_size_bytes: int,
        price: int,
    ) -> int:
        """Publish a listing and return its id."""
        ...

    @abstractmethod
    async def update_listing(
        self, sender: str, listing_id: int, title: str, description: str, price: int
    ) -> None:
        """Change the descriptive fields and price of an unsold listing."""
        ...

    @abstractmethod
    async def deactivate_listing(self, sender: str, listing_id: int) -> None:
        """Hide a listing from purchase. Ignored once sold."""
        ...

    @abstractmethod
    async def reactivate_listing(self, sender: str, listing_id: int) -> None:
        """Make a deactivated listing purchasable again. Ignored once sold."""
        ...

    @abstractmethod
    async def purchase_listing(self, sender: str, listing_id: int, buyer_public_key: bytes) -> int:
        """Escrow the listing price from sender and return the purchase id.

        Requires a prior allowance of at least the price.
        """
        ...

    @abstractmethod
    async def accept_purchase(self, sender: str, purchase_id: int, wrapped_key: bytes) -> None:
        """Record the wrapped key, release escrow to the seller, mark the listing sold."""
        ...

    @abstractmethod
    async def cancel_purchase(self, sender: str, purchase_id: int) -> None:
        """Refund an escrowed purchase to its buyer."""
        ...

    # Escrow token

    @abstractmethod
    async def approve(self, sender: str, amount: int) -> None:
        """Allow the marketplace to pull up to amount from sender."""
        ...

    @abstractmethod
    async def allowance(self, owner: str) -> int:
        ...

    @abstractmethod
    async def balance_of(self, account: str) -> int:
        ...

    # Reads

    @abstractmethod
    async def get_listing(self, listing_id: int) -> Listing:
        ...

    @abstractmethod
    async def get_purchase(self, purchase_id: int) -> Purchase:
        ...

    @abstractmethod
    async def get_active_listings(self, offset: int = 0, limit: int = 50) -> list[Listing]:
        ...

    @abstractmethod
    async def get_listings_by_seller(self, seller: str) -> list[Listing]:
        ...

    @abstractmethod
    async def get_purchases_by_buyer(self, buyer: str) -> list[Purchase]:
        ...

    @abstractmethod
    async def get_pending_purchases_for_seller(self, seller: str) -> list[Purchase]:
        ...

    @abstractmethod
    async def get_completed_purchases_by_buyer(self, buyer: str) -> list[Purchase]:
        ...

    @abstractmethod
    async def has_buyer_purchased_listing(self, listing_id: int, buyer: str) -> tuple[bool, int]:
        """Return (accepted, purchase_id) for the buyer's accepted purchase, if any."""
        ...

    @abstractmethod
    async def get_total_listings(self) -> int:
        ...

    @abstractmethod
    async def get_total_purchases(self) -> int:
        ...
