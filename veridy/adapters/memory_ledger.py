"""
In-process marketplace ledger.

Implements the full ledger contract surface, escrow token included, for
local simulation and tests. Every write runs under one asyncio.Lock, so
concurrent purchase/accept/cancel calls are serialised exactly as a chain
would order them: the first accepted purchase sells the listing and every
later purchase attempt is rejected here.

Reads return copies; mutating a returned record never changes the ledger.
"""

import asyncio
import logging
import time
from typing import Callable

from veridy.exceptions import (
    AlreadyAcceptedError,
    DuplicatePurchaseError,
    InsufficientFundsError,
    LedgerRejectedError,
    ListingInactiveError,
    ListingNotFoundError,
    NotAuthorizedError,
    NotPendingError,
    PurchaseNotFoundError,
    SelfPurchaseError,
)
from veridy.models import WRAPPED_KEY_SIZE, ZERO_WRAPPED_KEY, Listing, Purchase, PurchaseStatus
from veridy.ports.ledger import ILedgerPort

logger = logging.getLogger(__name__)


def _addr(address: str) -> str:
    return address.lower()


class InMemoryLedger(ILedgerPort):
    """
    Reference ledger holding listings, purchases, token balances and escrow.

    Usage:
        ledger = InMemoryLedger()
        ledger.mint("0xBuyer", 10_000_000)
        listing_id = await ledger.create_listing("0xSeller", ...)
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = asyncio.Lock()

        self._listings: dict[int, Listing] = {}
        self._purchases: dict[int, Purchase] = {}
        self._balances: dict[str, int] = {}
        self._allowances: dict[str, int] = {}
        self.escrow_balance = 0

    def _now(self) -> int:
        return int(self._clock())

    def mint(self, account: str, amount: int) -> None:
        """Credit test funds to an account."""
        key = _addr(account)
        self._balances[key] = self._balances.get(key, 0) + amount

    def _listing(self, listing_id: int) -> Listing:
        listing = self._listings.get(listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        return listing

    def _purchase(self, purchase_id: int) -> Purchase:
        purchase = self._purchases.get(purchase_id)
        if purchase is None:
            raise PurchaseNotFoundError(purchase_id)
        return purchase

    def _require_seller(self, sender: str, listing: Listing) -> None:
        if _addr(sender) != _addr(listing.seller):
            raise NotAuthorizedError(
                f"Only the seller can modify listing {listing.id}",
                details={"listing_id": listing.id, "sender": sender},
            )

    # Writes

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
        if price <= 0:
            raise LedgerRejectedError("Price must be greater than zero", details={"price": price})
        if not seller_public_key:
            raise LedgerRejectedError("Seller public key required")
        if not content_hash or not content_locator:
            raise LedgerRejectedError("Content hash and locator required")
        if not title:
            raise LedgerRejectedError("Title required")
        if file_size_bytes < 0:
            raise LedgerRejectedError("File size must not be negative")

        async with self._lock:
            listing_id = len(self._listings) + 1
            self._listings[listing_id] = Listing(
                id=listing_id,
                seller=sender,
                seller_public_key=seller_public_key,
                content_hash=content_hash,
                content_locator=content_locator,
                title=title,
                description=description,
                file_type=file_type,
                file_size_bytes=file_size_bytes,
                price=price,
                created_at=self._now(),
            )
        logger.debug(f"Ledger: listing {listing_id} created by {sender}")
        return listing_id

    async def update_listing(
        self, sender: str, listing_id: int, title: str, description: str, price: int
    ) -> None:
        if price <= 0:
            raise LedgerRejectedError("Price must be greater than zero", details={"price": price})
        async with self._lock:
            listing = self._listing(listing_id)
            self._require_seller(sender, listing)
            if listing.sold:
                raise AlreadyAcceptedError(listing_id)
            listing.title = title
            listing.description = description
            listing.price = price

    async def deactivate_listing(self, sender: str, listing_id: int) -> None:
        async with self._lock:
            listing = self._listing(listing_id)
            self._require_seller(sender, listing)
            if not listing.sold:
                listing.is_active = False

    async def reactivate_listing(self, sender: str, listing_id: int) -> None:
        async with self._lock:
            listing = self._listing(listing_id)
            self._require_seller(sender, listing)
            if not listing.sold:
                listing.is_active = True

    async def purchase_listing(self, sender: str, listing_id: int, buyer_public_key: bytes) -> int:
        if not buyer_public_key:
            raise LedgerRejectedError("Buyer public key required")

        async with self._lock:
            listing = self._listing(listing_id)
            if listing.sold:
                raise AlreadyAcceptedError(listing_id)
            if not listing.is_active:
                raise ListingInactiveError(listing_id)
            buyer = _addr(sender)
            if buyer == _addr(listing.seller):
                raise SelfPurchaseError(listing_id)
            for existing in self._purchases.values():
                if (
                    existing.listing_id == listing_id
                    and _addr(existing.buyer) == buyer
                    and existing.status is PurchaseStatus.ESCROWED
                ):
                    raise DuplicatePurchaseError(listing_id, existing.id)

            allowance = self._allowances.get(buyer, 0)
            balance = self._balances.get(buyer, 0)
            if allowance < listing.price:
                raise InsufficientFundsError(listing.price, allowance, sender)
            if balance < listing.price:
                raise InsufficientFundsError(listing.price, balance, sender)

            self._allowances[buyer] = allowance - listing.price
            self._balances[buyer] = balance - listing.price
            self.escrow_balance += listing.price

            purchase_id = len(self._purchases) + 1
            self._purchases[purchase_id] = Purchase(
                id=purchase_id,
                listing_id=listing_id,
                buyer=sender,
                buyer_public_key=buyer_public_key,
                amount=listing.price,
                created_at=self._now(),
            )
        logger.debug(f"Ledger: purchase {purchase_id} escrowed {listing.price} on listing {listing_id}")
        return purchase_id

    async def accept_purchase(self, sender: str, purchase_id: int, wrapped_key: bytes) -> None:
        if len(wrapped_key) != WRAPPED_KEY_SIZE:
            raise LedgerRejectedError(f"Wrapped key must be {WRAPPED_KEY_SIZE} bytes")
        if wrapped_key == ZERO_WRAPPED_KEY:
            raise LedgerRejectedError("Wrapped key must not be zero")

        async with self._lock:
            purchase = self._purchase(purchase_id)
            listing = self._listing(purchase.listing_id)
            self._require_seller(sender, listing)
            if listing.sold:
                raise AlreadyAcceptedError(listing.id)
            if purchase.status is not PurchaseStatus.ESCROWED:
                raise NotPendingError(purchase_id, purchase.status.value)

            purchase.wrapped_key = wrapped_key
            purchase.status = PurchaseStatus.ACCEPTED
            purchase.accepted_at = self._now()
            listing.sold = True

            self.escrow_balance -= purchase.amount
            seller = _addr(listing.seller)
            self._balances[seller] = self._balances.get(seller, 0) + purchase.amount
        logger.debug(f"Ledger: purchase {purchase_id} accepted, listing {listing.id} sold")

    async def cancel_purchase(self, sender: str, purchase_id: int) -> None:
        async with self._lock:
            purchase = self._purchase(purchase_id)
            if _addr(sender) != _addr(purchase.buyer):
                raise NotAuthorizedError(
                    f"Only the buyer can cancel purchase {purchase_id}",
                    details={"purchase_id": purchase_id, "sender": sender},
                )
            if purchase.status is not PurchaseStatus.ESCROWED:
                raise NotPendingError(purchase_id, purchase.status.value)

            purchase.status = PurchaseStatus.CANCELLED
            self.escrow_balance -= purchase.amount
            buyer = _addr(purchase.buyer)
            self._balances[buyer] = self._balances.get(buyer, 0) + purchase.amount
        logger.debug(f"Ledger: purchase {purchase_id} cancelled and refunded")

    # Escrow token

    async def approve(self, sender: str, amount: int) -> None:
        if amount < 0:
            raise LedgerRejectedError("Allowance must not be negative")
        async with self._lock:
            self._allowances[_addr(sender)] = amount

    async def allowance(self, owner: str) -> int:
        return self._allowances.get(_addr(owner), 0)

    async def balance_of(self, account: str) -> int:
        return self._balances.get(_addr(account), 0)

    # Reads

    async def get_listing(self, listing_id: int) -> Listing:
        return self._listing(listing_id).model_copy(deep=True)

    async def get_purchase(self, purchase_id: int) -> Purchase:
        return self._purchase(purchase_id).model_copy(deep=True)

    async def get_active_listings(self, offset: int = 0, limit: int = 50) -> list[Listing]:
        active = [l for _, l in sorted(self._listings.items()) if l.is_active and not l.sold]
        return [l.model_copy(deep=True) for l in active[offset:offset + limit]]

    async def get_listings_by_seller(self, seller: str) -> list[Listing]:
        return [
            l.model_copy(deep=True)
            for _, l in sorted(self._listings.items())
            if _addr(l.seller) == _addr(seller)
        ]

    def _purchases_where(self, predicate: Callable[[Purchase], bool]) -> list[Purchase]:
        return [p.model_copy(deep=True) for _, p in sorted(self._purchases.items()) if predicate(p)]

    async def get_purchases_by_buyer(self, buyer: str) -> list[Purchase]:
        return self._purchases_where(lambda p: _addr(p.buyer) == _addr(buyer))

    async def get_pending_purchases_for_seller(self, seller: str) -> list[Purchase]:
        return self._purchases_where(
            lambda p: p.status is PurchaseStatus.ESCROWED
            and _addr(self._listings[p.listing_id].seller) == _addr(seller)
        )

    async def get_completed_purchases_by_buyer(self, buyer: str) -> list[Purchase]:
        return self._purchases_where(
            lambda p: p.status is PurchaseStatus.ACCEPTED and _addr(p.buyer) == _addr(buyer)
        )

    async def has_buyer_purchased_listing(self, listing_id: int, buyer: str) -> tuple[bool, int]:
        for purchase_id, p in sorted(self._purchases.items()):
            if (
                p.listing_id == listing_id
                and _addr(p.buyer) == _addr(buyer)
                and p.status is PurchaseStatus.ACCEPTED
            ):
                return True, purchase_id
        return False, 0

    async def get_total_listings(self) -> int:
        return len(self._listings)

    async def get_total_purchases(self) -> int:
        return len(self._purchases)
