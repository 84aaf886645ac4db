"""
Veridy Exceptions.

All library exceptions inherit from VeridyError for easy catching.

Groups:
- CryptoError: key generation, key parsing, length and integrity failures
- LedgerRejectedError: the ledger refused a write or read
- ContentStoreError: the content store could not store or return bytes

IntegrityWarning is not an exception in the raising sense: it is emitted
through ``warnings.warn`` when decrypted content does not match the listed
digest, because the sale is already final by then.
"""

from typing import Any


class VeridyError(Exception):
    """Base exception for all Veridy errors."""

    def __init__(
        self,
        message: str,
        code: str = "VERIDY_ERROR",
        details: dict | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_dict(self) -> dict:
        """Convert error to dictionary representation."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }


# Crypto Errors
class CryptoError(VeridyError):
    """Cryptographic precondition failed."""

    def __init__(self, message: str, code: str = "CRYPTO_ERROR", **kwargs: Any) -> None:
        super().__init__(message, code, **kwargs)


class KeyGenerationError(CryptoError):
    """Randomness source or key generation backend unavailable."""

    def __init__(self, message: str = "Key generation failed", **kwargs: Any) -> None:
        super().__init__(message, "KEY_GENERATION_ERROR", **kwargs)


class InvalidKeyError(CryptoError):
    """A key is malformed or not on the expected curve."""

    def __init__(self, message: str = "Invalid key", **kwargs: Any) -> None:
        super().__init__(message, "INVALID_KEY", **kwargs)


class LengthMismatchError(CryptoError):
    """Byte strings that must have equal, fixed lengths do not."""

    def __init__(
        self,
        message: str = "Length mismatch",
        expected: int | None = None,
        actual: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, "LENGTH_MISMATCH", **kwargs)
        self.expected = expected
        self.actual = actual


class IntegrityError(CryptoError):
    """Authenticated decryption failed: wrong key, corruption or tampering."""

    def __init__(self, message: str = "Authenticated decryption failed", **kwargs: Any) -> None:
        super().__init__(message, "INTEGRITY_ERROR", **kwargs)


class IntegrityWarning(UserWarning):
    """Decrypted content does not hash to the digest published on the listing."""

    def __init__(self, message: str, expected: str = "", actual: str = ""):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class KeyNotFoundError(VeridyError):
    """The seller no longer holds the symmetric key for a listing.

    Unrecoverable for that listing: the sale cannot be fulfilled.
    """

    def __init__(self, listing_id: int | None = None, owner: str | None = None):
        super().__init__(
            f"No local content key for listing {listing_id}; the sale cannot be fulfilled",
            "KEY_NOT_FOUND",
            details={"listing_id": listing_id, "owner": owner},
        )
        self.listing_id = listing_id
        self.owner = owner


# Ledger Errors
class LedgerRejectedError(VeridyError):
    """The ledger rejected a call."""

    def __init__(self, message: str = "Ledger rejected the call", code: str = "LEDGER_REJECTED", **kwargs: Any) -> None:
        super().__init__(message, code, **kwargs)


class ListingNotFoundError(LedgerRejectedError):
    """No listing with that id."""

    def __init__(self, listing_id: int):
        super().__init__(f"Listing {listing_id} not found", "LISTING_NOT_FOUND", details={"listing_id": listing_id})
        self.listing_id = listing_id


class PurchaseNotFoundError(LedgerRejectedError):
    """No purchase with that id."""

    def __init__(self, purchase_id: int):
        super().__init__(f"Purchase {purchase_id} not found", "PURCHASE_NOT_FOUND", details={"purchase_id": purchase_id})
        self.purchase_id = purchase_id


class NotAuthorizedError(LedgerRejectedError):
    """Caller is not the party allowed to perform this call."""

    def __init__(self, message: str = "Caller not authorized", **kwargs: Any) -> None:
        super().__init__(message, "NOT_AUTHORIZED", **kwargs)


class ListingInactiveError(LedgerRejectedError):
    """Listing is deactivated and cannot be purchased."""

    def __init__(self, listing_id: int):
        super().__init__(f"Listing {listing_id} is not active", "LISTING_INACTIVE", details={"listing_id": listing_id})
        self.listing_id = listing_id


class SelfPurchaseError(LedgerRejectedError):
    """Seller tried to buy their own listing."""

    def __init__(self, listing_id: int):
        super().__init__(f"Cannot purchase own listing {listing_id}", "SELF_PURCHASE", details={"listing_id": listing_id})
        self.listing_id = listing_id


class DuplicatePurchaseError(LedgerRejectedError):
    """Buyer already has a pending purchase on this listing."""

    def __init__(self, listing_id: int, purchase_id: int | None = None):
        super().__init__(
            f"Pending purchase already exists for listing {listing_id}",
            "DUPLICATE_PURCHASE",
            details={"listing_id": listing_id, "purchase_id": purchase_id},
        )
        self.listing_id = listing_id
        self.purchase_id = purchase_id


class AlreadyAcceptedError(LedgerRejectedError):
    """Listing was already sold through another purchase."""

    def __init__(self, listing_id: int):
        super().__init__(f"Listing {listing_id} is already sold", "ALREADY_ACCEPTED", details={"listing_id": listing_id})
        self.listing_id = listing_id


class NotPendingError(LedgerRejectedError):
    """Purchase is not in the state the call requires."""

    def __init__(self, purchase_id: int, status: str = "", message: str | None = None):
        super().__init__(
            message or f"Purchase {purchase_id} is not pending (status: {status})",
            "NOT_PENDING",
            details={"purchase_id": purchase_id, "status": status},
        )
        self.purchase_id = purchase_id
        self.status = status


class WrappedKeyNotSetError(NotPendingError):
    """Purchase has not been accepted, so no wrapped key is available yet."""

    def __init__(self, purchase_id: int, status: str = ""):
        super().__init__(
            purchase_id,
            status,
            message=f"Wrapped key for purchase {purchase_id} is not set (status: {status})",
        )
        self.code = "WRAPPED_KEY_NOT_SET"


class InsufficientFundsError(LedgerRejectedError):
    """Escrow could not be funded."""

    def __init__(self, required: int, available: int, account: str = ""):
        super().__init__(
            f"Insufficient funds: required {required}, available {available}",
            "INSUFFICIENT_FUNDS",
            details={"required": required, "available": available, "account": account},
        )
        self.required = required
        self.available = available


# Storage Errors
class ContentStoreError(VeridyError):
    """Content store failed to put or get a blob."""

    def __init__(self, message: str, locator: str | None = None, **kwargs: Any) -> None:
        super().__init__(message, "CONTENT_STORE_ERROR", **kwargs)
        self.locator = locator


class KeyRetentionError(VeridyError):
    """A listing went live but its content key could not be stored locally.

    The key is attached so the caller can persist it elsewhere; it is kept
    out of ``details`` and ``to_dict`` so it never reaches logs.
    """

    def __init__(self, listing_id: int, key: bytes, cause: Exception | None = None):
        super().__init__(
            f"Listing {listing_id} is live but its content key could not be retained",
            "KEY_RETENTION_FAILED",
            details={"listing_id": listing_id},
            cause=cause,
        )
        self.listing_id = listing_id
        self.key = key

    def __repr__(self) -> str:
        return f"KeyRetentionError(listing_id={self.listing_id})"


class ListingMismatchError(VeridyError, ValueError):
    """The listing supplied with a purchase is not the one it was made for."""

    def __init__(self, purchase_id: int, expected_listing_id: int, actual_listing_id: int):
        super().__init__(
            f"Purchase {purchase_id} is for listing {expected_listing_id}, not {actual_listing_id}",
            "LISTING_MISMATCH",
            details={
                "purchase_id": purchase_id,
                "expected_listing_id": expected_listing_id,
                "actual_listing_id": actual_listing_id,
            },
        )
        self.purchase_id = purchase_id
        self.expected_listing_id = expected_listing_id
        self.actual_listing_id = actual_listing_id
