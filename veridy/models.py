"""
Domain models shared by the key exchange and escrow layers.

Byte fields travel as lowercase hex on the wire and in local storage; the
wrapped key is rendered as a 0x-prefixed bytes32, the shape the ledger
stores it in.
"""

from decimal import Decimal, InvalidOperation, ROUND_DOWN
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from .categories import DataCategory, category_for_file_type

SYMMETRIC_KEY_SIZE = 32
WRAPPED_KEY_SIZE = 32
ZERO_WRAPPED_KEY = bytes(WRAPPED_KEY_SIZE)

TOKEN_DECIMALS = 6


def hex_to_bytes(value: str) -> bytes:
    """Decode hex with or without a 0x prefix."""
    clean = value[2:] if value.startswith(("0x", "0X")) else value
    return bytes.fromhex(clean)


def to_bytes32_hex(value: bytes) -> str:
    """Render bytes as a left-padded 0x-prefixed bytes32."""
    return "0x" + value.hex().rjust(64, "0")


def _coerce_bytes(v: Any) -> Any:
    if isinstance(v, str):
        try:
            return hex_to_bytes(v)
        except ValueError:
            raise ValueError("expected hex-encoded bytes")
    return v


def to_base_units(amount: str | int | Decimal, decimals: int = TOKEN_DECIMALS) -> int:
    """
    Convert a human token amount to integer base units.

    ``to_base_units("5") == 5_000_000`` for a 6-decimal token. Fractions
    finer than the token allows are rejected, not rounded.
    """
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount!r}")
    if value < 0:
        raise ValueError(f"Amount must not be negative: {amount!r}")
    scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {amount!r} has more than {decimals} decimals")
    return int(scaled)


def from_base_units(units: int, decimals: int = TOKEN_DECIMALS) -> str:
    """Convert integer base units back to a human amount string."""
    value = Decimal(units).scaleb(-decimals).quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_DOWN)
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


class KeyPair(BaseModel):
    """Container for an ECDH key pair (P-256)."""

    public_key: bytes
    private_key: bytes = Field(repr=False)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_serializer("private_key", "public_key")
    def serialize_bytes(self, v: bytes, _info):
        """Serialize bytes to hex string."""
        return v.hex()

    @field_validator("private_key", "public_key", mode="before")
    @classmethod
    def validate_bytes(cls, v: Any) -> bytes:
        """Decode hex string to bytes if needed."""
        return _coerce_bytes(v)

    @property
    def public_key_hex(self) -> str:
        """Get public key as hex string (for display/sharing)."""
        return self.public_key.hex()

    @property
    def public_key_short(self) -> str:
        """Get shortened public key for display."""
        hex_key = self.public_key_hex
        return f"{hex_key[:8]}...{hex_key[-8:]}"


class Participant(BaseModel):
    """
    A wallet identity together with its ECDH key pair.

    ``address`` is what the ledger knows the party by; ``keys`` never leave
    the local process except for the public half.
    """

    address: str
    keys: KeyPair

    @property
    def public_key(self) -> bytes:
        return self.keys.public_key

    @property
    def private_key(self) -> bytes:
        return self.keys.private_key

    def __repr__(self) -> str:
        return f"Participant(address={self.address!r}, key={self.keys.public_key_short})"


class ListingStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SOLD = "sold"


class PurchaseStatus(str, Enum):
    """Purchase lifecycle. ESCROWED is the only non-terminal state."""

    ESCROWED = "escrowed"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"

    @classmethod
    def from_code(cls, code: int) -> "PurchaseStatus":
        """Map the ledger's uint8 status code."""
        try:
            return _STATUS_BY_CODE[code]
        except KeyError:
            raise ValueError(f"Unknown purchase status code: {code}")

    @property
    def code(self) -> int:
        return _CODE_BY_STATUS[self]

    @property
    def is_terminal(self) -> bool:
        return self is not PurchaseStatus.ESCROWED


_STATUS_BY_CODE = {
    0: PurchaseStatus.ESCROWED,
    1: PurchaseStatus.ACCEPTED,
    2: PurchaseStatus.CANCELLED,
}
_CODE_BY_STATUS = {status: code for code, status in _STATUS_BY_CODE.items()}


class ListingMetadata(BaseModel):
    """Descriptive fields a seller supplies when listing content."""

    title: str = Field(min_length=1)
    description: str = ""
    file_type: str = ""
    file_size_bytes: int = Field(default=0, ge=0)


class Listing(BaseModel):
    """A listing as recorded on the ledger."""

    id: int
    seller: str
    seller_public_key: bytes
    content_hash: str
    content_locator: str
    title: str
    description: str = ""
    file_type: str = ""
    file_size_bytes: int = 0
    price: int
    is_active: bool = True
    sold: bool = False
    created_at: int = 0

    @field_serializer("seller_public_key")
    def serialize_key(self, v: bytes, _info):
        return v.hex()

    @field_validator("seller_public_key", mode="before")
    @classmethod
    def validate_key(cls, v: Any) -> bytes:
        return _coerce_bytes(v)

    @property
    def status(self) -> ListingStatus:
        if self.sold:
            return ListingStatus.SOLD
        return ListingStatus.ACTIVE if self.is_active else ListingStatus.INACTIVE

    @property
    def is_purchasable(self) -> bool:
        return self.is_active and not self.sold

    @property
    def category(self) -> DataCategory:
        return category_for_file_type(self.file_type)

    @property
    def price_display(self) -> str:
        return from_base_units(self.price)


class Purchase(BaseModel):
    """A purchase as recorded on the ledger."""

    id: int
    listing_id: int
    buyer: str
    buyer_public_key: bytes
    wrapped_key: bytes = ZERO_WRAPPED_KEY
    amount: int
    created_at: int = 0
    accepted_at: int = 0
    status: PurchaseStatus = PurchaseStatus.ESCROWED

    @field_serializer("buyer_public_key")
    def serialize_key(self, v: bytes, _info):
        return v.hex()

    @field_serializer("wrapped_key")
    def serialize_wrapped_key(self, v: bytes, _info):
        return to_bytes32_hex(v)

    @field_validator("buyer_public_key", "wrapped_key", mode="before")
    @classmethod
    def validate_bytes(cls, v: Any) -> bytes:
        return _coerce_bytes(v)

    @field_validator("wrapped_key")
    @classmethod
    def validate_wrapped_key(cls, v: bytes) -> bytes:
        if len(v) != WRAPPED_KEY_SIZE:
            raise ValueError(f"wrapped_key must be {WRAPPED_KEY_SIZE} bytes, got {len(v)}")
        return v

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return PurchaseStatus.from_code(v)
        return v

    @property
    def is_pending(self) -> bool:
        return self.status is PurchaseStatus.ESCROWED

    @property
    def has_wrapped_key(self) -> bool:
        return self.wrapped_key != ZERO_WRAPPED_KEY


class Order(BaseModel):
    """A purchase joined with the listing it refers to."""

    purchase: Purchase
    listing: Optional[Listing] = None

    @property
    def id(self) -> int:
        return self.purchase.id

    @property
    def status(self) -> PurchaseStatus:
        return self.purchase.status
