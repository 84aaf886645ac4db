"""
Tests for domain models, unit conversion and file categories.
"""

import pytest
from pydantic import ValidationError

from veridy.categories import DataCategory, category_for_file_type, mime_type_for, normalize_file_type
from veridy.keys import generate_key_pair
from veridy.models import (
    ZERO_WRAPPED_KEY,
    KeyPair,
    Listing,
    ListingMetadata,
    ListingStatus,
    Purchase,
    PurchaseStatus,
    from_base_units,
    hex_to_bytes,
    to_base_units,
    to_bytes32_hex,
)


def make_listing(**overrides) -> Listing:
    fields = dict(
        id=1,
        seller="0xSeller",
        seller_public_key=b"\x04" + b"\x01" * 64,
        content_hash="ab" * 32,
        content_locator="bafy",
        title="Dataset",
        file_type="csv",
        price=2_500_000,
    )
    fields.update(overrides)
    return Listing(**fields)


def make_purchase(**overrides) -> Purchase:
    fields = dict(id=1, listing_id=1, buyer="0xBuyer", buyer_public_key=b"\x04" + b"\x02" * 64, amount=2_500_000)
    fields.update(overrides)
    return Purchase(**fields)


class TestUnits:
    @pytest.mark.parametrize(
        "amount, units",
        [("5", 5_000_000), ("0.25", 250_000), ("1.000001", 1_000_001), (3, 3_000_000), ("0", 0)],
    )
    def test_to_base_units(self, amount, units):
        assert to_base_units(amount) == units

    def test_too_many_decimals_rejected(self):
        with pytest.raises(ValueError):
            to_base_units("0.0000001")

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            to_base_units("-1")

    def test_garbage_rejected(self):
        with pytest.raises(ValueError):
            to_base_units("five")

    @pytest.mark.parametrize("units, text", [(5_000_000, "5"), (1_500_000, "1.5"), (1, "0.000001"), (0, "0")])
    def test_from_base_units(self, units, text):
        assert from_base_units(units) == text

    def test_other_decimals(self):
        assert to_base_units("1", decimals=18) == 10**18


class TestHex:
    def test_hex_to_bytes_accepts_prefix(self):
        assert hex_to_bytes("0xabcd") == hex_to_bytes("abcd") == b"\xab\xcd"

    def test_bytes32(self):
        assert to_bytes32_hex(b"\x01") == "0x" + "0" * 62 + "01"
        assert to_bytes32_hex(ZERO_WRAPPED_KEY) == "0x" + "0" * 64


class TestKeyPairModel:
    def test_json_roundtrip(self):
        kp = generate_key_pair()

        data = kp.model_dump()
        assert data["public_key"] == kp.public_key.hex()
        assert KeyPair.model_validate(data) == kp

    def test_public_key_short(self):
        kp = generate_key_pair()
        assert kp.public_key_short.startswith("04")
        assert "..." in kp.public_key_short


class TestPurchaseStatus:
    @pytest.mark.parametrize(
        "code, status",
        [(0, PurchaseStatus.ESCROWED), (1, PurchaseStatus.ACCEPTED), (2, PurchaseStatus.CANCELLED)],
    )
    def test_codes(self, code, status):
        assert PurchaseStatus.from_code(code) is status
        assert status.code == code

    def test_unknown_code(self):
        with pytest.raises(ValueError):
            PurchaseStatus.from_code(7)

    def test_terminal(self):
        assert not PurchaseStatus.ESCROWED.is_terminal
        assert PurchaseStatus.ACCEPTED.is_terminal
        assert PurchaseStatus.CANCELLED.is_terminal


class TestPurchase:
    def test_defaults(self):
        purchase = make_purchase()

        assert purchase.status is PurchaseStatus.ESCROWED
        assert purchase.is_pending
        assert not purchase.has_wrapped_key

    def test_status_from_ledger_code(self):
        assert make_purchase(status=1).status is PurchaseStatus.ACCEPTED

    def test_wrapped_key_serialized_as_bytes32(self):
        purchase = make_purchase(wrapped_key=b"\xaa" * 32)

        assert purchase.model_dump()["wrapped_key"] == "0x" + "aa" * 32
        assert purchase.has_wrapped_key

    def test_wrapped_key_accepts_hex(self):
        purchase = make_purchase(wrapped_key="0x" + "bb" * 32)
        assert purchase.wrapped_key == b"\xbb" * 32

    def test_wrapped_key_length_enforced(self):
        with pytest.raises(ValidationError):
            make_purchase(wrapped_key=b"\x01" * 16)

    def test_bad_hex_rejected(self):
        with pytest.raises(ValidationError):
            make_purchase(buyer_public_key="not-hex")


class TestListing:
    def test_status(self):
        assert make_listing().status is ListingStatus.ACTIVE
        assert make_listing(is_active=False).status is ListingStatus.INACTIVE
        assert make_listing(sold=True).status is ListingStatus.SOLD
        assert make_listing(is_active=False, sold=True).status is ListingStatus.SOLD

    def test_purchasable(self):
        assert make_listing().is_purchasable
        assert not make_listing(is_active=False).is_purchasable
        assert not make_listing(sold=True).is_purchasable

    def test_category_and_price(self):
        listing = make_listing()

        assert listing.category is DataCategory.DATASETS
        assert listing.price_display == "2.5"

    def test_metadata_requires_title(self):
        with pytest.raises(ValidationError):
            ListingMetadata(title="")

    def test_metadata_rejects_negative_size(self):
        with pytest.raises(ValidationError):
            ListingMetadata(title="x", file_size_bytes=-1)


class TestCategories:
    @pytest.mark.parametrize(
        "file_type, category",
        [
            ("png", DataCategory.IMAGES),
            (".JPG", DataCategory.IMAGES),
            ("clip.mp4", DataCategory.VIDEOS),
            ("pdf", DataCategory.DOCUMENTS),
            ("flac", DataCategory.AUDIO),
            ("glb", DataCategory.MODELS_3D),
            ("parquet", DataCategory.DATASETS),
            ("py", DataCategory.CODE),
            ("image/webp", DataCategory.IMAGES),
            ("application/json", DataCategory.DATASETS),
            ("application/x-unknown", DataCategory.OTHER),
            ("xyz", DataCategory.OTHER),
            ("", DataCategory.OTHER),
            (None, DataCategory.OTHER),
        ],
    )
    def test_category_for_file_type(self, file_type, category):
        assert category_for_file_type(file_type) is category

    def test_normalize(self):
        assert normalize_file_type(" Photo.PNG ") == "png"
        assert normalize_file_type("") == ""

    def test_mime_types(self):
        assert mime_type_for("pdf") == "application/pdf"
        assert mime_type_for("image/png") == "image/png"
        assert mime_type_for("weird") == "application/octet-stream"
        assert mime_type_for(None) == "application/octet-stream"

    def test_label(self):
        assert DataCategory.MODELS_3D.label == "3D MODELS"
