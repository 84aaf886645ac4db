"""
Command-line interface for Veridy.

Usage:
    veridy init 0xYourWallet
    veridy digest report.pdf
    veridy encrypt report.pdf -o report.enc
    veridy decrypt report.enc --key <hex> -o report.pdf
    veridy upload report.pdf
    veridy download <cid> --key <hex> -o report.pdf
    veridy wrap --key <hex> --identity 0xSeller --peer <buyer pubkey hex>
    veridy unwrap --wrapped <hex> --identity 0xBuyer --peer <seller pubkey hex>
    veridy keys 0xSeller
    veridy demo
"""

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click

from . import cipher
from .adapters import InMemoryContentStore, InMemoryKeyValueStore, InMemoryLedger, JsonFileKeyValueStore
from .config import NETWORKS, VeridyConfig
from .coordinator import EscrowCoordinator
from .exceptions import VeridyError
from .key_store import SymmetricKeyStore
from .keys import KeyManager
from .models import ListingMetadata, hex_to_bytes, to_bytes32_hex
from .wrapping import KeyWrapper

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S"
)

logger = logging.getLogger(__name__)


def fail(message: str) -> None:
    click.echo(click.style(f"✗ Error: {message}", fg="red"))
    sys.exit(1)


def parse_hex(value: str, name: str) -> bytes:
    try:
        return hex_to_bytes(value)
    except ValueError:
        fail(f"{name} is not valid hex")


@click.group()
@click.option("--data-dir", type=click.Path(), help="Data directory path")
@click.option("--network", type=click.Choice(sorted(NETWORKS)), help="Ledger deployment")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, data_dir: Optional[str], network: Optional[str], debug: bool):
    """Veridy - escrowed sale of encrypted content"""
    ctx.ensure_object(dict)

    if debug:
        logging.getLogger().setLevel(logging.DEBUG)

    overrides = {}
    if data_dir:
        overrides["data_dir"] = Path(data_dir)
    if network:
        overrides["network"] = network
    config = VeridyConfig(**overrides)
    if not debug:
        logging.getLogger().setLevel(config.log_level.upper())
    add_file_logging(config)

    ctx.obj["config"] = config


def add_file_logging(config: VeridyConfig) -> Optional[logging.Handler]:
    """Mirror log records to config.log_file, once per file."""
    path = config.log_path
    if path is None:
        return None

    root = logging.getLogger()
    for handler in root.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == os.path.abspath(path):
            return handler

    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    root.addHandler(handler)
    return handler


def _key_manager(ctx) -> KeyManager:
    return KeyManager(JsonFileKeyValueStore(ctx.obj["config"].keys_path))


@cli.command()
@click.argument("address")
@click.pass_context
def init(ctx, address: str):
    """Provision the ECDH key pair for a wallet address."""
    config = ctx.obj["config"]
    try:
        keys = _key_manager(ctx).ensure_key_pair(address)
    except VeridyError as e:
        fail(e.message)

    click.echo()
    click.echo(click.style("✓ Key pair ready", fg="green", bold=True))
    click.echo(f"  Wallet:     {address}")
    click.echo(f"  Public key: {click.style(keys.public_key_hex, fg='yellow')}")
    click.echo()
    click.echo(click.style("⚠ Keep your key file safe:", fg="yellow"))
    click.echo(f"  {config.keys_path}")


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def digest(path: str):
    """Print the SHA-256 content digest of a file."""
    click.echo(cipher.digest(Path(path).read_bytes()))


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--output", "-o", required=True, type=click.Path(dir_okay=False), help="Encrypted output file")
def encrypt(path: str, output: str):
    """Encrypt a file under a fresh content key."""
    data = Path(path).read_bytes()
    try:
        key = cipher.generate_symmetric_key()
        Path(output).write_bytes(cipher.encrypt(data, key))
    except VeridyError as e:
        fail(e.message)

    click.echo(f"Digest: {cipher.digest(data)}")
    click.echo(f"Key:    {key.hex()}")
    click.echo(click.style("⚠ The key is shown once. Without it the listing cannot be fulfilled.", fg="yellow"))


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--key", "key_hex", required=True, help="Content key (hex)")
@click.option("--output", "-o", required=True, type=click.Path(dir_okay=False), help="Decrypted output file")
@click.option("--expect-digest", help="Published content digest to verify against")
def decrypt(path: str, key_hex: str, output: str, expect_digest: Optional[str]):
    """Decrypt a file and optionally verify its digest."""
    key = parse_hex(key_hex, "key")
    try:
        plaintext = cipher.decrypt(Path(path).read_bytes(), key)
    except VeridyError as e:
        fail(e.message)

    Path(output).write_bytes(plaintext)
    click.echo(click.style(f"✓ Decrypted {len(plaintext)} bytes", fg="green"))
    if expect_digest:
        if cipher.ContentCipher().verify(plaintext, expect_digest):
            click.echo(click.style("✓ Digest matches", fg="green"))
        else:
            click.echo(click.style("⚠ Digest mismatch: content differs from the listing", fg="yellow"))


async def _upload(store, data: bytes) -> str:
    try:
        return await store.put(data)
    finally:
        await store.aclose()


async def _download(store, locator: str) -> bytes:
    try:
        return await store.get(locator)
    finally:
        await store.aclose()


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def upload(ctx, path: str):
    """Encrypt a file and pin the ciphertext to IPFS."""
    config = ctx.obj["config"]
    data = Path(path).read_bytes()
    try:
        key = cipher.generate_symmetric_key()
        locator = asyncio.run(_upload(config.content_store(), cipher.encrypt(data, key)))
    except VeridyError as e:
        fail(e.message)

    click.echo(click.style("✓ Uploaded", fg="green"))
    click.echo(f"Locator: {locator}")
    click.echo(f"Digest:  {cipher.digest(data)}")
    click.echo(f"Key:     {key.hex()}")
    click.echo(click.style("⚠ The key is shown once. Without it the listing cannot be fulfilled.", fg="yellow"))


@cli.command()
@click.argument("locator")
@click.option("--key", "key_hex", required=True, help="Content key (hex)")
@click.option("--output", "-o", required=True, type=click.Path(dir_okay=False), help="Decrypted output file")
@click.pass_context
def download(ctx, locator: str, key_hex: str, output: str):
    """Fetch ciphertext through the IPFS gateways and decrypt it."""
    config = ctx.obj["config"]
    key = parse_hex(key_hex, "key")
    try:
        blob = asyncio.run(_download(config.content_store(), locator))
        plaintext = cipher.decrypt(blob, key)
    except VeridyError as e:
        fail(e.message)

    Path(output).write_bytes(plaintext)
    click.echo(click.style(f"✓ Decrypted {len(plaintext)} bytes", fg="green"))
    click.echo(f"Digest: {cipher.digest(plaintext)}")


@cli.command()
@click.option("--key", "key_hex", required=True, help="Content key (hex)")
@click.option("--identity", required=True, help="Your wallet address")
@click.option("--peer", "peer_hex", required=True, help="Peer public key (hex)")
@click.pass_context
def wrap(ctx, key_hex: str, identity: str, peer_hex: str):
    """Wrap a content key for a peer."""
    manager = _key_manager(ctx)
    keys = manager.get_key_pair(identity)
    if keys is None:
        fail(f"No key pair for {identity}. Run 'veridy init {identity}' first.")
    try:
        wrapped = KeyWrapper(manager).wrap(parse_hex(key_hex, "key"), keys.private_key, parse_hex(peer_hex, "peer"))
    except VeridyError as e:
        fail(e.message)
    click.echo(to_bytes32_hex(wrapped))


@cli.command()
@click.option("--wrapped", "wrapped_hex", required=True, help="Wrapped key (bytes32 hex)")
@click.option("--identity", required=True, help="Your wallet address")
@click.option("--peer", "peer_hex", required=True, help="Peer public key (hex)")
@click.pass_context
def unwrap(ctx, wrapped_hex: str, identity: str, peer_hex: str):
    """Recover a content key wrapped by a peer."""
    manager = _key_manager(ctx)
    keys = manager.get_key_pair(identity)
    if keys is None:
        fail(f"No key pair for {identity}. Run 'veridy init {identity}' first.")
    try:
        key = KeyWrapper(manager).unwrap(parse_hex(wrapped_hex, "wrapped"), keys.private_key, parse_hex(peer_hex, "peer"))
    except VeridyError as e:
        fail(e.message)
    click.echo(key.hex())


@cli.command()
@click.argument("owner")
@click.pass_context
def keys(ctx, owner: str):
    """List listings whose content keys are retained for OWNER."""
    store = SymmetricKeyStore(JsonFileKeyValueStore(ctx.obj["config"].keys_path))
    listing_ids = store.listing_ids(owner)
    if not listing_ids:
        click.echo("No retained content keys.")
        return
    for listing_id in listing_ids:
        click.echo(f"  listing {listing_id}")


async def run_demo(network_name: str) -> dict:
    """Run one sale end to end against the in-process ledger."""
    local = InMemoryKeyValueStore()
    manager = KeyManager(local)
    ledger = InMemoryLedger()
    coordinator = EscrowCoordinator(
        ledger, InMemoryContentStore(), SymmetricKeyStore(local), NETWORKS[network_name]
    )

    seller = manager.participant("0x5e11e7")
    buyer = manager.participant("0xb0b")
    price = coordinator.to_units("5")
    ledger.mint(buyer.address, price)

    plaintext = b"hello world"
    listing = await coordinator.publish_content(
        seller, plaintext, ListingMetadata(title="Greeting", file_type="txt"), price
    )
    purchase = await coordinator.request_purchase(buyer, listing.id)
    accepted = await coordinator.accept_purchase(seller, purchase)
    recovered = await coordinator.fulfill_purchase(buyer, accepted, listing)

    return {
        "listing": await coordinator.get_listing(listing.id),
        "purchase": accepted,
        "match": recovered == plaintext,
        "seller_balance": await ledger.balance_of(seller.address),
        "buyer_balance": await ledger.balance_of(buyer.address),
        "coordinator": coordinator,
    }


@cli.command()
@click.pass_context
def demo(ctx):
    """Simulate a complete sale on an in-process ledger."""
    config = ctx.obj["config"]
    try:
        result = asyncio.run(run_demo(config.network))
    except VeridyError as e:
        fail(e.message)

    coordinator = result["coordinator"]
    listing = result["listing"]
    purchase = result["purchase"]
    click.echo(f"Listing {listing.id}: {listing.title} [{listing.status.value}]")
    click.echo(f"Purchase {purchase.id}: {purchase.status.value}, wrapped key {to_bytes32_hex(purchase.wrapped_key)}")
    click.echo(f"Seller balance: {coordinator.format_units(result['seller_balance'])}")
    click.echo(f"Buyer balance:  {coordinator.format_units(result['buyer_balance'])}")
    if result["match"]:
        click.echo(click.style("✓ Buyer decrypted the original content", fg="green", bold=True))
    else:
        fail("decrypted content differs from the original")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
