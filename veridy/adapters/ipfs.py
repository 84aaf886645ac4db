"""IPFS content store backed by the Pinata pinning API."""

import asyncio
import logging
import random

import httpx

from veridy.exceptions import ContentStoreError
from veridy.ports.content_store import IContentStorePort

logger = logging.getLogger(__name__)


class PinataContentStore(IContentStorePort):
    """Uploads through Pinata, downloads through an ordered list of gateways.

    Features:
    - CIDv1 pinning, so identical bytes map to the same locator
    - Exponential backoff retry on 5xx and network errors for uploads
    - Gateway fallback for downloads: the first gateway that answers wins
    - Dependency-injected httpx.AsyncClient

    Usage:
        store = PinataContentStore(jwt, gateways=config.ipfs_gateways)
        try:
            cid = await store.put(ciphertext)
        finally:
            await store.aclose()
    """

    def __init__(
        self,
        jwt: str,
        gateways: list[str],
        api_url: str = "https://api.pinata.cloud",
        http: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        max_attempts: int = 4,
    ):
        if not gateways:
            raise ValueError("At least one IPFS gateway is required")
        self._jwt = jwt
        self._gateways = [g.rstrip("/") for g in gateways]
        self._api_url = api_url.rstrip("/")
        self._http = http or httpx.AsyncClient(timeout=timeout)
        self._owns_http = http is None
        self._max_attempts = max_attempts

    async def aclose(self) -> None:
        """Close the HTTP client if owned."""
        if self._owns_http:
            await self._http.aclose()

    async def put(self, data: bytes) -> str:
        if not self._jwt:
            raise ContentStoreError("Pinata JWT not configured; set VERIDY_PINATA_JWT")

        url = f"{self._api_url}/pinning/pinFileToIPFS"
        headers = {"Authorization": f"Bearer {self._jwt}"}
        files = {"file": ("encrypted_data", data, "application/octet-stream")}
        form = {
            "pinataMetadata": '{"name": "encrypted_data"}',
            "pinataOptions": '{"cidVersion": 1}',
        }
        base_delay = 0.2

        for attempt in range(1, self._max_attempts + 1):
            try:
                resp = await self._http.post(url, headers=headers, files=files, data=form)
            except httpx.RequestError as e:
                if attempt == self._max_attempts:
                    raise ContentStoreError(f"Upload failed: {e}", cause=e)
                await asyncio.sleep(base_delay * (2 ** (attempt - 1)) + random.random() * 0.05)
                continue

            if resp.status_code >= 500 and attempt < self._max_attempts:
                await asyncio.sleep(base_delay * (2 ** (attempt - 1)) + random.random() * 0.05)
                continue

            if resp.status_code >= 400:
                raise ContentStoreError(
                    f"Upload rejected ({resp.status_code}): {resp.text[:200]}",
                    details={"status_code": resp.status_code},
                )

            cid = resp.json().get("IpfsHash")
            if not cid:
                raise ContentStoreError("Upload response missing IpfsHash")
            logger.info(f"Pinned {len(data)} bytes as {cid}")
            return cid

        raise ContentStoreError("Upload failed after retries")

    async def get(self, locator: str) -> bytes:
        if not locator:
            raise ContentStoreError("Locator is required")

        last_error: str | None = None
        for gateway in self._gateways:
            url = f"{gateway}/ipfs/{locator}"
            headers = {}
            if "pinata" in gateway and self._jwt:
                headers["Authorization"] = f"Bearer {self._jwt}"
            try:
                resp = await self._http.get(url, headers=headers)
            except httpx.RequestError as e:
                last_error = f"{gateway}: {e}"
                logger.warning(f"Failed to fetch {locator} from {gateway}: {e}")
                continue

            if resp.status_code == 200:
                logger.debug(f"Fetched {locator} from {gateway}")
                return resp.content

            last_error = f"{gateway} returned {resp.status_code}"
            logger.warning(f"Gateway {gateway} returned {resp.status_code} for {locator}")

        raise ContentStoreError(
            f"Failed to fetch {locator} from all gateways",
            locator=locator,
            details={"last_error": last_error},
        )
