"""
Tests for the Pinata/IPFS content store, driven through httpx.MockTransport.
"""

import httpx
import pytest

from veridy.adapters import PinataContentStore
from veridy.exceptions import ContentStoreError

GATEWAYS = ["https://gateway.pinata.cloud", "https://ipfs.io/"]


def make_store(handler, jwt="test-jwt", **kwargs) -> PinataContentStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PinataContentStore(jwt, GATEWAYS, http=client, **kwargs)


class TestUpload:
    @pytest.mark.asyncio
    async def test_put_returns_cid(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"IpfsHash": "bafytestcid"})

        store = make_store(handler)

        assert await store.put(b"\x00encrypted") == "bafytestcid"
        assert seen[0].url == "https://api.pinata.cloud/pinning/pinFileToIPFS"
        assert seen[0].headers["Authorization"] == "Bearer test-jwt"
        assert b"\x00encrypted" in seen[0].read()

    @pytest.mark.asyncio
    async def test_missing_jwt(self):
        store = make_store(lambda request: httpx.Response(200), jwt="")

        with pytest.raises(ContentStoreError):
            await store.put(b"data")

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503)
            return httpx.Response(200, json={"IpfsHash": "bafyretry"})

        store = make_store(handler, max_attempts=2)

        assert await store.put(b"data") == "bafyretry"
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(401, text="unauthorized")

        store = make_store(handler)

        with pytest.raises(ContentStoreError) as exc:
            await store.put(b"data")
        assert exc.value.details["status_code"] == 401
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_missing_hash_in_response(self):
        store = make_store(lambda request: httpx.Response(200, json={}))

        with pytest.raises(ContentStoreError):
            await store.put(b"data")


class TestDownload:
    @pytest.mark.asyncio
    async def test_first_gateway_wins(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bearer test-jwt"
            return httpx.Response(200, content=b"blob")

        store = make_store(handler)

        assert await store.get("bafycid") == b"blob"

    @pytest.mark.asyncio
    async def test_falls_back_to_next_gateway(self):
        hosts = []

        def handler(request: httpx.Request) -> httpx.Response:
            hosts.append(request.url.host)
            if request.url.host == "gateway.pinata.cloud":
                return httpx.Response(504)
            assert "Authorization" not in request.headers
            assert request.url.path == "/ipfs/bafycid"
            return httpx.Response(200, content=b"blob")

        store = make_store(handler)

        assert await store.get("bafycid") == b"blob"
        assert hosts == ["gateway.pinata.cloud", "ipfs.io"]

    @pytest.mark.asyncio
    async def test_network_error_falls_back(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "gateway.pinata.cloud":
                raise httpx.ConnectError("unreachable", request=request)
            return httpx.Response(200, content=b"blob")

        store = make_store(handler)

        assert await store.get("bafycid") == b"blob"

    @pytest.mark.asyncio
    async def test_all_gateways_fail(self):
        store = make_store(lambda request: httpx.Response(404))

        with pytest.raises(ContentStoreError) as exc:
            await store.get("bafycid")
        assert exc.value.locator == "bafycid"

    @pytest.mark.asyncio
    async def test_empty_locator(self):
        store = make_store(lambda request: httpx.Response(200))

        with pytest.raises(ContentStoreError):
            await store.get("")

    def test_requires_gateway(self):
        with pytest.raises(ValueError):
            PinataContentStore("jwt", [])


class TestInMemoryContentStore:
    @pytest.mark.asyncio
    async def test_roundtrip_and_missing(self, content_store):
        locator = await content_store.put(b"blob")

        assert await content_store.get(locator) == b"blob"
        with pytest.raises(ContentStoreError):
            await content_store.get("missing")

    @pytest.mark.asyncio
    async def test_aclose_is_a_no_op(self, content_store):
        locator = await content_store.put(b"blob")

        await content_store.aclose()

        assert await content_store.get(locator) == b"blob"
