"""Tests for content storage: the local CID store and the HTTP upload client."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from proofvault.core.content_store import (
    ContentStorage,
    LocalContentStore,
    Web3StorageClient,
)
from proofvault.core.errors import (
    NotFoundError,
    OperationTimeoutError,
    UnauthorizedError,
    UnavailableError,
)
from proofvault.core.gateways import GatewayMonitor
from proofvault.core.hasher import compute_locator
from proofvault.core.retrieval import FailoverRetriever


class TestLocalContentStore:
    def test_store_returns_cid(self, local_store: LocalContentStore):
        locator = local_store.store(b"payload")
        assert locator == compute_locator(b"payload")
        assert local_store.exists(locator)

    def test_retrieve(self, local_store: LocalContentStore):
        locator = local_store.store(b"payload")
        assert local_store.retrieve(locator) == b"payload"

    def test_store_is_idempotent(self, local_store: LocalContentStore):
        assert local_store.store(b"same") == local_store.store(b"same")

    def test_missing_content(self, local_store: LocalContentStore):
        with pytest.raises(NotFoundError):
            local_store.retrieve(compute_locator(b"never stored"))

    def test_verify_detects_tampering(self, local_store: LocalContentStore):
        locator = local_store.store(b"original")
        assert local_store.verify(locator)
        local_store._content_path(locator).write_bytes(b"tampered")
        assert not local_store.verify(locator)

    def test_async_interface(self, local_store: LocalContentStore):
        assert isinstance(local_store, ContentStorage)
        assert local_store.simulated is True

        async def _round_trip() -> bytes:
            locator = await local_store.upload(b"async bytes", "a.bin")
            return await local_store.download(locator)

        assert asyncio.run(_round_trip()) == b"async bytes"


def _client(transport: httpx.MockTransport, token: str = "token") -> Web3StorageClient:
    monitor = GatewayMonitor(transport=transport)
    retriever = FailoverRetriever(monitor, transport=transport)
    return Web3StorageClient("https://api.example", token, retriever, transport=transport)


class TestWeb3StorageClient:
    def test_upload_posts_with_bearer_token(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(200, json={"cid": "bafyremote"}))
        client = _client(transport)

        locator = asyncio.run(client.upload(b"data", "report.pdf"))

        assert locator == "bafyremote"
        request = transport.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "https://api.example/upload"
        assert request.headers["Authorization"] == "Bearer token"
        assert request.headers["X-Name"] == "report.pdf"
        assert request.content == b"data"
        assert client.simulated is False

    def test_missing_token(self, ok_transport):
        with pytest.raises(UnavailableError):
            asyncio.run(_client(ok_transport, token="").upload(b"data"))

    @pytest.mark.parametrize(
        ("status", "error"),
        [(401, UnauthorizedError), (403, UnauthorizedError), (503, UnavailableError)],
    )
    def test_http_errors(self, make_transport, status, error):
        transport = make_transport(lambda request: httpx.Response(status, text="nope"))
        with pytest.raises(error):
            asyncio.run(_client(transport).upload(b"data"))

    def test_timeout(self, make_transport):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(OperationTimeoutError):
            asyncio.run(_client(make_transport(handler)).upload(b"data"))

    def test_connection_error(self, make_transport):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(UnavailableError):
            asyncio.run(_client(make_transport(handler)).upload(b"data"))

    def test_missing_cid_in_response(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(200, content=json.dumps({}).encode()))
        with pytest.raises(UnavailableError):
            asyncio.run(_client(transport).upload(b"data"))

    def test_download_goes_through_gateways(self, make_transport):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "HEAD":
                return httpx.Response(200)
            return httpx.Response(200, content=b"from gateway")

        assert asyncio.run(_client(make_transport(handler)).download("bafyx")) == b"from gateway"
