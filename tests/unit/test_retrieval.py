"""Tests for sequential failover retrieval."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from proofvault.core.errors import AllEndpointsFailedError, InvalidInputError, UnavailableError
from proofvault.core.gateways import GatewayMonitor
from proofvault.core.retrieval import FailoverRetriever

LOCATOR = "bafybeihelloworld"


def _retriever(transport: httpx.MockTransport, **kwargs) -> FailoverRetriever:
    return FailoverRetriever(GatewayMonitor(transport=transport), transport=transport, **kwargs)


class TestFailover:
    def test_third_gateway_succeeds(self, make_transport):
        """No gateway passes its health probe, so the top three by priority
        are tried in order; only the third answers."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "HEAD":
                return httpx.Response(503)
            if request.url.host == "w3s.link":
                return httpx.Response(500)
            if request.url.host == "dweb.link":
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, content=b"third payload")

        result = asyncio.run(_retriever(make_transport(handler)).fetch_with_failover(LOCATOR))

        assert result.payload == b"third payload"
        assert result.gateway == "IPFS.io"
        assert result.url == f"https://ipfs.io/ipfs/{LOCATOR}"
        assert len(result.failed_attempts) == 2
        assert [a.gateway_id for a in result.attempts] == ["w3s", "dweb", "ipfs-io"]
        assert result.attempts[0].error == "HTTP 500"

    def test_only_healthy_gateways_tried(self, make_transport):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "cloudflare-ipfs.com":
                return httpx.Response(200, content=b"ok")
            return httpx.Response(502)

        transport = make_transport(handler)
        result = asyncio.run(_retriever(transport).fetch_with_failover(LOCATOR))

        assert result.gateway == "Cloudflare"
        assert len(result.attempts) == 1
        gets = [r for r in transport.requests if r.method == "GET"]
        assert len(gets) == 1

    def test_attempts_are_sequential(self, make_transport):
        order: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "HEAD":
                return httpx.Response(503)
            order.append(request.url.host)
            return httpx.Response(404)

        with pytest.raises(AllEndpointsFailedError):
            asyncio.run(_retriever(make_transport(handler)).fetch_with_failover(LOCATOR))
        assert order == ["w3s.link", "dweb.link", "ipfs.io"]

    def test_exhaustion_carries_trace(self, make_transport):
        transport = make_transport(lambda request: httpx.Response(500))
        with pytest.raises(AllEndpointsFailedError) as exc_info:
            asyncio.run(_retriever(transport, fallback_count=2).fetch_with_failover(LOCATOR))

        err = exc_info.value
        assert isinstance(err, UnavailableError)
        assert err.locator == LOCATOR
        assert len(err.attempts) == 2
        assert err.last_error == "HTTP 500"

    def test_timeout_moves_on(self, make_transport):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "HEAD":
                return httpx.Response(503)
            if request.url.host == "w3s.link":
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, content=b"second")

        result = asyncio.run(_retriever(make_transport(handler)).fetch_with_failover(LOCATOR))
        assert result.payload == b"second"
        assert result.attempts[0].error == "Timeout"

    def test_zero_timeout_is_honoured(self, make_transport):
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(0.05)
            return httpx.Response(200, content=b"slow")

        with pytest.raises(AllEndpointsFailedError) as exc_info:
            asyncio.run(
                _retriever(make_transport(handler)).fetch_with_failover(LOCATOR, timeout=0)
            )
        assert {a.error for a in exc_info.value.attempts} == {"Timeout"}

    def test_empty_locator(self, ok_transport):
        with pytest.raises(InvalidInputError):
            asyncio.run(_retriever(ok_transport).fetch_with_failover(""))


class TestResolve:
    def test_resolve_uses_best_gateway(self, make_transport):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200 if request.url.host == "nftstorage.link" else 500)

        url = asyncio.run(_retriever(make_transport(handler)).resolve(LOCATOR))
        assert url == f"https://nftstorage.link/ipfs/{LOCATOR}"
