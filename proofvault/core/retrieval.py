"""Failover retrieval — resolve a locator to bytes through ranked gateways.

Attempts are strictly sequential: one gateway attempt completes (success or
failure) before the next begins, which preserves preference order and keeps
at most one request in flight.  Individual gateway failures are recovered by
advancing to the next candidate; only exhaustion is surfaced.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from proofvault.core.errors import AllEndpointsFailedError, InvalidInputError
from proofvault.core.gateways import GatewayMonitor
from proofvault.models.gateways import Gateway, RetrievalAttempt, RetrievalResult

logger = logging.getLogger(__name__)


class FailoverRetriever:
    """Fetches content through the gateways of a ``GatewayMonitor``.

    Parameters
    ----------
    monitor:
        Supplies gateway ranking and health.
    timeout:
        Default per-attempt timeout in seconds.
    fallback_count:
        How many top-priority gateways to try when none is healthy.
    transport:
        Optional httpx transport (tests inject ``httpx.MockTransport``).
    """

    def __init__(
        self,
        monitor: GatewayMonitor,
        *,
        timeout: float = 30.0,
        fallback_count: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.monitor = monitor
        self.timeout = timeout
        self.fallback_count = fallback_count
        self._transport = transport

    async def resolve(self, locator: str) -> str:
        """URL for *locator* on the best available gateway.

        Degrades to the top-priority gateway when none is healthy.
        """
        gateway = await self.monitor.best_gateway()
        return gateway.url_for(locator)

    async def candidates(self) -> list[Gateway]:
        """Gateways in the order they will be tried."""
        ranked = await self.monitor.rank_endpoints()
        healthy = [entry.gateway for entry in ranked if entry.health.healthy]
        if healthy:
            return healthy
        return self.monitor.gateways[: self.fallback_count]

    async def fetch_with_failover(
        self, locator: str, *, timeout: float | None = None
    ) -> RetrievalResult:
        """Fetch *locator*, trying gateways in order until one succeeds.

        Raises
        ------
        AllEndpointsFailedError
            If every candidate gateway failed.  Carries the attempt trace
            and the last underlying error.
        """
        if not locator:
            raise InvalidInputError("Locator cannot be empty")

        per_attempt = self.timeout if timeout is None else timeout
        attempts: list[RetrievalAttempt] = []
        last_error: str | None = None

        for gateway in await self.candidates():
            url = gateway.url_for(locator)
            try:
                async with httpx.AsyncClient(
                    timeout=per_attempt, transport=self._transport
                ) as client:
                    response = await asyncio.wait_for(
                        client.get(url, follow_redirects=True), per_attempt
                    )
            except (httpx.TimeoutException, asyncio.TimeoutError):
                last_error = "Timeout"
                attempts.append(
                    RetrievalAttempt(gateway_id=gateway.gateway_id, url=url,
                                     success=False, error=last_error)
                )
                logger.warning("Gateway %s timed out for %s", gateway.name, locator)
                continue
            except httpx.HTTPError as exc:
                last_error = str(exc) or type(exc).__name__
                attempts.append(
                    RetrievalAttempt(gateway_id=gateway.gateway_id, url=url,
                                     success=False, error=last_error)
                )
                logger.warning("Gateway %s failed: %s", gateway.name, last_error)
                continue

            if response.is_success:
                attempts.append(
                    RetrievalAttempt(gateway_id=gateway.gateway_id, url=url,
                                     success=True, status_code=response.status_code)
                )
                logger.info("Retrieved %s via %s", locator, gateway.name)
                return RetrievalResult(
                    payload=response.content,
                    gateway=gateway.name,
                    url=url,
                    attempts=attempts,
                )

            last_error = f"HTTP {response.status_code}"
            attempts.append(
                RetrievalAttempt(gateway_id=gateway.gateway_id, url=url, success=False,
                                 status_code=response.status_code, error=last_error)
            )
            logger.warning("Gateway %s returned %s for %s", gateway.name, last_error, locator)

        raise AllEndpointsFailedError(locator, attempts=attempts, last_error=last_error)
