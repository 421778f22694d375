"""Gateway registry and health monitor.

Maintains a static, priority-ordered list of content gateways and their live
health.  Health probes are bounded ``HEAD`` requests for a small, known-good
test locator; results are cached per gateway for a freshness window (60 s by
default) and must be refreshed before they are trusted for ranking.

Ranking is a pure function of the gateway list and the health map, so the
same inputs always produce the same order.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping, Sequence

import httpx

from proofvault.core.errors import NotFoundError
from proofvault.core.state_store import PREFERRED_GATEWAY_KEY, StateStore
from proofvault.models.gateways import Gateway, GatewayHealth, GatewayTier, RankedGateway

logger = logging.getLogger(__name__)

# Small file known to be pinned on every public gateway.
HEALTH_CHECK_LOCATOR = "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi"

UNKNOWN_LATENCY_MS = 9999

DEFAULT_GATEWAYS: tuple[Gateway, ...] = (
    Gateway(gateway_id="w3s", name="Web3.Storage", url="https://w3s.link/ipfs/",
            priority=1, tier=GatewayTier.PRIMARY),
    Gateway(gateway_id="dweb", name="Dweb.link", url="https://dweb.link/ipfs/",
            priority=2, tier=GatewayTier.PRIMARY),
    Gateway(gateway_id="ipfs-io", name="IPFS.io", url="https://ipfs.io/ipfs/",
            priority=3, tier=GatewayTier.PUBLIC),
    Gateway(gateway_id="cloudflare", name="Cloudflare", url="https://cloudflare-ipfs.com/ipfs/",
            priority=4, tier=GatewayTier.PUBLIC),
    Gateway(gateway_id="pinata", name="Pinata", url="https://gateway.pinata.cloud/ipfs/",
            priority=5, tier=GatewayTier.PUBLIC),
    Gateway(gateway_id="nftstorage", name="NFT.Storage", url="https://nftstorage.link/ipfs/",
            priority=6, tier=GatewayTier.PUBLIC),
)


def rank_gateways(
    gateways: Sequence[Gateway], health: Mapping[str, GatewayHealth]
) -> list[RankedGateway]:
    """Order gateways for retrieval.

    Healthy gateways come first, fastest first (missing latency counts as
    ``UNKNOWN_LATENCY_MS``).  Unhealthy gateways follow in configured
    priority order.  Ties are broken by priority.
    """

    def _key(ranked: RankedGateway) -> tuple[int, int, int]:
        if ranked.health.healthy:
            latency = ranked.health.latency_ms
            return (0, UNKNOWN_LATENCY_MS if latency is None else latency, ranked.gateway.priority)
        return (1, 0, ranked.gateway.priority)

    ranked = [
        RankedGateway(
            gateway=gw,
            health=health.get(gw.gateway_id)
            or GatewayHealth(healthy=False, error="Not checked"),
        )
        for gw in gateways
    ]
    return sorted(ranked, key=_key)


class GatewayMonitor:
    """Owns the gateway list and the per-gateway health cache.

    Parameters
    ----------
    gateways:
        Gateways in configured priority order. Defaults to ``DEFAULT_GATEWAYS``.
    state_store:
        Optional store used to persist the preferred gateway.
    health_timeout:
        Upper bound, in seconds, for a single health probe.
    health_ttl:
        Freshness window, in seconds, for cached health results.
    transport:
        Optional httpx transport (tests inject ``httpx.MockTransport``).
    clock:
        Monotonic clock used for cache freshness.
    """

    def __init__(
        self,
        gateways: Sequence[Gateway] | None = None,
        *,
        state_store: StateStore | None = None,
        health_timeout: float = 5.0,
        health_ttl: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._gateways = sorted(gateways or DEFAULT_GATEWAYS, key=lambda g: g.priority)
        self._state_store = state_store
        self.health_timeout = health_timeout
        self.health_ttl = health_ttl
        self._transport = transport
        self._clock = clock
        self._health_cache: dict[str, tuple[float, GatewayHealth]] = {}

    @property
    def gateways(self) -> list[Gateway]:
        """Configured gateways in priority order."""
        return list(self._gateways)

    def get_gateway(self, gateway_id: str) -> Gateway:
        for gateway in self._gateways:
            if gateway.gateway_id == gateway_id:
                return gateway
        raise NotFoundError(f"Unknown gateway: {gateway_id}")

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def cached_health(self, gateway_id: str) -> GatewayHealth | None:
        """Return the cached health for a gateway if still fresh."""
        cached = self._health_cache.get(gateway_id)
        if cached and self._clock() - cached[0] < self.health_ttl:
            return cached[1]
        return None

    async def check_health(self, gateway: Gateway) -> GatewayHealth:
        """Probe a gateway, or return its cached health if still fresh.

        Never raises: failures are recorded on the returned health.
        """
        cached = self.cached_health(gateway.gateway_id)
        if cached is not None:
            return cached

        url = gateway.url_for(HEALTH_CHECK_LOCATOR)
        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(
                timeout=self.health_timeout, transport=self._transport
            ) as client:
                response = await asyncio.wait_for(
                    client.head(url, follow_redirects=True), self.health_timeout
                )
            latency = round((time.perf_counter() - start) * 1000)
            if response.is_success:
                health = GatewayHealth(healthy=True, latency_ms=latency)
            else:
                health = GatewayHealth(
                    healthy=False, latency_ms=latency, error=f"HTTP {response.status_code}"
                )
        except (httpx.TimeoutException, asyncio.TimeoutError):
            health = GatewayHealth(healthy=False, error="Timeout")
        except Exception as exc:  # noqa: BLE001
            health = GatewayHealth(healthy=False, error=str(exc) or type(exc).__name__)

        if not health.healthy:
            logger.warning("Gateway %s unhealthy: %s", gateway.name, health.error)
        self._health_cache[gateway.gateway_id] = (self._clock(), health)
        return health

    def clear_health_cache(self) -> None:
        self._health_cache.clear()

    # ------------------------------------------------------------------
    # Ranking
    # ------------------------------------------------------------------

    async def rank_endpoints(self) -> list[RankedGateway]:
        """All gateways with freshly resolved health, in retrieval order.

        Health checks are issued concurrently and joined before ranking.
        """
        results = await asyncio.gather(
            *(self.check_health(gw) for gw in self._gateways)
        )
        health = {gw.gateway_id: h for gw, h in zip(self._gateways, results)}
        return rank_gateways(self._gateways, health)

    async def best_gateway(self) -> Gateway:
        """The top-ranked healthy gateway, or the top-priority one if none is healthy."""
        ranked = await self.rank_endpoints()
        for entry in ranked:
            if entry.health.healthy:
                return entry.gateway
        return self._gateways[0]

    # ------------------------------------------------------------------
    # URLs and preference
    # ------------------------------------------------------------------

    def gateway_url(self, gateway_id: str, locator: str) -> str:
        """URL for *locator* on a named gateway; unknown ids use the first gateway."""
        try:
            gateway = self.get_gateway(gateway_id)
        except NotFoundError:
            gateway = self._gateways[0]
        return gateway.url_for(locator)

    @property
    def preferred_gateway(self) -> Gateway:
        if self._state_store is not None:
            saved = self._state_store.get(PREFERRED_GATEWAY_KEY)
            if saved:
                try:
                    return self.get_gateway(saved)
                except NotFoundError:
                    logger.warning("Preferred gateway %s no longer configured", saved)
        return self._gateways[0]

    def set_preferred_gateway(self, gateway_id: str) -> Gateway:
        gateway = self.get_gateway(gateway_id)
        if self._state_store is not None:
            self._state_store.put(PREFERRED_GATEWAY_KEY, gateway.gateway_id)
        return gateway
