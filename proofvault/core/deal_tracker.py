"""Storage-deal tracking with TTL caching and deterministic simulation.

``DealTracker`` queries a ``DealSource`` for the deals backing a content
locator and caches every summary (real or simulated) for a fixed TTL.  When
the source answers "not found" the summary is ``not_found``; when the query
fails for any other reason and a fallback source is configured, the tracker
answers from the fallback instead.

``SimulatedDealSource`` derives its deals from the SHA-256 of the locator
string and a fixed epoch, so repeated calls for the same locator return the
same providers and the same activation/expiration windows.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import math
import time
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import Any, Protocol, runtime_checkable

import httpx
from pydantic import ValidationError

from proofvault.core.errors import NotFoundError, OperationTimeoutError, UnavailableError
from proofvault.models.deals import (
    Deal,
    DealStatus,
    DealSummary,
    HealthScore,
    HealthSeverity,
    NetworkStats,
    StorageAnalytics,
)

logger = logging.getLogger(__name__)

SIMULATION_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)
SIMULATED_PROVIDERS: tuple[str, ...] = ("f01234", "f05678", "f09012")
NETWORK_STATS_TTL = 60.0


# ---------------------------------------------------------------------------
# Status helpers
# ---------------------------------------------------------------------------

def map_deal_status(status: str | None) -> DealStatus:
    """Map a status string from the deal API onto ``DealStatus``."""
    value = (status or "").lower()
    if value in ("active", "activedeal"):
        return DealStatus.ACTIVE
    if value in ("pending", "published", "queued"):
        return DealStatus.PENDING
    if value == "expired":
        return DealStatus.EXPIRED
    if value == "slashed":
        return DealStatus.SLASHED
    return DealStatus.UNKNOWN


def roll_up_status(deals: Iterable[Deal]) -> DealStatus:
    """Active if any deal is active, else pending if any is pending,
    else expired if any deal exists, else unknown."""
    deals = list(deals)
    if any(d.status == DealStatus.ACTIVE for d in deals):
        return DealStatus.ACTIVE
    if any(d.status == DealStatus.PENDING for d in deals):
        return DealStatus.PENDING
    if deals:
        return DealStatus.EXPIRED
    return DealStatus.UNKNOWN


def parse_status_response(data: dict[str, Any]) -> DealSummary:
    """Build a ``DealSummary`` from a storage status API response body."""
    deals = [
        Deal(
            deal_id=str(raw.get("dealId", "")),
            provider=str(raw.get("storageProvider", "")),
            status=map_deal_status(raw.get("status")),
            piece_locator=raw.get("pieceCid"),
            data_locator=raw.get("dataCid"),
            activation=raw.get("dealActivation"),
            expiration=raw.get("dealExpiration"),
            created_at=raw.get("created"),
        )
        for raw in data.get("deals") or []
    ]
    return DealSummary(
        status=roll_up_status(deals),
        deals=deals,
        pinned=bool(data.get("pins")),
        dag_size=data.get("dagSize"),
    )


def health_score(summary: DealSummary | None) -> HealthScore:
    """Score deal redundancy on a fixed 0–100 step scale."""
    if summary is None or summary.status == DealStatus.NOT_FOUND:
        return HealthScore(score=0, label="No Data", severity=HealthSeverity.NONE)

    active = summary.active_count
    if active >= 3:
        return HealthScore(score=100, label="Excellent", severity=HealthSeverity.GOOD)
    if active == 2:
        return HealthScore(score=80, label="Good", severity=HealthSeverity.GOOD)
    if active == 1:
        return HealthScore(score=60, label="Fair", severity=HealthSeverity.WARNING)
    if summary.status == DealStatus.PENDING:
        return HealthScore(score=40, label="Pending", severity=HealthSeverity.WARNING)
    return HealthScore(score=20, label="At Risk", severity=HealthSeverity.CRITICAL)


def format_bytes(num_bytes: float) -> str:
    sizes = ["B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB"]
    if num_bytes <= 0:
        return "0 B"
    i = min(int(math.log(num_bytes, 1024)), len(sizes) - 1)
    return f"{num_bytes / 1024 ** i:.2f} {sizes[i]}"


def format_fil(atto_fil: float) -> str:
    fil = atto_fil / 1e18
    if fil >= 1e9:
        return f"{fil / 1e9:.2f}B FIL"
    if fil >= 1e6:
        return f"{fil / 1e6:.2f}M FIL"
    if fil >= 1e3:
        return f"{fil / 1e3:.2f}K FIL"
    return f"{fil:.2f} FIL"


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------

@runtime_checkable
class DealSource(Protocol):
    """Anything that can look up the deals for a locator.

    Implementations raise ``NotFoundError`` when the locator is unknown and
    ``UnavailableError`` when the lookup itself failed.
    """

    async def fetch(self, locator: str) -> DealSummary:
        ...


class Web3StorageDealSource:
    """Deal status lookup against a ``/status/{cid}`` HTTP API."""

    def __init__(
        self,
        api_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def fetch(self, locator: str) -> DealSummary:
        url = f"{self.api_url}/status/{locator}"
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.get(url, headers={"Accept": "application/json"})
                if response.status_code == 404:
                    raise NotFoundError(f"No deal status for {locator}")
                response.raise_for_status()
                data = response.json()
            except httpx.TimeoutException as e:
                raise OperationTimeoutError(f"Deal status query timed out: {e}") from e
            except httpx.HTTPStatusError as e:
                raise UnavailableError(f"Deal API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise UnavailableError(f"Failed to connect to deal API: {e}") from e
            except ValueError as e:
                raise UnavailableError(f"Deal API returned invalid JSON: {e}") from e
        try:
            if not isinstance(data, dict):
                raise TypeError(f"expected an object, got {type(data).__name__}")
            return parse_status_response(data)
        except (AttributeError, TypeError, ValidationError) as e:
            logger.warning("Malformed deal status for %s: %s", locator, e)
            raise UnavailableError("Deal API returned malformed data") from e


class SimulatedDealSource:
    """Deterministic deal simulation keyed on the locator string."""

    async def fetch(self, locator: str) -> DealSummary:
        return self.simulate(locator)

    @staticmethod
    def simulate(locator: str) -> DealSummary:
        digest = hashlib.sha256(locator.encode("utf-8")).digest()
        seed = int.from_bytes(digest[:8], "big")

        if seed % 3 == 0:
            return DealSummary(
                status=DealStatus.PENDING,
                simulated=True,
                message="Deal aggregation in progress",
            )

        anchor = SIMULATION_EPOCH + timedelta(days=digest[8] % 180)
        count = (seed // 3) % 3 + 1
        deals = []
        for i, provider in enumerate(SIMULATED_PROVIDERS[:count]):
            created = anchor + timedelta(days=i * 10)
            activation = created + timedelta(days=5)
            deals.append(
                Deal(
                    deal_id=str(1_000_000 + (seed * (i + 1)) % 999_999),
                    provider=provider,
                    status=DealStatus.ACTIVE,
                    piece_locator=f"baga6ea4seaq{locator[-32:]}",
                    data_locator=locator,
                    activation=activation,
                    expiration=activation + timedelta(days=540 - i * 30),
                    created_at=created,
                )
            )
        return DealSummary(status=DealStatus.ACTIVE, deals=deals, pinned=True, simulated=True)


# ---------------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------------

class DealTracker:
    """Cached deal-status lookups and derived analytics.

    Parameters
    ----------
    source:
        Primary deal source.
    fallback:
        Source consulted when the primary fails with anything other than
        not-found.  ``None`` lets the failure propagate.
    ttl:
        Cache lifetime in seconds. Entries older than ``2 * ttl`` are
        evicted on the next cache write.
    network_stats_url:
        Overview endpoint for ``get_network_stats``.
    transport:
        Optional httpx transport for the network stats request.
    clock:
        Monotonic clock used for cache freshness.
    """

    def __init__(
        self,
        source: DealSource,
        *,
        fallback: DealSource | None = None,
        ttl: float = 300.0,
        network_stats_url: str = "https://filfox.info/api/v1/overview",
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._fallback = fallback
        self.ttl = ttl
        self.network_stats_url = network_stats_url
        self._transport = transport
        self._clock = clock
        self._cache: dict[str, tuple[float, DealSummary]] = {}
        self._network_stats: tuple[float, NetworkStats] | None = None

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def cached(self, locator: str) -> DealSummary | None:
        entry = self._cache.get(locator)
        if entry and self._clock() - entry[0] < self.ttl:
            return entry[1]
        return None

    def _cache_put(self, locator: str, summary: DealSummary) -> None:
        now = self._clock()
        stale = [k for k, (ts, _) in self._cache.items() if now - ts > self.ttl * 2]
        for key in stale:
            del self._cache[key]
        self._cache[locator] = (now, summary)

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def clear_cache(self) -> None:
        self._cache.clear()
        self._network_stats = None

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_deal_status(self, locator: str) -> DealSummary:
        """Deal summary for *locator*, served from cache when fresh."""
        if not locator:
            return DealSummary(status=DealStatus.NOT_FOUND)

        cached = self.cached(locator)
        if cached is not None:
            return cached

        try:
            summary = await self._source.fetch(locator)
        except NotFoundError:
            summary = DealSummary(status=DealStatus.NOT_FOUND)
        except UnavailableError as exc:
            if self._fallback is None:
                raise
            logger.warning("Deal status query failed for %s (%s); using simulation", locator, exc)
            summary = await self._fallback.fetch(locator)

        self._cache_put(locator, summary)
        return summary

    async def aggregate_storage_analytics(self, locators: list[str]) -> StorageAnalytics:
        """Fold deal summaries for many locators into storage analytics.

        Lookups are independent, idempotent reads and run concurrently.
        """
        summaries = await asyncio.gather(*(self.get_deal_status(c) for c in locators))

        active = pending = replicas = 0
        providers: set[str] = set()
        oldest: datetime | None = None
        newest: datetime | None = None

        for summary in summaries:
            if summary.status == DealStatus.ACTIVE:
                active += 1
            elif summary.status == DealStatus.PENDING:
                pending += 1
            for deal in summary.deals:
                replicas += 1
                if deal.provider:
                    providers.add(deal.provider)
                if deal.created_at is not None:
                    if oldest is None or deal.created_at < oldest:
                        oldest = deal.created_at
                    if newest is None or deal.created_at > newest:
                        newest = deal.created_at

        return StorageAnalytics(
            total_locators=len(locators),
            active_deals=active,
            pending_deals=pending,
            total_replicas=replicas,
            unique_providers=len(providers),
            avg_replication=round(replicas / len(locators), 1) if locators else 0.0,
            oldest_deal=oldest,
            newest_deal=newest,
        )

    async def get_network_stats(self) -> NetworkStats:
        """Storage-network overview, cached for a minute; simulated on failure."""
        if self._network_stats and self._clock() - self._network_stats[0] < NETWORK_STATS_TTL:
            return self._network_stats[1]

        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
                response = await client.get(self.network_stats_url)
                response.raise_for_status()
                data = response.json()
            stats = NetworkStats(
                total_power=format_bytes(
                    float((data.get("power") or {}).get("totalQualityAdjPower") or 0)
                ),
                total_deals=int((data.get("market") or {}).get("totalDeals") or 0),
                active_deals=int((data.get("market") or {}).get("activeDeals") or 0),
                tipset_height=int((data.get("tipset") or {}).get("height") or 0),
                circulating_supply=format_fil(
                    float((data.get("economics") or {}).get("circulatingFil") or 0)
                ),
            )
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Network stats unavailable (%s); using simulated figures", exc)
            return NetworkStats(
                total_power="25.50 EiB",
                total_deals=2_345_678,
                active_deals=1_234_567,
                tipset_height=3_456_789,
                circulating_supply="456.78M FIL",
                simulated=True,
            )

        self._network_stats = (self._clock(), stats)
        return stats
