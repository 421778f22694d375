"""Gateway models — content-addressed retrieval endpoints and their health."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class GatewayTier(str, Enum):
    """Whether a gateway is operated by a storage provider or is public."""

    PRIMARY = "primary"
    PUBLIC = "public"


class Gateway(BaseModel):
    """A named HTTP endpoint that resolves a locator to bytes.

    ``url`` is a prefix; the locator is appended to form the resource URL.
    Lower ``priority`` values are preferred.
    """

    model_config = ConfigDict(frozen=True)

    gateway_id: str
    name: str
    url: str
    priority: int
    tier: GatewayTier = GatewayTier.PUBLIC

    def url_for(self, locator: str) -> str:
        return f"{self.url}{locator}"


class GatewayHealth(BaseModel):
    """Result of a single health probe against a gateway."""

    model_config = ConfigDict(frozen=True)

    healthy: bool
    latency_ms: int | None = None
    last_checked_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    error: str | None = None


class RankedGateway(BaseModel):
    """A gateway paired with its current health, as returned by ranking."""

    model_config = ConfigDict(frozen=True)

    gateway: Gateway
    health: GatewayHealth


class RetrievalAttempt(BaseModel):
    """One gateway attempt during failover retrieval."""

    model_config = ConfigDict(frozen=True)

    gateway_id: str
    url: str
    success: bool
    status_code: int | None = None
    error: str | None = None


class RetrievalResult(BaseModel):
    """Bytes retrieved through failover, with the gateway that served them."""

    model_config = ConfigDict(frozen=True)

    payload: bytes
    gateway: str  # gateway name
    url: str
    attempts: list[RetrievalAttempt] = []

    @property
    def failed_attempts(self) -> list[RetrievalAttempt]:
        return [a for a in self.attempts if not a.success]
