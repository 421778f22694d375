"""Storage-deal models — deal records, per-locator summaries, and analytics."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class DealStatus(str, Enum):
    """Lifecycle state of a storage deal (and of a rolled-up summary)."""

    UNKNOWN = "unknown"
    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    SLASHED = "slashed"
    NOT_FOUND = "not_found"


class Deal(BaseModel):
    """A storage commitment between a client and a storage provider."""

    model_config = ConfigDict(frozen=True)

    deal_id: str
    provider: str
    status: DealStatus = DealStatus.UNKNOWN
    piece_locator: str | None = None
    data_locator: str | None = None
    activation: datetime | None = None
    expiration: datetime | None = None
    created_at: datetime | None = None


class DealSummary(BaseModel):
    """All known deals for a single content locator."""

    model_config = ConfigDict(frozen=True)

    status: DealStatus
    deals: list[Deal] = []
    pinned: bool = False
    dag_size: int | None = None
    simulated: bool = False
    message: str | None = None

    @property
    def active_count(self) -> int:
        return sum(1 for d in self.deals if d.status == DealStatus.ACTIVE)


class HealthSeverity(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"
    NONE = "none"


class HealthScore(BaseModel):
    """Derived 0–100 rating of deal redundancy."""

    model_config = ConfigDict(frozen=True)

    score: int
    label: str
    severity: HealthSeverity


class StorageAnalytics(BaseModel):
    """Deal statistics folded across a set of locators."""

    model_config = ConfigDict(frozen=True)

    total_locators: int = 0
    active_deals: int = 0
    pending_deals: int = 0
    total_replicas: int = 0
    unique_providers: int = 0
    avg_replication: float = 0.0
    oldest_deal: datetime | None = None
    newest_deal: datetime | None = None


class NetworkStats(BaseModel):
    """Storage-network overview figures, human formatted."""

    model_config = ConfigDict(frozen=True)

    total_power: str
    total_deals: int
    active_deals: int
    tipset_height: int
    circulating_supply: str
    simulated: bool = False
