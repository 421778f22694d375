"""Proof records — the certified binding of digest, locator, and timestamp.

A Proof is immutable once created.  The ``on_chain`` and ``nft`` sub-records
are attached later by separate registration steps, via ``model_copy``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class OnChainRecord(BaseModel):
    """Registry anchoring details for a proof."""

    model_config = ConfigDict(frozen=True)

    registered: bool = True
    tx_hash: str
    block_number: int
    registered_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class NftRecord(BaseModel):
    """Token minted for a proof."""

    model_config = ConfigDict(frozen=True)

    minted: bool = True
    token_id: int
    tx_hash: str
    minted_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class Proof(BaseModel):
    """A proof of existence for a single file."""

    model_config = ConfigDict(frozen=True)

    proof_id: str
    sha256_hash: str  # 64 lower-case hex chars
    locator: str  # content address, e.g. a CIDv1
    file_name: str = "unnamed-file"
    file_size: int = 0
    file_type: str = "application/octet-stream"
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    unix_timestamp: int = 0
    demo_mode: bool = False
    gateway_url: str | None = None
    explorer_url: str | None = None
    on_chain: OnChainRecord | None = None
    nft: NftRecord | None = None
    metadata: dict[str, Any] = {}

    @property
    def is_registered(self) -> bool:
        return self.on_chain is not None and self.on_chain.registered

    @property
    def is_minted(self) -> bool:
        return self.nft is not None and self.nft.minted


class VerificationResult(BaseModel):
    """Outcome of re-hashing a file against a stored proof."""

    model_config = ConfigDict(frozen=True)

    proof_id: str
    verified: bool
    expected_hash: str
    provided_hash: str
    checked_on_chain: bool = False
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class BatchItemResult(BaseModel):
    """Per-file outcome of a batch certification."""

    model_config = ConfigDict(frozen=True)

    file_name: str
    success: bool
    proof_id: str | None = None
    error: str | None = None


class BatchResult(BaseModel):
    """Outcome of ``certify_batch``."""

    model_config = ConfigDict(frozen=True)

    batch_id: str
    items: list[BatchItemResult] = []

    @property
    def total_files(self) -> int:
        return len(self.items)

    @property
    def success_count(self) -> int:
        return sum(1 for item in self.items if item.success)

    @property
    def fail_count(self) -> int:
        return self.total_files - self.success_count


class ProofPage(BaseModel):
    """A page of proofs from ``ProofStore.list_proofs``."""

    model_config = ConfigDict(frozen=True)

    proofs: list[Proof]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


class ProofStats(BaseModel):
    """Aggregate counts over the persisted proofs."""

    model_config = ConfigDict(frozen=True)

    total_proofs: int = 0
    total_size: int = 0
    on_chain_count: int = 0
    nft_count: int = 0
    demo_count: int = 0
    real_count: int = 0
    webhooks_configured: int = 0
