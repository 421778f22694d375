"""Registry records — proof identity, linked deals, events, and receipts.

The registry event log is append-only and hash-chained: each event carries
the SHA-256 of the previous event, and ``entry_hash`` seals the event itself.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RegistryDeal(BaseModel):
    """A storage deal linked to a registered proof.

    Deal entries are append-only; only ``active`` is ever toggled.
    """

    model_config = ConfigDict(frozen=True)

    deal_id: int
    provider: str
    start_epoch: int
    end_epoch: int
    active: bool = True


class RegistryProof(BaseModel):
    """A proof as recorded by the registry."""

    model_config = ConfigDict(frozen=True)

    proof_id: str
    sha256_hash: str
    locator: str
    provider_info: str = ""
    registrant: str
    timestamp: int  # seconds since epoch
    block_number: int
    deals: list[RegistryDeal] = []
    token_id: int | None = None


class RegistryEventKind(str, Enum):
    PROOF_REGISTERED = "ProofRegistered"
    DEAL_LINKED = "DealLinked"
    DEAL_STATUS_UPDATED = "DealStatusUpdated"
    PROOF_MINTED = "ProofMinted"


class RegistryEvent(BaseModel):
    """A single entry in the registry event log."""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    kind: RegistryEventKind
    proof_id: str
    block_number: int = 0
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    fields: dict[str, Any] = {}
    previous_entry_hash: str = ""
    entry_hash: str = ""


class TransactionReceipt(BaseModel):
    """Confirmation of a registry mutation."""

    model_config = ConfigDict(frozen=True)

    tx_hash: str  # "0x" + 64 hex chars
    block_number: int
    event: RegistryEvent
    token_id: int | None = None
