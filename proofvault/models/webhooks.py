"""Webhook subscriptions, delivery logs, and event payloads.

Event payloads form a closed tagged union keyed on ``event``.  Each kind has
a fixed payload shape, serialized with camelCase keys on the wire.
"""

from __future__ import annotations

import secrets
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class WebhookEvent(str, Enum):
    """Event kinds a webhook can subscribe to."""

    PROOF_CREATED = "proof_created"
    PROOF_VERIFIED = "proof_verified"
    NFT_MINTED = "nft_minted"
    PROOF_REGISTERED = "proof_registered"
    BATCH_COMPLETED = "batch_completed"


EVENT_DESCRIPTIONS: dict[WebhookEvent, str] = {
    WebhookEvent.PROOF_CREATED: "Triggered when a new proof is generated",
    WebhookEvent.PROOF_VERIFIED: "Triggered when a proof is verified against a file",
    WebhookEvent.NFT_MINTED: "Triggered when a proof NFT is minted",
    WebhookEvent.PROOF_REGISTERED: "Triggered when a proof is registered on the ledger",
    WebhookEvent.BATCH_COMPLETED: "Triggered when a batch upload completes",
}


def _new_webhook_id() -> str:
    return f"wh-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


class Webhook(BaseModel):
    """A webhook subscription."""

    model_config = ConfigDict(frozen=True)

    webhook_id: str = Field(default_factory=_new_webhook_id)
    name: str = "Unnamed Webhook"
    url: str
    events: frozenset[WebhookEvent]
    secret: str | None = None
    enabled: bool = True
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    last_triggered_at: datetime | None = None
    success_count: int = 0
    fail_count: int = 0

    def subscribes_to(self, event: WebhookEvent) -> bool:
        return self.enabled and event in self.events


class WebhookLogEntry(BaseModel):
    """One delivery attempt, kept in a bounded ring buffer."""

    model_config = ConfigDict(frozen=True)

    webhook_id: str
    event: str
    success: bool
    error: str | None = None
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class WebhookTestResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    status_code: int | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Event payloads
# ---------------------------------------------------------------------------

class _PayloadBase(BaseModel):
    model_config = ConfigDict(
        frozen=True, alias_generator=to_camel, populate_by_name=True
    )

    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def data(self) -> dict:
        """Return the wire ``data`` object for this payload."""
        return self.model_dump(mode="json", by_alias=True, exclude={"event"})


class ProofCreatedPayload(_PayloadBase):
    event: Literal[WebhookEvent.PROOF_CREATED] = WebhookEvent.PROOF_CREATED
    proof_id: str
    sha256_hash: str
    locator: str
    file_name: str
    file_size: int


class ProofVerifiedPayload(_PayloadBase):
    event: Literal[WebhookEvent.PROOF_VERIFIED] = WebhookEvent.PROOF_VERIFIED
    proof_id: str
    verified: bool


class NftMintedPayload(_PayloadBase):
    event: Literal[WebhookEvent.NFT_MINTED] = WebhookEvent.NFT_MINTED
    proof_id: str
    token_id: int
    tx_hash: str


class ProofRegisteredPayload(_PayloadBase):
    event: Literal[WebhookEvent.PROOF_REGISTERED] = WebhookEvent.PROOF_REGISTERED
    proof_id: str
    tx_hash: str
    block_number: int


class BatchCompletedPayload(_PayloadBase):
    event: Literal[WebhookEvent.BATCH_COMPLETED] = WebhookEvent.BATCH_COMPLETED
    batch_id: str
    total_files: int
    success_count: int
    fail_count: int


EventPayload = Annotated[
    Union[
        ProofCreatedPayload,
        ProofVerifiedPayload,
        NftMintedPayload,
        ProofRegisteredPayload,
        BatchCompletedPayload,
    ],
    Field(discriminator="event"),
]

EVENT_PAYLOAD_ADAPTER: TypeAdapter[EventPayload] = TypeAdapter(EventPayload)
