"""ProofVault data models — all Pydantic v2, all frozen (immutable)."""

from proofvault.models.deals import (
    Deal,
    DealStatus,
    DealSummary,
    HealthScore,
    HealthSeverity,
    NetworkStats,
    StorageAnalytics,
)
from proofvault.models.gateways import (
    Gateway,
    GatewayHealth,
    GatewayTier,
    RankedGateway,
    RetrievalAttempt,
    RetrievalResult,
)
from proofvault.models.proofs import (
    BatchItemResult,
    BatchResult,
    NftRecord,
    OnChainRecord,
    Proof,
    ProofPage,
    ProofStats,
    VerificationResult,
)
from proofvault.models.registry import (
    RegistryDeal,
    RegistryEvent,
    RegistryEventKind,
    RegistryProof,
    TransactionReceipt,
)
from proofvault.models.webhooks import (
    EVENT_PAYLOAD_ADAPTER,
    BatchCompletedPayload,
    EventPayload,
    NftMintedPayload,
    ProofCreatedPayload,
    ProofRegisteredPayload,
    ProofVerifiedPayload,
    Webhook,
    WebhookEvent,
    WebhookLogEntry,
    WebhookTestResult,
)

__all__ = [
    # proofs
    "Proof",
    "OnChainRecord",
    "NftRecord",
    "VerificationResult",
    "BatchItemResult",
    "BatchResult",
    "ProofPage",
    "ProofStats",
    # gateways
    "Gateway",
    "GatewayHealth",
    "GatewayTier",
    "RankedGateway",
    "RetrievalAttempt",
    "RetrievalResult",
    # deals
    "Deal",
    "DealStatus",
    "DealSummary",
    "HealthScore",
    "HealthSeverity",
    "NetworkStats",
    "StorageAnalytics",
    # registry
    "RegistryDeal",
    "RegistryEvent",
    "RegistryEventKind",
    "RegistryProof",
    "TransactionReceipt",
    # webhooks
    "WebhookEvent",
    "Webhook",
    "WebhookLogEntry",
    "WebhookTestResult",
    "EventPayload",
    "EVENT_PAYLOAD_ADAPTER",
    "ProofCreatedPayload",
    "ProofVerifiedPayload",
    "NftMintedPayload",
    "ProofRegisteredPayload",
    "BatchCompletedPayload",
]
