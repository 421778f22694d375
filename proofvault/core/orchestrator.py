"""Certification orchestrator — the central coordinator for ProofVault.

The orchestrator wires together the state store, proof store, content
storage, gateway monitor, failover retriever, deal tracker, registry and
webhook dispatcher, and drives the certification pipeline:

    digest -> duplicate check -> upload -> (register) -> persist -> notify

Every external collaborator is chosen by configuration; tests swap in
simulations or an ``httpx.MockTransport`` without touching this module.
"""

from __future__ import annotations

import logging
import mimetypes
import time
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

import httpx

from proofvault.config import ProofVaultConfig
from proofvault.core.content_store import (
    ContentIntegrityError,
    ContentStorage,
    LocalContentStore,
    Web3StorageClient,
)
from proofvault.core.deal_tracker import (
    DealTracker,
    SimulatedDealSource,
    Web3StorageDealSource,
)
from proofvault.core.errors import (
    AlreadyMintedError,
    DuplicateHashError,
    DuplicateProofIdError,
    InvalidInputError,
    ProofVaultError,
    UnavailableError,
)
from proofvault.core.gateways import GatewayMonitor
from proofvault.core.hasher import compute_digest, generate_proof_id
from proofvault.core.proof_store import ProofStore, SortField, SortOrder
from proofvault.core.registry import ProofRegistry, build_registry
from proofvault.core.retrieval import FailoverRetriever
from proofvault.core.state_store import StateStore
from proofvault.models.deals import DealSummary, StorageAnalytics
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
from proofvault.models.webhooks import (
    BatchCompletedPayload,
    NftMintedPayload,
    ProofCreatedPayload,
    ProofRegisteredPayload,
    ProofVerifiedPayload,
)
from proofvault.notifications import WebhookDispatcher, WebhookManager

logger = logging.getLogger(__name__)


class CertificationOrchestrator:
    """Certifies files and manages the resulting proofs.

    Parameters
    ----------
    cfg:
        Runtime configuration. Uses ``ProofVaultConfig()`` if not provided.
    transport:
        Optional httpx transport shared by every outbound HTTP client.
    state_store, storage, registry:
        Overrides for the configured collaborators.
    """

    def __init__(
        self,
        cfg: ProofVaultConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        state_store: StateStore | None = None,
        storage: ContentStorage | None = None,
        registry: ProofRegistry | None = None,
    ) -> None:
        self.config = cfg or ProofVaultConfig()
        c = self.config

        # Persisted state
        self.state_store = state_store or StateStore(c.state_db_path)
        self.proofs = ProofStore(self.state_store)

        # Retrieval
        self.monitor = GatewayMonitor(
            state_store=self.state_store,
            health_timeout=c.gateway_health_timeout,
            health_ttl=c.gateway_health_ttl,
            transport=transport,
        )
        self.retriever = FailoverRetriever(
            self.monitor,
            timeout=c.retrieval_timeout,
            fallback_count=c.failover_fallback_count,
            transport=transport,
        )

        # Content storage
        self.local_store = LocalContentStore(c.content_store_path)
        if storage is not None:
            self.storage = storage
        elif c.storage_backend == "web3storage":
            self.storage = Web3StorageClient(
                c.storage_api_url,
                c.storage_api_token,
                self.retriever,
                timeout=c.upload_timeout,
                transport=transport,
            )
        else:
            self.storage = self.local_store

        # Deals
        if c.deal_source == "web3storage":
            source = Web3StorageDealSource(
                c.deal_api_url, timeout=c.deal_query_timeout, transport=transport
            )
        else:
            source = SimulatedDealSource()
        self.deals = DealTracker(
            source,
            fallback=SimulatedDealSource() if c.deal_simulation_fallback else None,
            ttl=c.deal_cache_ttl,
            network_stats_url=c.network_stats_url,
            transport=transport,
        )

        # Registry and notifications
        self.registry = registry or build_registry(c, self.state_store)
        self.webhooks = WebhookManager(self.state_store)
        self.dispatcher = WebhookDispatcher(
            self.webhooks, timeout=c.webhook_timeout, transport=transport
        )

    # ------------------------------------------------------------------
    # Certification
    # ------------------------------------------------------------------

    async def _upload(self, data: bytes, file_name: str) -> tuple[str, bool]:
        """Upload through the configured storage; returns (locator, demo_mode)."""
        try:
            locator = await self.storage.upload(data, file_name)
            return locator, self.storage.simulated
        except UnavailableError as exc:
            if not self.config.storage_fallback or self.storage is self.local_store:
                raise
            logger.warning("Storage unavailable (%s); storing %s locally", exc, file_name)
            return await self.local_store.upload(data, file_name), True

    async def certify(
        self,
        data: bytes,
        file_name: str = "unnamed-file",
        file_type: str = "application/octet-stream",
        metadata: dict[str, Any] | None = None,
        anchor: bool | None = None,
    ) -> Proof:
        """Create a proof of existence for *data*.

        Parameters
        ----------
        anchor:
            Register the proof with the registry. Defaults to
            ``config.anchor_on_certify``.

        Raises
        ------
        DuplicateHashError
            If identical content has already been certified.
        UnavailableError
            If storage failed and local fallback is disabled.
        """
        digest = compute_digest(data)
        existing = self.proofs.find_by_hash(digest)
        if existing is not None:
            raise DuplicateHashError(f"File already certified as {existing.proof_id}")

        locator, demo_mode = await self._upload(data, file_name)
        proof_id = generate_proof_id()
        now = datetime.now(timezone.utc)

        on_chain: OnChainRecord | None = None
        if self.config.anchor_on_certify if anchor is None else anchor:
            receipt = await self.registry.register_proof(
                proof_id,
                digest,
                locator,
                "local" if demo_mode else self.config.storage_api_url,
                self.config.registry_caller,
            )
            on_chain = OnChainRecord(tx_hash=receipt.tx_hash, block_number=receipt.block_number)

        proof = self.proofs.add(
            Proof(
                proof_id=proof_id,
                sha256_hash=digest,
                locator=locator,
                file_name=file_name,
                file_size=len(data),
                file_type=file_type,
                created_at=now,
                unix_timestamp=int(now.timestamp()),
                demo_mode=demo_mode,
                gateway_url=self.monitor.preferred_gateway.url_for(locator),
                explorer_url=f"{self.config.explorer_base_url}{locator}",
                on_chain=on_chain,
                metadata=metadata or {},
            )
        )
        logger.info("Certified %s as %s (%s)", file_name, proof_id, locator)

        self.dispatcher.trigger(
            ProofCreatedPayload(
                proof_id=proof_id,
                sha256_hash=digest,
                locator=locator,
                file_name=file_name,
                file_size=len(data),
            )
        )
        if on_chain is not None:
            self._notify_registered(proof)
        return proof

    async def certify_batch(
        self, files: Iterable[tuple[str, bytes]], *, anchor: bool | None = None
    ) -> BatchResult:
        """Certify files one after another; failures are collected per file."""
        items: list[BatchItemResult] = []
        for file_name, data in files:
            file_type = mimetypes.guess_type(file_name)[0] or "application/octet-stream"
            try:
                proof = await self.certify(data, file_name, file_type, anchor=anchor)
            except ProofVaultError as exc:
                logger.warning("Batch item %s failed: %s", file_name, exc)
                items.append(BatchItemResult(file_name=file_name, success=False, error=str(exc)))
            else:
                items.append(
                    BatchItemResult(file_name=file_name, success=True, proof_id=proof.proof_id)
                )

        result = BatchResult(batch_id=f"batch-{int(time.time() * 1000)}", items=items)
        self.dispatcher.trigger(
            BatchCompletedPayload(
                batch_id=result.batch_id,
                total_files=result.total_files,
                success_count=result.success_count,
                fail_count=result.fail_count,
            )
        )
        return result

    # ------------------------------------------------------------------
    # Verification and anchoring
    # ------------------------------------------------------------------

    async def verify(self, proof_id: str, data: bytes) -> VerificationResult:
        """Re-hash *data* and compare it against the stored proof.

        Anchored proofs are also checked against the registry.
        """
        proof = self.proofs.get(proof_id)
        provided = compute_digest(data)
        verified = provided == proof.sha256_hash
        checked_on_chain = False
        if proof.is_registered:
            checked_on_chain = True
            verified = verified and self.registry.verify_proof(proof_id, provided)

        result = VerificationResult(
            proof_id=proof_id,
            verified=verified,
            expected_hash=proof.sha256_hash,
            provided_hash=provided,
            checked_on_chain=checked_on_chain,
        )
        self.dispatcher.trigger(ProofVerifiedPayload(proof_id=proof_id, verified=verified))
        return result

    async def register_on_chain(self, proof_id: str) -> Proof:
        """Anchor a proof that was certified without registration."""
        proof = self.proofs.get(proof_id)
        if proof.is_registered:
            raise DuplicateProofIdError(f"Proof {proof_id} is already registered")

        receipt = await self.registry.register_proof(
            proof.proof_id,
            proof.sha256_hash,
            proof.locator,
            "local" if proof.demo_mode else self.config.storage_api_url,
            self.config.registry_caller,
        )
        proof = self.proofs.update(
            proof.model_copy(
                update={
                    "on_chain": OnChainRecord(
                        tx_hash=receipt.tx_hash, block_number=receipt.block_number
                    )
                }
            )
        )
        self._notify_registered(proof)
        return proof

    async def mint_nft(self, proof_id: str) -> Proof:
        """Mint a token for an anchored proof."""
        proof = self.proofs.get(proof_id)
        if not proof.is_registered:
            raise InvalidInputError(f"Proof {proof_id} must be registered before minting")
        if proof.is_minted:
            raise AlreadyMintedError(f"Proof {proof_id} already minted")

        receipt = await self.registry.mint_token(proof_id, self.config.registry_caller)
        proof = self.proofs.update(
            proof.model_copy(
                update={"nft": NftRecord(token_id=receipt.token_id, tx_hash=receipt.tx_hash)}
            )
        )
        self.dispatcher.trigger(
            NftMintedPayload(proof_id=proof_id, token_id=receipt.token_id, tx_hash=receipt.tx_hash)
        )
        return proof

    def _notify_registered(self, proof: Proof) -> None:
        self.dispatcher.trigger(
            ProofRegisteredPayload(
                proof_id=proof.proof_id,
                tx_hash=proof.on_chain.tx_hash,
                block_number=proof.on_chain.block_number,
            )
        )

    # ------------------------------------------------------------------
    # Retrieval and deals
    # ------------------------------------------------------------------

    async def retrieve(self, proof_id: str) -> bytes:
        """Fetch a proof's content and check it still matches the digest.

        Demo-mode content is read from the local store; everything else goes
        through gateway failover.
        """
        proof = self.proofs.get(proof_id)
        if proof.demo_mode and self.local_store.exists(proof.locator):
            data = self.local_store.retrieve(proof.locator)
        else:
            data = (await self.retriever.fetch_with_failover(proof.locator)).payload

        if compute_digest(data) != proof.sha256_hash:
            raise ContentIntegrityError(
                f"Retrieved content for {proof_id} does not match its digest"
            )
        return data

    async def deal_status(self, proof_id: str) -> DealSummary:
        return await self.deals.get_deal_status(self.proofs.get(proof_id).locator)

    async def storage_analytics(self) -> StorageAnalytics:
        return await self.deals.aggregate_storage_analytics(
            [p.locator for p in self.proofs.all()]
        )

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_proof(self, proof_id: str) -> Proof:
        return self.proofs.get(proof_id)

    def get_proof_by_hash(self, sha256_hash: str) -> Proof:
        return self.proofs.get_by_hash(sha256_hash)

    def get_proof_by_locator(self, locator: str) -> Proof:
        return self.proofs.get_by_locator(locator)

    def list_proofs(
        self,
        page: int = 1,
        limit: int = 20,
        sort_by: SortField = "timestamp",
        sort_order: SortOrder = "desc",
        **filters: Any,
    ) -> ProofPage:
        return self.proofs.list_proofs(page, limit, sort_by, sort_order, **filters)

    def stats(self) -> ProofStats:
        return self.proofs.stats(webhooks_configured=len(self.webhooks.list_webhooks()))

    async def aclose(self) -> None:
        """Wait for outstanding webhook deliveries."""
        await self.dispatcher.drain()
