"""End-to-end certification flow.

Exercises the orchestrator, proof store, local content storage, ledger
registry, deal tracker and webhook dispatcher working together.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from proofvault.config import ProofVaultConfig
from proofvault.core.hasher import compute_digest
from proofvault.core.orchestrator import CertificationOrchestrator
from proofvault.core.registry import LedgerProofRegistry
from proofvault.models.deals import DealStatus

HELLO = b"hello world!"
HELLO_DIGEST = "7509e5bda0c762d2bac7f90d758b5b2263fa01ccbc542ab5e3df163be08e6ca9"


class TestCertificationFlow:
    """certify -> notify -> verify -> retrieve -> deals, against the ledger registry."""

    @pytest.fixture
    def transport(self, make_transport):
        return make_transport(lambda request: httpx.Response(200))

    @pytest.fixture
    def orch(self, cfg: ProofVaultConfig, transport) -> CertificationOrchestrator:
        return CertificationOrchestrator(
            cfg.model_copy(update={"registry_backend": "ledger"}), transport=transport
        )

    def test_hello_world(self, orch: CertificationOrchestrator, transport):
        created = orch.webhooks.create_webhook("https://created.example/hook", ["proof_created"])
        orch.webhooks.create_webhook("https://minted.example/hook", ["nft_minted"])
        orch.webhooks.create_webhook(
            "https://disabled.example/hook", ["proof_created"], enabled=False
        )

        async def scenario():
            proof = await orch.certify(HELLO, "hello.txt", "text/plain")
            await orch.dispatcher.drain()
            good = await orch.verify(proof.proof_id, HELLO)
            bad = await orch.verify(proof.proof_id, b"hello world?")
            content = await orch.retrieve(proof.proof_id)
            deals = await orch.deal_status(proof.proof_id)
            await orch.aclose()
            return proof, good, bad, content, deals

        proof, good, bad, content, deals = asyncio.run(scenario())

        # Proof record
        assert proof.sha256_hash == HELLO_DIGEST
        assert proof.locator.startswith("bafkrei")
        assert proof.demo_mode
        assert proof.is_registered

        # Webhooks: only the enabled proof_created subscriber is called
        assert len(transport.requests_to("created.example")) == 1
        assert transport.requests_to("minted.example") == []
        assert transport.requests_to("disabled.example") == []
        envelope = json.loads(transport.requests_to("created.example")[0].content)
        assert envelope["event"] == "proof_created"
        assert envelope["data"]["sha256Hash"] == HELLO_DIGEST
        assert orch.webhooks.get_webhook(created.webhook_id).success_count == 1

        # Verification
        assert good.verified and good.checked_on_chain
        assert not bad.verified

        # Retrieval from local storage
        assert content == HELLO
        assert compute_digest(content) == HELLO_DIGEST

        # Deals are simulated offline
        assert deals.simulated
        assert deals.status in (DealStatus.ACTIVE, DealStatus.PENDING)

        # The registry's event chain is intact and persisted
        registry = orch.registry
        assert isinstance(registry, LedgerProofRegistry)
        assert registry.verify_chain()
        assert registry.verify_proof(proof.proof_id, HELLO_DIGEST.upper())

    def test_state_survives_restart(self, cfg: ProofVaultConfig, transport):
        ledger_cfg = cfg.model_copy(update={"registry_backend": "ledger"})
        first = CertificationOrchestrator(ledger_cfg, transport=transport)

        async def certify():
            proof = await first.certify(HELLO, "hello.txt")
            minted = await first.mint_nft(proof.proof_id)
            await first.aclose()
            return minted

        minted = asyncio.run(certify())

        second = CertificationOrchestrator(ledger_cfg, transport=transport)
        reloaded = second.get_proof(minted.proof_id)
        assert reloaded.is_minted
        assert reloaded.nft.token_id == 1
        assert second.registry.get_proof(minted.proof_id).token_id == 1
        assert second.registry.total_proofs() == 1
        assert second.stats().nft_count == 1
