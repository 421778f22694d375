"""Tests for the pydantic models: immutability, derived fields, payload union."""

from __future__ import annotations

import pydantic
import pytest

from proofvault.models import (
    EVENT_PAYLOAD_ADAPTER,
    BatchItemResult,
    BatchResult,
    DealStatus,
    DealSummary,
    Deal,
    Gateway,
    NftMintedPayload,
    Proof,
    ProofCreatedPayload,
    ProofPage,
    Webhook,
    WebhookEvent,
)


class TestProof:
    def test_frozen(self):
        proof = Proof(proof_id="PV-1", sha256_hash="a" * 64, locator="bafy")
        with pytest.raises(pydantic.ValidationError):
            proof.file_name = "other"

    def test_defaults(self):
        proof = Proof(proof_id="PV-1", sha256_hash="a" * 64, locator="bafy")
        assert proof.file_name == "unnamed-file"
        assert proof.file_type == "application/octet-stream"
        assert not proof.is_registered
        assert not proof.is_minted

    def test_json_round_trip(self):
        proof = Proof(proof_id="PV-1", sha256_hash="a" * 64, locator="bafy", metadata={"k": [1]})
        assert Proof.model_validate(proof.model_dump(mode="json")) == proof


class TestPagingAndBatches:
    def test_page_navigation(self):
        page = ProofPage(proofs=[], page=2, limit=10, total=25)
        assert page.total_pages == 3
        assert page.has_next
        assert page.has_prev

    def test_batch_counts(self):
        result = BatchResult(
            batch_id="batch-1",
            items=[
                BatchItemResult(file_name="a", success=True, proof_id="PV-1"),
                BatchItemResult(file_name="b", success=False, error="dup"),
            ],
        )
        assert (result.total_files, result.success_count, result.fail_count) == (2, 1, 1)


class TestGatewaysAndDeals:
    def test_url_for_appends_locator(self):
        gw = Gateway(gateway_id="x", name="X", url="https://x.example/ipfs/", priority=1)
        assert gw.url_for("bafy") == "https://x.example/ipfs/bafy"

    def test_active_count(self):
        summary = DealSummary(
            status=DealStatus.ACTIVE,
            deals=[
                Deal(deal_id="1", provider="f01", status=DealStatus.ACTIVE),
                Deal(deal_id="2", provider="f02", status=DealStatus.EXPIRED),
            ],
        )
        assert summary.active_count == 1


class TestWebhookModels:
    def test_disabled_webhook_subscribes_to_nothing(self):
        hook = Webhook(url="https://h.example", events=frozenset({WebhookEvent.PROOF_CREATED}), enabled=False)
        assert not hook.subscribes_to(WebhookEvent.PROOF_CREATED)

    def test_webhook_id_prefix(self):
        hook = Webhook(url="https://h.example", events=frozenset({WebhookEvent.NFT_MINTED}))
        assert hook.webhook_id.startswith("wh-")

    def test_payload_data_uses_camel_case(self):
        payload = ProofCreatedPayload(
            proof_id="PV-1", sha256_hash="a" * 64, locator="bafy", file_name="f.txt", file_size=3
        )
        data = payload.data()
        assert data["proofId"] == "PV-1"
        assert data["sha256Hash"] == "a" * 64
        assert data["fileSize"] == 3
        assert "event" not in data

    def test_discriminated_union(self):
        payload = EVENT_PAYLOAD_ADAPTER.validate_python(
            {"event": "nft_minted", "proofId": "PV-1", "tokenId": 7, "txHash": "0xabc"}
        )
        assert isinstance(payload, NftMintedPayload)
        assert payload.token_id == 7

    def test_union_rejects_unknown_event(self):
        with pytest.raises(pydantic.ValidationError):
            EVENT_PAYLOAD_ADAPTER.validate_python({"event": "proof_deleted", "proofId": "PV-1"})
