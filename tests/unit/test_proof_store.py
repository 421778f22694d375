"""Tests for the persisted proof store: uniqueness, lookups, listing, stats."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from proofvault.core.errors import (
    DuplicateHashError,
    DuplicateLocatorError,
    DuplicateProofIdError,
    InvalidInputError,
    NotFoundError,
)
from proofvault.core.hasher import compute_digest
from proofvault.core.proof_store import ProofStore
from proofvault.core.state_store import StateStore
from proofvault.models.proofs import NftRecord, OnChainRecord, Proof

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _proof(i: int, **overrides) -> Proof:
    fields = {
        "proof_id": f"PV-{i:03d}",
        "sha256_hash": compute_digest(f"file-{i}".encode()),
        "locator": f"bafy-{i:03d}",
        "file_name": f"file-{i:03d}.txt",
        "file_size": 100 + i,
        "created_at": BASE_TIME + timedelta(minutes=i),
    }
    fields.update(overrides)
    return Proof(**fields)


@pytest.fixture
def store(state_store: StateStore) -> ProofStore:
    return ProofStore(state_store)


@pytest.fixture
def populated(store: ProofStore) -> ProofStore:
    for i in range(25):
        store.add(_proof(i, demo_mode=i % 2 == 0))
    return store


class TestProofStoreWrites:
    def test_add_and_get(self, store: ProofStore):
        proof = store.add(_proof(1))
        assert store.get("PV-001") == proof
        assert store.get_by_hash(proof.sha256_hash.upper()) == proof
        assert store.get_by_locator("bafy-001") == proof

    def test_newest_first(self, store: ProofStore):
        store.add(_proof(1))
        store.add(_proof(2))
        assert [p.proof_id for p in store.all()] == ["PV-002", "PV-001"]

    def test_duplicate_id(self, store: ProofStore):
        store.add(_proof(1))
        with pytest.raises(DuplicateProofIdError):
            store.add(_proof(2, proof_id="PV-001"))

    def test_duplicate_hash(self, store: ProofStore):
        store.add(_proof(1))
        with pytest.raises(DuplicateHashError):
            store.add(_proof(2, sha256_hash=compute_digest(b"file-1")))

    def test_duplicate_locator(self, store: ProofStore):
        store.add(_proof(1))
        with pytest.raises(DuplicateLocatorError):
            store.add(_proof(2, locator="bafy-001"))

    def test_update_attaches_records(self, store: ProofStore):
        proof = store.add(_proof(1))
        store.update(proof.model_copy(update={"on_chain": OnChainRecord(tx_hash="0x1", block_number=5)}))
        assert store.get("PV-001").is_registered
        assert store.count() == 1

    def test_update_unknown(self, store: ProofStore):
        with pytest.raises(NotFoundError):
            store.update(_proof(9))

    def test_missing_lookups(self, store: ProofStore):
        with pytest.raises(NotFoundError):
            store.get("PV-404")
        with pytest.raises(NotFoundError):
            store.get_by_locator("bafy-404")
        assert store.find_by_hash(compute_digest(b"nothing")) is None


class TestListProofs:
    def test_default_page(self, populated: ProofStore):
        page = populated.list_proofs()
        assert page.total == 25
        assert len(page.proofs) == 20
        assert page.proofs[0].proof_id == "PV-024"
        assert page.has_next and not page.has_prev

    def test_last_page(self, populated: ProofStore):
        page = populated.list_proofs(page=3, limit=10)
        assert [p.proof_id for p in page.proofs] == [f"PV-{i:03d}" for i in range(4, -1, -1)]
        assert page.total_pages == 3
        assert not page.has_next

    def test_limit_clamped(self, populated: ProofStore):
        assert populated.list_proofs(limit=1000).limit == 100
        assert populated.list_proofs(limit=0).limit == 1

    def test_sort_by_size_ascending(self, populated: ProofStore):
        page = populated.list_proofs(limit=3, sort_by="file_size", sort_order="asc")
        assert [p.file_size for p in page.proofs] == [100, 101, 102]

    def test_sort_by_name(self, populated: ProofStore):
        page = populated.list_proofs(limit=1, sort_by="file_name", sort_order="asc")
        assert page.proofs[0].file_name == "file-000.txt"

    def test_bad_sort_field(self, populated: ProofStore):
        with pytest.raises(InvalidInputError):
            populated.list_proofs(sort_by="color")

    def test_filters(self, populated: ProofStore):
        assert populated.list_proofs(demo_mode=True).total == 13
        assert populated.list_proofs(demo_mode=False).total == 12
        assert populated.list_proofs(on_chain=True).total == 0

    def test_search(self, populated: ProofStore):
        page = populated.list_proofs(search="FILE-007")
        assert [p.proof_id for p in page.proofs] == ["PV-007"]


class TestStats:
    def test_counts(self, store: ProofStore):
        store.add(_proof(1, demo_mode=True))
        store.add(
            _proof(
                2,
                on_chain=OnChainRecord(tx_hash="0x2", block_number=2),
                nft=NftRecord(token_id=1, tx_hash="0x3"),
            )
        )
        stats = store.stats(webhooks_configured=3)
        assert stats.total_proofs == 2
        assert stats.total_size == 101 + 102
        assert stats.on_chain_count == 1
        assert stats.nft_count == 1
        assert (stats.demo_count, stats.real_count) == (1, 1)
        assert stats.webhooks_configured == 3
