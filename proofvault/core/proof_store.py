"""Persisted proof records.

Proofs live as one JSON list under ``PROOFS_KEY`` in the state store, newest
first.  The store enforces the same uniqueness as the registry (one proof per
id, per hash and per locator) so unanchored demo proofs get the guarantee
too.  Proofs are never deleted; ``update`` replaces a record with a copy that
carries newly attached ``on_chain`` / ``nft`` details.
"""

from __future__ import annotations

import logging
from typing import Literal

from proofvault.core.errors import (
    DuplicateHashError,
    DuplicateLocatorError,
    DuplicateProofIdError,
    InvalidInputError,
    NotFoundError,
)
from proofvault.core.hasher import normalize_hash
from proofvault.core.state_store import PROOFS_KEY, StateStore
from proofvault.models.proofs import Proof, ProofPage, ProofStats

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

SortField = Literal["timestamp", "file_name", "file_size"]
SortOrder = Literal["asc", "desc"]


class ProofStore:
    """Access to persisted proofs.

    Parameters
    ----------
    state_store:
        Backing key-value store.
    """

    def __init__(self, state_store: StateStore) -> None:
        self._state = state_store

    def _load(self) -> list[Proof]:
        return [Proof.model_validate(raw) for raw in self._state.get(PROOFS_KEY, [])]

    def _save(self, proofs: list[Proof]) -> None:
        self._state.put(PROOFS_KEY, [p.model_dump(mode="json") for p in proofs])

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add(self, proof: Proof) -> Proof:
        """Persist a new proof. Raises a ``DuplicateError`` subclass on conflict."""
        proofs = self._load()
        for existing in proofs:
            if existing.proof_id == proof.proof_id:
                raise DuplicateProofIdError(f"Proof ID already exists: {proof.proof_id}")
            if existing.sha256_hash == proof.sha256_hash:
                raise DuplicateHashError(
                    f"File already certified as {existing.proof_id}"
                )
            if existing.locator == proof.locator:
                raise DuplicateLocatorError(
                    f"Locator already certified as {existing.proof_id}"
                )
        proofs.insert(0, proof)
        self._save(proofs)
        return proof

    def update(self, proof: Proof) -> Proof:
        """Replace the stored record with the same ``proof_id``."""
        proofs = self._load()
        for i, existing in enumerate(proofs):
            if existing.proof_id == proof.proof_id:
                proofs[i] = proof
                self._save(proofs)
                return proof
        raise NotFoundError(f"Proof not found: {proof.proof_id}")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def all(self) -> list[Proof]:
        """Every proof, newest first."""
        return self._load()

    def count(self) -> int:
        return len(self._state.get(PROOFS_KEY, []))

    def get(self, proof_id: str) -> Proof:
        for proof in self._load():
            if proof.proof_id == proof_id:
                return proof
        raise NotFoundError(f"Proof not found: {proof_id}")

    def find_by_hash(self, sha256_hash: str) -> Proof | None:
        normalized = normalize_hash(sha256_hash)
        return next((p for p in self._load() if p.sha256_hash == normalized), None)

    def get_by_hash(self, sha256_hash: str) -> Proof:
        proof = self.find_by_hash(sha256_hash)
        if proof is None:
            raise NotFoundError(f"No proof for hash {sha256_hash}")
        return proof

    def get_by_locator(self, locator: str) -> Proof:
        for proof in self._load():
            if proof.locator == locator:
                return proof
        raise NotFoundError(f"No proof for locator {locator}")

    def list_proofs(
        self,
        page: int = 1,
        limit: int = 20,
        sort_by: SortField = "timestamp",
        sort_order: SortOrder = "desc",
        *,
        demo_mode: bool | None = None,
        on_chain: bool | None = None,
        has_nft: bool | None = None,
        search: str | None = None,
    ) -> ProofPage:
        """Filtered, sorted, paginated view over the stored proofs.

        ``search`` matches case-insensitively against file name, proof id,
        hash and locator.  ``limit`` is clamped to ``[1, 100]``.
        """
        if sort_by not in ("timestamp", "file_name", "file_size"):
            raise InvalidInputError(f"Unsupported sort field: {sort_by}")
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        proofs = self._load()
        if demo_mode is not None:
            proofs = [p for p in proofs if p.demo_mode == demo_mode]
        if on_chain is not None:
            proofs = [p for p in proofs if p.is_registered == on_chain]
        if has_nft is not None:
            proofs = [p for p in proofs if p.is_minted == has_nft]
        if search:
            needle = search.lower()
            proofs = [
                p
                for p in proofs
                if needle in p.file_name.lower()
                or needle in p.proof_id.lower()
                or needle in p.sha256_hash
                or needle in p.locator.lower()
            ]

        if sort_by == "file_name":
            key = lambda p: p.file_name.lower()  # noqa: E731
        elif sort_by == "file_size":
            key = lambda p: p.file_size  # noqa: E731
        else:
            key = lambda p: p.created_at  # noqa: E731
        proofs.sort(key=key, reverse=sort_order == "desc")

        start = (page - 1) * limit
        return ProofPage(
            proofs=proofs[start:start + limit],
            page=page,
            limit=limit,
            total=len(proofs),
        )

    def stats(self, webhooks_configured: int = 0) -> ProofStats:
        proofs = self._load()
        demo = sum(1 for p in proofs if p.demo_mode)
        return ProofStats(
            total_proofs=len(proofs),
            total_size=sum(p.file_size for p in proofs),
            on_chain_count=sum(1 for p in proofs if p.is_registered),
            nft_count=sum(1 for p in proofs if p.is_minted),
            demo_count=demo,
            real_count=len(proofs) - demo,
            webhooks_configured=webhooks_configured,
        )
