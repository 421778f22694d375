"""Proof registry: durable ledger and simulated chain behind one contract.

The registry is the anchoring authority for proofs.  It enforces that a
proof id, a content hash and a content locator are each registered at most
once, keeps the storage deals linked to every proof, and emits an event for
every mutation.

Two variants share the contract:

* ``LedgerProofRegistry`` — SQLite tables with UNIQUE constraints plus an
  append-only, hash-chained ``registry_events`` log.  A mutation, its
  uniqueness checks and its event are one transaction.
* ``SimulatedProofRegistry`` — an in-memory chain persisted to the state
  store, with an artificial confirmation delay, random transaction hashes and
  an incrementing block number.  Uniqueness is re-checked after the delay and
  immediately before the commit, with no await in between.
"""

from __future__ import annotations

import asyncio
import json
import logging
import random
import sqlite3
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

from proofvault.core.errors import (
    AlreadyMintedError,
    DuplicateHashError,
    DuplicateLocatorError,
    DuplicateProofIdError,
    IndexOutOfRangeError,
    InvalidInputError,
    NotFoundError,
    ProofVaultError,
    UnauthorizedError,
)
from proofvault.core.hasher import compute_entry_hash, is_zero_hash, normalize_hash
from proofvault.core.state_store import SIMULATED_CHAIN_KEY, StateStore
from proofvault.models.registry import (
    RegistryDeal,
    RegistryEvent,
    RegistryEventKind,
    RegistryProof,
    TransactionReceipt,
)

if TYPE_CHECKING:
    from proofvault.config import ProofVaultConfig

logger = logging.getLogger(__name__)

MAX_DEAL_ID = 2**64
MAX_SIMULATED_TRANSACTIONS = 100


class LedgerIntegrityError(ProofVaultError):
    """Raised when the registry event hash chain is broken."""


def _conflict_error(proof_id: str, exc: sqlite3.IntegrityError) -> ProofVaultError:
    """Map a UNIQUE violation on the proofs table to its duplicate error."""
    message = str(exc)
    if "proofs.locator" in message:
        return DuplicateLocatorError(f"Locator conflict for {proof_id}: {exc}")
    if "proofs.proof_id" in message:
        return DuplicateProofIdError(f"Proof ID already registered: {proof_id}")
    return DuplicateHashError(f"Hash conflict for {proof_id}: {exc}")


# ---------------------------------------------------------------------------
# Contract
# ---------------------------------------------------------------------------

class ProofRegistry(ABC):
    """Registry contract shared by the ledger and simulated variants.

    Parameters
    ----------
    admin:
        Address allowed to manage deals on any proof, in addition to the
        proof's registrant.
    """

    def __init__(self, admin: str = "") -> None:
        self.admin = admin

    # -- mutations ------------------------------------------------------

    @abstractmethod
    async def register_proof(
        self,
        proof_id: str,
        sha256_hash: str,
        locator: str,
        provider_info: str,
        caller: str,
    ) -> TransactionReceipt:
        """Anchor a proof. Emits ``ProofRegistered``."""

    @abstractmethod
    async def link_deal(
        self,
        proof_id: str,
        deal_id: int,
        provider: str,
        start_epoch: int,
        end_epoch: int,
        caller: str,
    ) -> TransactionReceipt:
        """Append an active storage deal to a proof. Emits ``DealLinked``."""

    @abstractmethod
    async def update_deal_status(
        self, proof_id: str, deal_index: int, active: bool, caller: str
    ) -> TransactionReceipt:
        """Flip the active flag of one linked deal. Emits ``DealStatusUpdated``."""

    @abstractmethod
    async def mint_token(self, proof_id: str, caller: str) -> TransactionReceipt:
        """Assign the next token id to a proof. Emits ``ProofMinted``."""

    # -- reads ----------------------------------------------------------

    @abstractmethod
    def get_proof(self, proof_id: str) -> RegistryProof:
        ...

    @abstractmethod
    def get_proof_by_hash(self, sha256_hash: str) -> RegistryProof:
        ...

    @abstractmethod
    def get_proof_by_locator(self, locator: str) -> RegistryProof:
        ...

    @abstractmethod
    def total_proofs(self) -> int:
        ...

    @abstractmethod
    def total_deals(self) -> int:
        ...

    @abstractmethod
    def events(self) -> list[RegistryEvent]:
        """Registry events, oldest first."""

    def get_deals(self, proof_id: str) -> list[RegistryDeal]:
        return list(self.get_proof(proof_id).deals)

    def count_active_deals(self, proof_id: str) -> int:
        return sum(1 for deal in self.get_proof(proof_id).deals if deal.active)

    def verify_proof(self, proof_id: str, sha256_hash: str) -> bool:
        """True iff *proof_id* is registered with *sha256_hash* (case-insensitive)."""
        try:
            proof = self.get_proof(proof_id)
        except NotFoundError:
            return False
        candidate = (sha256_hash or "").strip().lower()
        if candidate.startswith("0x"):
            candidate = candidate[2:]
        return candidate == proof.sha256_hash

    # -- shared validation ---------------------------------------------

    @staticmethod
    def _validate_registration(proof_id: str, sha256_hash: str, locator: str) -> str:
        if not proof_id:
            raise InvalidInputError("Proof ID cannot be empty")
        if not locator:
            raise InvalidInputError("Locator cannot be empty")
        normalized = normalize_hash(sha256_hash)
        if is_zero_hash(normalized):
            raise InvalidInputError("Invalid SHA-256 hash: all zeroes")
        return normalized

    @staticmethod
    def _validate_deal_id(deal_id: int) -> None:
        if not 0 <= deal_id < MAX_DEAL_ID:
            raise InvalidInputError(f"Deal id out of range: {deal_id}")

    def _authorize(self, proof: RegistryProof, caller: str) -> None:
        allowed = {proof.registrant.lower()}
        if self.admin:
            allowed.add(self.admin.lower())
        if (caller or "").lower() not in allowed:
            raise UnauthorizedError(
                f"{caller} is not allowed to manage deals for {proof.proof_id}"
            )

    @staticmethod
    def _check_deal_index(proof: RegistryProof, deal_index: int) -> None:
        if not 0 <= deal_index < len(proof.deals):
            raise IndexOutOfRangeError(
                f"Deal index {deal_index} out of range for {proof.proof_id} "
                f"({len(proof.deals)} deals)"
            )


# ---------------------------------------------------------------------------
# Ledger variant
# ---------------------------------------------------------------------------

_CREATE_PROOFS = """
CREATE TABLE IF NOT EXISTS proofs (
    proof_id        TEXT PRIMARY KEY,
    sha256_hash     TEXT NOT NULL UNIQUE,
    locator         TEXT NOT NULL UNIQUE,
    provider_info   TEXT NOT NULL DEFAULT '',
    registrant      TEXT NOT NULL,
    timestamp       INTEGER NOT NULL,
    block_number    INTEGER NOT NULL,
    token_id        INTEGER
);
"""

# deal_id is stored as TEXT: unsigned 64-bit ids overflow SQLite INTEGER.
_CREATE_DEALS = """
CREATE TABLE IF NOT EXISTS deals (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    proof_id        TEXT NOT NULL REFERENCES proofs(proof_id),
    deal_id         TEXT NOT NULL,
    provider        TEXT NOT NULL,
    start_epoch     INTEGER NOT NULL,
    end_epoch       INTEGER NOT NULL,
    active          INTEGER NOT NULL DEFAULT 1
);
"""

_CREATE_EVENTS = """
CREATE TABLE IF NOT EXISTS registry_events (
    id                    INTEGER PRIMARY KEY AUTOINCREMENT,
    event_id              TEXT NOT NULL UNIQUE,
    kind                  TEXT NOT NULL,
    proof_id              TEXT NOT NULL,
    block_number          INTEGER NOT NULL,
    timestamp_utc         TEXT NOT NULL,
    fields_json           TEXT NOT NULL DEFAULT '{}',
    previous_entry_hash   TEXT NOT NULL DEFAULT '',
    entry_hash            TEXT NOT NULL UNIQUE
);
"""

_CREATE_IDX_DEALS = """
CREATE INDEX IF NOT EXISTS idx_deals_proof ON deals(proof_id, id);
"""


class LedgerProofRegistry(ProofRegistry):
    """Durable registry on SQLite with a hash-chained event log.

    The block number of a mutation is its position in the event log and its
    transaction hash is ``0x`` + the event's ``entry_hash``.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    admin:
        Address allowed to manage deals on any proof.
    """

    def __init__(self, db_path: Path, admin: str = "") -> None:
        super().__init__(admin)
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_PROOFS)
            conn.execute(_CREATE_DEALS)
            conn.execute(_CREATE_EVENTS)
            conn.execute(_CREATE_IDX_DEALS)
            conn.commit()

    # ------------------------------------------------------------------
    # Event log
    # ------------------------------------------------------------------

    def _append_event(
        self,
        conn: sqlite3.Connection,
        kind: RegistryEventKind,
        proof_id: str,
        fields: dict[str, Any],
    ) -> RegistryEvent:
        """Seal and insert an event inside the caller's transaction."""
        row = conn.execute(
            "SELECT entry_hash, block_number FROM registry_events ORDER BY id DESC LIMIT 1"
        ).fetchone()
        previous_hash, last_block = (row[0], row[1]) if row else ("", 0)

        event = RegistryEvent(
            kind=kind,
            proof_id=proof_id,
            block_number=last_block + 1,
            fields=fields,
            previous_entry_hash=previous_hash,
        )
        sealed = event.model_copy(
            update={"entry_hash": compute_entry_hash(event.model_dump(mode="json"))}
        )
        conn.execute(
            """
            INSERT INTO registry_events
                (event_id, kind, proof_id, block_number, timestamp_utc,
                 fields_json, previous_entry_hash, entry_hash)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                sealed.event_id,
                sealed.kind.value,
                sealed.proof_id,
                sealed.block_number,
                sealed.timestamp_utc.isoformat(),
                json.dumps(sealed.fields),
                sealed.previous_entry_hash,
                sealed.entry_hash,
            ),
        )
        return sealed

    @staticmethod
    def _receipt(event: RegistryEvent, token_id: int | None = None) -> TransactionReceipt:
        return TransactionReceipt(
            tx_hash=f"0x{event.entry_hash}",
            block_number=event.block_number,
            event=event,
            token_id=token_id,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def register_proof(
        self,
        proof_id: str,
        sha256_hash: str,
        locator: str,
        provider_info: str,
        caller: str,
    ) -> TransactionReceipt:
        normalized = self._validate_registration(proof_id, sha256_hash, locator)

        with self._connect() as conn:
            existing = conn.execute(
                "SELECT proof_id, sha256_hash, locator FROM proofs "
                "WHERE proof_id = ? OR sha256_hash = ? OR locator = ?",
                (proof_id, normalized, locator),
            ).fetchall()
            for other_id, other_hash, other_locator in existing:
                if other_id == proof_id:
                    raise DuplicateProofIdError(f"Proof ID already registered: {proof_id}")
                if other_hash == normalized:
                    raise DuplicateHashError(
                        f"Hash already registered by {other_id}: {normalized}"
                    )
                if other_locator == locator:
                    raise DuplicateLocatorError(
                        f"Locator already registered by {other_id}: {locator}"
                    )

            event = self._append_event(
                conn,
                RegistryEventKind.PROOF_REGISTERED,
                proof_id,
                {
                    "sha256Hash": normalized,
                    "locator": locator,
                    "registrant": caller,
                },
            )
            try:
                conn.execute(
                    """
                    INSERT INTO proofs
                        (proof_id, sha256_hash, locator, provider_info,
                         registrant, timestamp, block_number)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        proof_id,
                        normalized,
                        locator,
                        provider_info or "",
                        caller,
                        int(event.timestamp_utc.timestamp()),
                        event.block_number,
                    ),
                )
            except sqlite3.IntegrityError as exc:
                conn.rollback()
                raise _conflict_error(proof_id, exc) from exc
            conn.commit()

        logger.info("Registered %s at block %d", proof_id, event.block_number)
        return self._receipt(event)

    async def link_deal(
        self,
        proof_id: str,
        deal_id: int,
        provider: str,
        start_epoch: int,
        end_epoch: int,
        caller: str,
    ) -> TransactionReceipt:
        self._validate_deal_id(deal_id)
        proof = self.get_proof(proof_id)
        self._authorize(proof, caller)

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO deals (proof_id, deal_id, provider, start_epoch, end_epoch, active)
                VALUES (?, ?, ?, ?, ?, 1)
                """,
                (proof_id, str(deal_id), provider, start_epoch, end_epoch),
            )
            event = self._append_event(
                conn,
                RegistryEventKind.DEAL_LINKED,
                proof_id,
                {"dealId": deal_id, "provider": provider},
            )
            conn.commit()

        logger.info("Linked deal %d (%s) to %s", deal_id, provider, proof_id)
        return self._receipt(event)

    async def update_deal_status(
        self, proof_id: str, deal_index: int, active: bool, caller: str
    ) -> TransactionReceipt:
        proof = self.get_proof(proof_id)
        self._check_deal_index(proof, deal_index)
        self._authorize(proof, caller)

        with self._connect() as conn:
            row = conn.execute(
                "SELECT id FROM deals WHERE proof_id = ? ORDER BY id ASC LIMIT 1 OFFSET ?",
                (proof_id, deal_index),
            ).fetchone()
            conn.execute("UPDATE deals SET active = ? WHERE id = ?", (int(active), row[0]))
            event = self._append_event(
                conn,
                RegistryEventKind.DEAL_STATUS_UPDATED,
                proof_id,
                {"dealIndex": deal_index, "active": active},
            )
            conn.commit()

        return self._receipt(event)

    async def mint_token(self, proof_id: str, caller: str) -> TransactionReceipt:
        proof = self.get_proof(proof_id)
        if proof.token_id is not None:
            raise AlreadyMintedError(f"Proof {proof_id} already minted as token {proof.token_id}")

        with self._connect() as conn:
            row = conn.execute("SELECT COALESCE(MAX(token_id), 0) FROM proofs").fetchone()
            token_id = row[0] + 1
            conn.execute(
                "UPDATE proofs SET token_id = ? WHERE proof_id = ? AND token_id IS NULL",
                (token_id, proof_id),
            )
            event = self._append_event(
                conn,
                RegistryEventKind.PROOF_MINTED,
                proof_id,
                {"tokenId": token_id, "owner": caller},
            )
            conn.commit()

        logger.info("Minted token %d for %s", token_id, proof_id)
        return self._receipt(event, token_id=token_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _load_proof(self, where: str, value: str) -> RegistryProof | None:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT proof_id, sha256_hash, locator, provider_info, registrant, "
                f"timestamp, block_number, token_id FROM proofs WHERE {where} = ?",
                (value,),
            ).fetchone()
            if row is None:
                return None
            deal_rows = conn.execute(
                "SELECT deal_id, provider, start_epoch, end_epoch, active "
                "FROM deals WHERE proof_id = ? ORDER BY id ASC",
                (row[0],),
            ).fetchall()
        return RegistryProof(
            proof_id=row[0],
            sha256_hash=row[1],
            locator=row[2],
            provider_info=row[3],
            registrant=row[4],
            timestamp=row[5],
            block_number=row[6],
            token_id=row[7],
            deals=[
                RegistryDeal(
                    deal_id=int(d[0]),
                    provider=d[1],
                    start_epoch=d[2],
                    end_epoch=d[3],
                    active=bool(d[4]),
                )
                for d in deal_rows
            ],
        )

    def get_proof(self, proof_id: str) -> RegistryProof:
        proof = self._load_proof("proof_id", proof_id)
        if proof is None:
            raise NotFoundError(f"Proof not registered: {proof_id}")
        return proof

    def get_proof_by_hash(self, sha256_hash: str) -> RegistryProof:
        normalized = normalize_hash(sha256_hash)
        proof = self._load_proof("sha256_hash", normalized)
        if proof is None:
            raise NotFoundError(f"No proof registered for hash {normalized}")
        return proof

    def get_proof_by_locator(self, locator: str) -> RegistryProof:
        proof = self._load_proof("locator", locator)
        if proof is None:
            raise NotFoundError(f"No proof registered for locator {locator}")
        return proof

    def total_proofs(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM proofs").fetchone()[0]

    def total_deals(self) -> int:
        with self._connect() as conn:
            return conn.execute("SELECT COUNT(*) FROM deals").fetchone()[0]

    def events(self) -> list[RegistryEvent]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT event_id, kind, proof_id, block_number, timestamp_utc, "
                "fields_json, previous_entry_hash, entry_hash "
                "FROM registry_events ORDER BY id ASC"
            ).fetchall()
        return [
            RegistryEvent(
                event_id=r[0],
                kind=RegistryEventKind(r[1]),
                proof_id=r[2],
                block_number=r[3],
                timestamp_utc=r[4],
                fields=json.loads(r[5]),
                previous_entry_hash=r[6],
                entry_hash=r[7],
            )
            for r in rows
        ]

    def verify_chain(self) -> bool:
        """Walk the event log and check every link and seal.

        Returns True if the chain is valid, raises LedgerIntegrityError otherwise.
        """
        prev_hash = ""
        for event in self.events():
            if event.previous_entry_hash != prev_hash:
                raise LedgerIntegrityError(
                    f"Chain broken at event {event.event_id}: "
                    f"expected previous_hash={prev_hash!r}, "
                    f"got {event.previous_entry_hash!r}"
                )
            expected = compute_entry_hash(event.model_dump(mode="json"))
            if event.entry_hash != expected:
                raise LedgerIntegrityError(
                    f"Tampered event {event.event_id}: "
                    f"expected hash={expected!r}, got {event.entry_hash!r}"
                )
            prev_hash = event.entry_hash
        return True


# ---------------------------------------------------------------------------
# Simulated variant
# ---------------------------------------------------------------------------

class SimulatedProofRegistry(ProofRegistry):
    """Simulated chain with confirmation delays, persisted to the state store.

    Parameters
    ----------
    state_store:
        Where the chain state is persisted. ``None`` keeps it in memory only.
    admin:
        Address allowed to manage deals on any proof.
    delay_min, delay_max:
        Bounds, in seconds, of the artificial confirmation delay.
    rng:
        Random source for delays and transaction hashes.
    """

    def __init__(
        self,
        state_store: StateStore | None = None,
        admin: str = "",
        *,
        delay_min: float = 1.5,
        delay_max: float = 3.5,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(admin)
        self._state_store = state_store
        self.delay_min = delay_min
        self.delay_max = delay_max
        self._rng = rng or random.Random()

        saved = state_store.get(SIMULATED_CHAIN_KEY) if state_store else None
        saved = saved or {}
        self._block_number: int = saved.get("blockNumber", 1_000_000)
        self._token_counter: int = saved.get("tokenCounter", 0)
        self._proofs: dict[str, RegistryProof] = {
            pid: RegistryProof.model_validate(raw)
            for pid, raw in saved.get("proofs", {}).items()
        }
        self._events: list[RegistryEvent] = [
            RegistryEvent.model_validate(raw) for raw in saved.get("events", [])
        ]
        self._by_hash = {p.sha256_hash: p.proof_id for p in self._proofs.values()}
        self._by_locator = {p.locator: p.proof_id for p in self._proofs.values()}

    # ------------------------------------------------------------------
    # Chain mechanics
    # ------------------------------------------------------------------

    async def _confirm(self) -> None:
        delay = self._rng.uniform(self.delay_min, self.delay_max)
        if delay > 0:
            await asyncio.sleep(delay)

    def _tx_hash(self) -> str:
        return "0x" + "".join(self._rng.choice("0123456789abcdef") for _ in range(64))

    def _mine(
        self,
        kind: RegistryEventKind,
        proof_id: str,
        fields: dict[str, Any],
        token_id: int | None = None,
    ) -> TransactionReceipt:
        """Record a confirmed transaction. Must be called without awaiting."""
        self._block_number += 1
        tx_hash = self._tx_hash()
        event = RegistryEvent(
            kind=kind,
            proof_id=proof_id,
            block_number=self._block_number,
            fields={**fields, "txHash": tx_hash},
        )
        self._events.append(event)
        del self._events[:-MAX_SIMULATED_TRANSACTIONS]
        self._persist()
        return TransactionReceipt(
            tx_hash=tx_hash, block_number=self._block_number, event=event, token_id=token_id
        )

    def _persist(self) -> None:
        if self._state_store is None:
            return
        self._state_store.put(
            SIMULATED_CHAIN_KEY,
            {
                "blockNumber": self._block_number,
                "tokenCounter": self._token_counter,
                "proofs": {
                    pid: p.model_dump(mode="json") for pid, p in self._proofs.items()
                },
                "events": [e.model_dump(mode="json") for e in self._events],
            },
        )

    def _check_unique(self, proof_id: str, sha256_hash: str, locator: str) -> None:
        if proof_id in self._proofs:
            raise DuplicateProofIdError(f"Proof ID already registered: {proof_id}")
        if sha256_hash in self._by_hash:
            raise DuplicateHashError(
                f"Hash already registered by {self._by_hash[sha256_hash]}: {sha256_hash}"
            )
        if locator in self._by_locator:
            raise DuplicateLocatorError(
                f"Locator already registered by {self._by_locator[locator]}: {locator}"
            )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def register_proof(
        self,
        proof_id: str,
        sha256_hash: str,
        locator: str,
        provider_info: str,
        caller: str,
    ) -> TransactionReceipt:
        normalized = self._validate_registration(proof_id, sha256_hash, locator)
        self._check_unique(proof_id, normalized, locator)

        logger.info("Submitting registration for %s", proof_id)
        await self._confirm()

        # Another registration may have committed during the delay.
        self._check_unique(proof_id, normalized, locator)
        proof = RegistryProof(
            proof_id=proof_id,
            sha256_hash=normalized,
            locator=locator,
            provider_info=provider_info or "",
            registrant=caller,
            timestamp=int(time.time()),
            block_number=self._block_number + 1,
        )
        self._proofs[proof_id] = proof
        self._by_hash[normalized] = proof_id
        self._by_locator[locator] = proof_id
        receipt = self._mine(
            RegistryEventKind.PROOF_REGISTERED,
            proof_id,
            {"sha256Hash": normalized, "locator": locator, "registrant": caller},
        )
        logger.info("Registered %s at block %d", proof_id, receipt.block_number)
        return receipt

    async def link_deal(
        self,
        proof_id: str,
        deal_id: int,
        provider: str,
        start_epoch: int,
        end_epoch: int,
        caller: str,
    ) -> TransactionReceipt:
        self._validate_deal_id(deal_id)
        self._authorize(self.get_proof(proof_id), caller)

        await self._confirm()

        proof = self.get_proof(proof_id)
        deal = RegistryDeal(
            deal_id=deal_id, provider=provider, start_epoch=start_epoch, end_epoch=end_epoch
        )
        self._proofs[proof_id] = proof.model_copy(update={"deals": [*proof.deals, deal]})
        return self._mine(
            RegistryEventKind.DEAL_LINKED,
            proof_id,
            {"dealId": deal_id, "provider": provider},
        )

    async def update_deal_status(
        self, proof_id: str, deal_index: int, active: bool, caller: str
    ) -> TransactionReceipt:
        proof = self.get_proof(proof_id)
        self._check_deal_index(proof, deal_index)
        self._authorize(proof, caller)

        await self._confirm()

        proof = self.get_proof(proof_id)
        deals = list(proof.deals)
        deals[deal_index] = deals[deal_index].model_copy(update={"active": active})
        self._proofs[proof_id] = proof.model_copy(update={"deals": deals})
        return self._mine(
            RegistryEventKind.DEAL_STATUS_UPDATED,
            proof_id,
            {"dealIndex": deal_index, "active": active},
        )

    async def mint_token(self, proof_id: str, caller: str) -> TransactionReceipt:
        if self.get_proof(proof_id).token_id is not None:
            raise AlreadyMintedError(f"Proof {proof_id} already minted")

        await self._confirm()

        proof = self.get_proof(proof_id)
        if proof.token_id is not None:
            raise AlreadyMintedError(f"Proof {proof_id} already minted")
        self._token_counter += 1
        token_id = self._token_counter
        self._proofs[proof_id] = proof.model_copy(update={"token_id": token_id})
        receipt = self._mine(
            RegistryEventKind.PROOF_MINTED,
            proof_id,
            {"tokenId": token_id, "owner": caller},
            token_id=token_id,
        )
        logger.info("Minted token %d for %s", token_id, proof_id)
        return receipt

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_proof(self, proof_id: str) -> RegistryProof:
        try:
            return self._proofs[proof_id]
        except KeyError:
            raise NotFoundError(f"Proof not registered: {proof_id}") from None

    def get_proof_by_hash(self, sha256_hash: str) -> RegistryProof:
        normalized = normalize_hash(sha256_hash)
        if normalized not in self._by_hash:
            raise NotFoundError(f"No proof registered for hash {normalized}")
        return self._proofs[self._by_hash[normalized]]

    def get_proof_by_locator(self, locator: str) -> RegistryProof:
        if locator not in self._by_locator:
            raise NotFoundError(f"No proof registered for locator {locator}")
        return self._proofs[self._by_locator[locator]]

    def total_proofs(self) -> int:
        return len(self._proofs)

    def total_deals(self) -> int:
        return sum(len(p.deals) for p in self._proofs.values())

    def events(self) -> list[RegistryEvent]:
        """The most recent transactions, oldest first (at most 100)."""
        return list(self._events)

    @property
    def block_number(self) -> int:
        return self._block_number


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def build_registry(
    cfg: ProofVaultConfig, state_store: StateStore | None = None
) -> ProofRegistry:
    """Construct the registry variant selected by ``registry_backend``."""
    if cfg.registry_backend == "ledger":
        logger.debug("Using ledger registry at %s", cfg.ledger_db_path)
        return LedgerProofRegistry(cfg.ledger_db_path, admin=cfg.registry_admin)
    logger.debug("Using simulated registry")
    return SimulatedProofRegistry(
        state_store,
        admin=cfg.registry_admin,
        delay_min=cfg.simulated_delay_min,
        delay_max=cfg.simulated_delay_max,
    )
