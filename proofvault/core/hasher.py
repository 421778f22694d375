"""Hashing and identity helpers for proofs, locators, and ledger entries.

``compute_digest`` is the content digest every proof is built on.
``compute_locator`` derives a CIDv1 for content stored by the local store, so
offline locators have the same shape as the ones a real IPFS node returns.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import re
import secrets
import string
import time
from typing import Any

from proofvault.core.errors import InvalidInputError

_HEX64 = re.compile(r"^[0-9a-f]{64}$")
_BASE36 = string.digits + string.ascii_uppercase

# Multicodec / multihash constants for CIDv1 (raw leaves, sha2-256).
_CID_VERSION = 0x01
_CODEC_RAW = 0x55
_MULTIHASH_SHA2_256 = 0x12
_DIGEST_LENGTH = 0x20


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def compute_digest(data: bytes) -> str:
    """Return the content digest of *data*: lower-case SHA-256 hex, 64 chars."""
    return sha256_hex(data)


def normalize_hash(value: str) -> str:
    """Normalize a SHA-256 hex string: strip, lower-case, drop ``0x``.

    Raises ``InvalidInputError`` unless exactly 64 hex characters remain.
    """
    if not value:
        raise InvalidInputError("Hash cannot be empty")
    normalized = value.strip().lower()
    if normalized.startswith("0x"):
        normalized = normalized[2:]
    if not _HEX64.match(normalized):
        raise InvalidInputError(
            f"Invalid hash format (expected 64 hex characters): {value!r}"
        )
    return normalized


def is_zero_hash(value: str) -> bool:
    """Return True for the all-zero 32-byte hash."""
    return set(value) == {"0"}


def generate_proof_id() -> str:
    """Return a new proof identifier: ``PV-<epoch ms>-<9 base36 chars>``.

    The millisecond prefix orders ids by creation time; the suffix carries
    ~46 bits of randomness from ``secrets``.
    """
    millis = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"PV-{millis}-{suffix}"


def compute_locator(data: bytes) -> str:
    """Return the CIDv1 (raw codec, sha2-256, base32) of *data*."""
    digest = hashlib.sha256(data).digest()
    cid_bytes = bytes([_CID_VERSION, _CODEC_RAW, _MULTIHASH_SHA2_256, _DIGEST_LENGTH]) + digest
    encoded = base64.b32encode(cid_bytes).decode("ascii").lower().rstrip("=")
    return f"b{encoded}"


def compute_entry_hash(entry_dict: dict[str, Any]) -> str:
    """SHA-256 of a ledger entry (excluding the entry_hash field itself)."""
    d = {k: v for k, v in entry_dict.items() if k != "entry_hash"}
    return sha256_hex(canonical_json_bytes(d))


def sign_payload(secret: str, body: bytes) -> str:
    """Return the hex HMAC-SHA256 of *body* keyed by *secret*."""
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
