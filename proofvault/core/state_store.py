"""Durable key-value store for process-wide persisted state, backed by SQLite.

Proof records, webhook configurations, webhook logs, the simulated chain and
the preferred gateway are each stored as one JSON blob under a fixed logical
name.  Every value must round-trip through JSON without loss.
"""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

PROOFS_KEY = "proofvault_proofs"
WEBHOOKS_KEY = "proofvault_webhooks"
WEBHOOK_LOGS_KEY = "proofvault_webhook_logs"
SIMULATED_CHAIN_KEY = "proofvault_simulated_chain"
PREFERRED_GATEWAY_KEY = "proofvault_preferred_gateway"


_CREATE_STATE = """
CREATE TABLE IF NOT EXISTS state_blobs (
    key         TEXT PRIMARY KEY,
    value_json  TEXT NOT NULL,
    updated_at  TEXT NOT NULL
);
"""


class StateStore:
    """JSON blobs keyed by logical name.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_STATE)
            conn.commit()

    def get(self, key: str, default: Any = None) -> Any:
        """Return the decoded value stored under *key*, or *default*."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value_json FROM state_blobs WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return default
        return json.loads(row[0])

    def put(self, key: str, value: Any) -> None:
        """Store *value* (JSON-serializable) under *key*, replacing any prior value."""
        encoded = json.dumps(value)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO state_blobs (key, value_json, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value_json = excluded.value_json,
                    updated_at = excluded.updated_at
                """,
                (key, encoded, datetime.now(timezone.utc).isoformat()),
            )
            conn.commit()

    def delete(self, key: str) -> bool:
        """Remove *key*. Returns True if a value was removed."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM state_blobs WHERE key = ?", (key,))
            conn.commit()
        return cursor.rowcount > 0

    def keys(self) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute("SELECT key FROM state_blobs ORDER BY key").fetchall()
        return [row[0] for row in rows]
