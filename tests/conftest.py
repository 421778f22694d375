"""Shared test fixtures for ProofVault."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import httpx
import pytest

from proofvault.config import ProofVaultConfig
from proofvault.core.content_store import LocalContentStore
from proofvault.core.state_store import StateStore

ADMIN = "0xAdmin000000000000000000000000000000000000"
CALLER = "0xSimulated1234567890abcdef1234567890abcdef"


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test state."""
    return tmp_path


@pytest.fixture
def state_store(tmp_dir: Path) -> StateStore:
    """Provide a fresh StateStore backed by a temp SQLite database."""
    return StateStore(tmp_dir / "state.db")


@pytest.fixture
def local_store(tmp_dir: Path) -> LocalContentStore:
    """Provide a fresh LocalContentStore in a temp directory."""
    return LocalContentStore(tmp_dir / "content")


@pytest.fixture
def cfg(tmp_dir: Path) -> ProofVaultConfig:
    """Offline configuration: local storage, simulated deals and registry, no delays."""
    return ProofVaultConfig(
        state_db_path=tmp_dir / "state.db",
        ledger_db_path=tmp_dir / "registry.db",
        content_store_path=tmp_dir / "content",
        storage_backend="local",
        deal_source="simulated",
        registry_backend="simulated",
        registry_admin=ADMIN,
        registry_caller=CALLER,
        simulated_delay_min=0,
        simulated_delay_max=0,
    )


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: list[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)

    def requests_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]


@pytest.fixture
def make_transport() -> Callable[..., RecordingTransport]:
    """Factory fixture: wrap a request handler in a RecordingTransport."""
    return RecordingTransport


@pytest.fixture
def ok_transport() -> RecordingTransport:
    """Answers every request with 200 and an empty JSON object."""
    return RecordingTransport(lambda request: httpx.Response(200, json={}))
