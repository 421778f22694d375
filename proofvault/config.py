"""Runtime configuration — env-driven via pydantic-settings.

Reads from a .env file and PROOFVAULT_* environment variables.  Simulation
variants of external collaborators (content storage, deal status, registry)
are selected here rather than by implicit fallback.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class ProofVaultConfig(BaseSettings):
    """Configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export PROOFVAULT_REGISTRY_BACKEND=ledger
        export PROOFVAULT_STORAGE_BACKEND=web3storage
        export PROOFVAULT_STORAGE_API_TOKEN=...

    Or via .env file::

        PROOFVAULT_LOG_LEVEL=DEBUG
        PROOFVAULT_SIMULATED_DELAY_MIN=0
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PROOFVAULT_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Storage paths
    state_db_path: Path = Path(".proofvault/state.db")
    ledger_db_path: Path = Path(".proofvault/registry.db")
    content_store_path: Path = Path(".proofvault/content")

    # Content storage
    storage_backend: Literal["local", "web3storage"] = "local"
    storage_api_url: str = "https://api.web3.storage"
    storage_api_token: str = ""
    storage_fallback: bool = True  # fall back to the local store when unavailable
    upload_timeout: float = 300.0

    # Gateways
    gateway_health_timeout: float = 5.0
    gateway_health_ttl: float = 60.0
    retrieval_timeout: float = 30.0
    failover_fallback_count: int = 3

    # Deal tracking
    deal_source: Literal["web3storage", "simulated"] = "web3storage"
    deal_api_url: str = "https://api.web3.storage"
    deal_query_timeout: float = 10.0
    deal_cache_ttl: float = 300.0
    deal_simulation_fallback: bool = True
    network_stats_url: str = "https://filfox.info/api/v1/overview"

    # Registry
    registry_backend: Literal["simulated", "ledger"] = "simulated"
    registry_admin: str = "0xAdmin000000000000000000000000000000000000"
    registry_caller: str = "0xSimulated1234567890abcdef1234567890abcdef"
    simulated_delay_min: float = 1.5
    simulated_delay_max: float = 3.5
    anchor_on_certify: bool = True

    # Notifications
    webhook_timeout: float = 10.0

    explorer_base_url: str = "https://explore.ipld.io/#/explore/"

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"


# Module-level singleton; import as `from proofvault.config import config`
config = ProofVaultConfig()
