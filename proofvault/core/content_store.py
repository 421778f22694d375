"""Content-addressed storage boundary.

``ContentStorage`` is the interface the orchestrator uploads through.  Two
implementations exist:

* ``Web3StorageClient`` — uploads to a remote pinning API over HTTP and
  downloads through gateway failover.
* ``LocalContentStore`` — an immutable, CID-keyed directory store used when
  no network storage is configured (demo mode) or as a fallback.

Storage layout (local): {base_path}/{cid[-2:]}/{cid}.dat
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import httpx

from proofvault.core.errors import (
    NotFoundError,
    OperationTimeoutError,
    ProofVaultError,
    UnauthorizedError,
    UnavailableError,
)
from proofvault.core.hasher import compute_locator

if TYPE_CHECKING:
    from proofvault.core.retrieval import FailoverRetriever

logger = logging.getLogger(__name__)


class ContentIntegrityError(ProofVaultError):
    """Raised when stored bytes do not hash to their locator."""


@runtime_checkable
class ContentStorage(Protocol):
    """Upload/download boundary for content-addressed storage."""

    @property
    def simulated(self) -> bool:
        """True when no real network interaction takes place."""
        ...

    async def upload(self, data: bytes, file_name: str = "") -> str:
        """Store *data* and return its content locator."""
        ...

    async def download(self, locator: str) -> bytes:
        """Return the bytes addressed by *locator*."""
        ...


class LocalContentStore:
    """CID-keyed, immutable content store on the local filesystem.

    Storing the same content twice is a no-op. There is no update or delete.

    Parameters
    ----------
    base_path:
        Root directory for content storage.
    """

    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)

    @property
    def simulated(self) -> bool:
        return True

    def _content_path(self, locator: str) -> Path:
        return self._base / locator[-2:] / f"{locator}.dat"

    def store(self, data: bytes) -> str:
        """Store *data* synchronously and return its locator."""
        locator = compute_locator(data)
        path = self._content_path(locator)
        if path.exists():
            if not self.verify(locator):
                raise ContentIntegrityError(
                    f"Existing content at {locator} failed integrity check"
                )
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        return locator

    def retrieve(self, locator: str) -> bytes:
        path = self._content_path(locator)
        if not path.exists():
            raise NotFoundError(f"Content not found: {locator}")
        return path.read_bytes()

    def exists(self, locator: str) -> bool:
        return self._content_path(locator).exists()

    def verify(self, locator: str) -> bool:
        """Re-hash stored bytes and compare against the locator."""
        path = self._content_path(locator)
        if not path.exists():
            return False
        return compute_locator(path.read_bytes()) == locator

    async def upload(self, data: bytes, file_name: str = "") -> str:
        locator = self.store(data)
        logger.info("Stored %s (%d bytes) locally as %s", file_name or "content", len(data), locator)
        return locator

    async def download(self, locator: str) -> bytes:
        return self.retrieve(locator)


class Web3StorageClient:
    """HTTP client for a remote content pinning API.

    Parameters
    ----------
    api_url:
        Base URL of the upload API; files are POSTed to ``{api_url}/upload``.
    token:
        Bearer token for the API.
    retriever:
        Failover retriever used for downloads.
    timeout:
        Upload timeout in seconds.
    transport:
        Optional httpx transport (tests inject ``httpx.MockTransport``).
    """

    def __init__(
        self,
        api_url: str,
        token: str,
        retriever: FailoverRetriever,
        *,
        timeout: float = 300.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self._token = token
        self._retriever = retriever
        self.timeout = timeout
        self._transport = transport

    @property
    def simulated(self) -> bool:
        return False

    async def upload(self, data: bytes, file_name: str = "") -> str:
        if not self._token:
            raise UnavailableError("Storage API token not configured")

        url = f"{self.api_url}/upload"
        headers = {"Authorization": f"Bearer {self._token}"}
        if file_name:
            headers["X-Name"] = file_name

        logger.info("Uploading %d bytes to %s", len(data), url)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.post(url, content=data, headers=headers)
                response.raise_for_status()
                result = response.json()
            except httpx.TimeoutException as e:
                logger.error("Upload to %s timed out", url)
                raise OperationTimeoutError(f"Upload timed out: {e}") from e
            except httpx.HTTPStatusError as e:
                logger.error(
                    "Storage API error: %s - %s", e.response.status_code, e.response.text
                )
                if e.response.status_code in (401, 403):
                    raise UnauthorizedError(
                        f"Storage API rejected credentials: {e.response.status_code}"
                    ) from e
                raise UnavailableError(f"Storage API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                logger.error("Failed to connect to storage API: %s", e)
                raise UnavailableError(f"Failed to connect to storage API: {e}") from e

        locator = result.get("cid")
        if not locator:
            raise UnavailableError("Storage API did not return a CID")
        logger.info("Uploaded content with CID: %s", locator)
        return locator

    async def download(self, locator: str) -> bytes:
        result = await self._retriever.fetch_with_failover(locator)
        return result.payload
