"""Error taxonomy for the certification and retrieval pipeline.

Every failure the core surfaces derives from ``ProofVaultError``.  Registry
errors (duplicate, not-found, unauthorized) represent a definite caller error
or state conflict and are never retried.  ``UnavailableError`` and its
subclasses mark external dependencies that could not be reached; callers may
recover from those by falling back to cached data or simulation.
"""

from __future__ import annotations

from typing import Any


class ProofVaultError(RuntimeError):
    """Base class for all ProofVault errors."""


class InvalidInputError(ProofVaultError, ValueError):
    """Raised when a required field is missing or malformed."""


# ---------------------------------------------------------------------------
# Uniqueness violations
# ---------------------------------------------------------------------------

class DuplicateError(ProofVaultError):
    """Raised when a write would violate a uniqueness constraint."""


class DuplicateHashError(DuplicateError):
    """The content hash is already bound to a different proof."""


class DuplicateProofIdError(DuplicateError):
    """The proof identifier already exists."""


class DuplicateLocatorError(DuplicateError):
    """The content locator is already bound to a different proof."""


class AlreadyMintedError(DuplicateError):
    """A token has already been minted for the proof."""


# ---------------------------------------------------------------------------
# Lookup / authorization
# ---------------------------------------------------------------------------

class NotFoundError(ProofVaultError, LookupError):
    """Raised when a requested entity does not exist."""


class IndexOutOfRangeError(NotFoundError, IndexError):
    """Raised when a deal index does not address an existing deal entry."""


class UnauthorizedError(ProofVaultError):
    """Raised when the caller lacks rights over a mutation."""


# ---------------------------------------------------------------------------
# External dependencies
# ---------------------------------------------------------------------------

class UnavailableError(ProofVaultError):
    """Raised when an external dependency could not be reached."""


class OperationTimeoutError(UnavailableError, TimeoutError):
    """Raised when a bounded-time operation exceeded its budget."""


class AllEndpointsFailedError(UnavailableError):
    """Raised when every candidate gateway failed during retrieval.

    Parameters
    ----------
    locator:
        The content locator that could not be retrieved.
    attempts:
        The per-gateway attempt trace, in the order attempted.
    last_error:
        The last underlying error message, if any.
    """

    def __init__(
        self,
        locator: str,
        attempts: list[Any] | None = None,
        last_error: str | None = None,
    ) -> None:
        self.locator = locator
        self.attempts = list(attempts or [])
        self.last_error = last_error
        message = f"All endpoints failed for {locator}"
        if last_error:
            message += f": {last_error}"
        super().__init__(message)
