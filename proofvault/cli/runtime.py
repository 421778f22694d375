"""Shared plumbing for CLI commands: logging, orchestrator lifecycle, errors."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler

from proofvault.config import ProofVaultConfig
from proofvault.core.errors import ProofVaultError
from proofvault.core.orchestrator import CertificationOrchestrator

T = TypeVar("T")

console = Console()


def configure_logging(level: str) -> None:
    """Route log records through Rich at *level*."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def run(action: Callable[[CertificationOrchestrator], Awaitable[T]]) -> T:
    """Build an orchestrator from the environment, run *action*, drain webhooks.

    ``ProofVaultError`` is reported and turned into exit code 1.
    """

    async def _main() -> T:
        orchestrator = CertificationOrchestrator(ProofVaultConfig())
        try:
            return await action(orchestrator)
        finally:
            await orchestrator.aclose()

    try:
        return asyncio.run(_main())
    except ProofVaultError as exc:
        console.print(f"[bold red]{type(exc).__name__}:[/bold red] {exc}")
        raise typer.Exit(code=1) from exc
