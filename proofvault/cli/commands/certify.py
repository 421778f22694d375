"""``proofvault certify FILE...`` and ``proofvault verify PROOF_ID FILE``.

Certify hashes each file, stores it, optionally anchors the proof in the
registry, and prints the proof id.  Several files are certified as a batch.
"""

from __future__ import annotations

import mimetypes
from pathlib import Path

import typer
from rich.panel import Panel
from rich.table import Table

from proofvault.cli.runtime import console, run
from proofvault.core.orchestrator import CertificationOrchestrator
from proofvault.models.proofs import Proof


def _proof_panel(proof: Proof) -> Panel:
    lines = [
        "[bold green]Proof created![/bold green]",
        "",
        f"[bold]Proof ID:[/bold]   {proof.proof_id}",
        f"[bold]File:[/bold]       {proof.file_name} ({proof.file_size} bytes)",
        f"[bold]SHA-256:[/bold]    {proof.sha256_hash}",
        f"[bold]Locator:[/bold]    {proof.locator}",
        f"[bold]Gateway:[/bold]    {proof.gateway_url}",
    ]
    if proof.on_chain:
        lines.append(
            f"[bold]Anchored:[/bold]   block {proof.on_chain.block_number}, "
            f"tx {proof.on_chain.tx_hash}"
        )
    if proof.demo_mode:
        lines += ["", "[yellow]Demo mode: content stored locally only.[/yellow]"]
    return Panel("\n".join(lines), title="[bold]ProofVault[/bold]", border_style="green", padding=(1, 2))


def certify_cmd(
    files: list[Path] = typer.Argument(
        ...,
        exists=True,
        dir_okay=False,
        readable=True,
        help="File(s) to certify.",
    ),
    anchor: bool | None = typer.Option(
        None,
        "--anchor/--no-anchor",
        help="Register the proof in the registry (default from configuration).",
    ),
) -> None:
    """Create a proof of existence for one or more files."""
    if len(files) == 1:
        path = files[0]

        async def _certify(orch: CertificationOrchestrator) -> Proof:
            file_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
            return await orch.certify(path.read_bytes(), path.name, file_type, anchor=anchor)

        proof = run(_certify)
        console.print(_proof_panel(proof))
        console.print(f"[bold]{proof.proof_id}[/bold]")
        return

    async def _batch(orch: CertificationOrchestrator):
        return await orch.certify_batch(
            [(p.name, p.read_bytes()) for p in files], anchor=anchor
        )

    result = run(_batch)
    table = Table(title=f"Batch {result.batch_id}")
    table.add_column("File", style="cyan")
    table.add_column("Result")
    table.add_column("Proof ID / Error")
    for item in result.items:
        if item.success:
            table.add_row(item.file_name, "[green]OK[/green]", item.proof_id)
        else:
            table.add_row(item.file_name, "[red]FAILED[/red]", item.error or "")
    console.print(table)
    console.print(
        f"{result.success_count}/{result.total_files} certified, {result.fail_count} failed"
    )
    if result.fail_count:
        raise typer.Exit(code=1)


def verify_cmd(
    proof_id: str = typer.Argument(..., help="Proof ID to verify against."),
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
) -> None:
    """Check that FILE is byte-identical to the certified original."""

    async def _verify(orch: CertificationOrchestrator):
        return await orch.verify(proof_id, file.read_bytes())

    result = run(_verify)
    if result.verified:
        suffix = " (registry confirmed)" if result.checked_on_chain else ""
        console.print(f"[bold green]VERIFIED[/bold green] {proof_id}{suffix}")
        return

    console.print(f"[bold red]MISMATCH[/bold red] {proof_id}")
    console.print(f"  expected: {result.expected_hash}")
    console.print(f"  provided: {result.provided_hash}")
    raise typer.Exit(code=1)
