"""Proof inspection and anchoring: ``show``, ``list``, ``stats``, ``anchor``, ``mint``."""

from __future__ import annotations

import typer
from rich.panel import Panel
from rich.table import Table

from proofvault.cli.runtime import console, run
from proofvault.core.orchestrator import CertificationOrchestrator
from proofvault.models.proofs import Proof


def show_cmd(
    proof_id: str = typer.Argument(..., help="Proof ID to display."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw proof record."),
) -> None:
    """Show a single proof."""

    async def _get(orch: CertificationOrchestrator) -> Proof:
        return orch.get_proof(proof_id)

    proof = run(_get)
    if as_json:
        console.print_json(proof.model_dump_json())
        return

    lines = [
        f"[bold]File:[/bold]       {proof.file_name} ({proof.file_type}, {proof.file_size} bytes)",
        f"[bold]Created:[/bold]    {proof.created_at.isoformat()}",
        f"[bold]SHA-256:[/bold]    {proof.sha256_hash}",
        f"[bold]Locator:[/bold]    {proof.locator}",
        f"[bold]Gateway:[/bold]    {proof.gateway_url}",
        f"[bold]Explorer:[/bold]   {proof.explorer_url}",
        f"[bold]Demo mode:[/bold]  {'yes' if proof.demo_mode else 'no'}",
    ]
    if proof.on_chain:
        lines.append(
            f"[bold]Anchored:[/bold]   block {proof.on_chain.block_number} ({proof.on_chain.tx_hash})"
        )
    if proof.nft:
        lines.append(f"[bold]Token:[/bold]      #{proof.nft.token_id} ({proof.nft.tx_hash})")
    console.print(Panel("\n".join(lines), title=f"[bold]{proof.proof_id}[/bold]", border_style="cyan"))


def list_cmd(
    page: int = typer.Option(1, "--page", "-p", min=1),
    limit: int = typer.Option(20, "--limit", "-n", min=1, max=100),
    sort_by: str = typer.Option("timestamp", "--sort-by", help="timestamp, file_name or file_size."),
    order: str = typer.Option("desc", "--order", help="asc or desc."),
    search: str = typer.Option(None, "--search", "-s", help="Match name, id, hash or locator."),
    on_chain: bool | None = typer.Option(None, "--on-chain/--off-chain", help="Filter by anchoring."),
) -> None:
    """List certified proofs."""

    async def _list(orch: CertificationOrchestrator):
        return orch.list_proofs(page, limit, sort_by, order, search=search, on_chain=on_chain)

    result = run(_list)
    if not result.proofs:
        console.print("[dim]No proofs found.[/dim]")
        return

    table = Table(title=f"Proofs (page {result.page}/{result.total_pages}, {result.total} total)")
    table.add_column("Proof ID", style="cyan")
    table.add_column("File")
    table.add_column("Size", justify="right")
    table.add_column("Created")
    table.add_column("Anchored", justify="center")
    table.add_column("Token", justify="center")
    for proof in result.proofs:
        table.add_row(
            proof.proof_id,
            proof.file_name,
            str(proof.file_size),
            proof.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            "[green]Yes[/green]" if proof.is_registered else "[dim]No[/dim]",
            f"#{proof.nft.token_id}" if proof.nft else "",
        )
    console.print(table)


def stats_cmd() -> None:
    """Show aggregate proof statistics."""

    async def _stats(orch: CertificationOrchestrator):
        return orch.stats()

    stats = run(_stats)
    table = Table(title="ProofVault Statistics", show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Total proofs", str(stats.total_proofs))
    table.add_row("Total size (bytes)", str(stats.total_size))
    table.add_row("Anchored", str(stats.on_chain_count))
    table.add_row("Minted", str(stats.nft_count))
    table.add_row("Demo mode", str(stats.demo_count))
    table.add_row("Network stored", str(stats.real_count))
    table.add_row("Webhooks", str(stats.webhooks_configured))
    console.print(table)


def anchor_cmd(proof_id: str = typer.Argument(..., help="Proof ID to register.")) -> None:
    """Register a previously unanchored proof."""

    async def _anchor(orch: CertificationOrchestrator) -> Proof:
        return await orch.register_on_chain(proof_id)

    proof = run(_anchor)
    console.print(
        f"[bold green]Anchored[/bold green] {proof.proof_id} at block "
        f"{proof.on_chain.block_number} ({proof.on_chain.tx_hash})"
    )


def mint_cmd(proof_id: str = typer.Argument(..., help="Anchored proof ID to mint.")) -> None:
    """Mint a token for an anchored proof."""

    async def _mint(orch: CertificationOrchestrator) -> Proof:
        return await orch.mint_nft(proof_id)

    proof = run(_mint)
    console.print(
        f"[bold green]Minted[/bold green] token #{proof.nft.token_id} for {proof.proof_id}"
    )
