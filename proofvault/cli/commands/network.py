"""Network-facing commands: ``gateways``, ``fetch``, ``deals``."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from proofvault.cli.runtime import console, run
from proofvault.core.deal_tracker import health_score
from proofvault.core.orchestrator import CertificationOrchestrator


def gateways_cmd() -> None:
    """Probe every gateway and show them in retrieval order."""

    async def _rank(orch: CertificationOrchestrator):
        return await orch.monitor.rank_endpoints()

    ranked = run(_rank)
    table = Table(title="Gateways")
    table.add_column("#", justify="right")
    table.add_column("Gateway", style="cyan")
    table.add_column("Tier")
    table.add_column("Status")
    table.add_column("Latency", justify="right")
    for i, entry in enumerate(ranked, 1):
        health = entry.health
        status = "[green]healthy[/green]" if health.healthy else f"[red]{health.error}[/red]"
        latency = f"{health.latency_ms} ms" if health.latency_ms is not None else "-"
        table.add_row(str(i), entry.gateway.name, entry.gateway.tier.value, status, latency)
    console.print(table)


def fetch_cmd(
    locator: str = typer.Argument(..., help="Content locator (CID)."),
    output: Path = typer.Option(None, "--output", "-o", help="Write the content here."),
) -> None:
    """Fetch content through the gateways, failing over as needed."""

    async def _fetch(orch: CertificationOrchestrator):
        return await orch.retriever.fetch_with_failover(locator)

    result = run(_fetch)
    for attempt in result.attempts:
        mark = "[green]ok[/green]" if attempt.success else f"[red]{attempt.error}[/red]"
        console.print(f"  {attempt.gateway_id}: {mark}")
    if output is not None:
        output.write_bytes(result.payload)
        console.print(f"Wrote {len(result.payload)} bytes to {output} via {result.gateway}")
    else:
        console.print(f"Retrieved {len(result.payload)} bytes via {result.gateway}")


def deals_cmd(
    locators: list[str] = typer.Argument(..., help="Content locator(s) to check."),
) -> None:
    """Show storage deals and redundancy health for content locators."""

    async def _deals(orch: CertificationOrchestrator):
        summaries = [await orch.deals.get_deal_status(c) for c in locators]
        analytics = await orch.deals.aggregate_storage_analytics(locators)
        return summaries, analytics

    summaries, analytics = run(_deals)
    for locator, summary in zip(locators, summaries):
        score = health_score(summary)
        title = f"{locator} [{summary.status.value}] health {score.score} ({score.label})"
        if summary.simulated:
            title += " [simulated]"
        table = Table(title=title)
        table.add_column("Deal", justify="right")
        table.add_column("Provider", style="cyan")
        table.add_column("Status")
        table.add_column("Expires")
        for deal in summary.deals:
            table.add_row(
                deal.deal_id,
                deal.provider,
                deal.status.value,
                deal.expiration.date().isoformat() if deal.expiration else "-",
            )
        console.print(table)
        if summary.message:
            console.print(f"[dim]{summary.message}[/dim]")

    if len(locators) > 1:
        console.print(
            f"{analytics.active_deals} active, {analytics.pending_deals} pending, "
            f"{analytics.total_replicas} replicas across {analytics.unique_providers} providers "
            f"(avg {analytics.avg_replication})"
        )
