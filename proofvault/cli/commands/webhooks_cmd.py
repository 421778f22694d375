"""``proofvault webhooks ...`` — manage webhook subscriptions."""

from __future__ import annotations

import typer
from rich.table import Table

from proofvault.cli.runtime import console, run
from proofvault.core.orchestrator import CertificationOrchestrator
from proofvault.models.webhooks import EVENT_DESCRIPTIONS, Webhook, WebhookEvent

webhooks_app = typer.Typer(
    name="webhooks",
    help="Manage webhook subscriptions.",
    no_args_is_help=True,
)


@webhooks_app.command(name="add", help="Subscribe a URL to one or more events.")
def add_cmd(
    url: str = typer.Argument(..., help="http(s) endpoint to POST events to."),
    events: list[str] = typer.Option(
        [], "--event", "-e", help="Event kind (repeatable). Defaults to all events."
    ),
    name: str = typer.Option(None, "--name", help="Display name."),
    secret: str = typer.Option(None, "--secret", help="HMAC-SHA256 signing secret."),
) -> None:
    selected = events or [e.value for e in WebhookEvent]

    async def _add(orch: CertificationOrchestrator) -> Webhook:
        return orch.webhooks.create_webhook(url, selected, name=name, secret=secret)

    webhook = run(_add)
    console.print(f"[bold green]Added webhook[/bold green] {webhook.webhook_id} -> {webhook.url}")
    console.print(f"[bold]{webhook.webhook_id}[/bold]")


@webhooks_app.command(name="list", help="List configured webhooks.")
def list_cmd() -> None:
    async def _list(orch: CertificationOrchestrator) -> list[Webhook]:
        return orch.webhooks.list_webhooks()

    webhooks = run(_list)
    if not webhooks:
        console.print("[dim]No webhooks configured.[/dim]")
        console.print("[dim]Available events:[/dim]")
        for event, description in EVENT_DESCRIPTIONS.items():
            console.print(f"  [cyan]{event.value}[/cyan]  {description}")
        return

    table = Table(title="Webhooks")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("URL")
    table.add_column("Events")
    table.add_column("Enabled", justify="center")
    table.add_column("OK / Fail", justify="right")
    for w in webhooks:
        table.add_row(
            w.webhook_id,
            w.name,
            w.url,
            ", ".join(sorted(e.value for e in w.events)),
            "[green]Yes[/green]" if w.enabled else "[red]No[/red]",
            f"{w.success_count} / {w.fail_count}",
        )
    console.print(table)


@webhooks_app.command(name="remove", help="Delete a webhook.")
def remove_cmd(webhook_id: str = typer.Argument(...)) -> None:
    async def _remove(orch: CertificationOrchestrator) -> bool:
        return orch.webhooks.delete_webhook(webhook_id)

    if not run(_remove):
        console.print(f"[bold red]Webhook not found:[/bold red] {webhook_id}")
        raise typer.Exit(code=1)
    console.print(f"Removed {webhook_id}")


@webhooks_app.command(name="logs", help="Show recent deliveries, newest first.")
def logs_cmd(
    webhook_id: str = typer.Option(None, "--webhook", "-w", help="Only this webhook."),
    limit: int = typer.Option(20, "--limit", "-n", min=1, max=100),
) -> None:
    async def _logs(orch: CertificationOrchestrator):
        return orch.webhooks.get_logs(webhook_id)[:limit]

    entries = run(_logs)
    if not entries:
        console.print("[dim]No deliveries logged.[/dim]")
        return

    table = Table(title="Webhook deliveries")
    table.add_column("Time")
    table.add_column("Webhook", style="cyan")
    table.add_column("Event")
    table.add_column("Result")
    for entry in entries:
        result = "[green]ok[/green]" if entry.success else f"[red]{entry.error}[/red]"
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"), entry.webhook_id, entry.event, result
        )
    console.print(table)


@webhooks_app.command(name="test", help="Send a test event to a webhook.")
def test_cmd(webhook_id: str = typer.Argument(...)) -> None:
    async def _test(orch: CertificationOrchestrator):
        return await orch.dispatcher.test_webhook(webhook_id)

    result = run(_test)
    if result.success:
        console.print(f"[bold green]Delivered[/bold green] (HTTP {result.status_code})")
        return
    console.print(f"[bold red]Failed:[/bold red] {result.error}")
    raise typer.Exit(code=1)
