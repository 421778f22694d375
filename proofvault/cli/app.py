"""Main Typer application — imports and registers all CLI commands.

Entry point: ``proofvault`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import typer

from proofvault.cli.commands.certify import certify_cmd, verify_cmd
from proofvault.cli.commands.network import deals_cmd, fetch_cmd, gateways_cmd
from proofvault.cli.commands.proofs import anchor_cmd, list_cmd, mint_cmd, show_cmd, stats_cmd
from proofvault.cli.commands.webhooks_cmd import webhooks_app
from proofvault.cli.runtime import configure_logging
from proofvault.config import config

app = typer.Typer(
    name="proofvault",
    help="ProofVault: proof-of-existence certification over content-addressed storage.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None, "--log-level", help="Logging level (default from PROOFVAULT_LOG_LEVEL)."
    ),
) -> None:
    configure_logging(log_level or config.log_level)


# Register subcommands
app.command(name="certify", help="Certify one or more files.")(certify_cmd)
app.command(name="verify", help="Verify a file against a proof.")(verify_cmd)
app.command(name="show", help="Show a proof.")(show_cmd)
app.command(name="list", help="List proofs.")(list_cmd)
app.command(name="stats", help="Show proof statistics.")(stats_cmd)
app.command(name="gateways", help="Probe and rank retrieval gateways.")(gateways_cmd)
app.command(name="fetch", help="Fetch content by locator with gateway failover.")(fetch_cmd)
app.command(name="deals", help="Show storage deals for content locators.")(deals_cmd)
app.command(name="anchor", help="Register an unanchored proof.")(anchor_cmd)
app.command(name="mint", help="Mint a token for an anchored proof.")(mint_cmd)
app.add_typer(webhooks_app, name="webhooks")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
