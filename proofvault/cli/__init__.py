"""ProofVault CLI — Typer-based command-line interface.

Provides the ``proofvault`` command with subcommands for certifying and
verifying files, inspecting proofs, probing gateways, checking storage
deals, anchoring and minting, and managing webhooks.

All output uses Rich for formatted terminal display.
"""
