"""ProofVault notifications — webhook subscriptions and event delivery.

``WebhookManager`` owns webhook configurations and the bounded delivery log.
``WebhookDispatcher`` fans each event payload out to every enabled webhook
subscribed to its kind, as fire-and-forget tasks on the running event loop.
"""

from proofvault.notifications.dispatcher import WebhookDispatcher
from proofvault.notifications.webhooks import MAX_LOG_ENTRIES, WebhookManager

__all__ = ["MAX_LOG_ENTRIES", "WebhookDispatcher", "WebhookManager"]
