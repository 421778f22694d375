"""WebhookDispatcher — fans event payloads out to subscribed webhooks.

Every payload is wrapped in an ``{"event", "timestamp", "data"}`` envelope,
serialized once, signed per webhook when a secret is configured, and POSTed
to each enabled webhook subscribed to the event.  Deliveries run as tasks on
the running event loop; ``trigger`` does not wait for them.  A failed
delivery is logged and counted, never retried, and never raised to the
caller.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from proofvault.core.hasher import sign_payload
from proofvault.models.webhooks import EventPayload, Webhook, WebhookEvent, WebhookTestResult
from proofvault.notifications.webhooks import WebhookManager

logger = logging.getLogger(__name__)

TEST_EVENT = "test"


def build_envelope(event: str, data: dict[str, Any], timestamp: datetime | None = None) -> bytes:
    """Serialize a delivery envelope to compact JSON bytes."""
    envelope = {
        "event": event,
        "timestamp": (timestamp or datetime.now(timezone.utc)).isoformat(),
        "data": data,
    }
    return json.dumps(envelope, separators=(",", ":")).encode("utf-8")


class WebhookDispatcher:
    """Delivers events to every subscribed webhook.

    Parameters
    ----------
    manager:
        Source of webhook configurations and sink for delivery records.
    timeout:
        Per-delivery HTTP timeout in seconds.
    transport:
        Optional httpx transport (tests inject ``httpx.MockTransport``).

    Usage
    -----
    >>> dispatcher = WebhookDispatcher(manager)
    >>> dispatcher.trigger(ProofCreatedPayload(...))   # inside a running loop
    >>> await dispatcher.drain()
    """

    def __init__(
        self,
        manager: WebhookManager,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.manager = manager
        self.timeout = timeout
        self._transport = transport
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        """Number of deliveries still in flight."""
        return len(self._pending)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def trigger(self, payload: EventPayload) -> list[str]:
        """Schedule delivery of *payload* and return the webhook ids targeted.

        Must be called from inside a running event loop.
        """
        kind = WebhookEvent(payload.event)
        event = kind.value
        targets = self.manager.subscribers(kind)
        if not targets:
            logger.debug("No webhooks subscribed to %s", event)
            return []

        body = build_envelope(event, payload.data(), payload.timestamp)
        for webhook in targets:
            task = asyncio.create_task(self._deliver(webhook, event, body))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

        logger.info("Dispatching %s to %d webhook(s)", event, len(targets))
        return [w.webhook_id for w in targets]

    async def drain(self) -> None:
        """Wait for every scheduled delivery to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _headers(self, webhook: Webhook, event: str, body: bytes) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-Event": event,
            "X-Webhook-Id": webhook.webhook_id,
        }
        if webhook.secret:
            headers["X-Signature"] = sign_payload(webhook.secret, body)
        return headers

    async def _post(self, webhook: Webhook, event: str, body: bytes) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            return await client.post(
                webhook.url, content=body, headers=self._headers(webhook, event, body)
            )

    async def _deliver(self, webhook: Webhook, event: str, body: bytes) -> None:
        error: str | None = None
        try:
            response = await self._post(webhook, event, body)
            if not response.is_success:
                error = f"HTTP {response.status_code}"
        except httpx.HTTPError as exc:
            error = str(exc) or type(exc).__name__
        except Exception as exc:  # noqa: BLE001
            error = str(exc) or type(exc).__name__

        if error:
            logger.error("Webhook %s delivery of %s failed: %s", webhook.webhook_id, event, error)
        self.manager.record_delivery(webhook.webhook_id, event, error is None, error)

    # ------------------------------------------------------------------
    # Test delivery
    # ------------------------------------------------------------------

    async def test_webhook(self, webhook_id: str) -> WebhookTestResult:
        """Send a ``test`` envelope to one webhook and report the outcome.

        Counters and the delivery log are left untouched.
        """
        webhook = self.manager.get_webhook(webhook_id)
        body = build_envelope(
            TEST_EVENT,
            {
                "message": "This is a test webhook from ProofVault",
                "webhookId": webhook.webhook_id,
                "webhookName": webhook.name,
            },
        )
        try:
            response = await self._post(webhook, TEST_EVENT, body)
        except httpx.HTTPError as exc:
            return WebhookTestResult(success=False, error=str(exc) or type(exc).__name__)
        if response.is_success:
            return WebhookTestResult(success=True, status_code=response.status_code)
        return WebhookTestResult(
            success=False,
            status_code=response.status_code,
            error=f"HTTP {response.status_code}",
        )
