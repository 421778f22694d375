"""Webhook configuration and delivery log, persisted in the state store."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlparse

from pydantic import ValidationError

from proofvault.core.errors import InvalidInputError, NotFoundError
from proofvault.core.state_store import WEBHOOK_LOGS_KEY, WEBHOOKS_KEY, StateStore
from proofvault.models.webhooks import Webhook, WebhookEvent, WebhookLogEntry

logger = logging.getLogger(__name__)

MAX_LOG_ENTRIES = 100

UPDATABLE_FIELDS = frozenset({"name", "url", "events", "secret", "enabled"})


def _validate_url(url: str) -> str:
    parsed = urlparse(url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidInputError(f"Invalid webhook URL: {url!r}")
    return url


def _validate_events(events: Iterable[WebhookEvent | str]) -> frozenset[WebhookEvent]:
    try:
        parsed = frozenset(WebhookEvent(e) for e in events)
    except ValueError as exc:
        raise InvalidInputError(str(exc)) from exc
    if not parsed:
        raise InvalidInputError("At least one event must be selected")
    return parsed


class WebhookManager:
    """Create, update and remove webhooks; record and query deliveries.

    Parameters
    ----------
    state_store:
        Backing key-value store for webhooks and the delivery log.
    """

    def __init__(self, state_store: StateStore) -> None:
        self._state = state_store

    def _load(self) -> list[Webhook]:
        return [Webhook.model_validate(raw) for raw in self._state.get(WEBHOOKS_KEY, [])]

    def _save(self, webhooks: list[Webhook]) -> None:
        self._state.put(WEBHOOKS_KEY, [w.model_dump(mode="json") for w in webhooks])

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def create_webhook(
        self,
        url: str,
        events: Iterable[WebhookEvent | str],
        name: str | None = None,
        secret: str | None = None,
        enabled: bool = True,
    ) -> Webhook:
        webhook = Webhook(
            name=name or "Unnamed Webhook",
            url=_validate_url(url),
            events=_validate_events(events),
            secret=secret or None,
            enabled=enabled,
        )
        webhooks = self._load()
        webhooks.append(webhook)
        self._save(webhooks)
        logger.info("Created webhook %s -> %s", webhook.webhook_id, webhook.url)
        return webhook

    def update_webhook(self, webhook_id: str, **changes: Any) -> Webhook:
        """Apply *changes* to the named fields.

        Only name, url, events, secret and enabled can be changed.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidInputError(f"Cannot update webhook fields: {sorted(unknown)}")
        if "url" in changes:
            _validate_url(changes["url"])
        if "events" in changes:
            changes["events"] = _validate_events(changes["events"])

        webhooks = self._load()
        for i, webhook in enumerate(webhooks):
            if webhook.webhook_id == webhook_id:
                try:
                    webhooks[i] = Webhook.model_validate({**webhook.model_dump(), **changes})
                except ValidationError as e:
                    raise InvalidInputError(f"Invalid webhook update: {e}") from e
                self._save(webhooks)
                return webhooks[i]
        raise NotFoundError(f"Webhook not found: {webhook_id}")

    def delete_webhook(self, webhook_id: str) -> bool:
        webhooks = self._load()
        remaining = [w for w in webhooks if w.webhook_id != webhook_id]
        if len(remaining) == len(webhooks):
            return False
        self._save(remaining)
        logger.info("Deleted webhook %s", webhook_id)
        return True

    def get_webhook(self, webhook_id: str) -> Webhook:
        for webhook in self._load():
            if webhook.webhook_id == webhook_id:
                return webhook
        raise NotFoundError(f"Webhook not found: {webhook_id}")

    def list_webhooks(self) -> list[Webhook]:
        return self._load()

    def subscribers(self, event: WebhookEvent) -> list[Webhook]:
        """Enabled webhooks subscribed to *event*."""
        return [w for w in self._load() if w.subscribes_to(event)]

    # ------------------------------------------------------------------
    # Delivery log
    # ------------------------------------------------------------------

    def record_delivery(
        self,
        webhook_id: str,
        event: str,
        success: bool,
        error: str | None = None,
    ) -> WebhookLogEntry:
        """Update the webhook's counters and prepend a log entry.

        Deliveries for webhooks deleted in the meantime are still logged.
        """
        now = datetime.now(timezone.utc)
        webhooks = self._load()
        for i, webhook in enumerate(webhooks):
            if webhook.webhook_id == webhook_id:
                webhooks[i] = webhook.model_copy(
                    update={
                        "last_triggered_at": now,
                        "success_count": webhook.success_count + int(success),
                        "fail_count": webhook.fail_count + int(not success),
                    }
                )
                self._save(webhooks)
                break

        entry = WebhookLogEntry(
            webhook_id=webhook_id, event=event, success=success, error=error, timestamp=now
        )
        logs = self._state.get(WEBHOOK_LOGS_KEY, [])
        logs.insert(0, entry.model_dump(mode="json"))
        self._state.put(WEBHOOK_LOGS_KEY, logs[:MAX_LOG_ENTRIES])
        return entry

    def get_logs(self, webhook_id: str | None = None) -> list[WebhookLogEntry]:
        """Delivery log entries, newest first."""
        entries = [WebhookLogEntry.model_validate(raw) for raw in self._state.get(WEBHOOK_LOGS_KEY, [])]
        if webhook_id is not None:
            entries = [e for e in entries if e.webhook_id == webhook_id]
        return entries

    def clear_logs(self, webhook_id: str | None = None) -> None:
        if webhook_id is None:
            self._state.put(WEBHOOK_LOGS_KEY, [])
            return
        logs = self._state.get(WEBHOOK_LOGS_KEY, [])
        self._state.put(WEBHOOK_LOGS_KEY, [e for e in logs if e.get("webhook_id") != webhook_id])
