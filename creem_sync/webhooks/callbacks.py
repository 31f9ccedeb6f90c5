"""Host callbacks — what the engine tells the application after reconciling.

Every callback receives one flattened dict: the envelope fields
(``webhook_event_type``, ``webhook_id``, ``webhook_created_at``) merged
with the entity's own fields at the top level. Grant/revoke callbacks
receive the entity fields plus ``reason`` instead.

Callbacks may be plain functions or coroutines. They must be idempotent:
duplicate webhook delivery calls them again.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, fields
from typing import Any, Awaitable, Callable

from creem_sync.webhooks.events import WebhookEvent

logger = logging.getLogger(__name__)

Callback = Callable[[dict[str, Any]], Awaitable[None] | None]


@dataclass
class WebhookCallbacks:
    """Optional host hooks, one per event type plus grant/revoke."""

    on_grant_access: Callback | None = None
    on_revoke_access: Callback | None = None

    on_checkout_completed: Callback | None = None
    on_refund_created: Callback | None = None
    on_dispute_created: Callback | None = None
    on_subscription_active: Callback | None = None
    on_subscription_trialing: Callback | None = None
    on_subscription_canceled: Callback | None = None
    on_subscription_scheduled_cancel: Callback | None = None
    on_subscription_paid: Callback | None = None
    on_subscription_expired: Callback | None = None
    on_subscription_unpaid: Callback | None = None
    on_subscription_update: Callback | None = None
    on_subscription_past_due: Callback | None = None
    on_subscription_paused: Callback | None = None

    def get(self, name: str) -> Callback | None:
        return getattr(self, name, None)

    def configured(self) -> list[str]:
        """Names of the callbacks the host actually supplied."""
        return [f.name for f in fields(self) if getattr(self, f.name) is not None]


def flatten_event(event: WebhookEvent) -> dict[str, Any]:
    """Envelope fields plus entity fields in a single dict."""
    return {
        "webhook_event_type": event.event_type,
        "webhook_id": event.id,
        "webhook_created_at": event.created_at,
        **event.entity,
    }


def access_context(event: WebhookEvent, reason: str) -> dict[str, Any]:
    """Payload for on_grant_access / on_revoke_access."""
    return {**event.entity, "reason": reason}


async def invoke_callback(callback: Callback | None, payload: dict[str, Any]) -> None:
    """Call a host callback, awaiting it if it returned an awaitable.

    Exceptions propagate: callback failures are the host's responsibility.
    """
    if callback is None:
        return
    result = callback(payload)
    if inspect.isawaitable(result):
        await result
