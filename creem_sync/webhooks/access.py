"""Access signal deriver — event type -> grant / revoke / nothing.

The table is fixed. Signals are derived from the event type alone, not
from the stored record, and are not deduplicated: a redelivered event
fires its signal again.
"""

from __future__ import annotations

import logging

from creem_sync.models import AccessSignal, AccessSignalKind, WebhookEventType
from creem_sync.webhooks.callbacks import WebhookCallbacks, access_context, invoke_callback
from creem_sync.webhooks.events import WebhookEvent

logger = logging.getLogger(__name__)

ACCESS_SIGNALS: dict[WebhookEventType, AccessSignal] = {
    WebhookEventType.SUBSCRIPTION_ACTIVE: AccessSignal(AccessSignalKind.GRANT, "subscription_active"),
    WebhookEventType.SUBSCRIPTION_TRIALING: AccessSignal(AccessSignalKind.GRANT, "subscription_trialing"),
    WebhookEventType.SUBSCRIPTION_PAID: AccessSignal(AccessSignalKind.GRANT, "subscription_paid"),
    WebhookEventType.SUBSCRIPTION_EXPIRED: AccessSignal(AccessSignalKind.REVOKE, "subscription_expired"),
    WebhookEventType.SUBSCRIPTION_PAUSED: AccessSignal(AccessSignalKind.REVOKE, "subscription_paused"),
}


def derive_access_signal(event_type: WebhookEventType | str | None) -> AccessSignal | None:
    """Signal for an event type, or None for every other type."""
    if event_type is None:
        return None
    if not isinstance(event_type, WebhookEventType):
        event_type = WebhookEventType.lookup(event_type)
        if event_type is None:
            return None
    return ACCESS_SIGNALS.get(event_type)


async def emit_access_signal(event: WebhookEvent, callbacks: WebhookCallbacks) -> AccessSignal | None:
    """Invoke on_grant_access or on_revoke_access at most once for ``event``."""
    signal = derive_access_signal(event.known_type)
    if signal is None:
        return None

    if signal.kind is AccessSignalKind.GRANT:
        callback = callbacks.on_grant_access
    else:
        callback = callbacks.on_revoke_access

    logger.info("Access %s (%s) for subscription %s", signal.kind.value, signal.reason, event.entity.get("id"))
    await invoke_callback(callback, access_context(event, signal.reason))
    return signal
