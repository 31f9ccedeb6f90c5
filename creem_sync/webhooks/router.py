"""Event router — static table from event type to handling steps.

Each known event type maps to an EventRoute describing:
- which reconciliation path runs (none, checkout creation, status update)
- the target status, or that the status is carried by the event object
- whether the trial-abuse guard runs
- which host callback receives the flattened event

The access signal comes from creem_sync.webhooks.access. Steps run in
order: reconciliation, access signal, event callback. Reconciliation
faults are logged and never stop the later steps, so host callbacks
always observe a finished write.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from creem_sync.config import Settings
from creem_sync.models import AccessSignal, SubscriptionStatus, WebhookEventType
from creem_sync.storage.adapter import StorageAdapter
from creem_sync.webhooks.access import emit_access_signal
from creem_sync.webhooks.callbacks import WebhookCallbacks, flatten_event, invoke_callback
from creem_sync.webhooks.events import WebhookEvent
from creem_sync.webhooks.reconciler import SubscriptionReconciler
from creem_sync.webhooks.trial_guard import mark_user_had_trial

logger = logging.getLogger(__name__)


class Reconcile(str, Enum):
    NONE = "none"
    CHECKOUT = "checkout"
    STATUS = "status"


@dataclass(frozen=True)
class EventRoute:
    """How one event type is handled."""
    reconcile: Reconcile
    callback: str
    target_status: SubscriptionStatus | None = None
    status_from_event: bool = False
    marks_trial: bool = False


def _status_route(callback: str, status: SubscriptionStatus, **kwargs) -> EventRoute:
    return EventRoute(Reconcile.STATUS, callback, target_status=status, **kwargs)


EVENT_ROUTES: dict[WebhookEventType, EventRoute] = {
    WebhookEventType.CHECKOUT_COMPLETED: EventRoute(Reconcile.CHECKOUT, "on_checkout_completed"),
    WebhookEventType.REFUND_CREATED: EventRoute(Reconcile.NONE, "on_refund_created"),
    WebhookEventType.DISPUTE_CREATED: EventRoute(Reconcile.NONE, "on_dispute_created"),
    WebhookEventType.SUBSCRIPTION_ACTIVE: _status_route(
        "on_subscription_active", SubscriptionStatus.ACTIVE
    ),
    WebhookEventType.SUBSCRIPTION_TRIALING: _status_route(
        "on_subscription_trialing", SubscriptionStatus.TRIALING, marks_trial=True
    ),
    WebhookEventType.SUBSCRIPTION_CANCELED: _status_route(
        "on_subscription_canceled", SubscriptionStatus.CANCELED
    ),
    WebhookEventType.SUBSCRIPTION_SCHEDULED_CANCEL: _status_route(
        "on_subscription_scheduled_cancel", SubscriptionStatus.SCHEDULED_CANCEL
    ),
    WebhookEventType.SUBSCRIPTION_PAID: EventRoute(
        Reconcile.STATUS, "on_subscription_paid", status_from_event=True
    ),
    WebhookEventType.SUBSCRIPTION_EXPIRED: _status_route(
        "on_subscription_expired", SubscriptionStatus.EXPIRED
    ),
    WebhookEventType.SUBSCRIPTION_UNPAID: _status_route(
        "on_subscription_unpaid", SubscriptionStatus.UNPAID
    ),
    WebhookEventType.SUBSCRIPTION_UPDATE: EventRoute(
        Reconcile.STATUS, "on_subscription_update", status_from_event=True
    ),
    WebhookEventType.SUBSCRIPTION_PAST_DUE: _status_route(
        "on_subscription_past_due", SubscriptionStatus.PAST_DUE
    ),
    WebhookEventType.SUBSCRIPTION_PAUSED: _status_route(
        "on_subscription_paused", SubscriptionStatus.PAUSED
    ),
}

_unrouted = set(WebhookEventType) - set(EVENT_ROUTES)
if _unrouted:
    raise RuntimeError(f"Webhook event types without a route: {sorted(t.value for t in _unrouted)}")


@dataclass
class RouteOutcome:
    """What the router did with one event (feeds the audit log)."""
    event_type: str
    webhook_id: str
    handled: bool
    signal: AccessSignal | None = None


class EventRouter:
    """Dispatches parsed events through EVENT_ROUTES."""

    def __init__(self, adapter: StorageAdapter, settings: Settings, callbacks: WebhookCallbacks):
        self._adapter = adapter
        self._settings = settings
        self._callbacks = callbacks
        self.reconciler = SubscriptionReconciler(adapter, settings)

    async def _reconcile(self, route: EventRoute, event: WebhookEvent) -> None:
        try:
            if route.reconcile is Reconcile.CHECKOUT:
                await self.reconciler.on_checkout_completed(event)
                return

            status = event.entity.get("status") if route.status_from_event else route.target_status
            await self.reconciler.apply_status(event.entity, status)
            if route.marks_trial:
                await mark_user_had_trial(self._adapter, self._settings, event.entity)
        except Exception:
            logger.exception("Reconciliation failed for %s event %s", event.event_type, event.id)

    async def dispatch(self, event: WebhookEvent) -> RouteOutcome:
        """Run every step routed for ``event``.

        Unknown event types are acknowledged without any work.
        """
        event_type = event.known_type
        if event_type is None:
            logger.info("Unrecognized webhook event: %s - skipping", event.event_type)
            return RouteOutcome(event_type=event.event_type, webhook_id=event.id, handled=False)

        route = EVENT_ROUTES[event_type]
        if route.reconcile is not Reconcile.NONE:
            await self._reconcile(route, event)

        signal = await emit_access_signal(event, self._callbacks)
        await invoke_callback(self._callbacks.get(route.callback), flatten_event(event))

        return RouteOutcome(event_type=event_type.value, webhook_id=event.id, handled=True, signal=signal)
