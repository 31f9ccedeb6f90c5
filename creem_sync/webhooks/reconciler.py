"""Subscription reconciler — applies webhook events onto local records.

Lookup is two named stages, first hit wins:
1. find_by_subscription_id: exact creem_subscription_id match
2. find_by_customer_product: records for the customer, preferring the
   event's product, else the customer's first record

An event for a subscription neither stage finds is logged and skipped.
This covers status events that arrive before their checkout.completed.

Every write is one update keyed by the local row id. There is no lock
and no ordering guard: concurrent or reordered deliveries for the same
subscription resolve last-write-wins at the storage layer.

Failure contract:
- Each sub-step catches its own exceptions and logs them
- Nothing raised here reaches the provider as a retryable error
- checkout.completed writes the user and the subscription independently;
  one failing does not stop the other
"""

from __future__ import annotations

import logging
from typing import Any

from creem_sync.config import Settings
from creem_sync.models import SubscriptionStatus, parse_timestamp
from creem_sync.storage.adapter import StorageAdapter, Where
from creem_sync.webhooks.events import WebhookEvent, metadata_reference_id, ref_id

logger = logging.getLogger(__name__)


def resolve_status(value: Any) -> SubscriptionStatus | None:
    """Map a status carried by the provider onto the local enumeration."""
    if isinstance(value, SubscriptionStatus):
        return value
    if not isinstance(value, str):
        return None
    try:
        return SubscriptionStatus(value.strip().lower())
    except ValueError:
        return None


def build_subscription_update(
    subscription: dict[str, Any],
    status: SubscriptionStatus,
    *,
    customer_id: str | None = None,
) -> dict[str, Any]:
    """Fields to write for a status event.

    Period bounds are only written when the event carries them, so a
    sparse event never nulls out a stored value. cancel_at_period_end is
    only touched by scheduled_cancel (True) and canceled (False).
    """
    update: dict[str, Any] = {
        "status": status.value,
        "creem_subscription_id": subscription.get("id"),
    }
    if customer_id:
        update["creem_customer_id"] = customer_id

    period_start = parse_timestamp(subscription.get("current_period_start_date"))
    period_end = parse_timestamp(subscription.get("current_period_end_date"))
    if period_start is not None:
        update["period_start"] = period_start
    if period_end is not None:
        update["period_end"] = period_end

    if status is SubscriptionStatus.SCHEDULED_CANCEL:
        update["cancel_at_period_end"] = True
    elif status is SubscriptionStatus.CANCELED:
        update["cancel_at_period_end"] = False

    return update


class SubscriptionReconciler:
    """Locates and updates subscription records through a StorageAdapter."""

    def __init__(self, adapter: StorageAdapter, settings: Settings):
        self._adapter = adapter
        self._settings = settings

    @property
    def persist(self) -> bool:
        return self._settings.persist_subscriptions

    @property
    def _model(self) -> str:
        return self._settings.subscription_model

    # ── Lookup stages ────────────────────────────────────────────────────

    async def find_by_subscription_id(self, creem_subscription_id: str | None) -> dict[str, Any] | None:
        """Stage 1: exact match on the provider subscription id."""
        if not creem_subscription_id:
            return None
        return await self._adapter.find_one(
            self._model, [Where("creem_subscription_id", creem_subscription_id)]
        )

    async def find_by_customer_product(
        self, customer_id: str | None, product_id: str | None
    ) -> dict[str, Any] | None:
        """Stage 2: the customer's record for this product, else their first record."""
        if not customer_id:
            return None
        candidates = await self._adapter.find_many(
            self._model, [Where("creem_customer_id", customer_id)]
        )
        if not candidates:
            return None
        for candidate in candidates:
            if product_id and candidate.get("product_id") == product_id:
                return candidate
        return candidates[0]

    async def locate(self, subscription: dict[str, Any]) -> dict[str, Any] | None:
        """Run both lookup stages for a subscription entity."""
        record = await self.find_by_subscription_id(subscription.get("id"))
        if record is not None:
            return record
        return await self.find_by_customer_product(
            ref_id(subscription.get("customer"), "subscription customer"),
            ref_id(subscription.get("product"), "subscription product"),
        )

    # ── Status events ────────────────────────────────────────────────────

    async def apply_status(
        self, subscription: dict[str, Any], status: SubscriptionStatus | str | None
    ) -> dict[str, Any] | None:
        """Apply a status transition to the record matching ``subscription``.

        Returns the updated row, or None when nothing was written.
        """
        if not self.persist:
            logger.info("Database persistence disabled, skipping subscription database operations")
            return None

        if not metadata_reference_id(subscription):
            logger.warning(
                "Creem webhook: No referenceId found in subscription event %s. "
                "The user is likely not logged in.",
                subscription.get("id"),
            )
            return None

        resolved = resolve_status(status)
        if resolved is None:
            logger.warning(
                "Creem webhook: Unrecognized status %r for subscription %s, skipping",
                status,
                subscription.get("id"),
            )
            return None

        try:
            record = await self.locate(subscription)
            if record is None:
                logger.warning(
                    "Creem webhook: Subscription not found for creem_subscription_id: %s",
                    subscription.get("id"),
                )
                return None

            update = build_subscription_update(
                subscription,
                resolved,
                customer_id=ref_id(subscription.get("customer"), "subscription customer"),
            )
            updated = await self._adapter.update(self._model, [Where("id", record["id"])], update)
            logger.info("Updated subscription %s to status: %s", record["id"], resolved.value)
            return updated
        except Exception:
            logger.exception(
                "Creem webhook failed (subscription update) for %s", subscription.get("id")
            )
            return None

    # ── checkout.completed ───────────────────────────────────────────────

    async def link_customer_to_user(self, reference_id: str, customer_id: str) -> bool:
        """Record the customer id on the user, first write wins.

        Returns True only if a write happened.
        """
        user_model = self._settings.user_model
        try:
            user = await self._adapter.find_one(user_model, [Where("id", reference_id)])
            if user is None:
                logger.warning("Creem webhook: User %s not found, cannot link customer %s", reference_id, customer_id)
                return False
            if user.get("creem_customer_id"):
                return False

            await self._adapter.update(
                user_model,
                [Where("id", reference_id)],
                {"creem_customer_id": customer_id},
            )
            logger.info("Updated user %s with creem_customer_id: %s", reference_id, customer_id)
            return True
        except Exception:
            logger.exception("Failed to update user %s with creem_customer_id", reference_id)
            return False

    async def upsert_from_checkout(
        self, checkout: dict[str, Any], reference_id: str, customer_id: str
    ) -> dict[str, Any] | None:
        """Create or update the record for a checkout's embedded subscription.

        One-time purchases (no subscription or no order) write nothing.
        """
        embedded = checkout.get("subscription")
        order = checkout.get("order")
        if not embedded or not order:
            return None
        if isinstance(embedded, str):
            embedded = {"id": embedded}

        subscription_id = embedded.get("id")
        if not subscription_id:
            logger.warning("Creem webhook: checkout %s embeds a subscription without an id", checkout.get("id"))
            return None

        data: dict[str, Any] = {
            "product_id": ref_id(checkout.get("product"), "checkout product"),
            "reference_id": reference_id,
            "creem_customer_id": customer_id,
            "creem_subscription_id": subscription_id,
            "creem_order_id": order.get("id") if isinstance(order, dict) else order,
        }
        # Status is stored verbatim; a missing one falls back to the schema default.
        if embedded.get("status"):
            data["status"] = embedded["status"]

        try:
            period_start = parse_timestamp(embedded.get("current_period_start_date"))
            period_end = parse_timestamp(embedded.get("current_period_end_date"))
            if period_start is not None:
                data["period_start"] = period_start
            if period_end is not None:
                data["period_end"] = period_end

            existing = await self.find_by_subscription_id(subscription_id)
            if existing is not None:
                updated = await self._adapter.update(self._model, [Where("id", existing["id"])], data)
                logger.info("Updated subscription %s with Creem data", existing["id"])
                return updated

            created = await self._adapter.create(self._model, data)
            logger.info("Created new subscription %s from checkout", created["id"])
            return created
        except Exception:
            logger.exception("Creem webhook failed (checkout.completed) for subscription %s", subscription_id)
            return None

    async def on_checkout_completed(self, event: WebhookEvent) -> None:
        """Link the customer to the user, then create/update the subscription."""
        if not self.persist:
            logger.info("Database persistence disabled, skipping checkout.completed database operations")
            return

        checkout = event.entity
        customer_id = ref_id(checkout.get("customer"), "checkout customer")
        if not customer_id:
            logger.warning("Creem webhook: No customer ID found in checkout.completed event %s", event.id)
            return

        reference_id = metadata_reference_id(checkout)
        if not reference_id:
            logger.warning("Creem webhook: No referenceId found in checkout.completed event %s", event.id)
            return

        await self.link_customer_to_user(reference_id, customer_id)
        await self.upsert_from_checkout(checkout, reference_id, customer_id)
