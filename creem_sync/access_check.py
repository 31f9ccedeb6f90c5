"""Local has-access-granted check over reconciled subscription records.

Reads only what the webhook engine has written; it never calls the Creem
API. A user has access when any of their records is active, trialing, or
paid, or is canceled/unpaid/scheduled_cancel with a period end still in
the future.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from creem_sync.config import Settings
from creem_sync.models import AccessCheckResult, is_active_subscription, parse_timestamp
from creem_sync.storage.adapter import StorageAdapter, Where

logger = logging.getLogger(__name__)

# Statuses that keep access until the paid-for period runs out
_GRACE_STATUSES = {"canceled", "unpaid", "scheduled_cancel"}


def _summary(record: dict[str, Any]) -> dict[str, Any]:
    period_end = parse_timestamp(record.get("period_end"))
    return {
        "id": record.get("id"),
        "status": record.get("status"),
        "productId": record.get("product_id"),
        "periodEnd": period_end.isoformat() if period_end else None,
    }


async def has_access_granted(
    adapter: StorageAdapter,
    settings: Settings,
    reference_id: str,
    now: datetime | None = None,
) -> AccessCheckResult:
    """Decide whether ``reference_id`` currently has access."""
    if not settings.persist_subscriptions:
        return AccessCheckResult(
            has_access_granted=None,
            message=(
                "Database persistence is disabled. Enable 'persist_subscriptions' "
                "or implement custom subscription checking."
            ),
        )

    records = await adapter.find_many(settings.subscription_model, [Where("reference_id", reference_id)])
    if not records:
        return AccessCheckResult(has_access_granted=False, message="No subscriptions found for this user")

    now = now or datetime.now(timezone.utc)
    for record in records:
        status = str(record.get("status") or "").lower()

        if is_active_subscription(status):
            return AccessCheckResult(has_access_granted=True, subscription=_summary(record))

        if status in _GRACE_STATUSES:
            period_end = parse_timestamp(record.get("period_end"))
            if period_end is not None and period_end > now:
                return AccessCheckResult(
                    has_access_granted=True,
                    subscription=_summary(record),
                    message=f"Subscription is {status} but access granted until {period_end.isoformat()}",
                )

    return AccessCheckResult(
        has_access_granted=False,
        message="No active subscriptions found",
        subscriptions=[_summary(r) for r in records],
    )
