"""Trial-abuse guard — one trial per user across all products.

On subscription.trialing the referenced user is flagged ``had_trial``.
Checkout creation (outside this package) reads the flag to withhold a
second trial.

The check-then-set is not atomic, but once the flag is True the guard
never writes again, so duplicate or concurrent trialing events are safe.
"""

from __future__ import annotations

import logging
from typing import Any

from creem_sync.config import Settings
from creem_sync.storage.adapter import StorageAdapter, Where
from creem_sync.webhooks.events import metadata_reference_id

logger = logging.getLogger(__name__)


async def mark_user_had_trial(
    adapter: StorageAdapter,
    settings: Settings,
    subscription: dict[str, Any],
) -> bool:
    """Set ``had_trial`` on the subscription's user if not already set.

    Returns:
        True if the flag transitioned to True on this call
    """
    if not settings.persist_subscriptions:
        return False

    reference_id = metadata_reference_id(subscription)
    if not reference_id:
        logger.warning(
            "Creem webhook: Cannot mark user as had_trial - no referenceId in subscription metadata"
        )
        return False

    try:
        user = await adapter.find_one(settings.user_model, [Where("id", reference_id)])
        if user is None:
            logger.warning(
                "Creem webhook: User not found for referenceId: %s, cannot mark as had_trial",
                reference_id,
            )
            return False

        if user.get("had_trial"):
            return False

        await adapter.update(settings.user_model, [Where("id", reference_id)], {"had_trial": True})
        logger.info("Marked user %s as had_trial=True (trial abuse prevention)", reference_id)
        return True
    except Exception:
        logger.exception("Failed to mark user %s as had_trial", reference_id)
        return False
