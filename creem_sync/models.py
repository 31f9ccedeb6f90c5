"""Billing sync data models.

Records themselves are plain dicts owned by the host's storage adapter
(see creem_sync.storage.adapter). This module holds the closed
enumerations the engine dispatches on and the small value objects it
hands back to callers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class SubscriptionStatus(str, Enum):
    """Local subscription record states."""
    PENDING = "pending"
    ACTIVE = "active"
    TRIALING = "trialing"
    CANCELED = "canceled"
    PAID = "paid"
    EXPIRED = "expired"
    UNPAID = "unpaid"
    PAST_DUE = "past_due"
    PAUSED = "paused"
    SCHEDULED_CANCEL = "scheduled_cancel"


class WebhookEventType(str, Enum):
    """Every event type the router knows how to handle."""
    CHECKOUT_COMPLETED = "checkout.completed"
    REFUND_CREATED = "refund.created"
    DISPUTE_CREATED = "dispute.created"
    SUBSCRIPTION_ACTIVE = "subscription.active"
    SUBSCRIPTION_TRIALING = "subscription.trialing"
    SUBSCRIPTION_CANCELED = "subscription.canceled"
    SUBSCRIPTION_SCHEDULED_CANCEL = "subscription.scheduled_cancel"
    SUBSCRIPTION_PAID = "subscription.paid"
    SUBSCRIPTION_EXPIRED = "subscription.expired"
    SUBSCRIPTION_UNPAID = "subscription.unpaid"
    SUBSCRIPTION_UPDATE = "subscription.update"
    SUBSCRIPTION_PAST_DUE = "subscription.past_due"
    SUBSCRIPTION_PAUSED = "subscription.paused"

    @classmethod
    def lookup(cls, value: str) -> WebhookEventType | None:
        """Return the member for a raw event type string, or None if unknown."""
        try:
            return cls(value)
        except ValueError:
            return None


class EntityKind(str, Enum):
    """Discriminator values carried in ``object.object``."""
    CHECKOUT = "checkout"
    CUSTOMER = "customer"
    ORDER = "order"
    PRODUCT = "product"
    SUBSCRIPTION = "subscription"
    REFUND = "refund"
    DISPUTE = "dispute"
    TRANSACTION = "transaction"


class AccessSignalKind(str, Enum):
    GRANT = "grant"
    REVOKE = "revoke"


@dataclass(frozen=True)
class AccessSignal:
    """A grant or revoke notification derived from an event type."""
    kind: AccessSignalKind
    reason: str


@dataclass
class AccessCheckResult:
    """Outcome of a local has-access-granted check.

    ``has_access_granted`` is None when the answer is unknowable
    (persistence disabled), not False.
    """
    has_access_granted: bool | None
    message: str = ""
    subscription: dict[str, Any] | None = None
    subscriptions: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"hasAccessGranted": self.has_access_granted}
        if self.message:
            body["message"] = self.message
        if self.subscription is not None:
            body["subscription"] = self.subscription
        if self.subscriptions:
            body["subscriptions"] = self.subscriptions
        return body


_ACTIVE_STATUSES = {"active", "trialing", "paid"}

# 1e11 seconds is the year 5138; 1e11 ms is March 1973
_EPOCH_MS_THRESHOLD = 100_000_000_000


def is_active_subscription(status: str) -> bool:
    """True for statuses that grant access regardless of period end."""
    return (status or "").lower() in _ACTIVE_STATUSES


def parse_timestamp(value: Any) -> datetime | None:
    """Coerce a provider timestamp into an aware datetime.

    Accepts ISO-8601 strings (a trailing ``Z`` included), epoch numbers,
    or datetimes. Epoch numbers above _EPOCH_MS_THRESHOLD are read as
    milliseconds (Creem's unit), smaller ones as seconds. Empty values and
    unparseable or out-of-range inputs yield None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) >= _EPOCH_MS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (ValueError, OverflowError, OSError):
            logger.warning("Out-of-range timestamp from provider: %r", value)
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            logger.warning("Unparseable timestamp from provider: %r", value)
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None
