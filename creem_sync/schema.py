"""Storage schema declaration.

The host owns the tables; this module declares which models and fields
the engine reads and writes so a host (or InMemoryAdapter) can create
them and apply defaults.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any

from creem_sync.config import Settings


@dataclass(frozen=True)
class FieldSpec:
    """A single declared column."""
    type: str  # string, boolean, date
    required: bool = False
    default: Any = None


SUBSCRIPTION_FIELDS: dict[str, FieldSpec] = {
    "product_id": FieldSpec("string", required=True),
    "reference_id": FieldSpec("string", required=True),
    "creem_customer_id": FieldSpec("string"),
    "creem_subscription_id": FieldSpec("string"),
    "creem_order_id": FieldSpec("string"),
    "status": FieldSpec("string", default="pending"),
    "period_start": FieldSpec("date"),
    "period_end": FieldSpec("date"),
    "cancel_at_period_end": FieldSpec("boolean", default=False),
}

# Only the two extension columns are touched; the rest of the user
# table belongs to the host.
USER_FIELDS: dict[str, FieldSpec] = {
    "creem_customer_id": FieldSpec("string"),
    # Set once a trialing event is seen; never reset by this engine.
    "had_trial": FieldSpec("boolean", default=False),
}


def get_schema(settings: Settings) -> dict[str, dict[str, FieldSpec]]:
    """Return model name -> field declarations for the current settings.

    With persistence disabled the subscription model is omitted entirely.
    """
    schema: dict[str, dict[str, FieldSpec]] = {settings.user_model: dict(USER_FIELDS)}
    if settings.persist_subscriptions:
        schema[settings.subscription_model] = dict(SUBSCRIPTION_FIELDS)
    return schema


def apply_defaults(fields: dict[str, FieldSpec], data: dict[str, Any]) -> dict[str, Any]:
    """Fill declared defaults for keys missing (or None) in ``data``."""
    row = dict(data)
    for name, spec in fields.items():
        if row.get(name) is None and spec.default is not None:
            row[name] = copy.copy(spec.default)
    return row


def missing_required(fields: dict[str, FieldSpec], data: dict[str, Any]) -> list[str]:
    """Names of required fields that are absent or empty in ``data``."""
    return [
        name for name, spec in fields.items()
        if spec.required and data.get(name) in (None, "")
    ]
