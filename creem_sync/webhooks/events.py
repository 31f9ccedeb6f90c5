"""Webhook event envelope — parsing and shape validation.

A Creem webhook body looks like::

    {"eventType": "subscription.active", "id": "evt_...", "created_at": 1700000000,
     "object": {"object": "subscription", "id": "sub_...", "customer": {...}, ...}}

Only the envelope and the entity discriminator are validated. Nested
references (customer, product, order) are trusted to arrive expanded;
ref_id() tolerates a bare id string and logs it instead of failing.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, ValidationError, field_validator

from creem_sync.errors import WebhookParseError
from creem_sync.models import EntityKind, WebhookEventType

logger = logging.getLogger(__name__)

_ENTITY_KINDS = {kind.value for kind in EntityKind}


class WebhookEvent(BaseModel):
    """Validated event envelope."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    event_type: str = Field(alias="eventType", min_length=1, strict=True)
    id: str = Field(strict=True)
    created_at: StrictInt | StrictFloat
    entity: dict[str, Any] = Field(alias="object")

    @field_validator("entity")
    @classmethod
    def _check_discriminator(cls, value: dict[str, Any]) -> dict[str, Any]:
        kind = value.get("object")
        if not isinstance(kind, str) or kind not in _ENTITY_KINDS:
            raise ValueError(f"object is not a recognized entity (object={kind!r})")
        return value

    @property
    def entity_kind(self) -> EntityKind:
        return EntityKind(self.entity["object"])

    @property
    def known_type(self) -> WebhookEventType | None:
        """The event type as a closed enum member, or None if unsupported."""
        return WebhookEventType.lookup(self.event_type)


def parse_webhook_event(body: bytes | str) -> WebhookEvent:
    """Parse a raw webhook body into a WebhookEvent.

    Raises:
        WebhookParseError: body is not JSON, or fails the envelope shape check
    """
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise WebhookParseError(f"Webhook body is not valid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise WebhookParseError("Webhook body must be a JSON object")

    try:
        return WebhookEvent.model_validate(payload)
    except ValidationError as exc:
        raise WebhookParseError(f"Invalid webhook event: {exc.error_count()} validation error(s)") from exc


# ── Entity field helpers ─────────────────────────────────────────────────


def ref_id(value: Any, label: str = "reference") -> str | None:
    """Id of a nested reference, whether expanded (``{"id": ...}``) or bare.

    Creem expands customer/product in webhook payloads. A bare id string
    still resolves, but is logged since the payload broke that contract.
    """
    if value is None:
        return None
    if isinstance(value, dict):
        ref = value.get("id")
        return ref if isinstance(ref, str) and ref else None
    if isinstance(value, str) and value:
        logger.warning("Creem webhook: %s arrived as bare id %s instead of an expanded object", label, value)
        return value
    return None


def metadata_reference_id(entity: dict[str, Any]) -> str | None:
    """The host's reference id carried in ``metadata.referenceId``."""
    metadata = entity.get("metadata") or {}
    if not isinstance(metadata, dict):
        return None
    reference_id = metadata.get("referenceId")
    if reference_id is None or reference_id == "":
        return None
    return str(reference_id)
