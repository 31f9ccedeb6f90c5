"""Webhook engine — the single object a host wires up.

    engine = WebhookEngine(settings, adapter, WebhookCallbacks(on_grant_access=grant))
    register_webhook_routes(app, engine)

Request flow: signature check -> envelope parse -> router. Signature and
parse failures raise; everything after verification is acknowledged.
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import FastAPI

from creem_sync.access_check import has_access_granted
from creem_sync.config import Settings, get_settings
from creem_sync.models import AccessCheckResult
from creem_sync.schema import get_schema
from creem_sync.storage.adapter import InMemoryAdapter, StorageAdapter
from creem_sync.webhooks.callbacks import WebhookCallbacks
from creem_sync.webhooks.events import parse_webhook_event
from creem_sync.webhooks.handlers import ReferenceIdResolver, register_webhook_routes
from creem_sync.webhooks.router import EventRouter, RouteOutcome
from creem_sync.webhooks.verification import require_valid_signature

logger = logging.getLogger(__name__)


class WebhookEngine:
    """Verifies, parses and routes Creem webhooks against one storage adapter."""

    def __init__(
        self,
        settings: Settings | None = None,
        adapter: StorageAdapter | None = None,
        callbacks: WebhookCallbacks | None = None,
    ):
        self.settings = settings or get_settings()
        self.adapter = adapter if adapter is not None else InMemoryAdapter(get_schema(self.settings))
        self.callbacks = callbacks or WebhookCallbacks()
        self.router = EventRouter(self.adapter, self.settings, self.callbacks)

    async def handle(self, body: bytes | str, signature: str | None) -> RouteOutcome:
        """Process one raw webhook delivery.

        Raises:
            SignatureVerificationError: before anything is parsed or written
            WebhookParseError: body is not a valid event envelope
        """
        require_valid_signature(body, self.settings.webhook_secret, signature)
        event = parse_webhook_event(body)
        logger.debug("Verified webhook %s (%s)", event.id, event.event_type)
        return await self.router.dispatch(event)

    async def has_access_granted(self, reference_id: str, now: datetime | None = None) -> AccessCheckResult:
        return await has_access_granted(self.adapter, self.settings, reference_id, now=now)


def create_app(
    engine: WebhookEngine | None = None,
    reference_id_resolver: ReferenceIdResolver | None = None,
) -> FastAPI:
    """Standalone FastAPI app exposing the webhook and access-check routes."""
    app = FastAPI(title="creem-sync")
    register_webhook_routes(app, engine or WebhookEngine(), reference_id_resolver=reference_id_resolver)
    return app
