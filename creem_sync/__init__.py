"""Creem webhook ingestion and subscription reconciliation.

Verifies inbound Creem webhooks, reconciles them into local subscription
records through a host-supplied storage adapter, and emits grant/revoke
access signals to host callbacks.
"""

from creem_sync.config import Settings, get_settings
from creem_sync.engine import WebhookEngine, create_app
from creem_sync.webhooks.callbacks import WebhookCallbacks

__all__ = ["Settings", "WebhookCallbacks", "WebhookEngine", "create_app", "get_settings"]
