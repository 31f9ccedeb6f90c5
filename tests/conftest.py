"""Shared fixtures for the creem_sync test suite."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from creem_sync.config import Settings
from creem_sync.engine import WebhookEngine
from creem_sync.schema import get_schema
from creem_sync.webhooks.callbacks import WebhookCallbacks
from factories import SECRET, RecordingAdapter


@pytest.fixture()
def settings() -> Settings:
    return Settings(_env_file=None, webhook_secret=SECRET, persist_subscriptions=True)


@pytest.fixture()
def adapter(settings: Settings) -> RecordingAdapter:
    return RecordingAdapter(get_schema(settings))


@pytest.fixture()
def callbacks() -> WebhookCallbacks:
    """Every callback slot filled with an AsyncMock."""
    cb = WebhookCallbacks()
    for name in list(vars(cb)):
        setattr(cb, name, AsyncMock(name=name))
    return cb


@pytest.fixture()
def engine(settings: Settings, adapter: RecordingAdapter, callbacks: WebhookCallbacks) -> WebhookEngine:
    return WebhookEngine(settings, adapter, callbacks)


@pytest.fixture()
def user(adapter: RecordingAdapter) -> dict[str, Any]:
    """An existing host user with no Creem fields set yet."""
    return adapter.seed("user", {"id": "user_1", "email": "a@example.com", "had_trial": False})
