"""Tests for enumerations, value helpers and settings."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from creem_sync.config import Settings
from creem_sync.models import (
    SubscriptionStatus,
    WebhookEventType,
    is_active_subscription,
    parse_timestamp,
)


class TestParseTimestamp:

    def test_iso_with_z(self):
        assert parse_timestamp("2026-01-01T00:00:00.000Z") == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_iso_with_offset(self):
        parsed = parse_timestamp("2026-01-01T02:00:00+02:00")
        assert parsed == datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(hours=2)

    def test_naive_iso_assumed_utc(self):
        assert parse_timestamp("2026-01-01T00:00:00").tzinfo is timezone.utc

    def test_epoch_seconds(self):
        assert parse_timestamp(1767225600) == datetime(2026, 1, 1, tzinfo=timezone.utc)

    def test_epoch_milliseconds(self):
        assert parse_timestamp(1767225600000) == datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert parse_timestamp(1767225600500.0) == datetime(2026, 1, 1, 0, 0, 0, 500000, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [10**20, -10**20, float("inf"), float("nan")])
    def test_out_of_range_number_logged(self, value, caplog):
        assert parse_timestamp(value) is None
        assert "Out-of-range timestamp" in caplog.text

    def test_datetime_passthrough(self):
        aware = datetime(2026, 5, 1, tzinfo=timezone.utc)
        assert parse_timestamp(aware) is aware
        assert parse_timestamp(datetime(2026, 5, 1)).tzinfo is timezone.utc

    @pytest.mark.parametrize("value", [None, "", True, [], {}])
    def test_empty_or_unsupported(self, value):
        assert parse_timestamp(value) is None

    def test_garbage_string_logged(self, caplog):
        assert parse_timestamp("next tuesday") is None
        assert "Unparseable timestamp" in caplog.text


class TestIsActiveSubscription:

    @pytest.mark.parametrize("status", ["active", "trialing", "paid", "Active"])
    def test_active(self, status):
        assert is_active_subscription(status) is True

    @pytest.mark.parametrize("status", ["canceled", "expired", "unpaid", "past_due", "paused", "pending", "", None])
    def test_inactive(self, status):
        assert is_active_subscription(status) is False


class TestEnums:

    def test_status_values(self):
        assert {s.value for s in SubscriptionStatus} == {
            "pending", "active", "trialing", "canceled", "paid",
            "expired", "unpaid", "past_due", "paused", "scheduled_cancel",
        }

    def test_event_type_lookup(self):
        assert WebhookEventType.lookup("subscription.past_due") is WebhookEventType.SUBSCRIPTION_PAST_DUE
        assert WebhookEventType.lookup("subscription.PAST_DUE") is None
        assert WebhookEventType.lookup("") is None


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)
        assert settings.webhook_secret == ""
        assert settings.persist_subscriptions is True
        assert settings.signature_header == "creem-signature"
        assert settings.webhook_path == "/creem/webhook"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("CREEM_WEBHOOK_SECRET", "whsec_env")
        monkeypatch.setenv("CREEM_PERSIST_SUBSCRIPTIONS", "false")
        settings = Settings(_env_file=None)
        assert settings.webhook_secret == "whsec_env"
        assert settings.persist_subscriptions is False
