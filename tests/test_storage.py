"""Tests for the schema declaration and the in-memory storage adapter."""

from __future__ import annotations

import pytest

from creem_sync.config import Settings
from creem_sync.errors import StorageError
from creem_sync.schema import SUBSCRIPTION_FIELDS, apply_defaults, get_schema, missing_required
from creem_sync.storage import InMemoryAdapter, StorageAdapter, Where


class TestSchema:

    def test_persisting_schema(self, settings):
        schema = get_schema(settings)
        assert set(schema) == {"user", "creem_subscription"}
        assert schema["user"]["had_trial"].default is False
        assert schema["creem_subscription"]["status"].default == "pending"

    def test_no_subscription_model_without_persistence(self):
        schema = get_schema(Settings(_env_file=None, persist_subscriptions=False))
        assert set(schema) == {"user"}

    def test_custom_model_names(self):
        settings = Settings(_env_file=None, subscription_model="billing_sub", user_model="account")
        assert set(get_schema(settings)) == {"account", "billing_sub"}

    def test_apply_defaults_fills_missing_and_none(self):
        row = apply_defaults(SUBSCRIPTION_FIELDS, {"product_id": "p", "status": None})
        assert row["status"] == "pending"
        assert row["cancel_at_period_end"] is False
        assert "period_end" not in row

    def test_apply_defaults_keeps_given_values(self):
        row = apply_defaults(SUBSCRIPTION_FIELDS, {"status": "active", "cancel_at_period_end": True})
        assert row["status"] == "active"
        assert row["cancel_at_period_end"] is True

    def test_missing_required(self):
        assert missing_required(SUBSCRIPTION_FIELDS, {"product_id": "", "reference_id": None}) == [
            "product_id",
            "reference_id",
        ]
        assert missing_required(SUBSCRIPTION_FIELDS, {"product_id": "p", "reference_id": "u"}) == []


class TestInMemoryAdapter:

    @pytest.fixture()
    def store(self, settings) -> InMemoryAdapter:
        return InMemoryAdapter(get_schema(settings))

    def test_satisfies_protocol(self, store):
        assert isinstance(store, StorageAdapter)

    @pytest.mark.asyncio
    async def test_create_applies_defaults_and_id(self, store):
        row = await store.create("creem_subscription", {"product_id": "p", "reference_id": "u"})
        assert row["id"]
        assert row["status"] == "pending"
        assert row["cancel_at_period_end"] is False
        assert await store.find_one("creem_subscription", [Where("id", row["id"])]) == row

    @pytest.mark.asyncio
    async def test_create_rejects_missing_required(self, store):
        with pytest.raises(StorageError, match="product_id") as exc_info:
            await store.create("creem_subscription", {"reference_id": "u"})
        assert exc_info.value.model == "creem_subscription"

    @pytest.mark.asyncio
    async def test_find_many_and_filters(self, store):
        store.seed("creem_subscription", {"id": "a", "creem_customer_id": "c1", "product_id": "p1"})
        store.seed("creem_subscription", {"id": "b", "creem_customer_id": "c1", "product_id": "p2"})
        store.seed("creem_subscription", {"id": "c", "creem_customer_id": "c2", "product_id": "p1"})

        rows = await store.find_many("creem_subscription", [Where("creem_customer_id", "c1")])
        assert [r["id"] for r in rows] == ["a", "b"]

        both = [Where("creem_customer_id", "c1"), Where("product_id", "p2")]
        assert (await store.find_one("creem_subscription", both))["id"] == "b"
        assert await store.find_one("creem_subscription", [Where("product_id", "nope")]) is None

    @pytest.mark.asyncio
    async def test_update_merges_fields(self, store):
        store.seed("user", {"id": "u1", "email": "a@example.com"})
        updated = await store.update("user", [Where("id", "u1")], {"had_trial": True})
        assert updated == {"id": "u1", "email": "a@example.com", "had_trial": True}

    @pytest.mark.asyncio
    async def test_update_no_match(self, store):
        assert await store.update("user", [Where("id", "ghost")], {"had_trial": True}) is None

    @pytest.mark.asyncio
    async def test_returned_rows_are_copies(self, store):
        store.seed("user", {"id": "u1", "meta": {"k": 1}})
        row = await store.find_one("user", [Where("id", "u1")])
        row["meta"]["k"] = 2
        assert store.rows("user")[0]["meta"] == {"k": 1}
