"""Storage adapter — the narrow interface the reconciler writes through.

The host supplies the real adapter (SQL, document store, ...). Every
call is keyed by a model name and a list of field-equality filters.
Rows are plain dicts carrying an ``id`` key.

InMemoryAdapter is a dict-backed implementation with the same contract,
used by tests and by hosts that only want the callbacks.
"""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from creem_sync.errors import StorageError
from creem_sync.schema import FieldSpec, apply_defaults, missing_required

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Where:
    """Field equality filter."""
    field: str
    value: Any


@runtime_checkable
class StorageAdapter(Protocol):
    """Operations the engine needs from the host's storage layer."""

    async def find_one(self, model: str, where: list[Where]) -> dict[str, Any] | None: ...

    async def find_many(self, model: str, where: list[Where]) -> list[dict[str, Any]]: ...

    async def create(self, model: str, data: dict[str, Any]) -> dict[str, Any]: ...

    async def update(
        self, model: str, where: list[Where], update: dict[str, Any]
    ) -> dict[str, Any] | None: ...


def _matches(row: dict[str, Any], where: list[Where]) -> bool:
    return all(row.get(w.field) == w.value for w in where)


class InMemoryAdapter:
    """Dict-backed StorageAdapter.

    For production this would be backed by the host's database. Rows are
    deep-copied on the way in and out so callers cannot mutate stored
    state behind the adapter's back. Updates are applied to a single row
    at a time, which gives the same last-write-wins behaviour a per-row
    UPDATE has.
    """

    def __init__(self, schema: dict[str, dict[str, FieldSpec]] | None = None):
        self._schema = schema or {}
        self._tables: dict[str, dict[str, dict[str, Any]]] = {}

    def _table(self, model: str) -> dict[str, dict[str, Any]]:
        return self._tables.setdefault(model, {})

    def seed(self, model: str, row: dict[str, Any]) -> dict[str, Any]:
        """Insert a row verbatim (no defaults, no validation). Test/bootstrap helper."""
        stored = copy.deepcopy(row)
        stored.setdefault("id", uuid.uuid4().hex)
        self._table(model)[stored["id"]] = stored
        return copy.deepcopy(stored)

    def rows(self, model: str) -> list[dict[str, Any]]:
        """Snapshot of every row in a model, in insertion order."""
        return [copy.deepcopy(r) for r in self._table(model).values()]

    async def find_one(self, model: str, where: list[Where]) -> dict[str, Any] | None:
        for row in self._table(model).values():
            if _matches(row, where):
                return copy.deepcopy(row)
        return None

    async def find_many(self, model: str, where: list[Where]) -> list[dict[str, Any]]:
        return [copy.deepcopy(r) for r in self._table(model).values() if _matches(r, where)]

    async def create(self, model: str, data: dict[str, Any]) -> dict[str, Any]:
        fields = self._schema.get(model, {})
        missing = missing_required(fields, data)
        if missing:
            raise StorageError(f"Missing required fields for {model}: {', '.join(missing)}", model=model)

        row = apply_defaults(fields, copy.deepcopy(data))
        row["id"] = uuid.uuid4().hex
        self._table(model)[row["id"]] = row
        logger.debug("Created %s row %s", model, row["id"])
        return copy.deepcopy(row)

    async def update(
        self, model: str, where: list[Where], update: dict[str, Any]
    ) -> dict[str, Any] | None:
        for row in self._table(model).values():
            if _matches(row, where):
                row.update(copy.deepcopy(update))
                return copy.deepcopy(row)
        return None
