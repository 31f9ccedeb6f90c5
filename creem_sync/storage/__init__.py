"""Storage adapter interface and in-memory reference implementation."""

from creem_sync.storage.adapter import InMemoryAdapter, StorageAdapter, Where

__all__ = ["InMemoryAdapter", "StorageAdapter", "Where"]
