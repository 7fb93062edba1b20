"""Durable storage backends."""

from bpmn_builder.db.storage import LocalStorage, MemoryStorage, Storage

__all__ = ["LocalStorage", "MemoryStorage", "Storage"]
