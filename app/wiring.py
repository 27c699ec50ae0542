from __future__ import annotations

from adapters.filesystem.key_value_store import FileSystemKeyValueStore
from adapters.memory.key_value_store import InMemoryKeyValueStore
from app.config import AppSettings
from domain.ports.storage import KeyValueStore
from domain.services.event_store import EventStore


def build_key_value_store(settings: AppSettings) -> KeyValueStore:
    if settings.calendar.storage == "memory":
        return InMemoryKeyValueStore()
    if settings.calendar.storage == "filesystem":
        return FileSystemKeyValueStore(settings.calendar.data_dir)
    msg = f"Unsupported calendar.storage: {settings.calendar.storage}"
    raise ValueError(msg)


def build_event_store(
    settings: AppSettings, storage: KeyValueStore | None = None
) -> EventStore:
    return EventStore(
        storage if storage is not None else build_key_value_store(settings),
        palette=settings.calendar.palette,
        default_resource_count=settings.calendar.default_resource_count,
    )
