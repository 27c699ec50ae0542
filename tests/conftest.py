from __future__ import annotations

import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from adapters.memory.key_value_store import InMemoryKeyValueStore
from app.config import AppSettings, CalendarSettings
from domain.services.event_store import EventStore
from tests.helpers.calendar_fixtures import TEST_PALETTE, sequential_ids


def _clear_rcal_env() -> None:
    for key in list(os.environ):
        if key.startswith("RCAL_"):
            os.environ.pop(key, None)


_clear_rcal_env()


@pytest.fixture(autouse=True)
def clear_rcal_env() -> Generator[None, None, None]:
    _clear_rcal_env()
    yield
    _clear_rcal_env()


@pytest.fixture
def memory_storage() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def store_factory() -> Callable[..., EventStore]:
    def _factory(
        storage: InMemoryKeyValueStore | None = None,
        **overrides: object,
    ) -> EventStore:
        options: dict[str, object] = {
            "palette": TEST_PALETTE,
            "id_factory": sequential_ids(),
        }
        options.update(overrides)
        target = storage if storage is not None else InMemoryKeyValueStore()
        return EventStore(target, **options)  # type: ignore[arg-type]

    return _factory


@pytest.fixture
def store(
    memory_storage: InMemoryKeyValueStore,
    store_factory: Callable[..., EventStore],
) -> EventStore:
    return store_factory(memory_storage)


@pytest.fixture
def calendar_settings(tmp_path: Path) -> CalendarSettings:
    return CalendarSettings(
        title="Test Calendar",
        storage="filesystem",
        data_dir=tmp_path / "calendar",
        palette=list(TEST_PALETTE),
        default_resource_count=6,
        lane_height=40,
    )


@pytest.fixture
def calendar_settings_factory(
    calendar_settings: CalendarSettings,
) -> Callable[..., CalendarSettings]:
    def _factory(**overrides: object) -> CalendarSettings:
        return calendar_settings.model_copy(update=overrides)

    return _factory


@pytest.fixture
def app_settings(calendar_settings: CalendarSettings) -> AppSettings:
    return AppSettings(calendar=calendar_settings)


@pytest.fixture
def app_settings_factory(
    calendar_settings_factory: Callable[..., CalendarSettings],
) -> Callable[..., AppSettings]:
    def _factory(**overrides: object) -> AppSettings:
        return AppSettings(calendar=calendar_settings_factory(**overrides))

    return _factory
