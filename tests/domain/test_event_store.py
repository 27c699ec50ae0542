from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, timedelta
from typing import Any

import pytest

from adapters.memory.key_value_store import InMemoryKeyValueStore
from domain.services.date_range import duration_days
from domain.services.event_store import EventStore
from tests.helpers.calendar_fixtures import (
    TEST_PALETTE,
    day,
    make_event,
    make_resources,
    stored_state,
)


class FailingSaveStore(InMemoryKeyValueStore):
    def save(self, key: str, value: Any) -> None:
        raise OSError("disk full")


def _seeded_store(
    store_factory: Callable[..., EventStore],
    events: list[Any],
    counter: int | str = 1,
) -> tuple[EventStore, InMemoryKeyValueStore]:
    storage = InMemoryKeyValueStore(stored_state(make_resources("r1", "r2"), events, counter))
    return store_factory(storage), storage


def test_first_run_seeds_defaults_and_persists_them(
    store: EventStore, memory_storage: InMemoryKeyValueStore
) -> None:
    assert [resource.name for resource in store.resources] == [
        f"Resource {index}" for index in range(1, 7)
    ]
    assert store.events == ()
    assert store.next_event_counter == 1

    saved = memory_storage.snapshot()
    assert [item["id"] for item in saved["resources"]] == [r.id for r in store.resources]
    assert saved["events"] == []
    assert saved["nextEventCounter"] == 1


def test_reload_keeps_seeded_resource_ids(
    memory_storage: InMemoryKeyValueStore, store_factory: Callable[..., EventStore]
) -> None:
    first = store_factory(memory_storage)
    second = store_factory(memory_storage)

    assert [r.id for r in second.resources] == [r.id for r in first.resources]


def test_loads_existing_state(store_factory: Callable[..., EventStore]) -> None:
    store, _ = _seeded_store(
        store_factory, [make_event("e1", "2024-03-01", "2024-03-03")], counter="4"
    )

    assert [resource.id for resource in store.resources] == ["r1", "r2"]
    assert store.get_event("e1") is not None
    assert store.next_event_counter == 4


def test_malformed_stored_entries_are_skipped(
    store_factory: Callable[..., EventStore], caplog: pytest.LogCaptureFixture
) -> None:
    payload = stored_state(make_resources("r1"), [make_event("ok", "2024-03-01")])
    payload["events"] = [
        *payload["events"],  # type: ignore[misc]
        {
            "id": "inverted",
            "resourceId": "r1",
            "startDate": "2024-03-05",
            "endDate": "2024-03-01",
            "title": "x",
            "color": "c",
        },
        {"id": "partial"},
    ]
    payload["nextEventCounter"] = "not a number"

    with caplog.at_level(logging.WARNING):
        store = store_factory(InMemoryKeyValueStore(payload))

    assert [event.id for event in store.events] == ["ok"]
    assert store.next_event_counter == 1
    assert "Skipping malformed events entry" in caplog.text


@pytest.mark.parametrize("stored_counter", ["not a number", 2])
def test_counter_never_falls_behind_generated_titles(
    store_factory: Callable[..., EventStore],
    stored_counter: object,
    caplog: pytest.LogCaptureFixture,
) -> None:
    events = [
        make_event("e1", "2024-03-01", title="Event 4"),
        make_event("e2", "2024-03-02", title="Event 9"),
        make_event("e3", "2024-03-03", title="Planning"),
    ]
    _, storage = _seeded_store(store_factory, events, counter=1)
    storage.save("nextEventCounter", stored_counter)

    with caplog.at_level(logging.WARNING):
        reloaded = store_factory(storage)
        created = reloaded.create_event(day("2024-03-10"), "r1")

    assert created.event is not None
    assert created.event.title == "Event 10"
    assert storage.load("nextEventCounter") == 11
    assert "nextEventCounter" in caplog.text


def test_create_event_uses_counter_for_title_and_color(
    store_factory: Callable[..., EventStore],
) -> None:
    store, storage = _seeded_store(store_factory, [], counter=7)

    result = store.create_event(day("2024-03-10"), "r1")

    assert result.status == "ok"
    event = result.event
    assert event is not None
    assert event.title == "Event 7"
    assert event.color == TEST_PALETTE[1]
    assert event.start_date == event.end_date == date(2024, 3, 10)
    assert event.resource_id == "r1"
    assert store.next_event_counter == 8

    saved = storage.snapshot()
    assert saved["nextEventCounter"] == 8
    assert saved["events"] == [
        {
            "id": event.id,
            "resourceId": "r1",
            "startDate": "2024-03-10",
            "endDate": "2024-03-10",
            "title": "Event 7",
            "color": TEST_PALETTE[1],
        }
    ]


def test_counter_only_grows_across_interleaved_deletes(store: EventStore) -> None:
    resource_id = store.resources[0].id
    initial = store.next_event_counter
    titles = []
    for offset in range(5):
        created = store.create_event(date(2024, 3, 1) + timedelta(days=offset), resource_id)
        assert created.event is not None
        titles.append(created.event.title)
        if offset % 2 == 0:
            store.delete_event(created.event.id)

    assert store.next_event_counter == initial + 5
    assert titles == [f"Event {n}" for n in range(initial, initial + 5)]
    assert len(store.events) == 2


def test_create_on_unknown_resource_is_rejected(store: EventStore) -> None:
    before = store.events

    result = store.create_event(day("2024-03-10"), "missing")

    assert result.status == "not_found"
    assert store.events is before
    assert store.next_event_counter == 1


def test_move_preserves_duration_and_reassigns_resource(
    store_factory: Callable[..., EventStore],
) -> None:
    store, _ = _seeded_store(store_factory, [make_event("e1", "2024-03-01", "2024-03-03")])

    result = store.move_event("e1", day("2024-03-10"), "r2")

    assert result.applied
    moved = store.get_event("e1")
    assert moved is not None
    assert moved.start_date == date(2024, 3, 10)
    assert moved.end_date == date(2024, 3, 12)
    assert moved.resource_id == "r2"
    assert duration_days(moved.start_date, moved.end_date) == 2


def test_move_across_month_end(store_factory: Callable[..., EventStore]) -> None:
    store, _ = _seeded_store(store_factory, [make_event("e1", "2024-03-01", "2024-03-04")])

    store.move_event("e1", day("2024-02-27"), "r1")

    moved = store.get_event("e1")
    assert moved is not None
    assert (moved.start_date, moved.end_date) == (date(2024, 2, 27), date(2024, 3, 1))


def test_move_unknown_event_changes_nothing(store_factory: Callable[..., EventStore]) -> None:
    store, storage = _seeded_store(store_factory, [make_event("e1", "2024-03-01")])
    before = store.events
    saves = storage.save_count

    result = store.move_event("nope", day("2024-03-10"), "r1")

    assert result.status == "not_found"
    assert result.events is before
    assert store.events is before
    assert storage.save_count == saves


def test_move_to_unknown_resource_is_rejected(store_factory: Callable[..., EventStore]) -> None:
    store, _ = _seeded_store(store_factory, [make_event("e1", "2024-03-01")])

    result = store.move_event("e1", day("2024-03-10"), "gone")

    assert result.status == "not_found"
    assert store.get_event("e1") == make_event("e1", "2024-03-01")


def test_resize_end_to_same_day_is_accepted(store_factory: Callable[..., EventStore]) -> None:
    store, _ = _seeded_store(store_factory, [make_event("e1", "2024-03-05")])

    result = store.resize_event("e1", "end", day("2024-03-05"))

    assert result.status == "ok"
    event = store.get_event("e1")
    assert event is not None
    assert event.start_date == event.end_date == date(2024, 3, 5)


def test_resize_start_past_end_is_rejected(store_factory: Callable[..., EventStore]) -> None:
    original = make_event("e1", "2024-03-05")
    store, storage = _seeded_store(store_factory, [original])
    saves = storage.save_count

    result = store.resize_event("e1", "start", day("2024-03-10"))

    assert result.status == "invalid_range"
    assert store.get_event("e1") == original
    assert storage.save_count == saves


def test_resize_moves_only_the_dragged_edge(store_factory: Callable[..., EventStore]) -> None:
    store, _ = _seeded_store(store_factory, [make_event("e1", "2024-03-05", "2024-03-08")])

    store.resize_event("e1", "start", day("2024-03-02"))
    store.resize_event("e1", "end", day("2024-03-12"))

    event = store.get_event("e1")
    assert event is not None
    assert (event.start_date, event.end_date) == (date(2024, 3, 2), date(2024, 3, 12))
    assert event.resource_id == "r1"


@pytest.mark.parametrize("edge", ["start", "end"])
def test_resize_never_inverts_the_range(
    store_factory: Callable[..., EventStore], edge: str
) -> None:
    store, _ = _seeded_store(store_factory, [make_event("e1", "2024-03-10", "2024-03-12")])

    for offset in range(-15, 16):
        proposed = date(2024, 3, 11) + timedelta(days=offset)
        store.resize_event("e1", edge, proposed)  # type: ignore[arg-type]
        event = store.get_event("e1")
        assert event is not None
        assert event.start_date <= event.end_date


def test_resize_unknown_event_is_not_found(store: EventStore) -> None:
    assert store.resize_event("nope", "end", day("2024-03-01")).status == "not_found"


def test_delete_removes_event(store_factory: Callable[..., EventStore]) -> None:
    store, storage = _seeded_store(
        store_factory, [make_event("e1", "2024-03-01"), make_event("e2", "2024-03-02")]
    )

    result = store.delete_event("e1")

    assert result.applied
    assert [event.id for event in store.events] == ["e2"]
    assert [item["id"] for item in storage.snapshot()["events"]] == ["e2"]


def test_delete_missing_event_is_idempotent(store_factory: Callable[..., EventStore]) -> None:
    store, storage = _seeded_store(store_factory, [make_event("e1", "2024-03-01")])
    before = store.events
    saves = storage.save_count

    first = store.delete_event("nope")
    store.delete_event("e1")
    second = store.delete_event("e1")

    assert first.status == "not_found"
    assert first.events is before
    assert second.status == "not_found"
    assert store.events == ()
    assert storage.save_count == saves + 1


def test_add_resource_appends_with_default_name(store: EventStore) -> None:
    added = store.add_resource()
    named = store.add_resource("Crane")

    assert added.name == "Resource 7"
    assert named.name == "Crane"
    assert store.resources[-2:] == (added, named)


def test_lanes_are_recomputed_after_every_mutation(
    store_factory: Callable[..., EventStore],
) -> None:
    store, _ = _seeded_store(
        store_factory,
        [make_event("A", "2024-03-01", "2024-03-03"), make_event("B", "2024-03-02", "2024-03-04")],
    )
    assert store.lane_layouts()["r1"].lanes() == {"A": 0, "B": 1}

    store.move_event("B", day("2024-03-20"), "r1")

    assert store.lane_layouts()["r1"].lanes() == {"A": 0, "B": 0}
    assert store.layout_for("r1").lane_count == 1


def test_orphaned_events_are_reported(store_factory: Callable[..., EventStore]) -> None:
    store, _ = _seeded_store(
        store_factory,
        [make_event("e1", "2024-03-01"), make_event("lost", "2024-03-01", resource_id="gone")],
    )

    assert [event.id for event in store.orphaned_events()] == ["lost"]
    assert "gone" not in store.lane_layouts()


def test_save_failures_keep_in_memory_state(
    store_factory: Callable[..., EventStore], caplog: pytest.LogCaptureFixture
) -> None:
    storage = FailingSaveStore(stored_state(make_resources("r1"), []))

    with caplog.at_level(logging.ERROR):
        store = store_factory(storage)
        result = store.create_event(day("2024-03-01"), "r1")

    assert result.applied
    assert len(store.events) == 1
    assert store.next_event_counter == 2
    assert "Failed to persist" in caplog.text


def test_empty_palette_is_rejected() -> None:
    with pytest.raises(ValueError, match="palette"):
        EventStore(InMemoryKeyValueStore(), palette=())
