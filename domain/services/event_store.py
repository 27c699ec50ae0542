from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ValidationError

from domain.models import (
    COUNTER_KEY,
    DEFAULT_PALETTE,
    DEFAULT_RESOURCE_COUNT,
    EVENTS_KEY,
    RESOURCES_KEY,
    CalendarEvent,
    ResizeEdge,
    Resource,
)
from domain.ports.storage import KeyValueStore
from domain.services.assign_lanes import LaneLayout, assign_lanes, layout_by_resource
from domain.services.date_range import clamp_order, duration_days, format_day, shift

logger = logging.getLogger(__name__)

MutationStatus = Literal["ok", "not_found", "invalid_range"]

_ModelT = TypeVar("_ModelT", bound=BaseModel)

_GENERATED_TITLE = re.compile(r"Event (\d+)")


@dataclass(frozen=True)
class MutationResult:
    status: MutationStatus
    events: tuple[CalendarEvent, ...]
    event: CalendarEvent | None = None

    @property
    def applied(self) -> bool:
        return self.status == "ok"


def new_identifier() -> str:
    return str(uuid.uuid4())


class EventStore:
    """Authoritative owner of resources, events and the title counter.

    State is loaded from the injected key-value store once, at construction.
    Every successful mutation swaps in a new event tuple and saves the keys it
    touched; rejected mutations leave both memory and storage untouched.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        *,
        palette: Sequence[str] = DEFAULT_PALETTE,
        id_factory: Callable[[], str] = new_identifier,
        default_resource_count: int = DEFAULT_RESOURCE_COUNT,
    ) -> None:
        if not palette:
            msg = "palette must contain at least one color"
            raise ValueError(msg)
        self._storage = storage
        self._palette = tuple(palette)
        self._new_id = id_factory
        self._resources = self._load_resources(default_resource_count)
        self._events = self._load_events()
        self._counter = self._load_counter()

    @property
    def resources(self) -> tuple[Resource, ...]:
        return self._resources

    @property
    def events(self) -> tuple[CalendarEvent, ...]:
        return self._events

    @property
    def next_event_counter(self) -> int:
        return self._counter

    @property
    def palette(self) -> tuple[str, ...]:
        return self._palette

    def color_for(self, counter: int) -> str:
        return self._palette[(counter - 1) % len(self._palette)]

    def get_event(self, event_id: str) -> CalendarEvent | None:
        for event in self._events:
            if event.id == event_id:
                return event
        return None

    def get_resource(self, resource_id: str) -> Resource | None:
        for resource in self._resources:
            if resource.id == resource_id:
                return resource
        return None

    def events_for_resource(self, resource_id: str) -> list[CalendarEvent]:
        return [event for event in self._events if event.resource_id == resource_id]

    def orphaned_events(self) -> list[CalendarEvent]:
        known = {resource.id for resource in self._resources}
        return [event for event in self._events if event.resource_id not in known]

    def lane_layouts(self) -> dict[str, LaneLayout]:
        return layout_by_resource(self._resources, self._events)

    def layout_for(self, resource_id: str) -> LaneLayout:
        return assign_lanes(self.events_for_resource(resource_id))

    def add_resource(self, name: str | None = None) -> Resource:
        label = (name or "").strip() or f"Resource {len(self._resources) + 1}"
        resource = Resource(id=self._new_id(), name=label)
        self._resources = (*self._resources, resource)
        logger.debug("Added resource %s (%s)", resource.id, resource.name)
        self._save(RESOURCES_KEY, [item.model_dump(mode="json") for item in self._resources])
        return resource

    def create_event(self, day: date, resource_id: str) -> MutationResult:
        if self.get_resource(resource_id) is None:
            logger.info("Create rejected: unknown resource %s", resource_id)
            return self._unchanged("not_found")
        counter = self._counter
        event = CalendarEvent(
            id=self._new_id(),
            resource_id=resource_id,
            start_date=day,
            end_date=day,
            title=f"Event {counter}",
            color=self.color_for(counter),
        )
        self._commit_events((*self._events, event))
        self._counter = counter + 1
        self._save(COUNTER_KEY, self._counter)
        logger.debug("Created %s on %s for resource %s", event.title, format_day(day), resource_id)
        return MutationResult(status="ok", events=self._events, event=event)

    def move_event(self, event_id: str, new_start: date, new_resource_id: str) -> MutationResult:
        current = self.get_event(event_id)
        if current is None:
            logger.info("Move rejected: unknown event %s", event_id)
            return self._unchanged("not_found")
        if self.get_resource(new_resource_id) is None:
            logger.info("Move rejected: unknown resource %s", new_resource_id)
            return self._unchanged("not_found", current)
        span = duration_days(current.start_date, current.end_date)
        moved = current.model_copy(
            update={
                "resource_id": new_resource_id,
                "start_date": new_start,
                "end_date": shift(new_start, span),
            }
        )
        self._commit_events(self._replace(moved))
        logger.debug(
            "Moved %s to %s..%s on resource %s",
            event_id,
            format_day(moved.start_date),
            format_day(moved.end_date),
            new_resource_id,
        )
        return MutationResult(status="ok", events=self._events, event=moved)

    def resize_event(self, event_id: str, edge: ResizeEdge, proposed: date) -> MutationResult:
        current = self.get_event(event_id)
        if current is None:
            logger.info("Resize rejected: unknown event %s", event_id)
            return self._unchanged("not_found")
        other_bound = current.end_date if edge == "start" else current.start_date
        accepted = clamp_order(proposed, other_bound, edge)
        if accepted is None:
            logger.info(
                "Resize rejected: moving %s of %s to %s would invert the range",
                edge,
                event_id,
                format_day(proposed),
            )
            return self._unchanged("invalid_range", current)
        field_name = "start_date" if edge == "start" else "end_date"
        resized = current.model_copy(update={field_name: accepted})
        self._commit_events(self._replace(resized))
        logger.debug("Resized %s %s to %s", event_id, edge, format_day(accepted))
        return MutationResult(status="ok", events=self._events, event=resized)

    def delete_event(self, event_id: str) -> MutationResult:
        current = self.get_event(event_id)
        if current is None:
            logger.info("Delete of unknown event %s ignored", event_id)
            return self._unchanged("not_found")
        self._commit_events(tuple(event for event in self._events if event.id != event_id))
        logger.debug("Deleted %s", event_id)
        return MutationResult(status="ok", events=self._events, event=current)

    def _unchanged(
        self, status: MutationStatus, event: CalendarEvent | None = None
    ) -> MutationResult:
        return MutationResult(status=status, events=self._events, event=event)

    def _replace(self, updated: CalendarEvent) -> tuple[CalendarEvent, ...]:
        return tuple(updated if event.id == updated.id else event for event in self._events)

    def _commit_events(self, events: tuple[CalendarEvent, ...]) -> None:
        self._events = events
        self._save(EVENTS_KEY, [event.to_storage_dict() for event in events])

    def _save(self, key: str, value: Any) -> None:
        try:
            self._storage.save(key, value)
        except Exception:
            logger.exception("Failed to persist %r; in-memory state is kept.", key)

    def _load_resources(self, default_count: int) -> tuple[Resource, ...]:
        payload = self._storage.load(RESOURCES_KEY)
        if payload is None:
            seeded = tuple(
                Resource(id=self._new_id(), name=f"Resource {index + 1}")
                for index in range(default_count)
            )
            self._save(RESOURCES_KEY, [item.model_dump(mode="json") for item in seeded])
            return seeded
        return tuple(_parse_items(payload, Resource, RESOURCES_KEY))

    def _load_events(self) -> tuple[CalendarEvent, ...]:
        payload = self._storage.load(EVENTS_KEY)
        if payload is None:
            self._save(EVENTS_KEY, [])
            return ()
        return tuple(_parse_items(payload, CalendarEvent, EVENTS_KEY))

    def _load_counter(self) -> int:
        floor = _counter_floor(self._events)
        payload = self._storage.load(COUNTER_KEY)
        if payload is None:
            self._save(COUNTER_KEY, floor)
            return floor
        try:
            counter = int(payload)
        except (TypeError, ValueError):
            logger.warning(
                "Stored %s is not an integer: %r; using %d", COUNTER_KEY, payload, floor
            )
            self._save(COUNTER_KEY, floor)
            return floor
        if counter < floor:
            logger.warning(
                "Stored %s %d is behind existing titles; using %d", COUNTER_KEY, counter, floor
            )
            self._save(COUNTER_KEY, floor)
            return floor
        return counter


def _parse_items(payload: Any, model: type[_ModelT], key: str) -> list[_ModelT]:
    if not isinstance(payload, list):
        logger.warning("Stored %s is not a list; ignoring it", key)
        return []
    items: list[_ModelT] = []
    seen: set[str] = set()
    for raw in payload:
        try:
            item = model.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Skipping malformed %s entry %r: %s", key, raw, exc)
            continue
        identifier = str(getattr(item, "id", ""))
        if identifier in seen:
            logger.warning("Skipping duplicate %s id %s", key, identifier)
            continue
        seen.add(identifier)
        items.append(item)
    return items


def _counter_floor(events: Sequence[CalendarEvent]) -> int:
    used = [
        int(match.group(1))
        for match in (_GENERATED_TITLE.fullmatch(event.title) for event in events)
        if match is not None
    ]
    return max(used, default=0) + 1
