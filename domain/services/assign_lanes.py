from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from domain.models import CalendarEvent, Resource
from domain.services.date_range import overlaps


@dataclass(frozen=True)
class PlacedEvent:
    event: CalendarEvent
    lane: int


@dataclass(frozen=True)
class LaneLayout:
    placements: list[PlacedEvent] = field(default_factory=list)
    lane_count: int = 0

    def lane_of(self, event_id: str) -> int | None:
        for placement in self.placements:
            if placement.event.id == event_id:
                return placement.lane
        return None

    def lanes(self) -> dict[str, int]:
        return {placement.event.id: placement.lane for placement in self.placements}


def _sort_key(event: CalendarEvent) -> tuple[str, str]:
    # Ties on start date break on id so unordered input always packs the same way.
    return (event.start_date.isoformat(), event.id)


def assign_lanes(events: Iterable[CalendarEvent]) -> LaneLayout:
    ordered = sorted(events, key=_sort_key)
    lane_tails: list[CalendarEvent] = []
    placements: list[PlacedEvent] = []
    for event in ordered:
        lane = 0
        while lane < len(lane_tails) and not lane_tails[lane].end_date < event.start_date:
            lane += 1
        if lane == len(lane_tails):
            lane_tails.append(event)
        else:
            lane_tails[lane] = event
        placements.append(PlacedEvent(event=event, lane=lane))
    return LaneLayout(placements=placements, lane_count=len(lane_tails))


def layout_by_resource(
    resources: Sequence[Resource],
    events: Iterable[CalendarEvent],
) -> dict[str, LaneLayout]:
    grouped: dict[str, list[CalendarEvent]] = {resource.id: [] for resource in resources}
    for event in events:
        bucket = grouped.get(event.resource_id)
        if bucket is not None:
            bucket.append(event)
    return {resource_id: assign_lanes(bucket) for resource_id, bucket in grouped.items()}


def find_lane_conflicts(layout: LaneLayout) -> list[tuple[str, str]]:
    conflicts: list[tuple[str, str]] = []
    placements = layout.placements
    for index, left in enumerate(placements):
        for right in placements[index + 1 :]:
            if left.lane != right.lane:
                continue
            if overlaps(
                left.event.start_date,
                left.event.end_date,
                right.event.start_date,
                right.event.end_date,
            ):
                conflicts.append((left.event.id, right.event.id))
    return conflicts
