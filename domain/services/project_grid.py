from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Literal

from domain.models import CalendarEvent, Resource
from domain.services.assign_lanes import LaneLayout, layout_by_resource
from domain.services.date_range import contains

logger = logging.getLogger(__name__)

DEFAULT_LANE_HEIGHT = 40

EventCap = Literal["single", "start", "end", "middle"]


@dataclass(frozen=True)
class CellEvent:
    event: CalendarEvent
    lane: int
    is_first_day: bool
    is_last_day: bool

    @property
    def shows_title(self) -> bool:
        return self.is_first_day

    @property
    def has_start_handle(self) -> bool:
        return self.is_first_day

    @property
    def has_end_handle(self) -> bool:
        return self.is_last_day

    @property
    def cap(self) -> EventCap:
        if self.is_first_day and self.is_last_day:
            return "single"
        if self.is_first_day:
            return "start"
        if self.is_last_day:
            return "end"
        return "middle"


@dataclass(frozen=True)
class GridCell:
    resource_id: str
    day: date
    events: list[CellEvent] = field(default_factory=list)


@dataclass(frozen=True)
class ResourceRow:
    resource: Resource
    lane_rows: int
    height: int
    cells: list[GridCell] = field(default_factory=list)


@dataclass(frozen=True)
class MonthGrid:
    days: list[date]
    rows: list[ResourceRow]
    orphaned_event_ids: list[str] = field(default_factory=list)

    def cells(self) -> list[GridCell]:
        return [cell for row in self.rows for cell in row.cells]

    def cell(self, resource_id: str, day: date) -> GridCell | None:
        for row in self.rows:
            if row.resource.id != resource_id:
                continue
            for cell in row.cells:
                if cell.day == day:
                    return cell
        return None


def project_grid(
    resources: Sequence[Resource],
    events: Iterable[CalendarEvent],
    days: Sequence[date],
    lane_height: int = DEFAULT_LANE_HEIGHT,
) -> MonthGrid:
    """Project per-resource lane layouts onto (resource, day) cells.

    Lanes are assigned over every event of a resource, so an event keeps its
    lane regardless of which month is visible. The row height only accounts
    for lanes actually used by events visible in ``days``.
    """
    all_events = list(events)
    known = {resource.id for resource in resources}
    orphaned = [event.id for event in all_events if event.resource_id not in known]
    if orphaned:
        logger.warning("Skipping %d event(s) that reference unknown resources", len(orphaned))

    layouts = layout_by_resource(resources, all_events)
    rows = [
        _project_row(resource, layouts[resource.id], days, lane_height) for resource in resources
    ]
    return MonthGrid(days=list(days), rows=rows, orphaned_event_ids=orphaned)


def _project_row(
    resource: Resource,
    layout: LaneLayout,
    days: Sequence[date],
    lane_height: int,
) -> ResourceRow:
    cells: list[GridCell] = []
    visible_lanes: list[int] = []
    for day in days:
        cell_events = [
            CellEvent(
                event=placement.event,
                lane=placement.lane,
                is_first_day=day == placement.event.start_date,
                is_last_day=day == placement.event.end_date,
            )
            for placement in layout.placements
            if contains(placement.event.start_date, placement.event.end_date, day)
        ]
        cell_events.sort(key=lambda item: item.lane)
        visible_lanes.extend(item.lane for item in cell_events)
        cells.append(GridCell(resource_id=resource.id, day=day, events=cell_events))
    lane_rows = max(visible_lanes, default=0) + 1
    return ResourceRow(
        resource=resource,
        lane_rows=lane_rows,
        height=lane_rows * lane_height,
        cells=cells,
    )
