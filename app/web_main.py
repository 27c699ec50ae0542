from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import Any, cast

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, Field

from app.config import AppSettings, load_settings
from app.wiring import build_event_store
from domain.models import CalendarEvent, ResizeEdge, Resource
from domain.services.event_store import EventStore
from domain.services.interaction import (
    IDLE,
    ClickOrigin,
    Dragging,
    DragMode,
    GestureOutcome,
    GestureState,
    InteractionController,
)
from domain.services.month_calendar import (
    day_label,
    days_of_month,
    format_month_key,
    is_today,
    month_label,
    parse_month,
    shift_month,
    weekday_label,
)
from domain.services.project_grid import CellEvent, MonthGrid, project_grid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalendarContext:
    settings: AppSettings
    store: EventStore
    lock: threading.Lock

    def controller(self, confirmed: bool = False) -> InteractionController:
        return InteractionController(
            self.store,
            confirm=lambda _message: confirmed,
            confirm_message=self.settings.calendar.confirm_message,
        )


class ResourceCreateRequest(BaseModel):
    name: str | None = None


class GesturePayload(BaseModel):
    event_id: str = Field(..., min_length=1)
    mode: DragMode = "move"


class CellRequest(BaseModel):
    day: date
    resource_id: str = Field(..., min_length=1)


class ClickCellRequest(CellRequest):
    origin: ClickOrigin = "cell"


class DropRequest(CellRequest):
    gesture: GesturePayload | None = None


class DeleteRequest(BaseModel):
    event_id: str = Field(..., min_length=1)
    confirmed: bool = False


def create_app(settings: AppSettings, store: EventStore | None = None) -> FastAPI:
    app = FastAPI(title=settings.calendar.title, default_response_class=ORJSONResponse)
    app.state.context = CalendarContext(
        settings=settings,
        store=store if store is not None else build_event_store(settings),
        lock=threading.Lock(),
    )

    @app.get("/api/resources")
    def api_resources(context: CalendarContext = Depends(get_context)) -> ORJSONResponse:
        return ORJSONResponse(
            {"resources": [resource_payload(item) for item in context.store.resources]}
        )

    @app.post("/api/resources")
    def api_add_resource(
        body: ResourceCreateRequest,
        context: CalendarContext = Depends(get_context),
    ) -> ORJSONResponse:
        with context.lock:
            resource = context.store.add_resource(body.name)
        return ORJSONResponse({"resource": resource_payload(resource)}, status_code=201)

    @app.get("/api/events")
    def api_events(context: CalendarContext = Depends(get_context)) -> ORJSONResponse:
        with context.lock:
            events = context.store.events
            counter = context.store.next_event_counter
        return ORJSONResponse(
            {
                "events": [event.to_storage_dict() for event in events],
                "next_event_counter": counter,
            }
        )

    @app.get("/api/months/{month}")
    def api_month(month: str, context: CalendarContext = Depends(get_context)) -> ORJSONResponse:
        try:
            anchor = parse_month(month)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        days = days_of_month(anchor)
        with context.lock:
            grid = project_grid(
                context.store.resources,
                context.store.events,
                days,
                lane_height=context.settings.calendar.lane_height,
            )
        return ORJSONResponse(month_payload(anchor, grid))

    @app.post("/api/gestures/click-cell")
    def api_click_cell(
        body: ClickCellRequest,
        context: CalendarContext = Depends(get_context),
    ) -> ORJSONResponse:
        with context.lock:
            outcome = context.controller().click_cell(IDLE, body.day, body.resource_id, body.origin)
        return ORJSONResponse(outcome_payload(outcome))

    @app.post("/api/gestures/drag-start")
    def api_drag_start(
        body: GesturePayload,
        context: CalendarContext = Depends(get_context),
    ) -> ORJSONResponse:
        controller = context.controller()
        if body.mode == "move":
            outcome = controller.pointer_down_on_event(IDLE, body.event_id)
        else:
            edge: ResizeEdge = "start" if body.mode == "resize-start" else "end"
            outcome = controller.pointer_down_on_resize_handle(IDLE, body.event_id, edge)
        return ORJSONResponse(outcome_payload(outcome))

    @app.post("/api/gestures/drop")
    def api_drop(
        body: DropRequest,
        context: CalendarContext = Depends(get_context),
    ) -> ORJSONResponse:
        state: GestureState = IDLE
        if body.gesture is not None:
            state = Dragging(event_id=body.gesture.event_id, mode=body.gesture.mode)
        with context.lock:
            outcome = context.controller().drop_on_cell(state, body.day, body.resource_id)
        return ORJSONResponse(outcome_payload(outcome))

    @app.post("/api/gestures/delete")
    def api_delete(
        body: DeleteRequest,
        context: CalendarContext = Depends(get_context),
    ) -> ORJSONResponse:
        with context.lock:
            outcome = context.controller(confirmed=body.confirmed).click_delete_control(
                IDLE, body.event_id
            )
        return ORJSONResponse(outcome_payload(outcome))

    return app


def get_context(request: Request) -> CalendarContext:
    return cast(CalendarContext, request.app.state.context)


def resource_payload(resource: Resource) -> dict[str, Any]:
    return resource.model_dump(mode="json")


def state_payload(state: GestureState) -> dict[str, Any]:
    if isinstance(state, Dragging):
        return {"kind": "dragging", "event_id": state.event_id, "mode": state.mode}
    return {"kind": "idle"}


def outcome_payload(outcome: GestureOutcome) -> dict[str, Any]:
    result = outcome.result
    event: CalendarEvent | None = result.event if result is not None else None
    return {
        "action": outcome.action,
        "state": state_payload(outcome.state),
        "status": result.status if result is not None else None,
        "event": event.to_storage_dict() if event is not None else None,
    }


def cell_event_payload(item: CellEvent) -> dict[str, Any]:
    return {
        "id": item.event.id,
        "title": item.event.title,
        "color": item.event.color,
        "lane": item.lane,
        "is_first_day": item.is_first_day,
        "is_last_day": item.is_last_day,
        "cap": item.cap,
        "shows_title": item.shows_title,
        "has_start_handle": item.has_start_handle,
        "has_end_handle": item.has_end_handle,
    }


def month_payload(anchor: date, grid: MonthGrid, today: date | None = None) -> dict[str, Any]:
    return {
        "month": format_month_key(anchor),
        "label": month_label(anchor),
        "previous": format_month_key(shift_month(anchor, -1)),
        "next": format_month_key(shift_month(anchor, 1)),
        "days": [
            {
                "date": day.isoformat(),
                "day": day_label(day),
                "weekday": weekday_label(day),
                "is_today": is_today(day, today),
            }
            for day in grid.days
        ],
        "rows": [
            {
                "resource": resource_payload(row.resource),
                "lane_rows": row.lane_rows,
                "height": row.height,
                "cells": [
                    {
                        "day": cell.day.isoformat(),
                        "events": [cell_event_payload(item) for item in cell.events],
                    }
                    for cell in row.cells
                ],
            }
            for row in grid.rows
        ],
        "orphaned_event_ids": list(grid.orphaned_event_ids),
    }


def build_default_app() -> FastAPI:
    settings = load_settings()
    logger.info("Serving calendar data from %s", settings.calendar.data_dir)
    return create_app(settings)
