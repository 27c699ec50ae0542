from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Literal

from domain.models import ResizeEdge
from domain.ports.prompts import ConfirmPrompt
from domain.services.event_store import EventStore, MutationResult

logger = logging.getLogger(__name__)

DragMode = Literal["move", "resize-start", "resize-end"]
ClickOrigin = Literal["cell", "event-body", "resize-handle", "delete-control"]
GestureAction = Literal["none", "drag", "create", "move", "resize", "delete"]

DEFAULT_CONFIRM_MESSAGE = "Delete this event?"
DRAG_MODES: tuple[DragMode, ...] = ("move", "resize-start", "resize-end")


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Dragging:
    event_id: str
    mode: DragMode = "move"

    @property
    def resize_edge(self) -> ResizeEdge | None:
        if self.mode == "resize-start":
            return "start"
        if self.mode == "resize-end":
            return "end"
        return None


GestureState = Idle | Dragging

IDLE = Idle()


@dataclass(frozen=True)
class GestureOutcome:
    state: GestureState
    action: GestureAction = "none"
    result: MutationResult | None = None
    stop_propagation: bool = False

    @property
    def applied(self) -> bool:
        return self.result is not None and self.result.applied


def drag_mode_for_edge(edge: ResizeEdge) -> DragMode:
    if edge == "start":
        return "resize-start"
    if edge == "end":
        return "resize-end"
    msg = f"Unknown resize edge: {edge!r}"
    raise ValueError(msg)


class InteractionController:
    """Turns pointer gestures on the day/resource grid into store mutations.

    The controller is stateless: the current gesture state is passed into each
    handler and the next state comes back in the returned outcome. A drag only
    carries the event id (and the edge for resizes); dates are resolved when a
    cell receives the drop.
    """

    def __init__(
        self,
        store: EventStore,
        confirm: ConfirmPrompt,
        confirm_message: str = DEFAULT_CONFIRM_MESSAGE,
    ) -> None:
        self.store = store
        self.confirm = confirm
        self.confirm_message = confirm_message

    def pointer_down_on_event(self, state: GestureState, event_id: str) -> GestureOutcome:
        self._abandon(state)
        return GestureOutcome(
            state=Dragging(event_id=event_id, mode="move"),
            action="drag",
            stop_propagation=True,
        )

    def pointer_down_on_resize_handle(
        self, state: GestureState, event_id: str, edge: ResizeEdge
    ) -> GestureOutcome:
        self._abandon(state)
        return GestureOutcome(
            state=Dragging(event_id=event_id, mode=drag_mode_for_edge(edge)),
            action="drag",
            stop_propagation=True,
        )

    def drop_on_cell(self, state: GestureState, day: date, resource_id: str) -> GestureOutcome:
        if not isinstance(state, Dragging):
            return GestureOutcome(state=IDLE)
        edge = state.resize_edge
        if edge is None:
            result = self.store.move_event(state.event_id, day, resource_id)
            return GestureOutcome(state=IDLE, action="move", result=result)
        # Resizing never changes the resource, whichever row took the drop.
        result = self.store.resize_event(state.event_id, edge, day)
        return GestureOutcome(state=IDLE, action="resize", result=result)

    def drag_end(self, state: GestureState) -> GestureOutcome:
        self._abandon(state)
        return GestureOutcome(state=IDLE)

    def click_cell(
        self,
        state: GestureState,
        day: date,
        resource_id: str,
        origin: ClickOrigin = "cell",
    ) -> GestureOutcome:
        self._abandon(state)
        if origin != "cell":
            return GestureOutcome(state=IDLE)
        result = self.store.create_event(day, resource_id)
        return GestureOutcome(state=IDLE, action="create", result=result)

    def click_delete_control(self, state: GestureState, event_id: str) -> GestureOutcome:
        self._abandon(state)
        if not self.confirm(self.confirm_message):
            logger.debug("Delete of %s declined", event_id)
            return GestureOutcome(state=IDLE, stop_propagation=True)
        result = self.store.delete_event(event_id)
        return GestureOutcome(state=IDLE, action="delete", result=result, stop_propagation=True)

    def _abandon(self, state: GestureState) -> None:
        if isinstance(state, Dragging):
            logger.debug("Abandoning %s drag of %s without a drop", state.mode, state.event_id)
