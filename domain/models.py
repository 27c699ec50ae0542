from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

ResizeEdge = Literal["start", "end"]

RESOURCES_KEY = "resources"
EVENTS_KEY = "events"
COUNTER_KEY = "nextEventCounter"

DEFAULT_RESOURCE_COUNT = 6
DEFAULT_PALETTE: tuple[str, ...] = (
    "bg-blue-500",
    "bg-emerald-500",
    "bg-violet-500",
    "bg-rose-500",
    "bg-amber-500",
    "bg-cyan-500",
    "bg-fuchsia-500",
    "bg-lime-600",
)


class Resource(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str


class CalendarEvent(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    resource_id: str = Field(..., alias="resourceId")
    start_date: date = Field(..., alias="startDate")
    end_date: date = Field(..., alias="endDate")
    title: str
    color: str

    @model_validator(mode="after")
    def ensure_ordered_range(self) -> CalendarEvent:
        if self.start_date > self.end_date:
            msg = (
                f"Event {self.id} starts after it ends: "
                f"{self.start_date.isoformat()} > {self.end_date.isoformat()}"
            )
            raise ValueError(msg)
        return self

    @property
    def is_hex_color(self) -> bool:
        return self.color.startswith("#")

    def to_storage_dict(self) -> dict[str, str]:
        return self.model_dump(mode="json", by_alias=True)
