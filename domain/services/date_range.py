from __future__ import annotations

from datetime import date, datetime, timedelta

from domain.models import ResizeEdge

DAY_FORMAT = "%Y-%m-%d"


def parse_day(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    try:
        # ISO timestamps are accepted; only their date part is kept.
        if len(text) > 10 and text[10] in "T ":
            return datetime.fromisoformat(text).date()
        return date.fromisoformat(text)
    except ValueError as exc:
        msg = f"Invalid day, expected YYYY-MM-DD: {value!r}"
        raise ValueError(msg) from exc


def format_day(day: date) -> str:
    return day.strftime(DAY_FORMAT)


def duration_days(start: date, end: date) -> int:
    if start > end:
        msg = f"Range start {format_day(start)} is after end {format_day(end)}"
        raise ValueError(msg)
    return (end - start).days


def overlaps(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    return a_start <= b_end and b_start <= a_end


def contains(start: date, end: date, day: date) -> bool:
    return start <= day <= end


def shift(day: date, delta_days: int) -> date:
    return day + timedelta(days=delta_days)


def clamp_order(proposed: date, other_bound: date, edge: ResizeEdge) -> date | None:
    """Return ``proposed`` if moving ``edge`` there keeps start <= end, else ``None``.

    ``other_bound`` is the opposite end of the range: the current end date when
    resizing the start, the current start date when resizing the end. Equality
    is accepted and yields a single-day range.
    """
    if edge == "start":
        return proposed if proposed <= other_bound else None
    if edge == "end":
        return proposed if proposed >= other_bound else None
    msg = f"Unknown resize edge: {edge!r}"
    raise ValueError(msg)
