from __future__ import annotations

import calendar
from datetime import date

from domain.services.date_range import shift


def start_of_month(anchor: date) -> date:
    return anchor.replace(day=1)


def end_of_month(anchor: date) -> date:
    _, last_day = calendar.monthrange(anchor.year, anchor.month)
    return anchor.replace(day=last_day)


def days_of_month(anchor: date) -> list[date]:
    first = start_of_month(anchor)
    count = (end_of_month(anchor) - first).days + 1
    return [shift(first, offset) for offset in range(count)]


def shift_month(anchor: date, delta: int) -> date:
    index = anchor.year * 12 + (anchor.month - 1) + delta
    year, month = divmod(index, 12)
    return date(year, month + 1, 1)


def parse_month(value: str) -> date:
    text = str(value or "").strip()
    try:
        year_text, month_text = text.split("-")[:2]
        return date(int(year_text), int(month_text), 1)
    except ValueError as exc:
        msg = f"Invalid month, expected YYYY-MM: {value!r}"
        raise ValueError(msg) from exc


def format_month_key(anchor: date) -> str:
    return f"{anchor.year:04d}-{anchor.month:02d}"


def month_label(anchor: date) -> str:
    return f"{calendar.month_name[anchor.month]} {anchor.year}"


def weekday_label(day: date) -> str:
    return calendar.day_abbr[day.weekday()]


def day_label(day: date) -> str:
    return str(day.day)


def is_today(day: date, today: date | None = None) -> bool:
    return day == (today or date.today())
