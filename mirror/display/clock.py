"""Clock and date fields for the mirror page."""

from __future__ import annotations

from datetime import datetime

from .board import FIELD_DATE, FIELD_TIME, DisplayBoard


def format_time(now: datetime) -> str:
    """12-hour clock with two-digit hour and minute, e.g. ``03:07 PM``."""
    return now.strftime("%I:%M %p")


def format_date(now: datetime) -> str:
    """Long weekday, short month, e.g. ``Monday, Oct 19, 2026``."""
    return f"{now.strftime('%A, %b')} {now.day}, {now.year}"


def refresh_clock(board: DisplayBoard, now: datetime | None = None) -> None:
    current = now or datetime.now().astimezone()
    board.set_text(FIELD_TIME, format_time(current))
    board.set_text(FIELD_DATE, format_date(current))
