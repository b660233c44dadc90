"""Upcoming events list for the mirror page."""

from __future__ import annotations

import html
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .board import FIELD_EVENTS, DisplayBoard

if TYPE_CHECKING:
    from mirror.api import MirrorApiClient

LOGGER = logging.getLogger("mirror.display.calendar")

NO_DESCRIPTION = "No description available"
NO_START = "No start time"
NO_END = "No end time"


@dataclass(frozen=True)
class CalendarEntry:
    id: str | None
    title: str
    description: str
    link: str | None
    start: str
    end: str


def _moment(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _start_label(start: dict[str, Any]) -> str:
    if start.get("date"):
        return str(start["date"])
    date_time = start.get("date_time")
    if date_time:
        return str(date_time)[:10]
    return NO_START


def _end_label(end: dict[str, Any]) -> str:
    return str(end.get("date") or end.get("date_time") or NO_END)


def parse_events(events: Iterable[Any]) -> list[CalendarEntry]:
    """Normalize backend events; all-day events keep their date, timed ones their day."""
    entries: list[CalendarEntry] = []
    for event in events:
        if not isinstance(event, dict):
            continue
        entries.append(
            CalendarEntry(
                id=event.get("id"),
                title=str(event.get("summary") or ""),
                description=event.get("description") or NO_DESCRIPTION,
                link=event.get("html_link"),
                start=_start_label(_moment(event.get("start"))),
                end=_end_label(_moment(event.get("end"))),
            )
        )
    return entries


def render_events_html(entries: Iterable[CalendarEntry]) -> str:
    return "".join(f"<li>{html.escape(entry.start)}:<br> {html.escape(entry.title)}</li>" for entry in entries)


async def fetch_calendar_events(api: MirrorApiClient) -> list[CalendarEntry]:
    try:
        raw = await api.get_calendar()
    except RuntimeError as exc:
        LOGGER.error("[display] Error fetching calendar data: %s", exc)
        return []
    LOGGER.debug("[display] Received %d calendar events", len(raw))
    return parse_events(raw)


async def refresh_calendar(api: MirrorApiClient, board: DisplayBoard) -> list[CalendarEntry]:
    entries = await fetch_calendar_events(api)
    board.set_text(FIELD_EVENTS, render_events_html(entries))
    return entries
