"""Render targets for the kiosk page, keyed by logical field name."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

LOGGER = logging.getLogger("mirror.display.board")

FIELD_TIME = "time"
FIELD_DATE = "date"
FIELD_WEATHER = "weather"
FIELD_WEATHER_ICON = "weather_icon"
FIELD_EVENTS = "events"
FIELD_RESPONSE = "response"
FIELD_USER_INPUT = "user_input"

FIELDS = (
    FIELD_TIME,
    FIELD_DATE,
    FIELD_WEATHER,
    FIELD_WEATHER_ICON,
    FIELD_EVENTS,
    FIELD_RESPONSE,
    FIELD_USER_INPUT,
)

# Fields whose value is inserted as markup rather than escaped text.
HTML_FIELDS = frozenset({FIELD_WEATHER, FIELD_EVENTS})


@dataclass(frozen=True)
class BoardChange:
    field: str
    value: str
    version: int


BoardListener = Callable[[BoardChange], None]


class DisplayBoard:
    """Thread-safe store of what each field on the mirror page shows.

    The asyncio side writes; the HTTP server thread reads snapshots.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: dict[str, str] = dict.fromkeys(FIELDS, "")
        self._version = 0
        self._updated_at = time.time()
        self._listeners: list[BoardListener] = []

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def add_listener(self, listener: BoardListener) -> None:
        self._listeners.append(listener)

    def get(self, field: str) -> str:
        with self._lock:
            return self._values.get(field, "")

    def set_text(self, field: str, value: str) -> None:
        if field not in self._values:
            raise KeyError(f"Unknown display field: {field}")
        with self._lock:
            if self._values[field] == value:
                return
            self._values[field] = value
            self._version += 1
            self._updated_at = time.time()
            change = BoardChange(field=field, value=value, version=self._version)
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                LOGGER.warning("[display] Board listener failed for %s", field, exc_info=True)

    def snapshot(self) -> dict[str, object]:
        with self._lock:
            return {
                "version": self._version,
                "updated_at": self._updated_at,
                "fields": dict(self._values),
            }
