"""Current conditions block for the mirror page."""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .board import FIELD_WEATHER, FIELD_WEATHER_ICON, DisplayBoard

if TYPE_CHECKING:
    from mirror.api import MirrorApiClient

LOGGER = logging.getLogger("mirror.display.weather")


@dataclass(frozen=True)
class WeatherReport:
    name: str
    region: str
    temp_f: float | None
    condition: str
    icon: str | None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> WeatherReport:
        location = payload.get("location") or {}
        current = payload.get("current") or {}
        if not isinstance(location, dict) or not isinstance(current, dict):
            raise ValueError("Weather payload is missing location/current blocks")
        condition = current.get("condition") or {}
        if not isinstance(condition, dict):
            condition = {}
        temp = current.get("temp_f")
        try:
            temp_f = float(temp) if temp is not None else None
        except (TypeError, ValueError):
            temp_f = None
        return cls(
            name=str(location.get("name") or ""),
            region=str(location.get("region") or ""),
            temp_f=temp_f,
            condition=str(condition.get("text") or ""),
            icon=_absolute_icon_url(condition.get("icon")),
        )


def _absolute_icon_url(icon: Any) -> str | None:
    if not icon or not isinstance(icon, str):
        return None
    icon = icon.strip()
    if icon.startswith("//"):
        return f"https:{icon}"
    return icon or None


def _format_temp(temp_f: float | None) -> str:
    if temp_f is None:
        return "--"
    if float(temp_f).is_integer():
        return str(int(temp_f))
    return f"{temp_f:g}"


def render_weather_html(report: WeatherReport) -> str:
    name = html.escape(report.name)
    region = html.escape(report.region)
    condition = html.escape(report.condition)
    return f"{name}, {region} <br> Temp:{_format_temp(report.temp_f)}°F <br> Condition:{condition}"


async def refresh_weather(api: MirrorApiClient, board: DisplayBoard, location: str) -> WeatherReport | None:
    """Fetch and render the weather; on failure the board keeps its last value."""
    try:
        payload = await api.get_weather(location)
        report = WeatherReport.from_payload(payload)
    except (RuntimeError, ValueError) as exc:
        LOGGER.error("[display] Error fetching weather data: %s", exc)
        return None
    board.set_text(FIELD_WEATHER, render_weather_html(report))
    board.set_text(FIELD_WEATHER_ICON, report.icon or "")
    return report
