"""Async client for the mirror backend (chat, weather and calendar endpoints)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from .config import ApiConfig
from .voice.models import CommandResponse

LOGGER = logging.getLogger("mirror.api")


class MirrorApiError(RuntimeError):
    """Generic mirror backend failure."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(slots=True)
class MirrorApiClient:
    config: ApiConfig
    transport: httpx.AsyncBaseTransport | None = None
    _client: httpx.AsyncClient = field(init=False, repr=False)
    _closed: bool = field(init=False, default=True, repr=False)

    def __post_init__(self) -> None:
        if not self.config.base_url:
            raise ValueError("Mirror API base URL is not configured")
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url.rstrip("/"),
            timeout=self.config.timeout,
            transport=self.transport,
            trust_env=False,
        )
        self._closed = False

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._client.aclose()

    async def chat(self, message: str) -> CommandResponse:
        """Send a spoken command and return the synthesized audio reply."""
        response = await self._request("POST", "/chat", json={"message": message})
        return CommandResponse(audio=response.content, content_type=response.headers.get("content-type"))

    async def get_weather(self, location: str) -> dict[str, Any]:
        response = await self._request("GET", "/weather", params={"location": location})
        payload = self._json(response)
        if not isinstance(payload, dict):
            raise MirrorApiError("Weather response was not a JSON object")
        return payload

    async def get_calendar(self) -> list[dict[str, Any]]:
        response = await self._request("GET", "/calendar")
        payload = self._json(response)
        if not isinstance(payload, list):
            raise MirrorApiError("Calendar response was not a JSON array")
        return [item for item in payload if isinstance(item, dict)]

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            raise MirrorApiError(f"Failed to contact mirror backend: {exc}") from exc
        if not response.is_success:
            raise MirrorApiError(f"HTTP error! Status: {response.status_code}", status_code=response.status_code)
        return response

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise MirrorApiError(f"Invalid JSON from mirror backend: {exc}") from exc
