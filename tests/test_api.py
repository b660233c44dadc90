"""Tests for the mirror backend client."""

from __future__ import annotations

import json

import httpx
import pytest
from mirror.api import MirrorApiClient, MirrorApiError
from mirror.config import ApiConfig

pytestmark = pytest.mark.anyio


def _client(handler) -> MirrorApiClient:
    return MirrorApiClient(
        ApiConfig(base_url="http://mirror.local:3000/", timeout=5.0),
        transport=httpx.MockTransport(handler),
    )


class TestInit:
    def test_requires_base_url(self):
        with pytest.raises(ValueError):
            MirrorApiClient(ApiConfig(base_url="", timeout=5.0))

    async def test_close_is_idempotent(self):
        client = _client(lambda request: httpx.Response(200))
        await client.close()
        await client.close()


class TestChat:
    async def test_posts_message_and_returns_audio(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=b"ID3", headers={"Content-Type": "audio/mpeg"})

        client = _client(handler)
        response = await client.chat("turn on the lights")
        await client.close()

        assert seen == {
            "method": "POST",
            "url": "http://mirror.local:3000/chat",
            "body": {"message": "turn on the lights"},
        }
        assert response.audio == b"ID3"
        assert response.content_type == "audio/mpeg"

    async def test_http_error_status(self):
        client = _client(lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(MirrorApiError, match="HTTP error! Status: 500") as excinfo:
            await client.chat("hello")
        await client.close()

        assert excinfo.value.status_code == 500

    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = _client(handler)
        with pytest.raises(MirrorApiError, match="Failed to contact mirror backend"):
            await client.chat("hello")
        await client.close()


class TestWeather:
    async def test_passes_location(self):
        def handler(request):
            assert request.url.path == "/weather"
            assert request.url.params["location"] == "Orange,CA"
            return httpx.Response(200, json={"location": {"name": "Orange"}, "current": {}})

        client = _client(handler)
        payload = await client.get_weather("Orange,CA")
        await client.close()

        assert payload["location"]["name"] == "Orange"

    async def test_rejects_non_object(self):
        client = _client(lambda request: httpx.Response(200, json=[1, 2]))
        with pytest.raises(MirrorApiError):
            await client.get_weather("Orange,CA")
        await client.close()

    async def test_invalid_json(self):
        client = _client(lambda request: httpx.Response(200, text="not json"))
        with pytest.raises(MirrorApiError, match="Invalid JSON"):
            await client.get_weather("Orange,CA")
        await client.close()


class TestCalendar:
    async def test_returns_event_objects_only(self):
        client = _client(lambda request: httpx.Response(200, json=[{"summary": "Dentist"}, "junk", 3]))
        events = await client.get_calendar()
        await client.close()

        assert events == [{"summary": "Dentist"}]

    async def test_rejects_non_list(self):
        client = _client(lambda request: httpx.Response(200, json={"items": []}))
        with pytest.raises(MirrorApiError):
            await client.get_calendar()
        await client.close()
