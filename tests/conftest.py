"""Shared test fixtures for the mirror kiosk test suite.

This module provides reusable fixtures for:
- A scripted recognition engine that records sessions and emits events
- Voice configuration objects
- Mocked backend client and audio player
- MQTT configuration and client mocks
"""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import AsyncMock, Mock

import paho.mqtt.client as mqtt
import pytest
from mirror.config import MqttConfig, VoiceConfig
from mirror.display.board import DisplayBoard
from mirror.voice.models import (
    EngineEvent,
    ListenerMode,
    RecognitionError,
    RecognitionErrorEvent,
    RecognitionSession,
    SessionEndedEvent,
    TranscriptBatch,
    TranscriptBatchEvent,
    TranscriptEvent,
)

# ============================================================================
# Pytest Configuration
# ============================================================================


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio backend for async tests."""
    return "asyncio"


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing."""
    return Mock(spec=logging.Logger)


# ============================================================================
# Recognition engine
# ============================================================================


class ScriptedRecognitionEngine:
    """Recognition engine stand-in driven by the test.

    Sessions are recorded on ``start``/``stop``; results, errors and session
    ends are pushed onto the attached queue by the ``emit_*`` helpers.
    """

    def __init__(self, *, available: bool = True) -> None:
        self.available = available
        self.events: asyncio.Queue[EngineEvent] | None = None
        self.started: list[RecognitionSession] = []
        self.stopped: list[RecognitionSession] = []
        self.active: RecognitionSession | None = None
        self.fail_next_start: Exception | None = None
        self.closed = False
        self._results: dict[int, list[TranscriptEvent]] = {}

    def attach(self, events: asyncio.Queue[EngineEvent]) -> None:
        self.events = events

    def is_available(self) -> bool:
        return self.available

    def start(self, session: RecognitionSession) -> None:
        if self.fail_next_start is not None:
            exc, self.fail_next_start = self.fail_next_start, None
            raise exc
        self.started.append(session)
        self.active = session

    def stop(self, session: RecognitionSession) -> None:
        self.stopped.append(session)
        if self.active is session:
            self.active = None

    async def close(self) -> None:
        self.closed = True

    def sessions(self, mode: ListenerMode) -> list[RecognitionSession]:
        return [session for session in self.started if session.mode is mode]

    def latest(self, mode: ListenerMode) -> RecognitionSession:
        return self.sessions(mode)[-1]

    def emit_transcripts(self, session: RecognitionSession, *texts: str, is_final: bool = True) -> TranscriptBatch:
        results = self._results.setdefault(session.session_id, [])
        start_index = len(results)
        results.extend(TranscriptEvent(text=text, is_final=is_final, mode=session.mode) for text in texts)
        batch = TranscriptBatch(results=tuple(results), result_index=start_index)
        self._put(TranscriptBatchEvent(session=session, batch=batch))
        return batch

    def emit_error(self, session: RecognitionSession, code: str = "network", message: str = "") -> None:
        self._put(RecognitionErrorEvent(session=session, error=RecognitionError(code=code, message=message)))

    def emit_end(self, session: RecognitionSession) -> None:
        self._put(SessionEndedEvent(session=session))

    def _put(self, event: EngineEvent) -> None:
        assert self.events is not None, "engine not attached"
        self.events.put_nowait(event)


@pytest.fixture
def engine():
    return ScriptedRecognitionEngine()


@pytest.fixture
def voice_config():
    return VoiceConfig(
        enabled=True,
        wake_phrase="carter",
        language="en-US",
        error_restart_delay=0.01,
        error_backoff_max=0.01,
        log_transcripts=True,
    )


@pytest.fixture
def board():
    return DisplayBoard()


@pytest.fixture
def command_client():
    """Backend client whose ``chat`` returns audio bytes."""
    client = Mock()
    client.chat = AsyncMock()
    return client


@pytest.fixture
def player():
    player = Mock()
    player.play = Mock(return_value=None)
    return player


# ============================================================================
# MQTT Fixtures
# ============================================================================


@pytest.fixture
def mqtt_config():
    """Create a basic MQTT configuration for testing."""
    return MqttConfig(
        host="localhost",
        port=1883,
        topic_base="mirror/test",
        username=None,
        password=None,
        tls_enabled=False,
        ca_cert=None,
        cert=None,
        key=None,
    )


@pytest.fixture
def mock_mqtt_client():
    """Create a mock paho MQTT client."""
    client = Mock(spec=mqtt.Client)
    client.connect = Mock()
    client.disconnect = Mock()
    message_info = Mock(spec=mqtt.MQTTMessageInfo)
    message_info.rc = mqtt.MQTT_ERR_SUCCESS
    message_info.mid = 1
    client.publish = Mock(return_value=message_info)
    client.loop_start = Mock()
    client.loop_stop = Mock()
    return client
