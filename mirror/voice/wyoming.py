"""Helpers for talking to a Wyoming speech-to-text service."""

from __future__ import annotations

import logging

from wyoming.asr import Transcribe, Transcript
from wyoming.audio import AudioChunk, AudioStart, AudioStop
from wyoming.client import AsyncTcpClient

from mirror.config import MicConfig, WyomingEndpoint
from mirror.utils import await_with_timeout, chunk_bytes

LoggerLike = logging.Logger | None


def wyoming_language(language: str | None) -> str | None:
    """Reduce a BCP-47 tag such as ``en-US`` to the bare language Whisper expects."""
    if not language:
        return None
    primary = language.replace("_", "-").split("-", 1)[0].strip().lower()
    return primary or None


async def transcribe_audio(
    audio_bytes: bytes,
    *,
    endpoint: WyomingEndpoint,
    mic: MicConfig,
    language: str | None = None,
    model: str | None = None,
    timeout: float | None = None,
    logger: LoggerLike = None,
) -> str | None:
    """Send PCM audio to a Wyoming STT endpoint and return the transcript text."""

    client = AsyncTcpClient(endpoint.host, endpoint.port)
    await await_with_timeout(client.connect(), timeout)
    requested_model = model or endpoint.model
    try:
        await await_with_timeout(
            client.write_event(
                Transcribe(
                    name=requested_model,
                    language=wyoming_language(language),
                ).event()
            ),
            timeout,
        )
        await await_with_timeout(
            client.write_event(
                AudioStart(
                    rate=mic.rate,
                    width=mic.width,
                    channels=mic.channels,
                ).event()
            ),
            timeout,
        )
        for chunk in chunk_bytes(audio_bytes, mic.bytes_per_chunk):
            await await_with_timeout(
                client.write_event(
                    AudioChunk(
                        rate=mic.rate,
                        width=mic.width,
                        channels=mic.channels,
                        audio=chunk,
                    ).event()
                ),
                timeout,
            )
        await await_with_timeout(client.write_event(AudioStop().event()), timeout)
        while True:
            event = await await_with_timeout(client.read_event(), timeout)
            if event is None:
                if logger:
                    logger.debug("Wyoming STT connection closed before transcript returned")
                return None
            if Transcript.is_type(event.type):
                transcript = Transcript.from_event(event)
                return transcript.text
    finally:
        await client.disconnect()
