"""Speech recognition engine contract and the arecord + Wyoming implementation."""

from __future__ import annotations

import asyncio
import logging
import math
import os
import shutil
import sys
import time
from array import array
from typing import Protocol

from mirror.config import MicConfig, PhraseConfig, WyomingEndpoint

from .audio import ArecordStream
from .models import (
    EngineEvent,
    RecognitionError,
    RecognitionErrorEvent,
    RecognitionSession,
    SessionEndedEvent,
    TranscriptBatch,
    TranscriptBatchEvent,
    TranscriptEvent,
)
from .wyoming import transcribe_audio

LOGGER = logging.getLogger("mirror.voice.engine")


class RecognitionEngine(Protocol):
    """What the voice pipeline needs from a speech recognizer.

    ``start``/``stop`` never block; results, errors and the end of a session are
    reported later as events on the queue handed to ``attach``.
    """

    def attach(self, events: asyncio.Queue[EngineEvent]) -> None: ...

    def is_available(self) -> bool: ...

    def start(self, session: RecognitionSession) -> None: ...

    def stop(self, session: RecognitionSession) -> None: ...

    async def close(self) -> None: ...


def compute_rms(chunk: bytes, sample_width: int) -> int:
    """Compute RMS (Root Mean Square) for an audio chunk."""
    if not chunk or sample_width <= 0:
        return 0
    frames = len(chunk) // sample_width
    if frames <= 0:
        return 0
    trimmed = chunk[: frames * sample_width]
    typecode = {1: "b", 2: "h", 4: "i"}.get(sample_width)
    if typecode:
        samples = array(typecode)
        samples.frombytes(trimmed)
        if sample_width > 1 and sys.byteorder != "little":
            samples.byteswap()
        total = math.fsum(value * value for value in samples)
    else:
        total = 0.0
        for i in range(0, len(trimmed), sample_width):
            sample = int.from_bytes(trimmed[i : i + sample_width], "little", signed=True)
            total += sample * sample
    mean = total / frames
    return int(math.sqrt(mean))


class WyomingRecognitionEngine:
    """Segment microphone audio on silence and transcribe each phrase with Wyoming STT.

    Only one session runs at a time since there is a single microphone. Every
    transcript is final; continuous sessions keep accumulating results and
    advance ``result_index`` so consumers only look at the new ones.
    """

    def __init__(
        self,
        *,
        mic_config: MicConfig,
        phrase: PhraseConfig,
        endpoint: WyomingEndpoint,
        mic: ArecordStream | None = None,
        stt_timeout: float | None = 20.0,
        logger: logging.Logger | None = None,
    ) -> None:
        self.mic_config = mic_config
        self.phrase = phrase
        self.endpoint = endpoint
        self._logger = logger or LOGGER
        self.mic = mic or ArecordStream(mic_config.command, mic_config.bytes_per_chunk, self._logger)
        self.stt_timeout = stt_timeout
        self._events: asyncio.Queue[EngineEvent] | None = None
        self._session: RecognitionSession | None = None
        self._task: asyncio.Task | None = None
        self._log_throttle: dict[str, float] = {}

    def attach(self, events: asyncio.Queue[EngineEvent]) -> None:
        self._events = events

    def is_available(self) -> bool:
        if not self.mic_config.command:
            return False
        binary = self.mic_config.command[0]
        if os.path.isabs(binary):
            return os.access(binary, os.X_OK)
        return shutil.which(binary) is not None

    def start(self, session: RecognitionSession) -> None:
        if self._events is None:
            raise RuntimeError("Recognition engine is not attached to an event queue")
        if self._session is not None and self._session is not session:
            self.stop(self._session)
        self._session = session
        self._task = asyncio.create_task(
            self._run_session(session),
            name=f"mirror-recognition-{session.mode.value}-{session.session_id}",
        )

    def stop(self, session: RecognitionSession) -> None:
        if self._session is not session:
            return
        task = self._task
        self._session = None
        self._task = None
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def close(self) -> None:
        if self._session is not None:
            session = self._session
            task = self._task
            self.stop(session)
            if task:
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        await self.mic.stop()

    async def _run_session(self, session: RecognitionSession) -> None:
        try:
            await self._session_loop(session)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._logger.exception("Recognition session %s crashed", session.session_id)
            self._fail(session, "engine", exc)

    async def _session_loop(self, session: RecognitionSession) -> None:
        results: list[TranscriptEvent] = []
        try:
            await self.mic.start()
        except OSError as exc:
            self._fail(session, "audio-capture", exc)
            return
        while session.is_active:
            try:
                audio = await self._capture_phrase(session)
            except (RuntimeError, OSError) as exc:
                self._fail(session, "audio-capture", exc)
                return
            if not session.is_active:
                return
            if audio is None:
                break
            try:
                text = await transcribe_audio(
                    audio,
                    endpoint=self.endpoint,
                    mic=self.mic_config,
                    language=session.language,
                    timeout=self.stt_timeout,
                    logger=self._logger,
                )
            except (OSError, EOFError, asyncio.TimeoutError) as exc:
                self._fail(session, "network", exc)
                return
            if not session.is_active:
                return
            text = (text or "").strip()
            if text or not session.continuous:
                results.append(TranscriptEvent(text=text, is_final=True, mode=session.mode))
                batch = TranscriptBatch(results=tuple(results), result_index=len(results) - 1)
                self._emit(TranscriptBatchEvent(session=session, batch=batch))
            if not session.continuous:
                break
        self._end(session)

    async def _capture_phrase(self, session: RecognitionSession) -> bytes | None:
        """Record one phrase, ended by silence or the max phrase length.

        Continuous sessions first wait for speech; single-shot sessions start
        recording right away and return ``None`` if nothing rose above the floor.
        """
        chunk_ms = self.mic_config.chunk_ms
        width = self.mic_config.width
        floor = self.phrase.rms_floor
        buffer = bytearray()
        if session.continuous:
            while session.is_active:
                chunk = await self.mic.read_chunk()
                rms = compute_rms(chunk, width)
                if rms >= floor:
                    buffer.extend(chunk)
                    break
                self._debug_throttled("idle", "Waiting for speech (rms=%s floor=%s)", rms, floor)
            if not session.is_active:
                return None
        min_chunks = int(max(1, (self.phrase.min_seconds * 1000) / chunk_ms))
        max_chunks = int(max(1, (self.phrase.max_seconds * 1000) / chunk_ms))
        silence_chunks = int(max(1, self.phrase.silence_ms / chunk_ms))
        heard_speech = bool(buffer)
        silence_run = 0
        chunks = len(buffer) // max(1, self.mic_config.bytes_per_chunk)
        while chunks < max_chunks and session.is_active:
            chunk = await self.mic.read_chunk()
            buffer.extend(chunk)
            rms = compute_rms(chunk, width)
            if rms < floor:
                if chunks >= min_chunks:
                    silence_run += 1
                    if silence_run >= silence_chunks:
                        break
            else:
                heard_speech = True
                silence_run = 0
            chunks += 1
        if not heard_speech:
            return None
        return bytes(buffer)

    def _emit(self, event: EngineEvent) -> None:
        if self._events is None:
            return
        self._events.put_nowait(event)

    def _fail(self, session: RecognitionSession, code: str, exc: BaseException) -> None:
        self._logger.debug("Recognition session %s failed (%s): %s", session.session_id, code, exc)
        self._emit(RecognitionErrorEvent(session=session, error=RecognitionError(code=code, message=str(exc))))
        self._end(session)

    def _end(self, session: RecognitionSession) -> None:
        if self._session is session:
            self._session = None
            self._task = None
        self._emit(SessionEndedEvent(session=session))

    def _debug_throttled(self, key: str, message: str, *args, interval: float = 30.0) -> None:
        now = time.monotonic()
        last = self._log_throttle.get(key, 0.0)
        if now - last >= interval:
            self._logger.debug(message, *args)
            self._log_throttle[key] = now
