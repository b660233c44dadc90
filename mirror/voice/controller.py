"""Event loop that owns the voice pipeline state and routes engine events."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from mirror.display.board import FIELD_RESPONSE

from .dispatcher import AudioPlayer, CommandClient, CommandDispatcher
from .engine import RecognitionEngine
from .listeners import CommandListener, WakeWordListener
from .models import (
    CommandRequest,
    EngineEvent,
    ListenerMode,
    PipelineStage,
    PipelineState,
    RecognitionErrorEvent,
    SessionEndedEvent,
    TranscriptBatchEvent,
)
from .recovery import RecoveryPolicy

if TYPE_CHECKING:
    from mirror.config import VoiceConfig
    from mirror.display.board import DisplayBoard

LOGGER = logging.getLogger("mirror.voice")


class VoiceController:
    """Wake word -> command -> dispatch -> back to wake word.

    All transitions run on the event loop that calls ``run``; the engine only
    talks to the pipeline through ``events``.
    """

    def __init__(
        self,
        *,
        config: VoiceConfig,
        engine: RecognitionEngine,
        client: CommandClient,
        player: AudioPlayer,
        board: DisplayBoard,
        on_command: Callable[[str], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.engine = engine
        self.board = board
        self.logger = logger or LOGGER
        self._on_command = on_command
        self.state = PipelineState()
        self.events: asyncio.Queue[EngineEvent] = asyncio.Queue()
        engine.attach(self.events)
        self.recovery = RecoveryPolicy(
            self.state,
            error_delay=config.error_restart_delay,
            error_backoff_max=config.error_backoff_max,
        )
        self.command_listener = CommandListener(
            engine=engine,
            state=self.state,
            recovery=self.recovery,
            language=config.language,
            on_command=self._handle_command,
            on_status=self._report_status,
        )
        self.wake_listener = WakeWordListener(
            engine=engine,
            state=self.state,
            recovery=self.recovery,
            command_listener=self.command_listener,
            wake_phrase=config.wake_phrase,
            language=config.language,
            log_transcripts=config.log_transcripts,
        )
        self.command_listener.resume = self.wake_listener
        self.dispatcher = CommandDispatcher(
            client=client,
            player=player,
            board=board,
            state=self.state,
            recovery=self.recovery,
            resume=self.wake_listener,
        )
        self._dispatch_tasks: set[asyncio.Task] = set()
        self._enabled = False

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def stage(self) -> PipelineStage:
        return self.state.stage

    def start(self) -> bool:
        """Begin passive listening. Returns False when no recognizer is available."""
        if self._enabled:
            return True
        if not self.engine.is_available():
            self.logger.warning("[voice] Speech recognition is not available on this host; voice activation disabled")
            return False
        self._enabled = True
        self.logger.info("[voice] Voice activation ready (wake phrase: %s)", self.config.wake_phrase)
        self.wake_listener.start()
        return True

    async def run(self) -> None:
        if not self.start():
            return
        while True:
            event = await self.events.get()
            self._process(event)

    def drain(self) -> int:
        """Handle every event already queued without waiting for more."""
        handled = 0
        while True:
            try:
                event = self.events.get_nowait()
            except asyncio.QueueEmpty:
                return handled
            self._process(event)
            handled += 1

    async def join_dispatches(self) -> None:
        while self._dispatch_tasks:
            await asyncio.gather(*list(self._dispatch_tasks), return_exceptions=True)

    async def stop(self) -> None:
        self._enabled = False
        self.recovery.close()
        self.wake_listener.stop()
        self.command_listener.stop()
        for task in list(self._dispatch_tasks):
            task.cancel()
        for task in list(self._dispatch_tasks):
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self.engine.close()
        self.state.transition(PipelineStage.IDLE, "shutdown")

    def handle_event(self, event: EngineEvent) -> None:
        session = event.session
        if session.mode is ListenerMode.WAKE_WORD:
            if isinstance(event, TranscriptBatchEvent):
                self.wake_listener.on_transcript_batch(session, event.batch)
            elif isinstance(event, RecognitionErrorEvent):
                self.wake_listener.on_error(session, event.error)
            elif isinstance(event, SessionEndedEvent):
                self.wake_listener.on_session_ended(session)
            return
        if isinstance(event, TranscriptBatchEvent):
            self.command_listener.on_result(session, event.batch)
        elif isinstance(event, RecognitionErrorEvent):
            self.command_listener.on_error(session, event.error)
        elif isinstance(event, SessionEndedEvent):
            self.command_listener.on_complete(session)

    def _process(self, event: EngineEvent) -> None:
        try:
            self.handle_event(event)
        except Exception:
            self.logger.exception("[voice] Failed to handle %s", type(event).__name__)
            if self._enabled and self.state.stage is PipelineStage.IDLE:
                self.recovery.schedule_restart(self.wake_listener, self.recovery.error_delay, reason="handler failure")

    def _handle_command(self, request: CommandRequest) -> None:
        self.state.transition(PipelineStage.DISPATCHING, "command captured")
        if self._on_command:
            try:
                self._on_command(request.text)
            except Exception:
                self.logger.debug("[voice] Command observer failed", exc_info=True)
        task = asyncio.create_task(self.dispatcher.dispatch(request), name="mirror-dispatch")
        self._dispatch_tasks.add(task)
        task.add_done_callback(self._dispatch_done)

    def _dispatch_done(self, task: asyncio.Task) -> None:
        self._dispatch_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error("[voice] Dispatch failed: %s", exc, exc_info=exc)

    def _report_status(self, text: str) -> None:
        self.board.set_text(FIELD_RESPONSE, text)
