"""Wake-word and command listener state machines."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .engine import RecognitionEngine
from .matcher import match_wake_phrase
from .models import (
    CommandRequest,
    ListenerMode,
    PipelineStage,
    PipelineState,
    RecognitionError,
    RecognitionSession,
    TranscriptBatch,
)
from .recovery import RecoveryPolicy, Restartable

LOGGER = logging.getLogger("mirror.voice.listeners")

COMMAND_NOT_UNDERSTOOD = "Sorry, I did not understand that. Please try again."


class _SessionOwner:
    """Holds the current recognition session of one listener role."""

    mode: ListenerMode
    continuous: bool

    def __init__(self, *, engine: RecognitionEngine, state: PipelineState, language: str) -> None:
        self.engine = engine
        self.state = state
        self.language = language
        self._session: RecognitionSession | None = None

    @property
    def session(self) -> RecognitionSession | None:
        return self._session

    @property
    def is_listening(self) -> bool:
        return bool(self._session and self._session.is_active)

    def owns(self, session: RecognitionSession) -> bool:
        return session is self._session and session.is_active

    def stop(self) -> None:
        session = self._session
        if not session or not session.is_active:
            return
        self._end_session(session)

    def _open_session(self) -> RecognitionSession:
        session = RecognitionSession(mode=self.mode, continuous=self.continuous, language=self.language)
        self._session = session
        return session

    def _end_session(self, session: RecognitionSession) -> None:
        session.deactivate()
        self.engine.stop(session)


class WakeWordListener(_SessionOwner):
    """Continuous session scanned for the wake phrase; hands off to the command listener."""

    name = "wake-word listener"
    mode = ListenerMode.WAKE_WORD
    continuous = True

    def __init__(
        self,
        *,
        engine: RecognitionEngine,
        state: PipelineState,
        recovery: RecoveryPolicy,
        command_listener: CommandListener,
        wake_phrase: str,
        language: str,
        log_transcripts: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(engine=engine, state=state, language=language)
        self.recovery = recovery
        self.command_listener = command_listener
        self.wake_phrase = wake_phrase
        self.log_transcripts = log_transcripts
        self.logger = logger or LOGGER
        self._consecutive_errors = 0

    @property
    def consecutive_errors(self) -> int:
        return self._consecutive_errors

    def start(self) -> None:
        if self.is_listening:
            self.logger.debug("[voice] Wake listener already running")
            return
        session = self._open_session()
        self.state.transition(PipelineStage.LISTENING_FOR_WAKE_WORD, "wake listener started")
        try:
            self.engine.start(session)
        except Exception as exc:
            self.on_error(session, RecognitionError(code="engine-start", message=str(exc)))
            return
        self.logger.info("[voice] Listening for the wake word...")

    def on_transcript_batch(self, session: RecognitionSession, batch: TranscriptBatch) -> None:
        if not self.owns(session):
            self.logger.debug("[voice] Ignoring results from stale wake session %s", session.session_id)
            return
        self._consecutive_errors = 0
        if self.log_transcripts:
            for event in batch.new_results:
                if event.is_final:
                    self.logger.info("[voice] You said: %s", event.text.strip().lower())
        if not match_wake_phrase(batch.results, self.wake_phrase, batch.result_index):
            return
        self.logger.info("[voice] Wake word '%s' detected", self.wake_phrase)
        self._end_session(session)
        self.command_listener.start()

    def on_error(self, session: RecognitionSession, error: RecognitionError) -> None:
        if not self.owns(session):
            self.logger.debug("[voice] Ignoring error from stale wake session %s: %s", session.session_id, error)
            return
        self._end_session(session)
        self._consecutive_errors += 1
        delay = self.recovery.error_backoff(self._consecutive_errors)
        self.logger.warning("[voice] Wake word recognition error: %s (retrying in %.1fs)", error, delay)
        self.recovery.note_failure(self._consecutive_errors, str(error))
        self.state.transition(PipelineStage.IDLE, "wake engine error")
        self.recovery.schedule_restart(self, delay, reason="wake engine error")

    def on_session_ended(self, session: RecognitionSession) -> None:
        if not self.owns(session):
            return
        # The engine closed a continuous session on its own; reopen it after the error delay.
        self._end_session(session)
        self.logger.debug("[voice] Wake session %s ended by the engine", session.session_id)
        self.state.transition(PipelineStage.IDLE, "wake session ended")
        self.recovery.schedule_restart(self, self.recovery.error_delay, reason="wake session ended")


class CommandListener(_SessionOwner):
    """Single-shot session: the first finalized transcript becomes the command."""

    name = "command listener"
    mode = ListenerMode.COMMAND
    continuous = False

    def __init__(
        self,
        *,
        engine: RecognitionEngine,
        state: PipelineState,
        recovery: RecoveryPolicy,
        language: str,
        on_command: Callable[[CommandRequest], None],
        on_status: Callable[[str], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(engine=engine, state=state, language=language)
        self.recovery = recovery
        self.on_command = on_command
        self.on_status = on_status
        self.logger = logger or LOGGER
        self.resume: Restartable | None = None
        self._settled = True

    def start(self) -> None:
        if self.is_listening:
            self.logger.debug("[voice] Command listener already running")
            return
        session = self._open_session()
        self._settled = False
        self.state.transition(PipelineStage.LISTENING_FOR_COMMAND, "wake word detected")
        try:
            self.engine.start(session)
        except Exception as exc:
            self.on_error(session, RecognitionError(code="engine-start", message=str(exc)))
            return
        self.logger.info("[voice] I'm listening for your command...")

    def on_result(self, session: RecognitionSession, batch: TranscriptBatch) -> None:
        if not self.owns(session) or self._settled:
            return
        final = next((event for event in batch.new_results if event.is_final), None)
        if final is None:
            return
        self._settled = True
        self._end_session(session)
        request = CommandRequest.from_transcript(final.text)
        if request is None:
            self.logger.info("[voice] Empty command discarded")
            self._resume_passive("empty command")
            return
        self.logger.info("[voice] Command received: %s", request.text)
        self.on_command(request)

    def on_complete(self, session: RecognitionSession) -> None:
        if session is not self.session:
            return
        self.logger.debug("[voice] Command processing ended.")
        if self._settled:
            return
        self._settled = True
        self._end_session(session)
        self._resume_passive("no command heard")

    def on_error(self, session: RecognitionSession, error: RecognitionError) -> None:
        if session is not self.session or self._settled:
            return
        self._settled = True
        self._end_session(session)
        self.logger.warning("[voice] Command recognition error: %s", error)
        if self.on_status:
            self.on_status(COMMAND_NOT_UNDERSTOOD)
        self._resume_passive("command recognition error")

    def _resume_passive(self, reason: str) -> None:
        self.state.transition(PipelineStage.IDLE, reason)
        if self.resume is None:
            self.logger.warning("[voice] No wake listener bound; cannot resume after %s", reason)
            return
        self.recovery.schedule_restart(self.resume, 0.0, reason=reason)
