"""Send recognized commands to the mirror backend and play the spoken reply."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from mirror.api import MirrorApiError
from mirror.display.board import FIELD_RESPONSE, FIELD_USER_INPUT

from .models import CommandRequest, CommandResponse, DispatchOutcome, PipelineStage, PipelineState
from .recovery import RecoveryPolicy, Restartable

if TYPE_CHECKING:
    from mirror.display.board import DisplayBoard

LOGGER = logging.getLogger("mirror.voice.dispatch")

STATUS_PLAYING = "Playing AI Response..."
STATUS_ERROR = "Error communicating with AI."


class CommandClient(Protocol):
    async def chat(self, message: str) -> CommandResponse: ...


class AudioPlayer(Protocol):
    def play(self, audio: bytes) -> object: ...


class CommandDispatcher:
    def __init__(
        self,
        *,
        client: CommandClient,
        player: AudioPlayer,
        board: DisplayBoard,
        state: PipelineState,
        recovery: RecoveryPolicy,
        resume: Restartable,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.player = player
        self.board = board
        self.state = state
        self.recovery = recovery
        self.resume = resume
        self.logger = logger or LOGGER

    async def dispatch(self, request: CommandRequest) -> DispatchOutcome:
        """POST the command, start playback of the reply, then resume wake listening.

        Wake listening is restarted exactly once per call, whether the request
        succeeded, failed, or raised.
        """
        self.state.transition(PipelineStage.DISPATCHING, "command captured")
        try:
            try:
                response = await self.client.chat(request.text)
            except MirrorApiError as exc:
                self.logger.error("[dispatch] Error sending message: %s", exc)
                self.board.set_text(FIELD_RESPONSE, STATUS_ERROR)
                return DispatchOutcome(ok=False, status=STATUS_ERROR, error=str(exc))
            self.player.play(response.audio)
            self.board.set_text(FIELD_RESPONSE, STATUS_PLAYING)
            self.board.set_text(FIELD_USER_INPUT, "")
            self.logger.info("[dispatch] Playing response (%d bytes)", len(response.audio))
            return DispatchOutcome(ok=True, status=STATUS_PLAYING)
        finally:
            self.state.transition(PipelineStage.IDLE, "dispatch finished")
            self.recovery.schedule_restart(self.resume, 0.0, reason="dispatch finished")
