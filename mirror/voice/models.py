"""Types shared by the voice activation pipeline."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

LOGGER = logging.getLogger("mirror.voice.state")

_SESSION_IDS = itertools.count(1)


class ListenerMode(str, Enum):
    WAKE_WORD = "wake_word"
    COMMAND = "command"


class PipelineStage(str, Enum):
    IDLE = "idle"
    LISTENING_FOR_WAKE_WORD = "listening_for_wake_word"
    LISTENING_FOR_COMMAND = "listening_for_command"
    DISPATCHING = "dispatching"


@dataclass
class RecognitionSession:
    """One listening operation handed to the recognition engine."""

    mode: ListenerMode
    continuous: bool
    language: str
    is_active: bool = True
    session_id: int = field(default_factory=lambda: next(_SESSION_IDS))

    def deactivate(self) -> None:
        self.is_active = False


@dataclass(frozen=True)
class TranscriptEvent:
    text: str
    is_final: bool
    mode: ListenerMode


@dataclass(frozen=True)
class TranscriptBatch:
    """All results of a session so far; ``result_index`` marks the first unprocessed one."""

    results: tuple[TranscriptEvent, ...]
    result_index: int = 0

    @property
    def new_results(self) -> tuple[TranscriptEvent, ...]:
        return self.results[max(0, self.result_index) :]


@dataclass(frozen=True)
class RecognitionError:
    code: str
    message: str = ""

    def __str__(self) -> str:
        return f"{self.code}: {self.message}" if self.message else self.code


@dataclass(frozen=True)
class TranscriptBatchEvent:
    session: RecognitionSession
    batch: TranscriptBatch


@dataclass(frozen=True)
class RecognitionErrorEvent:
    session: RecognitionSession
    error: RecognitionError


@dataclass(frozen=True)
class SessionEndedEvent:
    session: RecognitionSession


EngineEvent = TranscriptBatchEvent | RecognitionErrorEvent | SessionEndedEvent


@dataclass(frozen=True)
class CommandRequest:
    text: str

    @classmethod
    def from_transcript(cls, transcript: str | None) -> CommandRequest | None:
        """Build a request from a finalized transcript; blank text yields ``None``."""
        text = (transcript or "").strip()
        if not text:
            return None
        return cls(text=text)


@dataclass(frozen=True)
class CommandResponse:
    audio: bytes
    content_type: str | None = None


@dataclass(frozen=True)
class DispatchOutcome:
    ok: bool
    status: str
    error: str | None = None


StageListener = Callable[[PipelineStage, PipelineStage], None]


class PipelineState:
    """What the pipeline is currently doing. Exactly one stage at a time."""

    def __init__(self, stage: PipelineStage = PipelineStage.IDLE) -> None:
        self._stage = stage
        self._listeners: list[StageListener] = []

    @property
    def stage(self) -> PipelineStage:
        return self._stage

    def add_listener(self, listener: StageListener) -> None:
        self._listeners.append(listener)

    def transition(self, stage: PipelineStage, reason: str = "") -> None:
        previous = self._stage
        if previous == stage:
            return
        self._stage = stage
        LOGGER.debug("[voice] %s -> %s%s", previous.value, stage.value, f" ({reason})" if reason else "")
        for listener in list(self._listeners):
            try:
                listener(previous, stage)
            except Exception:
                LOGGER.warning("[voice] Stage listener failed", exc_info=True)
