"""
Return-to-passive-listening policy

Every terminal path of the voice pipeline (wake engine error, command error,
empty command, finished dispatch) ends here. Restarts run after a delay:

- 0 seconds: immediate, used after command errors and finished dispatches
- engine error delay (1 second by default): used after wake-word engine errors,
  optionally growing for consecutive failures up to a configured cap

When the restart fires it is skipped if a command session or a dispatch has
become current in the meantime, and it is a no-op if the wake listener is
already listening. Retries are not bounded: a kiosk keeps trying for as long
as it runs, and persistent failures are surfaced through escalating logs.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from .models import PipelineStage, PipelineState

LOGGER = logging.getLogger("mirror.voice.recovery")

BLOCKING_STAGES = frozenset({PipelineStage.LISTENING_FOR_COMMAND, PipelineStage.DISPATCHING})
WARN_EVERY_FAILURES = 10


class Restartable(Protocol):
    name: str

    def start(self) -> None: ...


class RecoveryPolicy:
    def __init__(
        self,
        state: PipelineState,
        *,
        error_delay: float = 1.0,
        error_backoff_max: float | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.state = state
        self.error_delay = max(0.0, error_delay)
        self.error_backoff_max = max(self.error_delay, error_backoff_max or self.error_delay)
        self.logger = logger or LOGGER
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def error_backoff(self, consecutive_failures: int) -> float:
        """Delay before retrying after ``consecutive_failures`` engine errors in a row."""
        attempts = max(1, consecutive_failures)
        if self.error_backoff_max <= self.error_delay:
            return self.error_delay
        delay = self.error_delay * (2 ** (attempts - 1))
        return min(delay, self.error_backoff_max)

    def note_failure(self, consecutive_failures: int, detail: str) -> None:
        if consecutive_failures and consecutive_failures % WARN_EVERY_FAILURES == 0:
            self.logger.warning(
                "[recovery] Wake listening has failed %d times in a row (last: %s)",
                consecutive_failures,
                detail,
            )
        else:
            self.logger.debug("[recovery] Failure %d: %s", consecutive_failures, detail)

    def schedule_restart(self, listener: Restartable, delay: float = 0.0, *, reason: str = "") -> asyncio.Task | None:
        """Start ``listener`` after ``delay`` seconds; zero restarts right away."""
        if self._closed:
            self.logger.debug("[recovery] Ignoring restart of %s after shutdown", listener.name)
            return None
        if delay <= 0:
            self._fire(listener, reason)
            return None
        self.logger.debug("[recovery] Restarting %s in %.1fs (%s)", listener.name, delay, reason or "scheduled")
        task = asyncio.create_task(self._delayed(listener, delay, reason))
        self._track(task)
        return task

    def cancel_pending(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    def close(self) -> None:
        self._closed = True
        self.cancel_pending()

    async def _delayed(self, listener: Restartable, delay: float, reason: str) -> None:
        await asyncio.sleep(delay)
        self._fire(listener, reason)

    def _fire(self, listener: Restartable, reason: str) -> None:
        if self.state.stage in BLOCKING_STAGES:
            self.logger.debug(
                "[recovery] Skipping restart of %s; pipeline is %s",
                listener.name,
                self.state.stage.value,
            )
            return
        try:
            listener.start()
        except Exception:
            self.logger.exception("[recovery] Restart of %s failed (%s)", listener.name, reason or "scheduled")

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)

        def _cleanup(_task: asyncio.Task) -> None:
            self._tasks.discard(_task)

        task.add_done_callback(_cleanup)
