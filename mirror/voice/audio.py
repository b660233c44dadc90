"""Audio input/output helpers for the voice pipeline."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import shutil
from asyncio.subprocess import Process

LOGGER = logging.getLogger("mirror.voice.audio")


class ArecordStream:
    """Capture PCM audio by shelling out to ``arecord`` (ALSA)."""

    def __init__(
        self,
        command: list[str],
        bytes_per_chunk: int,
        logger: logging.Logger | None = None,
    ) -> None:
        self.command = command
        self.bytes_per_chunk = bytes_per_chunk
        self._proc: Process | None = None
        self._logger = logger or LOGGER

    @property
    def running(self) -> bool:
        return self._proc is not None

    async def start(self) -> None:
        if self._proc:
            return
        self._logger.debug("Starting microphone capture: %s", " ".join(self.command))
        self._proc = await asyncio.create_subprocess_exec(
            *self.command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

    async def read_chunk(self) -> bytes:
        if not self._proc or not self._proc.stdout:
            raise RuntimeError("Microphone stream is not running")
        try:
            return await self._proc.stdout.readexactly(self.bytes_per_chunk)
        except asyncio.IncompleteReadError as exc:
            stderr = ""
            if self._proc.stderr:
                try:
                    stderr = (await self._proc.stderr.read()).decode("utf-8", errors="ignore").strip()
                except Exception:  # pragma: no cover - best effort
                    stderr = ""
            self._proc = None
            message = "Microphone stream ended unexpectedly"
            if stderr:
                message = f"{message} ({stderr})"
            raise RuntimeError(message) from exc

    async def stop(self) -> None:
        if not self._proc:
            return
        self._logger.debug("Stopping microphone capture")
        proc = self._proc
        self._proc = None
        if proc.returncode is None:
            proc.terminate()
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(proc.wait(), timeout=2)


class ResponsePlayer:
    """Play encoded response audio (mp3/wav) by piping it into a decoding player.

    Playback is fire-and-forget: ``play`` returns as soon as the background task
    is scheduled, and player failures are only logged.
    """

    def __init__(self, binary: str | None = None, logger: logging.Logger | None = None) -> None:
        self.binary = binary or "auto"
        self._logger = logger or LOGGER
        self._tasks: set[asyncio.Task] = set()
        self._procs: set[Process] = set()

    @property
    def active(self) -> int:
        return len(self._tasks)

    def play(self, audio: bytes) -> asyncio.Task | None:
        if not audio:
            self._logger.debug("[audio] Empty response audio; nothing to play")
            return None
        task = asyncio.create_task(self._play(audio), name="mirror-response-playback")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def stop(self) -> None:
        for proc in list(self._procs):
            if proc.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    proc.terminate()
        for task in list(self._tasks):
            task.cancel()
        for task in list(self._tasks):
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks.clear()

    async def _play(self, audio: bytes) -> None:
        player = _determine_player(self.binary, self._logger)
        if not player:
            self._logger.warning("[audio] No audio player available (tried %s)", ", ".join(_player_candidates()))
            return
        cmd = _build_command_for_player(player)
        self._logger.debug("[audio] Playing %d bytes of response audio via %s", len(audio), player)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            self._logger.warning("[audio] Failed to launch %s: %s", player, exc)
            return
        self._procs.add(proc)
        try:
            _, stderr = await proc.communicate(audio)
        except (BrokenPipeError, ConnectionResetError) as exc:
            self._logger.warning("[audio] Playback process exited unexpectedly: %s", exc)
            return
        finally:
            self._procs.discard(proc)
        if proc.returncode:
            detail = stderr.decode("utf-8", errors="ignore").strip() if stderr else ""
            self._logger.warning("[audio] %s exited with %s%s", player, proc.returncode, f" ({detail})" if detail else "")


def _supported_player(binary: str) -> bool:
    if os.path.isabs(binary):
        return os.access(binary, os.X_OK)
    return shutil.which(binary) is not None


def _player_candidates() -> list[str]:
    return ["mpv", "ffplay", "mpg123"]


def _build_command_for_player(player: str) -> list[str]:
    name = os.path.basename(player)
    if name == "mpv":
        return [player, "--no-video", "--really-quiet", "-"]
    if name == "ffplay":
        return [player, "-nodisp", "-autoexit", "-loglevel", "error", "-"]
    if name == "mpg123":
        return [player, "-q", "-"]
    return [player, "-"]


def _determine_player(preferred: str, logger: logging.Logger) -> str | None:
    if preferred != "auto":
        if _supported_player(preferred):
            return preferred
        logger.warning("Requested audio player '%s' not found; falling back to auto-detection", preferred)
    for candidate in _player_candidates():
        if _supported_player(candidate):
            return candidate
    return None
