"""Mirror kiosk runtime: display refreshers plus the voice pipeline."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
from collections.abc import Awaitable, Callable

from mirror.api import MirrorApiClient
from mirror.config import MirrorConfig
from mirror.display.board import DisplayBoard
from mirror.display.calendar import refresh_calendar
from mirror.display.clock import refresh_clock
from mirror.display.server import BoardHttpServer, BoardServerConfig
from mirror.display.weather import refresh_weather
from mirror.mqtt import MirrorMqtt
from mirror.voice.audio import ResponsePlayer
from mirror.voice.controller import VoiceController
from mirror.voice.engine import RecognitionEngine, WyomingRecognitionEngine

LOGGER = logging.getLogger("mirror")


class MirrorKiosk:
    def __init__(self, config: MirrorConfig, *, engine: RecognitionEngine | None = None) -> None:
        self.config = config
        self.board = DisplayBoard()
        self.server = BoardHttpServer(
            board=self.board,
            config=BoardServerConfig(bind_address=config.display.bind_address, port=config.display.port),
        )
        self.api = MirrorApiClient(config.api)
        self.mqtt = MirrorMqtt(config.mqtt, logger=LOGGER)
        self.player = ResponsePlayer(binary=config.audio_player, logger=LOGGER)
        self.engine = engine or WyomingRecognitionEngine(
            mic_config=config.mic,
            phrase=config.phrase,
            endpoint=config.stt_endpoint,
        )
        self.voice = VoiceController(
            config=config.voice,
            engine=self.engine,
            client=self.api,
            player=self.player,
            board=self.board,
            on_command=self.mqtt.publish_command,
        )
        self.voice.state.add_listener(self.mqtt.publish_stage)
        self._tasks: list[asyncio.Task] = []

    async def run(self) -> None:
        self.server.start()
        self.mqtt.connect()
        display = self.config.display
        self._spawn("clock", self._every(display.clock_refresh_seconds, "clock", self._refresh_clock))
        self._spawn(
            "weather",
            self._every(
                display.weather_refresh_seconds,
                "weather",
                lambda: refresh_weather(self.api, self.board, display.weather_location),
            ),
        )
        self._spawn(
            "calendar",
            self._every(display.calendar_refresh_seconds, "calendar", lambda: refresh_calendar(self.api, self.board)),
        )
        if self.config.voice.enabled:
            self._spawn("voice", self.voice.run())
        else:
            LOGGER.info("Voice activation disabled (MIRROR_VOICE_ENABLED=false)")
        LOGGER.info("Mirror kiosk ready")
        await asyncio.gather(*self._tasks)

    async def shutdown(self) -> None:
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._tasks.clear()
        await self.voice.stop()
        await self.player.stop()
        await self.api.close()
        self.mqtt.disconnect()
        self.server.stop()

    def _spawn(self, name: str, coro: Awaitable[None]) -> None:
        self._tasks.append(asyncio.create_task(coro, name=f"mirror-{name}"))

    async def _refresh_clock(self) -> None:
        refresh_clock(self.board)

    @staticmethod
    async def _every(interval: float, name: str, func: Callable[[], Awaitable[object]]) -> None:
        while True:
            try:
                await func()
            except Exception as exc:  # pylint: disable=broad-except
                LOGGER.exception("Periodic %s refresh failed: %s", name, exc)
            await asyncio.sleep(interval)


async def main() -> None:
    parser = argparse.ArgumentParser(description="Smart mirror kiosk")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    config = MirrorConfig.from_env()
    kiosk = MirrorKiosk(config)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _handle_signal(signum: int) -> None:
        LOGGER.info("Received signal %s, shutting down", signum)
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _handle_signal, sig)

    run_task = asyncio.create_task(kiosk.run())
    await stop_event.wait()
    await kiosk.shutdown()
    run_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await run_task


def cli() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
