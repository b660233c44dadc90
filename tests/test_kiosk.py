"""Tests for kiosk wiring and the periodic refresh loop."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, patch

import pytest
from mirror.config import MirrorConfig
from mirror.display.board import FIELD_DATE, FIELD_TIME
from mirror.kiosk import MirrorKiosk
from mirror.mqtt import MirrorMqtt
from mirror.voice.models import ListenerMode, PipelineStage

pytestmark = pytest.mark.anyio


@pytest.fixture
def config():
    return MirrorConfig.from_env({"MIRROR_HOSTNAME": "test", "MIRROR_DISPLAY_PORT": "0"})


async def test_every_survives_failures():
    func = AsyncMock(side_effect=[RuntimeError("backend down"), None, None, None, None, None])

    task = asyncio.create_task(MirrorKiosk._every(0.01, "weather", func))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert func.await_count >= 2


async def test_stage_changes_are_published(config, engine):
    with patch.object(MirrorMqtt, "publish_stage") as publish_stage:
        kiosk = MirrorKiosk(config, engine=engine)
        kiosk.voice.start()

    publish_stage.assert_called_with(PipelineStage.IDLE, PipelineStage.LISTENING_FOR_WAKE_WORD)
    assert engine.latest(ListenerMode.WAKE_WORD).language == "en-US"
    await kiosk.voice.stop()
    await kiosk.api.close()


async def test_refresh_clock_fills_board(config, engine):
    kiosk = MirrorKiosk(config, engine=engine)

    await kiosk._refresh_clock()

    assert kiosk.board.get(FIELD_TIME)
    assert kiosk.board.get(FIELD_DATE)
    await kiosk.api.close()


async def test_audio_player_comes_from_config(engine):
    config = MirrorConfig.from_env({"MIRROR_HOSTNAME": "test", "MIRROR_AUDIO_PLAYER": "mpg123"})
    kiosk = MirrorKiosk(config, engine=engine)

    assert kiosk.player.binary == "mpg123"
    await kiosk.api.close()
