"""Tests for response playback and player selection."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, Mock, patch

import pytest
from mirror.voice.audio import ResponsePlayer, _build_command_for_player, _determine_player

pytestmark = pytest.mark.anyio


def _proc(returncode=0, stderr=b""):
    proc = Mock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(b"", stderr))
    return proc


class TestPlayerSelection:
    def test_mpv_reads_stdin_without_video(self):
        assert _build_command_for_player("/usr/bin/mpv") == ["/usr/bin/mpv", "--no-video", "--really-quiet", "-"]

    def test_unknown_player_gets_stdin_argument(self):
        assert _build_command_for_player("myplayer") == ["myplayer", "-"]

    def test_auto_prefers_first_installed_candidate(self):
        installed = {"ffplay", "mpg123"}
        with patch("mirror.voice.audio.shutil.which", side_effect=lambda name: name if name in installed else None):
            assert _determine_player("auto", logging.getLogger("test")) == "ffplay"

    def test_missing_preferred_player_falls_back(self, mock_logger):
        with patch("mirror.voice.audio.shutil.which", side_effect=lambda name: name if name == "mpv" else None):
            assert _determine_player("vlc", mock_logger) == "mpv"
        mock_logger.warning.assert_called_once()

    def test_nothing_installed(self, mock_logger):
        with patch("mirror.voice.audio.shutil.which", return_value=None):
            assert _determine_player("auto", mock_logger) is None


class TestResponsePlayer:
    async def test_pipes_audio_to_player(self):
        proc = _proc()
        with (
            patch("mirror.voice.audio.shutil.which", return_value="/usr/bin/mpg123"),
            patch("mirror.voice.audio.asyncio.create_subprocess_exec", AsyncMock(return_value=proc)) as spawn,
        ):
            player = ResponsePlayer(binary="mpg123")
            task = player.play(b"ID3audio")
            await task

        assert spawn.await_args.args == ("mpg123", "-q", "-")
        proc.communicate.assert_awaited_once_with(b"ID3audio")
        assert player.active == 0

    async def test_empty_audio_is_skipped(self):
        player = ResponsePlayer(binary="mpv")
        assert player.play(b"") is None

    async def test_player_failure_is_logged(self, mock_logger):
        proc = _proc(returncode=1, stderr=b"decode error")
        with (
            patch("mirror.voice.audio.shutil.which", return_value="/usr/bin/mpv"),
            patch("mirror.voice.audio.asyncio.create_subprocess_exec", AsyncMock(return_value=proc)),
        ):
            player = ResponsePlayer(binary="mpv", logger=mock_logger)
            await player.play(b"data")

        assert "decode error" in str(mock_logger.warning.call_args)

    async def test_no_player_available(self, mock_logger):
        with (
            patch("mirror.voice.audio.shutil.which", return_value=None),
            patch("mirror.voice.audio.asyncio.create_subprocess_exec", AsyncMock()) as spawn,
        ):
            player = ResponsePlayer(binary="auto", logger=mock_logger)
            await player.play(b"data")

        spawn.assert_not_awaited()
        mock_logger.warning.assert_called_once()

    def test_defaults_to_auto_detection(self, monkeypatch):
        monkeypatch.setenv("MIRROR_AUDIO_PLAYER", "ffplay")
        assert ResponsePlayer().binary == "auto"
        assert ResponsePlayer(binary="ffplay").binary == "ffplay"
