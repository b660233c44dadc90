"""Tests for environment-driven kiosk configuration."""

from __future__ import annotations

import pytest
from mirror.config import DEFAULT_API_BASE_URL, DEFAULT_WEATHER_LOCATION, MicConfig, MirrorConfig, _strip_or_none
from mirror.utils import chunk_bytes, parse_bool, parse_float, parse_int

BASE_ENV = {"MIRROR_HOSTNAME": "hall-mirror"}


def _config(**overrides: str) -> MirrorConfig:
    return MirrorConfig.from_env({**BASE_ENV, **overrides})


class TestStripOrNone:
    def test_none_returns_none(self) -> None:
        assert _strip_or_none(None) is None

    def test_whitespace_only_returns_none(self) -> None:
        assert _strip_or_none("   ") is None

    def test_normal_string_stripped(self) -> None:
        assert _strip_or_none("  mpv ") == "mpv"


class TestParsers:
    @pytest.mark.parametrize("value", ["1", "true", "YES", " on "])
    def test_truthy(self, value) -> None:
        assert parse_bool(value) is True

    def test_bool_default(self) -> None:
        assert parse_bool(None, True) is True
        assert parse_bool("nope", True) is False

    def test_numbers_fall_back(self) -> None:
        assert parse_int("abc", 5) == 5
        assert parse_float("1.5", 0.0) == 1.5
        assert parse_float("x", 2.0) == 2.0

    def test_chunk_bytes(self) -> None:
        assert list(chunk_bytes(b"abcde", 2)) == [b"ab", b"cd", b"e"]
        with pytest.raises(ValueError):
            list(chunk_bytes(b"abc", 0))


class TestVoiceConfig:
    def test_defaults(self) -> None:
        voice = _config().voice
        assert voice.enabled is True
        assert voice.wake_phrase == "carter"
        assert voice.language == "en-US"
        assert voice.error_restart_delay == 1.0
        assert voice.error_backoff_max == 1.0
        assert voice.log_transcripts is False

    def test_wake_phrase_is_normalized(self) -> None:
        assert _config(MIRROR_WAKE_PHRASE="  Jarvis ").voice.wake_phrase == "jarvis"

    def test_backoff_never_below_delay(self) -> None:
        voice = _config(MIRROR_VOICE_ERROR_RESTART_SECONDS="2", MIRROR_VOICE_ERROR_BACKOFF_MAX="1").voice
        assert voice.error_backoff_max == 2.0

    def test_negative_delay_clamped(self) -> None:
        assert _config(MIRROR_VOICE_ERROR_RESTART_SECONDS="-3").voice.error_restart_delay == 0.0

    def test_disabled(self) -> None:
        assert _config(MIRROR_VOICE_ENABLED="false").voice.enabled is False


class TestMicConfig:
    def test_bytes_per_chunk(self) -> None:
        mic = MicConfig(command=["arecord"], rate=16000, width=2, channels=1, chunk_ms=30)
        assert mic.bytes_per_chunk == 960

    def test_command_is_split(self) -> None:
        mic = _config(MIRROR_MIC_CMD="arecord -D plughw:1 -f S16_LE -").mic
        assert mic.command == ["arecord", "-D", "plughw:1", "-f", "S16_LE", "-"]


class TestServiceConfig:
    def test_api_defaults(self) -> None:
        api = _config().api
        assert api.base_url == DEFAULT_API_BASE_URL
        assert api.timeout == 30.0

    def test_api_trailing_slash_removed(self) -> None:
        assert _config(MIRROR_API_BASE_URL="http://backend:3000/").api.base_url == "http://backend:3000"

    def test_display_defaults(self) -> None:
        display = _config().display
        assert display.port == 8800
        assert display.weather_location == DEFAULT_WEATHER_LOCATION
        assert display.weather_refresh_seconds == 3600

    def test_refresh_floors(self) -> None:
        display = _config(MIRROR_WEATHER_REFRESH_SECONDS="5", MIRROR_CLOCK_REFRESH_SECONDS="0").display
        assert display.weather_refresh_seconds == 60
        assert display.clock_refresh_seconds == 1

    def test_stt_endpoint(self) -> None:
        endpoint = _config(WYOMING_WHISPER_HOST="whisper", WYOMING_WHISPER_PORT="10301").stt_endpoint
        assert (endpoint.host, endpoint.port, endpoint.model) == ("whisper", 10301, None)

    def test_mqtt_topic_base_from_hostname(self) -> None:
        mqtt = _config().mqtt
        assert mqtt.host is None
        assert mqtt.topic_base == "mirror/hall-mirror"

    def test_mqtt_credentials(self) -> None:
        mqtt = _config(MQTT_HOST="broker", MQTT_USER="kiosk", MQTT_PASS="secret", MIRROR_TOPIC_BASE="home/mirror/").mqtt
        assert (mqtt.host, mqtt.username, mqtt.password) == ("broker", "kiosk", "secret")
        assert mqtt.topic_base == "home/mirror"

    def test_audio_player_override(self) -> None:
        assert _config().audio_player is None
        assert _config(MIRROR_AUDIO_PLAYER=" mpv ").audio_player == "mpv"
