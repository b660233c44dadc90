"""Configuration helpers for the mirror kiosk."""

from __future__ import annotations

import os
import shlex
import socket
from dataclasses import dataclass

from mirror.utils import parse_bool, parse_float, parse_int

DEFAULT_WAKE_PHRASE = "carter"
DEFAULT_API_BASE_URL = "http://localhost:3000"
DEFAULT_WEATHER_LOCATION = "Orange,CA"


def _strip_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


@dataclass(frozen=True)
class WyomingEndpoint:
    host: str
    port: int
    model: str | None = None


@dataclass(frozen=True)
class MicConfig:
    command: list[str]
    rate: int
    width: int
    channels: int
    chunk_ms: int

    @property
    def bytes_per_chunk(self) -> int:
        samples = int(self.rate * (self.chunk_ms / 1000))
        return samples * self.width * self.channels


@dataclass(frozen=True)
class PhraseConfig:
    min_seconds: float
    max_seconds: float
    silence_ms: int
    rms_floor: int


@dataclass(frozen=True)
class VoiceConfig:
    enabled: bool
    wake_phrase: str
    language: str
    error_restart_delay: float
    error_backoff_max: float
    log_transcripts: bool


@dataclass(frozen=True)
class ApiConfig:
    base_url: str
    timeout: float


@dataclass(frozen=True)
class DisplayConfig:
    bind_address: str
    port: int
    weather_location: str
    clock_refresh_seconds: int
    weather_refresh_seconds: int
    calendar_refresh_seconds: int


@dataclass(frozen=True)
class MqttConfig:
    host: str | None
    port: int
    username: str | None
    password: str | None
    tls_enabled: bool
    cert: str | None
    key: str | None
    ca_cert: str | None
    topic_base: str


@dataclass(frozen=True)
class MirrorConfig:
    hostname: str
    voice: VoiceConfig
    mic: MicConfig
    phrase: PhraseConfig
    stt_endpoint: WyomingEndpoint
    api: ApiConfig
    display: DisplayConfig
    mqtt: MqttConfig
    audio_player: str | None

    @staticmethod
    def from_env(env: dict[str, str] | None = None) -> MirrorConfig:
        source = env or os.environ
        hostname = source.get("MIRROR_HOSTNAME") or socket.gethostname()

        error_delay = max(0.0, parse_float(source.get("MIRROR_VOICE_ERROR_RESTART_SECONDS"), 1.0))
        backoff_max = parse_float(source.get("MIRROR_VOICE_ERROR_BACKOFF_MAX"), error_delay)
        voice = VoiceConfig(
            enabled=parse_bool(source.get("MIRROR_VOICE_ENABLED"), True),
            wake_phrase=(source.get("MIRROR_WAKE_PHRASE") or DEFAULT_WAKE_PHRASE).strip().lower()
            or DEFAULT_WAKE_PHRASE,
            language=(source.get("MIRROR_VOICE_LANGUAGE") or "en-US").strip() or "en-US",
            error_restart_delay=error_delay,
            error_backoff_max=max(error_delay, backoff_max),
            log_transcripts=parse_bool(source.get("MIRROR_VOICE_LOG_TRANSCRIPTS"), False),
        )

        mic_cmd = shlex.split(
            source.get(
                "MIRROR_MIC_CMD",
                "arecord -q -t raw -f S16_LE -c 1 -r 16000 -",
            )
        )
        mic = MicConfig(
            command=mic_cmd,
            rate=parse_int(source.get("MIRROR_MIC_RATE"), 16000),
            width=parse_int(source.get("MIRROR_MIC_WIDTH"), 2),
            channels=parse_int(source.get("MIRROR_MIC_CHANNELS"), 1),
            chunk_ms=parse_int(source.get("MIRROR_MIC_CHUNK_MS"), 30),
        )
        phrase = PhraseConfig(
            min_seconds=parse_float(source.get("MIRROR_MIN_PHRASE_SECONDS"), 0.6),
            max_seconds=parse_float(source.get("MIRROR_MAX_PHRASE_SECONDS"), 8.0),
            silence_ms=parse_int(source.get("MIRROR_SILENCE_MS"), 900),
            rms_floor=parse_int(source.get("MIRROR_RMS_THRESHOLD"), 120),
        )
        stt_endpoint = WyomingEndpoint(
            host=source.get("WYOMING_WHISPER_HOST", "127.0.0.1"),
            port=parse_int(source.get("WYOMING_WHISPER_PORT"), 10300),
            model=_strip_or_none(source.get("MIRROR_STT_MODEL")),
        )

        api = ApiConfig(
            base_url=(source.get("MIRROR_API_BASE_URL") or DEFAULT_API_BASE_URL).rstrip("/"),
            timeout=max(1.0, parse_float(source.get("MIRROR_API_TIMEOUT_SECONDS"), 30.0)),
        )

        display = DisplayConfig(
            bind_address=source.get("MIRROR_DISPLAY_BIND", "127.0.0.1"),
            port=parse_int(source.get("MIRROR_DISPLAY_PORT"), 8800),
            weather_location=(source.get("MIRROR_WEATHER_LOCATION") or "").strip() or DEFAULT_WEATHER_LOCATION,
            clock_refresh_seconds=max(1, parse_int(source.get("MIRROR_CLOCK_REFRESH_SECONDS"), 60)),
            weather_refresh_seconds=max(60, parse_int(source.get("MIRROR_WEATHER_REFRESH_SECONDS"), 3600)),
            calendar_refresh_seconds=max(60, parse_int(source.get("MIRROR_CALENDAR_REFRESH_SECONDS"), 3600)),
        )

        topic_base = source.get("MIRROR_TOPIC_BASE") or f"mirror/{hostname}"
        mqtt = MqttConfig(
            host=_strip_or_none(source.get("MQTT_HOST")),
            port=parse_int(source.get("MQTT_PORT"), 1883),
            username=_strip_or_none(source.get("MQTT_USER") or source.get("MQTT_USERNAME")),
            password=_strip_or_none(source.get("MQTT_PASS") or source.get("MQTT_PASSWORD")),
            tls_enabled=parse_bool(source.get("MQTT_TLS_ENABLED"), False),
            cert=_strip_or_none(source.get("MQTT_CERT")),
            key=_strip_or_none(source.get("MQTT_KEY")),
            ca_cert=_strip_or_none(source.get("MQTT_CA_CERT")),
            topic_base=topic_base.rstrip("/"),
        )

        return MirrorConfig(
            hostname=hostname,
            voice=voice,
            mic=mic,
            phrase=phrase,
            stt_endpoint=stt_endpoint,
            api=api,
            display=display,
            mqtt=mqtt,
            audio_player=_strip_or_none(source.get("MIRROR_AUDIO_PLAYER")),
        )
