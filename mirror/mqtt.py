"""Optional MQTT telemetry for the voice pipeline."""

from __future__ import annotations

import json
import logging
import ssl
import time

import paho.mqtt.client as mqtt

from .config import MqttConfig
from .voice.models import PipelineStage


class MirrorMqtt:
    """Publish pipeline stage changes and recognized commands.

    Everything is a no-op until ``connect`` succeeds, so the kiosk runs the
    same with or without a broker.
    """

    def __init__(self, config: MqttConfig, logger: logging.Logger | None = None) -> None:
        self.config = config
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self.stage_topic = f"{config.topic_base}/voice/stage"
        self.command_topic = f"{config.topic_base}/voice/command"

    def connect(self) -> None:
        if self._client is not None:
            return
        if not self.config.host:
            self._logger.debug("[mqtt] MQTT host not configured; voice telemetry disabled")
            return
        client = self._build_client()
        try:
            client.connect(self.config.host, self.config.port, keepalive=30)
        except Exception as exc:
            self._logger.warning("[mqtt] Failed to connect to MQTT: %s", exc)
            return
        client.loop_start()
        self._client = client

    def disconnect(self) -> None:
        client, self._client = self._client, None
        if client:
            client.loop_stop()
            client.disconnect()

    def publish_stage(self, previous: PipelineStage, stage: PipelineStage) -> None:
        payload = {"stage": stage.value, "previous": previous.value, "ts": int(time.time())}
        self._publish(self.stage_topic, payload, retain=True)

    def publish_command(self, text: str) -> None:
        self._publish(self.command_topic, {"text": text, "ts": int(time.time())})

    def _build_client(self) -> mqtt.Client:
        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=f"mirror-kiosk-{self.config.topic_base}",
            clean_session=True,
        )
        if self.config.username:
            client.username_pw_set(self.config.username, self.config.password or "")
        if self.config.tls_enabled:
            client.tls_set(
                ca_certs=self.config.ca_cert,
                certfile=self.config.cert,
                keyfile=self.config.key,
                tls_version=ssl.PROTOCOL_TLS_CLIENT,
            )
        return client

    def _publish(self, topic: str, payload: dict[str, object], retain: bool = False) -> None:
        client = self._client
        if not client:
            return
        try:
            client.publish(topic, payload=json.dumps(payload), qos=0, retain=retain)
        except Exception as exc:
            self._logger.debug("[mqtt] Failed to publish to %s: %s", topic, exc)
