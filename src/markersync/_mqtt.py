"""Threaded paho-mqtt publisher for marker batches."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from markersync.config import SyncConfig
from markersync.exceptions import PublishError
from markersync.models import MarkerBatch
from markersync.wire import encode_batch


def _default_client_factory(config: SyncConfig) -> mqtt.Client:
    return mqtt.Client(
        callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
        client_id=config.mqtt_client_id,
        protocol=mqtt.MQTTv5,
    )


class MqttMarkerPublisher:
    """Publish every batch on ``config.topic`` through a paho-mqtt network thread.

    ``start()`` returns immediately; the connection is established in the
    background and re-established by paho after broker outages. Batches
    published while disconnected are either queued (QoS > 0, bounded by
    ``config.publish_depth``) or rejected with :class:`PublishError`.
    """

    def __init__(
        self,
        config: SyncConfig,
        *,
        client_factory: Callable[[SyncConfig], mqtt.Client] = _default_client_factory,
        logger: logging.Logger | None = None,
    ) -> None:
        self._config = config
        self._client_factory = client_factory
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._connected = False

    @property
    def is_running(self) -> bool:
        """Whether the MQTT network loop is running."""
        return self._running

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def topic(self) -> str:
        return self._config.topic

    def start(self) -> None:
        """Begin connecting to the configured broker."""
        self.stop()
        config = self._config
        self._logger.debug(
            "MQTT publisher start requested host=%s port=%s topic=%s client_id=%s",
            config.mqtt_host,
            config.mqtt_port,
            config.topic,
            config.mqtt_client_id or "<broker-assigned>",
        )

        client = self._client_factory(config)
        client.enable_logger(self._logger)
        if config.mqtt_username:
            client.username_pw_set(config.mqtt_username, config.mqtt_password)
        if config.mqtt_tls:
            client.tls_set()
        client.max_queued_messages_set(config.publish_depth)

        def on_connect(
            _c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._connected = True
            self._logger.debug("MQTT connected successfully reason=%s", reason_code)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            self._connected = False
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_disconnect = on_disconnect

        client.connect_async(config.mqtt_host, config.mqtt_port, keepalive=config.mqtt_keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Disconnect and stop the network thread if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._connected = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    async def publish(self, batch: MarkerBatch) -> None:
        client = self._client
        topic = self._config.topic
        if client is None:
            raise PublishError("MQTT publisher not started", topic=topic)

        payload = encode_batch(batch)
        try:
            info = client.publish(topic, payload, qos=self._config.mqtt_qos, retain=self._config.mqtt_retain)
        except ValueError as exc:
            raise PublishError(f"MQTT publish rejected: {exc}", topic=topic) from exc

        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(
                f"MQTT publish failed rc={info.rc} ({mqtt.error_string(info.rc)})",
                topic=topic,
            )

    def __enter__(self) -> MqttMarkerPublisher:
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()
