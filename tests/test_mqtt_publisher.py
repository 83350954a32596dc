from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any

import paho.mqtt.client as mqtt
import pytest

from markersync._mqtt import MqttMarkerPublisher
from markersync.config import SyncConfig
from markersync.exceptions import PublishError
from markersync.models import ActionCode, MarkerBatch, MarkerRecord


class _FakeClient:
    def __init__(self) -> None:
        self.published: list[tuple[str, bytes, int, bool]] = []
        self.rc = mqtt.MQTT_ERR_SUCCESS
        self.auth: tuple[str, str | None] | None = None
        self.tls = False
        self.max_queued: int | None = None
        self.connect_args: tuple[str, int, int] | None = None
        self.loop_running = False
        self.disconnected = False
        self.on_connect: Any = None
        self.on_disconnect: Any = None

    def enable_logger(self, _logger: Any) -> None:
        pass

    def username_pw_set(self, username: str, password: str | None) -> None:
        self.auth = (username, password)

    def tls_set(self) -> None:
        self.tls = True

    def max_queued_messages_set(self, depth: int) -> None:
        self.max_queued = depth

    def connect_async(self, host: str, port: int, keepalive: int) -> None:
        self.connect_args = (host, port, keepalive)

    def loop_start(self) -> None:
        self.loop_running = True

    def loop_stop(self) -> None:
        self.loop_running = False

    def disconnect(self) -> None:
        self.disconnected = True

    def publish(self, topic: str, payload: bytes, qos: int, retain: bool) -> SimpleNamespace:
        self.published.append((topic, payload, qos, retain))
        return SimpleNamespace(rc=self.rc)


def _publisher(**config: Any) -> tuple[MqttMarkerPublisher, _FakeClient]:
    fake = _FakeClient()
    publisher = MqttMarkerPublisher(SyncConfig(**config), client_factory=lambda _config: fake)  # type: ignore[arg-type,return-value]
    return publisher, fake


def _batch() -> MarkerBatch:
    return MarkerBatch(markers=[MarkerRecord(id="a", payload={"type": "cube"}, action=ActionCode.ADD)])


def test_start_configures_client() -> None:
    publisher, fake = _publisher(
        mqtt_host="broker",
        mqtt_port=8883,
        mqtt_keepalive=30,
        mqtt_tls=True,
        mqtt_username="viz",
        mqtt_password="pw",
        publish_depth=7,
    )

    publisher.start()

    assert fake.connect_args == ("broker", 8883, 30)
    assert fake.auth == ("viz", "pw")
    assert fake.tls is True
    assert fake.max_queued == 7
    assert fake.loop_running
    assert publisher.is_running


def test_connect_callback_tracks_connection_state() -> None:
    publisher, fake = _publisher()
    publisher.start()

    fake.on_connect(fake, None, None, SimpleNamespace(value=0), None)
    assert publisher.is_connected

    fake.on_disconnect(fake, None, None, SimpleNamespace(value=7), None)
    assert not publisher.is_connected


def test_failed_connect_stays_disconnected() -> None:
    publisher, fake = _publisher()
    publisher.start()

    fake.on_connect(fake, None, None, SimpleNamespace(value=135), None)

    assert not publisher.is_connected


@pytest.mark.asyncio
async def test_publish_sends_json_batch_on_topic() -> None:
    publisher, fake = _publisher(topic_namespace="robot", mqtt_qos=1, mqtt_retain=True)
    publisher.start()

    await publisher.publish(_batch())

    topic, payload, qos, retain = fake.published[0]
    assert topic == "robot/markers"
    assert json.loads(payload) == {"markers": [{"id": "a", "payload": {"type": "cube"}, "action": 1}]}
    assert qos == 1
    assert retain is True


@pytest.mark.asyncio
async def test_publish_error_code_raises() -> None:
    publisher, fake = _publisher()
    publisher.start()
    fake.rc = mqtt.MQTT_ERR_NO_CONN

    with pytest.raises(PublishError) as excinfo:
        await publisher.publish(_batch())

    assert excinfo.value.topic == "markersync/markers"


@pytest.mark.asyncio
async def test_publish_before_start_raises() -> None:
    publisher, _fake = _publisher()
    with pytest.raises(PublishError):
        await publisher.publish(_batch())


def test_stop_disconnects_and_stops_loop() -> None:
    publisher, fake = _publisher()
    with publisher:
        assert fake.loop_running

    assert fake.disconnected
    assert not fake.loop_running
    assert not publisher.is_running
