"""Server configuration for markersync."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from markersync._constants import (
    DEFAULT_MQTT_PORT,
    DEFAULT_PUBLISH_DEPTH,
    DEFAULT_TICK_INTERVAL,
    DEFAULT_TOPIC_NAME,
    DEFAULT_TOPIC_NAMESPACE,
)
from markersync.exceptions import SyncConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class SyncConfig:
    """Server configuration.

    Parameters
    ----------
    topic_namespace : str
        Leading segment of the publish topic.
    topic_name : str
        Trailing segment of the publish topic.
    tick_interval : float
        Seconds between two publish ticks. Defaults to 20 ms.
    publish_depth : int
        Maximum number of batches a transport may hold back while its sink
        is unavailable.
    mqtt_host : str
        MQTT broker host name.
    mqtt_port : int
        MQTT broker port.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_qos : int
        QoS level (0, 1 or 2) used for every published batch.
    mqtt_retain : bool
        Ask the broker to retain the latest batch for late subscribers.
    mqtt_tls : bool
        Enable TLS with the system trust store.
    mqtt_username : str or None
        Optional broker user name.
    mqtt_password : str or None
        Optional broker password.
    mqtt_client_id : str
        MQTT client id. Empty lets the broker assign one.
    http_url : str or None
        Endpoint receiving batches when the HTTP publisher is used.
    http_timeout : float
        Total timeout for one HTTP publish, in seconds.
    """

    topic_namespace: str = DEFAULT_TOPIC_NAMESPACE
    topic_name: str = DEFAULT_TOPIC_NAME
    tick_interval: float = DEFAULT_TICK_INTERVAL
    publish_depth: int = DEFAULT_PUBLISH_DEPTH
    mqtt_host: str = "localhost"
    mqtt_port: int = DEFAULT_MQTT_PORT
    mqtt_keepalive: int = 60
    mqtt_qos: int = 0
    mqtt_retain: bool = False
    mqtt_tls: bool = False
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_client_id: str = ""
    http_url: str | None = None
    http_timeout: float = 5.0

    def __post_init__(self) -> None:
        if not self.topic_name.strip("/"):
            raise SyncConfigError("topic_name must be non-empty")
        if self.tick_interval <= 0:
            raise SyncConfigError(f"tick_interval must be positive, got {self.tick_interval}")
        if self.publish_depth < 0:
            raise SyncConfigError(f"publish_depth must be >= 0, got {self.publish_depth}")
        if self.mqtt_qos not in (0, 1, 2):
            raise SyncConfigError(f"mqtt_qos must be 0, 1 or 2, got {self.mqtt_qos}")
        if self.http_timeout <= 0:
            raise SyncConfigError(f"http_timeout must be positive, got {self.http_timeout}")

    @property
    def topic(self) -> str:
        """Full publish topic, ``"<namespace>/<name>"``."""
        namespace = self.topic_namespace.strip("/")
        name = self.topic_name.strip("/")
        if not namespace:
            return name
        return f"{namespace}/{name}"

    @classmethod
    def from_env(cls, **overrides: Any) -> SyncConfig:
        """Create configuration from environment variables.

        Reads optional ``MARKERSYNC_*`` variables. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        SyncConfig
            Populated configuration.

        Raises
        ------
        SyncConfigError
            If a numeric variable cannot be parsed or a value is out of range.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "MARKERSYNC_TOPIC_NAMESPACE": "topic_namespace",
            "MARKERSYNC_TOPIC_NAME": "topic_name",
            "MARKERSYNC_MQTT_HOST": "mqtt_host",
            "MARKERSYNC_MQTT_USERNAME": "mqtt_username",
            "MARKERSYNC_MQTT_PASSWORD": "mqtt_password",
            "MARKERSYNC_MQTT_CLIENT_ID": "mqtt_client_id",
            "MARKERSYNC_HTTP_URL": "http_url",
        }
        _ENV_NUMERIC_MAP: dict[str, tuple[str, type]] = {
            "MARKERSYNC_TICK_INTERVAL": ("tick_interval", float),
            "MARKERSYNC_PUBLISH_DEPTH": ("publish_depth", int),
            "MARKERSYNC_MQTT_PORT": ("mqtt_port", int),
            "MARKERSYNC_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
            "MARKERSYNC_MQTT_QOS": ("mqtt_qos", int),
            "MARKERSYNC_HTTP_TIMEOUT": ("http_timeout", float),
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        for env_key, (field_name, kind) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = kind(val)
            except ValueError as exc:
                raise SyncConfigError(f"{env_key} is not a valid {kind.__name__}: {val!r}") from exc

        if "mqtt_retain" not in overrides:
            config_kwargs["mqtt_retain"] = _env_bool(env.get("MARKERSYNC_MQTT_RETAIN"), False)
        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("MARKERSYNC_MQTT_TLS"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
