"""Application configuration for platenotify."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from platenotify.exceptions import PlateNotifyConfigError

_OPTIONAL_FIELDS = frozenset({"storage_path", "mqtt_username", "mqtt_password", "mqtt_notify_topic", "upstream_url"})


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
class PlateNotifyConfig:
    """Application configuration.

    Parameters
    ----------
    storage_path : str or None
        JSON file holding the registry. ``None`` keeps the registry in
        memory only.
    seed_demo_plates : bool
        Populate an empty registry with the demo plates on startup.
    http_enabled : bool
        Serve the HTTP transport.
    http_host : str
        Interface the HTTP transport binds to.
    http_port : int
        Port the HTTP transport binds to.
    http_path : str
        Path of the plate submission endpoint.
    cors_allow_origin : str
        Value of ``Access-Control-Allow-Origin`` on every response.
    ingest_timeout : float
        Seconds an HTTP caller waits for a submission before receiving a
        timeout error. Processing itself is never interrupted.
    mqtt_enabled : bool
        Run the MQTT transport.
    mqtt_host : str
        MQTT broker host.
    mqtt_port : int
        MQTT broker port.
    mqtt_username : str or None
        Broker username, if the broker requires authentication.
    mqtt_password : str or None
        Broker password.
    mqtt_client_id : str
        MQTT client identifier.
    mqtt_ingest_topic : str
        Topic plate readers publish ``{"plateNumber": ...}`` to.
    mqtt_notify_topic : str or None
        Topic ``PLATE_DETECTED`` notifications are published to.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    upstream_url : str or None
        URL probed by the connectivity monitor. ``None`` disables probing.
    connectivity_interval : float
        Seconds between connectivity probes.
    connectivity_timeout : float
        Timeout of a single connectivity probe in seconds.
    """

    storage_path: str | None = "plates.json"
    seed_demo_plates: bool = True
    http_enabled: bool = True
    http_host: str = "0.0.0.0"
    http_port: int = 8080
    http_path: str = "/api/plate"
    cors_allow_origin: str = "*"
    ingest_timeout: float = 10.0
    mqtt_enabled: bool = False
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_username: str | None = None
    mqtt_password: str | None = None
    mqtt_client_id: str = "platenotify"
    mqtt_ingest_topic: str = "platenotify/plates"
    mqtt_notify_topic: str | None = "platenotify/arrivals"
    mqtt_keepalive: int = 60
    upstream_url: str | None = None
    connectivity_interval: float = 30.0
    connectivity_timeout: float = 5.0

    def __post_init__(self) -> None:
        if not 0 < self.http_port < 65536:
            raise PlateNotifyConfigError(f"http_port out of range: {self.http_port}")
        if not 0 < self.mqtt_port < 65536:
            raise PlateNotifyConfigError(f"mqtt_port out of range: {self.mqtt_port}")
        if not self.http_path.startswith("/"):
            raise PlateNotifyConfigError(f"http_path must start with '/': {self.http_path!r}")
        for name in ("ingest_timeout", "connectivity_interval", "connectivity_timeout"):
            if getattr(self, name) <= 0:
                raise PlateNotifyConfigError(f"{name} must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> PlateNotifyConfig:
        """Create configuration from ``PLATENOTIFY_*`` environment variables.

        Explicit keyword arguments override environment values.

        Raises
        ------
        PlateNotifyConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "PLATENOTIFY_STORAGE_PATH": "storage_path",
            "PLATENOTIFY_HTTP_HOST": "http_host",
            "PLATENOTIFY_HTTP_PATH": "http_path",
            "PLATENOTIFY_CORS_ALLOW_ORIGIN": "cors_allow_origin",
            "PLATENOTIFY_MQTT_HOST": "mqtt_host",
            "PLATENOTIFY_MQTT_USERNAME": "mqtt_username",
            "PLATENOTIFY_MQTT_PASSWORD": "mqtt_password",
            "PLATENOTIFY_MQTT_CLIENT_ID": "mqtt_client_id",
            "PLATENOTIFY_MQTT_INGEST_TOPIC": "mqtt_ingest_topic",
            "PLATENOTIFY_MQTT_NOTIFY_TOPIC": "mqtt_notify_topic",
            "PLATENOTIFY_UPSTREAM_URL": "upstream_url",
        }
        _ENV_NUMERIC_MAP: dict[str, tuple[str, type[int] | type[float]]] = {
            "PLATENOTIFY_HTTP_PORT": ("http_port", int),
            "PLATENOTIFY_INGEST_TIMEOUT": ("ingest_timeout", float),
            "PLATENOTIFY_MQTT_PORT": ("mqtt_port", int),
            "PLATENOTIFY_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
            "PLATENOTIFY_CONNECTIVITY_INTERVAL": ("connectivity_interval", float),
            "PLATENOTIFY_CONNECTIVITY_TIMEOUT": ("connectivity_timeout", float),
        }
        _ENV_BOOL_MAP = {
            "PLATENOTIFY_SEED_DEMO_PLATES": ("seed_demo_plates", True),
            "PLATENOTIFY_HTTP_ENABLED": ("http_enabled", True),
            "PLATENOTIFY_MQTT_ENABLED": ("mqtt_enabled", False),
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                if not val and field_name in _OPTIONAL_FIELDS:
                    # An empty value switches optional settings off.
                    config_kwargs[field_name] = None
                else:
                    config_kwargs[field_name] = val

        for env_key, (field_name, parse) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = parse(val)
            except ValueError as exc:
                raise PlateNotifyConfigError(f"{env_key} is not a valid number: {val!r}") from exc

        for env_key, (field_name, default) in _ENV_BOOL_MAP.items():
            if field_name not in overrides:
                config_kwargs[field_name] = _env_bool(env.get(env_key), default)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
