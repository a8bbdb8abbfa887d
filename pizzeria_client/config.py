"""Client configuration.

Settings come from an optional YAML file and can be overridden on the command
line. They are read once at startup.

Example (`app.yaml`):

    broker:
      url: tcp://localhost:1883
      qos: 1
    topics:
      order: orders/
      menu_request: bcast/i_am_ungry
      menu_response: bcast/menu

Every key is optional; missing keys keep the defaults below.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml

from .errors import ConfigError
from .topics import DEFAULT_MENU_REQUEST, DEFAULT_MENU_RESPONSE, DEFAULT_ORDER_PREFIX

PLAIN_SCHEMES = {"tcp": 1883, "mqtt": 1883}
TLS_SCHEMES = {"ssl": 8883, "mqtts": 8883}


@dataclass(frozen=True)
class BrokerAddress:
    host: str
    port: int
    tls: bool = False


@dataclass(frozen=True)
class ClientConfig:
    broker_url: str = "tcp://localhost:1883"
    qos: int = 1
    connect_timeout: float = 60.0
    keepalive: int = 30
    max_inflight: int = 50
    order_topic: str = DEFAULT_ORDER_PREFIX
    menu_request_topic: str = DEFAULT_MENU_REQUEST
    menu_response_topic: str = DEFAULT_MENU_RESPONSE

    def __post_init__(self) -> None:
        if self.qos not in (0, 1, 2):
            raise ConfigError(f"qos must be 0, 1 or 2, got {self.qos!r}")
        if not self.order_topic:
            raise ConfigError("order topic prefix must not be empty")
        # Validates the URL early so a typo fails at startup, not on connect.
        parse_broker_url(self.broker_url)

    @property
    def broker(self) -> BrokerAddress:
        return parse_broker_url(self.broker_url)

    def with_overrides(self, **overrides: Any) -> "ClientConfig":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes) if changes else self


def parse_broker_url(url: str) -> BrokerAddress:
    """Parse `tcp://host:port` (or `mqtt://`, `ssl://`, `mqtts://`)."""
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError as e:
        raise ConfigError(f"invalid broker url {url!r}: {e}") from e

    scheme = parts.scheme.lower()
    if scheme in PLAIN_SCHEMES:
        tls = False
        default_port = PLAIN_SCHEMES[scheme]
    elif scheme in TLS_SCHEMES:
        tls = True
        default_port = TLS_SCHEMES[scheme]
    else:
        raise ConfigError(f"unsupported broker url scheme in {url!r}")

    if not parts.hostname:
        raise ConfigError(f"broker url {url!r} has no host")
    return BrokerAddress(host=parts.hostname, port=port or default_port, tls=tls)


def load_config(path: str | Path | None = None) -> ClientConfig:
    """Load a `ClientConfig` from a YAML file (defaults when `path` is None)."""
    if path is None:
        return ClientConfig()

    p = Path(path)
    try:
        with p.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"cannot read config file {p}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {p}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{p}: top level must be a mapping")
    return config_from_dict(raw)


def config_from_dict(raw: dict[str, Any]) -> ClientConfig:
    broker = _section(raw, "broker")
    topics = _section(raw, "topics")

    values: dict[str, Any] = {
        "broker_url": broker.get("url"),
        "qos": _as_int(broker, "qos"),
        "connect_timeout": _as_float(broker, "connect_timeout"),
        "keepalive": _as_int(broker, "keepalive"),
        "max_inflight": _as_int(broker, "max_inflight"),
        "order_topic": topics.get("order"),
        "menu_request_topic": topics.get("menu_request"),
        "menu_response_topic": topics.get("menu_response"),
    }
    return ClientConfig(**{k: v for k, v in values.items() if v is not None})


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"config section {name!r} must be a mapping")
    return section


def _as_int(section: dict[str, Any], key: str) -> int | None:
    value = section.get(key)
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be an integer, got {value!r}") from e


def _as_float(section: dict[str, Any], key: str) -> float | None:
    value = section.get(key)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be a number, got {value!r}") from e
