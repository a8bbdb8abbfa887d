"""Exception hierarchy shared by the codec, the transport and the client."""

from __future__ import annotations


class PizzeriaError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(PizzeriaError):
    pass


class BrokerConnectionError(PizzeriaError, ConnectionError):
    """The broker could not be reached when connecting."""


class PublishError(PizzeriaError):
    """A publish was rejected by the MQTT client."""

    def __init__(self, topic: str, reason: str) -> None:
        super().__init__(f"publish to {topic!r} failed: {reason}")
        self.topic = topic
        self.reason = reason


class SubscriptionError(PizzeriaError):
    def __init__(self, topic: str, reason: str) -> None:
        super().__init__(f"(un)subscribe on {topic!r} failed: {reason}")
        self.topic = topic
        self.reason = reason


class MenuDecodeError(PizzeriaError, ValueError):
    """A menu record does not follow `name~ing1,ing2~price`."""

    def __init__(self, record: str, reason: str) -> None:
        super().__init__(f"bad menu record {record!r}: {reason}")
        self.record = record
        self.reason = reason


class InvalidQuantityError(PizzeriaError, ValueError):
    pass
