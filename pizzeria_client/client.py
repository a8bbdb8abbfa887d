from __future__ import annotations

# Pizzeria customer client.
#
# IMPORTANT: This file is the MQTT half of the client.
# - `OrderSession` (session.py) holds the state and the lifecycle rules
# - `PizzeriaClient` wires it to the broker: subscriptions, publishes and the
#   inbound message dispatch
#
# The transport is injected, so tests can drive the client with an in-memory
# fake instead of a broker.

import logging
import uuid
from typing import TYPE_CHECKING, Callable, Iterable, Protocol

from .codec import decode_menu, encode_order
from .errors import PublishError, SubscriptionError
from .models import OrderLine
from .session import OrderSession, SessionSnapshot
from .topics import CANCELLED, DELIVERY, STATUS, order_submit, order_topics, parse_order_topic

if TYPE_CHECKING:
    from .config import ClientConfig

log = logging.getLogger(__name__)


class Transport(Protocol):
    @property
    def connected(self) -> bool: ...

    def start(self) -> None: ...

    def stop(self) -> None: ...

    def add_handler(self, handler: Callable[[str, str], None]) -> None: ...

    def subscribe(self, topic: str, qos: int | None = None) -> None: ...

    def unsubscribe(self, topic: str) -> None: ...

    def publish(self, topic: str, payload: str, qos: int | None = None) -> None: ...


class PizzeriaClient:
    """One customer session against the pizzeria."""

    def __init__(self, *, mqtt: Transport, config: ClientConfig) -> None:
        self.mqtt = mqtt
        self.config = config
        self.session = OrderSession()
        self._handler_installed = False

    @classmethod
    def from_config(cls, config: ClientConfig, *, client_id: str | None = None) -> "PizzeriaClient":
        """Build a client backed by a real paho-mqtt connection."""
        # Local import so unit tests can import the client without paho-mqtt.
        from .mqtt_client import MqttClient

        broker = config.broker
        mqtt = MqttClient(
            client_id=client_id or f"Customer-{uuid.uuid4()}",
            host=broker.host,
            port=broker.port,
            qos=config.qos,
            keepalive=config.keepalive,
            connect_timeout=config.connect_timeout,
            max_inflight=config.max_inflight,
            tls=broker.tls,
        )
        return cls(mqtt=mqtt, config=config)

    # -------------------- connection --------------------

    def start(self) -> None:
        """Connect to the broker and listen for menu broadcasts.

        Raises:
            BrokerConnectionError: the broker is unreachable.
        """
        if not self._handler_installed:
            self.mqtt.add_handler(self.handle_message)
            self._handler_installed = True
        self.mqtt.start()
        self.mqtt.subscribe(self.config.menu_response_topic)

    def stop(self) -> None:
        self.mqtt.stop()

    # -------------------- customer actions --------------------

    def request_menu(self) -> None:
        """Ask the pizzeria to broadcast its menu. The answer arrives asynchronously."""
        self.mqtt.publish(self.config.menu_request_topic, "")
        log.info("Requested menu.")

    def place_order(self, lines: Iterable[OrderLine]) -> str | None:
        """Submit an order and start following it.

        Returns the new order id, or None when `lines` is empty (nothing is
        sent in that case).

        The previous order, if any, is only dropped once the new one has been
        handed to the broker. On failure the session and its subscriptions
        stay as they were.

        Raises:
            PublishError: not connected, or the broker write failed.
            SubscriptionError: the order topics could not be subscribed.
        """
        lines = list(lines)
        if not lines:
            return None
        if not self.mqtt.connected:
            raise PublishError(self.config.order_topic, "not connected to the broker")

        previous = self.session.snapshot()
        order_id = str(uuid.uuid4())
        payload = encode_order(lines)
        subscribed: list[str] = []
        try:
            for topic in order_topics(order_id, self.config.order_topic):
                self.mqtt.subscribe(topic)
                subscribed.append(topic)

            # State first: a fast status reply must find the order already current.
            self.session.start_order(order_id, lines)
            self.mqtt.publish(order_submit(order_id, self.config.order_topic), payload)
        except Exception:
            self.session.rollback_order(order_id, previous)
            self._unsubscribe_all(subscribed)
            raise

        if previous.order_id is not None:
            self._drop_order_topics(previous.order_id)

        log.info("Placed order %s: %s", order_id, payload)
        return order_id

    def confirm_delivery(self) -> None:
        """Acknowledge the delivery; a new order can be placed afterwards."""
        cleared = self.session.confirm_delivery()
        if cleared is not None:
            self._drop_order_topics(cleared)

    def confirm_cancellation(self) -> None:
        self.session.confirm_cancellation()

    # -------------------- state for the presentation layer --------------------

    def snapshot(self) -> SessionSnapshot:
        return self.session.snapshot()

    def wait_for(self, predicate: Callable[[SessionSnapshot], bool], timeout: float) -> SessionSnapshot:
        return self.session.wait_for(predicate, timeout)

    # -------------------- inbound messages (MQTT thread) --------------------

    def handle_message(self, topic: str, payload: str) -> None:
        if topic == self.config.menu_response_topic:
            self._handle_menu(payload)
            return

        parsed = parse_order_topic(topic, self.config.order_topic)
        if parsed is None:
            log.debug("Ignoring message on unexpected topic %s", topic)
            return

        order_id, kind = parsed
        if kind == STATUS:
            applied = self.session.apply_status(order_id, payload)
        elif kind == DELIVERY:
            applied = self.session.apply_delivery(order_id, payload)
        elif kind == CANCELLED:
            applied = self.session.apply_cancellation(order_id, payload)
            if applied:
                self._drop_order_topics(order_id)
        else:
            applied = False

        if applied:
            log.info("Order %s %s: %s", order_id, kind, payload)
        else:
            log.info("Ignoring %s message for order %s (not the order in progress)", kind, order_id)

    def _handle_menu(self, payload: str) -> None:
        items = decode_menu(payload)
        if payload.strip() and not items:
            log.warning("Menu broadcast had no valid pizza, keeping the previous menu")
            return
        self.session.replace_menu(items)
        log.info("Pizzas retrieved from menu: %s", [item.name for item in items])

    def _drop_order_topics(self, order_id: str) -> None:
        self._unsubscribe_all(order_topics(order_id, self.config.order_topic))

    def _unsubscribe_all(self, topics: Iterable[str]) -> None:
        for topic in topics:
            try:
                self.mqtt.unsubscribe(topic)
            except SubscriptionError as e:
                log.warning("Could not unsubscribe from %s: %s", topic, e)
