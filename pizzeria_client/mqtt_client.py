"""Small MQTT helper built on top of paho-mqtt.

Why this exists:
- paho-mqtt is callback-based and reports failures as return codes.
- The pizzeria speaks plain text, not JSON, so handlers get `(topic, text)`.

Design:
- `MqttClient` manages the connection + the background network loop.
- `start()` blocks until the broker acknowledged the connection, so a dead
  broker surfaces as `BrokerConnectionError` instead of a silent retry loop.
- Once connected, paho reconnects on its own. The session is clean, so the
  broker forgets our subscriptions on every reconnect; we remember them and
  subscribe again in `on_connect`.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

import paho.mqtt.client as mqtt

from .errors import BrokerConnectionError, PublishError, SubscriptionError

log = logging.getLogger(__name__)

MessageHandler = Callable[[str, str], None]


class MqttClient:
    """Thin wrapper around paho-mqtt with text payloads."""

    def __init__(
        self,
        *,
        client_id: str,
        host: str,
        port: int,
        qos: int = 1,
        keepalive: int = 30,
        connect_timeout: float = 60.0,
        max_inflight: int = 50,
        tls: bool = False,
    ) -> None:
        self.client_id = client_id
        self.host = host
        self.port = port
        self.qos = qos
        self.keepalive = keepalive
        self.connect_timeout = connect_timeout

        self._client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            clean_session=True,
        )
        self._client.connect_timeout = connect_timeout
        self._client.max_inflight_messages_set(max_inflight)
        self._client.reconnect_delay_set(min_delay=1, max_delay=60)
        self._client.enable_logger(logging.getLogger("paho.mqtt"))
        if tls:
            self._client.tls_set()

        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message

        # External subscribers. Called with (topic, text payload).
        self._handlers: list[MessageHandler] = []

        # topic -> qos, replayed after every reconnect.
        self._subscriptions: dict[str, int] = {}
        self._lock = threading.Lock()

        self._connected = threading.Event()
        self._connect_error: str | None = None
        self._started = False

    @property
    def connected(self) -> bool:
        return self._connected.is_set()

    def start(self) -> None:
        """Connect, start the background network loop and wait for CONNACK."""
        if self._started:
            return
        self._connect_error = None
        try:
            self._client.connect(self.host, self.port, keepalive=self.keepalive)
        except OSError as e:
            raise BrokerConnectionError(f"cannot reach MQTT broker {self.host}:{self.port}: {e}") from e

        self._client.loop_start()
        if not self._connected.wait(self.connect_timeout) or self._connect_error is not None:
            reason = self._connect_error or f"no CONNACK within {self.connect_timeout}s"
            self._client.loop_stop()
            self._client.disconnect()
            self._connected.clear()
            raise BrokerConnectionError(f"MQTT broker {self.host}:{self.port} refused connection: {reason}")

        self._started = True
        log.info("Connected to MQTT broker %s:%s as %s", self.host, self.port, self.client_id)

    def stop(self) -> None:
        """Disconnect and stop the network loop."""
        if not self._started:
            return
        self._client.disconnect()
        self._client.loop_stop()
        self._connected.clear()
        self._started = False

    def add_handler(self, handler: MessageHandler) -> None:
        self._handlers.append(handler)

    def subscribe(self, topic: str, qos: int | None = None) -> None:
        q = self.qos if qos is None else qos
        if not self.connected:
            raise SubscriptionError(topic, "not connected")
        rc, _mid = self._client.subscribe(topic, qos=q)
        if rc != mqtt.MQTT_ERR_SUCCESS:
            raise SubscriptionError(topic, mqtt.error_string(rc))
        with self._lock:
            self._subscriptions[topic] = q
        log.debug("Subscribed to %s (qos=%s)", topic, q)

    def unsubscribe(self, topic: str) -> None:
        # The topic stays on the replay list until the broker took the request.
        if not self.connected:
            raise SubscriptionError(topic, "not connected")
        rc, _mid = self._client.unsubscribe(topic)
        if rc != mqtt.MQTT_ERR_SUCCESS:
            raise SubscriptionError(topic, mqtt.error_string(rc))
        with self._lock:
            self._subscriptions.pop(topic, None)
        log.debug("Unsubscribed from %s", topic)

    def publish(self, topic: str, payload: str, qos: int | None = None) -> None:
        """Publish a text payload.

        While disconnected paho would queue QoS 1/2 messages and send them
        after the reconnect; we refuse instead, so a failed publish never
        reaches the broker later.

        Raises:
            PublishError: not connected, or paho rejected the message.
        """
        q = self.qos if qos is None else qos
        if not self.connected:
            raise PublishError(topic, "not connected")
        log.info("Publishing message: %r to topic: %s", payload, topic)
        try:
            info = self._client.publish(topic, payload=payload.encode("utf-8"), qos=q)
        except ValueError as e:
            raise PublishError(topic, str(e)) from e
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(topic, mqtt.error_string(info.rc))

    # -------------------- internal callbacks --------------------

    def _on_connect(
        self,
        client: mqtt.Client,
        userdata: Any,
        flags: Any,
        reason_code: Any,
        properties: Any,
    ) -> None:
        if reason_code.is_failure:
            self._connect_error = str(reason_code)
            self._connected.set()
            return

        with self._lock:
            subscriptions = list(self._subscriptions.items())
        for topic, qos in subscriptions:
            client.subscribe(topic, qos=qos)
        if subscriptions:
            log.info("Reconnected, restored %d subscription(s)", len(subscriptions))
        self._connected.set()

    def _on_disconnect(
        self,
        client: mqtt.Client,
        userdata: Any,
        disconnect_flags: Any,
        reason_code: Any,
        properties: Any,
    ) -> None:
        self._connected.clear()
        if self._started and reason_code != 0:
            log.warning("Connection lost: %s (reconnecting)", reason_code)

    def _on_message(self, client: mqtt.Client, userdata: Any, msg: mqtt.MQTTMessage) -> None:
        # Depending on paho-mqtt version / type stubs, msg.payload may be `bytes` (typical)
        # or a `str`. We normalize to text.
        raw = msg.payload
        if isinstance(raw, bytes):
            try:
                payload = raw.decode("utf-8")
            except UnicodeDecodeError:
                log.warning("Dropping non UTF-8 message on %s", msg.topic)
                return
        else:
            payload = str(raw)

        log.debug("Received message: %r from topic: %s", payload, msg.topic)
        for h in list(self._handlers):
            try:
                h(msg.topic, payload)
            except Exception:
                # Keep the network thread alive; the handler's bug is logged.
                log.exception("Message handler failed for topic %s", msg.topic)
