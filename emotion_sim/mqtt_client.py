"""Small MQTT helper built on top of paho-mqtt.

Why this exists:
- paho-mqtt is callback-based and its API differs between major versions.
- Publisher and subscriber each own exactly one connection; this wrapper keeps
  connection setup, error mapping and logging in one place.

Design:
- `MqttClient` manages connection + a background network loop.
- Messages are handed to handlers as raw bytes: the subscriber parses them
  tolerantly itself, so no JSON decoding happens here.
- QoS is always 0 (at most once, no acknowledgement).
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

import paho.mqtt.client as mqtt

from .errors import BrokerConnectionError, PublishError

_logger = logging.getLogger(__name__)

DEFAULT_BROKER_HOST = "broker.hivemq.com"
DEFAULT_BROKER_PORT = 1883

# Called with (topic, raw_payload).
MessageHandler = Callable[[str, bytes], None]
# Called with a human readable reason when the connection drops unexpectedly.
DisconnectHandler = Callable[[str], None]


class MqttClient:
    """Thin wrapper around paho-mqtt for one owned connection."""

    def __init__(
        self,
        *,
        client_id: str,
        host: str = DEFAULT_BROKER_HOST,
        port: int = DEFAULT_BROKER_PORT,
        keepalive: int = 30,
        reconnect_on_failure: bool = True,
    ) -> None:
        self.client_id = client_id
        self.host = host
        self.port = port
        self.keepalive = keepalive

        self._client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            clean_session=True,
            reconnect_on_failure=reconnect_on_failure,
        )
        self._client.on_connect = self._on_connect
        self._client.on_message = self._on_message
        self._client.on_disconnect = self._on_disconnect

        self._handlers: list[MessageHandler] = []
        self._disconnect_handlers: list[DisconnectHandler] = []
        self._lock = threading.Lock()

        self._started = False
        self._stopping = False

    def start(self) -> None:
        """Connect and start the background network loop.

        Raises:
            BrokerConnectionError: the broker is unreachable.
        """
        if self._started:
            return
        try:
            self._client.connect(self.host, self.port, keepalive=self.keepalive)
        except (OSError, ValueError) as e:
            _logger.error("%s: connection to %s:%d failed: %s", self.client_id, self.host, self.port, e)
            raise BrokerConnectionError(self.host, self.port, str(e)) from e
        self._stopping = False
        self._client.loop_start()
        self._started = True

    def stop(self) -> None:
        """Stop and disconnect."""
        if not self._started:
            return
        self._stopping = True
        self._client.disconnect()
        self._client.loop_stop()
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def add_handler(self, handler: MessageHandler) -> None:
        with self._lock:
            self._handlers.append(handler)

    def add_disconnect_handler(self, handler: DisconnectHandler) -> None:
        with self._lock:
            self._disconnect_handlers.append(handler)

    def subscribe(self, topic: str) -> None:
        self._client.subscribe(topic, qos=0)

    def publish(self, topic: str, payload: str) -> None:
        """Fire-and-forget publish at QoS 0.

        Raises:
            PublishError: paho refused the message (e.g. not connected).
        """
        info = self._client.publish(topic, payload=payload.encode("utf-8"), qos=0)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(topic, int(info.rc), mqtt.error_string(info.rc))

    # -------------------- internal callbacks --------------------

    def _on_connect(self, client: mqtt.Client, userdata: Any, flags: Any, reason_code: Any, properties: Any) -> None:
        if reason_code.is_failure:
            _logger.error("%s: broker refused connection: %s", self.client_id, reason_code)
        else:
            _logger.info("%s: connected to MQTT %s:%d", self.client_id, self.host, self.port)

    def _on_disconnect(
        self, client: mqtt.Client, userdata: Any, flags: Any, reason_code: Any, properties: Any
    ) -> None:
        if self._stopping:
            _logger.info("%s: disconnected", self.client_id)
            return

        reason = str(reason_code)
        _logger.warning("%s: lost connection to %s:%d (%s)", self.client_id, self.host, self.port, reason)
        with self._lock:
            handlers = list(self._disconnect_handlers)
        for h in handlers:
            try:
                h(reason)
            except Exception:
                _logger.exception("%s: disconnect handler failed", self.client_id)

    def _on_message(self, client: mqtt.Client, userdata: Any, msg: mqtt.MQTTMessage) -> None:
        # Depending on paho-mqtt version / type stubs, msg.payload may be `bytes`
        # (typical) or something else. We normalize to bytes.
        raw = msg.payload
        payload = raw if isinstance(raw, bytes) else str(raw).encode("utf-8")

        with self._lock:
            handlers = list(self._handlers)
        for h in handlers:
            try:
                h(msg.topic, payload)
            except Exception:
                # Keep the network thread alive whatever a handler does.
                _logger.exception("%s: message handler failed on %s", self.client_id, msg.topic)
