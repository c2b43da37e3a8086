from __future__ import annotations

# MQTT subscriber.
#
# Receives raw payloads on the emotions topic, reads them tolerantly (see
# analysis.py) and logs the dominant emotion of each message.
#
# - Runs on paho's network thread: handle_message must stay cheap.
# - Malformed payloads are logged with their raw bytes and dropped; nothing
#   raised here ever reaches paho.
# - On connection loss we log and stop. There is no automatic reconnect.
#
# Listeners registered with add_listener() are told only when the dominant
# emotion changes, not on every message.
#
# Messages that carry a clientId (slider input) are also tracked per player in
# `self.players` (see players.py). A new sender arriving when every slot is
# taken is left out of the player table.

import argparse
import logging
import threading
import time
from typing import Callable, Sequence, TYPE_CHECKING

from .analysis import EMOTION_KEYS, INPUT_KEYS, Decision, read_payload
from .errors import BrokerConnectionError, MalformedPayloadError
from .mqtt_topics import EMOTIONS_TOPIC
from .players import MAX_PLAYERS, NO_SLOT, PlayerSlots

if TYPE_CHECKING:
    from .mqtt_client import MqttClient

_logger = logging.getLogger(__name__)

# Called with (dominant_emotion, value).
DominantListener = Callable[[str, float], None]


def subscriber_client_id() -> str:
    return f"sub-{int(time.time() * 1000)}"


class EmotionSubscriber:
    def __init__(
        self,
        *,
        mqtt: MqttClient,
        topic: str = EMOTIONS_TOPIC,
        keys: Sequence[str] = EMOTION_KEYS,
        players: PlayerSlots | None = None,
    ) -> None:
        self.mqtt = mqtt
        self.topic = topic
        self.keys = tuple(keys)
        self.players = players if players is not None else PlayerSlots()

        self.last_decision: Decision | None = None
        self.received = 0
        self.dropped = 0

        self._listeners: list[DominantListener] = []
        self._current: str | None = None
        self._stopped = threading.Event()

        mqtt.add_handler(self.handle_message)
        mqtt.add_disconnect_handler(self._on_connection_lost)

    def start(self) -> None:
        """Connect and subscribe.

        Raises:
            BrokerConnectionError: the broker is unreachable.
        """
        self._stopped.clear()
        self.mqtt.start()
        self.mqtt.subscribe(self.topic)
        _logger.info("subscribed to %s", self.topic)

    def stop(self) -> None:
        self.mqtt.stop()
        self._stopped.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the subscriber stops. Returns True if it has stopped."""
        return self._stopped.wait(timeout)

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def add_listener(self, listener: DominantListener) -> None:
        self._listeners.append(listener)

    def handle_message(self, topic: str, payload: bytes) -> Decision | None:
        """Process one incoming message. Returns None when it was dropped."""
        self.received += 1
        try:
            decision = read_payload(payload, self.keys)
        except MalformedPayloadError as e:
            self.dropped += 1
            _logger.warning("bad payload on %s: %r (%s)", topic, e.payload, e.reason)
            return None

        self.last_decision = decision
        _logger.info("RX emotion -> %s (%.2f)", decision.dominant, decision.value)

        if decision.dominant != self._current:
            self._current = decision.dominant
            self._notify(decision)

        if decision.client_id is not None:
            slot = self.players.get_or_add(decision.client_id)
            if slot == NO_SLOT:
                _logger.warning("no free player slot for %s; ignoring", decision.client_id)
            else:
                self.players.push_dominant(slot, decision.dominant)
        return decision

    def _notify(self, decision: Decision) -> None:
        for listener in list(self._listeners):
            try:
                listener(decision.dominant, decision.value)
            except Exception:
                _logger.exception("dominant emotion listener failed")

    def _on_connection_lost(self, reason: str) -> None:
        _logger.warning("subscriber lost connection (%s); not reconnecting", reason)
        self._stopped.set()


def main() -> None:
    # Import MQTT dependencies only when running the real service.
    from .log import setup_logging
    from .mqtt_client import DEFAULT_BROKER_HOST, DEFAULT_BROKER_PORT, MqttClient
    from .mqtt_topics import DEFAULT_NAMESPACE, emotions_topic

    parser = argparse.ArgumentParser(description="Emotion subscriber (MQTT)")
    parser.add_argument("--mqtt-host", default=DEFAULT_BROKER_HOST)
    parser.add_argument("--mqtt-port", type=int, default=DEFAULT_BROKER_PORT)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    parser.add_argument(
        "--keys",
        choices=("emotions", "inputs"),
        default="emotions",
        help="decide over the six emotions or over focus/calm/stress",
    )
    parser.add_argument("--local-client-id", default=None, help="client id of this user's own publisher")
    parser.add_argument("--max-players", type=int, default=MAX_PLAYERS)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    setup_logging(args.verbose)

    if args.max_players <= 0:
        parser.error("--max-players must be > 0")
    players = PlayerSlots(args.max_players)
    if args.local_client_id:
        players.set_local_client_id(args.local_client_id.strip())

    mqtt_client = MqttClient(
        client_id=subscriber_client_id(),
        host=args.mqtt_host,
        port=args.mqtt_port,
        reconnect_on_failure=False,
    )
    subscriber = EmotionSubscriber(
        mqtt=mqtt_client,
        topic=emotions_topic(args.namespace),
        keys=EMOTION_KEYS if args.keys == "emotions" else INPUT_KEYS,
        players=players,
    )

    try:
        subscriber.start()
    except BrokerConnectionError as e:
        raise SystemExit(f"[subscriber] {e}") from e

    try:
        while not subscriber.wait(1.0):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        subscriber.stop()


if __name__ == "__main__":
    main()
