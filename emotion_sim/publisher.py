from __future__ import annotations

# MQTT publisher.
#
# This file contains two layers:
# 1) `EmotionPublisher` (blackboard observer + queue + worker thread; testable
#    with a fake MQTT client)
# 2) `main()` (wires the random generator to a real broker connection)
#
# Flow:
#   blackboard.set_emotion_state()  -> observer pushes onto PublishQueue
#   worker thread: pop -> serialize -> publish (QoS 0, fire-and-forget)
#
# The observer is attached by start() once the broker connection is up; it runs
# on the writer's thread and never blocks. A failed publish (or any error
# handling one item) is logged and the item is dropped; the loop moves on.

import argparse
import logging
import threading
import time
import uuid
from typing import Any, TYPE_CHECKING

from .blackboard import DEFAULT_CLIENT_ID, EMOTION_STATE, Blackboard
from .errors import BrokerConnectionError, PublishError
from .mqtt_topics import EMOTIONS_TOPIC
from .payload import serialize
from .publish_queue import PublishQueue
from .state import Reading

if TYPE_CHECKING:
    from .mqtt_client import MqttClient

_logger = logging.getLogger(__name__)


def publisher_client_id() -> str:
    """Broker-level id for this process' publisher connection.

    Generated once per run; unrelated to the user-editable client id that goes
    into slider payloads.
    """
    return f"pub-{uuid.uuid4()}"


class EmotionPublisher:
    def __init__(
        self,
        *,
        blackboard: Blackboard,
        mqtt: MqttClient,
        topic: str = EMOTIONS_TOPIC,
        queue: PublishQueue[Reading] | None = None,
    ) -> None:
        self.blackboard = blackboard
        self.mqtt = mqtt
        self.topic = topic
        self.queue: PublishQueue[Reading] = queue if queue is not None else PublishQueue()

        self.published = 0
        self.failed = 0

        self._thread: threading.Thread | None = None
        self._observer: int | None = None

    def start(self) -> None:
        """Connect, attach to the blackboard and start the worker thread.

        Blackboard writes made before a successful start are not queued.

        Raises:
            BrokerConnectionError: the broker is unreachable; no worker is started.
        """
        if self._thread is not None:
            return
        self.mqtt.start()
        self._observer = self.blackboard.add_observer(self._on_blackboard_change)
        self._thread = threading.Thread(target=self.run, name="mqtt-publisher", daemon=True)
        self._thread.start()

    def flush(self, timeout: float = 5.0) -> bool:
        """Wait until every queued reading has been handled (published or failed).

        Returns False if readings are still pending after `timeout` seconds.
        """
        deadline = time.time() + timeout
        while True:
            done = self.published + self.failed >= self.queue.pushed - self.queue.evicted
            if done or time.time() >= deadline:
                return done
            time.sleep(0.05)

    def stop(self, timeout: float = 2.0) -> None:
        """Stop accepting readings and shut the worker down.

        Entries still queued are discarded, not published.
        """
        if self._observer is not None:
            self.blackboard.remove_observer(self._observer)
            self._observer = None
        self.queue.close()

        t = self._thread
        if t and t.is_alive():
            t.join(timeout=timeout)
        self._thread = None
        self.mqtt.stop()

    def run(self) -> None:
        """Worker loop: publish queued readings until the queue is closed."""
        while True:
            reading = self.queue.pop()
            if reading is None:
                break
            try:
                self.publish(reading)
            except Exception:
                # One bad reading must not kill the worker.
                self.failed += 1
                _logger.exception("dropping reading %r", reading)
        _logger.info("publisher stopped (%d published, %d failed)", self.published, self.failed)

    def publish(self, reading: Reading) -> bool:
        payload = serialize(reading, self.blackboard.get_client_id())
        try:
            self.mqtt.publish(self.topic, payload)
        except (PublishError, OSError) as e:
            self.failed += 1
            _logger.warning("publish failed: %s", e)
            return False

        self.published += 1
        _logger.info("MQTT PUBLISH -> %s", payload)
        return True

    # -------------------- blackboard observer --------------------

    def _on_blackboard_change(self, name: str, old: Any, new: Any) -> None:
        if name != EMOTION_STATE or new is None:
            return
        if not self.queue.push(new):
            _logger.warning("publish queue refused reading %s", new)


def main() -> None:
    # Import MQTT dependencies only when running the real service.
    from .generator import DEFAULT_INTERVAL, run_generator
    from .log import setup_logging
    from .mqtt_client import DEFAULT_BROKER_HOST, DEFAULT_BROKER_PORT, MqttClient
    from .mqtt_topics import DEFAULT_NAMESPACE, emotions_topic
    from .sliders import InputController, submit_client_id

    parser = argparse.ArgumentParser(description="Emotion publisher (random generator or one settled reading over MQTT)")
    parser.add_argument("--mqtt-host", default=DEFAULT_BROKER_HOST)
    parser.add_argument("--mqtt-port", type=int, default=DEFAULT_BROKER_PORT)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    parser.add_argument("--client-id", default=DEFAULT_CLIENT_ID, help="client id carried in slider payloads")
    parser.add_argument(
        "--send",
        type=float,
        nargs=3,
        metavar=("FOCUS", "CALM", "STRESS"),
        default=None,
        help="publish one settled slider reading instead of running the generator",
    )
    parser.add_argument("--interval", type=float, default=DEFAULT_INTERVAL, help="seconds between readings")
    parser.add_argument("--max-readings", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    setup_logging(args.verbose)

    blackboard = Blackboard()
    if not submit_client_id(blackboard, args.client_id):
        parser.error("--client-id cannot be empty")

    mqtt_client = MqttClient(client_id=publisher_client_id(), host=args.mqtt_host, port=args.mqtt_port)
    publisher = EmotionPublisher(blackboard=blackboard, mqtt=mqtt_client, topic=emotions_topic(args.namespace))

    try:
        publisher.start()
    except BrokerConnectionError as e:
        raise SystemExit(f"[publisher] {e}") from e

    _logger.info("publishing to %s on %s:%d", publisher.topic, args.mqtt_host, args.mqtt_port)

    try:
        if args.send is not None:
            InputController(blackboard).process_emotion_input(*args.send)
        else:
            run_generator(
                blackboard=blackboard,
                interval=args.interval,
                max_readings=args.max_readings,
                seed=args.seed,
            )
        # Only reached for finite runs: let the tail reach the broker.
        publisher.flush()
    except KeyboardInterrupt:
        pass
    finally:
        publisher.stop()


if __name__ == "__main__":
    main()
