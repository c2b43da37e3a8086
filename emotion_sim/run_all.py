from __future__ import annotations

# Single-command runner.
#
# Starts a full local simulator in one process:
# - a subscriber (own broker connection, paho network thread)
# - a publisher (own broker connection, worker thread)
# - the random generator, on the main thread, feeding the blackboard
#
# Ctrl+C stops everything. If the subscriber loses its connection the run ends
# as well, since it does not reconnect.

import argparse
import logging
import threading

from .blackboard import Blackboard
from .errors import BrokerConnectionError
from .generator import DEFAULT_INTERVAL, run_generator
from .log import setup_logging
from .mqtt_client import DEFAULT_BROKER_HOST, DEFAULT_BROKER_PORT, MqttClient
from .mqtt_topics import DEFAULT_NAMESPACE, emotions_topic
from .publisher import EmotionPublisher, publisher_client_id
from .subscriber import EmotionSubscriber, subscriber_client_id

_logger = logging.getLogger(__name__)


def run_all(
    *,
    mqtt_host: str,
    mqtt_port: int,
    namespace: str,
    interval: float,
    max_readings: int | None,
    seed: int | None,
) -> None:
    topic = emotions_topic(namespace)
    stop = threading.Event()

    subscriber = EmotionSubscriber(
        mqtt=MqttClient(
            client_id=subscriber_client_id(),
            host=mqtt_host,
            port=mqtt_port,
            reconnect_on_failure=False,
        ),
        topic=topic,
    )
    blackboard = Blackboard()
    publisher = EmotionPublisher(
        blackboard=blackboard,
        mqtt=MqttClient(client_id=publisher_client_id(), host=mqtt_host, port=mqtt_port),
        topic=topic,
    )

    # Subscribe first so the first readings are not missed.
    subscriber.start()
    try:
        publisher.start()
    except BrokerConnectionError:
        subscriber.stop()
        raise

    # A lost subscriber connection ends the generator too.
    def watch_subscriber() -> None:
        subscriber.wait()
        stop.set()

    threading.Thread(target=watch_subscriber, name="subscriber-watch", daemon=True).start()

    _logger.info("simulator running on %s:%d, topic=%s. Press Ctrl+C to stop.", mqtt_host, mqtt_port, topic)
    try:
        run_generator(
            blackboard=blackboard,
            interval=interval,
            max_readings=max_readings,
            seed=seed,
            stop_event=stop,
        )
        if not stop.is_set():
            publisher.flush()
    except KeyboardInterrupt:
        pass
    finally:
        publisher.stop()
        subscriber.stop()
        _logger.info(
            "published %d (failed %d), received %d (dropped %d)",
            publisher.published,
            publisher.failed,
            subscriber.received,
            subscriber.dropped,
        )


def main() -> None:
    parser = argparse.ArgumentParser(description="Run generator + publisher + subscriber in one process")
    parser.add_argument("--mqtt-host", default=DEFAULT_BROKER_HOST)
    parser.add_argument("--mqtt-port", type=int, default=DEFAULT_BROKER_PORT)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    parser.add_argument("--interval", type=float, default=DEFAULT_INTERVAL, help="seconds between readings")
    parser.add_argument("--max-readings", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    setup_logging(args.verbose)

    try:
        run_all(
            mqtt_host=args.mqtt_host,
            mqtt_port=args.mqtt_port,
            namespace=args.namespace,
            interval=args.interval,
            max_readings=args.max_readings,
            seed=args.seed,
        )
    except BrokerConnectionError as e:
        raise SystemExit(f"[run] {e}") from e


if __name__ == "__main__":
    main()
