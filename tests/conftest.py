from __future__ import annotations

import pytest

from emotion_sim.errors import BrokerConnectionError


class FakeMqtt:
    """Stands in for MqttClient so tests never touch a broker."""

    def __init__(self, *, fail_start: bool = False) -> None:
        self.fail_start = fail_start
        self.started = False
        self.stopped = False
        self.subscriptions: list[str] = []
        self.published: list[tuple[str, str]] = []
        # Exceptions raised by the next publish() calls, in order.
        self.publish_errors: list[Exception] = []
        self.handlers = []
        self.disconnect_handlers = []

    def start(self) -> None:
        if self.fail_start:
            raise BrokerConnectionError("localhost", 1883, "connection refused")
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def add_handler(self, handler) -> None:
        self.handlers.append(handler)

    def add_disconnect_handler(self, handler) -> None:
        self.disconnect_handlers.append(handler)

    def subscribe(self, topic: str) -> None:
        self.subscriptions.append(topic)

    def publish(self, topic: str, payload: str) -> None:
        if self.publish_errors:
            raise self.publish_errors.pop(0)
        self.published.append((topic, payload))

    # test helpers

    def deliver(self, topic: str, payload: bytes) -> None:
        for h in self.handlers:
            h(topic, payload)

    def drop_connection(self, reason: str = "Unspecified error") -> None:
        for h in self.disconnect_handlers:
            h(reason)


@pytest.fixture
def fake_mqtt() -> FakeMqtt:
    return FakeMqtt()
