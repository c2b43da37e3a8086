import json

import pytest

from emotion_sim.blackboard import Blackboard
from emotion_sim.errors import BrokerConnectionError, PublishError
from emotion_sim.publisher import EmotionPublisher, publisher_client_id
from emotion_sim.state import EmotionState, EmotionVector


def test_readings_are_published_in_order(fake_mqtt):
    bb = Blackboard(client_id="abc")
    pub = EmotionPublisher(blackboard=bb, mqtt=fake_mqtt, topic="t/emotions")

    pub.start()
    try:
        for i in range(1, 4):
            bb.set_emotion_state(EmotionState(0.1 * i, 0.5, 0.25))
        assert pub.flush(timeout=2.0)
    finally:
        pub.stop()

    assert [topic for topic, _ in fake_mqtt.published] == ["t/emotions"] * 3
    focus = [json.loads(p)["focus"] for _, p in fake_mqtt.published]
    assert focus == [0.1, 0.2, 0.3]
    assert all(json.loads(p)["clientId"] == "abc" for _, p in fake_mqtt.published)
    assert pub.published == 3
    assert fake_mqtt.stopped


def test_writes_before_start_are_not_queued(fake_mqtt):
    bb = Blackboard()
    pub = EmotionPublisher(blackboard=bb, mqtt=fake_mqtt)

    bb.set_emotion_state(EmotionState(0.1, 0.1, 0.1))

    assert len(pub.queue) == 0
    assert pub.queue.pushed == 0


def test_vector_readings_use_six_emotion_format(fake_mqtt):
    bb = Blackboard()
    pub = EmotionPublisher(blackboard=bb, mqtt=fake_mqtt)
    vector = EmotionVector(0.1, 0.2, 0.3, 0.4, 0.5, 0.6)

    assert pub.publish(vector)

    (topic, payload), = fake_mqtt.published
    assert topic == "bci/emotions"
    assert json.loads(payload) == vector.values()


def test_client_id_is_read_at_publish_time(fake_mqtt):
    bb = Blackboard(client_id="old")
    pub = EmotionPublisher(blackboard=bb, mqtt=fake_mqtt)
    state = EmotionState(0.5, 0.5, 0.5)
    assert pub.queue.push(state)
    bb.set_client_id("new")

    pub.publish(pub.queue.pop(timeout=1.0))

    assert json.loads(fake_mqtt.published[0][1])["clientId"] == "new"


def test_publish_failure_is_logged_and_loop_continues(fake_mqtt):
    fake_mqtt.publish_errors.append(PublishError("bci/emotions", 4, "The client is not currently connected."))
    bb = Blackboard()
    pub = EmotionPublisher(blackboard=bb, mqtt=fake_mqtt)

    pub.start()
    try:
        bb.set_emotion_state(EmotionState(0.1, 0.1, 0.1))
        bb.set_emotion_state(EmotionState(0.9, 0.9, 0.9))
        assert pub.flush(timeout=2.0)
    finally:
        pub.stop()

    assert pub.failed == 1
    assert pub.published == 1
    assert json.loads(fake_mqtt.published[0][1])["focus"] == 0.9


def test_unexpected_errors_do_not_kill_the_worker(fake_mqtt):
    # paho raises ValueError for e.g. an oversized payload.
    fake_mqtt.publish_errors.append(ValueError("Payload too large."))
    bb = Blackboard()
    pub = EmotionPublisher(blackboard=bb, mqtt=fake_mqtt)

    pub.start()
    try:
        bb.set_emotion_state({"focus": 1.0})  # not a reading: serialize() raises TypeError
        bb.set_emotion_state(EmotionState(0.2, 0.2, 0.2))
        bb.set_emotion_state(EmotionState(0.9, 0.9, 0.9))
        assert pub.flush(timeout=2.0)
        assert pub._thread is not None and pub._thread.is_alive()
    finally:
        pub.stop()

    assert pub.failed == 2
    assert pub.published == 1
    assert json.loads(fake_mqtt.published[0][1])["focus"] == 0.9


def test_stop_detaches_from_blackboard(fake_mqtt):
    bb = Blackboard()
    pub = EmotionPublisher(blackboard=bb, mqtt=fake_mqtt)
    pub.start()

    pub.stop()
    bb.set_emotion_state(EmotionState(0.2, 0.2, 0.2))

    assert pub.queue.closed
    assert len(pub.queue) == 0
    assert fake_mqtt.published == []
    assert fake_mqtt.stopped


def test_connection_failure_does_not_start_worker(fake_mqtt):
    fake_mqtt.fail_start = True
    bb = Blackboard()
    pub = EmotionPublisher(blackboard=bb, mqtt=fake_mqtt)

    with pytest.raises(BrokerConnectionError):
        pub.start()
    assert pub._thread is None

    bb.set_emotion_state(EmotionState(0.1, 0.1, 0.1))
    bb.set_emotion_state(EmotionState(0.2, 0.2, 0.2))
    assert len(pub.queue) == 0


def test_publisher_client_id_is_random():
    a = publisher_client_id()
    b = publisher_client_id()
    assert a.startswith("pub-")
    assert a != b
