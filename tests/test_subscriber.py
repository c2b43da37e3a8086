import logging

from emotion_sim.analysis import INPUT_KEYS
from emotion_sim.payload import serialize_state
from emotion_sim.players import PlayerSlots
from emotion_sim.state import EmotionState
from emotion_sim.subscriber import EmotionSubscriber, subscriber_client_id


def test_start_subscribes_to_topic(fake_mqtt):
    sub = EmotionSubscriber(mqtt=fake_mqtt, topic="demo/emotions")
    sub.start()
    assert fake_mqtt.started
    assert fake_mqtt.subscriptions == ["demo/emotions"]


def test_message_logs_dominant_emotion(fake_mqtt, caplog):
    sub = EmotionSubscriber(mqtt=fake_mqtt)
    with caplog.at_level(logging.INFO, logger="emotion_sim.subscriber"):
        fake_mqtt.deliver("bci/emotions", b'{"happy":0.1,"sad":0.7,"angry":0.2,"calm":0,"fear":0,"surprise":0}')

    assert sub.last_decision.dominant == "sad"
    assert "RX emotion -> sad (0.70)" in caplog.text


def test_malformed_payload_dropped_and_next_accepted(fake_mqtt, caplog):
    sub = EmotionSubscriber(mqtt=fake_mqtt)

    with caplog.at_level(logging.WARNING, logger="emotion_sim.subscriber"):
        assert sub.handle_message("bci/emotions", b"{not json") is None
    assert "{not json" in caplog.text

    decision = sub.handle_message("bci/emotions", b'{"fear":0.8}')
    assert decision.dominant == "fear"
    assert sub.received == 2
    assert sub.dropped == 1


def test_listeners_only_hear_changes(fake_mqtt):
    sub = EmotionSubscriber(mqtt=fake_mqtt)
    heard = []
    sub.add_listener(lambda name, value: heard.append(name))

    for payload in (b'{"happy":0.9}', b'{"happy":0.8}', b'{"calm":0.6}', b'{"happy":0.7}'):
        sub.handle_message("bci/emotions", payload)

    assert heard == ["happy", "calm", "happy"]


def test_broken_listener_does_not_break_receive(fake_mqtt):
    sub = EmotionSubscriber(mqtt=fake_mqtt)

    def broken(name, value):
        raise RuntimeError("boom")

    sub.add_listener(broken)
    assert sub.handle_message("bci/emotions", b'{"angry":0.4}').dominant == "angry"
    assert sub.handle_message("bci/emotions", b'{"fear":0.4}').dominant == "fear"


def test_input_keys_variant(fake_mqtt):
    sub = EmotionSubscriber(mqtt=fake_mqtt, keys=INPUT_KEYS)
    decision = sub.handle_message(
        "bci/emotions", b'{ "clientId": "abc", "focus": 0.25, "calm": 0.75, "stress": 0.10 }'
    )
    assert decision.dominant == "calm"


def test_connection_loss_stops_subscriber(fake_mqtt):
    sub = EmotionSubscriber(mqtt=fake_mqtt)
    sub.start()
    assert not sub.stopped

    fake_mqtt.drop_connection()

    assert sub.stopped
    assert sub.wait(timeout=0)


def test_subscriber_client_id_prefix():
    assert subscriber_client_id().startswith("sub-")


def _slider(client_id, focus, calm, stress):
    return serialize_state(EmotionState(focus, calm, stress), client_id).encode("utf-8")


def test_slider_messages_are_tracked_per_player(fake_mqtt):
    sub = EmotionSubscriber(mqtt=fake_mqtt, keys=INPUT_KEYS)
    changes = []
    sub.players.add_emotion_listener(lambda slot, dominant: changes.append((slot, dominant)))

    fake_mqtt.deliver("bci/emotions", _slider("alice", 0.9, 0.1, 0.1))
    fake_mqtt.deliver("bci/emotions", _slider("bob", 0.9, 0.1, 0.1))
    fake_mqtt.deliver("bci/emotions", _slider("alice", 0.8, 0.2, 0.1))
    fake_mqtt.deliver("bci/emotions", _slider("alice", 0.1, 0.2, 0.7))

    assert sub.players.players() == {0: "alice", 1: "bob"}
    assert changes == [(0, "focus"), (1, "focus"), (0, "stress")]


def test_sender_beyond_player_limit_is_ignored(fake_mqtt, caplog):
    sub = EmotionSubscriber(mqtt=fake_mqtt, keys=INPUT_KEYS, players=PlayerSlots(max_players=4))
    for name in ("a", "b", "c", "d"):
        fake_mqtt.deliver("bci/emotions", _slider(name, 0.9, 0.1, 0.1))

    with caplog.at_level(logging.WARNING, logger="emotion_sim.subscriber"):
        decision = sub.handle_message("bci/emotions", _slider("e", 0.1, 0.1, 0.9))

    assert decision.dominant == "stress"
    assert "no free player slot for e" in caplog.text
    assert sub.players.slot_of("e") == -1
    assert len(sub.players.players()) == 4


def test_generator_messages_do_not_claim_slots(fake_mqtt):
    sub = EmotionSubscriber(mqtt=fake_mqtt)
    fake_mqtt.deliver("bci/emotions", b'{"happy":0.1,"sad":0.7,"angry":0.2,"calm":0,"fear":0,"surprise":0}')
    assert sub.players.players() == {}
