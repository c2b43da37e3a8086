"""BCI emotion simulator (MQTT-based).

Publishes synthetic emotion readings to an MQTT topic and runs a matching
subscriber that reports the dominant emotion of every message:
- a Blackboard holding the current reading and client id
- state sources: settled slider input or a random generator (1 reading/s)
- a Publisher draining a FIFO queue onto the broker (QoS 0)
- a Subscriber parsing payloads tolerantly and logging the dominant emotion

Run `python -m emotion_sim.app run` for the whole loop in one process.
"""
