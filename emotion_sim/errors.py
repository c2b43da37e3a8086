"""Shared exception types.

We keep error types in one place so publisher, subscriber and CLI agree on
what is recoverable and what is fatal.
"""

from __future__ import annotations


class EmotionSimError(Exception):
    """Base class for all errors raised by this package."""


class BrokerConnectionError(EmotionSimError):
    """The broker could not be reached when a component started."""

    def __init__(self, host: str, port: int, reason: str) -> None:
        super().__init__(f"cannot connect to MQTT broker {host}:{port}: {reason}")
        self.host = host
        self.port = port
        self.reason = reason


class PublishError(EmotionSimError):
    """A single publish call was refused by the MQTT client."""

    def __init__(self, topic: str, rc: int, reason: str) -> None:
        super().__init__(f"publish to {topic} failed (rc={rc}): {reason}")
        self.topic = topic
        self.rc = rc


class MalformedPayloadError(EmotionSimError):
    """An incoming payload is not even shaped like a flat JSON object."""

    def __init__(self, payload: bytes | str, reason: str) -> None:
        super().__init__(f"{reason}: {payload!r}")
        self.payload = payload
        self.reason = reason
