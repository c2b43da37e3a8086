from __future__ import annotations

# Receiving side: tolerant field extraction + dominant-emotion decision.
#
# Parsing deliberately does NOT use a JSON decoder. For each known key we look
# for `"<key>":` in the raw text, take everything up to the next comma (or the
# closing brace when no comma follows) and parse it as a number. A missing key
# or an unparsable number counts as 0.0. This accepts the hand-formatted
# slider payload, the compact generator payload and anything roughly similar.
#
# Numbers use a fixed grammar rather than whatever float() accepts: optional
# sign, digits with an optional fraction and exponent, an optional f/F/d/D
# suffix, or the literals NaN / Infinity. "1_0", "inf" and "nan" read as 0.0.
#
# The sender's client id ("clientId", slider payloads only) is read the same
# way, as a quoted string.
#
# Decision: scan the keys in a fixed order with a strict ">" comparison,
# starting from a sentinel of -1. Earlier keys therefore win ties.

import json
import re
from dataclasses import dataclass
from typing import Mapping, Sequence

from .errors import MalformedPayloadError

EMOTION_KEYS: tuple[str, ...] = ("happy", "sad", "angry", "calm", "fear", "surprise")
INPUT_KEYS: tuple[str, ...] = ("focus", "calm", "stress")
CLIENT_ID_KEY = "clientId"

NO_EMOTION = "none"
_SENTINEL = -1.0

_NUMBER = re.compile(r"[+-]?(?:NaN|Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?[fFdD]?)")


@dataclass(frozen=True)
class Decision:
    values: dict[str, float]
    dominant: str
    value: float
    client_id: str | None = None


def parse_number(raw: str) -> float | None:
    """Parse one number token, or return None if it is not a number."""
    raw = raw.strip()
    if not _NUMBER.fullmatch(raw):
        return None
    return float(raw.rstrip("fFdD"))


def extract_field(text: str, key: str) -> float:
    """Return the number following `"<key>":`, or 0.0."""
    needle = f'"{key}":'
    idx = text.find(needle)
    if idx == -1:
        return 0.0

    start = idx + len(needle)
    end = text.find(",", start)
    if end == -1:
        end = text.find("}", start)
    if end == -1:
        return 0.0

    value = parse_number(text[start:end])
    return 0.0 if value is None else value


def extract_fields(text: str, keys: Sequence[str] = EMOTION_KEYS) -> dict[str, float]:
    return {key: extract_field(text, key) for key in keys}


def extract_text_field(text: str, key: str) -> str | None:
    """Return the quoted string following `"<key>":`.

    None when the key is missing, the value is not a complete string literal,
    or the string is empty.
    """
    needle = f'"{key}":'
    idx = text.find(needle)
    if idx == -1:
        return None

    rest = text[idx + len(needle):].lstrip()
    if not rest.startswith('"'):
        return None

    end = 1
    while end < len(rest):
        c = rest[end]
        if c == "\\":
            end += 2
            continue
        if c == '"':
            break
        end += 1
    else:
        return None

    try:
        value = json.loads(rest[: end + 1])
    except ValueError:
        return None
    return value or None


def dominant_emotion(values: Mapping[str, float], keys: Sequence[str] = EMOTION_KEYS) -> tuple[str, float]:
    """Pick the key with the strictly greatest value, first key winning ties.

    Keys missing from `values` count as 0.0. Returns ("none", -1.0) only if no
    value beats the sentinel.
    """
    best = NO_EMOTION
    best_value = _SENTINEL
    for key in keys:
        value = values.get(key, 0.0)
        if value > best_value:
            best = key
            best_value = value
    return best, best_value


def read_payload(payload: bytes | str, keys: Sequence[str] = EMOTION_KEYS) -> Decision:
    """Decode one message and decide its dominant emotion.

    Raises:
        MalformedPayloadError: the bytes are not UTF-8, or the text is not
            wrapped in `{ ... }`. Everything inside the braces is read
            tolerantly.
    """
    if isinstance(payload, bytes):
        try:
            text = payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedPayloadError(payload, "payload is not UTF-8") from e
    else:
        text = payload

    text = text.strip()
    if not (text.startswith("{") and text.endswith("}")):
        raise MalformedPayloadError(payload, "payload is not a JSON object")

    values = extract_fields(text, keys)
    dominant, value = dominant_emotion(values, keys)
    return Decision(
        values=values,
        dominant=dominant,
        value=value,
        client_id=extract_text_field(text, CLIENT_ID_KEY),
    )
