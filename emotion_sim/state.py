"""Emotion readings.

Two shapes travel through the system:

- `EmotionState`: the three settled slider values (focus / calm / stress).
- `EmotionVector`: the six-emotion reading produced by the random generator.

Both are frozen: once built they are never mutated, so the same instance can
sit in the blackboard, in the publish queue and on the publisher thread at the
same time. Values are conventionally in [0, 1] but are not clamped here.
"""

from __future__ import annotations

from dataclasses import astuple, dataclass, fields
from typing import Union


@dataclass(frozen=True)
class EmotionState:
    focus: float
    calm: float
    stress: float

    def values(self) -> dict[str, float]:
        """Field name -> value, in declaration order."""
        return dict(zip((f.name for f in fields(self)), astuple(self)))


@dataclass(frozen=True)
class EmotionVector:
    happy: float
    sad: float
    angry: float
    calm: float
    fear: float
    surprise: float

    def values(self) -> dict[str, float]:
        """Field name -> value, in declaration order."""
        return dict(zip((f.name for f in fields(self)), astuple(self)))


# Anything the blackboard can hold as "current emotion".
Reading = Union[EmotionState, EmotionVector]
