"""Wire formats for published readings.

There are two formats and they must not be mixed up:

- Slider input (`EmotionState`) goes out with the user's client id and each
  value rounded half-up to two decimals:

      { "clientId": "abc", "focus": 0.25, "calm": 0.75, "stress": 0.10 }

- Generator output (`EmotionVector`) goes out as a compact JSON object with
  full-precision floats and no client id:

      {"happy":0.13,"sad":0.72,"angry":0.05,"calm":0.4,"fear":0.9,"surprise":0.31}
"""

from __future__ import annotations

import json
import math
from decimal import ROUND_HALF_UP, Context, Decimal

from .state import EmotionState, EmotionVector, Reading

_CENT = Decimal("0.01")
# Wide enough for any finite float with two decimals.
_CONTEXT = Context(prec=400)


def two_decimals(x: float) -> str:
    """Format `x` with two decimals, rounding half-up on its shortest decimal form.

    0.145 gives "0.15" here, where `f"{0.145:.2f}"` gives "0.14" (the binary
    value is slightly below the midpoint).
    """
    if not math.isfinite(x):
        return f"{x:.2f}"
    return str(Decimal(repr(x)).quantize(_CENT, rounding=ROUND_HALF_UP, context=_CONTEXT))


def serialize_state(state: EmotionState, client_id: str) -> str:
    # Hand-formatted so the numbers keep exactly two decimals (0.10, not 0.1).
    return (
        f'{{ "clientId": {json.dumps(client_id)}, '
        f'"focus": {two_decimals(state.focus)}, '
        f'"calm": {two_decimals(state.calm)}, '
        f'"stress": {two_decimals(state.stress)} }}'
    )


def serialize_vector(vector: EmotionVector) -> str:
    return json.dumps(vector.values(), separators=(",", ":"))


def serialize(reading: Reading, client_id: str) -> str:
    """Serialize whichever reading shape we were given."""
    if isinstance(reading, EmotionState):
        return serialize_state(reading, client_id)
    if isinstance(reading, EmotionVector):
        return serialize_vector(reading)
    raise TypeError(f"unsupported reading type: {type(reading).__name__}")
