from __future__ import annotations

# Slider input boundary.
#
# The slider widgets themselves live in the presentation layer, which is not
# part of this package. What the core needs from it:
# - raw change samples per control (value + "still dragging?" flag), which the
#   SliderDebouncer turns into settled (focus, calm, stress) triples
# - settled triples, which the InputController stores in the blackboard
# - client id submissions, which submit_client_id() validates

import logging
from typing import Callable

from .blackboard import Blackboard
from .state import EmotionState

_logger = logging.getLogger(__name__)

CONTROLS = ("focus", "calm", "stress")

# Called with settled (focus, calm, stress) values.
SettledListener = Callable[[float, float, float], None]


def position_to_value(position: int, maximum: int = 100) -> float:
    """Map an integer slider position in [0, maximum] to [0.0, 1.0]."""
    if maximum <= 0:
        raise ValueError("maximum must be > 0")
    return position / maximum


class SliderDebouncer:
    """Emit one settled triple per drag gesture.

    While any control reports that it is still adjusting, samples are only
    recorded. The first sample taken while every control is idle fires the
    listener once with the latest value of each control.
    """

    def __init__(self, listener: SettledListener | None = None, *, initial: float = 0.5) -> None:
        self._listener = listener
        self._values = {c: initial for c in CONTROLS}
        self._adjusting = {c: False for c in CONTROLS}

    def set_listener(self, listener: SettledListener | None) -> None:
        self._listener = listener

    def on_change(self, control: str, value: float, *, adjusting: bool) -> bool:
        """Record one change sample. Returns True if the listener fired."""
        if control not in self._values:
            raise ValueError(f"unknown control: {control!r}")

        self._values[control] = value
        self._adjusting[control] = adjusting

        if self._listener is None:
            return False
        if any(self._adjusting.values()):
            return False  # user is still dragging

        self._listener(self._values["focus"], self._values["calm"], self._values["stress"])
        return True

    @property
    def values(self) -> tuple[float, float, float]:
        return self._values["focus"], self._values["calm"], self._values["stress"]


class InputController:
    """Turns settled slider values into blackboard updates."""

    def __init__(self, blackboard: Blackboard) -> None:
        self.blackboard = blackboard

    def process_emotion_input(self, focus: float, calm: float, stress: float) -> EmotionState:
        state = EmotionState(focus=focus, calm=calm, stress=stress)
        self.blackboard.set_emotion_state(state)
        return state


def submit_client_id(blackboard: Blackboard, text: str) -> bool:
    """Store a user-entered client id.

    Empty (or whitespace-only) input is rejected with a warning and the
    blackboard keeps its current id.
    """
    client_id = text.strip()
    if not client_id:
        _logger.warning("client id cannot be empty; keeping %r", blackboard.get_client_id())
        return False

    blackboard.set_client_id(client_id)
    _logger.info("client id set -> %s", client_id)
    return True
