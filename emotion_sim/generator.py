from __future__ import annotations

# Random reading generator (simulated BCI headset).
#
# Once per interval (1 second by default) a new EmotionVector is drawn and
# stored in the blackboard; the publisher picks it up from there like any other
# reading. Each of the six values is drawn independently and uniformly from
# [0, 1). They are not normalized, so they need not sum to 1.

import logging
import random
import threading

from .blackboard import Blackboard
from .state import EmotionVector

_logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 1.0


def random_vector(rng: random.Random | None = None) -> EmotionVector:
    r = rng or random
    return EmotionVector(
        happy=r.random(),
        sad=r.random(),
        angry=r.random(),
        calm=r.random(),
        fear=r.random(),
        surprise=r.random(),
    )


def run_generator(
    *,
    blackboard: Blackboard,
    interval: float = DEFAULT_INTERVAL,
    max_readings: int | None = None,
    seed: int | None = None,
    stop_event: threading.Event | None = None,
) -> int:
    """Generate readings until stopped (or for max_readings).

    Args:
        interval: seconds between readings.
        max_readings: if provided, stop after emitting this many readings.
        seed: if provided, makes the readings deterministic.
        stop_event: cooperative stop signal; also used for the inter-reading wait.

    Returns:
        Number of readings emitted.
    """
    if interval < 0:
        raise ValueError("interval must be >= 0")

    rng = random.Random(seed) if seed is not None else None
    stop = stop_event or threading.Event()

    count = 0
    while not stop.is_set():
        if max_readings is not None and count >= max_readings:
            break

        vector = random_vector(rng)
        blackboard.set_emotion_state(vector)
        count += 1
        _logger.debug("reading %d: %s", count, vector)

        if max_readings is not None and count >= max_readings:
            _logger.info("reached max_readings=%d, stopping", max_readings)
            break
        if stop.wait(interval):
            break
    return count
