from __future__ import annotations

# The Blackboard is the single shared-state hub of a running simulator.
#
# It holds:
# - the current emotion reading (None before the first update)
# - the current client id (user editable, defaults to DEFAULT_CLIENT_ID)
#
# Every write replaces the stored value and then notifies all observers with
# (name, old, new) on the writer's thread. A write that changes nothing is not
# announced: re-setting the same reading object, or a client id equal to the
# current one. Readings compare by identity, so a new reading carrying the same
# values is still announced. The lock is held across
# replace + notify, so observers never see pairs that disagree with the stored
# value. A slow observer therefore stalls the writer.
#
# There is no global instance: build one per process (or per test) and pass it
# to whoever needs it.

import itertools
import logging
import threading
from typing import Any, Callable

from .state import Reading

_logger = logging.getLogger(__name__)

DEFAULT_CLIENT_ID = "bci-sim"

EMOTION_STATE = "emotion_state"
CLIENT_ID = "client_id"

# Called with (property_name, old_value, new_value).
Observer = Callable[[str, Any, Any], None]


class Blackboard:
    """Most-recent emotion reading + client id, with change notification."""

    def __init__(self, *, client_id: str = DEFAULT_CLIENT_ID) -> None:
        # Re-entrant so an observer may read the blackboard while being notified.
        self._lock = threading.RLock()
        self._emotion_state: Reading | None = None
        self._client_id = client_id

        # handle -> observer
        self._observers: dict[int, Observer] = {}
        self._handles = itertools.count(1)

    # -------------------- emotion state --------------------

    def set_emotion_state(self, state: Reading) -> None:
        with self._lock:
            old = self._emotion_state
            self._emotion_state = state
            if state is not old:
                self._fire(EMOTION_STATE, old, state)

    def get_emotion_state(self) -> Reading | None:
        with self._lock:
            return self._emotion_state

    # -------------------- client id --------------------

    def set_client_id(self, client_id: str) -> None:
        # No validation here: empty ids are rejected by the input layer.
        with self._lock:
            old = self._client_id
            self._client_id = client_id
            if client_id != old:
                self._fire(CLIENT_ID, old, client_id)

    def get_client_id(self) -> str:
        with self._lock:
            return self._client_id

    # -------------------- observers --------------------

    def add_observer(self, observer: Observer) -> int:
        """Register an observer and return the handle used to remove it."""
        with self._lock:
            handle = next(self._handles)
            self._observers[handle] = observer
            return handle

    def remove_observer(self, handle: int) -> None:
        with self._lock:
            self._observers.pop(handle, None)

    def _fire(self, name: str, old: Any, new: Any) -> None:
        for handle, observer in list(self._observers.items()):
            try:
                observer(name, old, new)
            except Exception:
                # One broken observer must not hide the change from the others.
                _logger.exception("observer %d failed on %s change", handle, name)
