from __future__ import annotations

# Player slots on the receiving side.
#
# Slider payloads carry the sender's client id. Each distinct id is given one
# of a fixed number of slots (4 by default) the first time it is seen, and the
# dominant emotion is tracked per slot:
#
# - get_or_add() returns the slot of a known id, claims the lowest free slot
#   for a new one, or returns NO_SLOT when the table is full.
# - remove() frees a slot; it can be claimed again by the next new id.
# - push_dominant() records a slot's dominant emotion and reports changes only.
#
# The local client id (the id this user publishes under) is "resolved" the
# first time it holds a slot. That is announced once per local id.
#
# Listeners run on the caller's thread under the table lock, like Blackboard
# observers. A failing listener is logged and the others still run.

import logging
import threading
from dataclasses import dataclass
from typing import Callable

_logger = logging.getLogger(__name__)

MAX_PLAYERS = 4
NO_SLOT = -1

# Called with the slot index.
SlotListener = Callable[[int], None]
# Called with (slot, dominant_emotion).
EmotionListener = Callable[[int, str], None]


@dataclass
class PlayerSlot:
    """In-memory state for one occupied slot."""

    client_id: str
    dominant: str | None = None


class PlayerSlots:
    """Bounded client id -> slot table with per-slot dominant emotion."""

    def __init__(self, max_players: int = MAX_PLAYERS) -> None:
        if max_players <= 0:
            raise ValueError("max_players must be > 0")
        self._lock = threading.RLock()
        self._slots: list[PlayerSlot | None] = [None] * max_players

        self._local_client_id: str | None = None
        self._local_resolved = False

        self._added: list[SlotListener] = []
        self._removed: list[SlotListener] = []
        self._resolved: list[SlotListener] = []
        self._emotion: list[EmotionListener] = []

    @property
    def max_players(self) -> int:
        return len(self._slots)

    # -------------------- local client --------------------

    def set_local_client_id(self, client_id: str | None) -> None:
        with self._lock:
            if client_id != self._local_client_id:
                self._local_client_id = client_id
                self._local_resolved = False

    @property
    def local_client_id(self) -> str | None:
        with self._lock:
            return self._local_client_id

    @property
    def local_resolved(self) -> bool:
        with self._lock:
            return self._local_resolved

    # -------------------- slots --------------------

    def slot_of(self, client_id: str) -> int:
        with self._lock:
            for i, slot in enumerate(self._slots):
                if slot is not None and slot.client_id == client_id:
                    return i
            return NO_SLOT

    def get_or_add(self, client_id: str) -> int:
        """Return the slot for `client_id`, claiming a free one if needed.

        Returns NO_SLOT when the id is new and every slot is taken.
        """
        with self._lock:
            index = self.slot_of(client_id)
            if index == NO_SLOT:
                try:
                    index = self._slots.index(None)
                except ValueError:
                    return NO_SLOT
                self._slots[index] = PlayerSlot(client_id=client_id)
                _logger.info("player %s joined in slot %d", client_id, index)
                self._fire(self._added, index)

            if client_id == self._local_client_id and not self._local_resolved:
                self._local_resolved = True
                _logger.info("local client %s resolved to slot %d", client_id, index)
                self._fire(self._resolved, index)
            return index

    def remove(self, client_id: str) -> int:
        """Free the slot held by `client_id`. Returns it, or NO_SLOT if unknown."""
        with self._lock:
            index = self.slot_of(client_id)
            if index == NO_SLOT:
                return NO_SLOT
            self._slots[index] = None
            if client_id == self._local_client_id:
                self._local_resolved = False
            _logger.info("player %s left slot %d", client_id, index)
            self._fire(self._removed, index)
            return index

    def players(self) -> dict[int, str]:
        """Snapshot of occupied slots: slot -> client id."""
        with self._lock:
            return {i: s.client_id for i, s in enumerate(self._slots) if s is not None}

    def dominant(self, slot: int) -> str | None:
        with self._lock:
            st = self._slot(slot)
            return st.dominant if st else None

    def push_dominant(self, slot: int, dominant: str) -> bool:
        """Record the dominant emotion of `slot`. Returns True if it changed.

        Out-of-range or empty slots are logged and ignored.
        """
        with self._lock:
            st = self._slot(slot)
            if st is None:
                _logger.warning("no player in slot %d; ignoring %s", slot, dominant)
                return False
            if dominant == st.dominant:
                return False

            _logger.info("slot %d emotion %s -> %s", slot, st.dominant, dominant)
            st.dominant = dominant
            for listener in list(self._emotion):
                try:
                    listener(slot, dominant)
                except Exception:
                    _logger.exception("slot emotion listener failed")
            return True

    # -------------------- listeners --------------------

    def add_player_added_listener(self, listener: SlotListener) -> None:
        self._added.append(listener)

    def add_player_removed_listener(self, listener: SlotListener) -> None:
        self._removed.append(listener)

    def add_local_resolved_listener(self, listener: SlotListener) -> None:
        self._resolved.append(listener)

    def add_emotion_listener(self, listener: EmotionListener) -> None:
        self._emotion.append(listener)

    # -------------------- internals --------------------

    def _slot(self, slot: int) -> PlayerSlot | None:
        if 0 <= slot < len(self._slots):
            return self._slots[slot]
        return None

    def _fire(self, listeners: list[SlotListener], slot: int) -> None:
        for listener in list(listeners):
            try:
                listener(slot)
            except Exception:
                _logger.exception("slot listener failed for slot %d", slot)
