"""Single-writer owner of the live :class:`ProjectState`.

Every change to the project goes through :meth:`ProjectStore.dispatch`,
whether it comes from the UI, a finished scan, a conversion worker or
the auto-save timer.  Commands are applied one at a time under a lock;
listeners are notified after the lock is released.
"""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Any, Callable, List

from .models import INITIAL_STATE, ProjectState
from .reducer import apply

logger = logging.getLogger(__name__)

Listener = Callable[[ProjectState, Any], None]


class ProjectStore:
    """Hold the project state and serialise command application."""

    def __init__(self, state: ProjectState = INITIAL_STATE) -> None:
        self._state = state
        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._scan_counter = itertools.count(state.scan_generation + 1)
        self._latest_generation = state.scan_generation

    def snapshot(self) -> ProjectState:
        with self._lock:
            return self._state

    def dispatch(self, command: Any) -> ProjectState:
        """Apply ``command`` and return the resulting state."""
        with self._lock:
            previous = self._state
            self._state = apply(previous, command)
            current = self._state
            listeners = list(self._listeners)
        if current is not previous:
            for listener in listeners:
                try:
                    listener(current, command)
                except Exception:
                    logger.exception("State listener failed for %s", type(command).__name__)
        return current

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a function that removes it."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def next_scan_generation(self) -> int:
        """Return a fresh, strictly increasing scan generation number."""
        with self._lock:
            self._latest_generation = next(self._scan_counter)
            return self._latest_generation

    def is_latest_scan(self, generation: int) -> bool:
        """True if no scan was started after ``generation`` was handed out."""
        with self._lock:
            return generation == self._latest_generation
