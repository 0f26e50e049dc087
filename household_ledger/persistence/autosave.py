"""
Debounced autosave.

Every mutation calls schedule(); the save runs once, delay seconds after
the last call. A burst of edits therefore costs one write.

Edits made inside the debounce window are lost if the process dies
before the timer fires. flush() writes immediately and is what a clean
shutdown should call.
"""

import threading
from typing import Callable, Optional


class DebouncedSaver:
    """
    Runs save() once after the calls to schedule() go quiet.

    timer_factory has threading.Timer's signature (delay, function) and
    returns an object with start() and cancel(); tests pass a fake.
    """

    def __init__(
        self,
        save: Callable[[], object],
        delay_seconds: float = 0.5,
        timer_factory: Optional[Callable] = None,
    ):
        self._save = save
        self._delay = max(delay_seconds, 0.0)
        self._timer_factory = timer_factory or threading.Timer
        self._timer = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def delay_seconds(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def schedule(self) -> None:
        """(Re)start the quiet-period timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            generation = self._generation
            timer = self._timer_factory(self._delay, lambda: self._fire(generation))
            if hasattr(timer, "daemon"):
                timer.daemon = True
            self._timer = timer
            timer.start()

    def cancel(self) -> None:
        """Drop a pending save without running it."""
        with self._lock:
            self._generation += 1
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def flush(self) -> bool:
        """
        Run a pending save now.

        Returns True if a save was pending and has run.
        """
        with self._lock:
            if self._timer is None:
                return False
            self._generation += 1
            self._timer.cancel()
            self._timer = None
        self._save()
        return True

    def _fire(self, generation: int) -> None:
        # Stale once replaced or cancelled, even if already running
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
        self._save()
