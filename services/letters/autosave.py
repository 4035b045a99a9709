"""
Debounced draft autosave.

Every edit calls touch(); the save runs once edits have been quiet for
the delay. Saves never overlap: if a save is still in flight when the
timer fires again, the newest payload is marked due and saved as soon as
the running one returns. An edit whose quiet period has not yet run out
waits for its own timer. Autosave failures are logged and never raised.
"""

import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

AUTOSAVE_DELAY_SECONDS = 2.0


class AutosaveScheduler:
    """
    Args:
        save: Called with the latest payload, e.g.
            lambda payload: client.update_draft(draft_id, **payload)
        delay: Quiet period in seconds
        timer_factory: Builds a startable/cancellable timer from
            (delay, callback). Defaults to threading.Timer.
    """

    def __init__(self, save: Callable[[Any], Any], delay: float = AUTOSAVE_DELAY_SECONDS,
                 timer_factory: Optional[Callable] = None):
        self.save = save
        self.delay = delay
        self.timer_factory = timer_factory or threading.Timer
        self._lock = threading.Lock()
        self._timer = None
        self._pending = None
        self._has_pending = False
        self._due = False
        self._in_flight = False
        self.last_error: Optional[Exception] = None
        self.save_count = 0

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def has_pending(self) -> bool:
        return self._has_pending

    def touch(self, payload: Any) -> None:
        """Record an edit and restart the quiet-period timer."""
        with self._lock:
            self._pending = payload
            self._has_pending = True
            self._due = False
            if self._timer is not None:
                self._timer.cancel()
            self._timer = self.timer_factory(self.delay, self._fire)
            if hasattr(self._timer, 'daemon'):
                self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        """Drop any pending save. A save already running is not interrupted."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending = None
            self._has_pending = False
            self._due = False

    def flush(self) -> None:
        """Save the pending payload now instead of waiting for the timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        self._fire()

    def _fire(self) -> None:
        with self._lock:
            self._timer = None
            if not self._has_pending:
                return
            self._due = True
            if self._in_flight:
                # The running save picks up the due payload when it finishes.
                return
            self._in_flight = True

        while True:
            with self._lock:
                if not (self._has_pending and self._due):
                    self._in_flight = False
                    return
                payload = self._pending
                self._pending = None
                self._has_pending = False
                self._due = False

            try:
                self.save(payload)
                self.save_count += 1
                self.last_error = None
            except Exception as e:
                self.last_error = e
                logger.error(f"Autosave failed: {e}")
