"""
Cancellable timers owned by a practice session.
"""

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RepeatingTimer:
    """
    Calls ``callback`` every ``interval`` seconds on a daemon thread until
    cancelled.

    The first call happens one interval after ``start()``. ``cancel()`` is
    safe to call more than once and before ``start()``.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[[], None],
        name: str = "vocabcore-tick",
    ):
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}")
        self.interval = interval
        self._callback = callback
        self._name = name
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("Timer already started.")
        self._thread = threading.Thread(
            target=self._run, name=self._name, daemon=True
        )
        self._thread.start()
        logger.debug(f"Started {self._name} timer every {self.interval}s.")

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            self._callback()

    def cancel(self) -> None:
        self._stopped.set()
        thread = self._thread
        if (
            thread is not None
            and thread.is_alive()
            and thread is not threading.current_thread()
        ):
            thread.join(timeout=self.interval * 2)
        logger.debug(f"Cancelled {self._name} timer.")

    @property
    def is_running(self) -> bool:
        return (
            self._thread is not None
            and self._thread.is_alive()
            and not self._stopped.is_set()
        )


def defer(delay: float, callback: Callable[[], None]) -> threading.Timer:
    """Run ``callback`` once after ``delay`` seconds; returns a cancellable
    handle."""
    handle = threading.Timer(delay, callback)
    handle.daemon = True
    handle.start()
    return handle
