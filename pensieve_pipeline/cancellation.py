"""Cooperative cancellation passed explicitly into every pipeline step."""

import threading
from typing import Optional


class CancellationToken:
    """Set once by the queue's stop(); polled by steps at suspension points."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Sleep up to timeout seconds; returns True early if cancelled."""
        return self._event.wait(timeout)
