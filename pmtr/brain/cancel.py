# pmtr/brain/cancel.py
import threading
from typing import Optional


class CancelToken:
    """
    Run-wide cancellation signal, passed explicitly to whoever waits.
    Setting it never interrupts a probe; it only stops new cycles from
    starting and cuts the inter-cycle sleep short.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Sleep up to timeout seconds; returns True if cancelled (possibly early)."""
        return self._event.wait(timeout)
