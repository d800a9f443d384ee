import threading
from typing import Callable, Optional


class ProcessState:
    """
    Process-wide reload state: the resolved program path and a handle that
    closes the active observer.

    Written once when a Reloader is armed (or cleared when it stops), read by
    ``exec_self`` from whichever thread fires the restart. A replaced process
    starts over with a fresh instance.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.self_path: Optional[str] = None
        self.close_watcher: Optional[Callable[[], None]] = None

    def publish(self, self_path: str, close_watcher: Callable[[], None]) -> None:
        with self._lock:
            self.self_path = self_path
            self.close_watcher = close_watcher

    def release(self) -> None:
        with self._lock:
            self.close_watcher = None

    def close(self) -> None:
        """Close the observer if one is active; safe to call repeatedly."""
        with self._lock:
            close, self.close_watcher = self.close_watcher, None
        if close is not None:
            close()


STATE = ProcessState()
