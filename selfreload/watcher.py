"""
Restart the running process when its program file changes.

Typical use from a development server:

    import logging, threading
    import selfreload

    threading.Thread(target=selfreload.do, args=(logging.info,), daemon=True).start()

or, with extra directories and a handle to stop watching:

    reloader = selfreload.start(log.info, selfreload.Dir("tpl", reload_templates))
    ...
    reloader.stop()

The directory holding the program is watched rather than the file itself: a
rebuild usually writes a new file and renames it over the old one, and the
old file's own notifications stop at that point.

Callbacks run on the watcher thread. Nothing here guards data a callback
mutates (a global template cache, say); use a lock for that yourself.
"""

import functools
import os
import queue
import stat
import sys
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .config import Settings, dirs_from_settings
from .errors import NotificationError, ValidationError, WatchSetupError
from .events import OTHER, ChangeEvent, from_watchdog, is_trigger, platform_family
from .logs import default_log, event_id, set_level, slog
from .replacer import exec_self
from .resolver import relpath, self_path
from .state import STATE, ProcessState

LogFunc = Callable[..., None]

DEFAULT_GRACE_PERIOD = 0.1

_STOP = object()


@dataclass
class Dir:
    """
    An additional directory to watch, non-recursively.

    ``callback`` runs (after the grace period) when something in the
    directory changes. Pass ``selfreload.exec_self`` to restart the process.
    """

    path: str
    callback: Callable[[], None]


class _Forwarder(FileSystemEventHandler):
    """Runs on the observer thread; only translates and enqueues."""

    def __init__(self, events: "queue.Queue[Any]", roots: Iterable[str], family: str):
        super().__init__()
        self.events = events
        self.roots = set(roots)
        self.family = family

    def on_any_event(self, event) -> None:
        src = os.fsdecode(event.src_path)
        if event.is_directory and event.event_type in ("deleted", "moved") and src in self.roots:
            self.events.put(NotificationError(f"watched directory {src!r} was removed"))
            return
        for change in from_watchdog(event, self.family):
            self.events.put(change)


def _failed_dir(observer, watch_dirs: List[str]) -> str:
    """The directory whose emitter the observer dropped after a failed start."""
    armed = {os.fsdecode(e.watch.path) for e in getattr(observer, "emitters", ())}
    missing = [d for d in watch_dirs if d not in armed]
    return missing[0] if missing else ", ".join(watch_dirs)


class Reloader:
    def __init__(
        self,
        log: Optional[LogFunc] = None,
        dirs: Iterable[Dir] = (),
        grace_period: Optional[float] = None,
        restart: Optional[Callable[[], None]] = None,
        state: Optional[ProcessState] = None,
        observer_factory: Optional[Callable[[], Any]] = None,
        platform: Optional[str] = None,
        argv0: Optional[str] = None,
    ):
        self.log = log or default_log
        self.dirs = list(dirs)
        self.grace_period = DEFAULT_GRACE_PERIOD if grace_period is None else grace_period
        self.state = state or STATE
        self.restart = restart or functools.partial(exec_self, self.state)
        self.observer_factory = observer_factory or Observer
        self.platform = platform if platform is not None else sys.platform
        self.family = platform_family(self.platform)
        self._argv0 = argv0

        self.self_path: Optional[str] = None
        self.targets: List[Dir] = []
        self._events: "queue.Queue[Any]" = queue.Queue()
        self._observer = None
        self._observer_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._warned_platform = False

    @classmethod
    def from_settings(cls, settings: Settings, log: Optional[LogFunc] = None, actions=None, **kwargs) -> "Reloader":
        dirs = dirs_from_settings(settings, actions)
        set_level(settings.log_level)
        return cls(log, dirs, grace_period=settings.grace_period, **kwargs)

    # ------------------------------------------------------------------
    # Start-up
    # ------------------------------------------------------------------
    @staticmethod
    def _validate(raw: str) -> str:
        path = os.path.abspath(raw)
        try:
            st = os.stat(path)
        except OSError as e:
            raise ValidationError(f"cannot watch {raw!r}: {e}") from e
        if not stat.S_ISDIR(st.st_mode):
            raise ValidationError(f"not a directory: {raw!r}; can only watch directories")
        return path

    def arm(self) -> "Reloader":
        """
        Resolve the program path, validate the extra directories and schedule
        every directory on a fresh observer. Raises ResolutionError,
        ValidationError or WatchSetupError; on failure nothing stays armed.
        """
        binary = self_path(self._argv0)
        targets = [Dir(self._validate(d.path), d.callback) for d in self.dirs]
        watch_dirs = [os.path.dirname(binary)] + [t.path for t in targets]

        observer = self.observer_factory()
        handler = _Forwarder(self._events, watch_dirs, self.family)
        for d in watch_dirs:
            try:
                observer.schedule(handler, d, recursive=False)
            except OSError as e:
                raise WatchSetupError(f"cannot add {d!r} to watcher: {e}") from e

        # Emitters only touch the filesystem once the observer starts.
        try:
            observer.start()
        except OSError as e:
            observer.stop()
            raise WatchSetupError(f"cannot add {_failed_dir(observer, watch_dirs)!r} to watcher: {e}") from e

        self.self_path = binary
        self.targets = targets
        self._observer = observer
        self.state.publish(binary, self._close_observer)
        slog.info("reload.watch.armed", self_path=binary, dirs=watch_dirs)

        extra = ""
        if targets:
            extra = " (additional dirs: %s)" % ", ".join(relpath(t.path) for t in targets)
        self.log("restarting %r when it changes%s", relpath(binary), extra)
        return self

    # ------------------------------------------------------------------
    # Event loop
    # ------------------------------------------------------------------
    def run(self) -> None:
        """Process events until stop() is called."""
        while True:
            item = self._events.get()
            if item is _STOP:
                break
            if isinstance(item, Exception):
                self.log("reload error: %s", item)
                continue
            self.dispatch(item)
        slog.info("reload.stopped")

    def _trigger(self, event: ChangeEvent) -> bool:
        if self.family == OTHER and not self._warned_platform:
            self._warned_platform = True
            self.log("reload: untested platform %r; this package may not work correctly", self.platform)
        return is_trigger(self.family, event.op)

    def dispatch(self, event: ChangeEvent) -> int:
        """Act on one change event. Returns how many actions ran."""
        log = slog.bind(path=event.path, op=event.op.name)
        if not self._trigger(event):
            log.debug("reload.event.ignored")
            return 0

        log = log.bind(event_id=event_id())
        if event.path == self.self_path:
            log.info("reload.dispatch.restart")
            # Wait for writes to finish.
            time.sleep(self.grace_period)
            self.restart()
            return 1

        fired = 0
        for target in self.targets:
            if not event.path.startswith(target.path):
                continue
            time.sleep(self.grace_period)
            started = time.perf_counter()
            try:
                target.callback()
            except Exception as e:
                self.log("reload callback error: %s", e)
                log.warning("reload.callback.failed", target=target.path, error=str(e))
            else:
                latency_ms = round((time.perf_counter() - started) * 1000, 1)
                log.info("reload.dispatch.callback", target=target.path, latency_ms=latency_ms)
            fired += 1
        return fired

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> "Reloader":
        """Arm, then run the event loop on a daemon thread."""
        self.arm()
        self._thread = threading.Thread(target=self.run, name="selfreload", daemon=True)
        self._thread.start()
        return self

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _close_observer(self) -> None:
        with self._observer_lock:
            observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join()

    def stop(self) -> None:
        """Stop watching and end the event loop."""
        self.state.release()
        self._close_observer()
        self._events.put(_STOP)
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()


def do(log: Optional[LogFunc] = None, *dirs: Dir, **options) -> None:
    """
    Restart the process when its program changes; blocks.

    Only start-up errors are raised. After that, errors go to ``log``.
    Call it from a background thread, or use ``start`` instead.
    """
    reloader = Reloader(log, dirs, **options)
    reloader.arm()
    reloader.run()


def start(log: Optional[LogFunc] = None, *dirs: Dir, **options) -> Reloader:
    """Like ``do`` but returns once armed, with the loop on a daemon thread."""
    return Reloader(log, dirs, **options).start()
