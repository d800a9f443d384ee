"""Lightweight automatic reloading of running processes."""

from .config import Settings, dirs_from_settings, load_settings
from .errors import (
    ConfigError,
    NotificationError,
    ReloadError,
    ReplacementError,
    ResolutionError,
    ValidationError,
    WatchSetupError,
)
from .replacer import exec_self
from .resolver import self_path
from .watcher import Dir, Reloader, do, start

__all__ = [
    "ConfigError",
    "Dir",
    "NotificationError",
    "ReloadError",
    "Reloader",
    "ReplacementError",
    "ResolutionError",
    "Settings",
    "ValidationError",
    "WatchSetupError",
    "dirs_from_settings",
    "do",
    "exec_self",
    "load_settings",
    "self_path",
    "start",
]
