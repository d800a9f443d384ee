import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_CONFIG_PATH = "config/reload.yaml"
DEFAULT_GRACE_PERIOD_MS = 100
RESTART_ACTION = "restart"


@dataclass
class DirConfig:
    path: str
    action: str = RESTART_ACTION


@dataclass
class Settings:
    grace_period_ms: int = DEFAULT_GRACE_PERIOD_MS
    log_level: str = "INFO"
    dirs: List[DirConfig] = field(default_factory=list)

    @property
    def grace_period(self) -> float:
        """Grace period in seconds."""
        return self.grace_period_ms / 1000.0


def _grace_ms(value, source: str) -> int:
    try:
        ms = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{source}: grace period must be an integer (ms), got {value!r}")
    if ms < 0:
        raise ConfigError(f"{source}: grace period cannot be negative, got {ms}")
    return ms


def _parse_dirs(raw, source: str) -> List[DirConfig]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError(f"{source}: 'dirs' must be a list")

    dirs = []
    for i, entry in enumerate(raw):
        if isinstance(entry, str):
            entry = {"path": entry}
        if not isinstance(entry, dict) or not entry.get("path"):
            raise ConfigError(f"{source}: dirs[{i}] needs a 'path'")
        dirs.append(DirConfig(path=str(entry["path"]), action=str(entry.get("action") or RESTART_ACTION)))
    return dirs


def load_settings(path: Optional[str] = None) -> Settings:
    """
    Settings from the YAML file (RELOAD_CONFIG, default config/reload.yaml)
    with RELOAD_GRACE_PERIOD_MS / RELOAD_LOG_LEVEL overrides from the
    environment or a .env file. A missing YAML file means defaults.
    """
    load_dotenv()
    config_path = Path(path or os.getenv("RELOAD_CONFIG", DEFAULT_CONFIG_PATH))

    raw: dict = {}
    if config_path.exists():
        try:
            raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"{config_path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"{config_path}: top level must be a mapping")

    settings = Settings(
        grace_period_ms=_grace_ms(raw.get("grace_period_ms", DEFAULT_GRACE_PERIOD_MS), str(config_path)),
        log_level=str(raw.get("log_level", "INFO")).upper(),
        dirs=_parse_dirs(raw.get("dirs"), str(config_path)),
    )

    env_grace = os.getenv("RELOAD_GRACE_PERIOD_MS")
    if env_grace:
        settings.grace_period_ms = _grace_ms(env_grace, "RELOAD_GRACE_PERIOD_MS")
    env_level = os.getenv("RELOAD_LOG_LEVEL")
    if env_level:
        settings.log_level = env_level.upper()

    if not isinstance(logging.getLevelName(settings.log_level), int):
        raise ConfigError(f"unknown log level {settings.log_level!r}")

    return settings


def dirs_from_settings(settings: Settings, actions: Optional[Dict[str, Callable[[], None]]] = None) -> list:
    """Turn configured dirs into ``Dir`` targets, resolving action names."""
    from .replacer import exec_self
    from .watcher import Dir

    known: Dict[str, Callable[[], None]] = {RESTART_ACTION: exec_self}
    known.update(actions or {})

    out = []
    for d in settings.dirs:
        cb = known.get(d.action)
        if cb is None:
            raise ConfigError(f"unknown action {d.action!r} for directory {d.path!r}")
        out.append(Dir(d.path, cb))
    return out
