import logging

import pytest

from selfreload.config import DirConfig, Settings, dirs_from_settings, load_settings
from selfreload.errors import ConfigError
from selfreload.replacer import exec_self
from selfreload.watcher import Reloader


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ("RELOAD_CONFIG", "RELOAD_GRACE_PERIOD_MS", "RELOAD_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults_without_config_file():
    settings = load_settings()
    assert settings.grace_period_ms == 100
    assert settings.grace_period == 0.1
    assert settings.log_level == "INFO"
    assert settings.dirs == []


def test_yaml_file(tmp_path):
    cfg = tmp_path / "config" / "reload.yaml"
    cfg.parent.mkdir()
    cfg.write_text(
        "grace_period_ms: 250\n"
        "log_level: debug\n"
        "dirs:\n"
        "  - templates\n"
        "  - path: static\n"
        "    action: rebuild_assets\n"
    )

    settings = load_settings()

    assert settings.grace_period == 0.25
    assert settings.log_level == "DEBUG"
    assert settings.dirs == [DirConfig("templates", "restart"), DirConfig("static", "rebuild_assets")]


def test_config_path_from_env(tmp_path, monkeypatch):
    cfg = tmp_path / "dev.yaml"
    cfg.write_text("grace_period_ms: 40\n")
    monkeypatch.setenv("RELOAD_CONFIG", str(cfg))
    assert load_settings().grace_period_ms == 40


def test_env_overrides_file(tmp_path, monkeypatch):
    cfg = tmp_path / "reload.yaml"
    cfg.write_text("grace_period_ms: 250\nlog_level: info\n")
    monkeypatch.setenv("RELOAD_GRACE_PERIOD_MS", "500")
    monkeypatch.setenv("RELOAD_LOG_LEVEL", "warning")

    settings = load_settings(str(cfg))

    assert settings.grace_period_ms == 500
    assert settings.log_level == "WARNING"


@pytest.mark.parametrize(
    "body",
    [
        "grace_period_ms: -1\n",
        "grace_period_ms: soon\n",
        "dirs: templates\n",
        "dirs:\n  - action: restart\n",
        "- just\n- a list\n",
        "grace_period_ms: [\n",
    ],
)
def test_invalid_files(tmp_path, body):
    cfg = tmp_path / "reload.yaml"
    cfg.write_text(body)
    with pytest.raises(ConfigError):
        load_settings(str(cfg))


def test_invalid_env_grace_period(monkeypatch):
    monkeypatch.setenv("RELOAD_GRACE_PERIOD_MS", "fast")
    with pytest.raises(ConfigError, match="RELOAD_GRACE_PERIOD_MS"):
        load_settings()


def test_dirs_from_settings_resolves_actions():
    rebuilt = []
    settings = Settings(dirs=[DirConfig("templates"), DirConfig("static", "rebuild")])

    dirs = dirs_from_settings(settings, {"rebuild": lambda: rebuilt.append(True)})

    assert [d.path for d in dirs] == ["templates", "static"]
    assert dirs[0].callback is exec_self
    dirs[1].callback()
    assert rebuilt == [True]


def test_unknown_action():
    settings = Settings(dirs=[DirConfig("static", "rebuild")])
    with pytest.raises(ConfigError, match="rebuild"):
        dirs_from_settings(settings)


def test_reloader_from_settings():
    before = logging.getLogger("selfreload").level
    try:
        settings = Settings(grace_period_ms=20, dirs=[DirConfig("templates")])
        reloader = Reloader.from_settings(settings, log=print)
    finally:
        logging.getLogger("selfreload").setLevel(before)
    assert reloader.grace_period == 0.02
    assert [d.path for d in reloader.dirs] == ["templates"]


def test_reloader_from_settings_applies_log_level():
    logger = logging.getLogger("selfreload")
    before = logger.level
    try:
        Reloader.from_settings(Settings(log_level="DEBUG"), log=print)
        assert logger.level == logging.DEBUG
        Reloader.from_settings(Settings(log_level="WARNING"), log=print)
        assert logger.level == logging.WARNING
    finally:
        logger.setLevel(before)


def test_unknown_log_level(monkeypatch):
    monkeypatch.setenv("RELOAD_LOG_LEVEL", "chatty")
    with pytest.raises(ConfigError, match="CHATTY"):
        load_settings()
