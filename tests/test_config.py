import logging
from pathlib import Path

from android_toolkit import utils
from android_toolkit.config import DEFAULT_INSTALL_ROOT, Settings


def test_settings_defaults(monkeypatch):
    for name in ("ADB_PATH", "DEVICE_CACHE_TTL", "ANDROID_TOOLKIT_HOME", "MAX_REDIRECTS"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings()
    assert settings.adb_path is None
    assert settings.device_cache_ttl == 5.0
    assert settings.install_root == DEFAULT_INSTALL_ROOT
    assert settings.max_redirects == 5


def test_settings_read_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("ADB_PATH", "/usr/local/bin/adb")
    monkeypatch.setenv("DEVICE_CACHE_TTL", "0.5")
    monkeypatch.setenv("ANDROID_TOOLKIT_HOME", str(tmp_path))
    settings = Settings()
    assert settings.adb_path == "/usr/local/bin/adb"
    assert settings.device_cache_ttl == 0.5
    assert settings.install_root == Path(tmp_path)


def test_get_logger_nests_under_toolkit_logger():
    assert utils.get_logger().name == "android_toolkit"
    assert utils.get_logger("android_toolkit.device").name == "android_toolkit.device"
    assert utils.get_logger("custom").name == "android_toolkit.custom"


def test_configure_logging_reuses_active_session_file(tmp_path):
    logger = logging.getLogger("android_toolkit")
    saved = logger.handlers[:]
    logger.handlers.clear()
    try:
        first = utils.configure_logging(tmp_path / "logs")
        second = utils.configure_logging(tmp_path / "other")

        assert second == first
        assert first.exists()
        assert not (tmp_path / "other").exists()
    finally:
        for handler in logger.handlers:
            handler.close()
        logger.handlers[:] = saved
