import logging
import logging.handlers

import pytest

import blockdoc_toolkit
from blockdoc_toolkit.config import DEFAULT_EDITOR_CONFIG, ConfigManager
from blockdoc_toolkit.logging_config import setup_logging
from blockdoc_toolkit.version import get_app_version


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the user config directory at a temp dir and drop the shared instance."""
    config_dir = tmp_path / "config"
    monkeypatch.setenv("BLOCKDOC_CONFIG_DIR", str(config_dir))
    ConfigManager.reset_instance()
    yield config_dir
    ConfigManager.reset_instance()


@pytest.fixture
def restore_logging():
    """Undo setup_logging so later tests keep the pytest logging setup."""
    names = ["", "blockdoc_toolkit", "blockdoc_toolkit.core.services.command_service", "blockdoc_toolkit.core.registry"]
    saved = {}
    for name in names:
        logger = logging.getLogger(name)
        saved[name] = (list(logger.handlers), logger.level, logger.propagate)
    yield
    for name, (handlers, level, propagate) in saved.items():
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            if handler not in handlers:
                logger.removeHandler(handler)
                handler.close()
        logger.setLevel(level)
        logger.propagate = propagate


class TestConfigManager:
    def test_packaged_defaults(self):
        config = ConfigManager()
        assert config.get_editor_config() == DEFAULT_EDITOR_CONFIG
        assert config.get_logging_config()["version"] == 1

    def test_singleton_and_reset(self):
        first = ConfigManager()
        assert ConfigManager() is first
        ConfigManager.reset_instance()
        assert ConfigManager() is not first

    def test_user_defaults_are_copied(self, isolated_config):
        ConfigManager()
        assert (isolated_config / "editor.yml").exists()
        assert (isolated_config / "logging.yml").exists()

    def test_copy_can_be_disabled(self, isolated_config):
        ConfigManager(copy_user_defaults=False)
        assert not isolated_config.exists()

    def test_user_override_replaces_section(self, isolated_config):
        isolated_config.mkdir(parents=True)
        (isolated_config / "editor.yml").write_text("undo:\n  max_depth: 7\n", encoding="utf-8")

        config = ConfigManager()
        assert config.get("undo", "max_depth") == 7
        assert config.get("undo", "snapshot_max_history") is None
        assert config.get("table", "default_column_width") == 50
        assert config.get("nope", "nothing", "fallback") == "fallback"

    def test_non_mapping_override_is_ignored(self, isolated_config):
        isolated_config.mkdir(parents=True)
        (isolated_config / "editor.yml").write_text("- just\n- a list\n", encoding="utf-8")
        assert ConfigManager().get_editor_config() == DEFAULT_EDITOR_CONFIG

    def test_sections_are_copies(self):
        config = ConfigManager()
        config.get_editor_config()["undo"]["max_depth"] = 1
        assert config.get("undo", "max_depth") == 100


class TestLogging:
    def test_setup_logging_uses_log_dir(self, tmp_path, monkeypatch, restore_logging):
        log_dir = tmp_path / "logs"
        monkeypatch.setenv("BLOCKDOC_LOG_DIR", str(log_dir))
        monkeypatch.delenv("BLOCKDOC_DEBUG_EDITS", raising=False)
        monkeypatch.delenv("BLOCKDOC_DEBUG_MODULES", raising=False)

        setup_logging()

        handlers = logging.getLogger("blockdoc_toolkit").handlers
        files = [h for h in handlers if isinstance(h, logging.handlers.RotatingFileHandler)]
        assert files and files[0].baseFilename == str(log_dir / "blockdoc.log")

        files[0].flush()
        assert get_app_version() in (log_dir / "blockdoc.log").read_text(encoding="utf-8")

    def test_debug_overrides(self, tmp_path, monkeypatch, restore_logging):
        monkeypatch.setenv("BLOCKDOC_LOG_DIR", str(tmp_path))
        monkeypatch.setenv("BLOCKDOC_DEBUG_EDITS", "yes")
        monkeypatch.setenv("BLOCKDOC_DEBUG_MODULES", " blockdoc_toolkit.core.registry ,")

        setup_logging()

        assert logging.getLogger("blockdoc_toolkit.core.services.command_service").level == logging.DEBUG
        assert logging.getLogger("blockdoc_toolkit.core.registry").level == logging.DEBUG


def test_version_string():
    version = get_app_version()
    assert version.startswith("v")
    assert blockdoc_toolkit.get_app_version() == version
