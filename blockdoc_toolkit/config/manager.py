from __future__ import annotations

"""Configuration loading and access helpers.

This module centralises the declarative editor settings (history depth,
table and column defaults) and the logging definition. It loads YAML files
packaged with *blockdoc_toolkit* and optionally merges them with user
overrides.

On Windows: ``%LOCALAPPDATA%\\BlockDocToolkit\\config\\*.yml``
On Unix: ``~/.blockdoc_toolkit/*.yml``
Anywhere: ``$BLOCKDOC_CONFIG_DIR/*.yml`` when the variable is set.

The class is intentionally lightweight; missing PyYAML falls back to embedded
Python dictionaries so existing behaviour is never broken.
"""

import copy
from importlib import resources
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

__all__ = ["ConfigManager", "DEFAULT_EDITOR_CONFIG"]

DEFAULT_EDITOR_CONFIG: Dict[str, Any] = {
    "undo": {"max_depth": 100, "snapshot_max_history": 50},
    "table": {"default_column_width": 50},
    "columns": {"max_columns": 6},
}


def _get_user_config_dir() -> Path:
    """Get the user configuration directory."""
    override = os.environ.get("BLOCKDOC_CONFIG_DIR")
    if override:
        return Path(override)
    if os.name == 'nt':  # Windows
        local_appdata = os.environ.get('LOCALAPPDATA')
        if local_appdata:
            return Path(local_appdata) / "BlockDocToolkit" / "config"
        else:
            # Fallback for Windows
            return Path.home() / "AppData" / "Local" / "BlockDocToolkit" / "config"
    else:  # Unix-like systems
        return Path.home() / ".blockdoc_toolkit"


def _read_packaged(filename: str) -> str:
    return resources.files(__package__).joinpath(filename).read_text(encoding="utf-8")


def _ensure_user_configs_exist(user_config_dir: Path, default_filenames: Dict[str, str]) -> None:
    """Copy default config files to user directory if they don't exist."""
    try:
        user_config_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error("Could not create user config directory %s: %s", user_config_dir, e)
        return

    for key, filename in default_filenames.items():
        user_config_path = user_config_dir / filename
        if user_config_path.exists():
            continue
        try:
            user_config_path.write_text(_read_packaged(filename), encoding='utf-8')
            logger.info("Created user config: %s", user_config_path)
        except (FileNotFoundError, OSError) as e:
            logger.warning("Could not copy default config %s: %s", filename, e)


class _Singleton(type):
    _instance: Optional["ConfigManager"] = None

    def __call__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super().__call__(*args, **kwargs)
        return cls._instance

    def reset_instance(cls) -> None:
        """Forget the shared instance so the next call reloads from disk."""
        cls._instance = None


class ConfigManager(metaclass=_Singleton):
    """Lazy-loads and exposes configuration sections as dictionaries.

    Sections are returned as deep copies; callers may mutate them freely.
    """

    _DEFAULT_FILENAMES = {
        "editor": "editor.yml",
        "logging": "logging.yml",
    }

    def __init__(self, copy_user_defaults: bool = True) -> None:
        self._copy_user_defaults = copy_user_defaults
        self._data: Dict[str, Dict[str, Any]] = {}
        self._ensure_loaded()

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------
    def get_editor_config(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data.get("editor", {}))

    def get_logging_config(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data.get("logging", {}))

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Return ``editor.<section>.<key>`` or *default*."""
        value = (self._data.get("editor", {}).get(section) or {}).get(key)
        return default if value is None else value

    # ------------------------------------------------------------------
    # Internal loading logic
    # ------------------------------------------------------------------
    def _ensure_loaded(self) -> None:
        if self._data:
            return  # already loaded

        try:
            import yaml  # type: ignore
        except ModuleNotFoundError:
            logger.warning("PyYAML not installed – falling back to built-in defaults")
            self._data = self._builtin_defaults()
            return

        startup_summary = []

        user_config_dir = _get_user_config_dir()
        if self._copy_user_defaults:
            _ensure_user_configs_exist(user_config_dir, self._DEFAULT_FILENAMES)

        for key, filename in self._DEFAULT_FILENAMES.items():
            merged_cfg: Dict[str, Any] = {}
            status = "missing"

            # 1. load packaged default
            try:
                packaged_data = yaml.safe_load(_read_packaged(filename)) or {}
                merged_cfg.update(packaged_data)
                status = "loaded"
            except (FileNotFoundError, OSError):
                logger.error("Missing packaged config for %s (%s)", key, filename)
                status = "missing"
            except yaml.YAMLError as exc:
                logger.error("Invalid packaged config for %s (%s): %s", key, filename, exc)
                status = "invalid"

            # 2. load user overrides
            user_path = user_config_dir / filename
            if user_path.exists():
                try:
                    user_data = yaml.safe_load(user_path.read_text(encoding="utf-8")) or {}
                    if isinstance(user_data, dict):
                        merged_cfg.update(user_data)
                        if status == "loaded":
                            status = "loaded+overrides"
                    else:
                        logger.error("Ignoring user config %s: not a mapping", user_path)
                except (OSError, yaml.YAMLError) as exc:
                    logger.error("Could not parse user config %s: %s", user_path, exc)

            if key == "editor" and not merged_cfg:
                merged_cfg = copy.deepcopy(DEFAULT_EDITOR_CONFIG)
            self._data[key] = merged_cfg
            startup_summary.append(f"{key}: {status}")

        logger.info("Config startup: %s", " | ".join(startup_summary))

    @staticmethod
    def _builtin_defaults() -> Dict[str, Dict[str, Any]]:
        """Return the editor defaults and an empty logging section."""
        return {
            "editor": copy.deepcopy(DEFAULT_EDITOR_CONFIG),
            "logging": {},
        }
