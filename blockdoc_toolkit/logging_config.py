from __future__ import annotations

"""Central logging configuration for BlockDoc Toolkit.

Import and call :func:`setup_logging` at application start-up. The library
itself never configures logging; it only emits through module loggers.
"""

import logging
import logging.config
import os
from typing import Any, Dict

from blockdoc_toolkit.config import ConfigManager
from blockdoc_toolkit.version import get_app_version

__all__ = ["setup_logging"]

_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging() -> None:
    """Configure logging for the application using configuration from YAML files."""
    log_dir = os.environ.get("BLOCKDOC_LOG_DIR", "logs")
    log_file = os.path.join(log_dir, "blockdoc.log")

    try:
        logging_config = ConfigManager().get_logging_config()

        if logging_config and isinstance(logging_config, dict) and logging_config.get("version"):
            handlers: Dict[str, Any] = logging_config.get("handlers") or {}
            if "file" in handlers:
                os.makedirs(log_dir, exist_ok=True)
                handlers["file"]["filename"] = log_file

            logging.config.dictConfig(logging_config)
            logging.getLogger(__name__).info(
                "===== Logging initialised from config files (BlockDoc Toolkit %s) =====", get_app_version()
            )
        else:
            _setup_minimal_logging()
    except (ValueError, TypeError, AttributeError, ImportError, OSError) as exc:
        _setup_minimal_logging()
        logging.getLogger(__name__).error("Error loading logging config: %s", exc)

    _apply_debug_overrides()


def _setup_minimal_logging() -> None:
    """Set up minimal console-only logging when config is unavailable."""
    minimal_config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'simple': {'format': _FORMAT},
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'simple',
                'level': 'INFO',
            },
        },
        'root': {
            'level': 'INFO',
            'handlers': ['console'],
        },
        # Module logger entry so it can be flipped via env even in minimal mode
        'loggers': {
            'blockdoc_toolkit.core.services.command_service': {
                'handlers': ['console'],
                'level': 'INFO',
                'propagate': False,
            }
        }
    }

    logging.config.dictConfig(minimal_config)
    logging.getLogger(__name__).warning("===== Logging initialised with minimal fallback =====")


def _apply_debug_overrides() -> None:
    """Apply environment-driven module-specific debug overrides.

    Supports:
    - BLOCKDOC_DEBUG_EDITS=true  -> DEBUG for command dispatch
    - BLOCKDOC_DEBUG_MODULES=comma,separated,logger,names -> DEBUG for listed loggers
    """
    debug_edits = os.environ.get('BLOCKDOC_DEBUG_EDITS', '').strip().lower() in {'1', 'true', 'yes', 'on'}
    extra_modules = os.environ.get('BLOCKDOC_DEBUG_MODULES', '').strip()
    targets = []
    if debug_edits:
        targets.append('blockdoc_toolkit.core.services.command_service')
    if extra_modules:
        targets.extend([m.strip() for m in extra_modules.split(',') if m.strip()])

    for name in targets:
        logger = logging.getLogger(name)
        logger.setLevel(logging.DEBUG)
        # Ensure at least one handler emits DEBUG for this logger
        if not any(h.level <= logging.DEBUG for h in logger.handlers):
            handler = logging.StreamHandler()
            handler.setLevel(logging.DEBUG)
            handler.setFormatter(logging.Formatter(_FORMAT))
            logger.addHandler(handler)
        logger.info("Debug override active for logger '%s'", name)
