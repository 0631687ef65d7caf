"""
Logging configuration for pixelpipe.

Provides structured logging with verbosity levels. Logging is configured lazily
so library users who never call set_verbosity or configure_logging get no
logs unless they configure logging themselves.

Verbosity levels:
- 0 (default): INFO: pipeline run summaries only
- 1 (info): INFO + one line per executed stage (name and output size)
- 2 (verbose): DEBUG + stage lines, decode/encode, asset loading, skips

Use set_verbosity(level) or configure_logging(verbose_level, quiet).
PIXELPIPE_VERBOSITY env (0/1/2) is read when CLI runs or when configure_logging
is called; CLI flags override env.
"""

import logging
import os

LOG_FORMAT = "%(levelname)s [%(name)s] %(message)s"
ROOT_LOGGER_NAME = "pixelpipe"

_log_stages: bool = False
_configured: bool = False


def _ensure_handler() -> None:
    """Add a stderr handler to the root pixelpipe logger if not already present."""
    global _configured
    if _configured:
        return
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    _configured = True


def set_verbosity(level: int) -> None:
    """
    Set logging verbosity (0=default, 1=info, 2=verbose).

    - 0: INFO level; run summaries only.
    - 1: INFO level; same + one line per executed stage.
    - 2: DEBUG level; same + codec, asset cache and skip details.
    """
    global _log_stages
    _ensure_handler()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if level <= 0:
        root.setLevel(logging.INFO)
        _log_stages = False
    elif level == 1:
        root.setLevel(logging.INFO)
        _log_stages = True
    else:
        root.setLevel(logging.DEBUG)
        _log_stages = True


def log_stages() -> bool:
    """Return True if per-stage lines should be logged at INFO (verbosity 1 or 2)."""
    return _log_stages


def configure_logging(verbose_level: int = 0, quiet: bool = False) -> None:
    """
    Configure logging from CLI or library.

    When quiet is True, sets level to WARNING (no run summaries).
    Otherwise calls set_verbosity(verbose_level).
    """
    global _log_stages
    _ensure_handler()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if quiet:
        root.setLevel(logging.WARNING)
        _log_stages = False
        return
    set_verbosity(verbose_level)


def get_verbosity_from_env() -> int:
    """
    Read PIXELPIPE_VERBOSITY from environment (0, 1, or 2).

    Invalid or missing values return 0.
    """
    raw = os.environ.get("PIXELPIPE_VERBOSITY", "0").strip()
    if raw == "1":
        return 1
    if raw == "2":
        return 2
    return 0


def get_logger(name: str) -> logging.Logger:
    """Return a child logger under pixelpipe (e.g. pixelpipe.core.pipeline)."""
    if name.startswith(ROOT_LOGGER_NAME + ".") or name == ROOT_LOGGER_NAME:
        return logging.getLogger(name)
    return logging.getLogger(ROOT_LOGGER_NAME + "." + name)


__all__ = [
    "configure_logging",
    "get_logger",
    "get_verbosity_from_env",
    "log_stages",
    "set_verbosity",
]
