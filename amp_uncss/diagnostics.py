import logging
import os
from typing import Dict


_LOGGER_CACHE: Dict[str, logging.Logger] = {}

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _default_level() -> int:
    return logging.DEBUG if str(os.getenv("AMP_UNCSS_DEBUG", "false")).lower() == "true" else logging.INFO


def get_logger(name: str) -> logging.Logger:
    """Return a configured logger.

    Respects AMP_UNCSS_DEBUG env var to set DEBUG/INFO level.
    Ensures we don't duplicate handlers across multiple imports.
    """
    lg = _LOGGER_CACHE.get(name)
    if lg:
        return lg
    lg = logging.getLogger(name)
    if not lg.handlers:
        level = _default_level()
        lg.setLevel(level)
        handler = logging.StreamHandler()
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        lg.addHandler(handler)
        lg.propagate = False
    _LOGGER_CACHE[name] = lg
    return lg


def enable_diagnostics(level: str = "INFO") -> None:
    """
    Set the level of every logger handed out by get_logger().

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    numeric = getattr(logging, level.upper(), logging.INFO)
    for lg in _LOGGER_CACHE.values():
        lg.setLevel(numeric)
        for handler in lg.handlers:
            handler.setLevel(numeric)
